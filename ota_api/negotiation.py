"""Boundary validation of manifest and asset requests.

Transport values can be repeated (``expo-protocol-version: 0`` twice); they are
normalised here into single scalars and repeated values are rejected rather
than silently taking the first one.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .errors import ClientInputError
from .models import SUPPORTED_PLATFORMS, SUPPORTED_PROTOCOL_VERSIONS, UpdateRequest

PROTOCOL_VERSION_ERROR = "Unsupported protocol version. Expected either 0 or 1."
PLATFORM_ERROR = "Unsupported platform. Expected either ios or android."
RUNTIME_VERSION_ERROR = "No runtimeVersion provided."


class MultiValueMapping(Protocol):
    """Header or query container exposing every value of a repeated key."""

    def getlist(self, key: str) -> Sequence[str]: ...


def single_value(values: Sequence[str], *, error: str) -> Optional[str]:
    """Return the only value of ``values``, ``None`` when absent."""
    if not values:
        return None
    if len(values) > 1:
        raise ClientInputError(error)
    return values[0]


def header_or_query(
    headers: MultiValueMapping,
    query: MultiValueMapping,
    header_name: str,
    query_name: str,
    *,
    error: str,
) -> Optional[str]:
    value = single_value(headers.getlist(header_name), error=error)
    if value is None:
        value = single_value(query.getlist(query_name), error=error)
    return value


def parse_protocol_version(raw: Optional[str]) -> int:
    if raw is None:
        return 0
    try:
        version = int(raw.strip())
    except ValueError:
        raise ClientInputError(PROTOCOL_VERSION_ERROR) from None
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        raise ClientInputError(PROTOCOL_VERSION_ERROR)
    return version


def parse_platform(raw: Optional[str], *, error: str = PLATFORM_ERROR) -> str:
    if raw not in SUPPORTED_PLATFORMS:
        raise ClientInputError(error)
    return raw


def parse_runtime_version(raw: Optional[str]) -> str:
    if not raw or not raw.strip():
        raise ClientInputError(RUNTIME_VERSION_ERROR)
    return raw


def negotiate_update_request(headers: MultiValueMapping, query: MultiValueMapping) -> UpdateRequest:
    """Validate the headers/query of a manifest request."""
    protocol_version = parse_protocol_version(
        single_value(headers.getlist("expo-protocol-version"), error=PROTOCOL_VERSION_ERROR)
    )
    platform = parse_platform(
        header_or_query(headers, query, "expo-platform", "platform", error=PLATFORM_ERROR)
    )
    runtime_version = parse_runtime_version(
        header_or_query(
            headers, query, "expo-runtime-version", "runtime-version", error=RUNTIME_VERSION_ERROR
        )
    )
    current_update_id = single_value(
        headers.getlist("expo-current-update-id"),
        error="Invalid Expo-Current-Update-ID request header specified.",
    )
    embedded_update_id = single_value(
        headers.getlist("expo-embedded-update-id"),
        error="Invalid Expo-Embedded-Update-ID request header specified.",
    )
    wants_signature = any(value.strip() for value in headers.getlist("expo-expect-signature"))

    return UpdateRequest(
        platform=platform,  # type: ignore[arg-type]
        runtime_version=runtime_version,
        protocol_version=protocol_version,
        current_update_id=current_update_id,
        embedded_update_id=embedded_update_id,
        wants_signature=wants_signature,
    )
