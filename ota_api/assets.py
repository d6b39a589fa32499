"""Resolve the ``asset`` references of a manifest back to bytes on disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .bundles import (
    asset_reference,
    bundle_contains,
    content_type_for_extension,
    locate_latest_bundle,
    platform_files,
    read_bundle_metadata,
)
from .errors import ClientInputError, NotFoundError, UpstreamReadError
from .models import JAVASCRIPT_CONTENT_TYPE
from .negotiation import MultiValueMapping, parse_platform, parse_runtime_version, single_value


@dataclass(frozen=True)
class AssetQuery:
    asset: str
    runtime_version: str
    platform: str


@dataclass(frozen=True)
class ResolvedAsset:
    path: Path
    content: bytes
    content_type: str


def parse_asset_query(query: MultiValueMapping) -> AssetQuery:
    """Validate the ``asset``/``runtimeVersion``/``platform`` query values."""
    asset = single_value(query.getlist("asset"), error="Multiple asset names provided.")
    if not asset:
        raise ClientInputError("No asset name provided.")
    platform = parse_platform(
        single_value(query.getlist("platform"), error="Multiple platforms provided."),
        error='No platform provided. Expected "ios" or "android".',
    )
    runtime_version = parse_runtime_version(
        single_value(query.getlist("runtimeVersion"), error="Multiple runtimeVersion values provided.")
    )
    return AssetQuery(asset=asset, runtime_version=runtime_version, platform=platform)


class AssetResolver:
    """Stateless lookup of one asset inside the latest bundle of a runtime version."""

    def __init__(
        self,
        *,
        updates_root: Path,
        locate_bundle: Callable[[Path, str], Path] = locate_latest_bundle,
        read_metadata: Callable = read_bundle_metadata,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.updates_root = Path(updates_root)
        self._locate_bundle = locate_bundle
        self._read_metadata = read_metadata
        self._log = logger or logging.getLogger("ota_api.assets")

    @staticmethod
    def _bundle_relative(asset_name: str, bundle_path: Path) -> str:
        for prefix in (asset_reference(bundle_path, ""), f"{bundle_path.as_posix()}/"):
            if asset_name.startswith(prefix):
                return asset_name[len(prefix):]
        return asset_name

    def resolve(self, asset_name: str, runtime_version: str, platform: str) -> ResolvedAsset:
        bundle_path = self._locate_bundle(self.updates_root, runtime_version)
        metadata = self._read_metadata(bundle_path, runtime_version)

        relative = self._bundle_relative(asset_name, bundle_path)
        candidate = bundle_path / relative
        if not relative or not bundle_contains(bundle_path, candidate) or not candidate.is_file():
            self._log.warning("Asset %s not found in %s", asset_name, bundle_path)
            raise NotFoundError(f'Asset "{asset_name}" does not exist.')

        files = platform_files(metadata, platform)
        if relative == files.bundle:
            content_type = JAVASCRIPT_CONTENT_TYPE
        else:
            record = next((entry for entry in files.assets if entry.path == relative), None)
            if record is None:
                raise NotFoundError(f'Asset "{asset_name}" is not part of the {platform} update.')
            content_type = content_type_for_extension(record.ext)
            if content_type is None:
                raise UpstreamReadError(f"No content type known for extension {record.ext!r} of {relative}")

        try:
            content = candidate.read_bytes()
        except OSError as exc:
            raise UpstreamReadError(f"Failed to read asset {relative}: {exc}") from exc
        return ResolvedAsset(path=candidate, content=content, content_type=content_type)
