"""Rollback and no-update directives (protocol version 1 only)."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .bundles import rollback_commit_time
from .errors import ClientInputError, UnsupportedProtocolOperation
from .models import DirectiveResult, NoUpdateAvailable, NoUpdateAvailableDirective, RollbackDirective


class InvalidEmbeddedUpdateId(ClientInputError):
    """Raised when a rollback is served without a usable embedded update id."""


def build_rollback_directive(
    bundle_path: Path,
    *,
    embedded_update_id: Optional[str],
    current_update_id: Optional[str],
    protocol_version: int,
    commit_time: Callable[[Path], str] = rollback_commit_time,
) -> DirectiveResult:
    if protocol_version == 0:
        raise UnsupportedProtocolOperation("Rollbacks not supported on protocol version 0")
    if not embedded_update_id or not isinstance(embedded_update_id, str):
        raise InvalidEmbeddedUpdateId("Invalid Expo-Embedded-Update-ID request header specified.")
    if current_update_id == embedded_update_id:
        return NoUpdateAvailable(reason="client already runs the embedded update")
    return RollbackDirective(commit_time=commit_time(bundle_path))


def build_no_update_directive(protocol_version: int) -> NoUpdateAvailableDirective:
    if protocol_version == 0:
        raise UnsupportedProtocolOperation("NoUpdateAvailable directive not supported on protocol version 0")
    return NoUpdateAvailableDirective()
