"""Classify the latest bundle of a runtime version as update or rollback."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Set

from .bundles import ROLLBACK_MARKER, list_directory_entries
from .models import UpdateType


def classify_bundle(
    bundle_path: Path,
    *,
    list_entries: Callable[[Path], Set[str]] = list_directory_entries,
) -> UpdateType:
    """Return ``ROLLBACK`` when the bundle holds a ``rollback`` marker entry."""
    if ROLLBACK_MARKER in list_entries(bundle_path):
        return UpdateType.ROLLBACK
    return UpdateType.NORMAL_UPDATE
