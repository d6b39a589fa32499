"""Read-only access to published update bundles on disk.

Storage layout::

    <updates_root>/<runtimeVersion>/<timestamp>/metadata.json
    <updates_root>/<runtimeVersion>/<timestamp>/expoConfig.json
    <updates_root>/<runtimeVersion>/<timestamp>/rollback        (optional marker)
    <updates_root>/<runtimeVersion>/<timestamp>/<asset paths from metadata.json>

Bundles are immutable once published; every call re-reads the files. Failures
of the underlying storage are raised as ``UpstreamReadError`` so request
handlers see one error type per cause.
"""

from __future__ import annotations

import base64
import hashlib
import json
import mimetypes
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Set
from urllib.parse import urlencode

from .errors import ClientInputError, NotFoundError, UpstreamReadError
from .models import (
    JAVASCRIPT_CONTENT_TYPE,
    AssetDescriptor,
    AssetEntry,
    BundleMetadata,
    PlatformFiles,
)

METADATA_FILENAME = "metadata.json"
APP_CONFIG_FILENAME = "expoConfig.json"
ROLLBACK_MARKER = "rollback"

_MIME_TYPES = mimetypes.MimeTypes()
for _content_type, _extension in (
    ("font/ttf", ".ttf"),
    ("font/otf", ".otf"),
    ("font/woff", ".woff"),
    ("font/woff2", ".woff2"),
    ("image/webp", ".webp"),
    ("application/javascript", ".js"),
    ("application/json", ".json"),
):
    _MIME_TYPES.add_type(_content_type, _extension)


def _iso_utc(timestamp: float) -> str:
    """Return ``timestamp`` as ISO-8601 UTC with milliseconds and ``Z``."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _creation_time(path: Path) -> str:
    stat = path.stat()
    return _iso_utc(getattr(stat, "st_birthtime", stat.st_mtime))


def _bundle_sort_key(name: str) -> tuple:
    # Timestamp directories sort numerically; anything else falls back to text.
    return (1, int(name), name) if name.isdigit() else (0, 0, name)


def _validate_runtime_version(runtime_version: str) -> None:
    if runtime_version in {"", ".", ".."} or "/" in runtime_version or "\\" in runtime_version:
        raise ClientInputError(f"Invalid runtime version: {runtime_version!r}")


def content_type_for_extension(ext: Optional[str]) -> Optional[str]:
    """Return the MIME type registered for a bare extension like ``png``."""
    if not ext:
        return None
    content_type, _ = _MIME_TYPES.guess_type(f"asset.{ext.lstrip('.')}")
    return content_type


def to_uuid(content_hash: str) -> str:
    """Shape the first 32 hex characters of ``content_hash`` like a UUID."""
    value = content_hash.lower()
    if len(value) < 32:
        raise ValueError(f"Content hash too short for an update id: {content_hash!r}")
    return f"{value[0:8]}-{value[8:12]}-{value[12:16]}-{value[16:20]}-{value[20:32]}"


def base64url_digest(digest: bytes) -> str:
    """Encode ``digest`` as unpadded base64url."""
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def locate_latest_bundle(updates_root: Path, runtime_version: str) -> Path:
    """Return the most recent bundle directory published for ``runtime_version``."""
    _validate_runtime_version(runtime_version)
    runtime_dir = Path(updates_root) / runtime_version
    if not runtime_dir.is_dir():
        raise NotFoundError("Unsupported runtime version")
    try:
        candidates = [entry.name for entry in runtime_dir.iterdir() if entry.is_dir()]
    except OSError as exc:
        raise UpstreamReadError(f"Failed to list bundles for runtime version {runtime_version}: {exc}") from exc
    if not candidates:
        raise NotFoundError(f"No update found with runtime version: {runtime_version}")
    latest = max(candidates, key=_bundle_sort_key)
    return runtime_dir / latest


def list_directory_entries(bundle_path: Path) -> Set[str]:
    try:
        return {entry.name for entry in Path(bundle_path).iterdir()}
    except OSError as exc:
        raise UpstreamReadError(f"Failed to list bundle directory {bundle_path}: {exc}") from exc


def _parse_platform_files(platform: str, raw: Any) -> PlatformFiles:
    if not isinstance(raw, dict) or not isinstance(raw.get("bundle"), str):
        raise UpstreamReadError(f"Malformed fileMetadata for platform {platform}")
    assets = []
    for item in raw.get("assets") or []:
        if not isinstance(item, dict) or not isinstance(item.get("path"), str):
            raise UpstreamReadError(f"Malformed asset entry for platform {platform}: {item!r}")
        ext = item.get("ext")
        assets.append(AssetEntry(path=item["path"], ext=str(ext) if ext else None))
    return PlatformFiles(bundle=raw["bundle"], assets=tuple(assets))


def read_bundle_metadata(bundle_path: Path, runtime_version: str) -> BundleMetadata:
    """Read ``metadata.json`` and derive the content id and creation time."""
    metadata_path = Path(bundle_path) / METADATA_FILENAME
    try:
        raw_bytes = metadata_path.read_bytes()
        payload = json.loads(raw_bytes)
        created_at = _creation_time(metadata_path)
    except (OSError, ValueError) as exc:
        raise UpstreamReadError(
            f"No update found with runtime version: {runtime_version}. Error: {exc}"
        ) from exc

    file_metadata = payload.get("fileMetadata") if isinstance(payload, dict) else None
    if not isinstance(file_metadata, dict):
        raise UpstreamReadError(f"{metadata_path} has no fileMetadata section")
    platforms = {
        str(name): _parse_platform_files(str(name), entry) for name, entry in file_metadata.items()
    }
    return BundleMetadata(
        content_id=hashlib.sha256(raw_bytes).hexdigest(),
        created_at=created_at,
        platforms=platforms,
    )


def platform_files(metadata: BundleMetadata, platform: str) -> PlatformFiles:
    try:
        return metadata.platforms[platform]
    except KeyError:
        raise NotFoundError(f"No update found for platform {platform}") from None


def asset_reference(bundle_path: Path, file_path: str) -> str:
    """Return the ``asset`` query value that identifies ``file_path``."""
    bundle_path = Path(bundle_path)
    return f"{bundle_path.parent.name}/{bundle_path.name}/{file_path}"


def read_asset_record(
    bundle_path: Path,
    file_path: str,
    *,
    ext: Optional[str],
    is_launch_asset: bool,
    runtime_version: str,
    platform: str,
    base_url: str,
) -> AssetDescriptor:
    """Hash one bundle file and describe it the way manifests advertise assets."""
    asset_path = Path(bundle_path) / file_path
    try:
        data = asset_path.read_bytes()
    except OSError as exc:
        raise UpstreamReadError(f"Failed to read asset {file_path}: {exc}") from exc

    if is_launch_asset:
        content_type = JAVASCRIPT_CONTENT_TYPE
    else:
        content_type = content_type_for_extension(ext)
        if content_type is None:
            raise UpstreamReadError(f"No content type known for extension {ext!r} of {file_path}")

    query = urlencode(
        {
            "asset": asset_reference(bundle_path, file_path),
            "runtimeVersion": runtime_version,
            "platform": platform,
        }
    )
    return AssetDescriptor(
        path=file_path,
        ext=ext,
        hash=base64url_digest(hashlib.sha256(data).digest()),
        key=hashlib.md5(data, usedforsecurity=False).hexdigest(),
        content_type=content_type,
        url=f"{base_url.rstrip('/')}/api/assets?{query}",
        is_launch_asset=is_launch_asset,
    )


def read_app_config(bundle_path: Path, runtime_version: str) -> Dict[str, Any]:
    config_path = Path(bundle_path) / APP_CONFIG_FILENAME
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise UpstreamReadError(
            f"No expo config json found with runtime version: {runtime_version}. Error: {exc}"
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamReadError(f"{config_path} must contain a JSON object")
    return payload


def rollback_commit_time(bundle_path: Path) -> str:
    """Return the creation time of the bundle's rollback marker."""
    try:
        return _creation_time(Path(bundle_path) / ROLLBACK_MARKER)
    except OSError as exc:
        raise UpstreamReadError(f"Failed to read rollback marker in {bundle_path}: {exc}") from exc


def bundle_contains(bundle_path: Path, candidate: Path) -> bool:
    try:
        Path(os.path.realpath(candidate)).relative_to(os.path.realpath(bundle_path))
    except ValueError:
        return False
    return True
