"""Build update manifests from a published bundle.

One builder serves every manifest variant; what differs between deployments is
only the set of extra headers clients must send with asset requests, which is
described by ``AssetRequestHeaders``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from .bundles import platform_files, read_app_config, read_asset_record, read_bundle_metadata, to_uuid
from .models import AssetDescriptor, Manifest, ManifestResult, NoUpdateAvailable


@dataclass(frozen=True)
class AssetRequestHeaders:
    """Headers advertised in the ``extensions`` part for every manifest asset."""

    headers: Mapping[str, str] = field(default_factory=dict)

    def for_asset(self, asset: AssetDescriptor) -> Dict[str, str]:
        return dict(self.headers)

    def extensions(self, manifest: Manifest) -> Dict[str, Dict[str, Dict[str, str]]]:
        """Return the ``extensions`` document for ``manifest``."""
        return {
            "assetRequestHeaders": {
                asset.key: self.for_asset(asset) for asset in manifest.all_assets
            }
        }


class ManifestBuilder:
    """Assemble a ``Manifest`` or report that the client is already current."""

    def __init__(
        self,
        *,
        asset_headers: Optional[AssetRequestHeaders] = None,
        read_metadata: Callable = read_bundle_metadata,
        read_asset: Callable = read_asset_record,
        read_config: Callable = read_app_config,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.asset_headers = asset_headers or AssetRequestHeaders()
        self._read_metadata = read_metadata
        self._read_asset = read_asset
        self._read_config = read_config
        self._log = logger or logging.getLogger("ota_api.manifest")

    def build(
        self,
        bundle_path: Path,
        *,
        runtime_version: str,
        platform: str,
        current_update_id: Optional[str],
        protocol_version: int,
        base_url: str,
    ) -> ManifestResult:
        metadata = self._read_metadata(bundle_path, runtime_version)
        manifest_id = to_uuid(metadata.content_id)

        # Protocol 0 has no noUpdateAvailable directive; those clients always get the manifest.
        if current_update_id == manifest_id and protocol_version == 1:
            self._log.info("Client already runs update %s", manifest_id)
            return NoUpdateAvailable(reason=f"current update {manifest_id} is latest")

        expo_client = self._read_config(bundle_path, runtime_version)
        files = platform_files(metadata, platform)
        assets = tuple(
            self._read_asset(
                bundle_path,
                entry.path,
                ext=entry.ext,
                is_launch_asset=False,
                runtime_version=runtime_version,
                platform=platform,
                base_url=base_url,
            )
            for entry in files.assets
        )
        launch_asset = self._read_asset(
            bundle_path,
            files.bundle,
            ext=None,
            is_launch_asset=True,
            runtime_version=runtime_version,
            platform=platform,
            base_url=base_url,
        )
        self._log.debug(
            "Built manifest %s with %d assets for %s/%s", manifest_id, len(assets), runtime_version, platform
        )
        return Manifest(
            id=manifest_id,
            created_at=metadata.created_at,
            runtime_version=runtime_version,
            assets=assets,
            launch_asset=launch_asset,
            expo_client=expo_client,
        )
