"""Top-level dispatch of manifest requests.

Flow: locate the latest bundle, classify it, build a manifest or rollback
directive, fall back to the no-update directive when a builder reports that
the client is current, then sign and serialize the chosen document.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .bundles import locate_latest_bundle
from .classifier import classify_bundle
from .directives import build_no_update_directive, build_rollback_directive
from .manifest import ManifestBuilder
from .models import Directive, Manifest, NoUpdateAvailable, UpdateRequest, UpdateType
from .multipart import MultipartResponse, assemble_response, serialize_document
from .signing import DocumentSigner


class UpdateService:
    """Answer validated ``UpdateRequest`` values with multipart responses."""

    def __init__(
        self,
        *,
        updates_root: Path,
        manifest_builder: Optional[ManifestBuilder] = None,
        signer: Optional[DocumentSigner] = None,
        locate_bundle: Callable[[Path, str], Path] = locate_latest_bundle,
        classify: Callable[[Path], UpdateType] = classify_bundle,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.updates_root = Path(updates_root)
        self.manifest_builder = manifest_builder or ManifestBuilder()
        self.signer = signer or DocumentSigner()
        self._locate_bundle = locate_bundle
        self._classify = classify
        self._log = logger or logging.getLogger("ota_api.service")

    def respond(self, request: UpdateRequest, *, base_url: str) -> MultipartResponse:
        self._log.info(
            "Manifest request platform=%s runtime=%s protocol=%s",
            request.platform,
            request.runtime_version,
            request.protocol_version,
        )
        bundle_path = self._locate_bundle(self.updates_root, request.runtime_version)
        update_type = self._classify(bundle_path)

        if update_type is UpdateType.NORMAL_UPDATE:
            result = self.manifest_builder.build(
                bundle_path,
                runtime_version=request.runtime_version,
                platform=request.platform,
                current_update_id=request.current_update_id,
                protocol_version=request.protocol_version,
                base_url=base_url,
            )
        else:
            result = build_rollback_directive(
                bundle_path,
                embedded_update_id=request.embedded_update_id,
                current_update_id=request.current_update_id,
                protocol_version=request.protocol_version,
            )

        if isinstance(result, NoUpdateAvailable):
            self._log.info("Serving noUpdateAvailable (%s)", result.reason)
            return self._directive_response(
                build_no_update_directive(request.protocol_version), request
            )
        if isinstance(result, Manifest):
            self._log.info("Serving manifest %s from %s", result.id, bundle_path.name)
            return self._manifest_response(result, request)
        self._log.info("Serving rollback directive from %s", bundle_path.name)
        return self._directive_response(result, request)

    def _manifest_response(self, manifest: Manifest, request: UpdateRequest) -> MultipartResponse:
        document = serialize_document(manifest.to_dict())
        signature = self.signer.sign(document, request.wants_signature)
        return assemble_response(
            "manifest",
            document,
            signature=signature,
            protocol_version=request.protocol_version,
            extensions=self.manifest_builder.asset_headers.extensions(manifest),
        )

    def _directive_response(self, directive: Directive, request: UpdateRequest) -> MultipartResponse:
        document = serialize_document(directive.to_dict())
        signature = self.signer.sign(document, request.wants_signature)
        return assemble_response(
            "directive",
            document,
            signature=signature,
            protocol_version=request.protocol_version,
        )
