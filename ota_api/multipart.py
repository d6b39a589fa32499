"""Serialize manifest/directive documents into ``multipart/mixed`` responses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary, encode_multipart_formdata

JSON_PART_CONTENT_TYPE = "application/json; charset=utf-8"
DIRECTIVE_PROTOCOL_VERSION = 1
_MAX_BOUNDARY_ATTEMPTS = 8


def serialize_document(document: Mapping[str, Any]) -> bytes:
    """Return the compact UTF-8 JSON bytes that are both signed and served."""
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class MultipartResponse:
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    @property
    def boundary(self) -> str:
        return self.headers["content-type"].split("boundary=", 1)[1]


def _json_part(name: str, data: bytes, extra_headers: Optional[Mapping[str, str]] = None) -> RequestField:
    part = RequestField(name=name, data=data, headers=dict(extra_headers or {}))
    part.make_multipart(content_type=JSON_PART_CONTENT_TYPE)
    return part


def _pick_boundary(*payloads: bytes) -> str:
    for _ in range(_MAX_BOUNDARY_ATTEMPTS):
        boundary = choose_boundary()
        marker = boundary.encode("ascii")
        if not any(marker in payload for payload in payloads):
            return boundary
    raise RuntimeError("Could not generate a multipart boundary absent from the payload")


def assemble_response(
    document_kind: str,
    document: bytes,
    *,
    signature: Optional[str],
    protocol_version: int,
    extensions: Optional[Mapping[str, Any]] = None,
) -> MultipartResponse:
    """Build the multipart body and headers for one manifest or directive.

    ``document`` must be the exact bytes that were signed. Directive responses
    always advertise protocol version 1.
    """
    if document_kind not in {"manifest", "directive"}:
        raise ValueError(f"Unknown document kind: {document_kind}")

    parts = [
        _json_part(document_kind, document, {"expo-signature": signature} if signature else None)
    ]
    payloads = [document]
    if extensions is not None:
        extensions_bytes = serialize_document(extensions)
        parts.append(_json_part("extensions", extensions_bytes))
        payloads.append(extensions_bytes)

    boundary = _pick_boundary(*payloads)
    body, _ = encode_multipart_formdata(parts, boundary=boundary)

    if document_kind == "directive":
        protocol_version = DIRECTIVE_PROTOCOL_VERSION
    return MultipartResponse(
        body=body,
        headers={
            "expo-protocol-version": str(protocol_version),
            "expo-sfv-version": "0",
            "cache-control": "private, max-age=0",
            "content-type": f"multipart/mixed; boundary={boundary}",
        },
    )
