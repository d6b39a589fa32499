"""Typed error taxonomy shared by the update engine and the HTTP layer.

Every error carries the HTTP status it maps to, so routes never translate
messages themselves; ``ota_api.app`` renders them as ``{"error": message}``.
"""

from __future__ import annotations


class OtaApiError(RuntimeError):
    """Base exception containing the client-facing message and status code."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = str(message)
        if status_code is not None:
            self.status_code = int(status_code)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class ClientInputError(OtaApiError):
    """Raised when headers or query values are malformed or missing."""

    status_code = 400


class NotFoundError(OtaApiError):
    """Raised for unknown runtime versions, bundles or assets."""

    status_code = 404


class SigningConfigurationError(OtaApiError):
    """Raised when a signature is expected but no private key is configured."""

    status_code = 400


class UnsupportedProtocolOperation(OtaApiError):
    """Raised when a directive is requested under protocol version 0."""

    status_code = 400


class UpstreamReadError(OtaApiError):
    """Raised when bundle storage cannot be read or parsed."""

    status_code = 500
