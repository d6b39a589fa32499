"""RSA/SHA-256 code signing of manifest and directive documents.

The ``expo-signature`` part header is a structured-field dictionary
(RFC 8941) with the base64 signature under ``sig`` and the key id ``main``.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Callable, Mapping, Optional

import http_sfv
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import SigningConfigurationError, UpstreamReadError

SIGNING_KEY_ID = "main"
NO_KEY_ERROR = "Code signing requested but no key supplied when starting server."


def serialize_sfv_dictionary(items: Mapping[str, str]) -> str:
    """Serialize string members as a structured-field dictionary."""
    dictionary = http_sfv.Dictionary()
    for key, value in items.items():
        dictionary[key] = http_sfv.Item(value)
    return str(dictionary)


def load_private_signing_key(path: Optional[Path]) -> Optional[rsa.RSAPrivateKey]:
    """Load the PEM private key at ``path``; ``None`` when no path is configured."""
    if path is None:
        return None
    try:
        key = serialization.load_pem_private_key(Path(path).read_bytes(), password=None)
    except (OSError, ValueError, TypeError) as exc:
        raise UpstreamReadError(f"Failed to load private signing key {path}: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise UpstreamReadError(f"Private signing key {path} is not an RSA key")
    return key


def sign_rsa_sha256(data: bytes, private_key: rsa.RSAPrivateKey) -> str:
    signature = private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


class DocumentSigner:
    """Produce ``expo-signature`` values for serialized documents."""

    def __init__(
        self,
        *,
        private_key_path: Optional[Path] = None,
        load_key: Callable[[Optional[Path]], Optional[rsa.RSAPrivateKey]] = load_private_signing_key,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.private_key_path = private_key_path
        self._load_key = load_key
        self._log = logger or logging.getLogger("ota_api.signing")

    def sign(self, document: bytes, wants_signature: bool) -> Optional[str]:
        """Return the signature header value, ``None`` when none was requested.

        Raises ``SigningConfigurationError`` instead of answering unsigned when a
        signature is expected and no key is configured.
        """
        if not wants_signature:
            return None
        private_key = self._load_key(self.private_key_path)
        if private_key is None:
            self._log.warning("Signature expected but no private key configured")
            raise SigningConfigurationError(NO_KEY_ERROR)
        return serialize_sfv_dictionary(
            {"sig": sign_rsa_sha256(document, private_key), "keyid": SIGNING_KEY_ID}
        )
