import base64
import json
import re
from pathlib import Path
from typing import Dict, Optional

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from fastapi.testclient import TestClient

from ota_api.app import create_app
from ota_api.settings import ServerSettings

LAUNCH_BUNDLE = b"console.log('launch');\n"
ICON_PNG = b"\x89PNG\r\n\x1a\nfake-icon"
FONT_TTF = b"\x00\x01\x00\x00fake-font"
EXPO_CONFIG = {"name": "demo", "slug": "demo", "runtimeVersion": "1.0.0"}


def publish_bundle(
    updates_root: Path,
    runtime_version: str = "1.0.0",
    timestamp: str = "1700000000",
    *,
    rollback: bool = False,
    marker: str = "",
) -> Path:
    """Lay out one published bundle the way the export tooling does."""
    bundle = updates_root / runtime_version / timestamp
    (bundle / "assets").mkdir(parents=True)
    for platform in ("ios", "android"):
        js_dir = bundle / "_expo" / "static" / "js" / platform
        js_dir.mkdir(parents=True)
        (js_dir / "index.hbc").write_bytes(LAUNCH_BUNDLE + platform.encode() + marker.encode())
    (bundle / "assets" / "icon").write_bytes(ICON_PNG)
    (bundle / "assets" / "font").write_bytes(FONT_TTF)

    metadata = {
        "version": 0,
        "bundler": "metro",
        "fileMetadata": {
            platform: {
                "bundle": f"_expo/static/js/{platform}/index.hbc",
                "assets": [
                    {"path": "assets/icon", "ext": "png"},
                    {"path": "assets/font", "ext": "ttf"},
                ],
            }
            for platform in ("ios", "android")
        },
        "marker": marker,
    }
    (bundle / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
    (bundle / "expoConfig.json").write_text(json.dumps(EXPO_CONFIG), encoding="utf-8")
    if rollback:
        (bundle / "rollback").write_text("", encoding="utf-8")
    return bundle


@pytest.fixture
def updates_root(tmp_path: Path) -> Path:
    root = tmp_path / "updates"
    root.mkdir()
    return root


@pytest.fixture
def bundle(updates_root: Path) -> Path:
    return publish_bundle(updates_root)


@pytest.fixture
def publish(updates_root: Path):
    def _publish(runtime_version: str = "1.0.0", timestamp: str = "1700000000", **kwargs) -> Path:
        return publish_bundle(updates_root, runtime_version, timestamp, **kwargs)

    return _publish


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_path(tmp_path: Path, private_key: rsa.RSAPrivateKey) -> Path:
    path = tmp_path / "private-key.pem"
    path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def make_client(updates_root: Path):
    def _make(**overrides) -> TestClient:
        settings = ServerSettings(updates_root=updates_root, hostname="http://updates.test", **overrides)
        return TestClient(create_app(settings))

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def parse_multipart(response) -> Dict[str, dict]:
    """Split a multipart/mixed response into ``{name: {"headers", "body"}}``."""
    boundary = response.headers["content-type"].split("boundary=", 1)[1]
    chunks = response.content.split(f"--{boundary}".encode())
    assert chunks[0] == b""
    assert chunks[-1] == b"--\r\n"
    parts: Dict[str, dict] = {}
    for chunk in chunks[1:-1]:
        assert chunk.startswith(b"\r\n") and chunk.endswith(b"\r\n")
        head, _, body = chunk[2:-2].partition(b"\r\n\r\n")
        headers = {}
        for line in head.decode("utf-8").split("\r\n"):
            name, _, value = line.partition(": ")
            headers[name.lower()] = value
        match = re.search(r'name="([^"]+)"', headers["content-disposition"])
        assert match is not None
        parts[match.group(1)] = {"headers": headers, "body": body}
    return parts


@pytest.fixture
def multipart_parts():
    return parse_multipart


def verify_signature(public_key, header_value: str, body: bytes) -> Optional[str]:
    """Verify an ``expo-signature`` value; return its key id."""
    members = dict(re.findall(r'([a-z]+)="([^"]*)"', header_value))
    public_key.verify(base64.b64decode(members["sig"]), body, padding.PKCS1v15(), hashes.SHA256())
    return members.get("keyid")


@pytest.fixture
def signature_verifier(private_key):
    def _verify(header_value: str, body: bytes) -> Optional[str]:
        return verify_signature(private_key.public_key(), header_value, body)

    return _verify
