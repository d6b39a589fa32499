"""Typed domain objects for update negotiation and response documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union

Platform = Literal["ios", "android"]
SUPPORTED_PLATFORMS: Tuple[str, ...] = ("ios", "android")
SUPPORTED_PROTOCOL_VERSIONS: Tuple[int, ...] = (0, 1)
JAVASCRIPT_CONTENT_TYPE = "application/javascript"


class UpdateType(Enum):
    NORMAL_UPDATE = "normal"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class UpdateRequest:
    """Validated manifest request values extracted from headers and query."""

    platform: Platform
    runtime_version: str
    protocol_version: int = 0
    current_update_id: Optional[str] = None
    embedded_update_id: Optional[str] = None
    wants_signature: bool = False


@dataclass(frozen=True)
class AssetEntry:
    """One ``fileMetadata.<platform>.assets`` record of ``metadata.json``."""

    path: str
    ext: Optional[str]


@dataclass(frozen=True)
class PlatformFiles:
    """Launch bundle and asset records published for one platform."""

    bundle: str
    assets: Tuple[AssetEntry, ...] = ()


@dataclass(frozen=True)
class BundleMetadata:
    """Parsed ``metadata.json`` of one published update bundle."""

    content_id: str
    created_at: str
    platforms: Dict[str, PlatformFiles] = field(default_factory=dict)


@dataclass(frozen=True)
class AssetDescriptor:
    """One file of a bundle as advertised in a manifest."""

    path: str
    ext: Optional[str]
    hash: str
    key: str
    content_type: str
    url: str
    is_launch_asset: bool = False

    @property
    def file_extension(self) -> str:
        suffix = "bundle" if self.is_launch_asset else (self.ext or "")
        return f".{suffix}"

    def to_dict(self) -> Dict[str, str]:
        """Return the protocol wire shape of the asset."""
        return {
            "hash": self.hash,
            "key": self.key,
            "fileExtension": self.file_extension,
            "contentType": self.content_type,
            "url": self.url,
        }


@dataclass(frozen=True)
class Manifest:
    """Update manifest served for a normal update."""

    id: str
    created_at: str
    runtime_version: str
    assets: Tuple[AssetDescriptor, ...]
    launch_asset: AssetDescriptor
    expo_client: Dict[str, Any] = field(default_factory=dict)

    @property
    def all_assets(self) -> Tuple[AssetDescriptor, ...]:
        return self.assets + (self.launch_asset,)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "runtimeVersion": self.runtime_version,
            "assets": [asset.to_dict() for asset in self.assets],
            "launchAsset": self.launch_asset.to_dict(),
            "metadata": {},
            "extra": {"expoClient": self.expo_client},
        }


@dataclass(frozen=True)
class RollbackDirective:
    """Instruct the client to roll back to the update embedded in its binary."""

    commit_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "rollBackToEmbedded", "parameters": {"commitTime": self.commit_time}}


@dataclass(frozen=True)
class NoUpdateAvailableDirective:
    def to_dict(self) -> Dict[str, Any]:
        return {"type": "noUpdateAvailable"}


@dataclass(frozen=True)
class NoUpdateAvailable:
    """Builder result meaning "answer with the no-update directive"."""

    reason: str = ""


Directive = Union[RollbackDirective, NoUpdateAvailableDirective]
ManifestResult = Union[Manifest, NoUpdateAvailable]
DirectiveResult = Union[RollbackDirective, NoUpdateAvailable]
