"""FastAPI application serving update manifests and assets."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, TypeVar

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .assets import AssetResolver, parse_asset_query
from .errors import OtaApiError
from .manifest import AssetRequestHeaders, ManifestBuilder
from .negotiation import negotiate_update_request
from .service import UpdateService
from .settings import ServerSettings
from .signing import DocumentSigner

LOGGER = logging.getLogger("ota_api.app")

T = TypeVar("T")


class HealthStatus(BaseModel):
    ok: bool
    updates_root: str
    runtime_versions: List[str]


def _guarded(action: Callable[[], T]) -> T | JSONResponse:
    """Run a handler body; typed errors propagate, anything else becomes a 500."""
    try:
        return action()
    except OtaApiError:
        raise
    except Exception as exc:
        LOGGER.exception("Unexpected failure while handling request")
        return JSONResponse({"error": str(exc) or exc.__class__.__name__}, status_code=500)


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    settings = settings or ServerSettings.from_env()
    app = FastAPI(title="OTA Update Server", version=__version__)
    app.state.settings = settings

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    service = UpdateService(
        updates_root=settings.updates_root,
        manifest_builder=ManifestBuilder(
            asset_headers=AssetRequestHeaders(headers=dict(settings.asset_request_headers))
        ),
        signer=DocumentSigner(private_key_path=settings.private_key_path),
    )
    resolver = AssetResolver(updates_root=settings.updates_root)

    @app.exception_handler(OtaApiError)
    async def _ota_error_handler(request: Request, exc: OtaApiError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            LOGGER.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    def _base_url(request: Request) -> str:
        return settings.hostname or str(request.base_url).rstrip("/")

    @app.get("/health", response_model=HealthStatus)
    def health():
        root = settings.updates_root
        runtime_versions = sorted(p.name for p in root.iterdir() if p.is_dir()) if root.is_dir() else []
        return HealthStatus(ok=True, updates_root=str(root), runtime_versions=runtime_versions)

    @app.get("/api/manifest")
    def manifest(request: Request):
        """Serve the manifest, rollback or no-update directive for a client."""

        def _respond():
            update_request = negotiate_update_request(request.headers, request.query_params)
            result = service.respond(update_request, base_url=_base_url(request))
            return Response(content=result.body, status_code=result.status_code, headers=result.headers)

        return _guarded(_respond)

    @app.get("/api/assets")
    def asset(request: Request):
        """Serve one file referenced by a manifest."""

        def _respond():
            query = parse_asset_query(request.query_params)
            resolved = resolver.resolve(query.asset, query.runtime_version, query.platform)
            return Response(content=resolved.content, media_type=resolved.content_type)

        return _guarded(_respond)

    return app
