"""
HTTP API.

Endpoints:
    GET  /assets?name=<filename>                 - name-only asset lookup
    GET  /assets/{path}?fullPath=<override>      - path-hinted asset lookup
    GET  /config                                 - app config for the caller's sandbox
    POST /render                                 - render a text payload
    POST /decode                                 - decode a raw chat message
"""

import logging
from typing import Any, Optional
from urllib.parse import unquote

import httpx
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from allion_voice import __version__
from allion_voice.app_config import AppConfig, fetch_app_config
from allion_voice.assets import AssetResolver
from allion_voice.config import Settings
from allion_voice.decoder import decode_variant
from allion_voice.errors import AllionError
from allion_voice.models.message import StructuredMessage, TextPayload
from allion_voice.renderer import RenderContext, render
from allion_voice.transcript import render_message
from allion_voice.transport.http import HttpClient

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS = {
    "invalid_reference": 400,
    "asset_not_found": 404,
    "unexpected_io": 500,
}

NAME_ASSET_HEADERS = {
    "Cache-Control": "public, max-age=31536000, immutable",
    "Access-Control-Allow-Origin": "*",
}
PATH_ASSET_HEADERS = {
    **NAME_ASSET_HEADERS,
    "Cross-Origin-Resource-Policy": "cross-origin",
}


# ============================================================================
# Dependencies: everything is built per request from app.state.settings
# ============================================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_resolver(settings: Settings = Depends(get_settings)) -> AssetResolver:
    return AssetResolver(settings.deployment_context())


def get_render_context(settings: Settings = Depends(get_settings)) -> RenderContext:
    return settings.render_context()


# ============================================================================
# Request / Response Models
# ============================================================================

class DecodeRequest(BaseModel):
    message: str


class DecodeResponse(BaseModel):
    kind: str
    message: StructuredMessage
    html: str


class RenderResponse(BaseModel):
    html: str


# ============================================================================
# Routes
# ============================================================================

@router.get("/assets")
async def get_asset(name: Optional[str] = Query(None), resolver: AssetResolver = Depends(get_resolver)):
    asset = await resolver.aresolve_name(name)
    data = await resolver.aread(asset)
    return Response(content=data, media_type=asset.content_type, headers=NAME_ASSET_HEADERS)


@router.get("/assets/{path:path}")
async def get_asset_by_path(
    path: str,
    full_path: Optional[str] = Query(None, alias="fullPath"),
    resolver: AssetResolver = Depends(get_resolver),
):
    reference = full_path or unquote(path)
    asset = await resolver.aresolve_path(reference)
    data = await resolver.aread(asset)
    return Response(content=data, media_type=asset.content_type, headers=PATH_ASSET_HEADERS)


@router.get("/config", response_model=AppConfig)
async def get_app_config(request: Request, settings: Settings = Depends(get_settings)) -> AppConfig:
    sandbox_id = settings.sandbox_id or request.headers.get("x-sandbox-id")
    transport: Optional[httpx.AsyncBaseTransport] = getattr(request.app.state, "http_transport", None)
    async with HttpClient(transport=transport) as http:
        return await fetch_app_config(http, settings.app_config_endpoint, sandbox_id)


@router.post("/render", response_model=RenderResponse)
async def render_payload(payload: TextPayload, context: RenderContext = Depends(get_render_context)):
    return RenderResponse(html=render(payload, context))


@router.post("/decode", response_model=DecodeResponse)
async def decode_message(body: DecodeRequest, context: RenderContext = Depends(get_render_context)):
    variant = decode_variant(body.message)
    message, html = render_message(body.message, context)
    return DecodeResponse(kind=variant.kind, message=message, html=html)


# ============================================================================
# Error mapping
# ============================================================================

async def handle_allion_error(_request: Request, exc: Any) -> Response:
    status = ERROR_STATUS.get(exc.code, 500)
    if status >= 500:
        logger.error(f"Error serving image: [{exc.code}] {exc}")
        return PlainTextResponse("Internal server error", status_code=status)
    logger.info(f"Asset request rejected: [{exc.code}] {exc}")
    return PlainTextResponse(str(exc), status_code=status)


def create_app(settings: Optional[Settings] = None,
               http_transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    app = FastAPI(title="Allion Voice", version=__version__)
    app.state.settings = settings or Settings()
    app.state.http_transport = http_transport
    app.include_router(router)
    app.add_exception_handler(AllionError, handle_allion_error)
    return app
