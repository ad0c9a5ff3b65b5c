import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response, StreamingResponse

import m3u_proxy.utils.constants as CONSTANTS
from m3u_proxy import __version__
from m3u_proxy.services import ChannelService, PlaylistRewriter, ProxyService
from m3u_proxy.services.playlist_rewriter import decode_playlist
from m3u_proxy.services.proxy_service import UpstreamStream
from m3u_proxy.utils.config import Settings, get_settings
from m3u_proxy.utils.errors import InternalError, ProxyError
from m3u_proxy.utils.models import (
    Channel,
    ChannelsResponse,
    ErrorResponse,
    GroupsResponse,
    PlayInfo,
    PlaylistKind,
    ReloadResult,
    StreamType,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class RelayResponse(StreamingResponse):
    """StreamingResponse que libera siempre la conexión con el origen"""

    def __init__(self, stream: UpstreamStream):
        super().__init__(
            stream,
            status_code=stream.status_code,
            headers=stream.headers,
            media_type=stream.media_type,
        )
        self.upstream = stream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            # El cliente puede desconectarse antes de leer un solo byte
            await self.upstream.aclose()


# ============================================
# Dependencias
# ============================================

def get_channel_service_dep(request: Request) -> ChannelService:
    return request.app.state.channel_service


def get_proxy_service_dep(request: Request) -> ProxyService:
    proxy_service = getattr(request.app.state, 'proxy_service', None)
    if proxy_service is None:
        raise InternalError("Proxy service not available")
    return proxy_service


def get_rewriter_dep(request: Request) -> PlaylistRewriter:
    return request.app.state.rewriter


def _play_url(channel: Channel, rewriter: PlaylistRewriter) -> str:
    """HLS pasa por el proxy de playlists; el resto se sirve desde el origen"""
    if channel.stream_type is StreamType.HLS:
        return rewriter.proxy_url(channel.url, PlaylistKind.PLAYLIST)
    return channel.url


# ============================================
# Health Check
# ============================================

@router.get("/")
async def root():
    return {"service": "M3U Proxy", "status": "running"}


@router.get("/health")
async def health_check(channels: ChannelService = Depends(get_channel_service_dep)):
    return {"status": "healthy", "channels": channels.count()}


# ============================================
# API: Canales
# ============================================

@router.get("/api/channels", response_model=ChannelsResponse, tags=["Channels"])
async def list_channels(
    group: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    svc: ChannelService = Depends(get_channel_service_dep)
):
    """Lista de canales, filtrable por grupo y/o búsqueda"""
    channels = svc.filter(group=group, search=search)
    return ChannelsResponse(total=len(channels), channels=channels)


@router.get("/api/channels/{channel_id}", response_model=Channel, tags=["Channels"])
async def get_channel(
    channel_id: str,
    svc: ChannelService = Depends(get_channel_service_dep)
):
    return svc.get_by_id(channel_id)


@router.get("/api/groups", response_model=GroupsResponse, tags=["Channels"])
async def get_groups(svc: ChannelService = Depends(get_channel_service_dep)):
    return GroupsResponse(groups=svc.groups())


# ============================================
# API: Reproducción
# ============================================

@router.get("/api/play/{channel_id}", response_model=PlayInfo, tags=["Play"])
async def get_play_info(
    channel_id: str,
    svc: ChannelService = Depends(get_channel_service_dep),
    rewriter: PlaylistRewriter = Depends(get_rewriter_dep)
):
    """Información de reproducción con la URL ya proxificada"""
    channel = svc.get_by_id(channel_id)
    logger.info("▶️  Play info para %s (%s)", channel.id, channel.name)

    return PlayInfo(
        id=channel.id,
        name=channel.name,
        logo=channel.logo,
        group=channel.group,
        stream_type=channel.stream_type.label,
        play_url=_play_url(channel, rewriter),
        original_url=channel.url,
    )


@router.get("/api/play/{channel_id}/stream", tags=["Play"])
async def play_stream(
    channel_id: str,
    svc: ChannelService = Depends(get_channel_service_dep),
    rewriter: PlaylistRewriter = Depends(get_rewriter_dep)
):
    """Redirige (307) a la playlist proxificada o a la URL de origen"""
    channel = svc.get_by_id(channel_id)
    return RedirectResponse(url=_play_url(channel, rewriter), status_code=307)


# ============================================
# Proxy
# ============================================

@router.get("/api/proxy/playlist", tags=["Proxy"])
async def proxy_playlist(
    url: str = Query(...),
    proxy: ProxyService = Depends(get_proxy_service_dep),
    rewriter: PlaylistRewriter = Depends(get_rewriter_dep)
):
    """
    Descarga una playlist M3U8 del origen y reescribe sus URLs

    Si el origen falla se devuelve el error (502); no hay contenido de respaldo.
    """
    upstream = await proxy.fetch(url)
    content = decode_playlist(upstream.content)
    rewritten = rewriter.rewrite(content, url)

    logger.debug("Playlist reescrita (%d bytes): %s", len(rewritten), url)

    return Response(
        content=rewritten,
        media_type=CONSTANTS.HLS_MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "Access-Control-Allow-Origin": "*",
        }
    )


@router.get("/api/proxy/segment", tags=["Proxy"])
async def proxy_segment(
    url: str = Query(...),
    proxy: ProxyService = Depends(get_proxy_service_dep)
):
    """Reenvía un segmento (o cualquier media) sin cargarlo entero en memoria"""
    stream = await proxy.stream(url)
    return RelayResponse(stream)


# ============================================
# API: Admin
# ============================================

@router.post("/api/admin/reload", response_model=ReloadResult, tags=["Admin"])
async def reload_channels(svc: ChannelService = Depends(get_channel_service_dep)):
    """
    Recarga la lista M3U desde disco.
    Si falla, el catálogo anterior sigue activo.
    """
    try:
        total = svc.reload()
    except OSError as e:
        raise InternalError(f"Failed to read M3U file: {e}")

    return ReloadResult(status="success", total=total)


# ============================================
# Errores
# ============================================

async def proxy_error_handler(request: Request, exc: ProxyError):
    if exc.status_code >= 500:
        logger.error("❌ %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.warning("⚠️  %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("❌ Error inesperado en %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=ErrorResponse(error=f"Internal error: {exc}").model_dump())


# ============================================
# Aplicación
# ============================================

def setup_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=CONSTANTS.LOG_FORMAT,
    )


def create_app(
    settings: Optional[Settings] = None,
    channel_service: Optional[ChannelService] = None,
    proxy_service: Optional[ProxyService] = None
) -> FastAPI:
    """
    Crea la aplicación

    Los servicios se inyectan desde aquí; los que no se pasan se construyen
    a partir de la configuración.
    """
    settings = settings or get_settings()
    channel_service = channel_service or ChannelService(settings.m3u_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gestión del ciclo de vida de la aplicación"""
        logger.info("🚀 Iniciando M3U Proxy...")

        if channel_service.count() == 0:
            try:
                channel_service.load_from_file(settings.m3u_path)
            except (ProxyError, OSError, ValueError) as e:
                logger.error("❌ No se pudo cargar la lista M3U %s: %s", settings.m3u_path, e)
                raise RuntimeError(f"Failed to load M3U file: {e}") from e

        app.state.proxy_service = proxy_service or ProxyService(settings.request_timeout)
        logger.info("✅ M3U Proxy iniciado con %d canales", channel_service.count())

        yield

        logger.info("🛑 Cerrando M3U Proxy...")
        await app.state.proxy_service.aclose()

    app = FastAPI(
        title="M3U Proxy",
        description="Catálogo de canales M3U con proxy de playlists y segmentos HLS",
        version=__version__,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.channel_service = channel_service
    app.state.rewriter = PlaylistRewriter(settings.public_domain)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)

    return app


settings = get_settings()
setup_logging(settings)

app = create_app(settings)


# ============================================
# Main
# ============================================

def main():
    logger.info("⚙️  %r", settings)

    for error in settings.validate():
        logger.warning("⚠️  %s", error)

    channel_service = ChannelService(settings.m3u_path)
    try:
        channel_service.load_from_file()
    except (ProxyError, OSError, ValueError) as e:
        logger.error("❌ No se pudo cargar la lista M3U %s: %s", settings.m3u_path, e)
        sys.exit(1)

    logger.info("🌐 Servidor escuchando en %s", settings.proxy_base_url)

    uvicorn.run(
        create_app(settings, channel_service=channel_service),
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
