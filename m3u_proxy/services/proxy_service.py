"""
Servicio de proxy HTTP hacia el origen

Dos modos:
- fetch(): descarga completa en memoria (playlists)
- stream(): reenvío por chunks a medida que el cliente consume (segmentos)
"""
import asyncio
import logging
from typing import AsyncIterator, Dict, Optional
from urllib.parse import urlsplit

import httpx

import m3u_proxy.utils.constants as CONSTANTS
from m3u_proxy.utils.errors import (
    InvalidFormatError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


def filter_headers(headers: httpx.Headers, drop=CONSTANTS.HOP_BY_HOP_HEADERS) -> Dict[str, str]:
    """Copia las cabeceras de respuesta quitando las hop-by-hop y añade CORS"""
    result = {
        key.lower(): value
        for key, value in headers.items()
        if key.lower() not in drop
    }
    result.update(CONSTANTS.CORS_HEADERS)
    return result


def _map_transport_error(url: str, exc: Exception) -> Exception:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return UpstreamTimeoutError(f"Timeout fetching {url}")
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return InvalidFormatError(f"Invalid upstream URL: {url}")
    if isinstance(exc, httpx.DecodingError):
        return InvalidFormatError(f"Undecodable response body from {url}")
    if isinstance(exc, httpx.TooManyRedirects):
        return UpstreamUnavailableError(f"Too many redirects fetching {url}")
    return UpstreamUnavailableError(f"Failed to fetch {url}: {exc}")


class UpstreamResponse:
    """Respuesta completa del origen (modo buffer)"""

    def __init__(self, status_code: int, headers: Dict[str, str], content: bytes):
        self.status_code = status_code
        self.headers = headers
        self.content = content

    @property
    def media_type(self) -> Optional[str]:
        return self.headers.get('content-type')


class UpstreamStream:
    """
    Respuesta en streaming del origen

    Se itera una sola vez. aclose() libera la conexión con el origen y puede
    llamarse aunque nunca se haya empezado a iterar.
    """

    def __init__(self, url: str, response: httpx.Response):
        self.url = url
        self.status_code = response.status_code
        self.headers = filter_headers(response.headers)
        self._response = response
        self._closed = False

    @property
    def media_type(self) -> Optional[str]:
        return self.headers.get('content-type')

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_raw():
                yield chunk
        except httpx.RequestError as e:
            logger.warning("⚠️  Stream interrumpido %s: %s", self.url, e)
            raise _map_transport_error(self.url, e) from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        logger.debug("Conexión upstream liberada: %s", self.url)


class ProxyService:
    """Servicio para proxificar playlists y segmentos"""

    def __init__(self, timeout: float = CONSTANTS.DEFAULT_REQUEST_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )
        self.headers = {'User-Agent': CONSTANTS.DEFAULT_USER_AGENT}

    @staticmethod
    def _check_url(url: str) -> None:
        parts = urlsplit(url)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            raise InvalidFormatError(f"Invalid upstream URL: {url}")

    async def fetch(self, url: str) -> UpstreamResponse:
        """
        Descarga completa (playlists)

        Raises:
            InvalidFormatError: URL no válida o cuerpo que no se puede descomprimir
            UpstreamTimeoutError: se superó el timeout
            UpstreamUnavailableError: bucle de redirecciones o cualquier otro fallo de red
        """
        self._check_url(url)
        logger.info("🔁 Proxying GET request to: %s", url)

        try:
            response = await asyncio.wait_for(
                self.client.get(url, headers=self.headers),
                timeout=self.timeout,
            )
        except (httpx.RequestError, asyncio.TimeoutError) as e:
            logger.error("❌ Error obteniendo %s: %s", url, e)
            raise _map_transport_error(url, e) from e

        headers = filter_headers(
            response.headers,
            drop=CONSTANTS.HOP_BY_HOP_HEADERS + CONSTANTS.DECODED_BODY_HEADERS,
        )
        return UpstreamResponse(response.status_code, headers, response.content)

    async def stream(self, url: str) -> UpstreamStream:
        """
        Abre una respuesta en streaming (segmentos)

        Devuelve en cuanto llegan las cabeceras; el cuerpo se lee del origen
        al ritmo al que se consume el iterador.
        """
        self._check_url(url)
        logger.info("🔁 Proxying stream request to: %s", url)

        request = self.client.build_request('GET', url, headers=self.headers)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.RequestError as e:
            logger.error("❌ Error abriendo stream %s: %s", url, e)
            raise _map_transport_error(url, e) from e

        return UpstreamStream(url, response)

    async def aclose(self) -> None:
        await self.client.aclose()
