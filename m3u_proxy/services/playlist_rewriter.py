"""
Reescritura de playlists M3U8

Todas las URLs de una playlist (sub-playlists, segmentos y claves de
#EXT-X-KEY) se convierten en URLs del propio proxy, de modo que el
reproductor nunca contacta directamente con el origen.
"""
import logging
from typing import Iterator, Optional
from urllib.parse import quote, urljoin, urlsplit

import m3u_proxy.utils.constants as CONSTANTS
from m3u_proxy.utils.errors import InvalidFormatError
from m3u_proxy.utils.models import PlaylistKind

logger = logging.getLogger(__name__)

_PROXY_PATHS = {
    PlaylistKind.PLAYLIST: CONSTANTS.PLAYLIST_PROXY_PATH,
    PlaylistKind.SEGMENT: CONSTANTS.SEGMENT_PROXY_PATH,
}


def is_absolute_http_url(url: str) -> bool:
    return url.startswith('http://') or url.startswith('https://')


def classify(url: str) -> PlaylistKind:
    """Una URL que termina en .m3u8 (con o sin query) es una sub-playlist"""
    if url.endswith('.m3u8') or '.m3u8?' in url:
        return PlaylistKind.PLAYLIST
    return PlaylistKind.SEGMENT


def decode_playlist(body: bytes) -> str:
    """
    Valida que un cuerpo descargado sea una playlist M3U8

    Raises:
        InvalidFormatError: si no es UTF-8 o no empieza por #EXTM3U
    """
    try:
        content = body.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidFormatError(f"Invalid UTF-8 in playlist: {e}")

    if not content.lstrip('\ufeff').lstrip().startswith(CONSTANTS.M3U_HEADER):
        raise InvalidFormatError("Response is not a valid M3U8 playlist")

    return content


def _iter_lines(content: str) -> Iterator[str]:
    lines = content.split('\n')
    if lines and lines[-1] == '':
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith('\r') else line


class PlaylistRewriter:
    """Reescritor de playlists M3U8"""

    def __init__(self, public_url: str = ''):
        # Vacío: se emiten rutas relativas (/api/proxy/...)
        self.public_url = public_url.rstrip('/')

    def rewrite(self, content: str, origin_url: str) -> str:
        """
        Reescribe el contenido de una playlist

        Args:
            content: texto de la playlist descargada
            origin_url: URL absoluta desde la que se descargó

        Returns:
            Playlist con cada línea terminada en '\\n'
        """
        parts = urlsplit(origin_url)
        if not parts.scheme or not parts.netloc:
            raise InvalidFormatError(f"Invalid base URL: {origin_url}")

        result = []

        for line in _iter_lines(content):
            trimmed = line.strip()

            if not trimmed or (trimmed.startswith('#') and not trimmed.startswith(CONSTANTS.M3U_KEY_PREFIX)):
                result.append(line)
            elif trimmed.startswith(CONSTANTS.M3U_KEY_PREFIX):
                result.append(self._rewrite_key_line(trimmed, origin_url))
            else:
                proxied = self.proxy_url(self.resolve_url(trimmed, origin_url))
                logger.debug("Rewriting URL: %s -> %s", trimmed, proxied)
                result.append(proxied)

        return ''.join(f"{line}\n" for line in result)

    def _rewrite_key_line(self, line: str, origin_url: str) -> str:
        """Reescribe el atributo URI="..." de una línea #EXT-X-KEY"""
        start = line.find(CONSTANTS.M3U_URI_ATTR)
        if start == -1:
            return line

        start += len(CONSTANTS.M3U_URI_ATTR)
        end = line.find('"', start)
        if end == -1:
            return line

        uri = line[start:end]
        proxied = self.proxy_url(self.resolve_url(uri, origin_url))
        return f"{line[:start]}{proxied}{line[end:]}"

    @staticmethod
    def resolve_url(url: str, origin_url: str) -> str:
        """
        Resuelve una referencia relativa contra la URL de origen (RFC 3986)

        - segment.ts        -> mismo directorio que el origen
        - /other/segment.ts -> misma raíz (esquema + host)
        - //cdn.host/a.ts   -> mismo esquema
        - http(s)://...     -> sin cambios
        """
        if is_absolute_http_url(url):
            return url

        try:
            resolved = urljoin(origin_url, url)
        except ValueError as e:
            raise InvalidFormatError(f"Failed to resolve URL {url!r}: {e}")

        parts = urlsplit(resolved)
        if not parts.scheme or not parts.netloc:
            raise InvalidFormatError(f"Failed to resolve URL {url!r} against {origin_url}")

        return resolved

    def proxy_url(self, url: str, kind: Optional[PlaylistKind] = None) -> str:
        """
        Construye la URL del proxy para una URL absoluta

        Args:
            url: URL absoluta del origen
            kind: destino forzado; si no se indica se clasifica por la URL
        """
        kind = kind or classify(url)
        return f"{self.public_url}{_PROXY_PATHS[kind]}?url={quote(url, safe='')}"
