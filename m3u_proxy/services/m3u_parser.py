"""
Parser de listas M3U extendidas (catálogo de canales)
"""
import logging
import re
from typing import Dict, List, Optional

import m3u_proxy.utils.constants as CONSTANTS
from m3u_proxy.utils.errors import InvalidFormatError
from m3u_proxy.utils.models import Channel, StreamType

logger = logging.getLogger(__name__)

_ATTR_PATTERNS = {
    'tvg_id': re.compile(r'tvg-id="([^"]*)"'),
    'tvg_name': re.compile(r'tvg-name="([^"]*)"'),
    'logo': re.compile(r'tvg-logo="([^"]*)"'),
    'group': re.compile(r'group-title="([^"]*)"'),
}


def _split_display_name(line: str) -> Optional[str]:
    """Devuelve el texto tras la primera coma que no está dentro de comillas"""
    in_quotes = False
    for idx, char in enumerate(line):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            return line[idx + 1:]
    return None


def parse_extinf(line: str) -> Dict[str, Optional[str]]:
    """
    Extrae los atributos de una línea #EXTINF

    Formato:
      #EXTINF:-1 tvg-id="..." tvg-name="..." tvg-logo="..." group-title="...",Nombre

    Todos los atributos son opcionales y pueden venir en cualquier orden.
    """
    attrs: Dict[str, Optional[str]] = {}
    for key, pattern in _ATTR_PATTERNS.items():
        match = pattern.search(line)
        attrs[key] = match.group(1) if match else None

    name = _split_display_name(line)
    attrs['name'] = name.strip() if name is not None else None
    return attrs


class M3UParser:
    """Convierte el texto de una lista M3U en canales"""

    @staticmethod
    def parse_content(content: str) -> List[Channel]:
        """
        Parsea el contenido de una lista M3U

        Cada #EXTINF se empareja con la línea inmediatamente siguiente. Si esa
        línea está vacía o es un comentario, el #EXTINF no genera canal.

        Raises:
            InvalidFormatError: si no se encuentra ningún canal
        """
        channels: List[Channel] = []
        pending: Optional[Dict[str, Optional[str]]] = None

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if line.startswith(CONSTANTS.M3U_EXTINF_PREFIX):
                if pending is not None:
                    logger.debug("EXTINF sin URL descartado: %s", pending.get('name'))
                pending = parse_extinf(line)
                continue

            if pending is None:
                continue

            if not line or line.startswith('#'):
                logger.debug("EXTINF sin URL descartado: %s", pending.get('name'))
                pending = None
                continue

            channels.append(M3UParser._build_channel(pending, line, len(channels)))
            pending = None

        if not channels:
            raise InvalidFormatError("No channels found")

        return channels

    @staticmethod
    def parse_file(path: str) -> List[Channel]:
        """Lee y parsea un fichero M3U (UTF-8, con o sin BOM)"""
        with open(path, 'rb') as f:
            raw = f.read()

        try:
            content = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise InvalidFormatError(f"M3U file is not valid UTF-8: {e}")

        channels = M3UParser.parse_content(content)
        logger.info("📺 %d canales leídos de %s", len(channels), path)
        return channels

    @staticmethod
    def _build_channel(attrs: Dict[str, Optional[str]], url: str, index: int) -> Channel:
        group = attrs.get('group')

        return Channel(
            id=f"{CONSTANTS.CHANNEL_ID_PREFIX}{index}",
            tvg_id=attrs.get('tvg_id') or '',
            name=attrs.get('name') or CONSTANTS.DEFAULT_CHANNEL_NAME,
            logo=attrs.get('logo') or None,
            group=group if group is not None else CONSTANTS.DEFAULT_GROUP,
            url=url,
            stream_type=StreamType.detect(url),
        )
