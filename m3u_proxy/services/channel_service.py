"""
Directorio de canales en memoria
"""
import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from m3u_proxy.services.m3u_parser import M3UParser
from m3u_proxy.utils.errors import ChannelNotFoundError
from m3u_proxy.utils.models import Channel

logger = logging.getLogger(__name__)


class _Snapshot:
    """Vista inmutable del catálogo; se sustituye entera en cada carga"""

    __slots__ = ('channels', 'by_id')

    def __init__(self, channels: Sequence[Channel] = ()):
        self.channels: Tuple[Channel, ...] = tuple(channels)
        self.by_id: Dict[str, Channel] = {c.id: c for c in self.channels}


class ChannelService:
    """
    Servicio de consulta de canales

    Los lectores toman la referencia al snapshot actual sin bloquear; las
    cargas construyen un snapshot nuevo y lo publican bajo un lock, así que
    una lectura ve siempre el catálogo antiguo completo o el nuevo completo.
    """

    def __init__(self, m3u_path: Optional[str] = None):
        self.m3u_path = m3u_path
        self._snapshot = _Snapshot()
        self._write_lock = threading.Lock()

    # ============================================
    # Carga
    # ============================================

    def load(self, channels: Sequence[Channel]) -> int:
        """Sustituye el catálogo completo"""
        snapshot = _Snapshot(channels)
        with self._write_lock:
            self._snapshot = snapshot
        return len(snapshot.channels)

    def load_from_file(self, path: Optional[str] = None) -> int:
        """
        Parsea un fichero M3U y lo carga

        Si el parseo falla el catálogo anterior se mantiene intacto.

        Returns:
            Número de canales cargados
        """
        path = path or self.m3u_path
        if not path:
            raise ValueError("No M3U path configured")

        channels = M3UParser.parse_file(path)
        count = self.load(channels)
        self.m3u_path = path

        logger.info("✅ Cargados %d canales desde %s", count, path)
        return count

    def reload(self) -> int:
        """Recarga el catálogo desde el fichero configurado"""
        return self.load_from_file(self.m3u_path)

    # ============================================
    # Consultas
    # ============================================

    def all(self) -> List[Channel]:
        return list(self._snapshot.channels)

    def count(self) -> int:
        return len(self._snapshot.channels)

    def get_by_id(self, channel_id: str) -> Channel:
        channel = self._snapshot.by_id.get(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        return channel

    def by_group(self, group: str) -> List[Channel]:
        return [c for c in self._snapshot.channels if c.group == group]

    def search(self, query: str) -> List[Channel]:
        """Búsqueda sin distinguir mayúsculas en nombre o tvg-id"""
        return self._search(self._snapshot.channels, query)

    def groups(self) -> List[str]:
        """Grupos distintos, ordenados"""
        return sorted({c.group for c in self._snapshot.channels})

    def filter(self, group: Optional[str] = None, search: Optional[str] = None) -> List[Channel]:
        """
        Filtra por grupo y/o búsqueda sobre un mismo snapshot

        Args:
            group: nombre exacto del grupo
            search: texto a buscar en nombre o tvg-id
        """
        channels: Sequence[Channel] = self._snapshot.channels

        if group is not None:
            channels = [c for c in channels if c.group == group]

        if search:
            channels = self._search(channels, search)

        return list(channels)

    @staticmethod
    def _search(channels: Sequence[Channel], query: str) -> List[Channel]:
        query_lower = query.lower()
        return [
            c for c in channels
            if query_lower in c.name.lower() or query_lower in c.tvg_id.lower()
        ]
