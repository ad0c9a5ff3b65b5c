"""
Modelos Pydantic para M3U Proxy
"""
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


# ============================================
# Enums
# ============================================

class StreamType(str, Enum):
    HLS = "hls"
    MP4 = "mp4"
    FLV = "flv"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Nombre mostrado en /api/play (HLS, MP4, FLV, Other)"""
        return "Other" if self is StreamType.OTHER else self.name

    @classmethod
    def detect(cls, url: str) -> "StreamType":
        """
        Detecta el tipo de stream a partir de la URL de origen.
        Se comprueba en orden: m3u8, .mp4, flv. Gana la primera coincidencia.
        """
        url_lower = url.lower()

        if 'm3u8' in url_lower:
            return cls.HLS
        if url_lower.endswith('.mp4'):
            return cls.MP4
        if url_lower.endswith('.flv') or 'flv' in url_lower:
            return cls.FLV
        return cls.OTHER


class PlaylistKind(str, Enum):
    """Destino de una URL reescrita dentro del proxy"""
    PLAYLIST = "playlist"
    SEGMENT = "segment"


# ============================================
# Channel Models
# ============================================

class Channel(BaseModel):
    """Canal leído de la lista M3U"""
    model_config = ConfigDict(frozen=True)

    id: str
    tvg_id: str = ""
    name: str
    logo: Optional[str] = None
    group: str
    url: str
    stream_type: StreamType


class ChannelsResponse(BaseModel):
    total: int
    channels: List[Channel]


class GroupsResponse(BaseModel):
    groups: List[str]


# ============================================
# Play Models
# ============================================

class PlayInfo(BaseModel):
    """Información de reproducción de un canal"""
    id: str
    name: str
    logo: Optional[str] = None
    group: str
    stream_type: str = Field(..., description="HLS, MP4, FLV u Other")
    play_url: str
    original_url: str


# ============================================
# Admin / Errores
# ============================================

class ReloadResult(BaseModel):
    status: str
    total: int


class ErrorResponse(BaseModel):
    error: str
