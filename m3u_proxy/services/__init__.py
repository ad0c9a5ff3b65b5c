"""
Servicios M3U Proxy
"""
from .m3u_parser import M3UParser
from .channel_service import ChannelService
from .playlist_rewriter import PlaylistRewriter
from .proxy_service import ProxyService

__all__ = [
    'M3UParser',
    'ChannelService',
    'PlaylistRewriter',
    'ProxyService'
]
