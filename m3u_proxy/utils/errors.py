"""
Errores de M3U Proxy

Cada error lleva el código HTTP con el que se devuelve al cliente.
"""


class ProxyError(Exception):
    """Error base; se renderiza como {"error": "<mensaje>"}"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidFormatError(ProxyError):
    """Lista M3U/M3U8 inválida, URL no parseable o contenido que no es playlist"""

    status_code = 400


class ChannelNotFoundError(ProxyError):
    status_code = 404

    def __init__(self, channel_id: str):
        super().__init__(f"Channel not found: {channel_id}")
        self.channel_id = channel_id


class UpstreamUnavailableError(ProxyError):
    """Fallo de red al contactar con el origen (DNS, TLS, conexión rechazada)"""

    status_code = 502


class UpstreamTimeoutError(UpstreamUnavailableError):
    """El origen no respondió dentro del timeout configurado"""


class InternalError(ProxyError):
    status_code = 500
