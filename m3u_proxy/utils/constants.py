"""
Constantes globales de configuración para M3U Proxy
"""

# ===== Servidor =====
HOST_ENV = "PROXY_HOST"
PORT_ENV = "PROXY_PORT"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8006

# ===== Lista M3U =====
M3U_PATH_ENV = "M3U_PATH"
DEFAULT_M3U_PATH = "./Gather.m3u"

# ===== Peticiones upstream =====
REQUEST_TIMEOUT_ENV = "REQUEST_TIMEOUT"
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# ===== Cache y concurrencia (declarados, no se usan) =====
CACHE_ENABLED_ENV = "CACHE_ENABLED"
CACHE_TTL_PLAYLIST_ENV = "CACHE_TTL_PLAYLIST"
CACHE_TTL_SEGMENT_ENV = "CACHE_TTL_SEGMENT"
MAX_CONCURRENT_ENV = "MAX_CONCURRENT"
DEFAULT_CACHE_ENABLED = True
DEFAULT_CACHE_TTL_PLAYLIST = 300
DEFAULT_CACHE_TTL_SEGMENT = 600
DEFAULT_MAX_CONCURRENT = 100

# ===== Public Domain =====
PUBLIC_DOMAIN_ENV = "PUBLIC_DOMAIN"
PUBLIC_DOMAIN_DEFAULT = ""

# ===== Logging =====
LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# ===== M3U Parsing =====
M3U_HEADER = "#EXTM3U"
M3U_EXTINF_PREFIX = "#EXTINF"
M3U_KEY_PREFIX = "#EXT-X-KEY"
M3U_URI_ATTR = 'URI="'
CHANNEL_ID_PREFIX = "channel_"
DEFAULT_CHANNEL_NAME = "Unnamed channel"
DEFAULT_GROUP = "Uncategorized"

# ===== Rutas del proxy =====
PLAYLIST_PROXY_PATH = "/api/proxy/playlist"
SEGMENT_PROXY_PATH = "/api/proxy/segment"

# ===== HTTP Headers =====
HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"
HOP_BY_HOP_HEADERS = ("transfer-encoding", "connection", "keep-alive")
# httpx entrega el cuerpo ya descomprimido en modo buffer
DECODED_BODY_HEADERS = ("content-encoding", "content-length")
CORS_HEADERS = {
  "access-control-allow-origin": "*",
  "access-control-allow-methods": "GET, OPTIONS, HEAD",
  "access-control-allow-headers": "*",
}
