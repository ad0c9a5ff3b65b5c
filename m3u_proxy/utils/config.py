"""
Configuración centralizada para M3U Proxy
Carga configuración desde variables de entorno (y ficheros .env locales)
"""

import os
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

import m3u_proxy.utils.constants as CONSTANTS


def _load_environment() -> None:
  """Carga variables de entorno desde múltiples ubicaciones"""
  env_paths = [
    Path(__file__).parent.parent / '.env',
    Path.cwd() / '.env',
  ]

  for env_path in env_paths:
    if env_path.exists():
      load_dotenv(env_path)
      return


# Cargar .env al importar el módulo
_load_environment()


def _env_bool(name: str, default: bool) -> bool:
  value = os.getenv(name)
  if value is None:
    return default
  return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
  value = os.getenv(name)
  if value is None or not value.strip():
    return default
  try:
    return int(value)
  except ValueError:
    raise ValueError(f"{name} debe ser un entero, recibido: {value!r}")


class Settings:
  """
  Configuración centralizada de la aplicación

  - Variables de entorno locales (.env)
  - Valores por defecto en utils.constants
  - Overrides explícitos (tests, create_app)

  cache_enabled, cache_ttl_* y max_concurrent se cargan y se muestran pero
  ningún componente los consume: no hay cache ni limitador de concurrencia.
  """

  # ===== Servidor =====
  host: str = CONSTANTS.DEFAULT_HOST
  port: int = CONSTANTS.DEFAULT_PORT

  # ===== Lista M3U =====
  m3u_path: str = CONSTANTS.DEFAULT_M3U_PATH

  # ===== Upstream =====
  request_timeout: int = CONSTANTS.DEFAULT_REQUEST_TIMEOUT

  # ===== Cache / concurrencia (inertes) =====
  cache_enabled: bool = CONSTANTS.DEFAULT_CACHE_ENABLED
  cache_ttl_playlist: int = CONSTANTS.DEFAULT_CACHE_TTL_PLAYLIST
  cache_ttl_segment: int = CONSTANTS.DEFAULT_CACHE_TTL_SEGMENT
  max_concurrent: int = CONSTANTS.DEFAULT_MAX_CONCURRENT

  # ===== Public Domain =====
  public_domain: str = CONSTANTS.PUBLIC_DOMAIN_DEFAULT

  # ===== Logging =====
  log_level: str = CONSTANTS.DEFAULT_LOG_LEVEL

  def __init__(self, **overrides):
    self._load_config()

    for key, value in overrides.items():
      if not hasattr(self, key):
        raise AttributeError(f"Opción de configuración desconocida: {key}")
      setattr(self, key, value)

    self._ensure_public_domain()

  def _load_config(self) -> None:
    """Carga configuración desde el entorno"""
    self.host = os.getenv(CONSTANTS.HOST_ENV, CONSTANTS.DEFAULT_HOST)
    self.port = _env_int(CONSTANTS.PORT_ENV, CONSTANTS.DEFAULT_PORT)
    self.m3u_path = os.getenv(CONSTANTS.M3U_PATH_ENV, CONSTANTS.DEFAULT_M3U_PATH)
    self.request_timeout = _env_int(
      CONSTANTS.REQUEST_TIMEOUT_ENV, CONSTANTS.DEFAULT_REQUEST_TIMEOUT
    )

    self.cache_enabled = _env_bool(
      CONSTANTS.CACHE_ENABLED_ENV, CONSTANTS.DEFAULT_CACHE_ENABLED
    )
    self.cache_ttl_playlist = _env_int(
      CONSTANTS.CACHE_TTL_PLAYLIST_ENV, CONSTANTS.DEFAULT_CACHE_TTL_PLAYLIST
    )
    self.cache_ttl_segment = _env_int(
      CONSTANTS.CACHE_TTL_SEGMENT_ENV, CONSTANTS.DEFAULT_CACHE_TTL_SEGMENT
    )
    self.max_concurrent = _env_int(
      CONSTANTS.MAX_CONCURRENT_ENV, CONSTANTS.DEFAULT_MAX_CONCURRENT
    )

    self.public_domain = os.getenv(
      CONSTANTS.PUBLIC_DOMAIN_ENV, CONSTANTS.PUBLIC_DOMAIN_DEFAULT
    )
    self.log_level = os.getenv(CONSTANTS.LOG_LEVEL_ENV, CONSTANTS.DEFAULT_LOG_LEVEL)

  def _ensure_public_domain(self) -> None:
    """Quita la barra final del dominio público"""
    if self.public_domain:
      self.public_domain = self.public_domain.rstrip('/')

  @property
  def proxy_base_url(self) -> str:
    return f"http://{self.host}:{self.port}"

  def is_m3u_available(self) -> bool:
    return bool(self.m3u_path) and os.path.isfile(self.m3u_path)

  def validate(self) -> list:
    """Devuelve la lista de errores de configuración (vacía si es válida)"""
    errors = []

    if not self.m3u_path:
      errors.append(f"{CONSTANTS.M3U_PATH_ENV} no configurado")
    elif not self.is_m3u_available():
      errors.append(f"Fichero M3U no encontrado: {self.m3u_path}")

    if self.request_timeout <= 0:
      errors.append(f"{CONSTANTS.REQUEST_TIMEOUT_ENV} debe ser mayor que 0")

    if not 0 < self.port < 65536:
      errors.append(f"{CONSTANTS.PORT_ENV} fuera de rango: {self.port}")

    return errors

  def __repr__(self) -> str:
    return (
      f"Settings(\n"
      f"  Servidor: {self.proxy_base_url}\n"
      f"  M3U: {self.m3u_path}\n"
      f"  Timeout: {self.request_timeout}s\n"
      f"  Public Domain: {self.public_domain or '(relativo)'}\n"
      f"  Cache: {'✓' if self.cache_enabled else '✗'} "
      f"(playlist {self.cache_ttl_playlist}s, segment {self.cache_ttl_segment}s, sin uso)\n"
      f"  Max Concurrent: {self.max_concurrent} (sin uso)\n"
      f")"
    )


@lru_cache()
def get_settings() -> Settings:
  """Obtiene configuración cacheada (singleton)"""
  return Settings()
