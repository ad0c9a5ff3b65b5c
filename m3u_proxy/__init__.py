"""
M3U Proxy: catálogo de canales M3U con proxy HLS
"""

__version__ = "1.0.0"
