"""Fixtures compartidas por la suite de tests."""

import httpx
import pytest

from m3u_proxy.services import ChannelService, M3UParser, ProxyService


SAMPLE_M3U = """#EXTM3U x-tvg-url="https://epg.example.com/epg.xml"

#EXTINF:-1 tvg-id="c1" tvg-name="Channel One" tvg-logo="https://img.example.com/one.png" group-title="News",Channel One
http://a.com/x/live.m3u8

#EXTINF:-1 tvg-id="m2" tvg-name="Movie Two" tvg-logo="" group-title="Movies",Movie Two
http://b.com/movies/two.mp4

#EXTINF:-1 tvg-id="n3" group-title="News",News Three
http://c.com/stream.flv
"""


class TrackingStream(httpx.AsyncByteStream):
    """Cuerpo upstream que registra si la conexión se ha liberado."""

    def __init__(self, chunks=None, endless=False):
        self.chunks = chunks or [b"chunk-1", b"chunk-2"]
        self.endless = endless
        self.closed = False
        self.yielded = 0

    async def __aiter__(self):
        while True:
            for chunk in self.chunks:
                if self.closed:
                    return
                self.yielded += 1
                yield chunk
            if not self.endless:
                return

    async def aclose(self):
        self.closed = True


def make_proxy_service(handler, timeout=5):
    """ProxyService sobre un httpx.MockTransport (sin red)."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return ProxyService(timeout=timeout, client=client)


@pytest.fixture
def sample_m3u():
    return SAMPLE_M3U


@pytest.fixture
def m3u_file(tmp_path):
    path = tmp_path / "channels.m3u"
    path.write_text(SAMPLE_M3U, encoding="utf-8")
    return path


@pytest.fixture
def channel_service(m3u_file):
    service = ChannelService(str(m3u_file))
    service.load(M3UParser.parse_content(SAMPLE_M3U))
    return service
