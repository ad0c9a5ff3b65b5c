"""Tests for HLS playlist rewriting."""

from urllib.parse import parse_qs, urlsplit

import pytest

from m3u_proxy.services import M3UParser, PlaylistRewriter
from m3u_proxy.services.playlist_rewriter import classify, decode_playlist
from m3u_proxy.utils.errors import InvalidFormatError
from m3u_proxy.utils.models import PlaylistKind

ORIGIN = "http://example.com/path/playlist.m3u8"


def target_of(proxied):
    """Devuelve (endpoint, url original) de una URL del proxy."""
    parts = urlsplit(proxied)
    return parts.path, parse_qs(parts.query)["url"][0]


@pytest.fixture
def rewriter():
    return PlaylistRewriter()


class TestRewrite:

    def test_comment_only_playlist_is_unchanged(self, rewriter):
        content = "#EXTM3U\n#EXT-X-VERSION:3\n\n#EXT-X-ENDLIST\n"
        assert rewriter.rewrite(content, ORIGIN) == content

    def test_line_endings_are_normalized(self, rewriter):
        content = "#EXTM3U\r\n#EXT-X-VERSION:3\r\n#EXT-X-ENDLIST"
        assert rewriter.rewrite(content, ORIGIN) == "#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-ENDLIST\n"

    def test_segments_are_rewritten(self, rewriter):
        content = (
            "#EXTM3U\n"
            "#EXT-X-TARGETDURATION:10\n"
            "#EXTINF:10.0,\n"
            "segment1.ts\n"
            "#EXTINF:10.0,\n"
            "segment2.ts\n"
            "#EXT-X-ENDLIST"
        )
        lines = rewriter.rewrite(content, ORIGIN).splitlines()

        assert lines[3] == "/api/proxy/segment?url=http%3A%2F%2Fexample.com%2Fpath%2Fsegment1.ts"
        assert lines[5] == "/api/proxy/segment?url=http%3A%2F%2Fexample.com%2Fpath%2Fsegment2.ts"
        assert lines[6] == "#EXT-X-ENDLIST"

    def test_variant_playlists_use_playlist_endpoint(self, rewriter):
        content = (
            "#EXTM3U\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=800000\n"
            "low/index.m3u8\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=2000000\n"
            "https://cdn.example.com/high/index.m3u8?token=abc\n"
        )
        lines = rewriter.rewrite(content, ORIGIN).splitlines()

        assert target_of(lines[2]) == ("/api/proxy/playlist", "http://example.com/path/low/index.m3u8")
        assert target_of(lines[4]) == ("/api/proxy/playlist", "https://cdn.example.com/high/index.m3u8?token=abc")

    def test_url_lines_are_trimmed(self, rewriter):
        lines = rewriter.rewrite("#EXTM3U\n   seg.ts   \n", ORIGIN).splitlines()
        assert target_of(lines[1]) == ("/api/proxy/segment", "http://example.com/path/seg.ts")

    def test_key_uri_is_rewritten_in_place(self, rewriter):
        content = '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="keys/key.bin",IV=0x1234\nseg.ts\n'
        key_line = rewriter.rewrite(content, ORIGIN).splitlines()[1]

        assert key_line.startswith('#EXT-X-KEY:METHOD=AES-128,URI="/api/proxy/segment?url=')
        assert key_line.endswith('",IV=0x1234')

        proxied = key_line.split('URI="')[1].split('"')[0]
        assert target_of(proxied) == ("/api/proxy/segment", "http://example.com/path/keys/key.bin")

    def test_key_without_uri_is_unchanged(self, rewriter):
        content = "#EXT-X-KEY:METHOD=NONE\n"
        assert rewriter.rewrite(content, ORIGIN) == content

    def test_key_with_unterminated_uri_is_unchanged(self, rewriter):
        content = '#EXT-X-KEY:METHOD=AES-128,URI="keys/key.bin\n'
        assert rewriter.rewrite(content, ORIGIN) == content

    def test_invalid_origin_url(self, rewriter):
        with pytest.raises(InvalidFormatError):
            rewriter.rewrite("#EXTM3U\nseg.ts\n", "not-a-url")

        with pytest.raises(InvalidFormatError):
            rewriter.rewrite("#EXTM3U\nseg.ts\n", "/relative/playlist.m3u8")

    def test_public_url_prefix(self):
        rewriter = PlaylistRewriter("https://proxy.example.org/")
        line = rewriter.rewrite("seg.ts\n", ORIGIN).splitlines()[0]

        assert line.startswith("https://proxy.example.org/api/proxy/segment?url=")

    def test_catalog_scenario(self, rewriter):
        catalog = '#EXTINF:-1 tvg-id="c1" group-title="News",Channel One\nhttp://a.com/x/live.m3u8'
        channel = M3UParser.parse_content(catalog)[0]
        fetched = "#EXTM3U\n#EXTINF:10.0,\nseg1.ts\n#EXT-X-ENDLIST"

        lines = rewriter.rewrite(fetched, channel.url).splitlines()

        assert lines[2] == "/api/proxy/segment?url=http%3A%2F%2Fa.com%2Fx%2Fseg1.ts"


class TestResolveUrl:

    @pytest.mark.parametrize("reference,expected", [
        ("segment.ts", "http://example.com/path/segment.ts"),
        ("sub/segment.ts", "http://example.com/path/sub/segment.ts"),
        ("../up.ts", "http://example.com/up.ts"),
        ("/other/segment.ts", "http://example.com/other/segment.ts"),
        ("//cdn.example.net/a.ts", "http://cdn.example.net/a.ts"),
        ("segment.ts?x=1", "http://example.com/path/segment.ts?x=1"),
        ("http://other.com/segment.ts", "http://other.com/segment.ts"),
        ("https://other.com/segment.ts", "https://other.com/segment.ts"),
    ])
    def test_rfc3986_resolution(self, reference, expected):
        assert PlaylistRewriter.resolve_url(reference, ORIGIN) == expected

    def test_origin_with_port_and_query(self):
        origin = "https://example.com:8443/live/index.m3u8?auth=1"
        assert PlaylistRewriter.resolve_url("chunk.ts", origin) == "https://example.com:8443/live/chunk.ts"


class TestClassify:

    @pytest.mark.parametrize("url,kind", [
        ("http://a.com/index.m3u8", PlaylistKind.PLAYLIST),
        ("http://a.com/index.m3u8?token=1", PlaylistKind.PLAYLIST),
        ("http://a.com/seg.ts", PlaylistKind.SEGMENT),
        ("http://a.com/seg.aac", PlaylistKind.SEGMENT),
        ("http://a.com/index.m3u8/seg.ts", PlaylistKind.SEGMENT),
        ("http://a.com/key.bin", PlaylistKind.SEGMENT),
    ])
    def test_classify(self, url, kind):
        assert classify(url) is kind

    def test_forced_kind(self, rewriter):
        proxied = rewriter.proxy_url("http://a.com/get.php?type=m3u8", PlaylistKind.PLAYLIST)
        assert target_of(proxied) == ("/api/proxy/playlist", "http://a.com/get.php?type=m3u8")

    def test_encoding_is_reversible(self, rewriter):
        url = "http://a.com/p ath/seg.ts?a=1&b=%20x#frag"
        assert target_of(rewriter.proxy_url(url))[1] == url


class TestDecodePlaylist:

    def test_valid_playlist(self):
        assert decode_playlist(b"  \n#EXTM3U\n#EXT-X-ENDLIST\n").strip().startswith("#EXTM3U")

    def test_bom_is_accepted(self):
        assert decode_playlist("\ufeff#EXTM3U\n".encode("utf-8"))

    def test_non_playlist_body(self):
        with pytest.raises(InvalidFormatError, match="not a valid M3U8"):
            decode_playlist(b"<html>404</html>")

    def test_invalid_utf8(self):
        with pytest.raises(InvalidFormatError, match="UTF-8"):
            decode_playlist(b"#EXTM3U\n\xff\xfe\n")
