"""Tests for browser/url.py"""

import pytest

from browser.errors import FormatError
from browser.url import parse


class TestNetworkUrls:
    def test_http_host_port_path(self) -> None:
        request = parse("http://example.com/a/b")

        assert request.scheme == "http"
        assert request.host == "example.com"
        assert request.port == 80
        assert request.path == "/a/b"
        assert request.method == "GET"

    def test_explicit_port_defaults_path(self) -> None:
        request = parse("https://example.com:8443")

        assert request.port == 8443
        assert request.path == "/"

    def test_https_default_port(self) -> None:
        assert parse("https://example.com/x").port == 443

    def test_www_prefix_is_stripped(self) -> None:
        request = parse("http://www.example.com/")

        assert request.host == "example.com"
        assert request.headers["Host"] == "example.com"

    def test_port_with_path(self) -> None:
        request = parse("http://localhost:8080/index.html")

        assert request.host == "localhost"
        assert request.port == 8080
        assert request.path == "/index.html"

    def test_colon_in_path_is_not_a_port(self) -> None:
        request = parse("http://example.com/a:b")

        assert request.port == 80
        assert request.path == "/a:b"

    def test_default_headers(self) -> None:
        request = parse("http://example.com/", user_agent="test-agent")

        assert request.headers == {
            "Host": "example.com",
            "Connection": "keep-alive",
            "User-Agent": "test-agent",
            "Accept-Encoding": "gzip",
        }

    def test_fresh_request_state(self) -> None:
        request = parse("http://example.com/")

        assert request.connection is None
        assert request.redirect_count == 0
        assert len(request.cache) == 0


class TestMalformedUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "http://example.com:abc/",
            "http://example.com:/",
            "http://example.com:70000/",
            "ftp://example.com/",
            "example.com",
            "mailto:someone@example.com",
            "http:///path",
            "",
        ],
    )
    def test_rejected(self, url: str) -> None:
        with pytest.raises(FormatError):
            parse(url)

    def test_format_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse("gopher://example.com/")


class TestLocalUrls:
    def test_file_path_held_in_host(self) -> None:
        request = parse("file:///tmp/page.html")

        assert request.scheme == "file"
        assert request.host == "/tmp/page.html"

    def test_relative_file_path(self) -> None:
        assert parse("file://test.html").host == "test.html"

    def test_data_url(self) -> None:
        request = parse("data:text/plain,hello")

        assert request.scheme == "data"
        assert request.host == "text/plain"
        assert request.path == "hello"

    def test_data_payload_keeps_later_commas(self) -> None:
        assert parse("data:text/html,a,b,c").path == "a,b,c"

    def test_data_without_comma(self) -> None:
        with pytest.raises(FormatError):
            parse("data:text/plain")


class TestViewSource:
    def test_wrapper_scheme_parses_like_https(self) -> None:
        request = parse("view-source://example.com/page")

        assert request.scheme == "view-source"
        assert request.source_scheme == "https"
        assert request.host == "example.com"
        assert request.port == 443
        assert request.path == "/page"

    def test_wrapping_http_url(self) -> None:
        request = parse("view-source:http://example.com/")

        assert request.scheme == "view-source"
        assert request.source_scheme == "http"
        assert request.port == 80

    def test_wrapping_non_network_scheme_rejected(self) -> None:
        with pytest.raises(FormatError):
            parse("view-source:file:///etc/hosts")
