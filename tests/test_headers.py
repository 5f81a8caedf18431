"""Request header setters, response header getters and cookie handling."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from HttpKit.Exchange import get, post
from HttpKit.Exchange.errors import ConfigurationError
from HttpKit.Exchange.headers import format_cookies, get_param, get_params, parse_set_cookie
from HttpKit.Exchange.settings import ExchangeSettings
from HttpKit.Exchange.testing import RecordingTransport

URL = "http://example.com/resource"


def _responding(headers) -> RecordingTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers=headers, content=b"")

    return RecordingTransport(handler)


class TestRequestHeaders:
    def test_fluent_setters(self, recorder):
        request = get(URL, transport=recorder)
        (
            request.user_agent("kit/1.0")
            .referer("http://example.com/")
            .accept_json()
            .accept_gzip_encoding()
            .accept_charset("utf-8")
            .if_none_match('"abc"')
            .header("X-Trace", 7)
        )

        request.code()

        headers = recorder.last.headers
        assert headers["user-agent"] == "kit/1.0"
        assert headers["referer"] == "http://example.com/"
        assert headers["accept"] == "application/json"
        assert headers["accept-encoding"] == "gzip"
        assert headers["accept-charset"] == "utf-8"
        assert headers["if-none-match"] == '"abc"'
        assert headers["x-trace"] == "7"

    def test_basic_and_bearer(self, recorder):
        get(URL, transport=recorder).basic("user", "pass").proxy_basic("p", "q").code()

        assert recorder.last.headers["authorization"] == "Basic dXNlcjpwYXNz"
        assert recorder.last.headers["proxy-authorization"] == "Basic cDpx"

        other = RecordingTransport()
        get(URL, transport=other).bearer("t0k3n").code()
        assert other.last.headers["authorization"] == "Bearer t0k3n"

    def test_none_removes_header(self, recorder):
        get(URL, transport=recorder).header("X-Gone", "1").header("X-Gone", None).code()

        assert "x-gone" not in recorder.last.headers

    def test_headers_mapping(self, recorder):
        get(URL, transport=recorder).headers({"X-A": "1", "X-B": "2"}).code()

        assert recorder.last.headers["x-a"] == "1"
        assert recorder.last.headers["x-b"] == "2"

    def test_if_modified_since(self, recorder):
        moment = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)
        get(URL, transport=recorder).if_modified_since(moment).code()

        assert recorder.last.headers["if-modified-since"] == "Wed, 21 Oct 2015 07:28:00 GMT"

    def test_if_modified_since_epoch_seconds(self, recorder):
        get(URL, transport=recorder).if_modified_since(0).code()

        assert recorder.last.headers["if-modified-since"] == "Thu, 01 Jan 1970 00:00:00 GMT"

    def test_use_caches(self, recorder):
        get(URL, transport=recorder).use_caches(False).code()

        assert recorder.last.headers["cache-control"] == "no-cache"

    def test_default_user_agent_from_settings(self, recorder):
        settings = ExchangeSettings(user_agent="httpkit-test/2")
        get(URL, transport=recorder, settings=settings).code()

        assert recorder.last.headers["user-agent"] == "httpkit-test/2"

    def test_headers_frozen_after_send(self, recorder):
        request = get(URL, transport=recorder)
        request.code()

        with pytest.raises(ConfigurationError):
            request.header("X-Late", "1")


class TestCookies:
    def test_cookie_mapping(self, recorder):
        post(URL, transport=recorder).cookies({"a": "1", "b": "2"}).code()

        assert recorder.last.headers["cookie"] == "a=1; b=2"

    def test_empty_cookies_skipped(self, recorder):
        get(URL, transport=recorder).cookies({}).cookies("  ").code()

        assert "cookie" not in recorder.last.headers

    def test_folded_set_cookie(self):
        request = get(URL, transport=_responding({"Set-Cookie": "a=1; Path=/; HttpOnly, b=2; Domain=x.com"}))

        assert request.response_cookies() == {"a": "1", "b": "2"}

    def test_repeated_set_cookie_later_wins(self):
        headers = [
            ("Set-Cookie", "a=1; secure"),
            ("Set-Cookie", "a=3; Expires=Wed, 21 Oct 2015 07:28:00 GMT; OVERWRITE=true"),
            ("Set-Cookie", "sid=xyz"),
        ]
        request = get(URL, transport=_responding(headers))

        assert request.response_cookies() == {"a": "3", "sid": "xyz"}
        assert request.cookie_header() == "a=3; sid=xyz"

    def test_no_cookies(self):
        assert get(URL, transport=_responding({})).response_cookies() == {}


class TestResponseHeaders:
    def test_typed_getters(self):
        request = get(
            URL,
            transport=_responding(
                {
                    "Content-Type": 'text/html; charset="utf-8"; q=1',
                    "Content-Encoding": "identity",
                    "Server": "unit",
                    "ETag": '"v1"',
                    "Cache-Control": "max-age=60",
                    "Location": "/elsewhere",
                    "Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT",
                    "X-Count": "12",
                    "X-Bad": "twelve",
                }
            ),
        )

        assert request.response_content_type() == 'text/html; charset="utf-8"; q=1'
        assert request.charset() == "utf-8"
        assert request.parameters("Content-Type") == {"charset": "utf-8", "q": "1"}
        assert request.parameter("Content-Type", "q") == "1"
        assert request.content_encoding() == "identity"
        assert request.server() == "unit"
        assert request.etag() == '"v1"'
        assert request.cache_control() == "max-age=60"
        assert request.location() == "/elsewhere"
        assert request.last_modified() == datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)
        assert request.int_header("X-Count") == 12
        assert request.int_header("X-Bad", 5) == 5
        assert request.int_header("X-Missing") == -1

    def test_date_defaults(self):
        fallback = datetime(2000, 1, 1, tzinfo=timezone.utc)
        request = get(URL, transport=_responding({"Expires": "not a date"}))

        assert request.date_header("Expires", fallback) == fallback
        assert request.expires() is None
        assert request.date() is None

    def test_multi_value_headers(self):
        request = get(URL, transport=_responding([("X-Multi", "1"), ("X-Multi", "2")]))

        assert request.header_values("X-Multi") == ["1", "2"]
        assert request.header_values("X-Missing") == []
        assert request.header_fields()["x-multi"] == ["1", "2"]
        assert request.response_header("X-Multi") == "1, 2"

    def test_content_length(self):
        assert get(URL, transport=_responding({"Content-Length": "0"})).response_content_length() == 0
        assert get(URL, transport=_responding({})).response_content_length() == -1


class TestParsingHelpers:
    def test_get_params_skips_valueless_entries(self):
        assert get_params("a; b; c=; d=4") == {"d": "4"}
        assert get_params(None) == {}

    def test_get_param(self):
        assert get_param("text/plain; charset=utf-8", "charset") == "utf-8"
        assert get_param("text/plain", "charset") is None

    def test_format_cookies(self):
        assert format_cookies({"a": 1, "b": "two"}) == "a=1; b=two"

    def test_parse_set_cookie_drops_attributes_case_insensitively(self):
        values = ["k=v; PATH=/; domain=x; Secure; HTTPONLY; expires=Thu, 01 Jan 1970 00:00:00 GMT"]

        assert parse_set_cookie(values) == {"k": "v"}
