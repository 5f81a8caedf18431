"""Exchange construction, factories, GraphQL helpers and lifecycle."""

from __future__ import annotations

import json

import httpx
import pytest

from HttpKit.Exchange import (
    HttpRequest,
    delete,
    get,
    head,
    options,
    post,
    put,
    trace,
)
from HttpKit.Exchange.errors import ConfigurationError, MalformedURLError
from HttpKit.Exchange.output import ChannelState


class TestConstruction:
    def test_str_and_repr(self):
        request = get("http://example.com/p?a=1")

        assert str(request) == "GET http://example.com/p?a=1"
        assert repr(request) == "<HttpRequest [GET http://example.com/p?a=1]>"

    def test_unsupported_method(self):
        with pytest.raises(ConfigurationError):
            HttpRequest("http://example.com/", "PATCH")

    @pytest.mark.parametrize("url", ["not a url", "/only/a/path", "http://"])
    def test_malformed_url(self, url):
        with pytest.raises(MalformedURLError):
            get(url)

    def test_nothing_sent_before_first_read(self, recorder):
        request = get("http://example.com/", transport=recorder).header("X-A", "1")

        assert recorder.requests == []
        request.code()
        assert len(recorder.requests) == 1

    def test_static_url_helpers(self):
        assert HttpRequest.append("http://h/p", {"a": 1}) == "http://h/p?a=1"
        assert HttpRequest.encode("http://h/a b") == "http://h/a%20b"


class TestFactories:
    @pytest.mark.parametrize(
        ("factory", "method"),
        [
            (get, "GET"),
            (post, "POST"),
            (put, "PUT"),
            (delete, "DELETE"),
            (head, "HEAD"),
            (options, "OPTIONS"),
            (trace, "TRACE"),
        ],
    )
    def test_method(self, recorder, factory, method):
        request = factory("http://example.com/r", transport=recorder)

        assert request.method == method
        request.code()
        assert recorder.last.method == method

    def test_mapping_params(self, recorder):
        get("http://example.com/r", {"a": 1, "b": [2, 3]}, transport=recorder).code()

        assert recorder.last.url == "http://example.com/r?a=1&b=2&b=3"

    def test_flat_params(self, recorder):
        delete("http://example.com/r", ["id", 7], transport=recorder).code()

        assert recorder.last.url == "http://example.com/r?id=7"

    def test_encode_flag(self):
        request = get("http://example.com/a b", {"q": "x y"}, encode=True)

        assert str(request.url) == "http://example.com/a%20b?q=x%20y"

    def test_put_with_body(self, recorder):
        put("http://example.com/r", transport=recorder).send("data").code()

        assert recorder.last.body == b"data"


class TestGraphQL:
    def test_get_adds_url_parameters(self, recorder):
        request = get("http://example.com/graphql", transport=recorder)
        request.graphql("{ me }", {"id": 1}, "Me").code()

        params = httpx.URL(recorder.last.url).params
        assert params["query"] == "{ me }"
        assert params["variables"] == '{"id":1}'
        assert params["operationName"] == "Me"

    def test_post_sends_json_body(self, recorder):
        request = post("http://example.com/graphql", transport=recorder)
        request.graphql("query Me { me }", '{"id": 1}', "Me").code()

        assert json.loads(recorder.last.body) == {
            "query": "query Me { me }",
            "variables": '{"id": 1}',
            "operationName": "Me",
        }
        assert recorder.last.headers["content-type"].startswith("application/json")

    def test_multiline_query_is_valid_json(self, recorder):
        query_text = "query {\n  user { id }\n}"
        post("http://example.com/graphql", transport=recorder).graphql(query_text, {"note": "a\tb"}).code()

        payload = json.loads(recorder.last.body)
        assert payload["query"] == query_text
        assert json.loads(payload["variables"]) == {"note": "a\tb"}

    def test_blank_optional_fields_are_omitted(self, recorder):
        post("http://example.com/graphql", transport=recorder).graphql("{ me }", "  ", " ").code()

        assert json.loads(recorder.last.body) == {"query": "{ me }"}

    def test_get_after_connection_rejected(self):
        request = get("http://example.com/graphql").read_timeout(5)

        with pytest.raises(ConfigurationError):
            request.graphql("{ me }")

    def test_other_methods_rejected(self):
        with pytest.raises(ConfigurationError):
            put("http://example.com/graphql").graphql("{ me }")


class TestLifecycle:
    def test_context_manager_disconnects(self, recorder):
        with post("http://example.com/r", transport=recorder) as request:
            request.send(b"x")
            assert request.ok()

        assert request.output_state is ChannelState.CLOSED
        with pytest.raises(ConfigurationError):
            request.send(b"y")

    def test_disconnect_before_connection_is_harmless(self):
        request = get("http://example.com/r")

        assert request.disconnect() is request
        assert request.output_state is ChannelState.CLOSED
