"""URL encoding and query-string construction."""

from __future__ import annotations

import string
from urllib.parse import parse_qsl, urlsplit

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from HttpKit.Exchange.errors import ConfigurationError, MalformedURLError
from HttpKit.Exchange.query import append, encode, stringify

_TOKEN = st.text(alphabet=string.ascii_letters + string.digits, min_size=1, max_size=8)


class TestAppend:
    def test_list_values_repeat_the_key(self):
        assert append("http://h/api", {"x": [1, 2]}) == "http://h/api?x=1&x=2"

    def test_adds_path_separator_after_bare_host(self):
        assert append("http://h", {"a": 1}) == "http://h/?a=1"

    def test_flat_pairs(self):
        assert append("http://h/p", "a", 1, "b", "two") == "http://h/p?a=1&b=two"

    def test_existing_query_gets_ampersand(self):
        assert append("http://h/p?a=1", "b", 2) == "http://h/p?a=1&b=2"

    def test_trailing_question_mark_or_ampersand_is_reused(self):
        assert append("http://h/p?", "b", 2) == "http://h/p?b=2"
        assert append("http://h/p?a=1&", "b", 2) == "http://h/p?a=1&b=2"

    def test_none_values_keep_the_key(self):
        assert append("http://h/p", {"a": None, "b": [1, None]}) == "http://h/p?a=&b=1&b="

    def test_booleans_are_lowercase(self):
        assert append("http://h/p", {"on": True, "off": False}) == "http://h/p?on=true&off=false"

    def test_values_are_not_escaped(self):
        assert append("http://h/p", {"q": "a b"}) == "http://h/p?q=a b"

    @pytest.mark.parametrize("params", [(), (None,), ({},)])
    def test_no_params_returns_url_unchanged(self, params):
        assert append("http://h/p", *params) == "http://h/p"

    def test_odd_flat_params_rejected(self):
        with pytest.raises(ConfigurationError):
            append("http://h/p", "a", 1, "b")

    @settings(max_examples=50, deadline=None)
    @given(
        params=st.dictionaries(
            keys=_TOKEN,
            values=st.one_of(_TOKEN, st.lists(_TOKEN, min_size=1, max_size=3)),
            max_size=5,
        )
    )
    def test_parsing_back_recovers_pairs_in_order(self, params):
        url = append("http://example.com/api", params)
        expected = []
        for key, value in params.items():
            for element in value if isinstance(value, list) else [value]:
                expected.append((key, element))
        assert parse_qsl(urlsplit(url).query, keep_blank_values=True) == expected


class TestEncode:
    def test_escapes_reserved_query_characters(self):
        assert encode("http://h/search?q=a+b") == "http://h/search?q=a%2Bb"
        assert encode("http://h/p?t=1:2,(x)") == "http://h/p?t=1%3A2%2C%28x%29"

    def test_path_characters_outside_query_are_kept(self):
        assert encode("http://h/a:b(c)?q=1") == "http://h/a:b(c)?q=1"

    def test_spaces_are_percent_encoded(self):
        assert encode("http://h/a b?q=x y") == "http://h/a%20b?q=x%20y"

    def test_existing_escapes_are_preserved(self):
        assert encode("http://h/a%20b?q=%41") == "http://h/a%20b?q=%41"

    def test_idna_host(self):
        assert encode("http://bücher.example/") == "http://xn--bcher-kva.example/"

    def test_port_and_userinfo_preserved_fragment_dropped(self):
        assert encode("http://u:p@h:8080/p?a=1#frag") == "http://u:p@h:8080/p?a=1"

    @pytest.mark.parametrize("url", ["not a url", "/relative/path", "http://"])
    def test_rejects_non_absolute_urls(self, url):
        with pytest.raises(MalformedURLError):
            encode(url)

    @settings(max_examples=50, deadline=None)
    @given(path=_TOKEN, key=_TOKEN, value=_TOKEN)
    def test_idempotent_on_plain_ascii(self, path, key, value):
        url = f"http://example.com/{path}?{key}={value}"
        assert encode(url) == url
        assert encode(encode(url)) == url


def test_stringify():
    assert stringify(True) == "true"
    assert stringify(False) == "false"
    assert stringify(1.5) == "1.5"
    assert stringify("x") == "x"
