from __future__ import annotations

from urllib.parse import urlsplit

import pytest

from attribution.features.url_parser.service import URLAttributionParser


@pytest.fixture
def parser() -> URLAttributionParser:
    return URLAttributionParser()


def test_end_to_end_marketing_extraction(parser):
    p = parser.parse("https://x.io/product/123?utm_source=email&utm_campaign=summer&ref=abc")
    assert p is not None
    assert p.route_host == "x.io"
    assert p.route_path == "/product/123"
    assert p.marketing == {"source": "email", "campaign": "summer", "referrer": "abc"}
    assert p.query_parameters == {"utm_source": "email", "utm_campaign": "summer", "ref": "abc"}


def test_all_recognized_keys(parser):
    p = parser.parse(
        "https://x.io/?utm_source=s&utm_medium=m&utm_campaign=c&utm_term=t"
        "&utm_content=ct&ref=r&campaign_id=42"
    )
    assert p.marketing == {
        "source": "s",
        "medium": "m",
        "campaign": "c",
        "term": "t",
        "content": "ct",
        "referrer": "r",
        "campaign_identifier": "42",
    }
    assert p.custom_parameters == {}


def test_unknown_keys_stay_in_query_only(parser):
    p = parser.parse("https://x.io/a?color=red&UTM_SOURCE=caps")
    assert p.marketing == {}
    assert p.query_parameters == {"color": "red", "UTM_SOURCE": "caps"}
    assert p.custom_parameters == {"color": "red", "UTM_SOURCE": "caps"}


def test_query_decoded_once_and_order_preserved(parser):
    p = parser.parse("https://x.io/p?b=hello%20world&a=%2541&c=")
    assert list(p.query_parameters) == ["b", "a", "c"]
    assert p.query_parameters["b"] == "hello world"
    # %2541 -> "%41", not "A"
    assert p.query_parameters["a"] == "%41"
    assert p.query_parameters["c"] == ""


def test_duplicate_keys_last_wins(parser):
    p = parser.parse("https://x.io/p?utm_source=first&x=1&utm_source=second")
    assert p.query_parameters["utm_source"] == "second"
    assert p.marketing["source"] == "second"
    assert list(p.query_parameters) == ["utm_source", "x"]


def test_custom_scheme_without_host(parser):
    p = parser.parse("myapp:/open/item?id=9")
    assert p is not None
    assert p.route_host == ""
    assert p.route_path == "/open/item"
    assert p.query_parameters == {"id": "9"}


def test_accepts_split_result(parser):
    p = parser.parse(urlsplit("https://x.io/a?ref=z"))
    assert p.marketing == {"referrer": "z"}


@pytest.mark.parametrize(
    "bad",
    [None, "", "   ", "not a url", "http://[::1", "https://x.io:notaport/p", 12345],
)
def test_malformed_input_degrades_to_none(parser, bad):
    assert parser.parse(bad) is None


def test_build_record_without_url(parser):
    r = parser.build_record(None, is_first_session=True)
    assert r.is_first_session is True
    assert r.route_host is None
    assert r.route_path is None
    assert dict(r.marketing) == {}


def test_build_record_with_url(parser):
    r = parser.build_record("https://x.io/product/1?ref=abc", is_first_session=False)
    assert r.origin_url == "https://x.io/product/1?ref=abc"
    assert r.route_path == "/product/1"
    assert r.referrer == "abc"
    assert r.is_first_session is False


@pytest.mark.parametrize(
    "url, host",
    [
        ("https://Shop.X.io/p", "Shop.X.io"),
        ("https://user:pw@x.io:8443/p", "x.io"),
        ("http://[::1]:8080/p", "[::1]"),
    ],
)
def test_route_host_is_kept_as_written(parser, url, host):
    assert parser.parse(url).route_host == host
