from __future__ import annotations

from attribution.features.attribution_record.types import AttributionRecord


def _record(**kw) -> AttributionRecord:
    base = dict(
        is_first_session=True,
        origin_url="https://x.io/product/123?utm_source=email",
        route_host="x.io",
        route_path="/product/123",
        query_parameters={"utm_source": "email", "color": "red"},
        marketing={"source": "email"},
        custom_parameters={"color": "red"},
    )
    base.update(kw)
    return AttributionRecord(**base)


def test_record_without_url_has_absent_route_fields():
    r = AttributionRecord(is_first_session=False)
    assert r.origin_url is None
    assert r.route_host is None
    assert r.route_path is None
    assert dict(r.query_parameters) == {}
    assert dict(r.marketing) == {}
    assert r.has_marketing_data is False


def test_record_detaches_from_caller_dicts():
    query = {"a": "1"}
    r = AttributionRecord(is_first_session=True, query_parameters=query)
    query["b"] = "2"
    assert dict(r.query_parameters) == {"a": "1"}


def test_marketing_accessors_and_utm_parameters():
    r = _record(marketing={"source": "email", "term": "shoes", "referrer": "abc"})
    assert r.marketing_source == "email"
    assert r.marketing_term == "shoes"
    assert r.referrer == "abc"
    assert r.campaign_identifier is None
    assert r.has_marketing_data is True
    assert r.has_utm_parameters is True
    assert r.utm_parameters == {"utm_source": "email", "utm_term": "shoes"}


def test_referrer_only_is_not_marketing_data():
    r = _record(marketing={"referrer": "abc"})
    assert r.has_marketing_data is False
    assert r.has_utm_parameters is False


def test_route_helpers():
    r = _record()
    assert r.matches("/product/123")
    assert r.has_route("/product/")
    assert r.extract_id("/product/") == "123"
    assert r.extract_id("/category/") is None
    assert r.custom_parameter("color") == "red"
    assert r.custom_parameter("missing") is None


def test_as_dict_and_str():
    r = _record()
    d = r.as_dict()
    assert d["route_path"] == "/product/123"
    assert d["marketing"] == {"source": "email"}
    assert isinstance(d["query_parameters"], dict)

    s = str(r)
    assert s.startswith("AttributionRecord(")
    assert "is_first_session: True" in s
    assert "source: email" in s
