from __future__ import annotations

import pytest

from attribution.core.errors import InvalidConfigurationError
from attribution.features.link_request.service import LinkRequest


def test_build_minimal():
    params = LinkRequest("/product/123", "example_link").build()
    assert params == {"path": "/product/123", "name": "example_link"}


def test_build_full_in_order():
    req = (
        LinkRequest("/product/123", "example_link", link_description="desc")
        .set_marketing_attribution(source="android_app", medium="mobile", content="test_link")
        .set_social_preview("Title", "Description", "https://img/x.png")
    )
    params = req.build()
    assert list(params) == [
        "path",
        "name",
        "description",
        "previewTitle",
        "previewDescription",
        "previewImageUrl",
        "utmSource",
        "utmMedium",
        "utmContent",
    ]
    assert params["utmSource"] == "android_app"
    assert "utmCampaign" not in params


def test_utm_source_only_when_set():
    assert "utmSource" not in LinkRequest("/p", "n").build()
    assert LinkRequest("/p", "n", marketing_source="email").build()["utmSource"] == "email"


def test_custom_parameters_override():
    req = LinkRequest("/p", "n", marketing_source="email")
    req.add_custom_parameter("utmSource", "override").add_custom_parameter("extra", 3)
    params = req.build()
    assert params["utmSource"] == "override"
    assert params["extra"] == 3


@pytest.mark.parametrize("path,name", [("", "n"), ("/p", ""), ("", "")])
def test_empty_required_fields_fail(path, name):
    req = LinkRequest(path, name)
    assert req.is_valid() is False
    with pytest.raises(InvalidConfigurationError):
        req.build()


def test_built_map_is_detached_from_builder():
    req = LinkRequest("/p", "n")
    params = req.build()
    req.add_custom_parameter("later", True)
    req.marketing_source = "late"
    assert "later" not in params
    assert "utmSource" not in params
