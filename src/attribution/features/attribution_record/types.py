from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

# query key -> marketing field
MARKETING_KEYS: dict[str, str] = {
    "utm_source": "source",
    "utm_medium": "medium",
    "utm_campaign": "campaign",
    "utm_term": "term",
    "utm_content": "content",
    "ref": "referrer",
    "campaign_id": "campaign_identifier",
}

UTM_FIELDS: tuple[str, ...] = ("source", "medium", "campaign", "term", "content")


def _frozen(m: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(m or {}))


@dataclass(frozen=True, slots=True)
class AttributionRecord:
    """
    Immutable snapshot of one attribution event.

    - is_first_session is the value observed *before* this event consumed the
      persisted first-session marker.
    - route_host/route_path are None when no URL was supplied; "" when the URL had no
      host or path.
    - marketing only contains recognized keys and is empty iff none were present.
    """

    is_first_session: bool
    origin_url: str | None = None
    route_host: str | None = None
    route_path: str | None = None
    query_parameters: Mapping[str, str] = field(default_factory=dict)
    marketing: Mapping[str, str] = field(default_factory=dict)
    custom_parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # detach from caller-owned dicts
        object.__setattr__(self, "query_parameters", _frozen(self.query_parameters))
        object.__setattr__(self, "marketing", _frozen(self.marketing))
        object.__setattr__(self, "custom_parameters", _frozen(self.custom_parameters))

    # ----- marketing -----
    @property
    def marketing_source(self) -> str | None:
        return self.marketing.get("source")

    @property
    def marketing_medium(self) -> str | None:
        return self.marketing.get("medium")

    @property
    def marketing_campaign(self) -> str | None:
        return self.marketing.get("campaign")

    @property
    def marketing_term(self) -> str | None:
        return self.marketing.get("term")

    @property
    def marketing_content(self) -> str | None:
        return self.marketing.get("content")

    @property
    def referrer(self) -> str | None:
        return self.marketing.get("referrer")

    @property
    def campaign_identifier(self) -> str | None:
        return self.marketing.get("campaign_identifier")

    @property
    def has_marketing_data(self) -> bool:
        return (
            self.marketing_source is not None
            or self.marketing_medium is not None
            or self.marketing_campaign is not None
        )

    @property
    def has_utm_parameters(self) -> bool:
        return any(self.marketing.get(f) is not None for f in UTM_FIELDS)

    @property
    def utm_parameters(self) -> dict[str, str]:
        return {f"utm_{f}": self.marketing[f] for f in UTM_FIELDS if f in self.marketing}

    def custom_parameter(self, key: str) -> Any:
        return self.custom_parameters.get(key)

    # ----- routing -----
    def matches(self, route: str) -> bool:
        return self.route_path == route

    def has_route(self, prefix: str) -> bool:
        return self.route_path is not None and self.route_path.startswith(prefix)

    def extract_id(self, route_prefix: str) -> str | None:
        """
        "/product/123" with prefix "/product/" -> "123".
        """
        if not self.has_route(route_prefix):
            return None
        return self.route_path[len(route_prefix) :]

    def as_dict(self) -> dict[str, Any]:
        return {
            "origin_url": self.origin_url,
            "route_host": self.route_host,
            "route_path": self.route_path,
            "is_first_session": self.is_first_session,
            "query_parameters": dict(self.query_parameters),
            "marketing": dict(self.marketing),
            "custom_parameters": dict(self.custom_parameters),
        }

    def __str__(self) -> str:
        parts: list[str] = []
        if self.origin_url is not None:
            parts.append(f"origin_url: {self.origin_url}")
        if self.route_path is not None:
            parts.append(f"route_path: {self.route_path}")
        parts.append(f"is_first_session: {self.is_first_session}")
        if self.has_marketing_data:
            m = [f"{k}: {self.marketing[k]}" for k in ("source", "campaign") if k in self.marketing]
            parts.append(f"marketing: [{', '.join(m)}]")
        return f"AttributionRecord({', '.join(parts)})"
