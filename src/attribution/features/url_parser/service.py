from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, unquote, urlsplit

from attribution.core.logging import get_logger
from attribution.features.attribution_record.types import MARKETING_KEYS, AttributionRecord


@dataclass(frozen=True, slots=True)
class ParsedURL:
    """
    Partial attribution record: everything a URL alone can tell us.
    """

    origin_url: str
    route_host: str
    route_path: str
    query_parameters: dict[str, str] = field(default_factory=dict)
    marketing: dict[str, str] = field(default_factory=dict)
    custom_parameters: dict[str, Any] = field(default_factory=dict)


def extract_marketing(query: Mapping[str, str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, name in MARKETING_KEYS.items():
        if key in query:
            out[name] = query[key]
    return out


def extract_custom(query: Mapping[str, str]) -> dict[str, Any]:
    return {k: v for k, v in query.items() if k not in MARKETING_KEYS}


class URLAttributionParser:
    """
    Decomposes a deep-link URL into route + query + marketing sub-structure.

    Never raises. Anything that cannot be read as an absolute URL (empty string,
    missing scheme, broken netloc or port) degrades to None and is logged at debug.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def parse(self, url: Any) -> ParsedURL | None:
        text = _as_text(url)
        if not text:
            return None

        try:
            parts = urlsplit(text)
            _ = parts.port  # raises ValueError on a non-numeric / out-of-range port
        except ValueError as exc:
            self._degrade(text, reason=str(exc))
            return None

        if not parts.scheme:
            self._degrade(text, reason="missing scheme")
            return None

        # decoded exactly once; duplicate keys: last wins, first position kept
        query = dict(parse_qsl(parts.query, keep_blank_values=True))

        return ParsedURL(
            origin_url=text,
            route_host=_host(parts.netloc),
            route_path=unquote(parts.path),
            query_parameters=query,
            marketing=extract_marketing(query),
            custom_parameters=extract_custom(query),
        )

    def build_record(self, url: Any, *, is_first_session: bool) -> AttributionRecord:
        return to_record(self.parse(url), is_first_session=is_first_session)

    def _degrade(self, text: str, *, reason: str) -> None:
        self._logger.debug(
            "unparseable url ignored",
            extra={"feature": "url_parser", "event_type": "parse_degraded", "reason": reason},
        )


def to_record(parsed: ParsedURL | None, *, is_first_session: bool) -> AttributionRecord:
    if parsed is None:
        return AttributionRecord(is_first_session=is_first_session)
    return AttributionRecord(
        is_first_session=is_first_session,
        origin_url=parsed.origin_url,
        route_host=parsed.route_host,
        route_path=parsed.route_path,
        query_parameters=parsed.query_parameters,
        marketing=parsed.marketing,
        custom_parameters=parsed.custom_parameters,
    )


def _host(netloc: str) -> str:
    # as written: case kept, IPv6 brackets kept, userinfo and port dropped
    hostport = netloc.rpartition("@")[2]
    if hostport.startswith("["):
        return hostport[: hostport.find("]") + 1]
    return hostport.partition(":")[0]


def _as_text(url: Any) -> str | None:
    if url is None:
        return None
    if isinstance(url, str):
        return url.strip()
    if hasattr(url, "geturl"):
        return str(url.geturl()).strip()
    return None
