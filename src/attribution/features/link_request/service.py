from __future__ import annotations

from typing import Any

from attribution.core.errors import InvalidConfigurationError


class LinkRequest:
    """
    Accumulates parameters for creating an attributed link.

    Setters return self for chaining; build() validates and returns a detached dict.
    """

    def __init__(
        self,
        destination_path: str,
        link_identifier: str,
        *,
        link_description: str | None = None,
        social_title: str | None = None,
        social_description: str | None = None,
        social_image_url: str | None = None,
        marketing_source: str | None = None,
        marketing_medium: str | None = None,
        marketing_campaign: str | None = None,
        marketing_term: str | None = None,
        marketing_content: str | None = None,
    ) -> None:
        self.destination_path = destination_path
        self.link_identifier = link_identifier

        # content
        self.link_description = link_description
        self.social_title = social_title
        self.social_description = social_description
        self.social_image_url = social_image_url

        # marketing attribution
        self.marketing_source = marketing_source
        self.marketing_medium = marketing_medium
        self.marketing_campaign = marketing_campaign
        self.marketing_term = marketing_term
        self.marketing_content = marketing_content

        self.custom_parameters: dict[str, Any] = {}

    def add_custom_parameter(self, key: str, value: Any) -> LinkRequest:
        self.custom_parameters[key] = value
        return self

    def set_social_preview(
        self, title: str, description: str, image_url: str | None = None
    ) -> LinkRequest:
        self.social_title = title
        self.social_description = description
        self.social_image_url = image_url
        return self

    def set_marketing_attribution(
        self,
        *,
        source: str | None = None,
        medium: str | None = None,
        campaign: str | None = None,
        term: str | None = None,
        content: str | None = None,
    ) -> LinkRequest:
        self.marketing_source = source
        self.marketing_medium = medium
        self.marketing_campaign = campaign
        self.marketing_term = term
        self.marketing_content = content
        return self

    def is_valid(self) -> bool:
        return bool(self.destination_path) and bool(self.link_identifier)

    def build(self) -> dict[str, Any]:
        if not self.destination_path:
            raise InvalidConfigurationError("destination_path must be non-empty")
        if not self.link_identifier:
            raise InvalidConfigurationError("link_identifier must be non-empty")

        params: dict[str, Any] = {
            "path": self.destination_path,
            "name": self.link_identifier,
        }

        optional = (
            ("description", self.link_description),
            ("previewTitle", self.social_title),
            ("previewDescription", self.social_description),
            ("previewImageUrl", self.social_image_url),
            ("utmSource", self.marketing_source),
            ("utmMedium", self.marketing_medium),
            ("utmCampaign", self.marketing_campaign),
            ("utmTerm", self.marketing_term),
            ("utmContent", self.marketing_content),
        )
        for key, value in optional:
            if value is not None:
                params[key] = value

        # custom keys go last and may override anything above
        params.update(self.custom_parameters)
        return params

    def __repr__(self) -> str:
        return (
            f"LinkRequest(destination_path={self.destination_path!r}, "
            f"link_identifier={self.link_identifier!r})"
        )
