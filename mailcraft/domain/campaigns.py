from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ImageOverrides:
    single_image_index: Optional[int] = None
    multi_image_selections: Optional[Mapping[int, int]] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.single_image_index is not None:
            payload["singleImageIndex"] = self.single_image_index
        if self.multi_image_selections:
            payload["multiImageSelections"] = {
                str(product_index): image_index
                for product_index, image_index in self.multi_image_selections.items()
            }
        return payload


@dataclass(frozen=True)
class CampaignPublishRequest:
    client_id: str
    base_country: Optional[str]
    subject: str
    preheader: str
    send_date: Optional[str]
    email_template: Mapping[str, Any]
    country_results: Mapping[str, Any]
    image_overrides: Optional[ImageOverrides] = None
    mailing_list_overrides: Optional[Mapping[str, str]] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "clientId": self.client_id,
            "baseCountry": self.base_country,
            "subject": self.subject,
            "preheader": self.preheader,
            "sendDate": self.send_date,
            "emailTemplate": dict(self.email_template),
            "countryResults": dict(self.country_results),
        }
        # Absent overrides are omitted from the body rather than sent as null.
        if self.image_overrides is not None:
            payload["imageOverrides"] = self.image_overrides.to_payload()
        if self.mailing_list_overrides:
            payload["mailingListOverrides"] = dict(self.mailing_list_overrides)
        return payload


def freeze_mapping(value: Mapping[Any, Any]) -> Mapping[Any, Any]:
    return MappingProxyType(dict(value))
