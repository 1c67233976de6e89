"""Image response.

On the voice assistant an image travels as a basic card holding only an
image (with alt text); elsewhere it is the generic image message.
"""

from __future__ import annotations

from typing import Any, Mapping

from dialogflow_fulfillment.errors import ConstructionError
from dialogflow_fulfillment.platforms import PlatformLike, to_v1_name
from dialogflow_fulfillment.responses.base import (
    ACCESSIBILITY_TEXT_PLACEHOLDER,
    RichResponse,
    is_voice_assistant,
    read_fields,
    require_str,
    v1_platform_field,
    v2_platform_field,
)

V1_MESSAGE_TYPE_IMAGE = 3


class Image(RichResponse):
    """An image given by URL.

    Usage::

        Image("https://example.com/cat.png")
        Image({"imageUrl": "https://...", "platform": "FACEBOOK"})
    """

    def __init__(
        self,
        image: str | Mapping[str, Any] | None = None,
        *,
        image_url: str | None = None,
        accessibility_text: str | None = None,
        platform: PlatformLike | None = None,
    ) -> None:
        super().__init__()
        fields = read_fields(
            image,
            "image_url",
            "Image",
            image_url=image_url,
            accessibility_text=accessibility_text,
            platform=platform,
        )
        if fields.get("image_url") is None:
            raise ConstructionError("image url string required by Image constructor")
        self.image_url: str = ""
        self.accessibility_text: str | None = fields.get("accessibility_text")
        self.set_image(fields["image_url"])
        self._pin_from(fields)

    def set_image(self, image_url: str) -> Image:
        self.image_url = require_str(image_url, "set_image", "image URL")
        return self

    @property
    def _alt_text(self) -> str:
        return self.accessibility_text or ACCESSIBILITY_TEXT_PLACEHOLDER

    def _v1_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            return {
                "type": "basic_card",
                "platform": to_v1_name(platform),
                "image": {"url": self.image_url, "accessibilityText": self._alt_text},
            }
        message: dict[str, Any] = {
            "type": V1_MESSAGE_TYPE_IMAGE,
            "imageUrl": self.image_url,
        }
        v1_platform = v1_platform_field(platform)
        if v1_platform:
            message["platform"] = v1_platform
        return message

    def _v2_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            return {
                "basicCard": {
                    "image": {
                        "imageUri": self.image_url,
                        "accessibilityText": self._alt_text,
                    }
                },
                "platform": v2_platform_field(platform),
            }
        message: dict[str, Any] = {"image": {"imageUri": self.image_url}}
        v2_platform = v2_platform_field(platform)
        if v2_platform:
            message["platform"] = v2_platform
        return message
