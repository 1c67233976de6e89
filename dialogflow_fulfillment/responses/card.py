"""Card response: title, optional body text, image and one link button.

WHY: Cards are the richest cross-platform message. The voice assistant
calls them "basic cards" and has its own field names (formattedText,
openUrlAction / openUriAction); every other platform uses the generic
card shape with postback buttons.

RULES:
- title is required
- button text and button url are both set or both unset
- A voice-assistant card with neither text nor image gets a single-space
  formattedText, because the platform rejects an empty card
- The v1 Slack card always carries a ``buttons`` list, possibly empty
"""

from __future__ import annotations

from typing import Any, Mapping

from dialogflow_fulfillment.errors import ConstructionError
from dialogflow_fulfillment.platforms import Platform, PlatformLike, normalize, to_v1_name
from dialogflow_fulfillment.responses.base import (
    ACCESSIBILITY_TEXT_PLACEHOLDER,
    RichResponse,
    is_voice_assistant,
    read_fields,
    require_str,
    v1_platform_field,
    v2_platform_field,
)

V1_MESSAGE_TYPE_CARD = 1
EMPTY_CARD_TEXT = " "


def _check_button(text: Any, url: Any) -> None:
    if bool(text) != bool(url):
        raise ConstructionError(
            "card button requires both button text and button url, "
            "e.g. set_button(text='Open', url='https://example.com')"
        )


class Card(RichResponse):
    """A card with a title and optional text, image and button.

    Usage::

        Card("Title")
        Card({"title": "Title", "imageUrl": "https://...",
              "buttonText": "Open", "buttonUrl": "https://..."})
        Card(title="Title", text="Body", platform=Platform.SLACK)
    """

    def __init__(
        self,
        card: str | Mapping[str, Any] | None = None,
        *,
        title: str | None = None,
        text: str | None = None,
        image_url: str | None = None,
        button_text: str | None = None,
        button_url: str | None = None,
        accessibility_text: str | None = None,
        platform: PlatformLike | None = None,
    ) -> None:
        super().__init__()
        fields = read_fields(
            card,
            "title",
            "Card",
            title=title,
            text=text,
            image_url=image_url,
            button_text=button_text,
            button_url=button_url,
            accessibility_text=accessibility_text,
            platform=platform,
        )
        if fields.get("title") is None:
            raise ConstructionError("title string required by Card constructor")

        self.title: str = ""
        self.text: str | None = None
        self.image_url: str | None = None
        self.button_text: str | None = None
        self.button_url: str | None = None
        self.accessibility_text: str | None = fields.get("accessibility_text")

        self.set_title(fields["title"])
        if fields.get("text") is not None:
            self.set_text(fields["text"])
        if fields.get("image_url") is not None:
            self.set_image(fields["image_url"])
        _check_button(fields.get("button_text"), fields.get("button_url"))
        if fields.get("button_text"):
            self.set_button(text=fields["button_text"], url=fields["button_url"])
        self._pin_from(fields)

    # -------------------------------------------------------------------
    # Setters
    # -------------------------------------------------------------------

    def set_title(self, title: str) -> Card:
        self.title = require_str(title, "set_title", "title")
        return self

    def set_text(self, text: str) -> Card:
        self.text = require_str(text, "set_text", "text")
        return self

    def set_image(self, image_url: str) -> Card:
        self.image_url = require_str(image_url, "set_image", "image URL")
        return self

    def set_button(
        self,
        button: Mapping[str, Any] | None = None,
        *,
        text: str | None = None,
        url: str | None = None,
    ) -> Card:
        """Set (or with neither field, clear) the link button.

        Accepts ``set_button({"text": ..., "url": ...})`` or keywords.

        Raises:
            ConstructionError: exactly one of text/url is given.
            TypeError: text or url is not a string.
        """
        if button is not None:
            if not isinstance(button, Mapping):
                raise TypeError(
                    f"set_button requires a mapping, got {type(button).__name__}"
                )
            text = button.get("text", text)
            url = button.get("url", url)
        _check_button(text, url)
        if not text:
            self.button_text = None
            self.button_url = None
            return self
        self.button_text = require_str(text, "set_button", "button text")
        self.button_url = require_str(url, "set_button", "button url")
        return self

    @property
    def has_button(self) -> bool:
        return bool(self.button_text and self.button_url)

    # -------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------

    def _v1_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            message: dict[str, Any] = {
                "type": "basic_card",
                "platform": to_v1_name(platform),
                "title": self.title,
            }
            if self.text:
                message["formattedText"] = self.text
            elif not self.image_url:
                message["formattedText"] = EMPTY_CARD_TEXT
            if self.image_url:
                message["image"] = {
                    "url": self.image_url,
                    "accessibilityText": self.accessibility_text
                    or ACCESSIBILITY_TEXT_PLACEHOLDER,
                }
            if self.has_button:
                message["buttons"] = [
                    {"title": self.button_text, "openUrlAction": {"url": self.button_url}}
                ]
            return message

        message = {"type": V1_MESSAGE_TYPE_CARD, "title": self.title}
        if self.text:
            message["subtitle"] = self.text
        if self.image_url:
            message["imageUrl"] = self.image_url
        if normalize(platform) is Platform.SLACK:
            message["buttons"] = []
        if self.has_button:
            message["buttons"] = [{"text": self.button_text, "postback": self.button_url}]
        v1_platform = v1_platform_field(platform)
        if v1_platform:
            message["platform"] = v1_platform
        return message

    def _v2_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            basic: dict[str, Any] = {"title": self.title}
            if self.text:
                basic["formattedText"] = self.text
            elif not self.image_url:
                basic["formattedText"] = EMPTY_CARD_TEXT
            if self.image_url:
                basic["image"] = {
                    "imageUri": self.image_url,
                    "accessibilityText": self.accessibility_text
                    or ACCESSIBILITY_TEXT_PLACEHOLDER,
                }
            if self.has_button:
                basic["buttons"] = [
                    {"title": self.button_text, "openUriAction": {"uri": self.button_url}}
                ]
            return {"basicCard": basic, "platform": v2_platform_field(platform)}

        card: dict[str, Any] = {"title": self.title}
        if self.text:
            card["subtitle"] = self.text
        if self.image_url:
            card["imageUri"] = self.image_url
        if self.has_button:
            card["buttons"] = [{"text": self.button_text, "postback": self.button_url}]
        message: dict[str, Any] = {"card": card}
        v2_platform = v2_platform_field(platform)
        if v2_platform:
            message["platform"] = v2_platform
        return message
