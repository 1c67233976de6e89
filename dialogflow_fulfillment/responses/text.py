"""Plain text response, spoken and displayed.

The voice assistant gets a simple response whose spoken part is the SSML
when one is set; every other platform gets the generic speech/text shape.
"""

from __future__ import annotations

from typing import Any, Mapping

from dialogflow_fulfillment.errors import ConstructionError
from dialogflow_fulfillment.platforms import PlatformLike, to_v1_name
from dialogflow_fulfillment.responses.base import (
    RichResponse,
    is_voice_assistant,
    read_fields,
    require_str,
    v1_platform_field,
    v2_platform_field,
)

V1_MESSAGE_TYPE_TEXT = 0


class Text(RichResponse):
    """A text response.

    Usage::

        Text("Hello")
        Text({"text": "Hello", "ssml": "<speak>Hello!</speak>"})
        Text(text="Hello", platform=Platform.FACEBOOK)
    """

    def __init__(
        self,
        text: str | Mapping[str, Any] | None = None,
        *,
        ssml: str | None = None,
        platform: PlatformLike | None = None,
    ) -> None:
        super().__init__()
        fields = read_fields(text, "text", "Text", ssml=ssml, platform=platform)
        if fields.get("text") is None:
            raise ConstructionError("string required by Text constructor")
        self.text: str = ""
        self.ssml: str | None = None
        self.set_text(fields["text"])
        if fields.get("ssml") is not None:
            self.set_ssml(fields["ssml"])
        self._pin_from(fields)

    def set_text(self, text: str) -> Text:
        self.text = require_str(text, "set_text", "text")
        return self

    def set_ssml(self, ssml: str) -> Text:
        """Replace the spoken form; the displayed text is unchanged."""
        self.ssml = require_str(ssml, "set_ssml", "SSML")
        return self

    @property
    def spoken(self) -> str:
        return self.ssml or self.text

    def _v1_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            return {
                "type": "simple_response",
                "platform": to_v1_name(platform),
                "textToSpeech": self.spoken,
                "displayText": self.text,
            }
        message: dict[str, Any] = {"type": V1_MESSAGE_TYPE_TEXT}
        v1_platform = v1_platform_field(platform)
        if v1_platform:
            message["platform"] = v1_platform
        message["speech"] = self.text
        return message

    def _v2_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            simple: dict[str, Any] = {}
            if self.ssml:
                simple["ssml"] = self.ssml
            else:
                simple["textToSpeech"] = self.text
            simple["displayText"] = self.text
            return {
                "platform": v2_platform_field(platform),
                "simpleResponses": {"simpleResponses": [simple]},
            }
        message: dict[str, Any] = {"text": {"text": [self.text]}}
        v2_platform = v2_platform_field(platform)
        if v2_platform:
            message["platform"] = v2_platform
        return message
