"""Webhook API v1 agent.

WHY: v1 requests keep everything under ``result`` and name platforms in
lowercase. v1 responses use ``speech``/``displayText`` for plain text,
``messages`` for rich content, ``data`` for custom payloads and
``contextOut`` for contexts.

HOW: parse_request() reads the body into a FulfillmentRequest. Console
messages are dispatched on their ``type`` field through
V1_CONSOLE_PARSERS: integer codes for generic messages, string names for
the voice assistant.

RULES:
- The request source comes from originalRequest.source, then
  originalRequest.data.source, translated to a Platform
- original_request exposes ``data`` renamed to ``payload``
- end() is not supported in v1
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from dialogflow_fulfillment.agents.base import (
    BaseAgent,
    suggestion_from_replies,
    texts_from,
    unwrap_payload,
)
from dialogflow_fulfillment.core.contexts import Context, ContextStore, context_from_v1
from dialogflow_fulfillment.core.request import FollowupEvent, FulfillmentRequest
from dialogflow_fulfillment.platforms import PlatformLike, from_v1_name
from dialogflow_fulfillment.responses import (
    Card,
    Image,
    Payload,
    RichResponse,
    Text,
)


# ---------------------------------------------------------------------------
# Console message parsers
# ---------------------------------------------------------------------------


def _text(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return texts_from(message.get("speech"), platform)


def _card(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    card = Card(
        title=message.get("title"),
        text=message.get("subtitle"),
        image_url=message.get("imageUrl"),
        platform=platform,
    )
    for button in message.get("buttons") or []:
        if button.get("text") and button.get("postback"):
            card.set_button(text=button["text"], url=button["postback"])
            break
    return [card]


def _suggestions(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return suggestion_from_replies(message.get("replies"), platform)


def _image(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return [Image(image_url=message.get("imageUrl"), platform=platform)]


def _payload(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return [Payload(platform, unwrap_payload(message.get("payload"), platform))]


def _simple_response(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    text = Text(
        message.get("displayText") or message.get("textToSpeech"),
        platform=platform,
    )
    if message.get("ssml"):
        text.set_ssml(message["ssml"])
    return [text]


def _basic_card(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    image = message.get("image") or {}
    card = Card(
        title=message.get("title"),
        text=message.get("formattedText"),
        image_url=image.get("url"),
        accessibility_text=image.get("accessibilityText"),
        platform=platform,
    )
    for button in message.get("buttons") or []:
        url = (button.get("openUrlAction") or {}).get("url")
        if button.get("title") and url:
            card.set_button(text=button["title"], url=url)
            break
    return [card]


def _suggestion_chips(message: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    replies = [chip.get("title") for chip in message.get("suggestions") or []]
    return suggestion_from_replies(replies, platform)


V1_CONSOLE_PARSERS: dict[Any, Callable[[Mapping[str, Any], PlatformLike | None], list[RichResponse]]] = {
    0: _text,
    1: _card,
    2: _suggestions,
    3: _image,
    4: _payload,
    "simple_response": _simple_response,
    "basic_card": _basic_card,
    "suggestion_chips": _suggestion_chips,
    "custom_payload": _payload,
}


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class V1Agent(BaseAgent):
    """Agent for webhook API v1 requests (``result`` at the top level)."""

    version = 1
    MESSAGES_KEY = "messages"
    PAYLOAD_KEY = "data"
    CONTEXTS_KEY = "contextOut"

    @classmethod
    def matches(cls, body: Mapping[str, Any]) -> bool:
        return "result" in body

    def parse_request(self) -> FulfillmentRequest:
        result = self.body["result"] or {}
        metadata = result.get("metadata") or {}
        original = self.body.get("originalRequest")

        request = FulfillmentRequest(
            version=self.version,
            intent=metadata.get("intentName"),
            action=result.get("action"),
            parameters=result.get("parameters") or {},
            contexts=[context_from_v1(ctx) for ctx in result.get("contexts") or []],
            session=self.body.get("sessionId"),
            locale=self.body.get("lang"),
            query=result.get("resolvedQuery"),
            request_source=self._request_source(original),
            original_request=self._rename_data(original),
        )
        request.console_messages = self.parse_console_messages(
            (result.get("fulfillment") or {}).get("messages")
        )

        self.log.debug("Intent: %s", request.intent)
        self.log.debug("Action: %s", request.action)
        self.log.debug("Parameters: %s", request.parameters)
        self.log.debug("Input contexts: %s", request.contexts)
        self.log.debug("Request source: %s", request.request_source)
        self.log.debug("Original query: %s", request.query)
        return request

    @staticmethod
    def _request_source(original: Mapping[str, Any] | None) -> PlatformLike | None:
        if not original:
            return None
        source = original.get("source") or (original.get("data") or {}).get("source")
        return from_v1_name(source)

    @staticmethod
    def _rename_data(original: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Copy of originalRequest with ``data`` exposed as ``payload``."""
        if original is None:
            return None
        renamed = dict(original)
        if "data" in renamed:
            renamed["payload"] = renamed.pop("data")
        return renamed

    def parse_console_message(self, message: Mapping[str, Any]) -> list[RichResponse]:
        parser = V1_CONSOLE_PARSERS[message.get("type")]
        return parser(message, from_v1_name(message.get("platform")))

    def unpack_conversation(
        self, serialized: Mapping[str, Any]
    ) -> tuple[list[Context], Any]:
        contexts = [context_from_v1(ctx) for ctx in serialized.get("contextOut") or []]
        payload = (serialized.get("data") or {}).get("google")
        return contexts, payload

    def _text_body(self, text: Text) -> dict[str, Any]:
        return {"speech": text.spoken, "displayText": text.text}

    def _render(
        self, item: RichResponse, source: PlatformLike | None
    ) -> dict[str, Any] | None:
        return item.to_v1_message(source)

    def _contexts_out(self, contexts: ContextStore) -> list[dict[str, Any]]:
        return contexts.to_v1_array()

    def _followup_body(self, event: FollowupEvent) -> dict[str, Any]:
        followup: dict[str, Any] = {"name": event.name}
        if event.parameters:
            followup["data"] = event.parameters
        return {"followupEvent": followup}
