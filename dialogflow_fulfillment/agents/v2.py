"""Webhook API v2 agent.

WHY: v2 requests keep intent data under ``queryResult``, scope context
names by ``session`` and name platforms in uppercase. v2 responses use
``fulfillmentText``, ``fulfillmentMessages``, ``payload`` and
``outputContexts``, and can end the conversation.

HOW: parse_request() reads the body into a FulfillmentRequest. Console
messages are dispatched on the shape key they carry (``text``,
``card``, ``basicCard``, ...) through V2_CONSOLE_PARSERS.

RULES:
- An absent queryResult.action reads as "default"
- The request source comes from originalDetectIntentRequest.source, then
  .payload.source, then .payload.data.source
- A rich response carrying a payload always has a ``fulfillmentText``
  (empty string); the platform rejects it otherwise
- A followup event without a language code gets the request locale
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from dialogflow_fulfillment.agents.base import (
    BaseAgent,
    suggestion_from_replies,
    texts_from,
    unwrap_payload,
)
from dialogflow_fulfillment.core.contexts import Context, ContextStore, context_from_v2
from dialogflow_fulfillment.core.request import FollowupEvent, FulfillmentRequest
from dialogflow_fulfillment.platforms import PlatformLike, from_v1_name, normalize
from dialogflow_fulfillment.responses import (
    Card,
    Image,
    Payload,
    RichResponse,
    Text,
)

DEFAULT_ACTION = "default"


# ---------------------------------------------------------------------------
# Console message parsers
# ---------------------------------------------------------------------------


def _text(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return texts_from(value.get("text"), platform)


def _card(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    card = Card(
        title=value.get("title"),
        text=value.get("subtitle"),
        image_url=value.get("imageUri"),
        platform=platform,
    )
    for button in value.get("buttons") or []:
        if button.get("text") and button.get("postback"):
            card.set_button(text=button["text"], url=button["postback"])
            break
    return [card]


def _image(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return [
        Image(
            image_url=value.get("imageUri"),
            accessibility_text=value.get("accessibilityText"),
            platform=platform,
        )
    ]


def _quick_replies(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return suggestion_from_replies(value.get("quickReplies"), platform)


def _simple_responses(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    texts: list[RichResponse] = []
    for simple in value.get("simpleResponses") or []:
        text = Text(
            simple.get("displayText") or simple.get("textToSpeech"),
            platform=platform,
        )
        if simple.get("ssml"):
            text.set_ssml(simple["ssml"])
        texts.append(text)
    return texts


def _basic_card(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    image = value.get("image") or {}
    card = Card(
        title=value.get("title"),
        text=value.get("formattedText"),
        image_url=image.get("imageUri"),
        accessibility_text=image.get("accessibilityText"),
        platform=platform,
    )
    for button in value.get("buttons") or []:
        uri = (button.get("openUriAction") or {}).get("uri")
        if button.get("title") and uri:
            card.set_button(text=button["title"], url=uri)
            break
    return [card]


def _suggestions(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    replies = [chip.get("title") for chip in value.get("suggestions") or []]
    return suggestion_from_replies(replies, platform)


def _payload(value: Mapping[str, Any], platform: PlatformLike | None) -> list[RichResponse]:
    return [Payload(platform, unwrap_payload(value, platform))]


V2_CONSOLE_PARSERS: dict[str, Callable[[Mapping[str, Any], PlatformLike | None], list[RichResponse]]] = {
    "text": _text,
    "card": _card,
    "image": _image,
    "quickReplies": _quick_replies,
    "simpleResponses": _simple_responses,
    "basicCard": _basic_card,
    "suggestions": _suggestions,
    "payload": _payload,
}


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class V2Agent(BaseAgent):
    """Agent for webhook API v2 requests (``queryResult`` at the top level)."""

    version = 2
    MESSAGES_KEY = "fulfillmentMessages"
    PAYLOAD_KEY = "payload"
    CONTEXTS_KEY = "outputContexts"
    SUPPORTS_END_CONVERSATION = True

    @classmethod
    def matches(cls, body: Mapping[str, Any]) -> bool:
        return "queryResult" in body

    @property
    def session(self) -> str | None:
        return self.body.get("session")

    @property
    def locale(self) -> str | None:
        return (self.body.get("queryResult") or {}).get("languageCode")

    def parse_request(self) -> FulfillmentRequest:
        query_result = self.body["queryResult"] or {}
        original = self.body.get("originalDetectIntentRequest")

        request = FulfillmentRequest(
            version=self.version,
            intent=(query_result.get("intent") or {}).get("displayName"),
            action=query_result.get("action") or DEFAULT_ACTION,
            parameters=query_result.get("parameters") or {},
            contexts=[
                context_from_v2(ctx, self.session)
                for ctx in query_result.get("outputContexts") or []
            ],
            session=self.session,
            locale=self.locale,
            query=query_result.get("queryText"),
            request_source=self._request_source(original),
            original_request=original,
            alternative_query_results=self.body.get("alternativeQueryResults"),
        )
        request.console_messages = self.parse_console_messages(
            query_result.get("fulfillmentMessages")
        )

        self.log.debug("Intent: %s", request.intent)
        self.log.debug("Action: %s", request.action)
        self.log.debug("v2 Session: %s", request.session)
        self.log.debug("Parameters: %s", request.parameters)
        self.log.debug("Request contexts: %s", request.contexts)
        self.log.debug("Request source: %s", request.request_source)
        self.log.debug("Original query: %s", request.query)
        return request

    @staticmethod
    def _request_source(original: Mapping[str, Any] | None) -> PlatformLike | None:
        if not original:
            return None
        payload = original.get("payload") or {}
        source = (
            original.get("source")
            or payload.get("source")
            or (payload.get("data") or {}).get("source")
        )
        return from_v1_name(source)

    def parse_console_message(self, message: Mapping[str, Any]) -> list[RichResponse]:
        platform = normalize(message.get("platform"))
        for key, value in message.items():
            if key in V2_CONSOLE_PARSERS:
                return V2_CONSOLE_PARSERS[key](value, platform)
        raise KeyError(f"no parser for message keys {sorted(message)}")

    def unpack_conversation(
        self, serialized: Mapping[str, Any]
    ) -> tuple[list[Context], Any]:
        contexts = [
            context_from_v2(ctx, self.session)
            for ctx in serialized.get("outputContexts") or []
        ]
        payload = (serialized.get("payload") or {}).get("google")
        return contexts, payload

    def _text_body(self, text: Text) -> dict[str, Any]:
        return {"fulfillmentText": text.spoken}

    def _render(
        self, item: RichResponse, source: PlatformLike | None
    ) -> dict[str, Any] | None:
        return item.to_v2_message(source)

    def _contexts_out(self, contexts: ContextStore) -> list[dict[str, Any]]:
        return contexts.to_v2_array()

    def _followup_body(self, event: FollowupEvent) -> dict[str, Any]:
        followup: dict[str, Any] = {"name": event.name}
        if event.parameters:
            followup["parameters"] = event.parameters
        followup["languageCode"] = event.language_code or self.locale
        return {"followupEventInput": followup}

    def _finish_rich_body(self, body: dict[str, Any]) -> None:
        if self.PAYLOAD_KEY in body:
            body.setdefault("fulfillmentText", "")

    def _mark_ended(self, body: dict[str, Any]) -> None:
        body["triggerEndOfConversation"] = True
