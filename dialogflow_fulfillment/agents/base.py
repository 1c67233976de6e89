"""Abstract webhook API agent: one subclass per API version.

WHY: The v1 and v2 webhook APIs carry the same information under
different keys and expect the same response in different shapes. The
client must not care which one it is talking to, and fixes to the shared
response-assembly rules must land in both versions at once.

HOW: BaseAgent owns the version-independent parts: choosing between the
plain-text shortcut and the rich message list, attaching the payload
envelope, and refusing to send an empty response. Subclasses supply the
version-specific pieces through small hooks:

  parse_request()        inbound body  -> FulfillmentRequest
  _text_body()           the single-Text shortcut shape
  _render()              one RichResponse -> message dict or None
  _contexts_out()        ContextStore -> outgoing context array
  _followup_body()       FollowupEvent -> top-level fields
  unpack_conversation()  Conversation.serialize() -> (contexts, payload)
  parse_console_message() one console message -> RichResponse list

RULES:
- Agents never touch the response buffer; the client hands it in
- build_response() is pure; send() is the only method with a side effect
- Console messages that cannot be converted are skipped, never raised
- Subclasses MUST set ``version``, ``MESSAGES_KEY``, ``PAYLOAD_KEY`` and
  ``CONTEXTS_KEY``
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from dialogflow_fulfillment.errors import (
    ConstructionError,
    FulfillmentError,
    NoResponsesDefinedError,
    UnsupportedOperationError,
)
from dialogflow_fulfillment.platforms import Platform, normalize, to_v1_name
from dialogflow_fulfillment.responses import Payload, RichResponse, Suggestion, Text

if TYPE_CHECKING:
    from dialogflow_fulfillment.core.contexts import Context, ContextStore
    from dialogflow_fulfillment.core.request import FollowupEvent, FulfillmentRequest
    from dialogflow_fulfillment.platforms import PlatformLike

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Abstract base for the v1 and v2 agents.

    To support another webhook API version:
    1. Create a new module in agents/
    2. Subclass BaseAgent and implement every abstract hook
    3. Register it in AGENTS in agents/__init__.py and teach
       detect_version() its discriminating key
    """

    version: int
    MESSAGES_KEY: str
    PAYLOAD_KEY: str
    CONTEXTS_KEY: str
    SUPPORTS_END_CONVERSATION = False

    def __init__(
        self,
        body: Mapping[str, Any],
        log: logging.Logger | None = None,
    ) -> None:
        self.body = body
        self.log = log or logger

    # -------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------

    @classmethod
    @abstractmethod
    def matches(cls, body: Mapping[str, Any]) -> bool:
        """True when ``body`` is a request in this agent's API version."""

    @abstractmethod
    def parse_request(self) -> FulfillmentRequest:
        """Read the inbound body into the normalized request model."""

    @abstractmethod
    def parse_console_message(
        self, message: Mapping[str, Any]
    ) -> list[RichResponse]:
        """Convert one console-defined message into response items.

        Raises:
            KeyError: the message type has no parser.
            FulfillmentError, TypeError: the message cannot be converted.
        """

    def parse_console_messages(
        self, messages: Sequence[Mapping[str, Any]] | None
    ) -> list[RichResponse]:
        """Convert console messages, skipping any that cannot be converted."""
        parsed: list[RichResponse] = []
        for message in messages or []:
            try:
                parsed.extend(self.parse_console_message(message))
            except (KeyError, TypeError, FulfillmentError) as exc:
                self.log.debug("Skipping console message %r: %s", message, exc)
        return parsed

    @abstractmethod
    def unpack_conversation(
        self, serialized: Mapping[str, Any]
    ) -> tuple[list[Context], Any]:
        """Split a serialized conversation into (contexts, google payload)."""

    # -------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------

    def ensure_end_supported(self) -> None:
        if not self.SUPPORTS_END_CONVERSATION:
            raise UnsupportedOperationError(
                f"end() is only supported in webhook API v2, "
                f"this request is v{self.version}"
            )

    def build_response(
        self,
        messages: Sequence[RichResponse],
        source: PlatformLike | None,
        contexts: ContextStore,
        followup_event: FollowupEvent | None = None,
        end_conversation: bool = False,
    ) -> dict[str, Any]:
        """Assemble the webhook response body for ``source``.

        Raises:
            NoResponsesDefinedError: nothing renders for ``source`` and
                there is neither a payload nor a followup event.
        """
        if (
            len(messages) == 1
            and isinstance(messages[0], Text)
            and messages[0].renders_for(source)
        ):
            body = self._text_body(messages[0])
        else:
            body = {}
            rendered = [
                message
                for message in (self._render(item, source) for item in messages)
                if message is not None
            ]
            payload = find_payload(messages, source)
            if rendered:
                body[self.MESSAGES_KEY] = rendered
            if payload is not None:
                body[self.PAYLOAD_KEY] = payload.envelope(source)
            if not rendered and payload is None and followup_event is None:
                raise NoResponsesDefinedError(source)
            self._finish_rich_body(body)

        body[self.CONTEXTS_KEY] = self._contexts_out(contexts)
        if followup_event is not None:
            body.update(self._followup_body(followup_event))
        if end_conversation:
            self.ensure_end_supported()
            self._mark_ended(body)
        return body

    def send(self, response: Any, body: dict[str, Any]) -> None:
        """Hand the assembled body to the outbound transport."""
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("Response to Dialogflow: %s", json.dumps(body))
        response.send_json(body)

    @abstractmethod
    def _text_body(self, text: Text) -> dict[str, Any]:
        """Top-level fields for a response holding exactly one Text."""

    @abstractmethod
    def _render(
        self, item: RichResponse, source: PlatformLike | None
    ) -> dict[str, Any] | None:
        """One buffered item in this version's message shape."""

    @abstractmethod
    def _contexts_out(self, contexts: ContextStore) -> list[dict[str, Any]]:
        """The outgoing context array for this version."""

    @abstractmethod
    def _followup_body(self, event: FollowupEvent) -> dict[str, Any]:
        """Top-level fields that trigger ``event``."""

    def _finish_rich_body(self, body: dict[str, Any]) -> None:
        """Version-specific fixups of a rich (non-shortcut) body."""

    def _mark_ended(self, body: dict[str, Any]) -> None:
        """Add the end-of-conversation marker to ``body``."""


def _payload_target(platform: PlatformLike | None) -> PlatformLike | None:
    """None and UNSPECIFIED both mean "no particular integration"."""
    platform = normalize(platform)
    return None if platform is Platform.UNSPECIFIED else platform


def find_payload(
    messages: Sequence[RichResponse], platform: PlatformLike | None
) -> Payload | None:
    """The buffered Payload for ``platform``, if one was added.

    A payload pinned to UNSPECIFIED answers a request with no source, and
    the other way round.
    """
    target = _payload_target(platform)
    for item in messages:
        if isinstance(item, Payload) and _payload_target(item.platform) == target:
            return item
    return None


def unwrap_payload(payload: Any, platform: PlatformLike | None) -> Any:
    """Strip the platform key a console payload message is wrapped in."""
    key = to_v1_name(platform)
    if isinstance(payload, Mapping) and key is not None and key in payload:
        return payload[key]
    return payload


def suggestion_from_replies(
    replies: Sequence[str] | None, platform: PlatformLike | None
) -> list[RichResponse]:
    """One Suggestion holding every reply, as console quick replies are shown."""
    if not replies:
        raise ConstructionError("Console suggestions message has no replies")
    suggestion = Suggestion(replies[0], platform=platform)
    for reply in replies[1:]:
        suggestion.add_reply(reply)
    return [suggestion]


def texts_from(
    values: Any, platform: PlatformLike | None
) -> list[RichResponse]:
    """Text items for a console text value (one string or a list)."""
    if isinstance(values, str) or values is None:
        values = [values]
    return [Text(value, platform=platform) for value in values]
