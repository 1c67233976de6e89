"""Normalized request dataclasses shared by both webhook API versions.

WHY: v1 keeps intent data under ``result`` and v2 under ``queryResult``,
with different names for the same fields. Handler code should read
``agent.intent`` or ``agent.locale`` without caring which version sent
the request. These dataclasses are that single form.

HOW: Three types:
  FulfillmentRequest: everything an agent extracts from the inbound body
  FollowupEvent:      an event the handler asks the platform to trigger
  Conversation:       protocol for the external voice-assistant
                       conversation object, only used through serialize()

RULES:
- FulfillmentRequest is filled once by an agent and read-only afterwards
- request_source is a Platform member when known, else the raw string
- console_messages are already converted into RichResponse objects
- FollowupEvent.name must be a non-empty string
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Protocol, runtime_checkable

from dialogflow_fulfillment.errors import ConstructionError

if TYPE_CHECKING:
    from dialogflow_fulfillment.core.contexts import Context
    from dialogflow_fulfillment.platforms import PlatformLike
    from dialogflow_fulfillment.responses.base import RichResponse


@dataclass
class FulfillmentRequest:
    """The inbound webhook request, normalized across API versions.

    RULES:
    - version: 1 or 2
    - intent: display name of the matched intent, or None
    - parameters: always a dict (empty when the request has none)
    - contexts: inbound contexts with short names, in request order
    - session: v2 session path, or v1 sessionId
    - original_request: platform request as sent, v1 ``data`` renamed ``payload``
    """

    version: int
    intent: str | None = None
    action: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    contexts: list[Context] = field(default_factory=list)
    session: str | None = None
    locale: str | None = None
    query: str | None = None
    request_source: PlatformLike | None = None
    original_request: dict[str, Any] | None = None
    console_messages: list[RichResponse] = field(default_factory=list)
    alternative_query_results: list[dict[str, Any]] | None = None


@dataclass
class FollowupEvent:
    """An event to trigger after this response.

    v2 requires language_code; the v2 agent fills it from the request
    locale when it is left unset.
    """

    name: str
    parameters: dict[str, Any] | None = None
    language_code: str | None = None

    @classmethod
    def coerce(cls, event: str | Mapping[str, Any] | FollowupEvent) -> FollowupEvent:
        """Build an event from a name, a mapping, or an existing event."""
        if isinstance(event, FollowupEvent):
            return event
        if isinstance(event, str) and event:
            return cls(name=event)
        if isinstance(event, Mapping):
            name = event.get("name")
            if isinstance(name, str) and name:
                return cls(
                    name=name,
                    parameters=event.get("parameters"),
                    language_code=event.get("languageCode", event.get("language_code")),
                )
        raise ConstructionError(
            "Followup event must be a string or have a name string"
        )


@runtime_checkable
class Conversation(Protocol):
    """The voice-assistant conversation object handed to ``agent.add``.

    Its serialize() returns the webhook response the external library
    would have sent: ``{"outputContexts": [...], "payload": {"google": ...}}``
    for v2, ``{"contextOut": [...], "data": {"google": ...}}`` for v1.
    """

    def serialize(self) -> dict[str, Any]: ...
