"""Webhook API version registry.

WHY: The client needs one lookup from "which API version sent this" to
the agent class that speaks it. A central dict keeps that lookup in one
place; adding a version means one new module and one line here.

HOW: AGENTS maps the API version number to the agent *class*. The
client calls detect_version() on the inbound body and instantiates
``AGENTS[version](body, logger)``.

RULES:
- v2 is checked before v1
- A body that is not a JSON object, or has neither discriminating key,
  raises UnknownDialectError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dialogflow_fulfillment.agents.v1 import V1Agent
from dialogflow_fulfillment.agents.v2 import V2Agent
from dialogflow_fulfillment.errors import UnknownDialectError

if TYPE_CHECKING:
    from dialogflow_fulfillment.agents.base import BaseAgent

AGENTS: dict[int, type[BaseAgent]] = {
    1: V1Agent,
    2: V2Agent,
}


def detect_version(body: Any) -> int:
    """Return the webhook API version of an inbound request body."""
    if isinstance(body, dict):
        for version in sorted(AGENTS, reverse=True):
            if AGENTS[version].matches(body):
                return version
    raise UnknownDialectError(
        "Invalid or unknown request type (not a Dialogflow v1 or v2 webhook request)."
    )


__all__ = ["AGENTS", "V1Agent", "V2Agent", "detect_version"]
