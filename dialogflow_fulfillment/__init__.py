"""Dialogflow webhook fulfillment library.

WHY: Dialogflow calls fulfillment webhooks with two incompatible request
schemas (API v1 and v2) and expects replies shaped per API version and
per messaging platform. Handler code should not have to know any of
that: it reads the matched intent and adds responses.

HOW: Three layers. ``responses`` holds the rich response variants and
how each renders per version and platform, ``agents`` reads and writes
each API version's JSON, and ``client.WebhookClient`` ties them to one
request. ``server`` binds the client to FastAPI.

RULES:
- Handler code only needs WebhookClient and the response classes
- The library never configures logging; applications do
"""

import logging

from dialogflow_fulfillment.client import WebhookClient
from dialogflow_fulfillment.core.contexts import Context
from dialogflow_fulfillment.platforms import Platform
from dialogflow_fulfillment.responses import Card, Image, Payload, Suggestion, Text

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Card",
    "Context",
    "Image",
    "Payload",
    "Platform",
    "Suggestion",
    "Text",
    "WebhookClient",
]
