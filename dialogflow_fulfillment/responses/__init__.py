"""Rich response variants.

WHY: Handler code imports every response type from one place:
``from dialogflow_fulfillment.responses import Card, Text``.

HOW: Each variant lives in its own module and subclasses RichResponse.

RULES:
- Every variant renders to both API versions
- Payload never renders as a message; it is sent through envelope()
"""

from __future__ import annotations

from dialogflow_fulfillment.responses.base import RichResponse
from dialogflow_fulfillment.responses.card import Card
from dialogflow_fulfillment.responses.image import Image
from dialogflow_fulfillment.responses.payload import Payload
from dialogflow_fulfillment.responses.suggestion import Suggestion
from dialogflow_fulfillment.responses.text import Text

__all__ = [
    "Card",
    "Image",
    "Payload",
    "RichResponse",
    "Suggestion",
    "Text",
]
