"""Transport objects the WebhookClient talks to.

WHY: The client only needs an inbound object with a parsed JSON ``body``
and an outbound object with ``send_json`` and ``set_status``. Keeping
those two small objects framework-free lets the CLI replay saved
requests and lets tests inspect exactly what would have been sent.

HOW: InboundRequest is a plain dataclass. JSONResponseRecorder stores
the status code and body; the FastAPI route turns it into a
JSONResponse afterwards.

RULES:
- send_json may be called once; a second call raises
- status defaults to 200 and is only changed through set_status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dialogflow_fulfillment.errors import ResponseAlreadySentError


@dataclass
class InboundRequest:
    """A webhook request whose JSON body has already been parsed."""

    body: Any
    headers: Dict[str, str] = field(default_factory=dict)


class JSONResponseRecorder:
    """Outbound response that records what the client sends."""

    def __init__(self) -> None:
        self.status_code = 200
        self.body: Optional[Dict[str, Any]] = None
        self.sent = False

    def set_status(self, code: int) -> "JSONResponseRecorder":
        self.status_code = code
        return self

    def send_json(self, body: Dict[str, Any]) -> None:
        if self.sent:
            raise ResponseAlreadySentError("send_json called twice on one response")
        self.body = body
        self.sent = True
