"""Shared test fixtures for the dialogflow_fulfillment test suite.

WHY: Almost every test needs a realistic Dialogflow webhook request in
one of the two API versions, from one of several platforms, and a
response object that records what the client sent. Centralizing them
keeps request shapes identical across test modules.

HOW: Module-level builders produce fresh request bodies; factory
fixtures hand them to tests. ``make_client`` wraps a body in an
InboundRequest, builds a WebhookClient with a JSONResponseRecorder and
returns both. ``dialect`` parametrizes a test over v1 and v2 with the
key names each version uses, so one test body checks both.

RULES:
- Bodies follow real Dialogflow webhook requests (v1 and v2 reference)
- Every builder call returns a new dict; tests may mutate it freely
- Sources: "google" (voice assistant), "slack", "facebook", and the
  unknown "twitter" that must pass through unchanged
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from dialogflow_fulfillment.client import WebhookClient
from dialogflow_fulfillment.server.transport import InboundRequest, JSONResponseRecorder

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"

# ---------------------------------------------------------------------------
# Request identifiers
# ---------------------------------------------------------------------------

V2_SESSION = "projects/weather-agent-1a2b3/agent/sessions/a1b2c3d4-5678-90ab-cdef-1234567890ab"
V1_SESSION_ID = "a1b2c3d4-5678-90ab-cdef-1234567890ab"

WEATHER_INTENT = "weather"
WEATHER_ACTION = "weather.current"
WEATHER_QUERY = "What is the weather in Stockholm?"
WEATHER_PARAMETERS = {"geo-city": "Stockholm", "date": ""}

V1_INBOUND_CONTEXTS: List[Dict[str, Any]] = [
    {"name": "weather", "lifespan": 2, "parameters": {"city": "Stockholm"}},
    {"name": "actions_capability_screen_output", "lifespan": 0, "parameters": {}},
]

V2_INBOUND_CONTEXTS: List[Dict[str, Any]] = [
    {
        "name": V2_SESSION + "/contexts/weather",
        "lifespanCount": 2,
        "parameters": {"city": "Stockholm"},
    },
    {
        "name": V2_SESSION + "/contexts/actions_capability_screen_output",
        "lifespanCount": 0,
        "parameters": {},
    },
]


# ---------------------------------------------------------------------------
# Request body builders
# ---------------------------------------------------------------------------


def make_v1_body(
    source: Optional[str] = None,
    intent: Optional[str] = WEATHER_INTENT,
    action: Optional[str] = WEATHER_ACTION,
    messages: Optional[List[Dict[str, Any]]] = None,
    contexts: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """A v1 webhook request (``result`` at the top level)."""
    body: Dict[str, Any] = {
        "id": "5a6fd6b6-4f1b-4e2e-9ad6-1c7a9a2e0bde",
        "timestamp": "2018-01-12T23:55:03.372Z",
        "lang": "en",
        "result": {
            "source": "agent",
            "resolvedQuery": WEATHER_QUERY,
            "action": action,
            "actionIncomplete": False,
            "parameters": dict(WEATHER_PARAMETERS),
            "contexts": copy.deepcopy(V1_INBOUND_CONTEXTS if contexts is None else contexts),
            "metadata": {
                "intentId": "1b2c3d4e-0000-1111-2222-333344445555",
                "webhookUsed": "true",
                "intentName": intent,
            },
            "fulfillment": {"speech": "", "messages": copy.deepcopy(messages or [])},
            "score": 1,
        },
        "status": {"code": 200, "errorType": "success"},
        "sessionId": V1_SESSION_ID,
    }
    if source is not None:
        body["originalRequest"] = {
            "source": source,
            "version": "2",
            "data": {"user": {"locale": "en-US"}, "conversation": {"type": "ACTIVE"}},
        }
    return body


def make_v2_body(
    source: Optional[str] = None,
    intent: Optional[str] = WEATHER_INTENT,
    action: Optional[str] = WEATHER_ACTION,
    messages: Optional[List[Dict[str, Any]]] = None,
    contexts: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """A v2 webhook request (``queryResult`` at the top level)."""
    query_result: Dict[str, Any] = {
        "queryText": WEATHER_QUERY,
        "parameters": dict(WEATHER_PARAMETERS),
        "allRequiredParamsPresent": True,
        "fulfillmentText": "",
        "fulfillmentMessages": copy.deepcopy(messages or []),
        "outputContexts": copy.deepcopy(V2_INBOUND_CONTEXTS if contexts is None else contexts),
        "intent": {
            "name": "projects/weather-agent-1a2b3/agent/intents/1b2c3d4e",
            "displayName": intent,
        },
        "intentDetectionConfidence": 1,
        "languageCode": "en",
    }
    if action is not None:
        query_result["action"] = action
    body: Dict[str, Any] = {
        "responseId": "e1d2c3b4-a596-8776-5544-332211009988",
        "queryResult": query_result,
        "session": V2_SESSION,
    }
    if source is not None:
        body["originalDetectIntentRequest"] = {
            "source": source,
            "version": "2",
            "payload": {"user": {"locale": "en-US"}},
        }
    return body


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def v1_body():
    """Factory for v1 request bodies: ``v1_body(source="google")``."""
    return make_v1_body


@pytest.fixture
def v2_body():
    """Factory for v2 request bodies: ``v2_body(source="facebook")``."""
    return make_v2_body


@pytest.fixture
def recorder():
    """A fresh outbound response that records send_json/set_status."""
    return JSONResponseRecorder()


@pytest.fixture
def make_client():
    """Build (WebhookClient, JSONResponseRecorder) around a request body."""

    def _make(body: Dict[str, Any], **kwargs: Any):
        recorder = JSONResponseRecorder()
        return WebhookClient(InboundRequest(body=body), recorder, **kwargs), recorder

    return _make


class Dialect:
    """Per-version names a shared test needs to check either response."""

    def __init__(
        self,
        version: int,
        make_body,
        messages_key: str,
        contexts_key: str,
        payload_key: str,
        google_source: str,
        schema_file: str,
    ) -> None:
        self.version = version
        self.make_body = make_body
        self.messages_key = messages_key
        self.contexts_key = contexts_key
        self.payload_key = payload_key
        self.google_source = google_source
        self.schema_file = schema_file

    def render(self, item, platform):
        if self.version == 1:
            return item.to_v1_message(platform)
        return item.to_v2_message(platform)

    def schema(self) -> Dict[str, Any]:
        with open(SCHEMA_DIR / self.schema_file) as f:
            return json.load(f)

    def __repr__(self) -> str:
        return "v{}".format(self.version)


DIALECTS = [
    Dialect(1, make_v1_body, "messages", "contextOut", "data", "google",
            "v1_webhook_response.json"),
    Dialect(2, make_v2_body, "fulfillmentMessages", "outputContexts", "payload", "google",
            "v2_webhook_response.json"),
]


@pytest.fixture(params=DIALECTS, ids=repr)
def dialect(request):
    """Run the test once per webhook API version."""
    return request.param
