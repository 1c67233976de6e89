"""Tests for WebhookClient: the handler-facing facade.

WHY: This is the surface handler authors use. The tests walk whole
request/response cycles: a realistic inbound body, a handler that adds
responses and edits contexts, and the exact JSON the recorder receives.

HOW: ``make_client`` from conftest.py builds a client around a body and
returns the JSONResponseRecorder next to it. Async entry points are
driven with asyncio.run(), as the CLI does.

RULES:
- Expected bodies are complete dicts, not key spot-checks
- Every sent body is validated against its version's schema
"""

import asyncio
from unittest.mock import MagicMock

import jsonschema
import pytest

from dialogflow_fulfillment import Card, Image, Payload, Platform, Suggestion, Text
from dialogflow_fulfillment.client import ClientState, WebhookClient
from dialogflow_fulfillment.core.contexts import Context
from dialogflow_fulfillment.errors import (
    ConstructionError,
    DuplicatePayloadError,
    MissingRequestError,
    MissingResponseError,
    NoHandlerError,
    NoResponsesDefinedError,
    ResponseAlreadySentError,
    UnknownDialectError,
    UnsupportedOperationError,
)
from dialogflow_fulfillment.server.transport import InboundRequest, JSONResponseRecorder

from conftest import DIALECTS, V2_SESSION, WEATHER_INTENT

V1_DIALECT, V2_DIALECT = DIALECTS

IMAGE_URL = "https://example.com/stockholm.png"


def _run(agent, handler):
    asyncio.run(agent.handle_request(handler))


def _facebook_v2_body(v2_body):
    """v2 request whose source is only given as payload.data.source."""
    body = v2_body(intent="Default Welcome Intent", contexts=[])
    body["originalDetectIntentRequest"] = {"payload": {"data": {"source": "facebook"}}}
    return body


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_missing_request(self, recorder):
        with pytest.raises(MissingRequestError):
            WebhookClient(None, recorder)

    def test_missing_response(self, v2_body):
        with pytest.raises(MissingResponseError):
            WebhookClient(InboundRequest(body=v2_body()), None)

    def test_unknown_body(self, recorder):
        with pytest.raises(UnknownDialectError):
            WebhookClient(InboundRequest(body={"hello": "world"}), recorder)

    def test_request_fields(self, make_client, v2_body):
        agent, _ = make_client(v2_body(source="google"))
        assert agent.agent_version == 2
        assert agent.intent == WEATHER_INTENT
        assert agent.session == V2_SESSION
        assert agent.locale == "en"
        assert agent.request_source is Platform.ACTIONS_ON_GOOGLE
        assert agent.original_request["source"] == "google"
        assert agent.state is ClientState.CONSTRUCTED

    def test_platform_constants(self):
        assert WebhookClient.FACEBOOK is Platform.FACEBOOK
        assert WebhookClient.ACTIONS_ON_GOOGLE is Platform.VOICE_ASSISTANT

    def test_custom_logger(self, v1_body, recorder):
        log = MagicMock()
        WebhookClient(InboundRequest(body=v1_body()), recorder, logger=log)
        assert log.debug.called


# ---------------------------------------------------------------------------
# Full request/response cycles
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_facebook_welcome_v2(self, make_client, v2_body):
        agent, recorder = make_client(_facebook_v2_body(v2_body))
        _run(agent, {"Default Welcome Intent": lambda a: a.add("Welcome!")})
        assert recorder.body == {"fulfillmentText": "Welcome!", "outputContexts": []}
        assert recorder.status_code == 200
        assert agent.state is ClientState.SENT

    def test_google_image_only_v1_gets_spoken_placeholder(self, make_client, v1_body):
        agent, recorder = make_client(v1_body(source="google"))
        _run(agent, lambda a: a.add(Image(IMAGE_URL)))
        jsonschema.validate(recorder.body, V1_DIALECT.schema())
        assert recorder.body == {
            "messages": [
                {
                    "type": "simple_response",
                    "platform": "google",
                    "textToSpeech": " ",
                    "displayText": " ",
                },
                {
                    "type": "basic_card",
                    "platform": "google",
                    "image": {"url": IMAGE_URL, "accessibilityText": "accessibility text"},
                },
            ],
            "contextOut": [],
        }

    def test_google_payload_suppresses_placeholder(self, make_client, v2_body):
        agent, recorder = make_client(v2_body(source="google"))
        _run(agent, lambda a: a.add([
            Card("Forecast"),
            Payload(Platform.ACTIONS_ON_GOOGLE, {"expectUserResponse": True}),
        ]))
        messages = recorder.body["fulfillmentMessages"]
        assert len(messages) == 1
        assert "basicCard" in messages[0]
        assert recorder.body["payload"] == {"google": {"expectUserResponse": True}}

    def test_payload_only_v2(self, make_client, v2_body):
        agent, recorder = make_client(v2_body(source="facebook"))
        _run(agent, lambda a: a.add(Payload(Platform.FACEBOOK, {"text": "Hi"})))
        jsonschema.validate(recorder.body, V2_DIALECT.schema())
        assert recorder.body == {
            "fulfillmentText": "",
            "payload": {"facebook": {"text": "Hi"}},
            "outputContexts": [],
        }

    def test_unknown_source_passes_through(self, make_client, v2_body):
        agent, recorder = make_client(v2_body(source="twitter"))
        _run(agent, lambda a: a.add([Text("a"), Payload("twitter", {"tweet": "a"})]))
        assert agent.request_source == "twitter"
        assert recorder.body["payload"] == {"twitter": {"tweet": "a"}}
        assert recorder.body["fulfillmentMessages"] == [{"text": {"text": ["a"]}}]

    def test_rich_slack_v1(self, make_client, v1_body):
        agent, recorder = make_client(v1_body(source="slack"))

        def handler(a):
            a.add("Here is the forecast")
            a.add(Card(title="Stockholm", text="Sunny", platform=Platform.SLACK))
            a.add(Suggestion("Tomorrow"))
            a.add(Suggestion("Next week"))
            a.set_context({"name": "forecast", "parameters": {"days": 1}})

        _run(agent, handler)
        jsonschema.validate(recorder.body, V1_DIALECT.schema())
        assert recorder.body == {
            "messages": [
                {"type": 0, "platform": "slack", "speech": "Here is the forecast"},
                {
                    "type": 1,
                    "title": "Stockholm",
                    "subtitle": "Sunny",
                    "buttons": [],
                    "platform": "slack",
                },
                {"type": 2, "replies": ["Tomorrow", "Next week"], "platform": "slack"},
            ],
            "contextOut": [{"name": "forecast", "lifespan": 5, "parameters": {"days": 1}}],
        }


# ---------------------------------------------------------------------------
# Handler dispatch
# ---------------------------------------------------------------------------


class TestHandleRequest:
    def test_no_handler_sets_400_and_raises(self, make_client, v2_body):
        agent, recorder = make_client(v2_body())
        with pytest.raises(NoHandlerError) as excinfo:
            _run(agent, {"other intent": lambda a: a.add("x")})
        assert excinfo.value.intent == WEATHER_INTENT
        assert recorder.status_code == 400
        assert recorder.body is None

    def test_fallback_handler(self, make_client, v2_body):
        agent, recorder = make_client(v2_body())
        _run(agent, {"other intent": lambda a: a.add("x"), None: lambda a: a.add("fallback")})
        assert recorder.body["fulfillmentText"] == "fallback"

    def test_async_handler_is_awaited(self, make_client, v1_body):
        agent, recorder = make_client(v1_body())

        async def handler(a):
            await asyncio.sleep(0)
            a.add("done")

        _run(agent, handler)
        assert recorder.body["speech"] == "done"

    def test_invalid_handler_type(self, make_client, v1_body):
        agent, _ = make_client(v1_body())
        with pytest.raises(TypeError):
            _run(agent, "not a handler")

    def test_handler_that_adds_nothing(self, make_client, v1_body):
        agent, recorder = make_client(v1_body())
        with pytest.raises(NoResponsesDefinedError):
            _run(agent, lambda a: None)
        assert recorder.body is None


# ---------------------------------------------------------------------------
# Response buffer
# ---------------------------------------------------------------------------


class TestAdd:
    def test_strings_become_text(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.add(["one", "two"])
        assert [type(m) for m in agent.messages] == [Text, Text]
        assert agent.state is ClientState.RESPONDING

    def test_suggestions_merge_per_platform(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.add([
            Suggestion("a"),
            Suggestion("b", platform=Platform.FACEBOOK),
            Suggestion("c"),
            Suggestion("d", platform=Platform.FACEBOOK),
        ])
        suggestions = agent.messages
        assert len(suggestions) == 2
        assert suggestions[0].replies == ["a", "c"]
        assert suggestions[1].replies == ["b", "d"]

    def test_duplicate_payload(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.add(Payload(Platform.SLACK, {"a": 1}))
        agent.add(Payload(Platform.FACEBOOK, {"a": 1}))
        with pytest.raises(DuplicatePayloadError):
            agent.add(Payload(Platform.SLACK, {"b": 2}))

    def test_unspecified_payloads_are_one_target(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.add(Payload(Platform.UNSPECIFIED, {"a": 1}))
        with pytest.raises(DuplicatePayloadError):
            agent.add(Payload("PLATFORM_UNSPECIFIED", {"b": 2}))

    def test_unknown_type(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        with pytest.raises(TypeError):
            agent.add(42)

    def test_messages_is_a_copy(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.add("a")
        agent.messages.append(Text("b"))
        assert len(agent.messages) == 1

    def test_add_after_send(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        _run(agent, lambda a: a.add("a"))
        with pytest.raises(ResponseAlreadySentError):
            agent.add("b")
        with pytest.raises(ResponseAlreadySentError):
            agent.send()
        with pytest.raises(ResponseAlreadySentError):
            agent.set_context("late")


class TestEndAndFollowup:
    def test_end_v2(self, make_client, v2_body):
        agent, recorder = make_client(v2_body())
        _run(agent, lambda a: a.end("Goodbye"))
        assert recorder.body == {
            "fulfillmentText": "Goodbye",
            "outputContexts": [],
            "triggerEndOfConversation": True,
        }

    def test_end_v1_unsupported(self, make_client, v1_body):
        agent, _ = make_client(v1_body())
        with pytest.raises(UnsupportedOperationError):
            agent.end("Goodbye")
        assert agent.messages == []

    def test_followup_only_v2(self, make_client, v2_body):
        agent, recorder = make_client(v2_body())
        _run(agent, lambda a: a.set_followup_event({"name": "rain", "parameters": {"mm": 3}}))
        jsonschema.validate(recorder.body, V2_DIALECT.schema())
        assert recorder.body == {
            "outputContexts": [],
            "followupEventInput": {"name": "rain", "parameters": {"mm": 3}, "languageCode": "en"},
        }

    def test_followup_v1(self, make_client, v1_body):
        agent, recorder = make_client(v1_body())
        _run(agent, lambda a: a.add("ok").set_followup_event("rain"))
        assert recorder.body["followupEvent"] == {"name": "rain"}

    def test_invalid_followup(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        with pytest.raises(ConstructionError):
            agent.set_followup_event({"parameters": {}})


# ---------------------------------------------------------------------------
# Contexts through the client
# ---------------------------------------------------------------------------


class TestClientContexts:
    def test_get_context_reads_inbound(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        assert agent.get_context("weather") == Context("weather", 2, {"city": "Stockholm"})
        assert agent.get_context("missing") is None

    def test_get_context_ignores_outgoing_changes(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.set_context("forecast")
        assert agent.get_context("forecast") is None
        assert agent.context.get("forecast").lifespan == 5

    def test_v2_body_without_session_sends_short_names(self, make_client, v2_body):
        body = v2_body()
        del body["session"]
        agent, recorder = make_client(body)

        def handler(a):
            a.set_context(Context("forecast", lifespan=1))
            a.add("ok")

        _run(agent, handler)
        assert recorder.body["outputContexts"] == [{"name": "forecast", "lifespanCount": 1}]

    def test_set_context_keeps_explicit_lifespan(self, make_client, v2_body):
        agent, recorder = make_client(v2_body())
        agent.set_context(Context("forecast", lifespan=1))
        _run(agent, lambda a: a.add("ok"))
        assert recorder.body["outputContexts"] == [
            {"name": V2_SESSION + "/contexts/forecast", "lifespanCount": 1}
        ]

    def test_set_context_requires_name(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        with pytest.raises(ValueError):
            agent.set_context({"lifespan": 2})
        with pytest.raises(ValueError):
            agent.set_context(None)

    def test_clear_context(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.set_context("forecast")
        agent.clear_context("forecast")
        agent.clear_context(V2_SESSION + "/contexts/weather")
        assert "forecast" not in agent.context
        assert "weather" not in agent.context

    def test_clear_context_exact_name_only(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.set_context("weather_extra")
        agent.clear_context("extra")
        assert "weather_extra" in agent.context

    def test_delete_via_store_sends_zero_lifespan(self, make_client, v1_body):
        agent, recorder = make_client(v1_body())
        agent.context.delete("weather")
        _run(agent, lambda a: a.add("ok"))
        assert recorder.body["contextOut"] == [
            {"name": "weather", "lifespan": 0, "parameters": {"city": "Stockholm"}}
        ]

    def test_clear_outgoing_contexts(self, make_client, v2_body):
        agent, _ = make_client(v2_body())
        agent.set_context("forecast")
        agent.clear_outgoing_contexts()
        assert len(agent.context) == 0


# ---------------------------------------------------------------------------
# Voice-assistant conversation object
# ---------------------------------------------------------------------------


class FakeConversation:
    """Stands in for the external conversation library object."""

    def __init__(self, serialized):
        self._serialized = serialized

    def serialize(self):
        return self._serialized


class TestConversation:
    def test_conv_requires_voice_assistant_source(self, make_client, v2_body):
        factory = MagicMock()
        agent, _ = make_client(v2_body(source="facebook"), conversation_factory=factory)
        assert agent.conv() is None
        factory.assert_not_called()

    def test_conv_without_factory(self, make_client, v2_body):
        agent, _ = make_client(v2_body(source="google"))
        assert agent.conv() is None

    def test_conv_builds_from_body(self, make_client, v2_body):
        body = v2_body(source="google")
        factory = MagicMock(return_value="conversation")
        agent, _ = make_client(body, conversation_factory=factory)
        assert agent.conv() == "conversation"
        factory.assert_called_once_with(body)

    def test_add_conversation_v2(self, make_client, v2_body):
        agent, recorder = make_client(v2_body(source="google"))
        conversation = FakeConversation({
            "outputContexts": [
                {"name": V2_SESSION + "/contexts/_actions_on_google", "lifespanCount": 99,
                 "parameters": {"data": "{}"}},
            ],
            "payload": {"google": {"expectUserResponse": True, "richResponse": {"items": []}}},
        })
        _run(agent, lambda a: a.add(conversation))
        assert recorder.body == {
            "fulfillmentText": "",
            "payload": {"google": {"expectUserResponse": True, "richResponse": {"items": []}}},
            "outputContexts": [
                {"name": V2_SESSION + "/contexts/_actions_on_google", "lifespanCount": 99,
                 "parameters": {"data": "{}"}},
            ],
        }

    def test_add_conversation_v1(self, make_client, v1_body):
        agent, recorder = make_client(v1_body(source="google"))
        conversation = FakeConversation({
            "contextOut": [{"name": "_actions_on_google", "lifespan": 99}],
            "data": {"google": {"expectUserResponse": False}},
        })
        _run(agent, lambda a: a.add(conversation))
        assert recorder.body == {
            "data": {"google": {"expectUserResponse": False}},
            "contextOut": [{"name": "_actions_on_google", "lifespan": 99}],
        }


# ---------------------------------------------------------------------------
# Shared behavior across versions
# ---------------------------------------------------------------------------


class TestBothVersions:
    def test_send_validates_against_schema(self, dialect, make_client):
        agent, recorder = make_client(dialect.make_body(source=dialect.google_source))

        def handler(a):
            a.add(["Sunny in Stockholm", Card(title="Stockholm", image_url=IMAGE_URL)])
            a.add(Suggestion("Tomorrow"))
            a.set_context("forecast")
            a.context.delete("weather")

        _run(agent, handler)
        jsonschema.validate(recorder.body, dialect.schema())
        assert len(recorder.body[dialect.messages_key]) == 3
        assert len(recorder.body[dialect.contexts_key]) == 2

    def test_recorder_refuses_second_send(self):
        recorder = JSONResponseRecorder()
        recorder.send_json({})
        with pytest.raises(ResponseAlreadySentError):
            recorder.send_json({})

    def test_voice_assistant_card_gets_leading_placeholder(self, dialect, make_client):
        agent, recorder = make_client(dialect.make_body(source=dialect.google_source))
        _run(agent, lambda a: a.add(Card({"title": "t"})))
        jsonschema.validate(recorder.body, dialect.schema())
        first, card = recorder.body[dialect.messages_key]
        assert first == dialect.render(Text(" "), Platform.ACTIONS_ON_GOOGLE)
        assert card == dialect.render(Card("t"), Platform.ACTIONS_ON_GOOGLE)

    def test_unspecified_payload_answers_request_without_source(self, dialect, make_client):
        agent, recorder = make_client(dialect.make_body(source=None))
        _run(agent, lambda a: a.add(Payload(Platform.UNSPECIFIED, {"custom": 1})))
        jsonschema.validate(recorder.body, dialect.schema())
        assert recorder.body[dialect.payload_key] == {"PLATFORM_UNSPECIFIED": {"custom": 1}}
        assert dialect.messages_key not in recorder.body

    def test_empty_handler_map(self, dialect, make_client):
        agent, recorder = make_client(dialect.make_body())
        with pytest.raises(NoHandlerError):
            _run(agent, {})
        assert recorder.status_code == 400
