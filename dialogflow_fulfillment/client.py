"""WebhookClient: the object fulfillment handlers work with.

WHY: A handler should read ``agent.intent`` and call ``agent.add(...)``
without knowing which webhook API version sent the request, which
platform it came from, or how that platform wants its JSON. The client
is that single facade over the agents, the response buffer and the
context store.

HOW: The constructor detects the API version, builds the matching agent
from the registry and lets it parse the request. Handlers mutate the
response buffer (add) and the context store (``context``).
handle_request() runs a handler, awaits it if needed, then send() asks
the agent to assemble the body and hands it to the outbound transport.

RULES:
- State moves CONSTRUCTED -> RESPONDING -> SENT and never back
- After SENT every mutation and send raises ResponseAlreadySentError
- Suggestions for the same platform (or both unpinned) merge into one item
- At most one Payload per platform
- The voice assistant needs a spoken line first: a single-space Text is
  prepended when the first item is not Text and there is no voice
  assistant Payload
- An unmatched intent sets HTTP 400 on the response, then raises
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from dialogflow_fulfillment.agents import AGENTS, detect_version
from dialogflow_fulfillment.agents.base import find_payload
from dialogflow_fulfillment.config import DEFAULT_CONTEXT_LIFESPAN
from dialogflow_fulfillment.core.contexts import Context, ContextStore, short_context_name
from dialogflow_fulfillment.core.request import (
    Conversation,
    FollowupEvent,
    FulfillmentRequest,
)
from dialogflow_fulfillment.errors import (
    DuplicatePayloadError,
    MissingRequestError,
    MissingResponseError,
    NoHandlerError,
    ResponseAlreadySentError,
)
from dialogflow_fulfillment.platforms import Platform, PlatformLike
from dialogflow_fulfillment.responses import Payload, RichResponse, Suggestion, Text

RESPONSE_CODE_BAD_REQUEST = 400

Handler = Callable[["WebhookClient"], Any]
HandlerMap = Mapping[Optional[str], Handler]
ResponseLike = Union[str, RichResponse, Conversation]


class ClientState(str, Enum):
    CONSTRUCTED = "constructed"
    RESPONDING = "responding"
    SENT = "sent"


class WebhookClient:
    """Facade over one webhook request and its response.

    Usage::

        async def welcome(agent):
            agent.add("Welcome!")
            agent.add(Suggestion("Help"))

        agent = WebhookClient(request, response)
        await agent.handle_request({"Default Welcome Intent": welcome})

    Args:
        request: Inbound transport object with a parsed JSON ``body``.
        response: Outbound transport object with ``send_json(body)`` and
                  ``set_status(code)``.
        logger: Logger for request/response tracing; defaults to this
                module's logger.
        conversation_factory: Builds the voice-assistant conversation
                  object from the request body, for conv().
    """

    UNSPECIFIED = Platform.UNSPECIFIED
    FACEBOOK = Platform.FACEBOOK
    SLACK = Platform.SLACK
    TELEGRAM = Platform.TELEGRAM
    KIK = Platform.KIK
    SKYPE = Platform.SKYPE
    LINE = Platform.LINE
    VIBER = Platform.VIBER
    ACTIONS_ON_GOOGLE = Platform.ACTIONS_ON_GOOGLE

    def __init__(
        self,
        request: Any,
        response: Any,
        *,
        logger: logging.Logger | None = None,
        conversation_factory: Callable[[dict[str, Any]], Any] | None = None,
    ) -> None:
        if request is None:
            raise MissingRequestError("Request can NOT be empty.")
        if response is None:
            raise MissingResponseError("Response can NOT be empty.")

        self.log = logger or logging.getLogger(__name__)
        self.request_ = request
        self.response_ = response
        self._conversation_factory = conversation_factory

        body = getattr(request, "body", None)
        version = detect_version(body)
        self.log.debug("Webhook request version %d", version)

        self._agent = AGENTS[version](body, self.log)
        self._request: FulfillmentRequest = self._agent.parse_request()
        self.context = ContextStore(self._request.contexts, session=self._request.session)

        self._messages: list[RichResponse] = []
        self._followup_event: FollowupEvent | None = None
        self._end_conversation = False
        self.state = ClientState.CONSTRUCTED

    # -------------------------------------------------------------------
    # Request fields
    # -------------------------------------------------------------------

    @property
    def agent_version(self) -> int:
        return self._request.version

    @property
    def intent(self) -> str | None:
        return self._request.intent

    @property
    def action(self) -> str | None:
        return self._request.action

    @property
    def parameters(self) -> dict[str, Any]:
        return self._request.parameters

    @property
    def contexts(self) -> list[Context]:
        """Inbound contexts, as the request carried them."""
        return self._request.contexts

    @property
    def session(self) -> str | None:
        return self._request.session

    @property
    def locale(self) -> str | None:
        return self._request.locale

    @property
    def query(self) -> str | None:
        return self._request.query

    @property
    def request_source(self) -> PlatformLike | None:
        return self._request.request_source

    @property
    def original_request(self) -> dict[str, Any] | None:
        return self._request.original_request

    @property
    def console_messages(self) -> list[RichResponse]:
        return self._request.console_messages

    @property
    def alternative_query_results(self) -> list[dict[str, Any]] | None:
        return self._request.alternative_query_results

    @property
    def messages(self) -> list[RichResponse]:
        """The response buffer, in the order items were added."""
        return list(self._messages)

    # -------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------

    def add(self, responses: ResponseLike | Sequence[ResponseLike]) -> WebhookClient:
        """Buffer one response, or each response of a list, for sending.

        Strings become Text. A voice-assistant conversation object is
        folded into contexts and a voice-assistant Payload.

        Raises:
            TypeError: an item is not a response, string or conversation.
            DuplicatePayloadError: a Payload for the platform already exists.
            ResponseAlreadySentError: the response was already sent.
        """
        self._begin_responding()
        if isinstance(responses, (list, tuple)):
            for response in responses:
                self._add_one(response)
        else:
            self._add_one(responses)
        return self

    def _add_one(self, response: ResponseLike) -> None:
        if isinstance(response, str):
            response = Text(response)

        if isinstance(response, Suggestion):
            existing = self._existing_suggestion(response.platform)
            if existing is not None:
                existing.merge(response)
                return
        elif isinstance(response, Payload):
            if find_payload(self._messages, response.platform) is not None:
                raise DuplicatePayloadError(response.platform)

        if isinstance(response, RichResponse):
            self._messages.append(response)
        elif isinstance(response, Conversation):
            self._add_conversation(response)
        else:
            raise TypeError(f"Unknown response type: {response!r}")

    def _add_conversation(self, conversation: Conversation) -> None:
        contexts, payload = self._agent.unpack_conversation(conversation.serialize())
        for ctx in contexts:
            self.context.set(ctx)
        if payload:
            self._add_one(Payload(Platform.ACTIONS_ON_GOOGLE, payload))

    def _existing_suggestion(self, platform: PlatformLike | None) -> Suggestion | None:
        for item in self._messages:
            if isinstance(item, Suggestion) and item.platform == platform:
                return item
        return None

    def end(self, responses: ResponseLike | Sequence[ResponseLike] | None = None) -> WebhookClient:
        """Add ``responses`` and close the conversation after this reply.

        Raises:
            UnsupportedOperationError: the request is webhook API v1.
        """
        self._ensure_not_sent()
        self._agent.ensure_end_supported()
        if responses is not None:
            self.add(responses)
        self._end_conversation = True
        return self

    def set_followup_event(
        self, event: str | Mapping[str, Any] | FollowupEvent
    ) -> WebhookClient:
        """Trigger ``event`` after this response instead of waiting for input."""
        self._ensure_not_sent()
        self._followup_event = FollowupEvent.coerce(event)
        return self

    # -------------------------------------------------------------------
    # Contexts
    # -------------------------------------------------------------------

    def set_context(self, context: str | Mapping[str, Any] | Context) -> WebhookClient:
        """Set an outgoing context; lifespan defaults to DEFAULT_CONTEXT_LIFESPAN."""
        self._ensure_not_sent()
        if isinstance(context, str):
            context = Context(name=context)
        elif isinstance(context, Mapping):
            context = Context(
                name=context.get("name"),
                lifespan=context.get("lifespan", context.get("lifespanCount")),
                parameters=context.get("parameters"),
            )
        elif not isinstance(context, Context):
            raise ValueError("context must be provided and must have a name")
        lifespan = context.lifespan
        if lifespan is None:
            lifespan = DEFAULT_CONTEXT_LIFESPAN
        self.context.set(context.name, lifespan, context.parameters)
        return self

    def clear_context(self, name: str) -> WebhookClient:
        """Drop the named context from the outgoing set (exact name match)."""
        self._ensure_not_sent()
        self.context.remove(short_context_name(name, self.session))
        return self

    def clear_outgoing_contexts(self) -> WebhookClient:
        self._ensure_not_sent()
        self.context.clear()
        return self

    def get_context(self, name: str) -> Context | None:
        """The inbound context called ``name``, or None."""
        for ctx in self._request.contexts:
            if ctx.name == name:
                return ctx
        return None

    # -------------------------------------------------------------------
    # Voice assistant
    # -------------------------------------------------------------------

    def conv(self) -> Any:
        """The voice-assistant conversation object, or None.

        Only available when the request came from the voice assistant and
        a conversation_factory was given to the constructor.
        """
        if self.request_source is not Platform.ACTIONS_ON_GOOGLE:
            return None
        if self._conversation_factory is None:
            self.log.debug("conv() called without a conversation_factory")
            return None
        return self._conversation_factory(self._agent.body)

    # -------------------------------------------------------------------
    # Dispatch and send
    # -------------------------------------------------------------------

    async def handle_request(self, handler: Handler | HandlerMap) -> None:
        """Run the handler for this request, then send the response.

        ``handler`` is either one callable taking the client, or a mapping
        of intent display name to callable with an optional ``None`` key
        as the fallback. Awaitable handler results are awaited first.

        Raises:
            NoHandlerError: the mapping has no entry for the intent and no
                fallback; the response status is set to 400 first.
            TypeError: handler is neither callable nor a mapping.
        """
        if callable(handler):
            selected = handler
        elif isinstance(handler, Mapping):
            selected = handler.get(self.intent)
            if selected is None:
                selected = handler.get(None)
            if selected is None:
                self.log.warning("No handler for requested intent: %s", self.intent)
                self.response_.set_status(RESPONSE_CODE_BAD_REQUEST)
                raise NoHandlerError(self.intent)
        else:
            raise TypeError(
                "handle_request requires a callable or a mapping of intent "
                "names to callables"
            )

        self._begin_responding()
        result = selected(self)
        if inspect.isawaitable(result):
            await result
        self.send()

    def send(self) -> None:
        """Serialize the buffer for the request source and send it.

        Raises:
            NoResponsesDefinedError: nothing in the buffer renders.
            ResponseAlreadySentError: the response was already sent.
        """
        self._ensure_not_sent()
        source = self.request_source
        if (
            source is Platform.ACTIONS_ON_GOOGLE
            and self._messages
            and not isinstance(self._messages[0], Text)
            and find_payload(self._messages, Platform.ACTIONS_ON_GOOGLE) is None
        ):
            self._messages.insert(0, Text(" "))

        body = self._agent.build_response(
            self._messages,
            source,
            self.context,
            followup_event=self._followup_event,
            end_conversation=self._end_conversation,
        )
        self._agent.send(self.response_, body)
        self.state = ClientState.SENT

    def _begin_responding(self) -> None:
        self._ensure_not_sent()
        self.state = ClientState.RESPONDING

    def _ensure_not_sent(self) -> None:
        if self.state is ClientState.SENT:
            raise ResponseAlreadySentError("Response was already sent to Dialogflow")
