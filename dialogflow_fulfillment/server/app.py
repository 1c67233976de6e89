"""FastAPI binding for a fulfillment handler.

WHY: Dialogflow delivers webhook requests over HTTPS POST. Most users
just want "run this handler behind a URL"; create_app() does that,
with OpenAPI docs and a health endpoint for the load balancer.

HOW: create_app() builds a FastAPI app with two routes. POST {path}
parses the JSON body, wraps it in an InboundRequest, builds a
WebhookClient around a JSONResponseRecorder and runs the handler. The
recorded status and body become the HTTP response. GET /health reports
liveness. run_server() serves the app with uvicorn.

RULES:
- Invalid JSON or an unknown request schema answers 400 ErrorResponse
- An unmatched intent answers with the status the client recorded (400)
- Other library errors raised while handling answer 500 and are logged
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from dialogflow_fulfillment import __version__
from dialogflow_fulfillment.client import Handler, HandlerMap, WebhookClient
from dialogflow_fulfillment.config import (
    FULFILLMENT_HOST,
    FULFILLMENT_LOG_LEVEL,
    FULFILLMENT_PATH,
    FULFILLMENT_PORT,
)
from dialogflow_fulfillment.errors import (
    FulfillmentError,
    NoHandlerError,
    UnknownDialectError,
)
from dialogflow_fulfillment.server.models import ErrorResponse, HealthResponse
from dialogflow_fulfillment.server.transport import InboundRequest, JSONResponseRecorder

logger = logging.getLogger(__name__)

HandlerLike = Union[Handler, HandlerMap]


def create_app(
    handler: HandlerLike,
    path: str = FULFILLMENT_PATH,
    conversation_factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> FastAPI:
    """Build a FastAPI app that fulfills webhook requests with ``handler``.

    Args:
        handler: A callable taking the WebhookClient, or a mapping of
                 intent display name to such callables (``None`` key is
                 the fallback).
        path: URL path Dialogflow posts to.
        conversation_factory: Passed through to every WebhookClient.

    Returns:
        The configured FastAPI application.
    """
    app = FastAPI(
        title="Dialogflow Fulfillment Webhook",
        description=(
            "Webhook endpoint for Dialogflow fulfillment. Accepts v1 and v2 "
            "webhook requests and answers in the same API version."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -----------------------------------------------------------------------
    # Fulfillment
    # -----------------------------------------------------------------------

    @app.post(
        path,
        tags=["fulfillment"],
        summary="Fulfill a webhook request",
        description=(
            "Runs the configured handler for the matched intent and returns "
            "the webhook response JSON for the request's API version."
        ),
        responses={
            400: {"model": ErrorResponse, "description": "Unreadable request or no handler for the intent"},
            500: {"model": ErrorResponse, "description": "Handler produced no sendable response"},
        },
    )
    async def fulfill(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Request body is not valid JSON")

        inbound = InboundRequest(body=body, headers=dict(request.headers))
        recorder = JSONResponseRecorder()
        try:
            agent = WebhookClient(
                inbound, recorder, conversation_factory=conversation_factory
            )
        except UnknownDialectError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        try:
            await agent.handle_request(handler)
        except NoHandlerError as exc:
            error = ErrorResponse(detail=str(exc), intent=exc.intent)
            return JSONResponse(status_code=recorder.status_code, content=error.model_dump())
        except FulfillmentError as exc:
            logger.exception("Fulfillment failed for intent %r", agent.intent)
            raise HTTPException(status_code=500, detail=str(exc))

        return JSONResponse(status_code=recorder.status_code, content=recorder.body)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
        description="Liveness and readiness check for load balancers and orchestrators.",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__, path=path)

    return app


def run_server(
    handler: HandlerLike,
    host: str = FULFILLMENT_HOST,
    port: int = FULFILLMENT_PORT,
    path: str = FULFILLMENT_PATH,
    conversation_factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> None:
    """Serve ``handler`` with uvicorn until interrupted."""
    import uvicorn

    logger.info("Serving fulfillment webhook on http://%s:%d%s", host, port, path)
    uvicorn.run(
        create_app(handler, path=path, conversation_factory=conversation_factory),
        host=host,
        port=port,
        log_level=FULFILLMENT_LOG_LEVEL.lower(),
    )
