"""Pydantic response models for the webhook HTTP server.

WHY: The webhook body itself is free-form JSON shaped by the agents, but
the server's own responses (health, errors) should have typed schemas
that show up in the /docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Error bodies match FastAPI's HTTPException shape ({"detail": ...})
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response body.

    WHY: Bad JSON, an unknown request schema and an unmatched intent all
    answer 400 with the same schema, so Dialogflow's logs show a reason.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")
    intent: Optional[str] = Field(
        default=None,
        description="Intent that had no handler, when that is the cause.",
    )


class HealthResponse(BaseModel):
    """Health check response.

    WHY: Load balancers and orchestrators need a simple endpoint
    to verify the service is alive and ready.
    """

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="Library version string.", json_schema_extra={"example": "0.1.0"})
    path: str = Field(description="URL path the webhook is served on.", json_schema_extra={"example": "/"})
