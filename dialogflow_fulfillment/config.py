"""Configuration constants and .env loading.

WHY: The webhook server, the CLI and the client share a handful of
defaults (bind address, URL path, log level, context lifespan). Keeping
them in one module makes them easy to find and override per deployment.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values read from the environment with a fallback default.
load_handler_path() gives a clear error when no handler is configured.

RULES:
- Every default can be overridden via an environment variable
- FULFILLMENT_HANDLER has no default; it names user code
- DEFAULT_CONTEXT_LIFESPAN is what set_context() uses when none is given
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the server is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# Server defaults
# ---------------------------------------------------------------------------

FULFILLMENT_HOST = os.getenv("FULFILLMENT_HOST", "0.0.0.0")
FULFILLMENT_PORT = int(os.getenv("FULFILLMENT_PORT", "8080"))
FULFILLMENT_PATH = os.getenv("FULFILLMENT_PATH", "/")
FULFILLMENT_LOG_LEVEL = os.getenv("FULFILLMENT_LOG_LEVEL", "INFO").upper()

# ---------------------------------------------------------------------------
# Client defaults
# ---------------------------------------------------------------------------

DEFAULT_CONTEXT_LIFESPAN = int(os.getenv("DEFAULT_CONTEXT_LIFESPAN", "5"))
"""Lifespan given to contexts set through WebhookClient.set_context()."""


def load_handler_path() -> str:
    """Read the fulfillment handler location from the environment.

    WHY: ``serve`` and ``replay`` need to import user code; the path can
    come from the command line or, for deployments, from FULFILLMENT_HANDLER.

    RULES:
    - Format is ``package.module:attribute``
    - Raises ValueError if the variable is missing or empty
    """
    path = os.getenv("FULFILLMENT_HANDLER", "").strip()
    if not path:
        raise ValueError(
            "Fulfillment handler not configured. "
            "Pass --handler or set FULFILLMENT_HANDLER=package.module:attribute."
        )
    return path
