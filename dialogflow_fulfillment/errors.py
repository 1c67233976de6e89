"""Exception types raised by the fulfillment library.

WHY: Handler code needs to tell a malformed response object apart from
an unmatched intent or a request the library cannot read at all. Each
failure mode gets its own type so callers can catch exactly what they
expect and let programming errors propagate.

HOW: Every error derives from FulfillmentError and from the closest
builtin (ValueError, LookupError, RuntimeError, NotImplementedError),
so ``except ValueError`` keeps working for callers that don't import
this module. Setters raise the builtin TypeError directly.

RULES:
- Validation errors surface synchronously, never swallowed
- NoHandlerError is the only error paired with an HTTP status (400)
- Messages name the offending value so logs are actionable
"""

from __future__ import annotations


class FulfillmentError(Exception):
    """Base class for all errors raised by dialogflow_fulfillment."""


class ConstructionError(FulfillmentError, ValueError):
    """Raised when a response object or event is missing its required field.

    WHY: A Card without a title or a Payload without content cannot be
    rendered into any wire shape. Failing at construction points at the
    handler line that built it.

    RULES:
    - Raised for a bare None as well as a mapping missing the field
    """


class UnsupportedPlatformError(FulfillmentError, ValueError):
    """Raised when a response is pinned to a platform without rich messages."""

    def __init__(self, platform: object) -> None:
        self.platform = platform
        super().__init__(f"Platform '{platform}' not supported.")


class UnknownDialectError(FulfillmentError, ValueError):
    """Raised when the request body is neither a v1 nor a v2 webhook request."""


class MissingRequestError(FulfillmentError, ValueError):
    """Raised when the client is built without an inbound request object."""


class MissingResponseError(FulfillmentError, ValueError):
    """Raised when the client is built without an outbound response object."""


class NoHandlerError(FulfillmentError, LookupError):
    """Raised when a handler map has no entry for the matched intent.

    WHY: An unmatched intent is an expected runtime condition, not a bug,
    so the client answers the platform with HTTP 400 before raising.

    RULES:
    - The outbound response status is set to 400 before this is raised
    - intent holds the intent that failed to match (may be None)
    """

    def __init__(self, intent: object) -> None:
        self.intent = intent
        super().__init__(f"No handler for requested intent: {intent!r}")


class UnsupportedOperationError(FulfillmentError, NotImplementedError):
    """Raised when an operation exists only in the other webhook API version."""


class NoResponsesDefinedError(FulfillmentError, RuntimeError):
    """Raised when nothing in the response buffer renders for the platform."""

    def __init__(self, platform: object) -> None:
        self.platform = platform
        super().__init__(f"No responses defined for platform: {platform}")


class DuplicatePayloadError(FulfillmentError, ValueError):
    """Raised when a second Payload is added for the same platform."""

    def __init__(self, platform: object) -> None:
        self.platform = platform
        super().__init__(f"Payload response for {platform} already defined.")


class ResponseAlreadySentError(FulfillmentError, RuntimeError):
    """Raised when the response buffer is touched after it has been sent."""
