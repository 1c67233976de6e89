"""Custom platform payload.

WHY: Integrations accept platform-native JSON (a Facebook template, an
Actions on Google rich response) that has no generic equivalent. That
JSON is not a message-list entry: the agents send it as a top-level
``data`` (v1) or ``payload`` (v2) field keyed by platform name.

HOW: Payload deep-copies its input so later changes to the caller's dict
never leak into the response. Both render methods return None; the
client asks for ``envelope(platform)`` instead.

RULES:
- platform is required and is NOT restricted to rich-capable platforms
- payload is required (non-empty)
- raw_payload=True sends the payload itself, without the platform key
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from dialogflow_fulfillment.errors import ConstructionError
from dialogflow_fulfillment.platforms import Platform, PlatformLike, normalize, to_v1_name
from dialogflow_fulfillment.responses.base import RichResponse


class Payload(RichResponse):
    """Platform-specific JSON sent alongside the messages.

    Usage::

        Payload(Platform.FACEBOOK, {"attachment": {...}})
        Payload({"platform": "twitter", "payload": {...}})
        Payload(Platform.ACTIONS_ON_GOOGLE, google_payload, raw_payload=True)
    """

    def __init__(
        self,
        platform: PlatformLike | Mapping[str, Any] | None,
        payload: Any = None,
        *,
        raw_payload: bool = False,
    ) -> None:
        super().__init__()
        if isinstance(platform, Mapping):
            payload = platform.get("payload", payload)
            raw_payload = platform.get("raw_payload", platform.get("rawPayload", raw_payload))
            platform = platform.get("platform")
        if not payload:
            raise ConstructionError("Payload can NOT be empty")
        if not platform:
            raise ConstructionError("Platform can NOT be empty")
        self.set_platform(platform)
        self.payload: Any = copy.deepcopy(payload)
        self.raw_payload = bool(raw_payload)

    def set_platform(self, platform: PlatformLike) -> Payload:
        """Set the target platform; any non-empty name is accepted."""
        if not isinstance(platform, str) or not platform:
            raise TypeError(
                f"Payload platform must be a non-empty string, got {platform!r}"
            )
        self.platform = normalize(platform)
        return self

    def set_payload(self, payload: dict[str, Any]) -> Payload:
        if not isinstance(payload, dict):
            raise TypeError(
                f"set_payload requires a dict, got {type(payload).__name__}"
            )
        self.payload = copy.deepcopy(payload)
        return self

    def envelope(self, platform: PlatformLike | None = None) -> Any:
        """The payload keyed by the platform's v1 name (or the raw name).

        ``platform`` defaults to this item's own platform, as does an
        UNSPECIFIED one, so the key is never None.
        """
        payload = copy.deepcopy(self.payload)
        if self.raw_payload:
            return payload
        platform = normalize(platform)
        if platform is None or platform is Platform.UNSPECIFIED:
            platform = self.platform
        key = to_v1_name(platform)
        return {key: payload}

    def _v1_message(self, platform: PlatformLike | None) -> None:
        return None

    def _v2_message(self, platform: PlatformLike | None) -> None:
        return None
