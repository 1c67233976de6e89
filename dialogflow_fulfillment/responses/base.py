"""Abstract base for rich response items.

WHY: Handler code builds responses once (``Card("Title")``) and the
client serializes them for whichever API version and platform sent the
request. Every variant needs the same platform-pin behavior and the same
two render entry points, so the agents can walk a buffer of mixed items
without knowing which variant they hold.

HOW: RichResponse is an ABC. The public ``to_v1_message`` /
``to_v2_message`` methods apply the platform pin and then delegate to the
variant's ``_v1_message`` / ``_v2_message``. ``read_fields`` turns the
constructor's shorthand (a string, a mapping with snake_case or camelCase
keys, or keyword arguments) into one dict of snake_case fields.

RULES:
- A pinned item renders only for its exact platform; otherwise None
- Pinning to UNSPECIFIED removes the pin
- Only rich-capable platforms may be pinned (Payload overrides this)
- Setters return self and raise TypeError on the wrong primitive type
- Messages carry a ``platform`` field only for rich-capable targets
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Mapping

from dialogflow_fulfillment.errors import UnsupportedPlatformError
from dialogflow_fulfillment.platforms import (
    Platform,
    PlatformLike,
    is_rich_platform,
    normalize,
    platform_value,
    to_v1_name,
)

ACCESSIBILITY_TEXT_PLACEHOLDER = "accessibility text"
"""Alt text sent with voice-assistant images when none is given."""

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_key(key: str) -> str:
    """``imageUrl`` -> ``image_url``; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def read_fields(
    value: Any,
    primary: str,
    owner: str,
    **overrides: Any,
) -> dict[str, Any]:
    """Merge constructor shorthand and keyword fields into one dict.

    Args:
        value: The positional argument: None, the primary field as a
               string, or a mapping of fields.
        primary: Name of the field a bare string stands for.
        owner: Class name, for error messages.
        **overrides: Keyword fields; None means "not given".

    Raises:
        TypeError: ``value`` is neither None, a string, nor a mapping.
    """
    if value is None:
        fields: dict[str, Any] = {}
    elif isinstance(value, str):
        fields = {primary: value}
    elif isinstance(value, Mapping):
        fields = {snake_key(k): v for k, v in value.items()}
    else:
        raise TypeError(
            f"{owner} expects a string or a mapping, got {type(value).__name__}"
        )
    for key, given in overrides.items():
        if given is not None:
            fields[key] = given
    return fields


def require_str(value: Any, setter: str, what: str) -> str:
    if not isinstance(value, str):
        raise TypeError(
            f"{setter} requires a string of the {what}, got {type(value).__name__}"
        )
    return value


def is_voice_assistant(platform: PlatformLike | None) -> bool:
    return normalize(platform) is Platform.ACTIONS_ON_GOOGLE


def v1_platform_field(platform: PlatformLike | None) -> str | None:
    """v1 ``platform`` value for a message, or None for generic targets."""
    return to_v1_name(platform) if is_rich_platform(platform) else None


def v2_platform_field(platform: PlatformLike | None) -> str | None:
    """v2 ``platform`` value for a message, or None for generic targets."""
    return platform_value(normalize(platform)) if is_rich_platform(platform) else None


class RichResponse(ABC):
    """Abstract base for Text, Card, Image, Suggestion and Payload.

    To add a new response variant:
    1. Create a new module in responses/
    2. Subclass RichResponse
    3. Implement _v1_message() and _v2_message()
    4. Export it from responses/__init__.py and teach the client's add()
       about it if it needs special buffering rules
    """

    def __init__(self) -> None:
        self.platform: PlatformLike | None = None

    def set_platform(self, platform: PlatformLike) -> RichResponse:
        """Pin this item to one platform (UNSPECIFIED clears the pin)."""
        if not isinstance(platform, str):
            raise UnsupportedPlatformError(platform)
        normalized = normalize(platform)
        if normalized is Platform.UNSPECIFIED:
            self.platform = None
        elif is_rich_platform(normalized):
            self.platform = normalized
        else:
            raise UnsupportedPlatformError(platform)
        return self

    def renders_for(self, platform: PlatformLike | None) -> bool:
        """True when this item is unpinned or pinned to ``platform``."""
        return self.platform is None or self.platform == normalize(platform)

    def to_v1_message(self, platform: PlatformLike | None) -> dict[str, Any] | None:
        """Render as a v1 ``messages`` entry, or None if pinned elsewhere."""
        if not self.renders_for(platform):
            return None
        return self._v1_message(normalize(platform))

    def to_v2_message(self, platform: PlatformLike | None) -> dict[str, Any] | None:
        """Render as a v2 ``fulfillmentMessages`` entry, or None if pinned elsewhere."""
        if not self.renders_for(platform):
            return None
        return self._v2_message(normalize(platform))

    @abstractmethod
    def _v1_message(self, platform: PlatformLike | None) -> dict[str, Any] | None:
        """Variant-specific v1 shape for an already pin-checked platform."""

    @abstractmethod
    def _v2_message(self, platform: PlatformLike | None) -> dict[str, Any] | None:
        """Variant-specific v2 shape for an already pin-checked platform."""

    def _pin_from(self, fields: Mapping[str, Any]) -> None:
        platform = fields.get("platform")
        if platform is not None:
            self.set_platform(platform)

    def __repr__(self) -> str:
        attrs = ", ".join(
            f"{k}={v!r}" for k, v in vars(self).items() if v is not None
        )
        return f"{type(self).__name__}({attrs})"
