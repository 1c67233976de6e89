"""Platform identifiers and v1 <-> v2 name mappings.

WHY: The v1 webhook API names integrations in lowercase ("facebook",
"google") while v2 uses uppercase enum names ("FACEBOOK",
"ACTIONS_ON_GOOGLE"). Response objects, agents, and the client all need
to translate between the two, and to know which integrations accept
rich (card/image/suggestion) messages.

HOW: Platform is a str-valued Enum, so members compare equal to their
wire strings. Two plain dicts map names across versions. Lookups pass
unknown names through unchanged so integrations the library doesn't
know yet ("twitter") still round-trip.

RULES:
- RICH_MESSAGE_PLATFORMS contains every member except UNSPECIFIED
- VOICE_ASSISTANT is an alias of ACTIONS_ON_GOOGLE
- Lookup functions never raise; unknown names come back as-is
- Values emitted into JSON are always plain str (see platform_value)
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class Platform(str, Enum):
    """Integrations known to the webhook APIs, keyed by their v2 names."""

    UNSPECIFIED = "PLATFORM_UNSPECIFIED"
    FACEBOOK = "FACEBOOK"
    SLACK = "SLACK"
    TELEGRAM = "TELEGRAM"
    KIK = "KIK"
    SKYPE = "SKYPE"
    LINE = "LINE"
    VIBER = "VIBER"
    ACTIONS_ON_GOOGLE = "ACTIONS_ON_GOOGLE"
    VOICE_ASSISTANT = "ACTIONS_ON_GOOGLE"


PlatformLike = Union[Platform, str]

RICH_MESSAGE_PLATFORMS: frozenset[Platform] = frozenset(
    member for member in Platform if member is not Platform.UNSPECIFIED
)

V2_TO_V1_PLATFORM_NAME: dict[Platform, str] = {
    Platform.FACEBOOK: "facebook",
    Platform.SLACK: "slack",
    Platform.TELEGRAM: "telegram",
    Platform.KIK: "kik",
    Platform.SKYPE: "skype",
    Platform.LINE: "line",
    Platform.VIBER: "viber",
    Platform.ACTIONS_ON_GOOGLE: "google",
}

V1_TO_V2_PLATFORM_NAME: dict[str, Platform] = {
    "facebook": Platform.FACEBOOK,
    "slack": Platform.SLACK,
    "slack_testbot": Platform.SLACK,
    "telegram": Platform.TELEGRAM,
    "kik": Platform.KIK,
    "skype": Platform.SKYPE,
    "line": Platform.LINE,
    "viber": Platform.VIBER,
    "google": Platform.ACTIONS_ON_GOOGLE,
}


def normalize(platform: PlatformLike | None) -> PlatformLike | None:
    """Return the Platform member for a known v2 name, else the input.

    UNSPECIFIED stays UNSPECIFIED; None stays None.
    """
    if platform is None or isinstance(platform, Platform):
        return platform
    try:
        return Platform(platform)
    except ValueError:
        return platform


def to_v1_name(platform: PlatformLike | None) -> str | None:
    """Map a v2 platform name to its v1 name, passing unknown names through."""
    normalized = normalize(platform)
    if isinstance(normalized, Platform):
        return V2_TO_V1_PLATFORM_NAME.get(normalized, normalized.value)
    return normalized


def from_v1_name(name: str | None) -> PlatformLike | None:
    """Map a v1 platform name to its Platform member, passing unknown names through."""
    if name is None:
        return None
    if name in V1_TO_V2_PLATFORM_NAME:
        return V1_TO_V2_PLATFORM_NAME[name]
    return normalize(name)


def is_rich_platform(platform: PlatformLike | None) -> bool:
    """True when the platform accepts cards, images, and suggestions."""
    return normalize(platform) in RICH_MESSAGE_PLATFORMS


def platform_value(platform: PlatformLike | None) -> str | None:
    """Plain string form of a platform for JSON output."""
    if isinstance(platform, Platform):
        return platform.value
    return platform
