"""Suggestion chips / quick replies.

WHY: Platforms show suggestions as one row of chips, so the client merges
every Suggestion added for the same platform into a single item. That is
why this variant holds a list of replies instead of a single title.

RULES:
- Constructed with exactly one reply; add_reply() appends more
- set_reply() only works while the item holds exactly one reply
"""

from __future__ import annotations

from typing import Any, Mapping

from dialogflow_fulfillment.errors import ConstructionError
from dialogflow_fulfillment.platforms import PlatformLike, to_v1_name
from dialogflow_fulfillment.responses.base import (
    RichResponse,
    is_voice_assistant,
    read_fields,
    require_str,
    v1_platform_field,
    v2_platform_field,
)

V1_MESSAGE_TYPE_SUGGESTIONS = 2


class Suggestion(RichResponse):
    """One or more reply suggestions.

    Usage::

        Suggestion("Yes")
        Suggestion({"title": "Yes", "platform": Platform.ACTIONS_ON_GOOGLE})
    """

    def __init__(
        self,
        suggestion: str | Mapping[str, Any] | None = None,
        *,
        title: str | None = None,
        platform: PlatformLike | None = None,
    ) -> None:
        super().__init__()
        fields = read_fields(
            suggestion, "title", "Suggestion", title=title, platform=platform
        )
        if fields.get("title") is None:
            raise ConstructionError("Reply string required by Suggestion constructor")
        self.replies: list[str] = []
        self.add_reply(fields["title"])
        self._pin_from(fields)

    def set_reply(self, reply: str) -> Suggestion:
        """Replace the single reply this item holds.

        Raises:
            TypeError: reply is not a string.
            ValueError: the item holds more than one reply.
        """
        require_str(reply, "set_reply", "reply")
        if len(self.replies) != 1:
            raise ValueError(
                f"Expected one reply in Suggestion object but found {len(self.replies)}"
            )
        self.replies[0] = reply
        return self

    def add_reply(self, reply: str) -> Suggestion:
        self.replies.append(require_str(reply, "add_reply", "reply"))
        return self

    def merge(self, other: Suggestion) -> Suggestion:
        """Append every reply of ``other`` to this item."""
        for reply in other.replies:
            self.add_reply(reply)
        return self

    def _v1_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            return {
                "type": "suggestion_chips",
                "platform": to_v1_name(platform),
                "suggestions": [{"title": reply} for reply in self.replies],
            }
        message: dict[str, Any] = {
            "type": V1_MESSAGE_TYPE_SUGGESTIONS,
            "replies": list(self.replies),
        }
        v1_platform = v1_platform_field(platform)
        if v1_platform:
            message["platform"] = v1_platform
        return message

    def _v2_message(self, platform: PlatformLike | None) -> dict[str, Any]:
        if is_voice_assistant(platform):
            return {
                "suggestions": {
                    "suggestions": [{"title": reply} for reply in self.replies]
                },
                "platform": v2_platform_field(platform),
            }
        message: dict[str, Any] = {"quickReplies": {"quickReplies": list(self.replies)}}
        v2_platform = v2_platform_field(platform)
        if v2_platform:
            message["platform"] = v2_platform
        return message
