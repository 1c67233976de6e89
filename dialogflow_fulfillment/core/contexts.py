"""Context store shared by both webhook API versions.

WHY: Contexts carry conversation state between turns. v1 names them
plainly ("weather") with a ``lifespan`` field; v2 names them with the
full session path ("projects/p/agent/sessions/s/contexts/weather") and
a ``lifespanCount`` field. Handlers should only ever deal with the short
name, and the platform should only receive contexts that actually
changed, since re-sending an unchanged context resets its lifespan on
some integrations.

HOW: ContextStore keeps an insertion-ordered dict of Context entries
keyed by short name, plus a deep-copied snapshot of the inbound
contexts. to_v1_array() / to_v2_array() walk the entries, skip any that
still equal their snapshot, and emit the version's wire shape.

RULES:
- set() upserts: only the fields explicitly given are changed
- delete(name) is set(name, 0); the entry stays and is sent with lifespan 0
- A context equal to its inbound form is never sent back
- v2 outbound names are "{session}/contexts/{name}"
- v2 inbound names are reduced to the part after "{session}/contexts/"
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Union

DELETED_LIFESPAN_COUNT = 0
"""Lifespan that tells the platform to expire a context."""

_CONTEXTS_SEGMENT = "/contexts/"


@dataclass
class Context:
    """One context entry as seen by handler code.

    RULES:
    - name: short, version-independent name (the store key)
    - lifespan: non-negative int, or None when never set
    - parameters: arbitrary key/value bag, or None when never set
    """

    name: str
    lifespan: int | None = None
    parameters: dict[str, Any] | None = None


ContextLike = Union[str, Mapping[str, Any], Context]


def short_context_name(name: str, session: str | None = None) -> str:
    """Strip the v2 session path from a context name.

    Names without the "/contexts/" segment are returned unchanged.
    """
    if session:
        prefix = session + _CONTEXTS_SEGMENT
        if name.startswith(prefix):
            return name[len(prefix):]
    if _CONTEXTS_SEGMENT in name:
        return name.rsplit(_CONTEXTS_SEGMENT, 1)[1]
    return name


def context_from_v1(raw: Mapping[str, Any]) -> Context:
    """Read a v1 wire context ({name, lifespan, parameters})."""
    return Context(
        name=raw["name"],
        lifespan=raw.get("lifespan"),
        parameters=raw.get("parameters"),
    )


def context_from_v2(raw: Mapping[str, Any], session: str | None) -> Context:
    """Read a v2 wire context ({name, lifespanCount, parameters})."""
    return Context(
        name=short_context_name(raw["name"], session),
        lifespan=raw.get("lifespanCount"),
        parameters=raw.get("parameters"),
    )


def _check_lifespan(lifespan: Any) -> None:
    if isinstance(lifespan, bool) or not isinstance(lifespan, int):
        raise TypeError(
            f"Context lifespan must be an integer, got {type(lifespan).__name__}"
        )
    if lifespan < 0:
        raise ValueError(f"Context lifespan must be 0 or greater, got {lifespan}")


class ContextStore:
    """Mutable set of contexts for one webhook request.

    WHY: Handlers read inbound contexts and write outbound ones through
    the same object (``agent.context``), independent of API version.

    HOW: Seeded from the inbound contexts the agent parsed. Mutations go
    to ``_contexts``; ``_inbound`` keeps deep copies for no-op detection.

    RULES:
    - Iteration order is insertion order (inbound first, then new ones)
    - get() returns None for unknown names
    - session is only needed for to_v2_array()
    """

    def __init__(
        self,
        inbound: Iterable[Context] | None = None,
        session: str | None = None,
    ) -> None:
        self.session = session
        self._contexts: dict[str, Context] = {}
        self._inbound: dict[str, Context] = {}
        for ctx in inbound or []:
            self._contexts[ctx.name] = copy.deepcopy(ctx)
            self._inbound[ctx.name] = copy.deepcopy(ctx)

    # -------------------------------------------------------------------
    # Public CRUD
    # -------------------------------------------------------------------

    def set(
        self,
        name: ContextLike,
        lifespan: int | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> Context:
        """Create or update a context and return the stored entry.

        ``name`` may be a short name, a v2 full name, a Context, or a
        mapping with ``name`` and optional ``lifespan``/``lifespanCount``
        and ``parameters``. Fields left as None keep their previous value.
        """
        if isinstance(name, Context):
            lifespan = name.lifespan if lifespan is None else lifespan
            parameters = name.parameters if parameters is None else parameters
            name = name.name
        elif isinstance(name, Mapping):
            raw = name
            name = raw.get("name")
            if lifespan is None:
                lifespan = raw.get("lifespan", raw.get("lifespanCount"))
            if parameters is None:
                parameters = raw.get("parameters")

        if not isinstance(name, str) or not name:
            raise ValueError(
                'Required "name" argument must be a string or an object '
                'with a string attribute "name"'
            )
        name = short_context_name(name, self.session)

        entry = self._contexts.get(name)
        if entry is None:
            entry = Context(name=name)
            self._contexts[name] = entry
        if lifespan is not None:
            _check_lifespan(lifespan)
            entry.lifespan = lifespan
        if parameters is not None:
            entry.parameters = parameters
        return entry

    def get(self, name: str) -> Context | None:
        return self._contexts.get(name)

    def delete(self, name: str) -> Context:
        """Expire a context by setting its lifespan to 0."""
        return self.set(name, DELETED_LIFESPAN_COUNT)

    def remove(self, name: str) -> None:
        """Drop a context from the outgoing set entirely (no-op if absent)."""
        self._contexts.pop(name, None)

    def clear(self) -> None:
        """Drop every context from the outgoing set."""
        self._contexts.clear()

    def __iter__(self) -> Iterator[Context]:
        return iter(list(self._contexts.values()))

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, name: object) -> bool:
        return name in self._contexts

    # -------------------------------------------------------------------
    # Outbound wire arrays
    # -------------------------------------------------------------------

    def _changed(self) -> Iterator[Context]:
        for ctx in self._contexts.values():
            if self._inbound.get(ctx.name) == ctx:
                continue
            yield ctx

    def to_v1_array(self) -> list[dict[str, Any]]:
        """Changed contexts in v1 ``contextOut`` shape."""
        out: list[dict[str, Any]] = []
        for ctx in self._changed():
            wire: dict[str, Any] = {"name": ctx.name}
            if ctx.lifespan is not None:
                wire["lifespan"] = ctx.lifespan
            if ctx.parameters:
                wire["parameters"] = ctx.parameters
            out.append(wire)
        return out

    def to_v2_array(self) -> list[dict[str, Any]]:
        """Changed contexts in v2 ``outputContexts`` shape.

        Names are full session paths; without a session the short name is sent.
        """
        out: list[dict[str, Any]] = []
        for ctx in self._changed():
            name = ctx.name
            if self.session:
                name = f"{self.session}{_CONTEXTS_SEGMENT}{ctx.name}"
            wire: dict[str, Any] = {"name": name}
            if ctx.lifespan is not None:
                wire["lifespanCount"] = ctx.lifespan
            if ctx.parameters:
                wire["parameters"] = ctx.parameters
            out.append(wire)
        return out
