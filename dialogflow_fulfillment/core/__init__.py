"""Version-independent request model and context store.

WHY: Both webhook API versions carry the same information in different
shapes. The core package holds the single internal form that agents
read into and write out of, so the client and handler code never see
version-specific field paths.

HOW: request.py defines the normalized request and followup event
dataclasses plus the conversation protocol, contexts.py holds the
context store with its per-version wire translation.

RULES:
- Nothing in core knows about HTTP or a specific web framework
- The store's public key is always the short context name
"""
