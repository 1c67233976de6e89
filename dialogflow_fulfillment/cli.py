"""Command-line interface for running fulfillment handlers.

WHY: Developers need two things outside of a deployed webhook: replay a
saved Dialogflow request through their handler to see the exact JSON
that would be sent back, and run the handler behind a local HTTP server
for the Dialogflow console (through a tunnel) to call.

HOW: argparse with two subcommands. ``replay`` loads a request JSON
file, runs it through a WebhookClient with a JSONResponseRecorder and
prints the recorded body to stdout. ``serve`` starts the FastAPI binding
with uvicorn. Both import the handler from ``package.module:attribute``
given by --handler or FULFILLMENT_HANDLER. Async handlers are driven
with asyncio.run().

RULES:
- The webhook response JSON goes to stdout; status messages to stderr
- Exit code 1 on any fulfillment, configuration or input error
- --log-level overrides FULFILLMENT_LOG_LEVEL for logging.basicConfig
- Python 3.9+ compatible (no match/case, no X | Y unions)
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from dialogflow_fulfillment.client import WebhookClient
from dialogflow_fulfillment.config import (
    FULFILLMENT_HOST,
    FULFILLMENT_LOG_LEVEL,
    FULFILLMENT_PATH,
    FULFILLMENT_PORT,
    load_handler_path,
)
from dialogflow_fulfillment.errors import FulfillmentError
from dialogflow_fulfillment.server.transport import InboundRequest, JSONResponseRecorder

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr, keeping stdout pipeable."""
    print(msg, file=sys.stderr, flush=True)


def import_handler(path: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute.

    Raises:
        ValueError: the path has no ``:`` or the attribute does not exist.
        ImportError: the module cannot be imported.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            "Handler must look like package.module:attribute, got {!r}".format(path)
        )
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ValueError("Module {!r} has no attribute {!r}".format(module_name, attr))


def _resolve_handler(args: argparse.Namespace) -> Any:
    path = args.handler or load_handler_path()
    handler = import_handler(path)
    logger.debug("Loaded handler %s -> %r", path, handler)
    return handler


async def _replay(request_path: Path, handler: Any) -> JSONResponseRecorder:
    """Run one saved webhook request through ``handler``."""
    body = json.loads(request_path.read_text(encoding="utf-8"))
    recorder = JSONResponseRecorder()
    agent = WebhookClient(InboundRequest(body=body), recorder)
    _status("Webhook API v{}, intent: {}".format(agent.agent_version, agent.intent))
    await agent.handle_request(handler)
    return recorder


def _cmd_replay(args: argparse.Namespace) -> int:
    request_path = Path(args.request_json)
    if not request_path.is_file():
        _status("Error: File not found: {}".format(request_path))
        return 1
    try:
        handler = _resolve_handler(args)
        recorder = asyncio.run(_replay(request_path, handler))
    except (FulfillmentError, ValueError, ImportError) as e:
        _status("Error: {}".format(e))
        return 1

    print(json.dumps(recorder.body, indent=args.indent, ensure_ascii=False))
    _status("Status: {}".format(recorder.status_code))
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    from dialogflow_fulfillment.server.app import run_server

    try:
        handler = _resolve_handler(args)
    except (ValueError, ImportError) as e:
        _status("Error: {}".format(e))
        return 1
    run_server(handler, host=args.host, port=args.port, path=args.path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Separate from main() so tests can inspect the parser without running
    a subcommand.
    """
    parser = argparse.ArgumentParser(
        prog="dialogflow-fulfillment",
        description="Run Dialogflow fulfillment handlers: replay saved webhook "
                    "requests or serve the handler over HTTP.",
    )
    parser.add_argument(
        "--log-level",
        default=FULFILLMENT_LOG_LEVEL,
        help="Logging level (default: %(default)s).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser(
        "replay",
        help="Run a saved webhook request JSON through the handler.",
    )
    replay.add_argument("request_json", help="Path to a Dialogflow webhook request body.")
    replay.add_argument(
        "--handler",
        default=None,
        help="Handler as package.module:attribute (default: $FULFILLMENT_HANDLER).",
    )
    replay.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Indentation of the printed JSON (default: %(default)s).",
    )
    replay.set_defaults(func=_cmd_replay)

    serve = subparsers.add_parser("serve", help="Serve the handler as an HTTP webhook.")
    serve.add_argument(
        "--handler",
        default=None,
        help="Handler as package.module:attribute (default: $FULFILLMENT_HANDLER).",
    )
    serve.add_argument("--host", default=FULFILLMENT_HOST, help="Bind address (default: %(default)s).")
    serve.add_argument("--port", type=int, default=FULFILLMENT_PORT, help="Port (default: %(default)s).")
    serve.add_argument("--path", default=FULFILLMENT_PATH, help="Webhook URL path (default: %(default)s).")
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point: parse arguments and run the subcommand."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
