"""HTTP binding: FastAPI app factory and framework-free transport objects."""

from dialogflow_fulfillment.server.app import create_app, run_server
from dialogflow_fulfillment.server.transport import InboundRequest, JSONResponseRecorder

__all__ = ["InboundRequest", "JSONResponseRecorder", "create_app", "run_server"]
