from .assistant_client import (
    AssistantClient,
    AssistantMessage,
    AssistantRun,
    AssistantServiceError,
    RunStatus,
    ToolCall,
    ToolOutput,
    TransportEvent,
)
from .factory import build_assistant_client, build_orchestrator, build_tool_registry
from .orchestrator import RunOrchestrator, TurnResult
from .streaming_bridge import RunEventStream, StreamEvent

__all__ = [
    "AssistantClient",
    "AssistantMessage",
    "AssistantRun",
    "AssistantServiceError",
    "RunEventStream",
    "RunOrchestrator",
    "RunStatus",
    "StreamEvent",
    "ToolCall",
    "ToolOutput",
    "TransportEvent",
    "TurnResult",
    "build_assistant_client",
    "build_orchestrator",
    "build_tool_registry",
]
