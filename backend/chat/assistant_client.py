from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_RUN_STATUSES


TERMINAL_RUN_STATUSES = frozenset(
    {
        RunStatus.COMPLETED,
        RunStatus.FAILED,
        RunStatus.CANCELLED,
        RunStatus.EXPIRED,
        RunStatus.INCOMPLETE,
    }
)


class AssistantServiceError(RuntimeError):
    """Raised by adapters when the remote assistant service call fails."""


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ToolOutput:
    tool_call_id: str
    output: str


@dataclass(frozen=True)
class AssistantRun:
    id: str
    thread_id: str
    status: RunStatus
    tool_calls: tuple[ToolCall, ...] = ()
    last_error: str | None = None


@dataclass(frozen=True)
class AssistantMessage:
    id: str
    thread_id: str
    role: str
    content: str


@dataclass(frozen=True)
class TransportEvent:
    """One raw server-sent event from a streaming run.

    ``event`` is the transport name (``thread.message.delta``,
    ``thread.run.requires_action``, ...) and ``data`` the event object as a
    plain mapping.
    """

    event: str
    data: Mapping[str, Any] = field(default_factory=dict)


class AssistantClient(Protocol):
    async def create_thread(self) -> str: ...

    async def create_message(self, *, thread_id: str, content: str) -> None: ...

    async def create_run(self, *, thread_id: str) -> AssistantRun: ...

    async def poll_run(self, *, thread_id: str, run_id: str) -> AssistantRun: ...

    async def submit_tool_outputs(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[ToolOutput],
    ) -> AssistantRun: ...

    async def list_messages(self, *, thread_id: str) -> list[AssistantMessage]: ...

    async def stream_run(self, *, thread_id: str) -> AsyncIterator[TransportEvent]: ...

    async def submit_tool_outputs_stream(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[ToolOutput],
    ) -> AsyncIterator[TransportEvent]: ...
