from __future__ import annotations

import logging
from collections import deque
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from chat.adapters._payloads import (
    message_delta_text,
    message_text,
    run_error_reason,
    tool_calls_from_required_action,
)
from chat.assistant_client import (
    AssistantClient,
    RunStatus,
    ToolCall,
    TransportEvent,
)
from chat.runtime.tool_dispatcher import ToolDispatcher
from chat.state_machine import transition_run_status
from debug_log import debug_log

logger = logging.getLogger(__name__)

MESSAGE_DELTA = "message.delta"
MESSAGE_COMPLETED = "message.completed"
RUN_REQUIRES_ACTION = "run.requires_action"
RUN_FAILED = "run.failed"

_FAILED_RUN_EVENTS = {
    "thread.run.failed": RunStatus.FAILED,
    "thread.run.cancelled": RunStatus.CANCELLED,
    "thread.run.expired": RunStatus.EXPIRED,
    "thread.run.incomplete": RunStatus.INCOMPLETE,
}


@dataclass(frozen=True)
class StreamEvent:
    """One event of the caller-visible run stream.

    ``type`` is one of ``message.delta``, ``message.completed``,
    ``run.requires_action``, ``run.failed``, or the raw transport event name
    for everything else (``data`` then carries the raw payload).
    """

    type: str
    thread_id: str | None = None
    run_id: str | None = None
    text: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    status: str | None = None
    error: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"event": self.type}
        if self.thread_id is not None:
            payload["thread_id"] = self.thread_id
        if self.run_id is not None:
            payload["run_id"] = self.run_id
        if self.text is not None:
            payload["text"] = self.text
        if self.tool_calls:
            payload["tool_calls"] = [
                {"id": call.id, "name": call.name, "arguments": call.arguments}
                for call in self.tool_calls
            ]
        if self.status is not None:
            payload["status"] = self.status
        if self.error is not None:
            payload["error"] = self.error
        if self.data:
            payload["data"] = dict(self.data)
        return payload


def translate_transport_event(event: TransportEvent, *, thread_id: str) -> StreamEvent:
    data = event.data or {}
    event_thread_id = str(data.get("thread_id") or thread_id)

    if event.event == "thread.message.delta":
        return StreamEvent(
            type=MESSAGE_DELTA,
            thread_id=thread_id,
            text=message_delta_text(data),
        )
    if event.event == "thread.message.completed":
        return StreamEvent(
            type=MESSAGE_COMPLETED,
            thread_id=event_thread_id,
            run_id=data.get("run_id"),
            text=message_text(data),
        )
    if event.event == "thread.run.requires_action":
        return StreamEvent(
            type=RUN_REQUIRES_ACTION,
            thread_id=event_thread_id,
            run_id=data.get("id"),
            tool_calls=tool_calls_from_required_action(data.get("required_action")),
            status=RunStatus.REQUIRES_ACTION.value,
        )
    if event.event in _FAILED_RUN_EVENTS:
        status = _FAILED_RUN_EVENTS[event.event]
        return StreamEvent(
            type=RUN_FAILED,
            thread_id=event_thread_id,
            run_id=data.get("id"),
            status=status.value,
            error=run_error_reason(data) or f"run {status.value}",
        )
    if event.event == "error":
        return StreamEvent(
            type=RUN_FAILED,
            thread_id=thread_id,
            error=str(data.get("message") or "assistant stream error"),
        )
    return StreamEvent(type=event.event, thread_id=thread_id, data=dict(data))


@dataclass
class _PendingAction:
    run_id: str
    tool_calls: dict[str, ToolCall] = field(default_factory=dict)

    def merge(self, tool_calls: tuple[ToolCall, ...]) -> None:
        for tool_call in tool_calls:
            self.tool_calls.setdefault(tool_call.id, tool_call)


class RunEventStream:
    """Relays a streaming run and resolves its tool calls inline.

    Every transport event is forwarded in order. A ``requires_action`` event
    opens a pending cycle; further ``requires_action`` events for the same
    run are merged into it until the current sub-stream ends. The cycle's
    outputs are then submitted through a nested stream whose events are
    forwarded before anything that follows.
    """

    def __init__(
        self,
        *,
        client: AssistantClient,
        dispatcher: ToolDispatcher,
        thread_id: str,
        events: AsyncIterator[TransportEvent],
        max_tool_rounds: int,
    ) -> None:
        self.thread_id = thread_id
        self.transitions: list[dict[str, Any]] = []
        self._client = client
        self._dispatcher = dispatcher
        self._events = events
        self._max_tool_rounds = max_tool_rounds
        self._run_statuses: dict[str, RunStatus] = {}
        self._iterator: AsyncGenerator[StreamEvent, None] | None = None
        self._current: AsyncIterator[TransportEvent] | None = None
        self._closed = False

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._iterator is None:
            self._iterator = self._relay()
        return self._iterator

    async def aclose(self) -> None:
        """Close the relay and its transport streams, started or not."""
        if self._closed:
            return
        self._closed = True
        streams = [self._events]
        if self._current is not None and self._current is not self._events:
            streams.append(self._current)
        try:
            if self._iterator is not None:
                await self._iterator.aclose()
        finally:
            for stream in streams:
                close = getattr(stream, "aclose", None)
                if close is not None:
                    await close()

    async def _relay(self) -> AsyncGenerator[StreamEvent, None]:
        sub_streams: deque[AsyncIterator[TransportEvent]] = deque([self._events])
        rounds = 0
        nested = False

        while sub_streams:
            current = sub_streams.popleft()
            self._current = current
            pending: dict[str, _PendingAction] = {}

            try:
                async for transport_event in current:
                    self._track_status(transport_event)
                    event = translate_transport_event(
                        transport_event, thread_id=self.thread_id
                    )
                    if event.type == RUN_REQUIRES_ACTION and event.run_id:
                        action = pending.get(event.run_id)
                        if action is None:
                            action = _PendingAction(run_id=event.run_id)
                            pending[event.run_id] = action
                        action.merge(event.tool_calls)
                    yield event
            except Exception as exc:
                if not nested:
                    raise
                logger.exception("Resumed run stream failed on thread %s", self.thread_id)
                yield StreamEvent(
                    type=RUN_FAILED,
                    thread_id=self.thread_id,
                    error=f"resumed_stream_failed: {exc}",
                )
                return

            for action in pending.values():
                rounds += 1
                if rounds > self._max_tool_rounds:
                    logger.error(
                        "Run %s exceeded %s tool rounds", action.run_id, self._max_tool_rounds
                    )
                    yield StreamEvent(
                        type=RUN_FAILED,
                        thread_id=self.thread_id,
                        run_id=action.run_id,
                        error="tool_round_limit_exceeded",
                    )
                    return

                tool_outputs = await self._dispatcher.dispatch(
                    list(action.tool_calls.values())
                )
                try:
                    resumed = await self._client.submit_tool_outputs_stream(
                        thread_id=self.thread_id,
                        run_id=action.run_id,
                        tool_outputs=tool_outputs,
                    )
                except Exception as exc:
                    logger.exception(
                        "Error submitting tool outputs for run %s", action.run_id
                    )
                    yield StreamEvent(
                        type=RUN_FAILED,
                        thread_id=self.thread_id,
                        run_id=action.run_id,
                        error=f"tool_output_submission_failed: {exc}",
                    )
                    return
                sub_streams.append(resumed)
            nested = True

    def _track_status(self, event: TransportEvent) -> None:
        if not event.event.startswith("thread.run.") or event.event.startswith(
            "thread.run.step"
        ):
            return
        data = event.data or {}
        run_id = data.get("id")
        try:
            status = RunStatus(str(data.get("status")))
        except ValueError:
            return
        if not run_id:
            return
        self._run_statuses[run_id] = transition_run_status(
            current_status=self._run_statuses.get(run_id),
            to_status=status,
            run_id=run_id,
            transitions=self.transitions,
            logger=logger,
            debug_log=debug_log,
        )
