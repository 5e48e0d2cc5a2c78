from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from chat.assistant_client import (
    AssistantClient,
    AssistantMessage,
    AssistantRun,
    RunStatus,
)
from chat.runtime.tool_dispatcher import ToolDispatcher
from chat.state_machine import transition_run_status
from chat.streaming_bridge import RunEventStream
from chat.tooling import ToolRegistry
from debug_log import debug_log

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 16

ERROR_TOOL_ROUND_LIMIT = "tool_round_limit_exceeded"
ERROR_TOOL_OUTPUT_SUBMISSION = "tool_output_submission_failed"
ERROR_RUN_POLL = "run_poll_failed"


@dataclass(frozen=True)
class TurnResult:
    thread_id: str
    messages: list[AssistantMessage]
    run_id: str | None = None
    status: RunStatus | None = None
    error: str | None = None
    transitions: list[dict[str, Any]] = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.COMPLETED and self.error is None

    @property
    def latest_message(self) -> AssistantMessage | None:
        return self.messages[0] if self.messages else None


@dataclass
class RunOrchestrator:
    """Drives one conversation turn against the remote assistant service."""

    client: AssistantClient
    registry: ToolRegistry
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    placeholder_errors: bool = False
    _dispatcher: ToolDispatcher | None = field(default=None, repr=False)

    def _get_dispatcher(self) -> ToolDispatcher:
        if self._dispatcher is None:
            self._dispatcher = ToolDispatcher(
                registry=self.registry,
                placeholder_errors=self.placeholder_errors,
            )
        return self._dispatcher

    async def send(self, content: str, thread_id: str | None = None) -> TurnResult:
        thread_id = await self._post_user_message(content, thread_id)
        run = await self.client.create_run(thread_id=thread_id)
        logger.info("Started run %s on thread %s", run.id, thread_id)

        transitions: list[dict[str, Any]] = []
        status = self._observe(None, run, transitions)
        run = await self.client.poll_run(thread_id=thread_id, run_id=run.id)
        status = self._observe(status, run, transitions)

        rounds = 0
        while run.status is RunStatus.REQUIRES_ACTION:
            rounds += 1
            if rounds > self.max_tool_rounds:
                logger.error(
                    "Run %s exceeded %s tool rounds", run.id, self.max_tool_rounds
                )
                return self._failed(
                    thread_id, run, ERROR_TOOL_ROUND_LIMIT, transitions
                )

            tool_outputs = await self._get_dispatcher().dispatch(run.tool_calls)
            try:
                run = await self.client.submit_tool_outputs(
                    thread_id=thread_id,
                    run_id=run.id,
                    tool_outputs=tool_outputs,
                )
            except Exception as exc:
                logger.exception("Error submitting tool outputs for run %s", run.id)
                return self._failed(
                    thread_id,
                    run,
                    f"{ERROR_TOOL_OUTPUT_SUBMISSION}: {exc}",
                    transitions,
                )
            status = self._observe(status, run, transitions)

            if not run.status.is_terminal and run.status is not RunStatus.REQUIRES_ACTION:
                try:
                    run = await self.client.poll_run(thread_id=thread_id, run_id=run.id)
                except Exception as exc:
                    logger.exception("Error polling run %s after tool outputs", run.id)
                    return self._failed(
                        thread_id, run, f"{ERROR_RUN_POLL}: {exc}", transitions
                    )
                status = self._observe(status, run, transitions)

        if run.status is RunStatus.COMPLETED:
            messages = await self.client.list_messages(thread_id=thread_id)
            return TurnResult(
                thread_id=thread_id,
                messages=messages,
                run_id=run.id,
                status=run.status,
                transitions=transitions,
            )

        logger.warning(
            "Run %s ended with status %s: %s",
            run.id,
            run.status.value,
            run.last_error,
        )
        return TurnResult(
            thread_id=thread_id,
            messages=[],
            run_id=run.id,
            status=run.status,
            error=run.last_error or f"run {run.status.value}",
            transitions=transitions,
        )

    async def stream(self, content: str, thread_id: str | None = None) -> RunEventStream:
        thread_id = await self._post_user_message(content, thread_id)
        events = await self.client.stream_run(thread_id=thread_id)
        logger.info("Started streaming run on thread %s", thread_id)
        return RunEventStream(
            client=self.client,
            dispatcher=self._get_dispatcher(),
            thread_id=thread_id,
            events=events,
            max_tool_rounds=self.max_tool_rounds,
        )

    async def history(self, thread_id: str) -> list[AssistantMessage]:
        return await self.client.list_messages(thread_id=thread_id)

    async def _post_user_message(self, content: str, thread_id: str | None) -> str:
        if not thread_id:
            thread_id = await self.client.create_thread()
            logger.info("Created thread %s", thread_id)
        await self.client.create_message(thread_id=thread_id, content=content)
        return thread_id

    @staticmethod
    def _observe(
        current: RunStatus | None,
        run: AssistantRun,
        transitions: list[dict[str, Any]],
    ) -> RunStatus:
        return transition_run_status(
            current_status=current,
            to_status=run.status,
            run_id=run.id,
            transitions=transitions,
            logger=logger,
            debug_log=debug_log,
        )

    @staticmethod
    def _failed(
        thread_id: str,
        run: AssistantRun,
        error: str,
        transitions: list[dict[str, Any]],
    ) -> TurnResult:
        return TurnResult(
            thread_id=thread_id,
            messages=[],
            run_id=run.id,
            status=RunStatus.FAILED,
            error=error,
            transitions=transitions,
        )
