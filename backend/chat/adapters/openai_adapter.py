from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from chat.adapters._payloads import message_from_payload, run_from_payload, to_payload
from chat.assistant_client import (
    AssistantMessage,
    AssistantRun,
    AssistantServiceError,
    ToolOutput,
    TransportEvent,
)


@dataclass
class OpenAiAssistantAdapter:
    """``AssistantClient`` backed by the OpenAI Assistants threads/runs API."""

    assistant_id: str
    api_key: str | None = None
    poll_interval_ms: int = 500
    client: Any | None = field(default=None, repr=False)

    def _client(self) -> Any:
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.api_key)
        return self.client

    # ---- threads & messages -------------------------------------------------

    async def create_thread(self) -> str:
        try:
            thread = await self._client().beta.threads.create()
        except OpenAIError as exc:
            raise AssistantServiceError(f"thread creation failed: {exc}") from exc
        return str(thread.id)

    async def create_message(self, *, thread_id: str, content: str) -> None:
        try:
            await self._client().beta.threads.messages.create(
                thread_id,
                role="user",
                content=content,
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"message creation failed: {exc}") from exc

    async def list_messages(self, *, thread_id: str) -> list[AssistantMessage]:
        try:
            page = await self._client().beta.threads.messages.list(thread_id)
        except OpenAIError as exc:
            raise AssistantServiceError(f"message listing failed: {exc}") from exc
        return [
            message_from_payload(message, thread_id=thread_id)
            for message in getattr(page, "data", None) or []
        ]

    # ---- runs (poll mode) ---------------------------------------------------

    async def create_run(self, *, thread_id: str) -> AssistantRun:
        try:
            run = await self._client().beta.threads.runs.create(
                thread_id,
                assistant_id=self.assistant_id,
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"run creation failed: {exc}") from exc
        return run_from_payload(run, thread_id=thread_id)

    async def poll_run(self, *, thread_id: str, run_id: str) -> AssistantRun:
        try:
            run = await self._client().beta.threads.runs.poll(
                run_id,
                thread_id=thread_id,
                poll_interval_ms=self.poll_interval_ms,
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"run polling failed: {exc}") from exc
        return run_from_payload(run, thread_id=thread_id)

    async def submit_tool_outputs(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[ToolOutput],
    ) -> AssistantRun:
        try:
            run = await self._client().beta.threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=_tool_outputs_to_api(tool_outputs),
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"tool output submission failed: {exc}") from exc
        return run_from_payload(run, thread_id=thread_id)

    # ---- runs (streaming) ---------------------------------------------------

    async def stream_run(self, *, thread_id: str) -> AsyncIterator[TransportEvent]:
        """Start a streaming run and return its events.

        The HTTP request is issued before this coroutine returns, so setup
        failures surface here rather than on first iteration.
        """
        try:
            stream = await self._client().beta.threads.runs.create(
                thread_id,
                assistant_id=self.assistant_id,
                stream=True,
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"run stream creation failed: {exc}") from exc
        return _transport_events(stream)

    async def submit_tool_outputs_stream(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[ToolOutput],
    ) -> AsyncIterator[TransportEvent]:
        try:
            stream = await self._client().beta.threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=_tool_outputs_to_api(tool_outputs),
                stream=True,
            )
        except OpenAIError as exc:
            raise AssistantServiceError(f"tool output submission failed: {exc}") from exc
        return _transport_events(stream)


def _tool_outputs_to_api(tool_outputs: list[ToolOutput]) -> list[dict[str, str]]:
    return [
        {"tool_call_id": output.tool_call_id, "output": output.output}
        for output in tool_outputs
    ]


async def _transport_events(stream: Any) -> AsyncIterator[TransportEvent]:
    try:
        async for event in stream:
            yield TransportEvent(
                event=str(getattr(event, "event", "")),
                data=to_payload(getattr(event, "data", None)),
            )
    except OpenAIError as exc:
        raise AssistantServiceError(f"assistant stream failed: {exc}") from exc
