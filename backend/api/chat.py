"""
API routes for chat operations.
Thin route layer - run orchestration lives in chat/orchestrator.py
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from chat import build_orchestrator
from chat.assistant_client import AssistantMessage
from chat.orchestrator import RunOrchestrator
from chat.runtime.turn_guard import ThreadBusyError, ThreadTurnGuard, get_turn_guard
from chat.streaming_bridge import RUN_FAILED, RunEventStream, StreamEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

GENERIC_ERROR = "Failed to process the request"


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_message: str = Field(alias="currentMessage", min_length=1)
    thread_id: str | None = Field(default=None, alias="threadId")


class HistoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: str = Field(alias="threadId", min_length=1)


def _build_orchestrator() -> RunOrchestrator:
    try:
        return build_orchestrator()
    except ValueError as exc:
        logger.error("Assistant is not configured: %s", exc)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc


def _error_response(status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": GENERIC_ERROR, **extra})


def _message_to_dict(message: AssistantMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
    }


def _encode_chunk(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=True, default=str, separators=(",", ":")) + "\n"


class _StreamBody:
    """NDJSON body of a streaming turn.

    Closing it releases the thread and the run stream whether or not
    iteration ever started, so an abandoned response never keeps the
    thread locked.
    """

    def __init__(
        self,
        events: RunEventStream,
        *,
        guard: ThreadTurnGuard,
        thread_id: str | None,
    ) -> None:
        self._events = events
        self._guard = guard
        self._thread_id = thread_id
        self._chunks = self._generate()
        self._closed = False

    def __aiter__(self) -> _StreamBody:
        return self

    async def __anext__(self) -> str:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        except BaseException:
            self._guard.release_nowait(self._thread_id)
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._guard.release_nowait(self._thread_id)
        try:
            await self._chunks.aclose()
        finally:
            await self._events.aclose()

    async def _generate(self) -> AsyncGenerator[str, None]:
        yield _encode_chunk({"pooling": True, "threadId": self._events.thread_id})
        try:
            async for event in self._events:
                yield _encode_chunk(event.to_dict())
        except Exception as exc:
            logger.exception("Chat stream failed on thread %s", self._events.thread_id)
            failure = StreamEvent(
                type=RUN_FAILED,
                thread_id=self._events.thread_id,
                error=str(exc) or GENERIC_ERROR,
            )
            yield _encode_chunk(failure.to_dict())


@router.post("/chat")
async def chat(body: ChatRequest):
    orchestrator = _build_orchestrator()
    try:
        async with get_turn_guard().hold(body.thread_id):
            result = await orchestrator.send(body.current_message, body.thread_id)
    except ThreadBusyError as exc:
        return _error_response(409, reason=str(exc))
    except Exception:
        logger.exception("Chat turn failed")
        return _error_response(500)

    if not result.ok:
        return _error_response(
            502,
            reason=result.error,
            status=None if result.status is None else result.status.value,
            threadId=result.thread_id,
        )

    latest = result.latest_message
    return {
        "message": None if latest is None else latest.content,
        "threadId": result.thread_id,
    }


@router.post("/chat-stream")
async def chat_stream(body: ChatRequest):
    orchestrator = _build_orchestrator()
    guard = get_turn_guard()
    try:
        await guard.acquire(body.thread_id)
    except ThreadBusyError as exc:
        return _error_response(409, reason=str(exc))

    try:
        events = await orchestrator.stream(body.current_message, body.thread_id)
    except Exception:
        await guard.release(body.thread_id)
        logger.exception("Chat stream setup failed")
        return _error_response(500)

    stream_body = _StreamBody(events, guard=guard, thread_id=body.thread_id)
    return StreamingResponse(
        stream_body,
        media_type="text/plain",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/history")
async def history(body: HistoryRequest):
    orchestrator = _build_orchestrator()
    try:
        messages = await orchestrator.history(body.thread_id)
    except Exception:
        logger.exception("History lookup failed for thread %s", body.thread_id)
        return _error_response(500)

    return {
        "messages": [_message_to_dict(message) for message in messages],
        "threadId": body.thread_id,
    }
