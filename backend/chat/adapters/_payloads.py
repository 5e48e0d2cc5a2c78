from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from chat.assistant_client import AssistantMessage, AssistantRun, RunStatus, ToolCall


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def to_payload(obj: Any) -> dict[str, Any]:
    """Turn an SDK model (or mapping) into a plain dict."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        return dump(mode="json")
    return dict(vars(obj))


def parse_tool_arguments(raw_arguments: Any) -> dict[str, Any]:
    if isinstance(raw_arguments, Mapping):
        return dict(raw_arguments)
    if not raw_arguments:
        return {}
    try:
        parsed = json.loads(raw_arguments)
    except (TypeError, json.JSONDecodeError):
        return {"_raw": raw_arguments}
    if not isinstance(parsed, dict):
        return {"_raw": raw_arguments}
    return parsed


def tool_calls_from_required_action(required_action: Any) -> tuple[ToolCall, ...]:
    submit = _get(required_action, "submit_tool_outputs")
    tool_calls: list[ToolCall] = []
    for raw_call in _get(submit, "tool_calls") or []:
        function = _get(raw_call, "function")
        tool_calls.append(
            ToolCall(
                id=str(_get(raw_call, "id") or f"call_{len(tool_calls) + 1}"),
                name=str(_get(function, "name") or ""),
                arguments=parse_tool_arguments(_get(function, "arguments")),
            )
        )
    return tuple(tool_calls)


def run_error_reason(run: Any) -> str | None:
    last_error = _get(run, "last_error")
    if last_error is not None:
        code = _get(last_error, "code")
        message = _get(last_error, "message")
        if code and message:
            return f"{code}: {message}"
        if message or code:
            return str(message or code)

    incomplete = _get(run, "incomplete_details")
    reason = _get(incomplete, "reason")
    if reason:
        return f"incomplete: {reason}"
    return None


def run_from_payload(run: Any, *, thread_id: str | None = None) -> AssistantRun:
    status = RunStatus(str(_get(run, "status")))
    tool_calls: tuple[ToolCall, ...] = ()
    if status is RunStatus.REQUIRES_ACTION:
        tool_calls = tool_calls_from_required_action(_get(run, "required_action"))
    return AssistantRun(
        id=str(_get(run, "id")),
        thread_id=str(_get(run, "thread_id") or thread_id or ""),
        status=status,
        tool_calls=tool_calls,
        last_error=run_error_reason(run),
    )


def _text_from_content(content: Any) -> str:
    parts: list[str] = []
    for part in content or []:
        if _get(part, "type") != "text":
            continue
        text = _get(part, "text")
        value = _get(text, "value")
        if value:
            parts.append(str(value))
    return "".join(parts)


def message_text(message: Any) -> str:
    return _text_from_content(_get(message, "content"))


def message_delta_text(message_delta: Any) -> str:
    return _text_from_content(_get(_get(message_delta, "delta"), "content"))


def message_from_payload(message: Any, *, thread_id: str | None = None) -> AssistantMessage:
    return AssistantMessage(
        id=str(_get(message, "id") or ""),
        thread_id=str(_get(message, "thread_id") or thread_id or ""),
        role=str(_get(message, "role") or "assistant"),
        content=message_text(message),
    )
