from __future__ import annotations

import httpx

from chat.adapters.openai_adapter import OpenAiAssistantAdapter
from chat.assistant_client import AssistantClient
from chat.orchestrator import RunOrchestrator
from chat.tooling import ToolRegistry, build_weather_registry
from env_loader import AppSettings, load_settings


def build_assistant_client(
    *,
    api_key: str | None = None,
    assistant_id: str | None = None,
    settings: AppSettings | None = None,
) -> AssistantClient:
    resolved = settings or load_settings()
    resolved_api_key = api_key or resolved.openai_api_key
    resolved_assistant_id = assistant_id or resolved.openai_assistant_id

    if not resolved_api_key:
        raise ValueError("OPENAI_API_KEY is not configured")
    if not resolved_assistant_id:
        raise ValueError("OPENAI_ASSISTANT_ID is not configured")

    return OpenAiAssistantAdapter(
        assistant_id=resolved_assistant_id,
        api_key=resolved_api_key,
        poll_interval_ms=resolved.poll_interval_ms,
    )


def build_tool_registry(
    *,
    settings: AppSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ToolRegistry:
    resolved = settings or load_settings()
    if not resolved.openweather_api_key:
        raise ValueError("OPENWEATHER_API_KEY is not configured")
    return build_weather_registry(
        api_key=resolved.openweather_api_key,
        http_client=http_client,
    )


def build_orchestrator(
    *,
    settings: AppSettings | None = None,
    client: AssistantClient | None = None,
    registry: ToolRegistry | None = None,
) -> RunOrchestrator:
    resolved = settings or load_settings()
    return RunOrchestrator(
        client=client or build_assistant_client(settings=resolved),
        registry=registry or build_tool_registry(settings=resolved),
        max_tool_rounds=resolved.max_tool_rounds,
        placeholder_errors=resolved.tool_placeholder_errors,
    )
