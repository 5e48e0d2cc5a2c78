from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from weather import can_go_outside, format_temperature, get_weather

logger = logging.getLogger(__name__)

CAN_GO_OUTSIDE_TOOL = "canGoOutside"
CURRENT_TEMPERATURE_TOOL = "getCurrentTemperature"


class ToolRegistrationError(ValueError):
    pass


class ToolArgumentsError(ValueError):
    pass


class WeatherQuery(BaseModel):
    city: str = Field(min_length=1, description="City name, e.g. Paris")
    country: str = Field(min_length=1, description="Country name or ISO code")


@dataclass(frozen=True)
class RegisteredTool:
    name: str
    description: str
    arguments_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[str]]

    def definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.arguments_model.model_json_schema(),
            },
        }


class ToolRegistry:
    """Fixed set of named async tools, validated when the registry is built."""

    def __init__(self, tools: Iterable[RegisteredTool]) -> None:
        registered: dict[str, RegisteredTool] = {}
        for tool in tools:
            name = (tool.name or "").strip()
            if not name:
                raise ToolRegistrationError("tool name must not be empty")
            if name in registered:
                raise ToolRegistrationError(f"duplicate tool name '{name}'")
            if not (
                isinstance(tool.arguments_model, type)
                and issubclass(tool.arguments_model, BaseModel)
            ):
                raise ToolRegistrationError(
                    f"tool '{name}' must declare a pydantic arguments model"
                )
            if not inspect.iscoroutinefunction(tool.handler):
                raise ToolRegistrationError(
                    f"tool '{name}' handler must be an async function"
                )
            registered[name] = tool
        self._tools = registered

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def definitions(self) -> list[dict[str, Any]]:
        return [tool.definition() for tool in self._tools.values()]

    async def invoke(self, name: str, args: Mapping[str, Any] | None) -> str | None:
        """Run tool ``name`` and return its string output.

        Unregistered names return ``None`` so one unknown call does not abort
        the rest of a batch.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Skipping unregistered tool call '%s'", name)
            return None

        try:
            parsed = tool.arguments_model.model_validate(dict(args or {}))
        except ValidationError as exc:
            raise ToolArgumentsError(
                f"invalid arguments for tool '{name}': {exc.errors()}"
            ) from exc

        output = await tool.handler(parsed)
        if not isinstance(output, str):
            raise TypeError(
                f"tool '{name}' returned {type(output).__name__}, expected str"
            )
        return output


def build_weather_registry(
    *,
    api_key: str | None,
    http_client: httpx.AsyncClient | None = None,
) -> ToolRegistry:
    async def can_go_outside_tool(query: WeatherQuery) -> str:
        report = await get_weather(
            query.city, query.country, api_key=api_key, client=http_client
        )
        return "true" if can_go_outside(report) else "false"

    async def current_temperature_tool(query: WeatherQuery) -> str:
        report = await get_weather(
            query.city, query.country, api_key=api_key, client=http_client
        )
        return format_temperature(report.main.feels_like)

    return ToolRegistry(
        [
            RegisteredTool(
                name=CAN_GO_OUTSIDE_TOOL,
                description=(
                    "Decide whether the weather in a city is pleasant enough to "
                    "go outside. Returns 'true' or 'false'."
                ),
                arguments_model=WeatherQuery,
                handler=can_go_outside_tool,
            ),
            RegisteredTool(
                name=CURRENT_TEMPERATURE_TOOL,
                description=(
                    "Get the current feels-like temperature of a city in "
                    "degrees Celsius."
                ),
                arguments_model=WeatherQuery,
                handler=current_temperature_tool,
            ),
        ]
    )
