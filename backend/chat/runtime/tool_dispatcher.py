from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence

from chat.assistant_client import ToolCall, ToolOutput
from chat.tooling import ToolRegistry

logger = logging.getLogger(__name__)


class ToolDispatcher:
    def __init__(
        self,
        *,
        registry: ToolRegistry,
        placeholder_errors: bool = False,
    ) -> None:
        self._registry = registry
        self._placeholder_errors = placeholder_errors

    async def dispatch(self, tool_calls: Sequence[ToolCall]) -> list[ToolOutput]:
        """Invoke every pending call concurrently and collect the outputs.

        Outputs keep the order of ``tool_calls``. Unregistered names and calls
        that raise produce no output unless ``placeholder_errors`` is set, in
        which case a raising registered tool yields a JSON error string.
        """
        if not tool_calls:
            return []

        results = await asyncio.gather(
            *(self._invoke(tool_call) for tool_call in tool_calls),
            return_exceptions=True,
        )

        outputs: list[ToolOutput] = []
        for tool_call, result in zip(tool_calls, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    "Tool call %s (%s) failed: %s",
                    tool_call.id,
                    tool_call.name,
                    result,
                    exc_info=result,
                )
                if self._placeholder_errors:
                    outputs.append(
                        ToolOutput(
                            tool_call_id=tool_call.id,
                            output=json.dumps(
                                {"error": str(result) or type(result).__name__}
                            ),
                        )
                    )
                continue
            if result is None:
                continue
            outputs.append(ToolOutput(tool_call_id=tool_call.id, output=result))
        return outputs

    async def _invoke(self, tool_call: ToolCall) -> str | None:
        name = (tool_call.name or "").strip()
        return await self._registry.invoke(name, tool_call.arguments)
