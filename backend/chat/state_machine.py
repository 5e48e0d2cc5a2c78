from __future__ import annotations

import logging
from typing import Any, Callable

from chat.assistant_client import RunStatus

RUN_STATUS_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.QUEUED: {
        RunStatus.IN_PROGRESS,
        RunStatus.REQUIRES_ACTION,
        RunStatus.COMPLETED,
        RunStatus.CANCELLING,
        RunStatus.CANCELLED,
        RunStatus.FAILED,
        RunStatus.EXPIRED,
    },
    RunStatus.IN_PROGRESS: {
        RunStatus.REQUIRES_ACTION,
        RunStatus.COMPLETED,
        RunStatus.CANCELLING,
        RunStatus.CANCELLED,
        RunStatus.FAILED,
        RunStatus.EXPIRED,
        RunStatus.INCOMPLETE,
    },
    RunStatus.REQUIRES_ACTION: {
        RunStatus.QUEUED,
        RunStatus.IN_PROGRESS,
        RunStatus.COMPLETED,
        RunStatus.CANCELLING,
        RunStatus.CANCELLED,
        RunStatus.FAILED,
        RunStatus.EXPIRED,
    },
    RunStatus.CANCELLING: {RunStatus.CANCELLED, RunStatus.COMPLETED, RunStatus.FAILED},
    RunStatus.COMPLETED: set(),
    RunStatus.FAILED: set(),
    RunStatus.CANCELLED: set(),
    RunStatus.EXPIRED: set(),
    RunStatus.INCOMPLETE: set(),
}


def transition_run_status(
    *,
    current_status: RunStatus | None,
    to_status: RunStatus,
    run_id: str,
    transitions: list[dict[str, Any]],
    logger: logging.Logger,
    debug_log: Callable[..., None] | None = None,
) -> RunStatus:
    """Record a run status change observed from the remote service.

    The remote service owns run state, so an unexpected transition is logged
    and flagged in ``transitions`` but the observed status is still returned.
    """
    if current_status == to_status:
        return to_status

    entry: dict[str, Any] = {
        "run_id": run_id,
        "from": None if current_status is None else current_status.value,
        "to": to_status.value,
    }
    if current_status is not None and to_status not in RUN_STATUS_TRANSITIONS.get(
        current_status, set()
    ):
        logger.warning(
            "Unexpected run status transition: %s -> %s (run %s)",
            current_status.value,
            to_status.value,
            run_id,
        )
        entry["unexpected"] = True

    transitions.append(entry)
    if debug_log is not None:
        debug_log(
            location="chat/state_machine.py:transition_run_status",
            message="Run status transition",
            data=entry,
        )
    return to_status
