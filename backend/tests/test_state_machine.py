import logging
import unittest

from chat.assistant_client import RunStatus
from chat.state_machine import RUN_STATUS_TRANSITIONS, transition_run_status

logger = logging.getLogger("test_state_machine")


class RunStatusTransitionTests(unittest.TestCase):
    def test_valid_transition_is_recorded(self) -> None:
        transitions: list[dict] = []

        status = transition_run_status(
            current_status=RunStatus.IN_PROGRESS,
            to_status=RunStatus.REQUIRES_ACTION,
            run_id="run_1",
            transitions=transitions,
            logger=logger,
        )

        self.assertEqual(status, RunStatus.REQUIRES_ACTION)
        self.assertEqual(
            transitions,
            [{"run_id": "run_1", "from": "in_progress", "to": "requires_action"}],
        )

    def test_requires_action_is_re_entrant(self) -> None:
        allowed = RUN_STATUS_TRANSITIONS[RunStatus.REQUIRES_ACTION]

        self.assertIn(RunStatus.QUEUED, allowed)
        self.assertIn(RunStatus.IN_PROGRESS, allowed)
        self.assertFalse(RunStatus.REQUIRES_ACTION.is_terminal)

    def test_terminal_statuses_have_no_exits(self) -> None:
        for status in (
            RunStatus.COMPLETED,
            RunStatus.FAILED,
            RunStatus.CANCELLED,
            RunStatus.EXPIRED,
        ):
            self.assertTrue(status.is_terminal)
            self.assertEqual(RUN_STATUS_TRANSITIONS[status], set())

    def test_unexpected_transition_is_flagged_but_kept(self) -> None:
        transitions: list[dict] = []

        with self.assertLogs(logger, level="WARNING"):
            status = transition_run_status(
                current_status=RunStatus.COMPLETED,
                to_status=RunStatus.IN_PROGRESS,
                run_id="run_1",
                transitions=transitions,
                logger=logger,
            )

        self.assertEqual(status, RunStatus.IN_PROGRESS)
        self.assertTrue(transitions[-1]["unexpected"])

    def test_same_status_is_not_recorded(self) -> None:
        transitions: list[dict] = []

        transition_run_status(
            current_status=RunStatus.QUEUED,
            to_status=RunStatus.QUEUED,
            run_id="run_1",
            transitions=transitions,
            logger=logger,
        )

        self.assertEqual(transitions, [])

    def test_debug_log_receives_transition(self) -> None:
        calls: list[dict] = []

        transition_run_status(
            current_status=None,
            to_status=RunStatus.QUEUED,
            run_id="run_9",
            transitions=[],
            logger=logger,
            debug_log=lambda **kwargs: calls.append(kwargs),
        )

        self.assertEqual(calls[0]["data"], {"run_id": "run_9", "from": None, "to": "queued"})


if __name__ == "__main__":
    unittest.main()
