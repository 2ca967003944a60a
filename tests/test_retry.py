"""Unit tests for the bounded retry executor."""

from __future__ import annotations

import pytest

from backstage_gitops.errors import BootstrapAborted
from backstage_gitops.resources import ActionResult
from backstage_gitops.retry import describe_failure, run_with_retry


class TestRunWithRetry:
    """Tests for run_with_retry."""

    def test_success_on_first_attempt(self):
        """A truthy result returns immediately without sleeping."""
        sleeps = []
        outcome = run_with_retry(lambda: ActionResult.success("ok"), 3, 10.0, sleep=sleeps.append)

        assert outcome.success is True
        assert outcome.attempts_used == 1
        assert outcome.last_error is None
        assert outcome.result.message == "ok"
        assert sleeps == []

    def test_success_on_third_attempt(self):
        """Failures on attempts 1 and 2 still succeed with attempts_used=3."""
        results = iter([
            ActionResult.failure("boom 1"),
            ActionResult.failure("boom 2"),
            ActionResult.success(),
        ])
        sleeps = []
        outcome = run_with_retry(lambda: next(results), 3, 10.0, sleep=sleeps.append)

        assert outcome.success is True
        assert outcome.attempts_used == 3
        assert sleeps == [10.0, 10.0]

    def test_exhausts_exactly_max_attempts(self):
        """A perpetually failing action is invoked exactly max_attempts times."""
        calls = []

        def action():
            calls.append(1)
            return ActionResult.failure(f"attempt {len(calls)} failed")

        outcome = run_with_retry(action, 4, 0.0, sleep=lambda _: None)

        assert outcome.success is False
        assert outcome.attempts_used == 4
        assert len(calls) == 4
        assert outcome.last_error == "attempt 4 failed"

    def test_exceptions_count_as_failed_attempts(self):
        """An exception from the action is retried and reported as last_error."""
        def action():
            raise RuntimeError("connection refused")

        outcome = run_with_retry(action, 2, 0.0, sleep=lambda _: None)

        assert outcome.success is False
        assert outcome.attempts_used == 2
        assert outcome.last_error == "connection refused"

    def test_fatal_exception_propagates_without_retry(self):
        """Exceptions listed as fatal are raised on the first attempt."""
        calls = []

        def action():
            calls.append(1)
            raise BootstrapAborted("stop")

        with pytest.raises(BootstrapAborted):
            run_with_retry(action, 3, 0.0, fatal=(BootstrapAborted,), sleep=lambda _: None)
        assert len(calls) == 1

    def test_keyboard_interrupt_is_never_retried(self):
        """KeyboardInterrupt is not an Exception and propagates immediately."""
        calls = []

        def action():
            calls.append(1)
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            run_with_retry(action, 3, 0.0, sleep=lambda _: None)
        assert len(calls) == 1

    def test_single_attempt_never_sleeps(self):
        """max_attempts=1 fails after one invocation with no delay."""
        sleeps = []
        outcome = run_with_retry(lambda: False, 1, 5.0, sleep=sleeps.append)

        assert outcome.success is False
        assert outcome.attempts_used == 1
        assert outcome.last_error == "action reported failure"
        assert sleeps == []

    @pytest.mark.parametrize("max_attempts, delay", [(0, 1.0), (-1, 1.0), (3, -0.5)])
    def test_invalid_arguments(self, max_attempts, delay):
        """Invalid attempt counts and negative delays are rejected."""
        with pytest.raises(ValueError):
            run_with_retry(lambda: True, max_attempts, delay)


class TestDescribeFailure:
    """Tests for describe_failure."""

    def test_uses_message_attribute(self):
        assert describe_failure(ActionResult.failure("kubectl exploded")) == "kubectl exploded"

    def test_falls_back_for_plain_values(self):
        assert describe_failure(None) == "action reported failure"
        assert describe_failure(False) == "action reported failure"
