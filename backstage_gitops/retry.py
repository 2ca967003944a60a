# /*
# Copyright 2026 The Backstage GitOps Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Bounded retry executor with a fixed delay between sequential attempts."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from backstage_gitops import logger


@dataclass(frozen=True)
class RetryOutcome:
    """Result of running an action under bounded retry.

    Attributes:
        success: Whether any attempt succeeded.
        attempts_used: Number of times the action was invoked.
        last_error: Error from the final failed attempt, or None on success.
        result: Value returned by the successful attempt.
    """

    success: bool
    attempts_used: int
    last_error: str | None = None
    result: Any = None


def describe_failure(value: Any) -> str:
    """Turn a falsy action result into an error string."""
    message = getattr(value, "message", "")
    return message or "action reported failure"


def _describe_exception(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def run_with_retry(
    action: Callable[[], Any],
    max_attempts: int,
    delay: float,
    *,
    name: str = "action",
    fatal: tuple[type[BaseException], ...] = (),
    sleep: Callable[[float], None] = time.sleep,
) -> RetryOutcome:
    """Invoke *action* until it returns a truthy value or attempts run out.

    A falsy return value and any ``Exception`` both count as a failed attempt.
    Exceptions listed in *fatal* (and anything that is not an ``Exception``,
    such as ``KeyboardInterrupt``) propagate immediately without retry.

    Args:
        action: Zero-argument callable performing one attempt.
        max_attempts: Total attempts allowed; must be at least 1.
        delay: Seconds to wait between attempts.
        name: Label used in log messages.
        fatal: Exception types that abort instead of being retried.
        sleep: Sleep function, replaceable in tests.

    Returns:
        RetryOutcome describing the final attempt.

    Raises:
        ValueError: If *max_attempts* is below 1 or *delay* is negative.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got {delay}")

    attempts = 0

    def _attempt() -> Any:
        nonlocal attempts
        attempts += 1
        return action()

    def _log_retry(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            reason = _describe_exception(outcome.exception())
        else:
            reason = describe_failure(outcome.result() if outcome is not None else None)
        logger.warning(
            "%s failed (attempt %d/%d): %s; retrying in %ss",
            name, retry_state.attempt_number, max_attempts, reason, delay,
        )

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=(
            retry_if_exception(lambda exc: isinstance(exc, Exception) and not isinstance(exc, fatal))
            | retry_if_result(lambda value: not value)
        ),
        before_sleep=_log_retry,
        sleep=sleep,
    )

    try:
        value = retrying(_attempt)
    except RetryError as err:
        last = err.last_attempt
        if last.failed:
            last_error = _describe_exception(last.exception())
        else:
            last_error = describe_failure(last.result())
        return RetryOutcome(success=False, attempts_used=attempts, last_error=last_error)
    return RetryOutcome(success=True, attempts_used=attempts, result=value)
