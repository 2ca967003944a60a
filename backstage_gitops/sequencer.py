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

"""Idempotent step sequencer.

Every step walks the same state machine::

    PENDING -> CHECKING_EXISTS -> (SKIPPED | APPLYING) -> (READY | FAILED)

A step whose effect is already present is never applied. A step that is
applied goes through the bounded retry executor, and when it carries a
readiness probe each attempt is "apply, then poll"; a readiness timeout
therefore fails the attempt and the whole step is retried. The first FAILED
step stops the sequence. A conflict policy abort also leaves its step FAILED
before it propagates.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backstage_gitops import logger
from backstage_gitops.constants import DEFAULT_APPLY_MAX_ATTEMPTS, DEFAULT_APPLY_RETRY_DELAY_SECONDS
from backstage_gitops.errors import BootstrapAborted, StepFailedError
from backstage_gitops.readiness import ReadinessPoller, ReadinessProbe
from backstage_gitops.resources import ActionResult
from backstage_gitops.retry import describe_failure, run_with_retry


class StepState(str, Enum):
    PENDING = "pending"
    CHECKING_EXISTS = "checking-exists"
    SKIPPED = "skipped"
    APPLYING = "applying"
    READY = "ready"
    FAILED = "failed"


@dataclass
class ProvisioningStep:
    """One idempotent provisioning action.

    Attributes:
        name: Step name shown to the operator and carried by failures.
        apply_action: Performs the action; a falsy result means failure.
        exists_check: Reports whether the action's effect is already present.
        max_attempts: Attempts allowed for the apply phase (>= 1).
        retry_delay: Fixed delay between attempts, in seconds.
        readiness: Optional probe that must pass before the step is READY.
        description: Optional one-line summary for console output.
    """

    name: str
    apply_action: Callable[[], Any]
    exists_check: Callable[[], bool]
    max_attempts: int = DEFAULT_APPLY_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_APPLY_RETRY_DELAY_SECONDS
    readiness: ReadinessProbe | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"Step '{self.name}': max_attempts must be >= 1, got {self.max_attempts}")
        if self.retry_delay < 0:
            raise ValueError(f"Step '{self.name}': retry_delay must be >= 0, got {self.retry_delay}")


@dataclass
class StepReport:
    name: str
    state: StepState = StepState.PENDING
    history: list[StepState] = field(default_factory=lambda: [StepState.PENDING])
    attempts_used: int = 0
    error: str | None = None

    @property
    def skipped(self) -> bool:
        return StepState.SKIPPED in self.history

    def transition(self, state: StepState) -> None:
        self.state = state
        self.history.append(state)


@dataclass
class SequenceReport:
    steps: list[StepReport] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(step.state is StepState.READY for step in self.steps)

    def get(self, name: str) -> StepReport:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)


class StepSequencer:
    """Runs ProvisioningSteps strictly in order, stopping at the first failure.

    Args:
        poller: Readiness poller used for steps that carry a probe.
        on_transition: Optional callback receiving ``(step, state)`` on every
            state change; used for console output.
        sleep: Sleep function for retry delays, replaceable in tests.
    """

    def __init__(
        self,
        poller: ReadinessPoller,
        *,
        on_transition: Callable[[ProvisioningStep, StepState], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.poller = poller
        self.on_transition = on_transition
        self._sleep = sleep

    def run(self, steps: Sequence[ProvisioningStep]) -> SequenceReport:
        """Run every step in order.

        Returns:
            SequenceReport in which every step is READY.

        Raises:
            StepFailedError: On the first step that reaches FAILED; later
                steps are left PENDING in ``reports``.
            BootstrapAborted: When a step's conflict policy chose to stop.
        """
        report = SequenceReport([StepReport(step.name) for step in steps])
        for step, step_report in zip(steps, report.steps):
            self._run_step(step, step_report)
            if step_report.state is StepState.FAILED:
                raise StepFailedError(step.name, step_report.error, step_report.attempts_used, report.steps)
        return report

    def _move(self, step: ProvisioningStep, report: StepReport, state: StepState) -> None:
        report.transition(state)
        logger.debug("step %s -> %s", step.name, state.value)
        if self.on_transition is not None:
            self.on_transition(step, state)

    def _fail(self, step: ProvisioningStep, report: StepReport, error: str) -> None:
        report.error = error
        self._move(step, report, StepState.FAILED)

    def _run_step(self, step: ProvisioningStep, report: StepReport) -> None:
        self._move(step, report, StepState.CHECKING_EXISTS)
        try:
            present = step.exists_check()
        except BootstrapAborted as err:
            self._fail(step, report, str(err))
            raise
        except Exception as exc:
            self._fail(step, report, f"existence check failed: {exc}")
            return

        if present:
            self._move(step, report, StepState.SKIPPED)
            if step.readiness is not None:
                result = self.poller.wait(step.readiness)
                if not result.ready:
                    self._fail(step, report, result.error)
                    return
            self._move(step, report, StepState.READY)
            return

        self._move(step, report, StepState.APPLYING)
        try:
            outcome = run_with_retry(
                lambda: self._apply_once(step),
                step.max_attempts,
                step.retry_delay,
                name=step.name,
                fatal=(BootstrapAborted,),
                sleep=self._sleep,
            )
        except BootstrapAborted as err:
            self._fail(step, report, str(err))
            raise
        report.attempts_used = outcome.attempts_used
        if outcome.success:
            self._move(step, report, StepState.READY)
        else:
            self._fail(step, report, outcome.last_error)

    def _apply_once(self, step: ProvisioningStep) -> ActionResult:
        result = step.apply_action()
        if not result:
            return ActionResult.failure(describe_failure(result))
        if step.readiness is None:
            return ActionResult.success()
        readiness = self.poller.wait(step.readiness)
        if readiness.ready:
            return ActionResult.success()
        return ActionResult.failure(readiness.error)
