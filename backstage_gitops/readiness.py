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

"""Readiness polling bounded by a hard deadline."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from tenacity import RetryError, Retrying, retry_if_result

from backstage_gitops import logger
from backstage_gitops.errors import ReadinessTimeoutError
from backstage_gitops.kube import ClusterClient
from backstage_gitops.resources import ReadinessCheck, ResourceSelector


@dataclass(frozen=True)
class ReadinessProbe:
    """A condition to poll for on a set of resources.

    Attributes:
        selector: Resources the condition applies to.
        timeout: Hard deadline in seconds.
        poll_interval: Seconds between the start of consecutive polls.
        condition: Kubernetes condition type to wait for.
    """

    selector: ResourceSelector
    timeout: float
    poll_interval: float
    condition: str = "Ready"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")


@dataclass(frozen=True)
class ReadinessResult:
    ready: bool
    attempts: int
    elapsed: float
    error: str | None = None


class ReadinessPoller:
    """Polls a ClusterClient until a probe's condition holds or its deadline passes.

    Each tick hands the remaining slice of the interval to the client's
    blocking ``wait_ready``; whatever is left of the tick is slept off, and
    no sleep ever extends past the deadline.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cluster = cluster
        self._clock = clock
        self._sleep = sleep

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def wait(self, probe: ReadinessProbe) -> ReadinessResult:
        start = self._clock()
        deadline = start + probe.timeout
        attempts = 0
        tick_end = start
        last: ReadinessCheck | None = None

        def _poll() -> ReadinessCheck:
            nonlocal attempts, tick_end, last
            now = self._clock()
            remaining = deadline - now
            if remaining <= 0:
                # The last sleep ran up to the deadline; let stop end the loop.
                return last
            attempts += 1
            tick_end = now + probe.poll_interval
            last = self.cluster.wait_ready(
                probe.selector,
                timeout=min(probe.poll_interval, remaining),
                condition=probe.condition,
            )
            if not last.ready:
                logger.debug("%s not ready yet (%s): %s", probe.selector, last.status.value, last.message)
            return last

        retrying = Retrying(
            stop=lambda retry_state: self._clock() >= deadline,
            wait=lambda retry_state: min(tick_end, deadline) - self._clock(),
            retry=retry_if_result(lambda check: not check.ready),
            sleep=self._pause,
        )

        try:
            retrying(_poll)
        except RetryError as err:
            check = err.last_attempt.result()
            detail = f": {check.message}" if check.message else ""
            return ReadinessResult(
                False,
                attempts,
                self._clock() - start,
                error=f"{probe.selector} not {probe.condition} within {probe.timeout:g}s{detail}",
            )
        return ReadinessResult(True, attempts, self._clock() - start)

    def require(self, probe: ReadinessProbe) -> ReadinessResult:
        """Like :meth:`wait`, but raise when the deadline passes.

        Raises:
            ReadinessTimeoutError: If the condition never held.
        """
        result = self.wait(probe)
        if not result.ready:
            raise ReadinessTimeoutError(result.error)
        return result
