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

"""Bootstrap error hierarchy and exit code mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backstage_gitops.constants import EXIT_ABORTED, EXIT_FAILURE, INSTALL_DOCS

if TYPE_CHECKING:
    from backstage_gitops.sequencer import StepReport


class BootstrapError(RuntimeError):
    """Base class for every failure surfaced to the operator."""

    exit_code: int = EXIT_FAILURE


class MissingPrerequisiteError(BootstrapError):
    """One or more required tools are absent, or the docker daemon is down."""

    def __init__(self, missing: list[str], detail: str = "") -> None:
        self.missing = list(missing)
        if detail:
            message = detail
        else:
            message = f"Missing required tools: {', '.join(self.missing)}"
        super().__init__(message)

    def install_hints(self) -> list[str]:
        """Return one ``tool: url`` hint per missing tool with known docs."""
        return [f"{tool}: {INSTALL_DOCS[tool]}" for tool in self.missing if tool in INSTALL_DOCS]


class ClusterUnavailableError(BootstrapError):
    """No supported cluster was detected, or kubectl cannot reach it."""


class ReadinessTimeoutError(BootstrapError):
    """A resource did not reach the expected condition before its deadline."""


class StepFailedError(BootstrapError):
    """A provisioning step reached its terminal FAILED state."""

    def __init__(
        self,
        step_name: str,
        last_error: str | None,
        attempts: int = 0,
        reports: list[StepReport] | None = None,
    ) -> None:
        self.step_name = step_name
        self.last_error = last_error
        self.attempts = attempts
        self.reports = list(reports or [])
        reason = last_error or "unknown error"
        super().__init__(f"Step '{step_name}' failed after {attempts} attempt(s): {reason}")


class BootstrapAborted(BootstrapError):
    """A conflict policy chose to stop; a deliberate abort rather than a failure."""

    exit_code = EXIT_ABORTED
