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

"""Cluster API collaborator interface and its kubectl adapter."""

from __future__ import annotations

import base64
import binascii
import math
import subprocess
from typing import Protocol

from backstage_gitops import logger
from backstage_gitops.constants import KUBECTL_TIMEOUT_SLACK_SECONDS
from backstage_gitops.errors import ClusterUnavailableError
from backstage_gitops.resources import (
    ActionResult,
    Manifest,
    ReadinessCheck,
    ReadyStatus,
    ResourceSelector,
)

# stderr fragments meaning "the resource set does not exist (yet)"
NOT_FOUND_MARKERS = (
    "no matching resources found",
    "notfound",
    "not found",
    "doesn't have a resource type",
)


def run_kubectl(args: list[str], timeout: int = 30, input: str | None = None) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because readiness and existence checks need
    stdout and stderr kept apart to classify "not found" answers.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.
        input: Optional text fed to kubectl's stdin (for ``apply -f -``).

    Returns:
        Tuple of (success, stdout, stderr).
    """
    logger.debug("kubectl %s", " ".join(args))
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def _is_not_found(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


def _duration(seconds: float) -> str:
    """Format seconds as a kubectl duration, rounding up to whole seconds."""
    return f"{max(0, math.ceil(seconds))}s"


class ClusterClient(Protocol):
    """What the orchestration logic needs from a cluster API."""

    def exists(self, selector: ResourceSelector) -> bool: ...

    def apply(self, manifest: Manifest) -> ActionResult: ...

    def wait_ready(self, selector: ResourceSelector, timeout: float, condition: str = "Ready") -> ReadinessCheck: ...

    def read_secret(self, namespace: str, name: str, key: str) -> str | None: ...


class KubectlClient:
    """ClusterClient backed by the kubectl binary on PATH.

    Args:
        context: Optional kubeconfig context; every call is pinned to it when set.
        request_timeout: Subprocess timeout for non-blocking kubectl calls.
    """

    def __init__(self, context: str | None = None, request_timeout: int = 60) -> None:
        self.context = context
        self.request_timeout = request_timeout

    def _run(self, args: list[str], timeout: int | None = None, input: str | None = None) -> tuple[bool, str, str]:
        if self.context:
            args = ["--context", self.context, *args]
        return run_kubectl(args, timeout=timeout or self.request_timeout, input=input)

    # -- ClusterClient --------------------------------------------------------

    def exists(self, selector: ResourceSelector) -> bool:
        """Report whether at least one resource matches the selector.

        Raises:
            ClusterUnavailableError: If kubectl fails for any reason other
                than the resource (or its type) being absent.
        """
        ok, stdout, stderr = self._run(["get", *selector.target_args(), "-o", "name", "--ignore-not-found"])
        if ok:
            return bool(stdout.strip())
        if _is_not_found(stderr):
            return False
        raise ClusterUnavailableError(f"Cannot query {selector}: {stderr.strip()[:200]}")

    def apply(self, manifest: Manifest) -> ActionResult:
        if manifest.body is not None:
            args = ["apply", "-f", "-"]
            payload = manifest.render()
        else:
            args = ["apply", "-f", manifest.source]
            payload = None
        if manifest.namespace:
            args[1:1] = ["-n", manifest.namespace]
        ok, stdout, stderr = self._run(args, input=payload)
        if ok:
            return ActionResult.success(stdout.strip())
        return ActionResult.failure(stderr.strip() or f"kubectl apply of {manifest.name} failed")

    def wait_ready(self, selector: ResourceSelector, timeout: float, condition: str = "Ready") -> ReadinessCheck:
        """Block in ``kubectl wait`` for at most *timeout* seconds.

        Missing resources come back as NOT_FOUND rather than an error so that
        callers can keep polling until pods get scheduled.
        """
        args = [
            "wait", f"--for=condition={condition}",
            *selector.target_args(match_all=True),
            f"--timeout={_duration(timeout)}",
        ]
        ok, stdout, stderr = self._run(args, timeout=math.ceil(timeout) + KUBECTL_TIMEOUT_SLACK_SECONDS)
        if ok:
            return ReadinessCheck(ReadyStatus.READY, stdout.strip())
        if _is_not_found(stderr):
            return ReadinessCheck(ReadyStatus.NOT_FOUND, stderr.strip())
        return ReadinessCheck(ReadyStatus.NOT_READY, stderr.strip())

    def read_secret(self, namespace: str, name: str, key: str) -> str | None:
        jsonpath = "{.data." + key.replace(".", "\\.") + "}"
        ok, stdout, _ = self._run(["get", "secret", name, "-n", namespace, "-o", f"jsonpath={jsonpath}"])
        if not ok or not stdout.strip():
            return None
        try:
            return base64.b64decode(stdout.strip()).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("Secret %s/%s key %s is not valid base64 text", namespace, name, key)
            return None

    # -- Context helpers ------------------------------------------------------

    def current_context(self) -> str | None:
        ok, stdout, _ = run_kubectl(["config", "current-context"])
        return stdout.strip() if ok and stdout.strip() else None

    def use_context(self, context: str) -> bool:
        ok, _, stderr = run_kubectl(["config", "use-context", context])
        if not ok:
            logger.warning("Could not switch to context %s: %s", context, stderr.strip())
        return ok

    def cluster_info(self) -> bool:
        ok, _, _ = self._run(["cluster-info"])
        return ok

    def get_text(self, args: list[str]) -> str:
        """Return kubectl's table output for display, or stderr if the call failed."""
        ok, stdout, stderr = self._run(["get", *args])
        return stdout if ok else stderr
