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

"""Utility functions for prerequisite checks and sh error handling."""

from __future__ import annotations

import platform
from collections.abc import Callable, Iterable

import docker
import sh
from rich.panel import Panel

from backstage_gitops import console
from backstage_gitops.constants import ARCH_ALIASES
from backstage_gitops.errors import MissingPrerequisiteError
from backstage_gitops.resources import ActionResult


def command_exists(cmd: str) -> bool:
    try:
        sh.which(cmd)
    except (sh.ErrorReturnCode, sh.CommandNotFound):
        return False
    return True


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        MissingPrerequisiteError: If the command is not found.
    """
    if not command_exists(cmd):
        raise MissingPrerequisiteError(
            [cmd], f"Required command '{cmd}' not found. Please install it first."
        )


def check_prerequisites(tools: Iterable[str]) -> None:
    """Verify every tool is installed, reporting all missing ones at once.

    Args:
        tools: CLI command names that must be on PATH.

    Raises:
        MissingPrerequisiteError: Listing every missing tool.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    missing = [tool for tool in tools if not command_exists(tool)]
    if missing:
        raise MissingPrerequisiteError(missing)
    console.print("[green]✅ All required tools are available[/green]")


def check_docker_running() -> None:
    """Ping the docker daemon through the docker SDK.

    Raises:
        MissingPrerequisiteError: If the daemon is unreachable.
    """
    console.print("[yellow]ℹ️  Checking Docker...[/yellow]")
    try:
        client = docker.from_env()
    except docker.errors.DockerException as err:
        raise MissingPrerequisiteError(
            ["docker"], f"Docker is not running ({err}). Please start Docker and try again."
        ) from err
    try:
        client.ping()
    except docker.errors.DockerException as err:
        raise MissingPrerequisiteError(
            ["docker"], f"Docker is not running ({err}). Please start Docker and try again."
        ) from err
    finally:
        client.close()
    console.print("[green]✅ Docker is running[/green]")


def detect_platform() -> tuple[str, str]:
    """Return the (os, arch) pair used in kind/kubectl download URLs.

    Raises:
        MissingPrerequisiteError: On an architecture with no published binaries.
    """
    os_name = platform.system().lower()
    machine = platform.machine().lower()
    arch = ARCH_ALIASES.get(machine)
    if arch is None:
        raise MissingPrerequisiteError([], f"Unsupported architecture: {machine}")
    return os_name, arch


def error_text(err: sh.ErrorReturnCode) -> str:
    """Decode the most useful part of an sh failure (stderr, else stdout)."""
    for stream in (err.stderr, err.stdout):
        if stream:
            text = stream.decode("utf-8", errors="replace") if isinstance(stream, bytes) else str(stream)
            if text.strip():
                return text.strip()[:500]
    return f"exit code {getattr(err, 'exit_code', '?')}"


def sh_action(fn: Callable[[], object], description: str) -> ActionResult:
    """Run an sh-based callable and fold its failure into an ActionResult.

    Args:
        fn: Callable invoking one or more sh commands.
        description: What the callable does, used in the failure message.

    Returns:
        Success, or failure carrying the command's stderr.
    """
    try:
        fn()
    except sh.ErrorReturnCode as err:
        return ActionResult.failure(f"{description} failed: {error_text(err)}")
    except sh.CommandNotFound as err:
        return ActionResult.failure(f"{description} failed: command not found ({err})")
    return ActionResult.success()
