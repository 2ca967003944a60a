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

"""Download missing kind and kubectl binaries into a user bin directory."""

from __future__ import annotations

import os
from pathlib import Path

import httpx
from rich.panel import Panel

from backstage_gitops import console, logger
from backstage_gitops.constants import DEFAULT_INSTALL_DIR, dep_value
from backstage_gitops.errors import MissingPrerequisiteError
from backstage_gitops.utils import command_exists, detect_platform

INSTALLABLE_TOOLS = ("kind", "kubectl")
DOWNLOAD_TIMEOUT_SECONDS = 120.0


def kind_download_url(os_name: str, arch: str) -> str:
    version = dep_value("kind", "version")
    return dep_value("kind", "download_url").format(version=version, os=os_name, arch=arch)


def kubectl_download_url(client: httpx.Client, os_name: str, arch: str) -> str:
    """Resolve the current stable kubectl release and build its download URL."""
    response = client.get(dep_value("kubectl", "stable_url"))
    response.raise_for_status()
    version = response.text.strip()
    return dep_value("kubectl", "download_url").format(version=version, os=os_name, arch=arch)


def _download(client: httpx.Client, url: str, target: Path) -> None:
    tmp = target.with_suffix(".download")
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(tmp, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        tmp.chmod(0o755)
        tmp.replace(target)
    finally:
        tmp.unlink(missing_ok=True)


def install_tool(tool: str, install_dir: Path = DEFAULT_INSTALL_DIR, client: httpx.Client | None = None) -> Path:
    """Download *tool* for the current platform into *install_dir*.

    Args:
        tool: ``kind`` or ``kubectl``.
        install_dir: Directory to place the executable in (created if needed).
        client: Optional httpx client; one with redirects enabled is created otherwise.

    Returns:
        Path to the installed executable.

    Raises:
        MissingPrerequisiteError: If the tool cannot be installed automatically
            or the download fails.
    """
    if tool not in INSTALLABLE_TOOLS:
        raise MissingPrerequisiteError([tool], f"'{tool}' cannot be installed automatically")

    os_name, arch = detect_platform()
    install_dir.mkdir(parents=True, exist_ok=True)
    target = install_dir / tool

    own_client = client is None
    if own_client:
        client = httpx.Client(follow_redirects=True, timeout=DOWNLOAD_TIMEOUT_SECONDS)
    try:
        if tool == "kind":
            url = kind_download_url(os_name, arch)
        else:
            url = kubectl_download_url(client, os_name, arch)
        console.print(f"[yellow]ℹ️  Downloading {tool} from: {url}[/yellow]")
        _download(client, url, target)
    except httpx.HTTPError as err:
        raise MissingPrerequisiteError([tool], f"Failed to download {tool}: {err}") from err
    finally:
        if own_client:
            client.close()

    logger.info("Installed %s to %s", tool, target)
    console.print(f"[green]✅ {tool} installed to {target}[/green]")
    return target


def ensure_tools(tools: list[str], install_dir: Path = DEFAULT_INSTALL_DIR, client: httpx.Client | None = None) -> list[str]:
    """Install whichever of *tools* are missing and installable.

    The install directory is prepended to PATH for this process so later
    checks and sh calls find the new binaries.

    Returns:
        Names of the tools that were installed.
    """
    missing = [tool for tool in tools if tool in INSTALLABLE_TOOLS and not command_exists(tool)]
    if not missing:
        return []
    console.print(Panel.fit("Installing missing tools", style="bold blue"))
    for tool in missing:
        install_tool(tool, install_dir, client)
    path_entries = os.environ.get("PATH", "").split(os.pathsep)
    if str(install_dir) not in path_entries:
        os.environ["PATH"] = os.pathsep.join([str(install_dir), *path_entries])
    return missing
