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

"""kind subcommands (up, verify, delete)."""

from __future__ import annotations

from pathlib import Path

import typer

from backstage_gitops import kind, orchestrator
from backstage_gitops.commands import handle_errors
from backstage_gitops.config import BootstrapOptions, ClusterConfig, ConflictPolicy
from backstage_gitops.utils import require_command

app = typer.Typer(help="Manage the local kind cluster.")


def _cluster_config(name: str | None, config: Path | None = None) -> ClusterConfig:
    # Keyword overrides take precedence over BACKSTAGE_* env vars and are validated.
    overrides: dict = {}
    if name is not None:
        overrides["cluster_name"] = name
    if config is not None:
        overrides["kind_config"] = config
    return ClusterConfig(**overrides)


@app.command("up")
def up(
    name: str | None = typer.Option(None, "--name", help="kind cluster name"),
    config: Path | None = typer.Option(None, "--config", help="kind cluster config file"),
    recreate: bool = typer.Option(False, "--recreate", help="Delete an existing cluster first"),
    on_conflict: ConflictPolicy = typer.Option(
        ConflictPolicy.CONTINUE, "--on-conflict", help="What to do if the cluster already exists"
    ),
    install_missing: bool = typer.Option(
        False, "--install-missing", help="Download missing kind/kubectl into ~/.local/bin"
    ),
) -> None:
    """Create the kind cluster (or reuse it) and wait for its nodes."""
    with handle_errors():
        options = BootstrapOptions(
            cluster=_cluster_config(name, config),
            on_conflict=on_conflict,
            recreate=recreate,
            install_missing=install_missing,
        )
        orchestrator.run_kind_setup(options)


@app.command("verify")
def verify(
    name: str | None = typer.Option(None, "--name", help="kind cluster name"),
) -> None:
    """Check the cluster exists, switch kubectl to it, and wait for Ready nodes."""
    with handle_errors():
        orchestrator.run_kind_verify(BootstrapOptions(cluster=_cluster_config(name)))


@app.command("delete")
def delete(
    name: str | None = typer.Option(None, "--name", help="kind cluster name"),
) -> None:
    """Delete the kind cluster."""
    with handle_errors():
        require_command("kind")
        kind.delete_cluster(_cluster_config(name))
