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

"""minikube subcommands (up, verify, stop, delete)."""

from __future__ import annotations

import typer

from backstage_gitops import minikube, orchestrator
from backstage_gitops.commands import handle_errors
from backstage_gitops.config import BootstrapOptions, ConflictPolicy
from backstage_gitops.utils import require_command

app = typer.Typer(help="Manage the local minikube cluster.")


@app.command("up")
def up(
    recreate: bool = typer.Option(False, "--recreate", help="Delete a running cluster first"),
    on_conflict: ConflictPolicy = typer.Option(
        ConflictPolicy.CONTINUE, "--on-conflict", help="What to do if minikube is already running"
    ),
) -> None:
    """Start minikube with the ingress addon and point kubectl at it."""
    with handle_errors():
        orchestrator.run_minikube_setup(BootstrapOptions(on_conflict=on_conflict, recreate=recreate))


@app.command("verify")
def verify() -> None:
    """Show nodes, minikube status, and ingress controller pods."""
    with handle_errors():
        orchestrator.run_minikube_verify()


@app.command("stop")
def stop() -> None:
    """Stop the minikube cluster, keeping its state."""
    with handle_errors():
        require_command("minikube")
        minikube.stop_cluster()


@app.command("delete")
def delete() -> None:
    """Delete the minikube cluster."""
    with handle_errors():
        require_command("minikube")
        minikube.delete_cluster()
