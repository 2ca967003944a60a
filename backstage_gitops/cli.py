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

"""
cli.py - Unified CLI for the Backstage GitOps local environment.

Subcommands:
    bootstrap  Install ArgoCD and deploy Backstage on the running cluster (default)
    kind       kind cluster lifecycle (up, verify, delete)
    minikube   minikube cluster lifecycle (up, verify, stop, delete)
    status     Read-only overview of the cluster and deployed components

Examples:
    # Create the kind cluster, then bootstrap it
    backstage-gitops kind up
    backstage-gitops

    # Fail instead of continuing when Backstage credentials are not set
    backstage-gitops bootstrap --on-missing-secrets abort

    # Start minikube with the ingress addon
    backstage-gitops minikube up

For detailed usage information, run: backstage-gitops --help
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from backstage_gitops import console, orchestrator
from backstage_gitops.commands import handle_errors, kind_cmd, minikube_cmd
from backstage_gitops.config import BootstrapOptions, ConflictPolicy, Credentials
from backstage_gitops.constants import EXIT_FAILURE, REL_BACKSTAGE_APPLICATION

app = typer.Typer(
    help="Bootstrap a local GitOps environment: kind or minikube, ArgoCD, and Backstage.",
    invoke_without_command=True,
)


def _bootstrap(
    on_missing_secrets: ConflictPolicy = ConflictPolicy.CONTINUE,
    application_manifest: Path = Path(REL_BACKSTAGE_APPLICATION),
    skip_argocd: bool = False,
    skip_backstage: bool = False,
) -> None:
    with handle_errors():
        options = BootstrapOptions(
            credentials=Credentials(),
            on_conflict=on_missing_secrets,
            application_manifest=application_manifest,
            skip_argocd=skip_argocd,
            skip_backstage=skip_backstage,
        )
        orchestrator.run_bootstrap(options)


@app.callback()
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands; run bootstrap when none is given."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    if ctx.invoked_subcommand is None:
        _bootstrap()


@app.command("bootstrap")
def bootstrap(
    on_missing_secrets: ConflictPolicy = typer.Option(
        ConflictPolicy.CONTINUE,
        "--on-missing-secrets",
        help="What to do when Backstage credentials are not in the environment",
    ),
    application_manifest: Path = typer.Option(
        Path(REL_BACKSTAGE_APPLICATION), "--application-manifest", help="ArgoCD Application for Backstage"
    ),
    skip_argocd: bool = typer.Option(False, "--skip-argocd", help="Assume ArgoCD is already installed"),
    skip_backstage: bool = typer.Option(False, "--skip-backstage", help="Only install ArgoCD"),
) -> None:
    """Install ArgoCD and deploy Backstage onto the current kind or minikube cluster."""
    _bootstrap(on_missing_secrets, application_manifest, skip_argocd, skip_backstage)


@app.command("status")
def status() -> None:
    """Show the cluster, namespaces, ArgoCD applications, and Backstage pods."""
    with handle_errors():
        orchestrator.show_status()


app.add_typer(kind_cmd.app, name="kind")
app.add_typer(minikube_cmd.app, name="minikube")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
