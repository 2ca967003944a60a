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

"""kind cluster lifecycle and verification."""

from __future__ import annotations

import sh
from rich.panel import Panel

from backstage_gitops import console
from backstage_gitops.config import ClusterConfig, ConflictPolicy, TimingConfig
from backstage_gitops.errors import BootstrapAborted, ClusterUnavailableError
from backstage_gitops.kube import KubectlClient
from backstage_gitops.readiness import ReadinessProbe
from backstage_gitops.resources import ActionResult, ResourceSelector
from backstage_gitops.sequencer import ProvisioningStep
from backstage_gitops.utils import sh_action

NODES = ResourceSelector("nodes")


def list_clusters() -> list[str]:
    output = str(sh.kind("get", "clusters"))
    return [line.strip() for line in output.splitlines() if line.strip()]


def cluster_exists(cluster_name: str) -> bool:
    return cluster_name in list_clusters()


def delete_cluster(cluster_cfg: ClusterConfig) -> None:
    """Delete the kind cluster.

    Args:
        cluster_cfg: Cluster configuration with the cluster name.
    """
    console.print(f"[yellow]ℹ️  Deleting kind cluster '{cluster_cfg.cluster_name}'...[/yellow]")
    if not cluster_exists(cluster_cfg.cluster_name):
        console.print(f"[yellow]⚠️  Cluster '{cluster_cfg.cluster_name}' not found or already deleted[/yellow]")
        return
    sh.kind("delete", "cluster", "--name", cluster_cfg.cluster_name)
    console.print(f"[green]✅ Cluster '{cluster_cfg.cluster_name}' deleted[/green]")


def _create_cluster(cluster_cfg: ClusterConfig) -> ActionResult:
    def _attempt() -> None:
        # A failed earlier attempt can leave half-created nodes behind.
        if cluster_exists(cluster_cfg.cluster_name):
            sh.kind("delete", "cluster", "--name", cluster_cfg.cluster_name)
            console.print("[yellow]   Removed partially created cluster[/yellow]")
        sh.kind(
            "create", "cluster",
            "--config", str(cluster_cfg.kind_config),
            "--name", cluster_cfg.cluster_name,
        )

    return sh_action(_attempt, f"kind create cluster '{cluster_cfg.cluster_name}'")


def cluster_step(
    cluster_cfg: ClusterConfig,
    timing: TimingConfig,
    on_conflict: ConflictPolicy = ConflictPolicy.CONTINUE,
) -> ProvisioningStep:
    """Build the step that creates the kind cluster and waits for its nodes.

    An existing cluster is reused under ``CONTINUE``; under ``ABORT`` the run
    stops with BootstrapAborted.
    """
    def _exists() -> bool:
        if not cluster_exists(cluster_cfg.cluster_name):
            return False
        if on_conflict is ConflictPolicy.ABORT:
            raise BootstrapAborted(
                f"Cluster '{cluster_cfg.cluster_name}' already exists; "
                "rerun with --recreate or --on-conflict continue"
            )
        console.print(f"[yellow]⚠️  Cluster '{cluster_cfg.cluster_name}' already exists, using it[/yellow]")
        return True

    return ProvisioningStep(
        name="create-kind-cluster",
        description=f"kind cluster '{cluster_cfg.cluster_name}'",
        exists_check=_exists,
        apply_action=lambda: _create_cluster(cluster_cfg),
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
        readiness=ReadinessProbe(NODES, cluster_cfg.node_ready_timeout, timing.poll_interval),
    )


def verify_cluster(cluster_cfg: ClusterConfig, kubectl: KubectlClient) -> None:
    """Check the cluster exists, pin the kubectl context to it, and list nodes.

    Raises:
        ClusterUnavailableError: If the cluster does not exist.
    """
    console.print(Panel.fit(f"Verifying cluster '{cluster_cfg.cluster_name}'", style="bold blue"))
    if not cluster_exists(cluster_cfg.cluster_name):
        raise ClusterUnavailableError(f"Cluster '{cluster_cfg.cluster_name}' does not exist")

    current = kubectl.current_context()
    if current != cluster_cfg.kind_context:
        console.print(f"[yellow]⚠️  Current kubectl context is '{current}'[/yellow]")
        console.print(f"[yellow]ℹ️  Switching to '{cluster_cfg.kind_context}' context...[/yellow]")
        if not kubectl.use_context(cluster_cfg.kind_context):
            raise ClusterUnavailableError(f"Cannot switch kubectl to context '{cluster_cfg.kind_context}'")

    console.print("[yellow]ℹ️  Cluster nodes:[/yellow]")
    console.print(kubectl.get_text(["nodes"]), end="")
    console.print("[green]✅ Cluster verification completed[/green]")
