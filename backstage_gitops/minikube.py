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

"""minikube cluster lifecycle, ingress addon, and verification."""

from __future__ import annotations

import json

import sh
from rich.panel import Panel

from backstage_gitops import console, logger
from backstage_gitops.config import ClusterConfig, ConflictPolicy, TimingConfig
from backstage_gitops.constants import MINIKUBE_CONTEXT, MINIKUBE_NODE, MINIKUBE_START_ARGS, NS_INGRESS_NGINX
from backstage_gitops.errors import BootstrapAborted, ClusterUnavailableError
from backstage_gitops.kube import KubectlClient
from backstage_gitops.readiness import ReadinessProbe
from backstage_gitops.resources import ResourceSelector
from backstage_gitops.sequencer import ProvisioningStep
from backstage_gitops.utils import sh_action

MINIKUBE_NODE_SELECTOR = ResourceSelector("node", name=MINIKUBE_NODE)


def is_running() -> bool:
    try:
        sh.minikube("status")
    except sh.ErrorReturnCode:
        return False
    return True


def ingress_enabled() -> bool:
    """Read the ingress addon status from ``minikube addons list -o json``."""
    try:
        addons = json.loads(str(sh.minikube("addons", "list", "-o", "json")))
    except sh.ErrorReturnCode:
        return False
    except json.JSONDecodeError as err:
        logger.warning("Unparseable minikube addons list: %s", err)
        return False
    return addons.get("ingress", {}).get("Status") == "enabled"


def start_step(
    cluster_cfg: ClusterConfig,
    timing: TimingConfig,
    on_conflict: ConflictPolicy = ConflictPolicy.CONTINUE,
) -> ProvisioningStep:
    def _exists() -> bool:
        if not is_running():
            return False
        if on_conflict is ConflictPolicy.ABORT:
            raise BootstrapAborted(
                "minikube cluster already exists; rerun with --recreate or --on-conflict continue"
            )
        console.print("[yellow]⚠️  minikube cluster already exists, using it[/yellow]")
        return True

    return ProvisioningStep(
        name="start-minikube",
        description="minikube cluster (docker driver)",
        exists_check=_exists,
        apply_action=lambda: sh_action(lambda: sh.minikube("start", *MINIKUBE_START_ARGS), "minikube start"),
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
        readiness=ReadinessProbe(MINIKUBE_NODE_SELECTOR, cluster_cfg.node_ready_timeout, timing.poll_interval),
    )


def ingress_step(timing: TimingConfig) -> ProvisioningStep:
    return ProvisioningStep(
        name="enable-ingress-addon",
        description="minikube ingress addon",
        exists_check=ingress_enabled,
        apply_action=lambda: sh_action(
            lambda: sh.minikube("addons", "enable", "ingress"), "minikube addons enable ingress"
        ),
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
    )


def configure_kubectl(kubectl: KubectlClient) -> None:
    """Point kubectl at minikube and verify it can connect.

    Raises:
        ClusterUnavailableError: If kubectl cannot reach the cluster.
    """
    console.print(Panel.fit("Configuring kubectl", style="bold blue"))
    if kubectl.use_context(MINIKUBE_CONTEXT):
        console.print("[green]✅ kubectl configured to use minikube context[/green]")
    else:
        console.print("[yellow]⚠️  Could not switch to minikube context[/yellow]")
    if not kubectl.cluster_info():
        raise ClusterUnavailableError("kubectl cannot connect to cluster")
    console.print("[green]✅ kubectl can connect to cluster[/green]")


def stop_cluster() -> None:
    console.print("[yellow]ℹ️  Stopping minikube cluster...[/yellow]")
    sh.minikube("stop")
    console.print("[green]✅ Cluster stopped[/green]")


def delete_cluster() -> None:
    console.print("[yellow]ℹ️  Deleting minikube cluster...[/yellow]")
    sh.minikube("delete")
    console.print("[green]✅ Cluster deleted[/green]")


def verify_cluster(kubectl: KubectlClient) -> None:
    """Print nodes, minikube status, and ingress controller pods.

    Raises:
        ClusterUnavailableError: If minikube is not running.
    """
    console.print(Panel.fit("Verifying cluster setup", style="bold blue"))
    if not is_running():
        raise ClusterUnavailableError("minikube cluster is not running")
    console.print("[yellow]ℹ️  Cluster nodes:[/yellow]")
    console.print(kubectl.get_text(["nodes"]), end="")
    console.print("[yellow]ℹ️  Minikube status:[/yellow]")
    console.print(str(sh.minikube("status")), end="")
    console.print("[yellow]ℹ️  Ingress status:[/yellow]")
    console.print(kubectl.get_text(["pods", "-n", NS_INGRESS_NGINX]), end="")
    console.print("[green]✅ Cluster verification completed[/green]")
