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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

from rich.panel import Panel

from backstage_gitops import argocd, console, kind, minikube
from backstage_gitops.backstage import backstage_steps, load_application
from backstage_gitops.config import BootstrapOptions, ClusterConfig
from backstage_gitops.constants import (
    ARGOCD_ADMIN_USER,
    ARGOCD_LOCAL_PORT,
    ARGOCD_SERVER_DEPLOYMENT,
    BACKSTAGE_LOCAL_PORT,
    BACKSTAGE_SERVICE,
    MINIKUBE_CONTEXT,
    MINIKUBE_PORT_MAPPINGS,
    NS_ARGOCD,
    NS_BACKSTAGE,
)
from backstage_gitops.errors import BootstrapError, ClusterUnavailableError
from backstage_gitops.installer import ensure_tools
from backstage_gitops.kube import KubectlClient
from backstage_gitops.readiness import ReadinessPoller, ReadinessProbe
from backstage_gitops.resources import ResourceSelector
from backstage_gitops.sequencer import ProvisioningStep, SequenceReport, StepSequencer
from backstage_gitops.steps import print_transition
from backstage_gitops.utils import check_docker_running, check_prerequisites, require_command

BOOTSTRAP_TOOLS = ("docker", "kubectl", "helm")
KIND_TOOLS = ("docker", "kind", "kubectl")
MINIKUBE_TOOLS = ("docker", "kubectl", "minikube", "helm")

CLUSTER_KIND = "kind"
CLUSTER_MINIKUBE = "minikube"
CLUSTER_UNKNOWN = "unknown"


# ============================================================================
# Internal helpers
# ============================================================================


def _make_sequencer(kubectl: KubectlClient) -> StepSequencer:
    return StepSequencer(ReadinessPoller(kubectl), on_transition=print_transition)


def _run_phase(title: str, sequencer: StepSequencer, steps: list[ProvisioningStep]) -> SequenceReport:
    console.print(Panel.fit(title, style="bold blue"))
    return sequencer.run(steps)


def detect_cluster_type(kubectl: KubectlClient) -> str:
    """Classify the current kubectl context as kind, minikube, or unknown."""
    context = kubectl.current_context() or ""
    if CLUSTER_KIND in context:
        return CLUSTER_KIND
    if CLUSTER_MINIKUBE in context:
        return CLUSTER_MINIKUBE
    return CLUSTER_UNKNOWN


def check_cluster(cluster_cfg: ClusterConfig, kubectl: KubectlClient) -> str:
    """Confirm a supported local cluster is running and reachable.

    Returns:
        The detected cluster type.

    Raises:
        ClusterUnavailableError: If no supported cluster is running or
            kubectl cannot connect.
    """
    console.print(Panel.fit("Checking cluster availability", style="bold blue"))
    cluster_type = detect_cluster_type(kubectl)
    if cluster_type == CLUSTER_KIND:
        console.print("[yellow]ℹ️  Detected kind cluster[/yellow]")
        require_command("kind")
        if not kind.cluster_exists(cluster_cfg.cluster_name):
            raise ClusterUnavailableError(
                f"Kind cluster '{cluster_cfg.cluster_name}' not found; run 'backstage-gitops kind up' first"
            )
    elif cluster_type == CLUSTER_MINIKUBE:
        console.print("[yellow]ℹ️  Detected minikube cluster[/yellow]")
        require_command("minikube")
        if not minikube.is_running():
            raise ClusterUnavailableError("Minikube cluster not running; run 'backstage-gitops minikube up' first")
    else:
        raise ClusterUnavailableError("No supported cluster detected (kind or minikube)")

    if not kubectl.cluster_info():
        raise ClusterUnavailableError("Cannot connect to cluster with kubectl")
    console.print("[green]✅ Cluster is available and accessible[/green]")
    return cluster_type


def show_access_info(kubectl: KubectlClient, argocd_installed: bool = True) -> None:
    console.print()
    console.print("[green]🎉 Backstage GitOps environment is ready![/green]")
    console.print()
    console.print("[bold]Access URLs:[/bold]")
    console.print(f"  Backstage: http://localhost:{BACKSTAGE_LOCAL_PORT}")
    console.print(f"  ArgoCD UI: https://localhost:{ARGOCD_LOCAL_PORT}")
    if argocd_installed:
        console.print(f"  ArgoCD username: {ARGOCD_ADMIN_USER}")
        console.print(f"  ArgoCD password: {argocd.admin_password(kubectl)}")
    console.print()
    console.print("[bold]To access the services, run in separate terminals:[/bold]")
    console.print(
        f"  kubectl port-forward svc/{BACKSTAGE_SERVICE} -n {NS_BACKSTAGE} "
        f"{BACKSTAGE_LOCAL_PORT}:{BACKSTAGE_LOCAL_PORT}"
    )
    console.print(f"  kubectl port-forward svc/{ARGOCD_SERVER_DEPLOYMENT} -n {NS_ARGOCD} {ARGOCD_LOCAL_PORT}:443")
    console.print()
    console.print("[bold]Useful commands:[/bold]")
    console.print(f"  kubectl get applications -n {NS_ARGOCD}")
    console.print(f"  kubectl get pods -n {NS_BACKSTAGE}")
    console.print(f"  kubectl logs -n {NS_BACKSTAGE} deployment/{BACKSTAGE_SERVICE} --follow")


# ============================================================================
# Public API
# ============================================================================


def run_bootstrap(
    options: BootstrapOptions,
    kubectl: KubectlClient | None = None,
    sequencer: StepSequencer | None = None,
) -> SequenceReport:
    """Install ArgoCD and deploy Backstage onto the running local cluster.

    Args:
        options: Bootstrap options.
        kubectl: Cluster client, or None for the current kubectl context.
        sequencer: Step sequencer, or None for one wired to *kubectl*.

    Returns:
        Combined report of every step that ran.

    Raises:
        BootstrapError: If any prerequisite or step fails.
    """
    kubectl = kubectl or KubectlClient()
    sequencer = sequencer or _make_sequencer(kubectl)

    check_prerequisites(BOOTSTRAP_TOOLS)
    check_docker_running()
    check_cluster(options.cluster, kubectl)

    # Parse the Application before anything is mutated.
    application = None if options.skip_backstage else load_application(options.application_manifest)

    report = SequenceReport()
    if not options.skip_argocd:
        report.steps += _run_phase(
            "Installing ArgoCD", sequencer, argocd.argocd_steps(kubectl, options.timing)
        ).steps
    if application is not None:
        report.steps += _run_phase(
            "Deploying Backstage",
            sequencer,
            backstage_steps(kubectl, application, options.credentials, options.on_conflict, options.timing),
        ).steps

    show_access_info(kubectl, argocd_installed=not options.skip_argocd)
    console.print("[green]✅ Bootstrap completed successfully! 🎯[/green]")
    return report


def run_kind_setup(options: BootstrapOptions, sequencer: StepSequencer | None = None) -> SequenceReport:
    """Create (or reuse) the kind cluster, wait for nodes, and verify it.

    Raises:
        BootstrapError: If any prerequisite or step fails.
    """
    cluster_cfg = options.cluster
    kubectl = KubectlClient(context=cluster_cfg.kind_context)
    sequencer = sequencer or _make_sequencer(kubectl)

    if options.install_missing:
        ensure_tools(["kind", "kubectl"])
    check_prerequisites(KIND_TOOLS)
    check_docker_running()

    if not cluster_cfg.kind_config.is_file():
        raise BootstrapError(
            f"Config file '{cluster_cfg.kind_config}' not found; run from the project root directory"
        )
    if options.recreate:
        kind.delete_cluster(cluster_cfg)

    report = _run_phase(
        f"Creating kind cluster '{cluster_cfg.cluster_name}'",
        sequencer,
        [kind.cluster_step(cluster_cfg, options.timing, options.on_conflict)],
    )
    kind.verify_cluster(cluster_cfg, KubectlClient())

    console.print()
    console.print("[green]🎉 Kind cluster setup completed successfully![/green]")
    console.print("[bold]Next steps:[/bold]")
    console.print("  1. Run 'backstage-gitops bootstrap' to deploy ArgoCD and Backstage")
    console.print(f"  2. Switch context: kubectl config use-context {cluster_cfg.kind_context}")
    console.print(f"  3. Delete when done: backstage-gitops kind delete --name {cluster_cfg.cluster_name}")
    return report


def run_kind_verify(options: BootstrapOptions, poller: ReadinessPoller | None = None) -> None:
    """Verify the kind cluster and require every node to be Ready.

    Raises:
        ReadinessTimeoutError: If nodes are not Ready within the node timeout.
    """
    check_prerequisites(KIND_TOOLS)
    check_docker_running()
    kind.verify_cluster(options.cluster, KubectlClient())
    poller = poller or ReadinessPoller(KubectlClient(context=options.cluster.kind_context))
    poller.require(
        ReadinessProbe(kind.NODES, options.cluster.node_ready_timeout, options.timing.poll_interval)
    )
    console.print("[green]✅ All nodes are Ready[/green]")


def run_minikube_setup(options: BootstrapOptions, sequencer: StepSequencer | None = None) -> SequenceReport:
    """Start (or reuse) minikube with ingress, point kubectl at it, and verify.

    Raises:
        BootstrapError: If any prerequisite or step fails.
    """
    kubectl = KubectlClient(context=MINIKUBE_CONTEXT)
    sequencer = sequencer or _make_sequencer(kubectl)

    check_prerequisites(MINIKUBE_TOOLS)
    check_docker_running()
    if options.recreate:
        # minikube delete also removes stopped profiles and is a no-op without one.
        minikube.delete_cluster()

    report = _run_phase(
        "Starting minikube cluster",
        sequencer,
        [
            minikube.start_step(options.cluster, options.timing, options.on_conflict),
            minikube.ingress_step(options.timing),
        ],
    )
    current = KubectlClient()
    minikube.configure_kubectl(current)
    minikube.verify_cluster(current)

    console.print()
    console.print("[green]🎉 Minikube cluster setup completed![/green]")
    console.print("[bold]Port mappings:[/bold]")
    for host, container, label in MINIKUBE_PORT_MAPPINGS:
        console.print(f"  - {host} → {container} ({label})")
    console.print("[bold]Next steps:[/bold]")
    console.print("  1. Run 'backstage-gitops bootstrap' to deploy ArgoCD and Backstage")
    console.print("  2. Stop when done: backstage-gitops minikube stop")
    return report


def run_minikube_verify() -> None:
    check_prerequisites(MINIKUBE_TOOLS)
    check_docker_running()
    minikube.verify_cluster(KubectlClient())


def show_status(kubectl: KubectlClient | None = None) -> None:
    """Print a read-only overview of the cluster and the deployed components.

    Raises:
        ClusterUnavailableError: If kubectl cannot reach any cluster.
    """
    kubectl = kubectl or KubectlClient()
    console.print(Panel.fit("Cluster status", style="bold blue"))
    context = kubectl.current_context()
    if context is None or not kubectl.cluster_info():
        raise ClusterUnavailableError("Unable to reach a cluster from the current kubectl context")
    console.print(f"[green]✅ Connected to context '{context}'[/green]")

    console.print("[bold]Nodes:[/bold]")
    console.print(kubectl.get_text(["nodes"]), end="")
    console.print("[bold]Namespaces:[/bold]")
    console.print(kubectl.get_text(["namespaces"]), end="")

    if kubectl.exists(ResourceSelector("namespace", name=NS_ARGOCD)):
        console.print("[bold]ArgoCD applications:[/bold]")
        console.print(kubectl.get_text(["applications", "-n", NS_ARGOCD]), end="")
    else:
        console.print(f"[yellow]⚠️  Namespace '{NS_ARGOCD}' not found; ArgoCD is not installed[/yellow]")

    if kubectl.exists(ResourceSelector("namespace", name=NS_BACKSTAGE)):
        console.print("[bold]Backstage pods:[/bold]")
        console.print(kubectl.get_text(["pods", "-n", NS_BACKSTAGE]), end="")
    else:
        console.print(f"[yellow]⚠️  Namespace '{NS_BACKSTAGE}' not found; Backstage is not deployed[/yellow]")
