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

"""Reusable ProvisioningStep builders for namespaces and manifests."""

from __future__ import annotations

from backstage_gitops import console
from backstage_gitops.config import TimingConfig
from backstage_gitops.kube import ClusterClient
from backstage_gitops.readiness import ReadinessProbe
from backstage_gitops.resources import Manifest, ResourceSelector, namespace_manifest
from backstage_gitops.sequencer import ProvisioningStep, StepState

STATE_STYLES = {
    StepState.CHECKING_EXISTS: None,
    StepState.SKIPPED: "[yellow]   {name}: already present, skipping apply[/yellow]",
    StepState.APPLYING: "[yellow]ℹ️  {name}: applying...[/yellow]",
    StepState.READY: "[green]✅ {name}: ready[/green]",
    StepState.FAILED: "[red]❌ {name}: failed[/red]",
}


def print_transition(step: ProvisioningStep, state: StepState) -> None:
    """Console reporter for StepSequencer transitions."""
    template = STATE_STYLES.get(state)
    if template:
        console.print(template.format(name=step.description or step.name))


def namespace_step(cluster: ClusterClient, namespace: str, timing: TimingConfig) -> ProvisioningStep:
    selector = ResourceSelector("namespace", name=namespace)
    return ProvisioningStep(
        name=f"create-namespace-{namespace}",
        description=f"Namespace '{namespace}'",
        exists_check=lambda: cluster.exists(selector),
        apply_action=lambda: cluster.apply(namespace_manifest(namespace)),
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
    )


def manifest_step(
    cluster: ClusterClient,
    name: str,
    manifest: Manifest,
    present: ResourceSelector,
    timing: TimingConfig,
    readiness: ReadinessProbe | None = None,
    description: str = "",
) -> ProvisioningStep:
    """Apply *manifest* unless a resource matching *present* already exists.

    Args:
        cluster: Cluster API client.
        name: Step name.
        manifest: What to apply.
        present: Selector whose existence means the manifest was already applied.
        timing: Retry settings for the apply.
        readiness: Optional probe gating READY.
        description: Console label.
    """
    return ProvisioningStep(
        name=name,
        description=description,
        exists_check=lambda: cluster.exists(present),
        apply_action=lambda: cluster.apply(manifest),
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
        readiness=readiness,
    )
