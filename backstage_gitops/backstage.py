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

"""Backstage deployment steps: namespace, credentials secret, ArgoCD Application."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from backstage_gitops import console
from backstage_gitops.config import ConflictPolicy, Credentials, TimingConfig
from backstage_gitops.constants import (
    ARGOCD_APPLICATION_KIND,
    BACKSTAGE_LABEL,
    BACKSTAGE_SECRET,
    NS_ARGOCD,
    NS_BACKSTAGE,
)
from backstage_gitops.errors import BootstrapAborted, BootstrapError
from backstage_gitops.kube import ClusterClient
from backstage_gitops.readiness import ReadinessProbe
from backstage_gitops.resources import ActionResult, Manifest, ResourceSelector
from backstage_gitops.sequencer import ProvisioningStep
from backstage_gitops.steps import manifest_step, namespace_step

BACKSTAGE_PODS = ResourceSelector("pods", namespace=NS_BACKSTAGE, labels=BACKSTAGE_LABEL)
SECRET_SELECTOR = ResourceSelector("secret", namespace=NS_BACKSTAGE, name=BACKSTAGE_SECRET)

MANUAL_SECRET_HINT = f"""\
kubectl create secret generic {BACKSTAGE_SECRET} \\
  --from-literal=github-token=YOUR_GITHUB_TOKEN \\
  --from-literal=dockerhub-username=YOUR_DOCKERHUB_USERNAME \\
  --from-literal=dockerhub-password=YOUR_DOCKERHUB_PASSWORD \\
  -n {NS_BACKSTAGE}"""


@dataclass(frozen=True)
class ApplicationManifest:
    """The ArgoCD Application that deploys Backstage, as read from disk."""

    name: str
    namespace: str
    body: dict

    @property
    def selector(self) -> ResourceSelector:
        return ResourceSelector(ARGOCD_APPLICATION_KIND, namespace=self.namespace, name=self.name)


def load_application(path: Path) -> ApplicationManifest:
    """Parse the Application manifest and extract its name and namespace.

    Raises:
        BootstrapError: If the file is missing or is not an Application.
    """
    if not path.is_file():
        raise BootstrapError(
            f"Application manifest '{path}' not found; run from the project root directory"
        )
    with open(path) as f:
        body = yaml.safe_load(f)
    if not isinstance(body, dict) or body.get("kind") != "Application":
        raise BootstrapError(f"'{path}' is not an ArgoCD Application manifest")
    metadata = body.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise BootstrapError(f"Application manifest '{path}' has no metadata.name")
    return ApplicationManifest(name=name, namespace=metadata.get("namespace", NS_ARGOCD), body=body)


def secret_manifest(credentials: Credentials) -> Manifest:
    return Manifest(
        name=f"secret/{BACKSTAGE_SECRET}",
        body={
            "apiVersion": "v1",
            "kind": "Secret",
            "type": "Opaque",
            "metadata": {"name": BACKSTAGE_SECRET, "namespace": NS_BACKSTAGE},
            "stringData": credentials.secret_data(),
        },
    )


def secret_step(
    cluster: ClusterClient,
    credentials: Credentials,
    on_missing: ConflictPolicy,
    timing: TimingConfig,
) -> ProvisioningStep:
    """Create ``backstage-secrets`` from environment credentials.

    Without complete credentials nothing is applied: ``CONTINUE`` carries on
    without the secret, ``ABORT`` stops the run.
    """
    def _apply() -> ActionResult:
        if credentials.complete:
            return cluster.apply(secret_manifest(credentials))
        console.print(f"[yellow]⚠️  Secret '{BACKSTAGE_SECRET}' not found in namespace '{NS_BACKSTAGE}'[/yellow]")
        console.print("[yellow]   Set GITHUB_TOKEN, DOCKERHUB_USERNAME and DOCKERHUB_PASSWORD, or create it with:[/yellow]")
        console.print(MANUAL_SECRET_HINT, markup=False, highlight=False)
        if on_missing is ConflictPolicy.ABORT:
            raise BootstrapAborted("Deployment cancelled: Backstage secrets are missing")
        console.print("[yellow]⚠️  Continuing without secrets[/yellow]")
        return ActionResult.success("continued without secrets")

    return ProvisioningStep(
        name="create-backstage-secrets",
        description=f"Secret '{BACKSTAGE_SECRET}'",
        exists_check=lambda: cluster.exists(SECRET_SELECTOR),
        apply_action=_apply,
        max_attempts=timing.apply_max_attempts,
        retry_delay=timing.apply_retry_delay,
    )


def backstage_steps(
    cluster: ClusterClient,
    application: ApplicationManifest,
    credentials: Credentials,
    on_missing_secrets: ConflictPolicy,
    timing: TimingConfig,
) -> list[ProvisioningStep]:
    return [
        namespace_step(cluster, NS_BACKSTAGE, timing),
        secret_step(cluster, credentials, on_missing_secrets, timing),
        manifest_step(
            cluster,
            "deploy-backstage-application",
            Manifest(
                name=f"application/{application.name}",
                body=application.body,
                namespace=application.namespace,
            ),
            present=application.selector,
            timing=timing,
            readiness=ReadinessProbe(BACKSTAGE_PODS, timing.backstage_ready_timeout, timing.poll_interval),
            description="Backstage ArgoCD Application",
        ),
    ]
