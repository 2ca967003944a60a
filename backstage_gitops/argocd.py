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

"""ArgoCD installation steps and admin credential lookup."""

from __future__ import annotations

from backstage_gitops.config import TimingConfig
from backstage_gitops.constants import (
    ARGOCD_ADMIN_SECRET,
    ARGOCD_FALLBACK_PASSWORD,
    ARGOCD_SERVER_DEPLOYMENT,
    ARGOCD_SERVER_LABEL,
    NS_ARGOCD,
    dep_value,
)
from backstage_gitops.kube import ClusterClient
from backstage_gitops.readiness import ReadinessProbe
from backstage_gitops.resources import Manifest, ResourceSelector
from backstage_gitops.sequencer import ProvisioningStep
from backstage_gitops.steps import manifest_step, namespace_step

ARGOCD_SERVER = ResourceSelector("deployment", namespace=NS_ARGOCD, name=ARGOCD_SERVER_DEPLOYMENT)
ARGOCD_SERVER_PODS = ResourceSelector("pods", namespace=NS_ARGOCD, labels=ARGOCD_SERVER_LABEL)


def install_manifest() -> Manifest:
    return Manifest(
        name="argocd-install",
        source=dep_value("argocd", "install_manifest"),
        namespace=NS_ARGOCD,
    )


def argocd_steps(cluster: ClusterClient, timing: TimingConfig) -> list[ProvisioningStep]:
    """Namespace, then the upstream install manifest gated on argocd-server pods."""
    return [
        namespace_step(cluster, NS_ARGOCD, timing),
        manifest_step(
            cluster,
            "install-argocd",
            install_manifest(),
            present=ARGOCD_SERVER,
            timing=timing,
            readiness=ReadinessProbe(ARGOCD_SERVER_PODS, timing.pod_ready_timeout, timing.poll_interval),
            description="ArgoCD manifests",
        ),
    ]


def admin_password(cluster: ClusterClient) -> str:
    """Read the initial admin password, falling back to the ArgoCD default."""
    password = cluster.read_secret(NS_ARGOCD, ARGOCD_ADMIN_SECRET, "password")
    return password or ARGOCD_FALLBACK_PASSWORD
