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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load pinned tool versions and manifest URLs from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Namespaces --
NS_ARGOCD = "argocd"
NS_BACKSTAGE = "backstage-system"
NS_INGRESS_NGINX = "ingress-nginx"

# -- ArgoCD --
ARGOCD_SERVER_DEPLOYMENT = "argocd-server"
ARGOCD_SERVER_LABEL = "app.kubernetes.io/name=argocd-server"
ARGOCD_ADMIN_SECRET = "argocd-initial-admin-secret"
ARGOCD_ADMIN_USER = "admin"
ARGOCD_FALLBACK_PASSWORD = "admin"
ARGOCD_APPLICATION_KIND = "applications.argoproj.io"

# -- Backstage --
BACKSTAGE_LABEL = "app.kubernetes.io/name=backstage"
BACKSTAGE_SECRET = "backstage-secrets"
BACKSTAGE_SECRET_KEYS = ("github-token", "dockerhub-username", "dockerhub-password")
BACKSTAGE_SERVICE = "backstage"

# -- Relative paths --
REL_KIND_CONFIG = "infra/kind/kind-config.yaml"
REL_BACKSTAGE_APPLICATION = "infra/argocd/backstage-application.yaml"

# -- Cluster defaults --
DEFAULT_CLUSTER_NAME = "backstage-gitops"
KIND_CONTEXT_PREFIX = "kind-"
MINIKUBE_CONTEXT = "minikube"
MINIKUBE_NODE = "minikube"
MINIKUBE_START_ARGS = (
    "--driver=docker",
    "--cpus=2",
    "--memory=4096",
    "--disk-size=20g",
    "--kubernetes-version=stable",
    "--addons=ingress",
    "--ports=30080:80,30401:4001,30800:8000",
)
MINIKUBE_PORT_MAPPINGS = (
    ("30080", "80", "HTTP/Ingress"),
    ("30401", "4001", "Backstage Backend"),
    ("30800", "8000", "Backstage Frontend"),
)

# -- Retry & readiness defaults --
DEFAULT_APPLY_MAX_ATTEMPTS = 3
DEFAULT_APPLY_RETRY_DELAY_SECONDS = 10.0
DEFAULT_NODE_READY_TIMEOUT_SECONDS = 300.0
DEFAULT_POD_READY_TIMEOUT_SECONDS = 300.0
DEFAULT_BACKSTAGE_READY_TIMEOUT_SECONDS = 600.0
DEFAULT_POLL_INTERVAL_SECONDS = 10.0
KUBECTL_TIMEOUT_SLACK_SECONDS = 10

# -- Access info --
BACKSTAGE_LOCAL_PORT = 8000
ARGOCD_LOCAL_PORT = 8080

# -- Prerequisites --
INSTALL_DOCS = {
    "docker": "https://docs.docker.com/get-docker/",
    "kubectl": "https://kubernetes.io/docs/tasks/tools/",
    "kind": "https://kind.sigs.k8s.io/docs/user/quick-start/",
    "minikube": "https://minikube.sigs.k8s.io/docs/start/",
    "helm": "https://helm.sh/docs/intro/install/",
}
ARCH_ALIASES = {"x86_64": "amd64", "amd64": "amd64", "aarch64": "arm64", "arm64": "arm64"}
DEFAULT_INSTALL_DIR = Path.home() / ".local" / "bin"

# -- Exit codes --
EXIT_FAILURE = 1
EXIT_ABORTED = 2
EXIT_INTERRUPTED = 130
