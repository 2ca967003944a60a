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

"""Configuration classes and config models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from backstage_gitops.constants import (
    BACKSTAGE_SECRET_KEYS,
    DEFAULT_APPLY_MAX_ATTEMPTS,
    DEFAULT_APPLY_RETRY_DELAY_SECONDS,
    DEFAULT_BACKSTAGE_READY_TIMEOUT_SECONDS,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_NODE_READY_TIMEOUT_SECONDS,
    DEFAULT_POD_READY_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    KIND_CONTEXT_PREFIX,
    REL_BACKSTAGE_APPLICATION,
    REL_KIND_CONFIG,
)


class ConflictPolicy(str, Enum):
    """What to do when a step finds state it cannot reconcile on its own."""

    ABORT = "abort"
    CONTINUE = "continue"


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """Local cluster configuration, auto-loaded from BACKSTAGE_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster.
        kind_config: Path to the kind cluster config file.
        node_ready_timeout: Seconds to wait for all nodes to report Ready.
    """

    model_config = SettingsConfigDict(env_prefix="BACKSTAGE_", extra="ignore")

    cluster_name: str = Field(default=DEFAULT_CLUSTER_NAME, pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
    kind_config: Path = Path(REL_KIND_CONFIG)
    node_ready_timeout: float = Field(default=DEFAULT_NODE_READY_TIMEOUT_SECONDS, gt=0)

    @property
    def kind_context(self) -> str:
        return f"{KIND_CONTEXT_PREFIX}{self.cluster_name}"


class TimingConfig(BaseSettings):
    """Retry counts and readiness deadlines, auto-loaded from BACKSTAGE_* env vars.

    Attributes:
        apply_max_attempts: Attempts allowed per provisioning step.
        apply_retry_delay: Fixed delay between attempts, in seconds.
        pod_ready_timeout: Deadline for controller pods (ArgoCD) to become Ready.
        backstage_ready_timeout: Deadline for Backstage pods to become Ready.
        poll_interval: Seconds between readiness polls.
    """

    model_config = SettingsConfigDict(env_prefix="BACKSTAGE_", extra="ignore")

    apply_max_attempts: int = Field(default=DEFAULT_APPLY_MAX_ATTEMPTS, ge=1, le=10)
    apply_retry_delay: float = Field(default=DEFAULT_APPLY_RETRY_DELAY_SECONDS, ge=0)
    pod_ready_timeout: float = Field(default=DEFAULT_POD_READY_TIMEOUT_SECONDS, gt=0)
    backstage_ready_timeout: float = Field(default=DEFAULT_BACKSTAGE_READY_TIMEOUT_SECONDS, gt=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)


class Credentials(BaseSettings):
    """Backstage credentials read from GITHUB_TOKEN and DOCKERHUB_* env vars."""

    model_config = SettingsConfigDict(extra="ignore")

    github_token: SecretStr | None = None
    dockerhub_username: SecretStr | None = None
    dockerhub_password: SecretStr | None = None

    @property
    def complete(self) -> bool:
        return all(
            value is not None and value.get_secret_value()
            for value in (self.github_token, self.dockerhub_username, self.dockerhub_password)
        )

    def secret_data(self) -> dict[str, str]:
        """Return the ``backstage-secrets`` payload keyed the way the chart expects it."""
        def _reveal(value: SecretStr | None) -> str:
            return value.get_secret_value() if value is not None else ""

        values = (self.github_token, self.dockerhub_username, self.dockerhub_password)
        return {key: _reveal(value) for key, value in zip(BACKSTAGE_SECRET_KEYS, values)}


# ============================================================================
# Bootstrap options
# ============================================================================

@dataclass(frozen=True)
class BootstrapOptions:
    """Everything the orchestrator needs, built once per invocation.

    Attributes:
        cluster: Local cluster configuration.
        timing: Retry and readiness settings.
        credentials: Backstage credentials from the environment.
        on_conflict: Policy for existing clusters and missing secrets.
        application_manifest: ArgoCD Application manifest for Backstage.
        recreate: Whether to delete an existing cluster before creating it.
        install_missing: Whether to download missing kind/kubectl binaries.
        skip_argocd: Whether to skip the ArgoCD installation steps.
        skip_backstage: Whether to skip the Backstage deployment steps.
    """

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    credentials: Credentials = field(default_factory=Credentials)
    on_conflict: ConflictPolicy = ConflictPolicy.CONTINUE
    application_manifest: Path = Path(REL_BACKSTAGE_APPLICATION)
    recreate: bool = False
    install_missing: bool = False
    skip_argocd: bool = False
    skip_backstage: bool = False
