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

"""Value types shared by the cluster adapter, poller, and sequencer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one external action.

    Attributes:
        ok: Whether the action succeeded.
        message: Human-readable detail (stderr on failure).
    """

    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, message: str = "") -> ActionResult:
        return cls(True, message)

    @classmethod
    def failure(cls, message: str) -> ActionResult:
        return cls(False, message)


@dataclass(frozen=True)
class ResourceSelector:
    """Identifies a set of cluster resources by kind, namespace, and name or labels.

    With neither ``name`` nor ``labels`` the selector matches every resource
    of the kind in the namespace (``--all``).
    """

    kind: str
    namespace: str | None = None
    name: str | None = None
    labels: str | None = None

    def __post_init__(self) -> None:
        if self.name and self.labels:
            raise ValueError("ResourceSelector takes either a name or a label query, not both")

    def target_args(self, match_all: bool = False) -> list[str]:
        """kubectl arguments selecting the resources (kind, name/labels, namespace).

        Args:
            match_all: Add ``--all`` when neither name nor labels are set;
                ``kubectl wait`` requires it, ``kubectl get`` rejects it.
        """
        if self.name:
            args = [self.kind, self.name]
        elif self.labels:
            args = [self.kind, "-l", self.labels]
        else:
            args = [self.kind, "--all"] if match_all else [self.kind]
        if self.namespace:
            args += ["-n", self.namespace]
        return args

    def __str__(self) -> str:
        target = self.name or self.labels or "*"
        where = f" in {self.namespace}" if self.namespace else ""
        return f"{self.kind}/{target}{where}"


@dataclass(frozen=True)
class Manifest:
    """A resource to apply, either from a URL/file or from an in-memory body."""

    name: str
    source: str | None = None
    body: dict[str, Any] | list[dict[str, Any]] | None = field(default=None, compare=False)
    namespace: str | None = None

    def __post_init__(self) -> None:
        if (self.source is None) == (self.body is None):
            raise ValueError(f"Manifest '{self.name}' needs exactly one of source or body")

    def render(self) -> str:
        """Serialize an in-memory body as (multi-document) YAML."""
        if self.body is None:
            raise ValueError(f"Manifest '{self.name}' has no in-memory body")
        documents = self.body if isinstance(self.body, list) else [self.body]
        return yaml.safe_dump_all(documents, default_flow_style=False, sort_keys=False)


class ReadyStatus(str, Enum):
    READY = "ready"
    NOT_READY = "not-ready"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class ReadinessCheck:
    """One observation of a readiness predicate."""

    status: ReadyStatus
    message: str = ""

    @property
    def ready(self) -> bool:
        return self.status is ReadyStatus.READY


def namespace_manifest(namespace: str) -> Manifest:
    return Manifest(
        name=f"namespace/{namespace}",
        body={"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace}},
    )
