"""Shared test fixtures for backstage-gitops tests.

This module provides in-memory collaborators:
- FakeClock: Monotonic clock whose sleep advances time instantly
- FakeCluster: ClusterClient that tracks existing resources and records mutations
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from backstage_gitops.config import TimingConfig
from backstage_gitops.readiness import ReadinessPoller
from backstage_gitops.resources import (
    ActionResult,
    Manifest,
    ReadinessCheck,
    ReadyStatus,
    ResourceSelector,
)
from backstage_gitops.sequencer import StepSequencer


@dataclass
class FakeClock:
    """Clock and sleep pair for deterministic timing."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeCluster:
    """In-memory ClusterClient.

    Attributes:
        present: Selectors that ``exists`` reports as present.
        effects: Manifest name -> selectors that become present once applied.
        ready_at: Selector -> clock time at which it turns Ready; None never does.
        missing: Selectors that ``wait_ready`` reports as NOT_FOUND.
        apply_failures: Manifest name -> number of applies that fail first.
        blocking: Whether ``wait_ready`` consumes time like ``kubectl wait``.
    """

    def __init__(self, clock: FakeClock | None = None, blocking: bool = True) -> None:
        self.clock = clock or FakeClock()
        self.blocking = blocking
        self.present: set[ResourceSelector] = set()
        self.effects: dict[str, list[ResourceSelector]] = {}
        self.ready_at: dict[ResourceSelector, float | None] = {}
        self.missing: set[ResourceSelector] = set()
        self.apply_failures: dict[str, int] = {}
        self.secrets: dict[tuple[str, str, str], str] = {}
        self.context: str | None = "kind-backstage-gitops"
        self.reachable = True
        self.applied: list[Manifest] = []
        self.waits: list[tuple[ResourceSelector, float, str]] = []

    # -- ClusterClient --------------------------------------------------------

    def exists(self, selector: ResourceSelector) -> bool:
        return selector in self.present

    def apply(self, manifest: Manifest) -> ActionResult:
        self.applied.append(manifest)
        if self.apply_failures.get(manifest.name, 0) > 0:
            self.apply_failures[manifest.name] -= 1
            return ActionResult.failure(f"apply {manifest.name} refused")
        if manifest.name.startswith("namespace/"):
            self.present.add(ResourceSelector("namespace", name=manifest.name.split("/", 1)[1]))
        self.present.update(self.effects.get(manifest.name, []))
        return ActionResult.success(f"{manifest.name} configured")

    def wait_ready(self, selector: ResourceSelector, timeout: float, condition: str = "Ready") -> ReadinessCheck:
        self.waits.append((selector, timeout, condition))
        if selector in self.missing:
            return ReadinessCheck(ReadyStatus.NOT_FOUND, "no matching resources found")
        ready_at = self.ready_at.get(selector, 0.0)
        if ready_at is not None and ready_at <= self.clock.now:
            return ReadinessCheck(ReadyStatus.READY, "condition met")
        if self.blocking:
            if ready_at is not None and ready_at - self.clock.now <= timeout:
                self.clock.now = ready_at
                return ReadinessCheck(ReadyStatus.READY, "condition met")
            self.clock.now += timeout
        return ReadinessCheck(ReadyStatus.NOT_READY, "timed out waiting for the condition")

    def read_secret(self, namespace: str, name: str, key: str) -> str | None:
        return self.secrets.get((namespace, name, key))

    # -- Context helpers ------------------------------------------------------

    def current_context(self) -> str | None:
        return self.context

    def use_context(self, context: str) -> bool:
        self.context = context
        return True

    def cluster_info(self) -> bool:
        return self.reachable

    def get_text(self, args: list[str]) -> str:
        return f"output of get {' '.join(args)}\n"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cluster(clock):
    return FakeCluster(clock)


@pytest.fixture
def nonblocking_cluster(clock):
    """FakeCluster whose wait_ready answers instantly, like a plain kubectl get."""
    return FakeCluster(clock, blocking=False)


@pytest.fixture
def timing():
    return TimingConfig(
        apply_max_attempts=3,
        apply_retry_delay=10.0,
        pod_ready_timeout=300.0,
        backstage_ready_timeout=600.0,
        poll_interval=10.0,
    )


@pytest.fixture
def sequencer(cluster, clock):
    """StepSequencer wired to the fake cluster and clock."""
    poller = ReadinessPoller(cluster, clock=clock, sleep=clock.sleep)
    return StepSequencer(poller, sleep=clock.sleep)
