"""Unit tests for the readiness poller."""

from __future__ import annotations

import pytest

from backstage_gitops.errors import ReadinessTimeoutError
from backstage_gitops.readiness import ReadinessPoller, ReadinessProbe
from backstage_gitops.resources import ResourceSelector

PODS = ResourceSelector("pods", namespace="argocd", labels="app.kubernetes.io/name=argocd-server")


def make_poller(cluster, clock):
    return ReadinessPoller(cluster, clock=clock, sleep=clock.sleep)


class TestReadinessProbe:
    """Tests for ReadinessProbe validation."""

    def test_defaults_to_ready_condition(self):
        probe = ReadinessProbe(PODS, timeout=60, poll_interval=5)
        assert probe.condition == "Ready"

    @pytest.mark.parametrize("timeout, interval", [(0, 5), (-1, 5), (60, 0), (60, -2)])
    def test_rejects_non_positive_values(self, timeout, interval):
        with pytest.raises(ValueError):
            ReadinessProbe(PODS, timeout=timeout, poll_interval=interval)


class TestReadinessPoller:
    """Tests for ReadinessPoller.wait and require."""

    def test_already_ready_returns_after_one_poll(self, cluster, clock):
        """A resource that is already Ready succeeds on the first tick."""
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 5))

        assert result.ready is True
        assert result.attempts == 1
        assert result.elapsed == 0
        assert clock.sleeps == []

    def test_non_blocking_probe_succeeds_on_next_tick(self, nonblocking_cluster, clock):
        """Ready at 12s with a 5s interval is observed at the 15s tick."""
        cluster = nonblocking_cluster
        cluster.ready_at[PODS] = 12.0
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 5))

        assert result.ready is True
        assert 12 <= result.elapsed <= 17
        assert result.elapsed == 15
        assert result.attempts == 4

    def test_blocking_probe_returns_as_soon_as_ready(self, cluster, clock):
        """kubectl wait returns the moment the condition holds."""
        cluster.ready_at[PODS] = 12.0
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 5))

        assert result.ready is True
        assert result.elapsed == 12
        assert result.attempts == 3

    def test_each_wait_is_bounded_by_interval_and_deadline(self, cluster, clock):
        """No single kubectl wait is handed more than the interval or the time left."""
        cluster.ready_at[PODS] = None
        make_poller(cluster, clock).wait(ReadinessProbe(PODS, 25, 10))

        timeouts = [timeout for _, timeout, _ in cluster.waits]
        assert timeouts == [10, 10, 5]

    def test_never_ready_fails_at_deadline(self, cluster, clock):
        """A probe that never passes fails at T, not significantly past it."""
        cluster.ready_at[PODS] = None
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 10))

        assert result.ready is False
        assert 60 <= result.elapsed < 65
        assert "not Ready within 60s" in result.error

    def test_never_ready_non_blocking_never_sleeps_past_deadline(self, nonblocking_cluster, clock):
        """Sleeps are clipped so the last tick ends exactly at the deadline."""
        cluster = nonblocking_cluster
        cluster.ready_at[PODS] = None
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 7))

        assert result.ready is False
        assert result.elapsed == 60
        assert clock.sleeps[-1] == 4

    def test_not_found_is_treated_as_not_ready(self, cluster, clock):
        """Pods that are not scheduled yet keep the poller going."""
        cluster.missing.add(PODS)
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 30, 10))

        assert result.ready is False
        assert result.attempts == 3
        assert "no matching resources found" in result.error

    def test_not_found_then_ready(self, cluster, clock):
        """A resource that appears later is picked up on a later tick."""
        cluster.missing.add(PODS)
        poller = make_poller(cluster, clock)

        original = cluster.wait_ready

        def appear_after_first_poll(selector, timeout, condition="Ready"):
            check = original(selector, timeout, condition)
            cluster.missing.discard(selector)
            return check

        cluster.wait_ready = appear_after_first_poll
        result = poller.wait(ReadinessProbe(PODS, 60, 10))

        assert result.ready is True
        assert result.attempts == 2

    def test_custom_condition_is_forwarded(self, cluster, clock):
        make_poller(cluster, clock).wait(ReadinessProbe(PODS, 60, 10, condition="Available"))
        assert cluster.waits[0][2] == "Available"

    def test_require_raises_on_timeout(self, cluster, clock):
        """require turns a failed wait into ReadinessTimeoutError."""
        cluster.ready_at[PODS] = None
        with pytest.raises(ReadinessTimeoutError, match="not Ready within 20s"):
            make_poller(cluster, clock).require(ReadinessProbe(PODS, 20, 10))

    def test_require_returns_result_when_ready(self, cluster, clock):
        result = make_poller(cluster, clock).require(ReadinessProbe(PODS, 20, 10))
        assert result.ready is True

    def test_polls_that_fill_the_interval_are_not_followed_by_sleeps(self, cluster, clock):
        """A kubectl wait that uses its whole tick leads straight into the next poll."""
        cluster.ready_at[PODS] = None
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 30, 10))

        assert result.attempts == 3
        assert result.elapsed == 30
        assert clock.sleeps == []

    def test_final_partial_tick_sleeps_to_the_deadline_then_stops(self, nonblocking_cluster, clock):
        """Reaching the deadline while sleeping ends polling without another kubectl call."""
        cluster = nonblocking_cluster
        cluster.ready_at[PODS] = None
        result = make_poller(cluster, clock).wait(ReadinessProbe(PODS, 20, 15))

        assert result.ready is False
        assert result.attempts == 2
        assert [timeout for _, timeout, _ in cluster.waits] == [15, 5]
        assert clock.sleeps == [15, 5]
        assert result.elapsed == 20
