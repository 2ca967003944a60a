"""Unit tests for configuration models and shared value types."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from backstage_gitops.config import BootstrapOptions, ClusterConfig, ConflictPolicy, Credentials, TimingConfig
from backstage_gitops.constants import dep_value
from backstage_gitops.resources import ActionResult, Manifest, ReadinessCheck, ReadyStatus, ResourceSelector


@pytest.fixture
def clean_env(monkeypatch):
    for var in (
        "BACKSTAGE_CLUSTER_NAME",
        "BACKSTAGE_KIND_CONFIG",
        "BACKSTAGE_APPLY_MAX_ATTEMPTS",
        "BACKSTAGE_POLL_INTERVAL",
        "GITHUB_TOKEN",
        "DOCKERHUB_USERNAME",
        "DOCKERHUB_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestClusterConfig:
    """Tests for ClusterConfig."""

    def test_default_values(self, clean_env):
        cfg = ClusterConfig()
        assert cfg.cluster_name == "backstage-gitops"
        assert cfg.kind_config == Path("infra/kind/kind-config.yaml")
        assert cfg.node_ready_timeout == 300
        assert cfg.kind_context == "kind-backstage-gitops"

    def test_env_override(self, clean_env):
        clean_env.setenv("BACKSTAGE_CLUSTER_NAME", "demo")
        assert ClusterConfig().kind_context == "kind-demo"

    def test_invalid_cluster_name(self, clean_env):
        with pytest.raises(ValidationError):
            ClusterConfig(cluster_name="Not_Valid")


class TestTimingConfig:
    """Tests for TimingConfig."""

    def test_default_values(self, clean_env):
        timing = TimingConfig()
        assert timing.apply_max_attempts == 3
        assert timing.apply_retry_delay == 10
        assert timing.pod_ready_timeout == 300
        assert timing.backstage_ready_timeout == 600
        assert timing.poll_interval == 10

    def test_env_override(self, clean_env):
        clean_env.setenv("BACKSTAGE_APPLY_MAX_ATTEMPTS", "5")
        clean_env.setenv("BACKSTAGE_POLL_INTERVAL", "2.5")
        timing = TimingConfig()
        assert timing.apply_max_attempts == 5
        assert timing.poll_interval == 2.5

    @pytest.mark.parametrize("field, value", [
        ("apply_max_attempts", 0),
        ("apply_max_attempts", 11),
        ("apply_retry_delay", -1),
        ("poll_interval", 0),
    ])
    def test_out_of_range_values(self, clean_env, field, value):
        with pytest.raises(ValidationError):
            TimingConfig(**{field: value})


class TestCredentials:
    """Tests for Credentials."""

    def test_incomplete_without_env(self, clean_env):
        assert Credentials().complete is False

    def test_complete_from_env(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "ghp_token")
        clean_env.setenv("DOCKERHUB_USERNAME", "octocat")
        clean_env.setenv("DOCKERHUB_PASSWORD", "pa55")
        creds = Credentials()

        assert creds.complete is True
        assert creds.secret_data() == {
            "github-token": "ghp_token",
            "dockerhub-username": "octocat",
            "dockerhub-password": "pa55",
        }

    def test_empty_value_is_incomplete(self, clean_env):
        creds = Credentials(github_token="ghp", dockerhub_username="", dockerhub_password="x")
        assert creds.complete is False

    def test_secrets_are_masked_in_repr(self, clean_env):
        creds = Credentials(github_token="ghp_s3cr3t", dockerhub_username="u", dockerhub_password="p")
        assert "ghp_s3cr3t" not in repr(creds)


class TestBootstrapOptions:
    """Tests for BootstrapOptions defaults."""

    def test_defaults(self, clean_env):
        options = BootstrapOptions()
        assert options.on_conflict is ConflictPolicy.CONTINUE
        assert options.application_manifest == Path("infra/argocd/backstage-application.yaml")
        assert not (options.recreate or options.install_missing or options.skip_argocd or options.skip_backstage)

    def test_policy_from_string(self):
        assert ConflictPolicy("abort") is ConflictPolicy.ABORT


class TestDependencies:
    """Tests for dependencies.yaml lookups."""

    def test_pinned_kind_version(self):
        assert dep_value("kind", "version") == "v0.20.0"

    def test_argocd_manifest_url(self):
        assert dep_value("argocd", "install_manifest").endswith("/stable/manifests/install.yaml")

    def test_missing_key_returns_default(self):
        assert dep_value("kind", "nope", default="fallback") == "fallback"
        assert dep_value("kind", "version", "deeper") is None


class TestResourceTypes:
    """Tests for ResourceSelector, Manifest, and result types."""

    def test_selector_target_args(self):
        assert ResourceSelector("namespace", name="argocd").target_args() == ["namespace", "argocd"]
        assert ResourceSelector("pods", namespace="ns", labels="a=b").target_args() == [
            "pods", "-l", "a=b", "-n", "ns",
        ]
        assert ResourceSelector("nodes").target_args() == ["nodes"]
        assert ResourceSelector("nodes").target_args(match_all=True) == ["nodes", "--all"]

    def test_selector_rejects_name_and_labels(self):
        with pytest.raises(ValueError):
            ResourceSelector("pods", name="x", labels="a=b")

    def test_selector_str(self):
        assert str(ResourceSelector("pods", namespace="argocd", labels="a=b")) == "pods/a=b in argocd"
        assert str(ResourceSelector("nodes")) == "nodes/*"

    def test_manifest_needs_exactly_one_source(self):
        with pytest.raises(ValueError):
            Manifest(name="empty")
        with pytest.raises(ValueError):
            Manifest(name="both", source="x.yaml", body={"kind": "Namespace"})

    def test_manifest_render_multi_document(self):
        manifest = Manifest(name="pair", body=[{"kind": "Namespace"}, {"kind": "Secret"}])
        documents = list(yaml.safe_load_all(manifest.render()))
        assert [doc["kind"] for doc in documents] == ["Namespace", "Secret"]

    def test_render_without_body_raises(self):
        with pytest.raises(ValueError):
            Manifest(name="remote", source="https://example.com/x.yaml").render()

    def test_action_result_truthiness(self):
        assert ActionResult.success()
        assert not ActionResult.failure("nope")

    def test_readiness_check(self):
        assert ReadinessCheck(ReadyStatus.READY).ready is True
        assert ReadinessCheck(ReadyStatus.NOT_FOUND).ready is False
