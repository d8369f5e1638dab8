"""Unit tests for the pytest plugin helpers."""

from __future__ import annotations

import re

import pytest

from gateway_fixtures.pytest_plugin import _has_templates, generate_namespace

DNS_1123_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


@pytest.mark.unit
class TestGenerateNamespace:
    """Tests for generate_namespace."""

    def test_is_valid_label(self) -> None:
        """Generated names are valid namespace names."""
        name = generate_namespace()

        assert name.startswith("gwfix-")
        assert DNS_1123_LABEL.match(name)
        assert len(name) <= 63

    def test_is_unique(self) -> None:
        """Every call yields a new name."""
        assert len({generate_namespace() for _ in range(50)}) == 50

    def test_custom_prefix(self) -> None:
        """The prefix is configurable."""
        assert generate_namespace("apisix").startswith("apisix-")


@pytest.mark.unit
class TestHasTemplates:
    """Tests for template detection."""

    def test_from_options(self) -> None:
        """Both paths given on the command line."""
        assert _has_templates({"default_config_path": "a.yaml", "config_path": "b.yaml"})

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Paths can come from GWFIX_ variables."""
        monkeypatch.setenv("GWFIX_DEFAULT_CONFIG", "a.yaml")
        monkeypatch.setenv("GWFIX_CONFIG", "b.yaml")
        assert _has_templates({})

    def test_mixed_sources(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """One path from options and one from the environment is enough."""
        monkeypatch.setenv("GWFIX_CONFIG", "b.yaml")
        assert _has_templates({"default_config_path": "a.yaml"})

    def test_missing_one(self) -> None:
        """Both templates are required."""
        assert not _has_templates({"default_config_path": "a.yaml"})
        assert not _has_templates({})


# ===========================================================================
# Plugin fixtures, exercised in an inner pytest run
# ===========================================================================

MOCK_CLIENT_CONFTEST = """
from unittest.mock import MagicMock

import pytest
import yaml

from gateway_fixtures.integrations.kubernetes.models import ServicePort, ServiceSummary


def _service(name, namespace):
    return ServiceSummary(
        name=name,
        namespace=namespace,
        type="NodePort",
        ports=[
            ServicePort(name="http", port=9080, target_port="9080", node_port=31080),
            ServicePort(name="http-admin", port=9180, target_port="9180", node_port=31180),
        ],
    )


@pytest.fixture(scope="session")
def gateway_k8s_client():
    client = MagicMock()
    client.default_namespace = "default"
    client.apply_manifest_text.side_effect = lambda text, namespace=None: [
        "{kind}/{metadata[name]}".format(**yaml.safe_load(text))
    ]
    client.create_namespace.return_value = True
    client.delete_manifest.return_value = True
    client.get_service.side_effect = _service
    client.list_node_addresses.return_value = ["10.0.0.5"]
    return client
"""


@pytest.fixture
def template_args(pytester: pytest.Pytester) -> list[str]:
    """Command-line options pointing at two plain configuration files."""
    default_path = pytester.path / "config-default.yaml"
    default_path.write_text("apisix:\n  node_listen: 9080\n")
    override_path = pytester.path / "config.yaml"
    override_path.write_text("deployment:\n  role: traditional\n")
    return ["--gwfix-default-config", str(default_path), "--gwfix-config", str(override_path)]


@pytest.mark.unit
class TestGatewayFixtureConfig:
    """Tests for the gateway_fixture_config fixture."""

    def test_skips_without_templates(self, pytester: pytest.Pytester) -> None:
        """Tests needing a gateway are skipped when no templates are given."""
        pytester.makepyfile(
            """
            def test_config(gateway_fixture_config):
                pass
            """
        )

        result = pytester.runpytest("-rs")

        result.assert_outcomes(skipped=1)
        result.stdout.fnmatch_lines(["*no gateway configuration templates*"])

    def test_maps_options(self, pytester: pytest.Pytester, template_args: list[str]) -> None:
        """Command-line options end up in the fixture configuration."""
        pytester.makepyfile(
            """
            def test_config(gateway_fixture_config):
                assert gateway_fixture_config.default_config_path.name == "config-default.yaml"
                assert gateway_fixture_config.config_path.name == "config.yaml"
                assert gateway_fixture_config.image == "registry.local/apisix:3.9"
                assert gateway_fixture_config.ready_timeout == 12.0
                assert gateway_fixture_config.namespace.startswith("gwfix-")
                assert gateway_fixture_config.create_namespace is True
            """
        )

        result = pytester.runpytest(
            *template_args,
            "--gwfix-image",
            "registry.local/apisix:3.9",
            "--gwfix-ready-timeout",
            "12",
        )

        result.assert_outcomes(passed=1)

    def test_templates_from_environment(
        self, pytester: pytest.Pytester, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """GWFIX_DEFAULT_CONFIG and GWFIX_CONFIG are enough to run."""
        monkeypatch.setenv("GWFIX_DEFAULT_CONFIG", "/etc/gwfix/config-default.yaml")
        monkeypatch.setenv("GWFIX_CONFIG", "/etc/gwfix/config.yaml")
        pytester.makepyfile(
            """
            def test_config(gateway_fixture_config):
                assert str(gateway_fixture_config.config_path) == "/etc/gwfix/config.yaml"
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=1)

    def test_environment_namespace_is_not_owned(
        self,
        pytester: pytest.Pytester,
        monkeypatch: pytest.MonkeyPatch,
        template_args: list[str],
    ) -> None:
        """A namespace from GWFIX_NAMESPACE is used but never created."""
        monkeypatch.setenv("GWFIX_NAMESPACE", "shared-e2e")
        pytester.makepyfile(
            """
            def test_config(gateway_fixture_config):
                assert gateway_fixture_config.namespace == "shared-e2e"
                assert gateway_fixture_config.create_namespace is False
            """
        )

        result = pytester.runpytest(*template_args)

        result.assert_outcomes(passed=1)


@pytest.mark.unit
class TestGatewayFixture:
    """Tests for gateway_fixture, gateway_url and gateway_admin_url."""

    def test_ready_fixture_in_own_namespace(
        self, pytester: pytest.Pytester, template_args: list[str]
    ) -> None:
        """The fixture is ready, resolvable, and its namespace is deleted afterwards."""
        pytester.makeconftest(MOCK_CLIENT_CONFTEST)
        pytester.makepyfile(
            """
            def test_gateway(gateway_fixture, gateway_url, gateway_admin_url, gateway_k8s_client):
                assert gateway_fixture.state.value == "ready"
                assert gateway_fixture.namespace.startswith("gwfix-")
                assert gateway_fixture.owns_namespace is True
                assert gateway_url == "http://10.0.0.5:31080"
                assert gateway_admin_url == "http://10.0.0.5:31180"
                gateway_k8s_client.wait_for_deployment_ready.assert_called_once()
                gateway_k8s_client.delete_namespace.assert_not_called()


            def test_torn_down_after_test(gateway_k8s_client):
                namespace = gateway_k8s_client.create_namespace.call_args.args[0]
                gateway_k8s_client.delete_namespace.assert_called_once_with(namespace)
                gateway_k8s_client.delete_manifest.assert_not_called()
            """
        )

        result = pytester.runpytest(*template_args)

        result.assert_outcomes(passed=2)

    def test_shared_namespace_is_kept(
        self,
        pytester: pytest.Pytester,
        monkeypatch: pytest.MonkeyPatch,
        template_args: list[str],
    ) -> None:
        """Only the fixture's resources are removed from a shared namespace."""
        monkeypatch.setenv("GWFIX_NAMESPACE", "shared-e2e")
        pytester.makeconftest(MOCK_CLIENT_CONFTEST)
        pytester.makepyfile(
            """
            def test_gateway(gateway_fixture, gateway_url, gateway_k8s_client):
                assert gateway_fixture.namespace == "shared-e2e"
                assert gateway_fixture.owns_namespace is False
                assert gateway_url == "http://10.0.0.5:31080"
                gateway_k8s_client.create_namespace.assert_not_called()


            def test_torn_down_after_test(gateway_k8s_client):
                gateway_k8s_client.delete_namespace.assert_not_called()
                assert gateway_k8s_client.delete_manifest.call_count == 3
            """
        )

        result = pytester.runpytest(*template_args)

        result.assert_outcomes(passed=2)
