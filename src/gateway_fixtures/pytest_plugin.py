"""Pytest plugin exposing gateway fixtures to end-to-end suites.

Registered through the ``pytest11`` entry point, so installing the package is
enough. Each ``gateway_fixture`` gets its own namespace, waits until the
Deployment is reported ready, and is torn down after the test.

Override ``gateway_fixture_config`` in a ``conftest.py`` to customize the
fixture (templates, values, image); otherwise it is built from command-line
options and ``GWFIX_*`` environment variables.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from gateway_fixtures.fixtures import (
    Fixture,
    FixtureController,
    GatewayFixtureConfig,
)
from gateway_fixtures.fixtures.manifests import ADMIN_PORT_NAME, HTTP_PORT_NAME
from gateway_fixtures.integrations.kubernetes import KubernetesClient, KubernetesConfig
from gateway_fixtures.logging import configure_logging

NAMESPACE_PREFIX = "gwfix"


def generate_namespace(prefix: str = NAMESPACE_PREFIX) -> str:
    """Generate a unique, DNS-1123 compliant namespace name."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ============================================================================
# Hooks
# ============================================================================


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register gateway fixture options."""
    group = parser.getgroup("gateway-fixtures", "Kubernetes-hosted gateway fixtures")
    group.addoption(
        "--gwfix-default-config",
        dest="gwfix_default_config",
        default=None,
        help="Template rendered into the gateway's config-default.yaml",
    )
    group.addoption(
        "--gwfix-config",
        dest="gwfix_config",
        default=None,
        help="Template rendered into the gateway's config.yaml",
    )
    group.addoption(
        "--gwfix-image",
        dest="gwfix_image",
        default=None,
        help="Gateway container image",
    )
    group.addoption(
        "--gwfix-ready-timeout",
        dest="gwfix_ready_timeout",
        type=float,
        default=None,
        help="Seconds to wait for the gateway Deployment to become ready",
    )
    group.addoption(
        "--gwfix-log-level",
        dest="gwfix_log_level",
        choices=("debug", "info", "warning"),
        default=None,
        help="Configure structured logging for fixture provisioning",
    )
    group.addoption(
        "--gwfix-log-dir",
        dest="gwfix_log_dir",
        default=None,
        help="Also write fixture logs as JSON to a rotating file in this directory",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register markers and configure logging when requested."""
    config.addinivalue_line(
        "markers", "gateway: test provisions a Kubernetes-hosted gateway fixture"
    )
    level = config.getoption("gwfix_log_level")
    log_dir = config.getoption("gwfix_log_dir")
    if level or log_dir:
        configure_logging(
            verbose=level == "info",
            debug=level == "debug",
            log_dir=Path(log_dir) if log_dir else None,
        )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def gateway_k8s_client() -> Generator[KubernetesClient]:
    """Session-scoped orchestration client built from ``GWFIX_K8S_*`` settings."""
    client = KubernetesClient(KubernetesConfig.from_env())
    yield client
    client.close()


@pytest.fixture(scope="session")
def gateway_controller(gateway_k8s_client: KubernetesClient) -> FixtureController:
    """Session-scoped fixture controller."""
    return FixtureController(gateway_k8s_client)


@pytest.fixture
def gateway_fixture_config(request: pytest.FixtureRequest) -> GatewayFixtureConfig:
    """Fixture settings from command-line options and environment.

    The fixture gets a fresh namespace that is deleted afterwards, unless
    ``GWFIX_NAMESPACE`` names an existing one to use instead.

    Skips the test when no configuration templates are configured.
    """
    options = request.config.option
    namespace = generate_namespace()
    base: dict[str, Any] = {
        "namespace": namespace,
        "create_namespace": True,
    }
    if options.gwfix_default_config:
        base["default_config_path"] = options.gwfix_default_config
    if options.gwfix_config:
        base["config_path"] = options.gwfix_config
    if options.gwfix_image:
        base["image"] = options.gwfix_image
    if options.gwfix_ready_timeout:
        base["ready_timeout"] = options.gwfix_ready_timeout

    if not _has_templates(base):
        pytest.skip("no gateway configuration templates (--gwfix-default-config/--gwfix-config)")
    config = GatewayFixtureConfig.from_env(base)
    if config.namespace != namespace:
        config = config.model_copy(update={"create_namespace": False})
    return config


def _has_templates(base: dict[str, Any]) -> bool:
    default = base.get("default_config_path") or os.environ.get("GWFIX_DEFAULT_CONFIG")
    override = base.get("config_path") or os.environ.get("GWFIX_CONFIG")
    return bool(default and override)


@pytest.fixture
def gateway_fixture(
    gateway_controller: FixtureController,
    gateway_fixture_config: GatewayFixtureConfig,
) -> Generator[Fixture]:
    """A ready gateway in its own namespace, torn down after the test."""
    with gateway_controller.fixture_context(gateway_fixture_config) as fixture:
        yield fixture


@pytest.fixture
def gateway_url(gateway_controller: FixtureController, gateway_fixture: Fixture) -> str:
    """Externally dialable URL of the gateway's proxy port."""
    return gateway_controller.resolve_url(gateway_fixture, HTTP_PORT_NAME)


@pytest.fixture
def gateway_admin_url(gateway_controller: FixtureController, gateway_fixture: Fixture) -> str:
    """Externally dialable URL of the gateway's admin port."""
    return gateway_controller.resolve_url(gateway_fixture, ADMIN_PORT_NAME)
