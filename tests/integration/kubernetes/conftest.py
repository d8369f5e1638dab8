"""Gateway fixture integration test fixtures using testcontainers K3S.

Provides a real K3S (lightweight Kubernetes) cluster in Docker so fixtures are
applied, read back and torn down against a live Kubernetes API server.
"""

from __future__ import annotations

import contextlib
import subprocess
import time
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

from gateway_fixtures.fixtures import FixtureController, GatewayFixtureConfig
from gateway_fixtures.integrations.kubernetes import (
    ClusterConfig,
    KubernetesClient,
    KubernetesConfig,
)

# ============================================================================
# Docker Availability Check
# ============================================================================


def _docker_available() -> bool:
    """Check if Docker daemon is running."""
    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            timeout=10,
        )
        return result.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


# ============================================================================
# K3S Container Class
# ============================================================================

K3S_IMAGE = "rancher/k3s:v1.31.4-k3s1"


class K3SContainer(DockerContainer):  # type: ignore[misc]
    """Single-node K3S cluster with the API server on a random host port.

    Traefik and metrics-server are disabled for faster startup.
    """

    K8S_API_PORT = 6443

    def __init__(self, image: str = K3S_IMAGE) -> None:
        super().__init__(image)
        self.with_command(
            "server"
            " --disable=traefik"
            " --disable=metrics-server"
            " --tls-san=0.0.0.0"
            " --write-kubeconfig-mode=644"
        )
        self.with_exposed_ports(self.K8S_API_PORT)
        # K3S needs elevated privileges to run containerd
        self.with_kwargs(
            privileged=True,
            tmpfs={"/run": "", "/var/run": ""},
        )

    def get_kubeconfig(self) -> str:
        """Return the cluster kubeconfig pointing at the mapped API port."""
        exit_code, output = self.exec("cat /etc/rancher/k3s/k3s.yaml")
        if exit_code != 0:
            raise RuntimeError(f"Failed to read kubeconfig: {output}")

        config = yaml.safe_load(output.decode("utf-8"))
        host = self.get_container_host_ip()
        port = self.get_exposed_port(self.K8S_API_PORT)
        for cluster in config.get("clusters", []):
            cluster.get("cluster", {})["server"] = f"https://{host}:{port}"

        return yaml.dump(config)


# ============================================================================
# K3S Cluster Fixtures (Session-Scoped)
# ============================================================================


@pytest.fixture(scope="session")
def k3s_container() -> Generator[K3SContainer]:
    """Session-scoped K3S container shared by all integration modules."""
    if not _docker_available():
        pytest.skip("Docker not available -- skipping Kubernetes integration tests")
    container = K3SContainer()

    with container:
        wait_for_logs(container, "Node controller sync successful", timeout=120)
        # Give a short buffer for API server to stabilize
        time.sleep(2)
        yield container


@pytest.fixture(scope="session")
def k3s_kubeconfig_path(
    k3s_container: K3SContainer,
    tmp_path_factory: pytest.TempPathFactory,
) -> Path:
    """Write K3S kubeconfig to a temp file for KubernetesClient."""
    kubeconfig_path = tmp_path_factory.mktemp("k3s") / "kubeconfig.yaml"
    kubeconfig_path.write_text(k3s_container.get_kubeconfig())
    return kubeconfig_path


@pytest.fixture(scope="session")
def k8s_client(k3s_kubeconfig_path: Path) -> Generator[KubernetesClient]:
    """Session-scoped KubernetesClient connected to the K3S cluster."""
    client = KubernetesClient(
        KubernetesConfig(cluster=ClusterConfig(kubeconfig=str(k3s_kubeconfig_path)))
    )
    yield client
    client.close()


# ============================================================================
# Namespace Isolation Fixtures
# ============================================================================


@pytest.fixture(scope="module")
def test_namespace(k8s_client: KubernetesClient) -> Generator[str]:
    """Module-scoped namespace that fixtures may share.

    Deleting the namespace on teardown cascades to anything a failed test
    left behind.
    """
    ns_name = f"inttest-{uuid.uuid4().hex[:8]}"
    k8s_client.create_namespace(ns_name)

    for _ in range(30):
        ns = k8s_client.core_v1.read_namespace(name=ns_name)
        if ns.status.phase == "Active":
            break
        time.sleep(0.5)

    yield ns_name

    with contextlib.suppress(Exception):
        k8s_client.delete_namespace(ns_name)


# ============================================================================
# Fixture Controller Fixtures
# ============================================================================


@pytest.fixture
def controller(k8s_client: KubernetesClient) -> FixtureController:
    """Controller backed by the K3S cluster."""
    return FixtureController(k8s_client)


@pytest.fixture
def make_fixture_config(
    config_templates: tuple[Path, Path],
    template_values: dict[str, str],
) -> Callable[..., GatewayFixtureConfig]:
    """Build fixture settings from the shared templates with overrides."""
    default_path, override_path = config_templates

    def _make(**overrides: Any) -> GatewayFixtureConfig:
        return GatewayFixtureConfig(
            default_config_path=default_path,
            config_path=override_path,
            template_values=template_values,
            **overrides,
        )

    return _make
