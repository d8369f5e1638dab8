"""Manifest value objects for the gateway under test.

Manifests are immutable models assembled by :class:`GatewayManifestBuilder`
rather than filled-in string templates. Field names, resource names and ports
match what the gateway image and existing e2e suites expect, so they must not
drift.
"""

from __future__ import annotations

import copy
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from gateway_fixtures.fixtures.renderer import ConfigRenderer

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIG_MAP_NAME = "apisix-gw-config.yaml"
DEPLOYMENT_NAME = "apisix-deployment-e2e-test"
SERVICE_NAME = "apisix-service-e2e-test"
CONFIG_VOLUME_NAME = "apisix-config-yaml-configmap"

DEFAULT_CONFIG_KEY = "config-default.yaml"
OVERRIDE_CONFIG_KEY = "config.yaml"

DEFAULT_IMAGE = "apache/apisix:latest"
DEFAULT_IMAGE_PULL_POLICY = "IfNotPresent"
DEFAULT_CONFIG_MOUNT_DIR = "/usr/local/apisix/conf"

HTTP_PORT_NAME = "http"
HTTP_PORT = 9080
ADMIN_PORT_NAME = "http-admin"
ADMIN_PORT = 9180

# ConfigMap data values sit two levels deep (data -> key -> block)
DATA_KEY_INDENT = "  "
DATA_BLOCK_INDENT = "    "
DATA_INDENT_INDICATOR = len(DATA_BLOCK_INDENT) - len(DATA_KEY_INDENT)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class ProbeSettings(BaseModel):
    """TCP-socket probe timings shared by liveness and readiness checks."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_delay_seconds: int = Field(default=2, ge=0)
    period_seconds: int = Field(default=5, gt=0)
    success_threshold: int = Field(default=1, gt=0)
    failure_threshold: int = Field(default=3, gt=0)
    timeout_seconds: int = Field(default=2, gt=0)

    def to_probe(self, port: int) -> dict[str, Any]:
        """Return the probe stanza for a container spec."""
        return {
            "failureThreshold": self.failure_threshold,
            "initialDelaySeconds": self.initial_delay_seconds,
            "periodSeconds": self.period_seconds,
            "successThreshold": self.success_threshold,
            "tcpSocket": {"port": port},
            "timeoutSeconds": self.timeout_seconds,
        }


class ResourceManifest(BaseModel):
    """A single declarative cluster resource.

    ``depends_on`` lists ``Kind/name`` identifiers of resources that must be
    applied first (e.g. a ConfigMap mounted as a volume). ``selector`` records
    a label-based reference, which carries no ordering constraint.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_version: str
    kind: str
    name: str
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    selector: dict[str, str] | None = None
    body: dict[str, Any] = Field(default_factory=dict)

    @property
    def identifier(self) -> str:
        """Return a ``Kind/name`` identifier."""
        return f"{self.kind}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        """Return the manifest as a plain Kubernetes object dictionary."""
        metadata: dict[str, Any] = {"name": self.name}
        if self.namespace:
            metadata["namespace"] = self.namespace
        if self.labels:
            metadata["labels"] = dict(self.labels)
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
            **copy.deepcopy(self.body),
        }

    def to_yaml(self) -> str:
        """Serialize the manifest to YAML text.

        String values under a ConfigMap's ``data`` are written as literal
        block scalars so embedded configuration files keep their own layout.
        The explicit indentation indicator lets a file start with an indented
        line, and the chomping indicator keeps its trailing newlines exact.
        """
        doc = self.to_dict()
        data = doc.pop("data", None) if self.kind == "ConfigMap" else None
        text = yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)
        if not data:
            return text

        lines = [text.rstrip("\n"), "data:"]
        for key, value in data.items():
            header, body = _literal_block(str(value))
            lines.append(f"{DATA_KEY_INDENT}{key}: {header}")
            lines.append(ConfigRenderer.indent(body, DATA_BLOCK_INDENT))
        return "\n".join(lines) + "\n"


def _literal_block(text: str) -> tuple[str, str]:
    """Return the block scalar header and the lines to embed for ``text``.

    Text ending in a newline is kept with ``+`` chomping, minus the final
    break that the block itself supplies. Text without one is stripped.
    """
    if text.endswith("\n"):
        return f"|{DATA_INDENT_INDICATOR}+", text[:-1]
    return f"|{DATA_INDENT_INDICATOR}-", text


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _suffixed(name: str, suffix: str | None) -> str:
    """Append ``-suffix`` to a resource name, keeping a ``.yaml`` ending last."""
    if not suffix:
        return name
    stem, dot, ext = name.rpartition(".")
    if dot and ext == "yaml":
        return f"{stem}-{suffix}.{ext}"
    return f"{name}-{suffix}"


class GatewayManifestBuilder:
    """Build the ConfigMap, Deployment and Service hosting the gateway.

    Args:
        namespace: Namespace stamped on every manifest, or None to let the
            orchestration client decide.
        name_suffix: Optional suffix making resource names unique so that
            several fixtures can share a namespace.
        image: Gateway container image.
        image_pull_policy: Kubernetes image pull policy.
        config_mount_dir: Directory the configuration files are mounted into.
        probes: Liveness/readiness probe timings.
    """

    def __init__(
        self,
        *,
        namespace: str | None = None,
        name_suffix: str | None = None,
        image: str = DEFAULT_IMAGE,
        image_pull_policy: str = DEFAULT_IMAGE_PULL_POLICY,
        config_mount_dir: str = DEFAULT_CONFIG_MOUNT_DIR,
        probes: ProbeSettings | None = None,
    ) -> None:
        self.namespace = namespace
        self.config_map_name = _suffixed(CONFIG_MAP_NAME, name_suffix)
        self.deployment_name = _suffixed(DEPLOYMENT_NAME, name_suffix)
        self.service_name = _suffixed(SERVICE_NAME, name_suffix)
        self.image = image
        self.image_pull_policy = image_pull_policy
        self.config_mount_dir = config_mount_dir.rstrip("/")
        self.probes = probes or ProbeSettings()

    @property
    def app_labels(self) -> dict[str, str]:
        """Labels linking the Deployment's pods to the Service selector."""
        return {"app": self.deployment_name}

    def config_map(self, default_config: str, override_config: str) -> ResourceManifest:
        """Build the ConfigMap carrying both configuration files."""
        return ResourceManifest(
            api_version="v1",
            kind="ConfigMap",
            name=self.config_map_name,
            namespace=self.namespace,
            body={
                "data": {
                    DEFAULT_CONFIG_KEY: default_config,
                    OVERRIDE_CONFIG_KEY: override_config,
                }
            },
        )

    def deployment(self) -> ResourceManifest:
        """Build the single-replica gateway Deployment."""
        container = {
            "livenessProbe": self.probes.to_probe(HTTP_PORT),
            "readinessProbe": self.probes.to_probe(HTTP_PORT),
            "image": self.image,
            "imagePullPolicy": self.image_pull_policy,
            "name": self.deployment_name,
            "ports": [
                {"containerPort": HTTP_PORT, "name": HTTP_PORT_NAME, "protocol": "TCP"},
                {"containerPort": ADMIN_PORT, "name": ADMIN_PORT_NAME, "protocol": "TCP"},
            ],
            "volumeMounts": [
                {
                    "mountPath": f"{self.config_mount_dir}/{OVERRIDE_CONFIG_KEY}",
                    "name": CONFIG_VOLUME_NAME,
                    "subPath": OVERRIDE_CONFIG_KEY,
                },
                {
                    "mountPath": f"{self.config_mount_dir}/{DEFAULT_CONFIG_KEY}",
                    "name": CONFIG_VOLUME_NAME,
                    "subPath": DEFAULT_CONFIG_KEY,
                },
            ],
        }
        return ResourceManifest(
            api_version="apps/v1",
            kind="Deployment",
            name=self.deployment_name,
            namespace=self.namespace,
            depends_on=(f"ConfigMap/{self.config_map_name}",),
            body={
                "spec": {
                    "replicas": 1,
                    "selector": {"matchLabels": self.app_labels},
                    "strategy": {
                        "rollingUpdate": {"maxSurge": "50%", "maxUnavailable": 1},
                        "type": "RollingUpdate",
                    },
                    "template": {
                        "metadata": {"labels": self.app_labels},
                        "spec": {
                            "terminationGracePeriodSeconds": 0,
                            "containers": [container],
                            "volumes": [
                                {
                                    "configMap": {"name": self.config_map_name},
                                    "name": CONFIG_VOLUME_NAME,
                                }
                            ],
                        },
                    },
                }
            },
        )

    def service(self) -> ResourceManifest:
        """Build the NodePort Service exposing the gateway ports."""
        return ResourceManifest(
            api_version="v1",
            kind="Service",
            name=self.service_name,
            namespace=self.namespace,
            selector=self.app_labels,
            body={
                "spec": {
                    "selector": self.app_labels,
                    "ports": [
                        {
                            "name": HTTP_PORT_NAME,
                            "port": HTTP_PORT,
                            "protocol": "TCP",
                            "targetPort": HTTP_PORT,
                        },
                        {
                            "name": ADMIN_PORT_NAME,
                            "port": ADMIN_PORT,
                            "protocol": "TCP",
                            "targetPort": ADMIN_PORT,
                        },
                    ],
                    "type": "NodePort",
                }
            },
        )

    def build(self, default_config: str, override_config: str) -> list[ResourceManifest]:
        """Return [ConfigMap, Deployment, Service] in apply order."""
        return [
            self.config_map(default_config, override_config),
            self.deployment(),
            self.service(),
        ]
