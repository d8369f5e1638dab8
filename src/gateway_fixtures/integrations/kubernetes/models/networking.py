"""Service read-back models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from gateway_fixtures.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_labels,
    _safe_get,
)


class ServicePort(K8sEntityBase):
    """One entry of a Service's port list."""

    port: int = Field(description="Service port number")
    target_port: str | None = Field(default=None, description="Target port")
    protocol: str = Field(default="TCP", description="Protocol")
    node_port: int | None = Field(default=None, description="Node port")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> ServicePort:
        """Create from a kubernetes V1ServicePort object."""
        target_port = getattr(obj, "target_port", None)
        if target_port is not None:
            target_port = str(target_port)
        return cls(
            name=getattr(obj, "name", "") or "",
            port=getattr(obj, "port", 0),
            target_port=target_port,
            protocol=getattr(obj, "protocol", "TCP") or "TCP",
            node_port=getattr(obj, "node_port", None),
        )


class ServiceSummary(K8sEntityBase):
    """Live Service as returned by the API server."""

    type: str = Field(default="ClusterIP", description="Service type")
    cluster_ip: str | None = Field(default=None, description="Cluster IP")
    ports: list[ServicePort] = Field(default_factory=list, description="Service ports")
    selector: dict[str, str] | None = Field(default=None, description="Pod selector")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> ServiceSummary:
        """Create from a kubernetes V1Service object."""
        spec = getattr(obj, "spec", None)
        ports = _safe_get(spec, "ports") or []
        selector = _safe_get(spec, "selector")

        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            namespace=_safe_get(obj, "metadata", "namespace"),
            labels=_get_labels(obj),
            type=_safe_get(spec, "type", default="ClusterIP"),
            cluster_ip=_safe_get(spec, "cluster_ip"),
            ports=[ServicePort.from_k8s_object(p) for p in ports],
            selector=dict(selector) if selector else None,
        )

    def get_port(self, name: str) -> ServicePort | None:
        """Return the port entry named ``name``, or None."""
        for port in self.ports:
            if port.name == name:
                return port
        return None
