"""Node read-back model."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from gateway_fixtures.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_labels,
    _safe_get,
)


class NodeSummary(K8sEntityBase):
    """Cluster node with the fields endpoint resolution needs."""

    ready: bool = Field(default=False, description="Ready condition is True")
    internal_ip: str | None = Field(default=None, description="Internal IP address")
    external_ip: str | None = Field(default=None, description="External IP address")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> NodeSummary:
        """Create from a kubernetes V1Node object."""
        ready = False
        for cond in _safe_get(obj, "status", "conditions") or []:
            if getattr(cond, "type", None) == "Ready":
                ready = getattr(cond, "status", "") == "True"
                break

        addresses: dict[str, str] = {}
        for addr in _safe_get(obj, "status", "addresses") or []:
            addr_type = getattr(addr, "type", None)
            if addr_type and addr_type not in addresses:
                addresses[addr_type] = getattr(addr, "address", None)

        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            labels=_get_labels(obj),
            ready=ready,
            internal_ip=addresses.get("InternalIP"),
            external_ip=addresses.get("ExternalIP"),
        )
