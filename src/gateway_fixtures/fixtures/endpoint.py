"""Resolve the externally dialable address of a fixture's Service."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from gateway_fixtures.fixtures.exceptions import NoAvailableNodeError, PortNotFoundError
from gateway_fixtures.integrations.kubernetes.models import ServiceSummary

DEFAULT_SCHEME = "http"


@dataclass(frozen=True)
class ServiceEndpoint:
    """A node address plus the node ports of a Service's named ports."""

    host: str
    ports: dict[str, int] = field(default_factory=dict)
    protocol: str = "TCP"
    scheme: str = DEFAULT_SCHEME

    def url(self, port_name: str) -> str:
        """Return ``scheme://host:port`` for a named port.

        Raises:
            PortNotFoundError: If ``port_name`` is not exposed.
        """
        if port_name not in self.ports:
            raise PortNotFoundError(port_name, self.ports)
        return f"{self.scheme}://{self.host}:{self.ports[port_name]}"


class EndpointResolver:
    """Deterministic lookup of node address and node port.

    Local test clusters (kind, minikube, k3s) have a single node, so the first
    address is always used.
    """

    def __init__(self, scheme: str = DEFAULT_SCHEME) -> None:
        self.scheme = scheme

    @staticmethod
    def _first_node(node_addresses: Sequence[str]) -> str:
        if not node_addresses:
            raise NoAvailableNodeError()
        return node_addresses[0]

    def resolve_endpoint(
        self, service: ServiceSummary, node_addresses: Sequence[str]
    ) -> ServiceEndpoint:
        """Map every named port that has a node port to the first node."""
        host = self._first_node(node_addresses)
        ports = {p.name: p.node_port for p in service.ports if p.name and p.node_port}
        protocol = service.ports[0].protocol if service.ports else "TCP"
        return ServiceEndpoint(host=host, ports=ports, protocol=protocol, scheme=self.scheme)

    def resolve_url(
        self, service: ServiceSummary, node_addresses: Sequence[str], port_name: str
    ) -> str:
        """Return the URL reaching ``port_name`` of ``service`` from outside the cluster.

        Args:
            service: Live Service read back from the cluster.
            node_addresses: Reachable node addresses, in preference order.
            port_name: Name of the Service port.

        Raises:
            NoAvailableNodeError: If ``node_addresses`` is empty.
            PortNotFoundError: If no port is named ``port_name`` or the port
                has no node port assigned.
        """
        host = self._first_node(node_addresses)
        port = service.get_port(port_name)
        if port is None or not port.node_port:
            raise PortNotFoundError(port_name, [p.name for p in service.ports])
        return f"{self.scheme}://{host}:{port.node_port}"
