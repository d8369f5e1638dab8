"""Gateway fixture lifecycle.

A fixture moves strictly forward through
``UNAPPLIED -> APPLYING -> APPLIED -> READY -> TORN_DOWN``. The controller
renders configuration, applies the ConfigMap, Deployment and Service, reads
back the live Service, and later tears everything down. It never retries and
never cleans up on failure: the first error aborts creation and whatever was
applied stays until :meth:`FixtureController.teardown` is called.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from gateway_fixtures.fixtures.endpoint import EndpointResolver, ServiceEndpoint
from gateway_fixtures.fixtures.exceptions import ApplyError, FixtureStateError
from gateway_fixtures.fixtures.manifests import HTTP_PORT_NAME, GatewayManifestBuilder
from gateway_fixtures.fixtures.renderer import ConfigRenderer
from gateway_fixtures.fixtures.resources import ResourceSet
from gateway_fixtures.integrations.kubernetes.exceptions import KubernetesError

if TYPE_CHECKING:
    from gateway_fixtures.fixtures.config import GatewayFixtureConfig
    from gateway_fixtures.integrations.kubernetes.client import KubernetesClient
    from gateway_fixtures.integrations.kubernetes.models import ServiceSummary

logger = structlog.get_logger()

MANAGED_BY_LABEL = {"app.kubernetes.io/managed-by": "gateway-fixtures"}


class FixtureState(StrEnum):
    """Lifecycle states of a fixture, in order."""

    UNAPPLIED = "unapplied"
    APPLYING = "applying"
    APPLIED = "applied"
    READY = "ready"
    TORN_DOWN = "torn_down"


_STATE_ORDER = list(FixtureState)


@dataclass
class Fixture:
    """Handle on one provisioned gateway.

    Owned by the caller that created it; only the controller changes its
    state.
    """

    config: GatewayFixtureConfig
    namespace: str
    resources: ResourceSet
    builder: GatewayManifestBuilder
    owns_namespace: bool = False
    state: FixtureState = FixtureState.UNAPPLIED
    service: ServiceSummary | None = None
    node_addresses: list[str] = field(default_factory=list)

    @property
    def deployment_name(self) -> str:
        return self.builder.deployment_name

    @property
    def service_name(self) -> str:
        return self.builder.service_name

    def advance(self, target: FixtureState) -> None:
        """Move to ``target``, which must come after the current state.

        Raises:
            FixtureStateError: On a repeated or backward transition.
        """
        if _STATE_ORDER.index(target) <= _STATE_ORDER.index(self.state):
            raise FixtureStateError(self.state.value, target.value)
        logger.debug(
            "fixture_state_changed",
            namespace=self.namespace,
            previous=self.state.value,
            state=target.value,
        )
        self.state = target


class FixtureController:
    """Create, resolve and tear down gateway fixtures.

    Args:
        client: Orchestration client.
        renderer: Configuration renderer.
        resolver: Endpoint resolver.
        node_provider: Returns reachable node addresses; defaults to the
            ready nodes' InternalIPs reported by ``client``.
    """

    def __init__(
        self,
        client: KubernetesClient,
        renderer: ConfigRenderer | None = None,
        resolver: EndpointResolver | None = None,
        node_provider: Callable[[], Sequence[str]] | None = None,
    ) -> None:
        self._client = client
        self._renderer = renderer or ConfigRenderer()
        self._resolver = resolver or EndpointResolver()
        self._node_provider = node_provider or client.list_node_addresses
        self._log = logger.bind(entity="fixture")

    # =========================================================================
    # Creation
    # =========================================================================

    def prepare(self, config: GatewayFixtureConfig) -> Fixture:
        """Render configuration and build manifests without touching the cluster.

        Raises:
            TemplateNotFoundError: If a configuration template is unreadable.
            RenderError: If a template references a missing value.
        """
        namespace = config.namespace or self._client.default_namespace
        default_config = self._renderer.render(config.default_config_path, config.template_values)
        override_config = self._renderer.render(config.config_path, config.template_values)

        builder = GatewayManifestBuilder(
            namespace=namespace,
            name_suffix=config.name_suffix,
            image=config.image,
            image_pull_policy=config.image_pull_policy,
            config_mount_dir=config.config_mount_dir,
            probes=config.probes,
        )
        resources = ResourceSet(builder.build(default_config, override_config))
        return Fixture(
            config=config,
            namespace=namespace,
            resources=resources,
            builder=builder,
        )

    def apply(self, fixture: Fixture) -> Fixture:
        """Apply a prepared fixture and read back its Service and nodes.

        Raises:
            ApplyError: For the first resource the cluster rejects, or when
                the applied Service cannot be read back.
        """
        fixture.advance(FixtureState.APPLYING)
        log = self._log.bind(namespace=fixture.namespace)

        if fixture.config.create_namespace:
            try:
                created = self._client.create_namespace(
                    fixture.namespace, labels=MANAGED_BY_LABEL
                )
            except KubernetesError as e:
                raise ApplyError(f"Namespace/{fixture.namespace}", e) from e
            if created:
                fixture.owns_namespace = True
            else:
                log.warning("namespace_not_owned", reason="already exists")

        fixture.resources.apply_all(self._client, namespace=fixture.namespace)
        fixture.advance(FixtureState.APPLIED)

        try:
            fixture.service = self._client.get_service(fixture.service_name, fixture.namespace)
            fixture.node_addresses = list(self._node_provider())
        except KubernetesError as e:
            raise ApplyError(f"Service/{fixture.service_name}", e) from e

        log.info(
            "fixture_created",
            resources=fixture.resources.identifiers,
            nodes=len(fixture.node_addresses),
        )
        return fixture

    def create(self, config: GatewayFixtureConfig) -> Fixture:
        """Render, build and apply a fixture in one step.

        Raises:
            TemplateNotFoundError: If a configuration template is unreadable.
            RenderError: If a template references a missing value.
            ApplyError: For the first resource the cluster rejects.
        """
        return self.apply(self.prepare(config))

    # =========================================================================
    # Readiness and Discovery
    # =========================================================================

    def wait_ready(self, fixture: Fixture, timeout: float | None = None) -> Fixture:
        """Block until the orchestrator reports the gateway Deployment ready.

        Raises:
            KubernetesTimeoutError: If readiness is not reported in time.
        """
        if fixture.state is not FixtureState.APPLIED:
            raise FixtureStateError(fixture.state.value, FixtureState.READY.value)
        self._client.wait_for_deployment_ready(
            fixture.deployment_name,
            fixture.namespace,
            timeout=timeout if timeout is not None else fixture.config.ready_timeout,
        )
        fixture.advance(FixtureState.READY)
        return fixture

    def _require_service(self, fixture: Fixture) -> ServiceSummary:
        if fixture.service is None or fixture.state is FixtureState.TORN_DOWN:
            raise FixtureStateError(fixture.state.value, "resolved")
        return fixture.service

    def resolve_url(self, fixture: Fixture, port_name: str = HTTP_PORT_NAME) -> str:
        """Return ``http://node:nodePort`` for a named Service port.

        Does not wait for readiness; call :meth:`wait_ready` first when the
        URL must answer immediately.

        Raises:
            NoAvailableNodeError: If no node address is known.
            PortNotFoundError: If the Service has no such port.
        """
        service = self._require_service(fixture)
        return self._resolver.resolve_url(service, fixture.node_addresses, port_name)

    def resolve_endpoint(self, fixture: Fixture) -> ServiceEndpoint:
        """Return the node address and node ports of every named port."""
        service = self._require_service(fixture)
        return self._resolver.resolve_endpoint(service, fixture.node_addresses)

    # =========================================================================
    # Teardown
    # =========================================================================

    def teardown(self, fixture: Fixture) -> None:
        """Remove the fixture's resources.

        Deletes the namespace when the controller created it, otherwise the
        individual resources in reverse apply order. Tearing down an already
        torn-down fixture does nothing.

        Raises:
            ApplyError: If the cluster rejects a deletion.
        """
        if fixture.state is FixtureState.TORN_DOWN:
            return

        log = self._log.bind(namespace=fixture.namespace)
        if fixture.owns_namespace:
            try:
                self._client.delete_namespace(fixture.namespace)
            except KubernetesError as e:
                raise ApplyError(f"Namespace/{fixture.namespace}", e) from e
        elif fixture.state is not FixtureState.UNAPPLIED:
            fixture.resources.delete_all(self._client, namespace=fixture.namespace)

        fixture.advance(FixtureState.TORN_DOWN)
        log.info("fixture_torn_down", owned_namespace=fixture.owns_namespace)

    @contextmanager
    def fixture_context(
        self, config: GatewayFixtureConfig, *, wait: bool = True
    ) -> Generator[Fixture]:
        """Create a fixture, optionally wait for it, and always tear it down.

        Resources applied before a creation failure are removed as well. When
        teardown fails while another error is propagating, the teardown error
        is logged and the original error is re-raised.
        """
        fixture = self.prepare(config)
        try:
            self.apply(fixture)
            if wait:
                self.wait_ready(fixture)
            yield fixture
        except BaseException:
            try:
                self.teardown(fixture)
            except ApplyError as e:
                self._log.error(
                    "fixture_teardown_failed",
                    namespace=fixture.namespace,
                    resource=e.resource,
                    error=str(e),
                )
            raise
        else:
            self.teardown(fixture)
