"""Gateway fixture provisioning and service discovery.

Example:
    from gateway_fixtures.fixtures import FixtureController, GatewayFixtureConfig

    config = GatewayFixtureConfig(
        default_config_path="conf/config-default.yaml",
        config_path="conf/config.yaml",
        template_values={"etcd_host": "etcd.e2e.svc.cluster.local"},
        namespace="e2e",
    )
    with controller.fixture_context(config) as fixture:
        url = controller.resolve_url(fixture, "http")
"""

from gateway_fixtures.fixtures.config import GatewayFixtureConfig
from gateway_fixtures.fixtures.controller import Fixture, FixtureController, FixtureState
from gateway_fixtures.fixtures.endpoint import EndpointResolver, ServiceEndpoint
from gateway_fixtures.fixtures.exceptions import (
    ApplyError,
    FixtureError,
    FixtureStateError,
    NoAvailableNodeError,
    PortNotFoundError,
    RenderError,
    ResourceOrderError,
    TemplateNotFoundError,
)
from gateway_fixtures.fixtures.manifests import (
    GatewayManifestBuilder,
    ProbeSettings,
    ResourceManifest,
)
from gateway_fixtures.fixtures.renderer import ConfigRenderer
from gateway_fixtures.fixtures.resources import KIND_APPLY_ORDER, ResourceSet

__all__ = [
    "KIND_APPLY_ORDER",
    "ApplyError",
    "ConfigRenderer",
    "EndpointResolver",
    "Fixture",
    "FixtureController",
    "FixtureError",
    "FixtureState",
    "FixtureStateError",
    "GatewayFixtureConfig",
    "GatewayManifestBuilder",
    "NoAvailableNodeError",
    "PortNotFoundError",
    "ProbeSettings",
    "RenderError",
    "ResourceManifest",
    "ResourceOrderError",
    "ResourceSet",
    "ServiceEndpoint",
    "TemplateNotFoundError",
]
