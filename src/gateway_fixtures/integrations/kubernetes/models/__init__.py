"""Pydantic views of the Kubernetes objects a fixture reads back."""

from gateway_fixtures.integrations.kubernetes.models.cluster import NodeSummary
from gateway_fixtures.integrations.kubernetes.models.networking import (
    ServicePort,
    ServiceSummary,
)

__all__ = ["NodeSummary", "ServicePort", "ServiceSummary"]
