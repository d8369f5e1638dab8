"""Kubernetes integration - orchestration adapter and configuration models."""

from gateway_fixtures.integrations.kubernetes.client import KubernetesClient
from gateway_fixtures.integrations.kubernetes.config import (
    ClusterConfig,
    KubernetesConfig,
)
from gateway_fixtures.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)

__all__ = [
    "ClusterConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConfig",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
]
