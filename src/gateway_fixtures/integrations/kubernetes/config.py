"""Connection settings for the cluster that hosts gateway fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

ENV_PREFIX = "GWFIX_K8S_"


class ClusterConfig(BaseModel):
    """Configuration for the target Kubernetes cluster."""

    model_config = ConfigDict(extra="forbid")

    context: str | None = None
    kubeconfig: str | None = None
    namespace: str = "default"
    timeout: int = 300

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class KubernetesConfig(BaseModel):
    """Complete adapter configuration.

    ``retry_attempts`` bounds how often transient connection failures are
    retried by the client before surfacing to the fixture layer.
    """

    model_config = ConfigDict(extra="forbid")

    cluster: ClusterConfig = ClusterConfig()
    retry_attempts: int = 3

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> KubernetesConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            GWFIX_K8S_KUBECONFIG: Path to the kubeconfig file
            GWFIX_K8S_CONTEXT: Kubeconfig context to activate
            GWFIX_K8S_NAMESPACE: Default namespace for fixture resources
            GWFIX_K8S_TIMEOUT: Default timeout in seconds
            GWFIX_K8S_RETRIES: Attempts for transient connection errors
        """
        config_dict = base_config.copy() if base_config else {}
        cluster = dict(config_dict.get("cluster") or {})

        if kubeconfig := os.environ.get(f"{ENV_PREFIX}KUBECONFIG"):
            cluster["kubeconfig"] = kubeconfig
        if context := os.environ.get(f"{ENV_PREFIX}CONTEXT"):
            cluster["context"] = context
        if namespace := os.environ.get(f"{ENV_PREFIX}NAMESPACE"):
            cluster["namespace"] = namespace
        if timeout := os.environ.get(f"{ENV_PREFIX}TIMEOUT"):
            cluster["timeout"] = int(timeout)
        if retries := os.environ.get(f"{ENV_PREFIX}RETRIES"):
            config_dict["retry_attempts"] = int(retries)

        config_dict["cluster"] = cluster
        return cls.model_validate(config_dict)
