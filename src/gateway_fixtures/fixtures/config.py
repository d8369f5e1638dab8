"""Settings describing one gateway fixture."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gateway_fixtures.fixtures.manifests import (
    DEFAULT_CONFIG_MOUNT_DIR,
    DEFAULT_IMAGE,
    DEFAULT_IMAGE_PULL_POLICY,
    ProbeSettings,
)

ENV_PREFIX = "GWFIX_"


class GatewayFixtureConfig(BaseModel):
    """Everything needed to create a gateway fixture.

    ``default_config_path`` and ``config_path`` point at Jinja2 templates for
    the gateway's ``config-default.yaml`` and ``config.yaml``; both are
    rendered with ``template_values``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_config_path: Path
    config_path: Path
    template_values: dict[str, Any] = Field(default_factory=dict)
    namespace: str | None = None
    create_namespace: bool = False
    name_suffix: str | None = None
    image: str = DEFAULT_IMAGE
    image_pull_policy: Literal["Always", "IfNotPresent", "Never"] = DEFAULT_IMAGE_PULL_POLICY
    config_mount_dir: str = DEFAULT_CONFIG_MOUNT_DIR
    probes: ProbeSettings = ProbeSettings()
    ready_timeout: float = 120.0

    @field_validator("default_config_path", "config_path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand ~ in template paths."""
        return v.expanduser()

    @field_validator("ready_timeout")
    @classmethod
    def validate_ready_timeout(cls, v: float) -> float:
        """Validate ready_timeout is positive."""
        if v <= 0:
            raise ValueError("ready_timeout must be positive")
        return v

    @field_validator("name_suffix")
    @classmethod
    def validate_name_suffix(cls, v: str | None) -> str | None:
        """Suffixes end up in DNS-1123 resource names."""
        if v is None:
            return None
        if not v or not all(c.isalnum() or c == "-" for c in v) or v != v.lower():
            raise ValueError("name_suffix must be lowercase alphanumerics or '-'")
        return v

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> GatewayFixtureConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            GWFIX_DEFAULT_CONFIG: Template for config-default.yaml
            GWFIX_CONFIG: Template for config.yaml
            GWFIX_NAMESPACE: Namespace to create the fixture in
            GWFIX_IMAGE: Gateway image
            GWFIX_READY_TIMEOUT: Seconds to wait for the Deployment
        """
        config_dict = base_config.copy() if base_config else {}

        if default_config := os.environ.get(f"{ENV_PREFIX}DEFAULT_CONFIG"):
            config_dict["default_config_path"] = default_config
        if override_config := os.environ.get(f"{ENV_PREFIX}CONFIG"):
            config_dict["config_path"] = override_config
        if namespace := os.environ.get(f"{ENV_PREFIX}NAMESPACE"):
            config_dict["namespace"] = namespace
        if image := os.environ.get(f"{ENV_PREFIX}IMAGE"):
            config_dict["image"] = image
        if ready_timeout := os.environ.get(f"{ENV_PREFIX}READY_TIMEOUT"):
            config_dict["ready_timeout"] = float(ready_timeout)

        return cls.model_validate(config_dict)
