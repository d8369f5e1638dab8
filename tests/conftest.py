"""Shared pytest fixtures for gateway_fixtures tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

DEFAULT_CONFIG_TEMPLATE = """\
apisix:
  node_listen: 9080
  enable_admin: true
deployment:
  admin:
    admin_listen:
      port: 9180
"""

OVERRIDE_CONFIG_TEMPLATE = """\
deployment:
  etcd:
    host:
      - "http://{{ etcd_host }}:2379"
    prefix: "{{ etcd_prefix }}"
"""


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear GWFIX_ prefixed environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("GWFIX_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def template_values() -> dict[str, str]:
    """Values referenced by the override template."""
    return {"etcd_host": "etcd.e2e.svc.cluster.local", "etcd_prefix": "/apisix"}


@pytest.fixture
def config_templates(tmp_path: Path) -> tuple[Path, Path]:
    """Write default and override configuration templates."""
    default_path = tmp_path / "config-default.yaml"
    default_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    override_path = tmp_path / "config.yaml"
    override_path.write_text(OVERRIDE_CONFIG_TEMPLATE)
    return default_path, override_path
