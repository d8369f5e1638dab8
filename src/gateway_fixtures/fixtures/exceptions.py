"""Errors raised while provisioning and resolving gateway fixtures.

Every error carries enough context (template path, resource identifier or
port name) to diagnose a failed test setup from the exception alone.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class FixtureError(Exception):
    """Base exception for fixture provisioning.

    Attributes:
        message: Human-readable error message.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TemplateNotFoundError(FixtureError):
    """Raised when a configuration template path cannot be read."""

    def __init__(self, path: Path | str, reason: str | None = None) -> None:
        message = f"Configuration template not found: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.path = Path(path)


class RenderError(FixtureError):
    """Raised when a template references a missing value or fails to parse."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Failed to render {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ResourceOrderError(FixtureError):
    """Raised when a manifest is declared before a resource it depends on."""

    def __init__(self, resource: str, dependency: str) -> None:
        super().__init__(f"{resource} depends on {dependency}, which is not declared before it")
        self.resource = resource
        self.dependency = dependency


class ApplyError(FixtureError):
    """Raised when applying (or deleting) a manifest fails.

    Attributes:
        resource: ``Kind/name`` of the manifest that failed.
        cause: The underlying orchestration error.
    """

    def __init__(self, resource: str, cause: Exception) -> None:
        super().__init__(f"Failed to apply {resource}: {cause}")
        self.resource = resource
        self.cause = cause


class NoAvailableNodeError(FixtureError):
    """Raised when no reachable cluster node address is known."""

    def __init__(self, message: str = "No available node to reach the service") -> None:
        super().__init__(message)


class PortNotFoundError(FixtureError):
    """Raised when a Service has no node-routable port with the requested name."""

    def __init__(self, port_name: str, available: Iterable[str] = ()) -> None:
        self.port_name = port_name
        self.available = tuple(available)
        message = f"No '{port_name}' port in service"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class FixtureStateError(FixtureError):
    """Raised on a lifecycle transition that is not strictly forward."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move fixture from {current} to {target}")
        self.current = current
        self.target = target
