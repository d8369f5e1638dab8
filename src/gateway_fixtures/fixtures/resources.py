"""Ordered, dependency-checked sets of manifests."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import Protocol

import structlog

from gateway_fixtures.fixtures.exceptions import ApplyError, ResourceOrderError
from gateway_fixtures.fixtures.manifests import ResourceManifest
from gateway_fixtures.integrations.kubernetes.exceptions import KubernetesError

logger = structlog.get_logger()

# Conventional apply order by kind. Deployments mount ConfigMaps, and Services
# come last so a failed selector is the last thing reported.
KIND_APPLY_ORDER = ("Namespace", "ConfigMap", "Secret", "Deployment", "Service")


class ManifestApplier(Protocol):
    """The slice of the orchestration client a ResourceSet needs."""

    def apply_manifest_text(self, text: str, namespace: str | None = None) -> list[str]: ...

    def delete_manifest(
        self, manifest: dict[str, object], namespace: str | None = None
    ) -> bool: ...


def kind_rank(manifest: ResourceManifest) -> int:
    """Position of a manifest's kind in KIND_APPLY_ORDER (unknown kinds last)."""
    try:
        return KIND_APPLY_ORDER.index(manifest.kind)
    except ValueError:
        return len(KIND_APPLY_ORDER)


class ResourceSet(Sequence[ResourceManifest]):
    """An immutable list of manifests applied in declared order.

    Construction fails with :class:`ResourceOrderError` when a manifest's hard
    dependency (``depends_on``) is missing or declared after it. Label
    selector references are not checked since the orchestrator resolves them
    whenever the selected pods appear.
    """

    def __init__(self, manifests: Iterable[ResourceManifest]) -> None:
        self._manifests = tuple(manifests)
        self._validate_order()
        self._log = logger.bind(entity="resource_set")

    @classmethod
    def by_kind(cls, manifests: Iterable[ResourceManifest]) -> ResourceSet:
        """Build a set sorted by KIND_APPLY_ORDER, stable within a kind."""
        return cls(sorted(manifests, key=kind_rank))

    def _validate_order(self) -> None:
        seen: set[str] = set()
        for manifest in self._manifests:
            for dependency in manifest.depends_on:
                if dependency not in seen:
                    raise ResourceOrderError(manifest.identifier, dependency)
            seen.add(manifest.identifier)

    def __getitem__(self, index: int) -> ResourceManifest:  # type: ignore[override]
        return self._manifests[index]

    def __len__(self) -> int:
        return len(self._manifests)

    def __iter__(self) -> Iterator[ResourceManifest]:
        return iter(self._manifests)

    def __repr__(self) -> str:
        return f"ResourceSet({[m.identifier for m in self._manifests]})"

    @property
    def identifiers(self) -> list[str]:
        """``Kind/name`` of every manifest, in apply order."""
        return [m.identifier for m in self._manifests]

    def get(self, kind: str) -> ResourceManifest | None:
        """Return the first manifest of ``kind``, or None."""
        for manifest in self._manifests:
            if manifest.kind == kind:
                return manifest
        return None

    def apply_all(self, client: ManifestApplier, namespace: str | None = None) -> list[str]:
        """Apply every manifest in order, stopping at the first failure.

        Nothing is rolled back: manifests applied before the failure stay on
        the cluster until the fixture is torn down.

        Args:
            client: Orchestration client.
            namespace: Namespace for manifests that do not carry one.

        Returns:
            Identifiers of the applied manifests.

        Raises:
            ApplyError: For the first manifest the cluster rejects.
        """
        applied: list[str] = []
        for manifest in self._manifests:
            self._log.info("applying_resource", resource=manifest.identifier)
            try:
                client.apply_manifest_text(manifest.to_yaml(), namespace=namespace)
            except KubernetesError as e:
                self._log.error(
                    "resource_apply_failed",
                    resource=manifest.identifier,
                    applied=applied,
                    error=str(e),
                )
                raise ApplyError(manifest.identifier, e) from e
            applied.append(manifest.identifier)
        self._log.info("applied_resources", count=len(applied))
        return applied

    def delete_all(self, client: ManifestApplier, namespace: str | None = None) -> list[str]:
        """Delete every manifest in reverse apply order.

        Resources that are already gone are skipped.

        Returns:
            Identifiers of the resources that were actually deleted.

        Raises:
            ApplyError: For the first deletion the cluster rejects.
        """
        deleted: list[str] = []
        for manifest in reversed(self._manifests):
            try:
                if client.delete_manifest(manifest.to_dict(), namespace=namespace):
                    deleted.append(manifest.identifier)
            except KubernetesError as e:
                raise ApplyError(manifest.identifier, e) from e
        self._log.info("deleted_resources", count=len(deleted))
        return deleted
