"""Kubernetes API client wrapper.

Thin adapter over the official kubernetes Python client exposing exactly the
operations gateway fixtures need: apply manifest text, read a Service, list
node addresses, wait for a Deployment to be reported ready, and delete what
was applied. Transient connection failures are retried with tenacity; API
errors are translated to the exceptions in
:mod:`gateway_fixtures.integrations.kubernetes.exceptions`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
import yaml
from tenacity import (
    RetryError,
    Retrying,
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
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
from gateway_fixtures.integrations.kubernetes.models import NodeSummary, ServiceSummary

if TYPE_CHECKING:
    from kubernetes.client import ApiClient, AppsV1Api, CoreV1Api
    from kubernetes.dynamic import DynamicClient

    from gateway_fixtures.integrations.kubernetes.config import KubernetesConfig

logger = structlog.get_logger()

FIELD_MANAGER = "gateway-fixtures"
DEFAULT_POLL_INTERVAL = 2.0


class KubernetesClient:
    """Orchestration client used by the fixture layer.

    Example:
        ```python
        from gateway_fixtures.integrations.kubernetes import (
            KubernetesClient,
            KubernetesConfig,
        )

        with KubernetesClient(KubernetesConfig.from_env()) as client:
            client.apply_manifest_text(text, namespace="e2e")
            svc = client.get_service("apisix-service-e2e-test", "e2e")
        ```
    """

    def __init__(self, config: KubernetesConfig) -> None:
        """Initialize the client and load kubeconfig (or in-cluster config).

        Args:
            config: Adapter configuration.

        Raises:
            KubernetesConnectionError: If no usable configuration is found.
        """
        self._config = config
        self._retries = config.retry_attempts
        self._current_context: str | None = None

        # Lazy-loaded API instances
        self._api_client: ApiClient | None = None
        self._core_v1: CoreV1Api | None = None
        self._apps_v1: AppsV1Api | None = None
        self._dynamic: DynamicClient | None = None

        self._load_config()

        logger.info(
            "Kubernetes client initialized",
            context=self._current_context,
            default_namespace=self.default_namespace,
        )

    def _load_config(self) -> None:
        """Load Kubernetes configuration from kubeconfig or in-cluster."""
        from kubernetes import config
        from kubernetes.config import ConfigException

        cluster = self._config.cluster
        try:
            config.load_kube_config(
                config_file=cluster.kubeconfig,
                context=cluster.context,
            )
            self._current_context = cluster.context or "current-context"
            logger.debug(
                "loaded_kubeconfig",
                context=cluster.context,
                kubeconfig=cluster.kubeconfig,
            )
        except ConfigException:
            try:
                config.load_incluster_config()
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException as e:
                raise KubernetesConnectionError(
                    message="Cannot load Kubernetes configuration. "
                    "Ensure kubeconfig exists or running inside a cluster.",
                    original_error=e,
                ) from e

        self._invalidate_api_cache()

    def _invalidate_api_cache(self) -> None:
        """Clear cached API instances."""
        self._api_client = None
        self._core_v1 = None
        self._apps_v1 = None
        self._dynamic = None

    # =========================================================================
    # Lazy API Accessors
    # =========================================================================

    @property
    def api_client(self) -> ApiClient:
        """Get the shared ApiClient instance."""
        if self._api_client is None:
            from kubernetes.client import ApiClient

            self._api_client = ApiClient()
        return self._api_client

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (services, nodes, namespaces)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api(self.api_client)
        return self._core_v1

    @property
    def apps_v1(self) -> AppsV1Api:
        """Get AppsV1Api instance (deployments)."""
        if self._apps_v1 is None:
            from kubernetes.client import AppsV1Api

            self._apps_v1 = AppsV1Api(self.api_client)
        return self._apps_v1

    @property
    def dynamic(self) -> DynamicClient:
        """Get a DynamicClient for kind-agnostic apply and delete."""
        if self._dynamic is None:
            from kubernetes.dynamic import DynamicClient

            self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes SDK exception to a KubernetesError.

        Args:
            e: The original exception.
            resource_type: Kind of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException
        from kubernetes.utils import FailToCreateError
        from urllib3.exceptions import HTTPError

        if isinstance(e, KubernetesError):
            return e

        if isinstance(e, FailToCreateError) and e.api_exceptions:
            e = e.api_exceptions[0]

        if isinstance(e, (HTTPError, ConnectionError)):
            return KubernetesConnectionError(message=str(e), original_error=e)

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Retry Decorator
    # =========================================================================

    def make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors.

        Returns:
            A tenacity retry decorator configured with exponential backoff.
        """
        return retry(
            retry=retry_if_exception_type(KubernetesConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def _call(
        self,
        func: Any,
        *args: Any,
        ctx: dict[str, str | None] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Invoke an SDK call, translating errors and retrying connection failures.

        Args:
            func: SDK callable.
            *args: Positional arguments for ``func``.
            ctx: ``resource_type``/``resource_name``/``namespace`` used to
                annotate translated errors.
            **kwargs: Keyword arguments for ``func``.
        """

        @self.make_retry_decorator()
        def _invoke() -> Any:
            try:
                return func(*args, **kwargs)
            except KubernetesError:
                raise
            except Exception as e:
                raise self.translate_api_exception(e, **(ctx or {})) from e

        return _invoke()

    def _resource_api(self, manifest: dict[str, Any], ctx: dict[str, str | None]) -> Any:
        """Look up the dynamic resource for a manifest's apiVersion and kind."""
        return self._call(
            lambda: self.dynamic.resources.get(
                api_version=manifest.get("apiVersion", ""),
                kind=manifest.get("kind", ""),
            ),
            ctx=ctx,
        )

    # =========================================================================
    # Apply / Delete
    # =========================================================================

    def apply_manifest_text(self, text: str, namespace: str | None = None) -> list[str]:
        """Apply every document in a YAML manifest string.

        Documents are created with ``kubernetes.utils.create_from_dict``; a
        document that already exists is updated through server-side apply, so
        re-applying an identical manifest is a no-op on the cluster.

        Args:
            text: One or more YAML documents.
            namespace: Namespace for namespaced resources without one.

        Returns:
            ``Kind/name`` identifiers of the applied documents, in order.

        Raises:
            KubernetesValidationError: If the text is not valid YAML or a
                document is not a mapping.
            KubernetesError: If the API server rejects a document.
        """
        try:
            documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
        except yaml.YAMLError as e:
            raise KubernetesValidationError(message=f"Invalid manifest YAML: {e}") from e

        ns = namespace or self.default_namespace
        applied: list[str] = []
        for doc in documents:
            if not isinstance(doc, dict):
                raise KubernetesValidationError(
                    message=f"Manifest document must be a mapping, got {type(doc).__name__}"
                )
            applied.append(self._apply_document(doc, ns))
        return applied

    def _apply_document(self, manifest: dict[str, Any], namespace: str) -> str:
        """Apply a single document with create-or-server-side-apply semantics."""
        from kubernetes import utils

        kind = manifest.get("kind", "Unknown")
        name = manifest.get("metadata", {}).get("name", "unnamed")
        resource_id = f"{kind}/{name}"
        ctx = {"resource_type": kind, "resource_name": name, "namespace": namespace}

        logger.debug("applying_manifest", resource=resource_id, namespace=namespace)
        try:
            self._call(
                utils.create_from_dict,
                self.api_client,
                manifest,
                verbose=False,
                namespace=namespace,
                ctx=ctx,
            )
            action = "created"
        except KubernetesConflictError:
            resource_api = self._resource_api(manifest, ctx)
            self._call(
                self.dynamic.server_side_apply,
                resource_api,
                body=manifest,
                name=name,
                namespace=namespace,
                field_manager=FIELD_MANAGER,
                force_conflicts=True,
                ctx=ctx,
            )
            action = "configured"

        logger.info("manifest_applied", resource=resource_id, action=action, namespace=namespace)
        return resource_id

    def delete_manifest(self, manifest: dict[str, Any], namespace: str | None = None) -> bool:
        """Delete the resource described by a manifest.

        Args:
            manifest: Manifest dictionary (apiVersion, kind, metadata.name).
            namespace: Namespace of the resource.

        Returns:
            True if the resource was deleted, False if it did not exist.
        """
        ns = namespace or manifest.get("metadata", {}).get("namespace") or self.default_namespace
        kind = manifest.get("kind", "")
        name = manifest.get("metadata", {}).get("name", "")
        ctx = {"resource_type": kind, "resource_name": name, "namespace": ns}

        logger.debug("deleting_manifest", resource=f"{kind}/{name}", namespace=ns)
        try:
            resource_api = self._resource_api(manifest, ctx)
            self._call(self.dynamic.delete, resource_api, name=name, namespace=ns, ctx=ctx)
        except KubernetesNotFoundError:
            logger.debug("manifest_already_absent", resource=f"{kind}/{name}", namespace=ns)
            return False
        logger.info("manifest_deleted", resource=f"{kind}/{name}", namespace=ns)
        return True

    # =========================================================================
    # Namespaces
    # =========================================================================

    def create_namespace(self, name: str, *, labels: dict[str, str] | None = None) -> bool:
        """Create a namespace, tolerating one that already exists.

        Returns:
            True if the namespace was created, False if it already existed.
        """
        from kubernetes.client import V1Namespace, V1ObjectMeta

        body = V1Namespace(metadata=V1ObjectMeta(name=name, labels=labels))
        try:
            self._call(
                self.core_v1.create_namespace,
                body=body,
                ctx={"resource_type": "Namespace", "resource_name": name},
            )
        except KubernetesConflictError:
            logger.debug("namespace_exists", name=name)
            return False
        logger.info("created_namespace", name=name)
        return True

    def delete_namespace(self, name: str) -> bool:
        """Delete a namespace and everything in it.

        Returns:
            True if deletion was requested, False if it did not exist.
        """
        try:
            self._call(
                self.core_v1.delete_namespace,
                name=name,
                ctx={"resource_type": "Namespace", "resource_name": name},
            )
        except KubernetesNotFoundError:
            return False
        logger.info("deleted_namespace", name=name)
        return True

    # =========================================================================
    # Reads
    # =========================================================================

    def get_service(self, name: str, namespace: str | None = None) -> ServiceSummary:
        """Read a Service.

        Args:
            name: Service name.
            namespace: Service namespace.

        Returns:
            The live Service, including assigned node ports.
        """
        ns = namespace or self.default_namespace
        result = self._call(
            self.core_v1.read_namespaced_service,
            name=name,
            namespace=ns,
            ctx={"resource_type": "Service", "resource_name": name, "namespace": ns},
        )
        return ServiceSummary.from_k8s_object(result)

    def list_nodes(self) -> list[NodeSummary]:
        """List cluster nodes in API order."""
        result = self._call(self.core_v1.list_node, ctx={"resource_type": "Node"})
        return [NodeSummary.from_k8s_object(node) for node in result.items]

    def list_node_addresses(self, *, ready_only: bool = True) -> list[str]:
        """Return the InternalIP of each (ready) node, in API order.

        Nodes without an InternalIP fall back to their ExternalIP and are
        skipped if they have neither.
        """
        addresses: list[str] = []
        for node in self.list_nodes():
            if ready_only and not node.ready:
                continue
            address = node.internal_ip or node.external_ip
            if address:
                addresses.append(address)
        logger.debug("listed_node_addresses", count=len(addresses))
        return addresses

    def is_deployment_ready(self, name: str, namespace: str | None = None) -> bool:
        """Check whether every desired replica of a Deployment is ready."""
        ns = namespace or self.default_namespace
        result = self._call(
            self.apps_v1.read_namespaced_deployment,
            name=name,
            namespace=ns,
            ctx={"resource_type": "Deployment", "resource_name": name, "namespace": ns},
        )
        desired = getattr(result.spec, "replicas", 0) or 0
        status = result.status
        ready = getattr(status, "ready_replicas", 0) or 0
        updated = getattr(status, "updated_replicas", 0) or 0
        return desired > 0 and ready >= desired and updated >= desired

    def wait_for_deployment_ready(
        self,
        name: str,
        namespace: str | None = None,
        *,
        timeout: float | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Block until the orchestrator reports the Deployment ready.

        Args:
            name: Deployment name.
            namespace: Deployment namespace.
            timeout: Seconds to wait; defaults to the cluster timeout.
            interval: Seconds between polls.

        Raises:
            KubernetesTimeoutError: If the Deployment is not ready in time.
        """
        ns = namespace or self.default_namespace
        limit = timeout if timeout is not None else self.timeout
        logger.info("waiting_for_deployment", name=name, namespace=ns, timeout=limit)

        retryer = Retrying(
            retry=retry_if_result(lambda ready: not ready),
            stop=stop_after_delay(limit),
            wait=wait_fixed(interval),
        )
        try:
            retryer(self.is_deployment_ready, name, ns)
        except RetryError as e:
            raise KubernetesTimeoutError(
                message=f"Deployment '{name}' not ready",
                timeout_seconds=limit,
                resource_type="Deployment",
                resource_name=name,
                namespace=ns,
            ) from e
        logger.info("deployment_ready", name=name, namespace=ns)

    def check_connection(self) -> bool:
        """Check if connection to the Kubernetes API server is working."""
        from kubernetes.client import VersionApi

        try:
            VersionApi(self.api_client).get_code()
            return True
        except Exception:
            return False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def default_namespace(self) -> str:
        """Get the default namespace from config."""
        return self._config.cluster.namespace

    @property
    def timeout(self) -> int:
        """Get the configured timeout."""
        return self._config.cluster.timeout

    def get_current_context(self) -> str:
        """Get the current context name, or 'in-cluster' inside a pod."""
        return self._current_context or "unknown"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        if self._api_client is not None:
            self._api_client.close()
        self._invalidate_api_cache()
        logger.debug("Kubernetes client closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
