"""
ClusterStore backed by the openshift DynamicClient. This is the store that
makes live changes, whether the operator runs inside the cluster it manages or
from a workstation with a kubeconfig.
"""

# Standard
from contextlib import contextmanager
from typing import Optional

# Third Party
from kubernetes.dynamic.exceptions import DynamicApiError
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    ConflictError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from .. import exceptions
from .base import ClusterStoreBase

log = alog.use_channel("OSFTD")

# Deletes leave dependents to the garbage collector, which removes them once the
# owner is gone
DELETE_OPTIONS = {"propagationPolicy": "Background"}


class OpenshiftClusterStore(ClusterStoreBase):
    """This ClusterStore uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self):
        log.debug("Initializing openshift client")
        self._client = None

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        resource_handle = self._get_resource_handle(kind, api_version, namespace)
        try:
            with self._cluster_errors(f"get {kind}/{name} in {namespace}"):
                return resource_handle.get(name=name, namespace=namespace).to_dict()
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return None

    @alog.logged_function(log.debug)
    def create_object(self, resource_definition: dict) -> dict:
        api_version, kind, name, namespace = self._identifiers(resource_definition)
        resource_handle = self._get_resource_handle(kind, api_version, namespace)
        log.debug2("Attempting to create [%s/%s] in %s", kind, name, namespace)
        try:
            with self._cluster_errors(f"create {kind}/{name} in {namespace}"):
                return resource_handle.create(
                    body=resource_definition, namespace=namespace
                ).to_dict()
        except ConflictError as err:
            raise exceptions.AlreadyExistsError(
                f"{kind}/{name} already exists in namespace {namespace}"
            ) from err

    @alog.logged_function(log.debug)
    def update_object(self, resource_definition: dict) -> dict:
        api_version, kind, name, namespace = self._identifiers(resource_definition)
        resource_handle = self._get_resource_handle(kind, api_version, namespace)
        log.debug2("Attempting to replace [%s/%s] in %s", kind, name, namespace)
        with self._write_errors(kind, name, namespace):
            return resource_handle.replace(
                body=resource_definition, namespace=namespace
            ).to_dict()

    @alog.logged_function(log.debug)
    def update_object_status(self, resource_definition: dict) -> dict:
        api_version, kind, name, namespace = self._identifiers(resource_definition)
        resource_handle = self._get_resource_handle(kind, api_version, namespace)
        log.debug2("Attempting to replace status of [%s/%s] in %s", kind, name, namespace)
        with self._write_errors(kind, name, namespace):
            return resource_handle.status.replace(
                body=resource_definition, namespace=namespace
            ).to_dict()

    @alog.logged_function(log.debug)
    def delete_object(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        resource_handle = self._get_resource_handle(kind, api_version, namespace)
        try:
            with self._cluster_errors(f"delete {kind}/{name} in {namespace}"):
                resource_handle.delete(
                    name=name, namespace=namespace, body=DELETE_OPTIONS
                )
        except NotFoundError:
            log.debug("Nothing to delete for [%s/%s] in %s", kind, name, namespace)
            return False
        return True

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client() -> DynamicClient:
        """Build the client from the service account when running in a pod and
        from the local kubeconfig otherwise
        """
        try:
            kubernetes.config.load_incluster_config()
        except kubernetes.config.ConfigException:
            log.debug2("No service account found. Using kubeconfig")
            return DynamicClient(kubernetes.config.new_client_from_config())
        log.debug2("Using in-cluster service account")
        return DynamicClient(kubernetes.client.ApiClient())

    @staticmethod
    def _identifiers(resource_definition: dict):
        metadata = resource_definition.get("metadata", {})
        kind = resource_definition.get("kind")
        name = metadata.get("name")
        assert kind and name, "Refusing to write a resource with no kind or name"
        return (
            resource_definition.get("apiVersion"),
            kind,
            name,
            metadata.get("namespace"),
        )

    def _get_resource_handle(
        self, kind: str, api_version: Optional[str], namespace: Optional[str]
    ) -> Resource:
        """Look up the resource by kind, then by short name"""
        lookups = [{"kind": kind}, {"short_names": [kind]}]
        resource_handle = None
        with self._cluster_errors(f"discover {kind}"):
            for lookup in lookups:
                try:
                    resource_handle = self.client.resources.get(
                        api_version=api_version, **lookup
                    )
                    break
                except (ResourceNotFoundError, ResourceNotUniqueError) as err:
                    log.debug3("Lookup %s missed: %s", lookup, err)
        exceptions.assert_cluster(
            resource_handle is not None,
            f"Kind {kind} ({api_version or 'any version'}) is not served uniquely",
        )
        # Cluster scoped lookups must not carry a namespace in the request path
        if not namespace:
            resource_handle.namespaced = False
        return resource_handle

    @staticmethod
    @contextmanager
    def _cluster_errors(operation: str):
        """Translate client failures other than NotFound and Conflict into
        ClusterErrors. Those two are left to the caller since their meaning
        depends on the operation.
        """
        try:
            yield
        except (NotFoundError, ConflictError):
            raise
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            log.warning("Failed to %s: %s", operation, err)
            raise exceptions.ClusterError(f"Failed to {operation}: {err}") from err

    @classmethod
    @contextmanager
    def _write_errors(cls, kind: str, name: str, namespace: Optional[str]):
        """Translate failures of an optimistic write"""
        try:
            with cls._cluster_errors(f"update {kind}/{name} in {namespace}"):
                yield
        except ConflictError as err:
            raise exceptions.ConflictError(
                f"{kind}/{name} in {namespace} was modified since it was read"
            ) from err
        except NotFoundError as err:
            raise exceptions.ClusterError(
                f"{kind}/{name} not found in namespace {namespace}"
            ) from err
