"""
In-memory ClusterStore. Objects live in a nested map keyed by namespace, kind,
api version and name, and nothing is sent to a real cluster.
"""

# Standard
from datetime import datetime
from threading import RLock
from typing import Iterator, List, Optional
import copy
import itertools
import uuid

# First Party
import alog

# Local
from ..exceptions import AlreadyExistsError, ClusterError, ConflictError
from .base import ClusterStoreBase
from .owner_references import is_owned_by

log = alog.use_channel("DRY-RUN")


class DryRunClusterStore(ClusterStoreBase):
    """
    Cluster store which doesn't actually talk to a cluster!

    It behaves like the real thing where the engine can observe it: server-set
    uid and creationTimestamp, a resourceVersion that changes on every write,
    optimistic update checks, a status section that only the status write
    touches, and cascading deletion through ownerReferences.
    """

    def __init__(self, resources: Optional[List[dict]] = None):
        """Construct with an optional set of objects that already exist"""
        self._cluster_content = {}
        self._lock = RLock()
        self._versions = itertools.count(1)
        for resource in resources or []:
            self._seed(resource)

    ## Interface ###############################################################

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.debug(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )
        with self._lock:
            matches = self._find(kind, name, namespace, api_version)
            log.debug3(
                "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
            )
            if len(matches) == 1:
                return copy.deepcopy(matches[0])
            return None

    def create_object(self, resource_definition):
        api_version, kind, name, namespace = self._identifiers(resource_definition)
        log.info("DRY RUN create [%s/%s/%s] in %s", api_version, kind, name, namespace)
        with self._lock:
            if self._find(kind, name, namespace, None):
                raise AlreadyExistsError(
                    f"{kind}/{name} already exists in namespace {namespace}"
                )
            resource = copy.deepcopy(resource_definition)
            metadata = resource.setdefault("metadata", {})
            metadata["uid"] = str(uuid.uuid4())
            metadata["creationTimestamp"] = datetime.now().isoformat()
            self._store(resource)
            return copy.deepcopy(resource)

    def update_object(self, resource_definition):
        log.info("DRY RUN update")
        return self._replace(resource_definition, status_only=False)

    def update_object_status(self, resource_definition):
        log.info("DRY RUN update_object_status")
        return self._replace(resource_definition, status_only=True)

    def delete_object(self, kind, name, namespace=None, api_version=None):
        log.info("DRY RUN delete [%s/%s] in %s", kind, name, namespace)
        with self._lock:
            matches = self._find(kind, name, namespace, api_version)
            if not matches:
                return False
            for match in matches:
                self._delete_cascade(match)
            return True

    ## Dry Run Methods #########################################################

    def set_observed_status(self, kind, name, namespace, status, api_version=None):
        """Stand in for the cluster's own controllers by setting the observed
        status of an object without going through the optimistic write path
        """
        with self._lock:
            matches = self._find(kind, name, namespace, api_version)
            assert len(matches) == 1, f"Cannot set status of missing {kind}/{name}"
            matches[0]["status"] = copy.deepcopy(status)
            matches[0]["metadata"]["resourceVersion"] = self._next_version()

    def list_objects(self, namespace=None) -> Iterator[dict]:
        """Iterate over copies of every stored object, optionally limited to one
        namespace
        """
        with self._lock:
            contents = [
                obj
                for ns_name, ns_entries in self._cluster_content.items()
                if namespace is None or ns_name == namespace
                for kind_entries in ns_entries.values()
                for version_entries in kind_entries.values()
                for obj in version_entries.values()
            ]
        for obj in contents:
            yield copy.deepcopy(obj)

    ## Implementation Details ##################################################

    @staticmethod
    def _identifiers(resource_definition):
        api_version = resource_definition.get("apiVersion")
        kind = resource_definition.get("kind")
        metadata = resource_definition.get("metadata", {})
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        assert None not in [
            api_version,
            kind,
            name,
        ], "Cannot store resource without apiVersion, kind or name"
        return api_version, kind, name, namespace

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _find(self, kind, name, namespace, api_version) -> List[dict]:
        kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
        return [
            entries[name]
            for api_ver, entries in kind_entries.items()
            if name in entries and (api_version is None or api_ver == api_version)
        ]

    def _store(self, resource):
        api_version, kind, name, namespace = self._identifiers(resource)
        resource["metadata"]["resourceVersion"] = self._next_version()
        (
            self._cluster_content.setdefault(namespace, {})
            .setdefault(kind, {})
            .setdefault(api_version, {})
        )[name] = resource

    def _seed(self, resource):
        resource = copy.deepcopy(resource)
        metadata = resource.setdefault("metadata", {})
        metadata.setdefault("uid", str(uuid.uuid4()))
        metadata.setdefault("creationTimestamp", datetime.now().isoformat())
        log.debug2("Seeding %s/%s", resource.get("kind"), metadata.get("name"))
        with self._lock:
            self._store(resource)

    def _replace(self, resource_definition, status_only):
        api_version, kind, name, namespace = self._identifiers(resource_definition)
        with self._lock:
            matches = self._find(kind, name, namespace, api_version)
            if not matches:
                raise ClusterError(f"{kind}/{name} not found in namespace {namespace}")
            current = matches[0]

            expected_version = resource_definition.get("metadata", {}).get(
                "resourceVersion"
            )
            current_version = current["metadata"]["resourceVersion"]
            if expected_version and expected_version != current_version:
                log.debug(
                    "Rejecting stale write of %s/%s: %s != %s",
                    kind,
                    name,
                    expected_version,
                    current_version,
                )
                raise ConflictError(
                    f"{kind}/{name} was modified: resourceVersion "
                    f"{expected_version} is stale"
                )

            if status_only:
                resource = copy.deepcopy(current)
                resource["status"] = copy.deepcopy(resource_definition.get("status"))
            else:
                resource = copy.deepcopy(resource_definition)
                resource["metadata"]["uid"] = current["metadata"]["uid"]
                resource["metadata"]["creationTimestamp"] = current["metadata"].get(
                    "creationTimestamp"
                )
                resource.pop("status", None)
                if "status" in current:
                    resource["status"] = copy.deepcopy(current["status"])
            self._store(resource)
            return copy.deepcopy(resource)

    def _delete_cascade(self, resource):
        api_version, kind, name, namespace = self._identifiers(resource)
        log.debug2("Removing %s/%s/%s from %s", api_version, kind, name, namespace)
        del self._cluster_content[namespace][kind][api_version][name]
        if not self._cluster_content[namespace][kind][api_version]:
            del self._cluster_content[namespace][kind][api_version]
        if not self._cluster_content[namespace][kind]:
            del self._cluster_content[namespace][kind]
        if not self._cluster_content[namespace]:
            del self._cluster_content[namespace]

        owner_uid = resource["metadata"].get("uid")
        dependents = [
            obj
            for kind_entries in self._cluster_content.get(namespace, {}).values()
            for version_entries in kind_entries.values()
            for obj in version_entries.values()
            if is_owned_by(obj, owner_uid)
        ]
        for dependent in dependents:
            dep_api_version, dep_kind, dep_name, _ = self._identifiers(dependent)
            if not self._find(dep_kind, dep_name, namespace, dep_api_version):
                continue
            log.debug2(
                "Cascading delete to %s/%s",
                dependent.get("kind"),
                dependent["metadata"].get("name"),
            )
            self._delete_cascade(dependent)
