"""
Helper objects to represent a kubernetes object that is managed by the operator
and the weak back-reference it carries to its owner
"""

# Standard
from dataclasses import dataclass
from typing import List, Optional
import copy

# Local
from .utils import nested_get


@dataclass(frozen=True)
class OwnerReference:
    """A weak back-reference from a managed resource to the owning resource.

    The operator only ever writes this relation. The cluster store's garbage
    collector reads it to cascade-delete dependents when the owner goes away.
    """

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True

    @classmethod
    def from_dict(cls, ref: dict) -> "OwnerReference":
        return cls(
            api_version=ref.get("apiVersion"),
            kind=ref.get("kind"),
            name=ref.get("name"),
            uid=ref.get("uid"),
            controller=ref.get("controller", False),
            block_owner_deletion=ref.get("blockOwnerDeletion", False),
        )

    def to_dict(self) -> dict:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }


class ManagedResource:  # pylint: disable=too-many-instance-attributes
    """Basic struct to represent a managed kubernetes object. It may hold the
    desired-state manifest it was built from, the observed state read back
    from the cluster store, or both.
    """

    def __init__(self, observed: Optional[dict] = None, desired: Optional[dict] = None):
        assert (
            observed is not None or desired is not None
        ), "Need an observed or desired definition"
        self.observed = copy.deepcopy(observed) if observed is not None else None
        self.desired = copy.deepcopy(desired) if desired is not None else None

        definition = self.observed if self.observed is not None else self.desired
        self.kind = definition.get("kind")
        self.api_version = definition.get("apiVersion")
        self.metadata = definition.get("metadata", {})
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.uid = self.metadata.get("uid")
        self.resource_version = self.metadata.get("resourceVersion")

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    @property
    def definition(self) -> dict:
        return self.observed if self.observed is not None else self.desired

    @property
    def labels(self) -> dict:
        return self.metadata.get("labels") or {}

    @property
    def owners(self) -> List[OwnerReference]:
        return [
            OwnerReference.from_dict(ref)
            for ref in self.metadata.get("ownerReferences") or []
        ]

    @property
    def owner(self) -> Optional[OwnerReference]:
        """The controlling owner, if any"""
        for ref in self.owners:
            if ref.controller:
                return ref
        return None

    @property
    def replicas(self) -> Optional[int]:
        return nested_get(self.definition, "spec.replicas")

    @property
    def ready_replicas(self) -> int:
        """Ready replicas as observed by the cluster. Kubernetes omits the
        field entirely when there are none.
        """
        if self.observed is None:
            return 0
        return nested_get(self.observed, "status.readyReplicas") or 0

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.namespace}/{self.name}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash on the identity in the cluster rather than the content"""
        return hash(str(self))

    def __eq__(self, other):
        return isinstance(other, ManagedResource) and str(self) == str(other)
