"""
The ResourceEnsurer is a generic, idempotent get-or-create for one resource
"""

# Standard
from typing import Optional, Tuple

# First Party
import alog

# Local
from .cluster_store import ClusterStoreBase
from .managed_resource import ManagedResource

log = alog.use_channel("ENSUR")


class ResourceEnsurer:
    """Makes sure a resource exists without ever touching one that does.
    Mutating existing resources is the DriftCorrector's job alone.
    """

    def __init__(self, cluster_store: ClusterStoreBase):
        self.cluster_store = cluster_store

    def ensure(self, desired: dict) -> Tuple[Optional[ManagedResource], bool]:
        """Look the resource up by kind, namespace and name and create it from
        the desired manifest if it is absent

        Args:
            desired:  dict
                The desired-state manifest of the resource

        Returns:
            existing:  Optional[ManagedResource]
                The resource that was already present, or None if it was
                created by this call
            created:  bool
                Whether or not this call created the resource

        Raises:
            ClusterError: If the lookup fails for a reason other than absence,
                or if the create fails. Neither is retried here.
        """
        resource = ManagedResource(desired=desired)
        current = self.cluster_store.get_object_current_state(
            kind=resource.kind,
            name=resource.name,
            namespace=resource.namespace,
            api_version=resource.api_version,
        )
        if current is not None:
            log.debug2("Found existing %s", resource)
            return ManagedResource(observed=current, desired=desired), False

        log.info("Creating new %s", resource)
        self.cluster_store.create_object(desired)
        return None, True
