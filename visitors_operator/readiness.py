"""
The ReadinessGate decides whether a tier's workload is ready enough for the
next tier to be rolled out on top of it
"""

# First Party
import alog

# Local
from . import constants
from .cluster_store import ClusterStoreBase
from .managed_resource import ManagedResource
from .manifests import ManifestBuilder
from .owning_spec import OwningSpec
from .tiers import Tier

log = alog.use_channel("READY")


class ReadinessGate:
    """Read-only check of a tier's observed ready replicas"""

    def __init__(self, cluster_store: ClusterStoreBase, manifests: ManifestBuilder):
        self.cluster_store = cluster_store
        self.manifests = manifests

    def is_ready(self, tier: Tier, spec: OwningSpec) -> bool:
        """A tier is ready when the ready replicas of its workload equal the
        tier's required count. A missing workload or a failed lookup both count
        as not ready.
        """
        name = self.manifests.workload_name(tier, spec)
        try:
            current = self.cluster_store.get_object_current_state(
                kind=constants.DEPLOYMENT_KIND,
                name=name,
                namespace=spec.namespace,
                api_version=constants.DEPLOYMENT_API_VERSION,
            )
        except Exception as err:  # pylint: disable=broad-except
            log.warning("Failed to look up %s workload [%s]: %s", tier.value, name, err)
            return False

        if current is None:
            log.debug("Could not find %s workload [%s]. Not ready.", tier.value, name)
            return False

        ready_replicas = ManagedResource(observed=current).ready_replicas
        required = self.manifests.desired_replicas(tier, spec)
        log.debug2(
            "%s workload [%s] has %d/%d ready replicas",
            tier.value,
            name,
            ready_replicas,
            required,
        )
        return ready_replicas == required
