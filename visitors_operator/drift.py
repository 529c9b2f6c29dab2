"""
The DriftCorrector compares a live workload's replica count to the desired
count and patches it when they diverge.

NOTE: Only the replica count is corrected. Drift in images or environment of a
    workload that already exists is not detected.
"""

# First Party
import alog

# Local
from . import config, constants
from .cluster_store import ClusterStoreBase
from .exceptions import ClusterError, DependentNotFoundError
from .managed_resource import ManagedResource
from .manifests import ManifestBuilder
from .owning_spec import OwningSpec
from .tiers import Tier
from .verdict import ReconcileVerdict

log = alog.use_channel("DRIFT")


class DriftCorrector:
    """Converges the replica count of a tier's workload"""

    def __init__(self, cluster_store: ClusterStoreBase, manifests: ManifestBuilder):
        self.cluster_store = cluster_store
        self.manifests = manifests

    def reconcile_replicas(self, tier: Tier, spec: OwningSpec) -> ReconcileVerdict:
        """Make the tier's live workload run the desired number of replicas

        Returns:
            verdict:  ReconcileVerdict
                CONTINUE if nothing had to change, REQUEUE_IMMEDIATE after a
                successful correction so that the next pass re-observes the
                workload, ERROR otherwise
        """
        name = self.manifests.workload_name(tier, spec)
        desired_count = self.manifests.desired_replicas(tier, spec)
        try:
            current = self.cluster_store.get_object_current_state(
                kind=constants.DEPLOYMENT_KIND,
                name=name,
                namespace=spec.namespace,
                api_version=constants.DEPLOYMENT_API_VERSION,
            )
        except ClusterError as err:
            log.warning("Failed to look up %s workload [%s]: %s", tier.value, name, err)
            return ReconcileVerdict.failed(err)

        # The workload may have been created moments ago and not be visible yet
        if current is None:
            log.debug("%s workload [%s] not found yet", tier.value, name)
            return ReconcileVerdict.failed(
                DependentNotFoundError(
                    f"{tier.value} workload {spec.namespace}/{name} not found"
                ),
                seconds=config.dependent_requeue_seconds,
            )

        live_count = ManagedResource(observed=current).replicas
        if live_count == desired_count:
            log.debug2("%s workload [%s] has no replica drift", tier.value, name)
            return ReconcileVerdict.proceed()

        log.info(
            "Correcting %s workload [%s] replicas: %s -> %d",
            tier.value,
            name,
            live_count,
            desired_count,
        )
        current.setdefault("spec", {})["replicas"] = desired_count
        try:
            self.cluster_store.update_object(current)
        except ClusterError as err:
            log.warning("Failed to update %s workload [%s]: %s", tier.value, name, err)
            return ReconcileVerdict.failed(err)
        return ReconcileVerdict.immediate()
