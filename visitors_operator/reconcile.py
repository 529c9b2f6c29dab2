"""
The ReconciliationEngine drives one VisitorsApp toward its desired state.

Every call re-derives everything from the cluster store and runs the same
fixed pipeline of steps, tier by tier. The first step that does not say
CONTINUE ends the pass and its verdict is returned unchanged:

    FetchSpec
    EnsurePersistenceSecret, EnsurePersistenceWorkload, EnsurePersistenceService
    AwaitPersistenceReady
    EnsureBackendWorkload, EnsureBackendService
    RecordBackendStatus, CorrectBackendDrift
    EnsureFrontendWorkload, EnsureFrontendService
    RecordFrontendStatus, CorrectFrontendDrift
    Done
"""

# Standard
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Tuple
import abc
import base64
import datetime
import uuid

# First Party
import alog

# Local
from . import config, constants
from .cluster_store import ClusterStoreBase
from .drift import DriftCorrector
from .ensurer import ResourceEnsurer
from .exceptions import OwnerNotFoundError, VisitorsOperatorError
from .manifests import ManifestBuilder
from .owning_spec import OwnerKey, OwningSpec
from .readiness import ReadinessGate
from .status import StatusReporter
from .tiers import Tier
from .verdict import ReconcileVerdict, VerdictAction

log = alog.use_channel("RECON")


## Data models #################################################################


@dataclass
class RequeueParams:
    """RequeueParams holds parameters for requeue request"""

    requeue_after: datetime.timedelta = field(
        default_factory=lambda: datetime.timedelta(
            seconds=float(config.requeue_after_seconds)
        )
    )


@dataclass
class ReconciliationResult:
    """ReconciliationResult is the retry directive handed back to the caller"""

    # Flag to control requeue of current reconcile request
    requeue: bool
    # Parameters for requeue request
    requeue_params: RequeueParams = field(default_factory=RequeueParams)
    # The cause when the reconciliation failed
    exception: Optional[Exception] = None

    @classmethod
    def from_verdict(cls, verdict: ReconcileVerdict) -> "ReconciliationResult":
        """Map a verdict onto the caller's retry directive. ERROR verdicts
        without their own delay are retried right away when the cause is
        expected to clear on its own, and after the default backoff otherwise.
        """
        if verdict.action == VerdictAction.CONTINUE:
            return cls(requeue=False)
        if verdict.action == VerdictAction.REQUEUE_IMMEDIATE:
            return cls(
                requeue=True,
                requeue_params=RequeueParams(requeue_after=datetime.timedelta(0)),
            )
        requeue_params = RequeueParams()
        if verdict.requeue_after is not None:
            requeue_params = RequeueParams(requeue_after=verdict.requeue_after)
        elif (
            isinstance(verdict.error, VisitorsOperatorError)
            and not verdict.error.is_fatal_error
        ):
            requeue_params = RequeueParams(requeue_after=datetime.timedelta(0))
        return cls(
            requeue=True, requeue_params=requeue_params, exception=verdict.error
        )


class TierPlan(NamedTuple):
    """What the pipeline does for one tier"""

    # The manifest builder functions to ensure, in order
    resources: Tuple[str, ...]
    # Whether the next tier waits on this one's readiness
    gates_next_tier: bool = False
    # The status field that records this tier's image
    status_field: Optional[str] = None
    # Whether the tier's replica count is kept converged
    correct_drift: bool = False


TIER_PLANS: Dict[Tier, TierPlan] = {
    Tier.PERSISTENCE: TierPlan(
        resources=("secret", "workload", "service"),
        gates_next_tier=True,
    ),
    Tier.BACKEND: TierPlan(
        resources=("workload", "service"),
        status_field=constants.STATUS_BACKEND_IMAGE,
        correct_drift=True,
    ),
    Tier.FRONTEND: TierPlan(
        resources=("workload", "service"),
        status_field=constants.STATUS_FRONTEND_IMAGE,
        correct_drift=True,
    ),
}


## Steps #######################################################################


class ReconcileStep(abc.ABC):
    """One stage of the pipeline, bound to a tier"""

    def __init__(self, tier: Tier):
        self.tier = tier

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Human readable stage name used in logs"""

    @abc.abstractmethod
    def run(self, spec: OwningSpec) -> ReconcileVerdict:
        """Run the step. Store failures may be raised as
        VisitorsOperatorErrors; the engine turns them into ERROR verdicts.
        """

    @property
    def _tier_name(self) -> str:
        return self.tier.value.title()

    def __str__(self):
        return self.name


class EnsureStep(ReconcileStep):
    """Create one of the tier's resources if it is absent"""

    def __init__(
        self,
        tier: Tier,
        resource_type: str,
        ensurer: ResourceEnsurer,
        manifests: ManifestBuilder,
    ):
        super().__init__(tier)
        self.resource_type = resource_type
        self.ensurer = ensurer
        self.manifests = manifests

    @property
    def name(self) -> str:
        return f"Ensure{self._tier_name}{self.resource_type.title()}"

    def run(self, spec: OwningSpec) -> ReconcileVerdict:
        build = getattr(self.manifests, self.resource_type)
        _, created = self.ensurer.ensure(build(self.tier, spec))
        log.debug2("%s created: %s", self.name, created)
        return ReconcileVerdict.proceed()


class AwaitReadyStep(ReconcileStep):
    """Hold the pipeline until the tier is observed ready. This is a bounded
    poll rather than a wake-up on change.
    """

    def __init__(self, tier: Tier, readiness: ReadinessGate):
        super().__init__(tier)
        self.readiness = readiness

    @property
    def name(self) -> str:
        return f"Await{self._tier_name}Ready"

    def run(self, spec: OwningSpec) -> ReconcileVerdict:
        if self.readiness.is_ready(self.tier, spec):
            return ReconcileVerdict.proceed()
        delay = config.readiness_poll_seconds
        log.info("%s tier isn't ready, waiting for %ss", self._tier_name, delay)
        return ReconcileVerdict.after(delay)


class RecordStatusStep(ReconcileStep):
    """Record the tier's image on the owning resource's status"""

    def __init__(
        self,
        tier: Tier,
        status_field: str,
        reporter: StatusReporter,
        manifests: ManifestBuilder,
    ):
        super().__init__(tier)
        self.status_field = status_field
        self.reporter = reporter
        self.manifests = manifests

    @property
    def name(self) -> str:
        return f"Record{self._tier_name}Status"

    def run(self, spec: OwningSpec) -> ReconcileVerdict:
        self.reporter.record_status(
            spec, self.status_field, self.manifests.image(self.tier)
        )
        return ReconcileVerdict.proceed()


class CorrectDriftStep(ReconcileStep):
    """Converge the tier's replica count"""

    def __init__(self, tier: Tier, corrector: DriftCorrector):
        super().__init__(tier)
        self.corrector = corrector

    @property
    def name(self) -> str:
        return f"Correct{self._tier_name}Drift"

    def run(self, spec: OwningSpec) -> ReconcileVerdict:
        return self.corrector.reconcile_replicas(self.tier, spec)


## ReconciliationEngine ########################################################


class ReconciliationEngine:
    """Top level orchestrator of a reconciliation. It holds collaborators but
    no state about any owning resource, so one engine may serve many owners
    concurrently.
    """

    def __init__(
        self,
        cluster_store: ClusterStoreBase,
        manifests: Optional[ManifestBuilder] = None,
    ):
        """
        Args:
            cluster_store:  ClusterStoreBase
                The store holding both the owning resources and everything
                they own
            manifests:  Optional[ManifestBuilder]
                The builder for desired manifests. Defaults to one built from
                the library config.
        """
        self.cluster_store = cluster_store
        self.manifests = manifests or ManifestBuilder()
        self.ensurer = ResourceEnsurer(cluster_store)
        self.readiness = ReadinessGate(cluster_store, self.manifests)
        self.drift = DriftCorrector(cluster_store, self.manifests)
        self.status = StatusReporter(cluster_store)
        self.pipeline = self._build_pipeline()

    ## Public ##################################################################

    def reconcile(self, owner_key: OwnerKey) -> ReconcileVerdict:
        """Run one reconciliation of the owning resource with the given key

        Args:
            owner_key:  OwnerKey
                The namespace and name of the owning resource

        Returns:
            verdict:  ReconcileVerdict
                The single decision for this invocation
        """
        reconcile_id = self.generate_id()
        log.info(
            "Reconciling %s",
            owner_key,
            extra={"reconciliationId": reconcile_id},
        )

        spec, verdict = self._fetch_spec(owner_key)
        if spec is None:
            return verdict

        extra = {"reconciliationId": reconcile_id, "resource": spec.manifest}
        for step in self.pipeline:
            try:
                verdict = self._run_step(step, spec)
            except OwnerNotFoundError as err:
                log.info("Stopping after %s: %s", step, err, extra=extra)
                return ReconcileVerdict.proceed()
            if not verdict.is_continue:
                log.info("Stopping after %s with %s", step, verdict, extra=extra)
                return verdict

        log.info("Reconcile of %s complete", owner_key, extra=extra)
        return ReconcileVerdict.proceed()

    def safe_reconcile(self, owner_key: OwnerKey) -> ReconciliationResult:
        """Run a reconciliation and translate the verdict into the caller's
        retry directive
        """
        return ReconciliationResult.from_verdict(self.reconcile(owner_key))

    @staticmethod
    def generate_id() -> str:
        """Generates a unique human readable id for this reconciliation"""
        base32_str = base64.b32encode(uuid.uuid4().bytes).decode("utf-8")
        return base32_str[:22]

    ## Implementation Details ##################################################

    def _build_pipeline(self) -> List[ReconcileStep]:
        pipeline = []
        for tier in sorted(Tier):
            plan = TIER_PLANS[tier]
            for resource_type in plan.resources:
                pipeline.append(
                    EnsureStep(tier, resource_type, self.ensurer, self.manifests)
                )
            if plan.gates_next_tier:
                pipeline.append(AwaitReadyStep(tier, self.readiness))
            if plan.status_field:
                pipeline.append(
                    RecordStatusStep(
                        tier, plan.status_field, self.status, self.manifests
                    )
                )
            if plan.correct_drift:
                pipeline.append(CorrectDriftStep(tier, self.drift))
        log.debug3("Pipeline: %s", pipeline)
        return pipeline

    def _fetch_spec(
        self, owner_key: OwnerKey
    ) -> Tuple[Optional[OwningSpec], ReconcileVerdict]:
        """Read and parse the owning resource. A missing owner was deleted
        between the trigger and now, so there is nothing to do and its
        dependents are left to the store's cascading delete.
        """
        try:
            current = self.cluster_store.get_object_current_state(
                kind=config.owner.kind,
                name=owner_key.name,
                namespace=owner_key.namespace,
                api_version=config.owner.api_version,
            )
            if current is None:
                log.info("%s not found. Nothing to do.", owner_key)
                return None, ReconcileVerdict.proceed()
            return OwningSpec.from_manifest(current), ReconcileVerdict.proceed()
        except VisitorsOperatorError as err:
            log.warning("Failed to fetch %s: %s", owner_key, err)
            return None, ReconcileVerdict.failed(err)
        except Exception as err:  # pylint: disable=broad-except
            log.warning(
                "Handling unexpected error fetching %s: %s",
                owner_key,
                err,
                exc_info=True,
            )
            return None, ReconcileVerdict.failed(err)

    @staticmethod
    def _run_step(step: ReconcileStep, spec: OwningSpec) -> ReconcileVerdict:
        log.debug("Running %s for %s", step, spec.key)
        try:
            return step.run(spec)
        except OwnerNotFoundError:
            raise
        except VisitorsOperatorError as err:
            log.warning("%s failed: %s", step, err)
            return ReconcileVerdict.failed(err)
        except Exception as err:  # pylint: disable=broad-except
            log.warning("Handling unexpected error in %s: %s", step, err, exc_info=True)
            return ReconcileVerdict.failed(err)
