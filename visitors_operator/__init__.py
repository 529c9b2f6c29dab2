"""
Package exports
"""

# Local
from . import config
from .cluster_store import ClusterStoreBase, DryRunClusterStore, OpenshiftClusterStore
from .drift import DriftCorrector
from .ensurer import ResourceEnsurer
from .exceptions import assert_cluster, assert_config
from .managed_resource import ManagedResource, OwnerReference
from .manifests import ManifestBuilder
from .owning_spec import OwnerKey, OwningSpec
from .readiness import ReadinessGate
from .reconcile import ReconciliationEngine, ReconciliationResult
from .status import StatusReporter
from .tiers import Tier
from .verdict import ReconcileVerdict, VerdictAction
