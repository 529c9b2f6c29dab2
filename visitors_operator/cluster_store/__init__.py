"""
The ClusterStore is the abstraction in charge of interacting with the
kubernetes cluster to look up, create, update, and delete resources.
"""

# Local
from .base import ClusterStoreBase
from .dry_run_cluster_store import DryRunClusterStore
from .openshift_cluster_store import OpenshiftClusterStore
