"""
Tests for the ReadinessGate
"""

# Local
from visitors_operator.exceptions import ClusterError
from visitors_operator.manifests import ManifestBuilder
from visitors_operator.readiness import ReadinessGate
from visitors_operator.test_helpers.helpers import (
    MockClusterStore,
    make_deployment,
    setup_spec,
)
from visitors_operator.tiers import Tier


def make_gate(store):
    return ReadinessGate(store, ManifestBuilder())


def test_ready_when_all_replicas_ready():
    store = MockClusterStore(resources=[make_deployment("mysql", 1, 1)])
    assert make_gate(store).is_ready(Tier.PERSISTENCE, setup_spec())


def test_not_ready_without_status():
    """Make sure a workload the cluster hasn't reported on yet is not ready"""
    store = MockClusterStore(resources=[make_deployment("mysql", 1)])
    assert not make_gate(store).is_ready(Tier.PERSISTENCE, setup_spec())


def test_not_ready_when_missing():
    assert not make_gate(MockClusterStore()).is_ready(Tier.PERSISTENCE, setup_spec())


def test_not_ready_on_lookup_failure():
    store = MockClusterStore(
        get_state_fail=ClusterError, resources=[make_deployment("mysql", 1, 1)]
    )
    assert not make_gate(store).is_ready(Tier.PERSISTENCE, setup_spec())


def test_not_ready_on_unexpected_lookup_error():
    """Make sure any lookup failure counts as not ready rather than escaping"""
    store = MockClusterStore(
        get_state_fail=RuntimeError("socket reset"),
        resources=[make_deployment("mysql", 1, 1)],
    )
    assert not make_gate(store).is_ready(Tier.PERSISTENCE, setup_spec())
    assert store.mutation_count() == 0


def test_backend_ready_counts_against_size():
    """Make sure the backend needs spec.size ready replicas"""
    store = MockClusterStore(resources=[make_deployment("acme-backend", 3, 2)])
    gate = make_gate(store)
    assert not gate.is_ready(Tier.BACKEND, setup_spec(size=3))
    store.set_ready("acme-backend", 3)
    assert gate.is_ready(Tier.BACKEND, setup_spec(size=3))


def test_readiness_is_read_only():
    store = MockClusterStore(resources=[make_deployment("mysql", 1, 0)])
    make_gate(store).is_ready(Tier.PERSISTENCE, setup_spec())
    assert store.mutation_count() == 0
