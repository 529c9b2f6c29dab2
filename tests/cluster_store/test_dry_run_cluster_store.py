"""
Tests for the DryRunClusterStore
"""

# Third Party
import pytest

# Local
from visitors_operator.cluster_store import DryRunClusterStore
from visitors_operator.cluster_store.owner_references import set_owner_reference
from visitors_operator.exceptions import AlreadyExistsError, ClusterError, ConflictError
from visitors_operator.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_NAMESPACE,
    make_deployment,
    setup_cr,
    setup_spec,
)

################################################################################
## Helpers #####################################################################
################################################################################


def get_deployment(store, name, namespace=TEST_NAMESPACE):
    return store.get_object_current_state("Deployment", name, namespace)


def owned_deployment(name, namespace=TEST_NAMESPACE):
    deployment = make_deployment(name, 1, namespace=namespace)
    set_owner_reference(setup_spec(), deployment)
    return deployment


################################################################################
## Tests #######################################################################
################################################################################

##########
## Read ##
##########


def test_get_missing():
    assert get_deployment(DryRunClusterStore(), "foo") is None


def test_get_seeded():
    """Make sure seeded resources are visible with server-set metadata"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    current = get_deployment(store, "foo")
    assert current["spec"]["replicas"] == 2
    assert current["metadata"]["uid"]
    assert current["metadata"]["resourceVersion"]
    assert current["metadata"]["creationTimestamp"]


def test_get_filters_api_version():
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    assert store.get_object_current_state("Deployment", "foo", TEST_NAMESPACE, "apps/v1")
    assert not store.get_object_current_state(
        "Deployment", "foo", TEST_NAMESPACE, "apps/v2"
    )


def test_get_returns_copy():
    """Make sure modifying a read result does not change the stored object"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    get_deployment(store, "foo")["spec"]["replicas"] = 10
    assert get_deployment(store, "foo")["spec"]["replicas"] == 2


def test_seed_keeps_uid():
    store = DryRunClusterStore(resources=[setup_cr()])
    spec = setup_spec()
    current = store.get_object_current_state(spec.kind, spec.name, spec.namespace)
    assert current["metadata"]["uid"] == spec.uid


############
## Create ##
############


def test_create():
    store = DryRunClusterStore()
    created = store.create_object(make_deployment("foo", 2))
    assert created["metadata"]["uid"]
    assert get_deployment(store, "foo") == created


def test_create_existing():
    """Make sure create never touches an existing object"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    with pytest.raises(AlreadyExistsError):
        store.create_object(make_deployment("foo", 5))
    assert get_deployment(store, "foo")["spec"]["replicas"] == 2


def test_create_same_name_other_namespace():
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    store.create_object(make_deployment("foo", 5, namespace=SOME_OTHER_NAMESPACE))
    assert get_deployment(store, "foo", SOME_OTHER_NAMESPACE)["spec"]["replicas"] == 5


############
## Update ##
############


def test_update():
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    current = get_deployment(store, "foo")
    current["spec"]["replicas"] = 5
    updated = store.update_object(current)
    assert updated["spec"]["replicas"] == 5
    assert updated["metadata"]["uid"] == current["metadata"]["uid"]
    assert (
        updated["metadata"]["resourceVersion"] != current["metadata"]["resourceVersion"]
    )


def test_update_stale():
    """Make sure a write based on a stale read is rejected"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    first = get_deployment(store, "foo")
    second = get_deployment(store, "foo")
    first["spec"]["replicas"] = 3
    store.update_object(first)
    second["spec"]["replicas"] = 4
    with pytest.raises(ConflictError):
        store.update_object(second)
    assert get_deployment(store, "foo")["spec"]["replicas"] == 3


def test_update_without_version():
    """Make sure a write that carries no resourceVersion is unconditional"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    store.update_object(make_deployment("foo", 6))
    assert get_deployment(store, "foo")["spec"]["replicas"] == 6


def test_update_missing():
    with pytest.raises(ClusterError):
        DryRunClusterStore().update_object(make_deployment("foo", 2))


def test_update_keeps_status():
    """Make sure a spec update can't change the status"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2, 2)])
    current = get_deployment(store, "foo")
    current["status"]["readyReplicas"] = 0
    store.update_object(current)
    assert get_deployment(store, "foo")["status"]["readyReplicas"] == 2


def test_update_status_only():
    """Make sure a status update can't change anything but the status"""
    store = DryRunClusterStore(resources=[setup_cr(size=3)])
    spec = setup_spec()
    current = store.get_object_current_state(spec.kind, spec.name, spec.namespace)
    current["spec"]["size"] = 10
    current["status"] = {"backendImage": "img"}
    store.update_object_status(current)
    stored = store.get_object_current_state(spec.kind, spec.name, spec.namespace)
    assert stored["spec"]["size"] == 3
    assert stored["status"] == {"backendImage": "img"}


def test_update_status_stale():
    store = DryRunClusterStore(resources=[setup_cr()])
    spec = setup_spec()
    current = store.get_object_current_state(spec.kind, spec.name, spec.namespace)
    store.update_object(
        store.get_object_current_state(spec.kind, spec.name, spec.namespace)
    )
    current["status"] = {"backendImage": "img"}
    with pytest.raises(ConflictError):
        store.update_object_status(current)


def test_set_observed_status():
    """Make sure a simulated controller status write invalidates older reads"""
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    current = get_deployment(store, "foo")
    store.set_observed_status(
        "Deployment", "foo", TEST_NAMESPACE, {"readyReplicas": 2}
    )
    assert get_deployment(store, "foo")["status"] == {"readyReplicas": 2}
    with pytest.raises(ConflictError):
        store.update_object(current)


############
## Delete ##
############


def test_delete():
    store = DryRunClusterStore(resources=[make_deployment("foo", 2)])
    assert store.delete_object("Deployment", "foo", TEST_NAMESPACE)
    assert get_deployment(store, "foo") is None


def test_delete_missing():
    assert not DryRunClusterStore().delete_object("Deployment", "foo", TEST_NAMESPACE)


def test_delete_cascades():
    """Make sure deleting the owner removes everything that references it"""
    store = DryRunClusterStore(
        resources=[
            setup_cr(),
            owned_deployment("foo"),
            owned_deployment("bar"),
            make_deployment("unowned", 1),
        ]
    )
    spec = setup_spec()
    assert store.delete_object(spec.kind, spec.name, spec.namespace)
    assert get_deployment(store, "foo") is None
    assert get_deployment(store, "bar") is None
    assert get_deployment(store, "unowned") is not None


def test_delete_cascades_transitively():
    store = DryRunClusterStore(resources=[setup_cr(), owned_deployment("foo")])
    foo_uid = get_deployment(store, "foo")["metadata"]["uid"]
    grandchild = make_deployment("grandchild", 1)
    grandchild["metadata"]["ownerReferences"] = [{"uid": foo_uid}]
    store.create_object(grandchild)

    spec = setup_spec()
    store.delete_object(spec.kind, spec.name, spec.namespace)
    assert list(store.list_objects()) == []


def test_delete_cascade_stays_in_namespace():
    other = make_deployment("foo", 1, namespace=SOME_OTHER_NAMESPACE)
    other["metadata"]["ownerReferences"] = [{"uid": setup_spec().uid}]
    store = DryRunClusterStore(resources=[setup_cr(), other])
    spec = setup_spec()
    store.delete_object(spec.kind, spec.name, spec.namespace)
    assert get_deployment(store, "foo", SOME_OTHER_NAMESPACE) is not None


##########
## List ##
##########


def test_list_objects():
    store = DryRunClusterStore(
        resources=[
            make_deployment("foo", 1),
            make_deployment("bar", 1, namespace=SOME_OTHER_NAMESPACE),
        ]
    )
    assert len(list(store.list_objects())) == 2
    assert [obj["metadata"]["name"] for obj in store.list_objects(TEST_NAMESPACE)] == [
        "foo"
    ]
