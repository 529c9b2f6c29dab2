"""
Tests for the owner reference helpers
"""

# Local
from visitors_operator.cluster_store.owner_references import (
    is_owned_by,
    make_owner_reference,
    set_owner_reference,
)
from visitors_operator.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_INSTANCE_UID,
    make_deployment,
    setup_spec,
)


def test_make_owner_reference():
    spec = setup_spec()
    ref = make_owner_reference(spec)
    assert ref.uid == TEST_INSTANCE_UID
    assert ref.name == spec.name
    assert ref.kind == spec.kind
    assert ref.api_version == spec.api_version
    assert ref.controller
    assert ref.block_owner_deletion


def test_set_owner_reference():
    deployment = make_deployment("foo", 1)
    set_owner_reference(setup_spec(), deployment)
    assert deployment["metadata"]["ownerReferences"] == [
        make_owner_reference(setup_spec()).to_dict()
    ]
    assert is_owned_by(deployment, TEST_INSTANCE_UID)


def test_set_owner_reference_no_duplicates():
    """Make sure setting the same owner twice adds one reference"""
    deployment = make_deployment("foo", 1)
    set_owner_reference(setup_spec(), deployment)
    set_owner_reference(setup_spec(), deployment)
    assert len(deployment["metadata"]["ownerReferences"]) == 1


def test_set_owner_reference_keeps_existing():
    deployment = make_deployment("foo", 1)
    deployment["metadata"]["ownerReferences"] = [{"uid": "other"}]
    set_owner_reference(setup_spec(), deployment)
    assert is_owned_by(deployment, "other")
    assert is_owned_by(deployment, TEST_INSTANCE_UID)


def test_set_owner_reference_other_namespace():
    """Make sure no reference crosses namespaces"""
    deployment = make_deployment("foo", 1, namespace=SOME_OTHER_NAMESPACE)
    set_owner_reference(setup_spec(), deployment)
    assert "ownerReferences" not in deployment["metadata"]


def test_is_owned_by_no_refs():
    assert not is_owned_by(make_deployment("foo", 1), TEST_INSTANCE_UID)
    assert not is_owned_by({}, TEST_INSTANCE_UID)
