"""
This module holds the common functionality for managing ownerReferences on the
resources created for an owning spec
"""

# Standard
from typing import TYPE_CHECKING

# First Party
import alog

# Local
from ..managed_resource import OwnerReference

if TYPE_CHECKING:
    # Local
    from ..owning_spec import OwningSpec

log = alog.use_channel("OWNRF")


def make_owner_reference(owning_spec: "OwningSpec") -> OwnerReference:
    """Make the weak owner reference that points at the given owning spec"""
    return OwnerReference(
        api_version=owning_spec.api_version,
        kind=owning_spec.kind,
        name=owning_spec.name,
        uid=owning_spec.uid,
    )


def set_owner_reference(owning_spec: "OwningSpec", child_obj: dict):
    """Merge a reference for the owning spec into the child object's
    ownerReferences. Owner references cannot cross namespaces, so a child in a
    different namespace is left untouched.
    """
    metadata = child_obj.setdefault("metadata", {})
    if metadata.get("namespace") != owning_spec.namespace:
        log.debug2(
            "Not adding cross-namespace owner ref to %s/%s",
            metadata.get("namespace"),
            metadata.get("name"),
        )
        return

    owner_refs = metadata.setdefault("ownerReferences", [])
    if owning_spec.uid in [ref.get("uid") for ref in owner_refs]:
        log.debug3("Owner ref for %s already present", owning_spec.uid)
        return

    log.debug2(
        "Adding owner reference for %s to %s/%s",
        owning_spec.key,
        child_obj.get("kind"),
        metadata.get("name"),
    )
    owner_refs.append(make_owner_reference(owning_spec).to_dict())


def is_owned_by(obj: dict, owner_uid: str) -> bool:
    """Check whether the given object carries a reference to the owner uid"""
    return owner_uid in [
        ref.get("uid")
        for ref in (obj.get("metadata", {}).get("ownerReferences") or [])
    ]
