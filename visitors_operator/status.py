"""
The StatusReporter persists derived fields onto the status of the owning
resource
"""

# Standard
from typing import Any

# First Party
import alog

# Local
from .cluster_store import ClusterStoreBase
from .exceptions import OwnerNotFoundError
from .owning_spec import OwningSpec
from .utils import nested_get, nested_set

log = alog.use_channel("STTUS")

STATUS_KEY = "status"


class StatusReporter:
    """Writes single status fields onto the owning resource.

    Every write starts from a fresh read of the owning resource so that fields
    set concurrently by others are not clobbered. A write that loses the
    optimistic race raises a ConflictError and is never retried here.
    """

    def __init__(self, cluster_store: ClusterStoreBase):
        self.cluster_store = cluster_store

    def record_status(self, spec: OwningSpec, field: str, value: Any) -> bool:
        """Set status.<field> on the owning resource

        Args:
            spec:  OwningSpec
                The owning spec whose resource is updated
            field:  str
                The status field to set. May use 'foo.bar' nesting.
            value:  Any
                The value to set

        Returns:
            changed:  bool
                Whether or not a write was issued. Writing a value that is
                already present is a no-op.

        Raises:
            OwnerNotFoundError: If the owning resource is gone
            ConflictError: If the owning resource changed between the read
                and the write
            ClusterError: On any other store failure
        """
        current = self.cluster_store.get_object_current_state(
            kind=spec.kind,
            name=spec.name,
            namespace=spec.namespace,
            api_version=spec.api_version,
        )
        if current is None:
            raise OwnerNotFoundError(f"Owning resource {spec.key} not found")

        status = current.get(STATUS_KEY) or {}
        if nested_get(status, field) == value:
            log.debug2("Status field [%s] of %s is already current", field, spec.key)
            return False

        log.debug("Setting status field [%s] of %s to [%s]", field, spec.key, value)
        nested_set(status, field, value)
        current[STATUS_KEY] = status
        self.cluster_store.update_object_status(current)
        return True
