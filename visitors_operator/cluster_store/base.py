"""
This defines the base class for all ClusterStore types.
"""

# Standard
from typing import Optional
import abc


class ClusterStoreBase(abc.ABC):
    """
    Base class for cluster stores which are responsible for reading and
    writing declarative objects in the cluster.

    The store is eventually consistent and not transactional. Writes of
    existing objects are optimistic: they carry the resourceVersion that was
    read and fail with a ConflictError if the object changed since.

    Every object may carry metadata.ownerReferences. Interpreting those for
    cascading deletion is the store's job (the cluster's garbage collector),
    never the operator's.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        """Fetch the current state of a given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            current_state:  Optional[dict]
                The dict representation of the current object, or None if
                not present

        Raises:
            ClusterError: If the lookup fails for any reason other than the
                object being absent
        """

    @abc.abstractmethod
    def create_object(self, resource_definition: dict) -> dict:
        """Create a new object. Never modifies an existing one.

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  dict
                The object as stored, including server-set metadata

        Raises:
            AlreadyExistsError: If an object with the same identity exists
            ClusterError: On any other failure
        """

    @abc.abstractmethod
    def update_object(self, resource_definition: dict) -> dict:
        """Replace an existing object with the given definition

        Args:
            resource_definition:  dict
                The full manifest, including the metadata.resourceVersion that
                was read

        Returns:
            updated:  dict
                The object as stored

        Raises:
            ConflictError: If the object changed since it was read
            ClusterError: On any other failure, including the object being
                absent
        """

    @abc.abstractmethod
    def update_object_status(self, resource_definition: dict) -> dict:
        """Replace the status of an existing object. Same semantics as
        update_object, but only the status section is written.
        """

    @abc.abstractmethod
    def delete_object(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        """Delete an object, cascading to dependents that reference it as
        their owner

        Returns:
            changed:  bool
                Whether or not an object was removed
        """
