"""
Error hierarchy for the visitors operator. Fatal errors need a human to fix
something. Expected errors should clear up on a later pass.
"""

## Base Error ##################################################################


class VisitorsOperatorError(Exception):
    """Base class for all visitors operator exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error indicates a problem
        that another reconciliation is not expected to fix on its own
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class FatalError(VisitorsOperatorError):
    """A FatalError is one that indicates a failure which will repeat on every
    reconciliation until a human changes something.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(FatalError):
    """Exception caused by a malformed owning spec or invalid library config.

    NOTE: There is no distinct unretryable verdict. A ConfigError still yields
        an ERROR verdict that the caller requeues with its default backoff.
    """


## Expected Errors #############################################################


class ExpectedError(VisitorsOperatorError):
    """An ExpectedError is one that indicates a failure condition that should
    terminate the current reconciliation, but is expected to resolve in a
    subsequent one.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class ClusterError(ExpectedError):
    """Exception caused when an operation against the cluster store fails in a
    transient way
    """


class AlreadyExistsError(ClusterError):
    """Exception caused when a create races with another creator"""


class ConflictError(ClusterError):
    """Exception caused when an optimistic write is rejected because the object
    changed since it was read
    """


class DependentNotFoundError(ExpectedError):
    """Exception caused when a resource that is expected to exist is not (yet)
    visible in the cluster store
    """


class OwnerNotFoundError(DependentNotFoundError):
    """Exception caused when the owning resource is deleted part way through a
    reconciliation
    """


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Raise a ConfigError unless condition holds"""
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Raise a ClusterError unless condition holds"""
    if not condition:
        raise ClusterError(message)
