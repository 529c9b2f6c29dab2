"""
Shared fixtures and fakes for testing code that reconciles VisitorsApps
"""

# Standard
from contextlib import contextmanager
from typing import List, Optional
from unittest import mock
import copy
import os

# First Party
import aconfig
import alog

# Local
from visitors_operator import config, constants
from visitors_operator.cluster_store import DryRunClusterStore
from visitors_operator.config import library_config as config_detail_dict
from visitors_operator.owning_spec import OwnerKey, OwningSpec

log = alog.use_channel("TEST")

## Logging #####################################################################


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() == "true"


def configure_logging():
    """Configure alog from the LOG_* env vars. Tests are silent by default."""
    alog.configure(
        default_level=os.environ.get("LOG_LEVEL", "off"),
        filters=os.environ.get("LOG_FILTERS", ""),
        formatter="json" if _env_flag("LOG_JSON") else "pretty",
        thread_id=_env_flag("LOG_THREAD_ID"),
    )


configure_logging()

## Sample resources ############################################################

TEST_INSTANCE_NAME = "acme"
TEST_INSTANCE_UID = "0b5e9a44-7d1c-4c2e-9f31-5a0c3e7d2b10"
TEST_NAMESPACE = "visitors-test"
SOME_OTHER_NAMESPACE = "elsewhere"


def setup_cr(
    size=3,
    title=None,
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    uid=TEST_INSTANCE_UID,
    **kwargs,
) -> dict:
    """Make the manifest of an owning VisitorsApp. Extra kwargs become top
    level fields (e.g. status).
    """
    cr_dict = copy.deepcopy(kwargs)
    cr_dict.setdefault("kind", config.owner.kind)
    cr_dict.setdefault("apiVersion", config.owner.api_version)
    metadata = cr_dict.setdefault("metadata", {})
    metadata.setdefault("name", name)
    metadata.setdefault("namespace", namespace)
    metadata.setdefault("uid", uid)
    spec = cr_dict.setdefault("spec", {})
    if size is not None:
        spec.setdefault("size", size)
    if title is not None:
        spec.setdefault("title", title)
    return cr_dict


def setup_spec(**kwargs) -> OwningSpec:
    return OwningSpec.from_manifest(setup_cr(**kwargs))


def owner_key(name=TEST_INSTANCE_NAME, namespace=TEST_NAMESPACE) -> OwnerKey:
    return OwnerKey(namespace=namespace, name=name)


def make_deployment(
    name: str,
    replicas: int,
    ready_replicas: Optional[int] = None,
    namespace: str = TEST_NAMESPACE,
) -> dict:
    """Make a bare workload. The status is only set when ready_replicas is
    given, like a workload the cluster has not reported on yet.
    """
    deployment = {
        "apiVersion": constants.DEPLOYMENT_API_VERSION,
        "kind": constants.DEPLOYMENT_KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"replicas": replicas},
    }
    if ready_replicas is not None:
        deployment["status"] = {"replicas": replicas, "readyReplicas": ready_replicas}
    return deployment


## Config ######################################################################


@contextmanager
def library_config(**overrides):
    """Override top level library config keys for the duration of the block.
    Dict values are wrapped so attribute access keeps working.
    """
    wrapped = {
        key: aconfig.Config(val, override_env_vars=False)
        if isinstance(val, dict)
        else val
        for key, val in overrides.items()
    }
    with mock.patch.dict(config_detail_dict, wrapped):
        yield


## Failure injection ###########################################################


def _is_exception(val) -> bool:
    return isinstance(val, BaseException) or (
        isinstance(val, type) and issubclass(val, BaseException)
    )


def get_failable_method(fail_flag, method, failure_return=None):
    """Wrap method so that it fails according to fail_flag:

    * an exception type or instance is raised on every call
    * a callable is called first and a non-None result replaces the real call
    * any other truthy value makes every call return failure_return
    * a falsy value leaves method alone
    """
    if _is_exception(fail_flag):

        def failable_method(*_, **__):
            log.debug4("Raising %s from %s", fail_flag, method)
            raise fail_flag

    elif callable(fail_flag):

        def failable_method(*args, **kwargs):
            override = fail_flag()
            if override is None:
                return method(*args, **kwargs)
            log.debug4("Returning override %s from %s", override, method)
            return override

    elif fail_flag:

        def failable_method(*_, **__):
            return failure_return

    else:
        failable_method = method
    return failable_method


class FailOnce:
    """Fail flag that only fails on one call, the first unless told otherwise.
    Exception values are raised and anything else is returned.
    """

    def __init__(self, fail_val, fail_number=1):
        self.fail_val = fail_val
        self.fail_number = fail_number
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls != self.fail_number:
            return None
        log.debug("Failing call %d with %s", self.calls, self.fail_val)
        if isinstance(self.fail_val, type) and _is_exception(self.fail_val):
            raise self.fail_val(f"Injected failure on call {self.calls}")
        if _is_exception(self.fail_val):
            raise self.fail_val
        return self.fail_val


## Cluster store ###############################################################


class MockClusterStore(DryRunClusterStore):
    """A DryRunClusterStore whose operations are mock.Mocks, so tests can count
    calls and inject failures per operation
    """

    MUTATING_METHODS = [
        "create_object",
        "update_object",
        "update_object_status",
        "delete_object",
    ]

    def __init__(
        self,
        get_state_fail=False,
        create_fail=False,
        update_fail=False,
        update_status_fail=False,
        delete_fail=False,
        resources: Optional[List[dict]] = None,
    ):
        super().__init__(resources=resources)
        fail_flags = {
            "get_object_current_state": get_state_fail,
            "create_object": create_fail,
            "update_object": update_fail,
            "update_object_status": update_status_fail,
            "delete_object": delete_fail,
        }
        for method_name, fail_flag in fail_flags.items():
            real_method = getattr(super(), method_name)
            setattr(
                self,
                method_name,
                mock.Mock(side_effect=get_failable_method(fail_flag, real_method)),
            )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE, api_version=None):
        """Read an object without counting the call or tripping a failure"""
        return DryRunClusterStore.get_object_current_state(
            self, kind, name, namespace, api_version
        )

    def has_obj(self, *args, **kwargs) -> bool:
        return self.get_obj(*args, **kwargs) is not None

    def mutation_count(self) -> int:
        return sum(getattr(self, name).call_count for name in self.MUTATING_METHODS)

    def reset_mocks(self):
        for name in ["get_object_current_state"] + self.MUTATING_METHODS:
            getattr(self, name).reset_mock()

    def set_ready(self, name, ready_replicas, namespace=TEST_NAMESPACE):
        """Play the workload controller by reporting ready replicas"""
        current = self.get_obj(constants.DEPLOYMENT_KIND, name, namespace)
        self.set_observed_status(
            kind=constants.DEPLOYMENT_KIND,
            name=name,
            namespace=namespace,
            status={
                "replicas": current["spec"]["replicas"],
                "readyReplicas": ready_replicas,
            },
        )
