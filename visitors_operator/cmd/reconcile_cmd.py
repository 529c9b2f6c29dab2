"""
Run reconciliations of a single VisitorsApp from the command line
"""

# Standard
from typing import List, Optional
import argparse
import os

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config, constants
from ..cluster_store import ClusterStoreBase, DryRunClusterStore, OpenshiftClusterStore
from ..owning_spec import OwnerKey
from ..reconcile import ReconciliationEngine
from .base import CmdBase

log = alog.use_channel("MAIN")


class ReconcileCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("reconcile", help=__doc__)
        runtime_args = parser.add_argument_group("Runtime Configuration")
        runtime_args.add_argument(
            "--namespace",
            "-n",
            default=None,
            help="Namespace of the VisitorsApp to reconcile",
        )
        runtime_args.add_argument(
            "--name",
            default=None,
            help="Name of the VisitorsApp to reconcile",
        )
        runtime_args.add_argument(
            "--cr",
            "-c",
            default=None,
            help="(dry run) A VisitorsApp manifest yaml to create before reconciling",
        )
        runtime_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="(dry run) Path to a directory of yaml files that should exist in the cluster",
        )
        runtime_args.add_argument(
            "--max_passes",
            type=int,
            default=1,
            help="(dry run) Keep reconciling until CONTINUE or this many passes",
        )
        runtime_args.add_argument(
            "--simulate_ready",
            action="store_true",
            default=False,
            help="(dry run) Mark every workload ready after each pass",
        )
        return parser

    def cmd(self, args: argparse.Namespace) -> int:
        self._check_args(args)
        cr_manifest = self._parse_cr(args.cr)
        owner_key = self._owner_key(args, cr_manifest)
        cluster_store = self._setup_cluster_store(args.resource_dir, cr_manifest)
        engine = ReconciliationEngine(cluster_store)

        verdict = None
        for reconcile_pass in range(1, args.max_passes + 1):
            verdict = engine.reconcile(owner_key)
            print(f"Pass {reconcile_pass}: {verdict}")
            if verdict.is_continue or verdict.is_error:
                break
            if args.simulate_ready:
                self._mark_workloads_ready(cluster_store, owner_key.namespace)

        log.info("Final verdict for %s: %s", owner_key, verdict)
        return 1 if verdict.is_error else 0

    ## Impl ##

    @staticmethod
    def _check_args(args: argparse.Namespace):
        dry_run_only = {
            "--cr": args.cr is not None,
            "--resource_dir": args.resource_dir is not None,
            "--max_passes": args.max_passes != 1,
            "--simulate_ready": args.simulate_ready,
        }
        for flag, is_set in dry_run_only.items():
            assert config.dry_run or not is_set, f"{flag} needs --dry_run"
        assert args.cr is None or os.path.isfile(args.cr), f"No CR file at {args.cr}"
        assert args.resource_dir is None or os.path.isdir(
            args.resource_dir
        ), f"No resource directory at {args.resource_dir}"
        assert args.max_passes >= 1, "--max_passes must be at least 1"

    @staticmethod
    def _parse_cr(cr_path: Optional[str]) -> Optional[dict]:
        if cr_path is None:
            return None
        log.info("Loading CR [%s]", cr_path)
        with open(cr_path, encoding="utf-8") as handle:
            cr_manifest = yaml.safe_load(handle)
        assert isinstance(cr_manifest, dict), f"CR file {cr_path} must hold a mapping"
        cr_manifest.setdefault("metadata", {}).setdefault(
            "namespace", constants.DEFAULT_NAMESPACE
        )
        cr_manifest.setdefault("kind", config.owner.kind)
        cr_manifest.setdefault("apiVersion", config.owner.api_version)
        return cr_manifest

    @staticmethod
    def _owner_key(args: argparse.Namespace, cr_manifest: Optional[dict]) -> OwnerKey:
        metadata = (cr_manifest or {}).get("metadata", {})
        name = args.name or metadata.get("name")
        namespace = (
            args.namespace or metadata.get("namespace") or constants.DEFAULT_NAMESPACE
        )
        assert name, "Must give --name or a --cr with a metadata.name"
        return OwnerKey(namespace=namespace, name=name)

    @staticmethod
    def _parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
        """Load every document of every yaml file in the directory, in file name
        order
        """
        if resource_dir is None:
            return []
        yaml_files = [
            os.path.join(resource_dir, fname)
            for fname in sorted(os.listdir(resource_dir))
            if os.path.splitext(fname)[1] in (".yaml", ".yml")
        ]
        resources = []
        for yaml_file in yaml_files:
            log.debug3("Loading resources from %s", yaml_file)
            with open(yaml_file, encoding="utf-8") as handle:
                resources.extend(doc for doc in yaml.safe_load_all(handle) if doc)
        return resources

    @classmethod
    def _setup_cluster_store(
        cls, resource_dir: Optional[str], cr_manifest: Optional[dict]
    ) -> ClusterStoreBase:
        if not config.dry_run:
            log.info("Running against the live cluster")
            return OpenshiftClusterStore()

        log.info("Running DRY RUN")
        resources = cls._parse_resource_dir(resource_dir)
        cluster_store = DryRunClusterStore(resources=resources)
        if cr_manifest is not None:
            cluster_store.create_object(cr_manifest)
        return cluster_store

    @staticmethod
    def _mark_workloads_ready(cluster_store: DryRunClusterStore, namespace: str):
        """Play the part of the cluster's workload controller"""
        for obj in cluster_store.list_objects(namespace=namespace):
            if obj.get("kind") != constants.DEPLOYMENT_KIND:
                continue
            replicas = obj.get("spec", {}).get("replicas", 1)
            log.debug("Marking %s ready with %d replicas", obj["metadata"]["name"], replicas)
            cluster_store.set_observed_status(
                kind=obj["kind"],
                name=obj["metadata"]["name"],
                namespace=namespace,
                api_version=obj.get("apiVersion"),
                status={"replicas": replicas, "readyReplicas": replicas},
            )
