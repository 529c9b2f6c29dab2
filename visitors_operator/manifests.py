"""
The ManifestBuilder turns an OwningSpec into the desired-state manifests of
each tier. Every function here is pure: identical specs give identical
manifests, which is what lets repeated reconciliations converge without
creating duplicates.
"""

# Standard
from typing import Dict, Optional

# First Party
import aconfig
import alog

# Local
from . import config, constants
from .cluster_store.owner_references import set_owner_reference
from .exceptions import assert_config
from .owning_spec import OwningSpec
from .tiers import Tier

log = alog.use_channel("MNFST")


class ManifestBuilder:
    """Builds the secret, workload, and service manifests for each tier.

    The fixed parts of the manifests (images, ports, the persistence tier's
    singleton names and credentials) are injected as a config section so that
    nothing here depends on hidden globals.
    """

    def __init__(self, manifest_config: Optional[aconfig.Config] = None):
        """
        Args:
            manifest_config:  Optional[aconfig.Config]
                The manifests section of the library config. Defaults to the
                loaded library config.
        """
        self._config = manifest_config or config.manifests

    ## Naming ##################################################################

    def labels(self, tier: Tier, spec: OwningSpec) -> Dict[str, str]:
        """The label set used as both the service selector and the lookup key
        for a tier's resources
        """
        return {
            constants.LABEL_APP: self._config.app_label,
            constants.LABEL_OWNER: spec.name,
            constants.LABEL_TIER: tier.value,
        }

    def workload_name(self, tier: Tier, spec: OwningSpec) -> str:
        if tier == Tier.PERSISTENCE:
            return self._config.persistence.workload_name
        return f"{spec.name}-{tier.value}"

    def service_name(self, tier: Tier, spec: OwningSpec) -> str:
        if tier == Tier.PERSISTENCE:
            return self._config.persistence.service_name
        return f"{spec.name}-{tier.value}-service"

    def secret_name(self, tier: Tier, spec: OwningSpec) -> str:  # pylint: disable=unused-argument
        assert_config(tier == Tier.PERSISTENCE, f"No secret for the {tier.value} tier")
        return self._config.persistence.secret_name

    def image(self, tier: Tier) -> str:
        return self._tier_config(tier).image

    def desired_replicas(self, tier: Tier, spec: OwningSpec) -> int:
        """The replica count each tier's workload should run. This is also the
        number of ready replicas that makes the tier ready.
        """
        if tier == Tier.BACKEND:
            return spec.size
        return 1

    ## Manifests ###############################################################

    def secret(self, tier: Tier, spec: OwningSpec) -> dict:
        """The credentials shared by the persistence tier and its clients"""
        persistence = self._config.persistence
        manifest = {
            "apiVersion": constants.CORE_API_VERSION,
            "kind": constants.SECRET_KIND,
            "metadata": self._metadata(self.secret_name(tier, spec), tier, spec),
            "type": "Opaque",
            "stringData": {
                "username": persistence.username,
                "password": persistence.password,
            },
        }
        return self._owned(manifest, spec)

    def workload(self, tier: Tier, spec: OwningSpec) -> dict:
        labels = self.labels(tier, spec)
        tier_config = self._tier_config(tier)
        container = {
            "name": tier_config.container_name,
            "image": tier_config.image,
            "ports": [
                {
                    "name": tier_config.container_name,
                    "containerPort": tier_config.port,
                }
            ],
            "env": self._env(tier, spec),
        }
        if tier != Tier.PERSISTENCE:
            container["imagePullPolicy"] = "Always"

        manifest = {
            "apiVersion": constants.DEPLOYMENT_API_VERSION,
            "kind": constants.DEPLOYMENT_KIND,
            "metadata": self._metadata(self.workload_name(tier, spec), tier, spec),
            "spec": {
                "replicas": self.desired_replicas(tier, spec),
                "selector": {"matchLabels": labels},
                "template": {
                    "metadata": {"labels": dict(labels)},
                    "spec": {"containers": [container]},
                },
            },
        }
        return self._owned(manifest, spec)

    def service(self, tier: Tier, spec: OwningSpec) -> dict:
        tier_config = self._tier_config(tier)
        port = {"port": tier_config.port}
        service_spec = {"selector": self.labels(tier, spec), "ports": [port]}

        # The database is only reached from inside the cluster. The web tiers
        # are exposed on each node.
        if tier == Tier.PERSISTENCE:
            service_spec["clusterIP"] = "None"
        else:
            port["targetPort"] = tier_config.port
            if tier_config.get("node_port") is not None:
                port["nodePort"] = tier_config.node_port
            service_spec["type"] = "NodePort"

        manifest = {
            "apiVersion": constants.CORE_API_VERSION,
            "kind": constants.SERVICE_KIND,
            "metadata": self._metadata(self.service_name(tier, spec), tier, spec),
            "spec": service_spec,
        }
        return self._owned(manifest, spec)

    ## Implementation Details ##################################################

    def _tier_config(self, tier: Tier) -> aconfig.Config:
        return self._config[tier.value]

    def _metadata(self, name: str, tier: Tier, spec: OwningSpec) -> dict:
        return {
            "name": name,
            "namespace": spec.namespace,
            "labels": self.labels(tier, spec),
        }

    @staticmethod
    def _owned(manifest: dict, spec: OwningSpec) -> dict:
        set_owner_reference(spec, manifest)
        log.debug4("Built manifest: %s", manifest)
        return manifest

    def _secret_ref(self, spec: OwningSpec, key: str) -> dict:
        return {
            "secretKeyRef": {
                "name": self.secret_name(Tier.PERSISTENCE, spec),
                "key": key,
            }
        }

    def _env(self, tier: Tier, spec: OwningSpec) -> list:
        persistence = self._config.persistence
        if tier == Tier.PERSISTENCE:
            return [
                {"name": "MYSQL_ROOT_PASSWORD", "value": persistence.root_password},
                {"name": "MYSQL_DATABASE", "value": persistence.database},
                {"name": "MYSQL_USER", "valueFrom": self._secret_ref(spec, "username")},
                {
                    "name": "MYSQL_PASSWORD",
                    "valueFrom": self._secret_ref(spec, "password"),
                },
            ]
        if tier == Tier.BACKEND:
            return [
                {"name": "MYSQL_DATABASE", "value": persistence.database},
                {
                    "name": "MYSQL_SERVICE_HOST",
                    "value": self.service_name(Tier.PERSISTENCE, spec),
                },
                {
                    "name": "MYSQL_USERNAME",
                    "valueFrom": self._secret_ref(spec, "username"),
                },
                {
                    "name": "MYSQL_PASSWORD",
                    "valueFrom": self._secret_ref(spec, "password"),
                },
            ]
        return [{"name": "REACT_APP_TITLE", "value": spec.title}]
