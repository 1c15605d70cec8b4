"""Kubernetes resource kinds handled by backup and restore."""

from __future__ import annotations

from dataclasses import dataclass

STRIMZI_GROUP = "kafka.strimzi.io"
STRIMZI_VERSION = "v1beta2"

CLUSTER_LABEL = "strimzi.io/cluster"
PAUSE_ANNOTATION = "strimzi.io/pause-reconciliation"
LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"


@dataclass(frozen=True)
class ResourceKind:
    """Identifies a Kubernetes resource type for the platform client.

    Attributes:
        kind: Resource kind (e.g. "KafkaTopic")
        group: API group, empty for the core API
        version: API version within the group
        plural: Plural resource name used in API paths
    """

    kind: str
    group: str
    version: str
    plural: str

    @property
    def api_version(self) -> str:
        """apiVersion field value (e.g. "kafka.strimzi.io/v1beta2" or "v1")."""
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @property
    def is_core(self) -> bool:
        return not self.group

    @property
    def list_kind(self) -> str:
        return f"{self.kind}List"

    def __str__(self) -> str:
        return self.kind


KAFKA = ResourceKind("Kafka", STRIMZI_GROUP, STRIMZI_VERSION, "kafkas")
KAFKA_NODE_POOL = ResourceKind("KafkaNodePool", STRIMZI_GROUP, STRIMZI_VERSION, "kafkanodepools")
KAFKA_TOPIC = ResourceKind("KafkaTopic", STRIMZI_GROUP, STRIMZI_VERSION, "kafkatopics")
KAFKA_USER = ResourceKind("KafkaUser", STRIMZI_GROUP, STRIMZI_VERSION, "kafkausers")
SECRET = ResourceKind("Secret", "", "v1", "secrets")


def cluster_selector(cluster_name: str) -> str:
    """Label selector matching resources that belong to a Kafka cluster."""
    return f"{CLUSTER_LABEL}={cluster_name}"


def ca_secret_selector(cluster_name: str) -> str:
    """Label selector matching the cluster and clients CA Secrets."""
    return f"strimzi.io/component-type=certificate-authority,{CLUSTER_LABEL}={cluster_name}"


def user_secret_selector(cluster_name: str) -> str:
    """Label selector matching Secrets generated for KafkaUsers."""
    return f"strimzi.io/kind=KafkaUser,{CLUSTER_LABEL}={cluster_name}"
