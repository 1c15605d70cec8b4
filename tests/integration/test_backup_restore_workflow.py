"""Integration tests for the backup → restore → export workflow.

Runs the real archive, backup and restore code against the in-memory platform
client, which plays both the API server and the Cluster Operator.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from strimzi_backup.archive.exporter import ArchiveExporter
from strimzi_backup.backup.backuper import KafkaBackuper
from strimzi_backup.backup.metadata import MetadataCleanser
from strimzi_backup.models.operation import OperationStatus
from strimzi_backup.models.resource_kind import (
    CLUSTER_LABEL,
    KAFKA,
    KAFKA_NODE_POOL,
    KAFKA_TOPIC,
    KAFKA_USER,
    SECRET,
)
from strimzi_backup.restore.restorer import KafkaRestorer
from tests.fixtures.kafka import (
    create_ca_secret,
    create_kafka,
    create_node_pool,
    create_topic,
    create_user,
    create_user_secret,
)
from tests.fixtures.platform import FakePlatformClient


@pytest.fixture
def source() -> FakePlatformClient:
    """Create the source cluster to back up."""
    client = FakePlatformClient()
    client.seed(KAFKA, create_kafka())
    client.seed(KAFKA_NODE_POOL, create_node_pool("controller", roles=["controller"]))
    client.seed(KAFKA_NODE_POOL, create_node_pool("broker", roles=["broker"], replicas=5))
    client.seed(SECRET, create_ca_secret("my-cluster-cluster-ca-cert"))
    client.seed(SECRET, create_ca_secret("my-cluster-clients-ca-cert"))
    for index in range(20):
        client.seed(KAFKA_TOPIC, create_topic(f"topic-{index:02d}", partitions=index + 1))
    client.seed(KAFKA_USER, create_user("app"))
    client.seed(SECRET, create_user_secret("app"))
    return client


class TestBackupRestoreWorkflow:
    """End-to-end tests of backing up one cluster and restoring it elsewhere."""

    def test_round_trip_restores_equivalent_resources(self, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test every backed-up resource exists after restore with the same spec."""
        path = tmp_path / "backup.gz"
        backup = KafkaBackuper(source, "kafka", "my-cluster", path).run()

        target = FakePlatformClient()
        restore = KafkaRestorer(target, "kafka", "my-cluster", path, timeout_ms=2000).restore()

        assert backup.status == OperationStatus.COMPLETED
        assert restore.status == OperationStatus.COMPLETED
        assert restore.members == backup.members
        assert restore.resource_count == backup.resource_count

        for kind in (KAFKA_NODE_POOL, KAFKA_TOPIC, KAFKA_USER, SECRET):
            assert target.names(kind, "kafka") == source.names(kind, "kafka")

        for name in source.names(KAFKA_TOPIC, "kafka"):
            assert target.stored(KAFKA_TOPIC, "kafka", name)["spec"] == source.stored(KAFKA_TOPIC, "kafka", name)["spec"]

        restored_kafka = target.stored(KAFKA, "kafka", "my-cluster")
        assert restored_kafka["spec"] == source.stored(KAFKA, "kafka", "my-cluster")["spec"]
        assert restored_kafka["status"]["clusterId"] == "abc-123"

    def test_restore_under_new_name_and_namespace(self, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test a backup can be restored as a differently named cluster."""
        path = tmp_path / "backup.gz"
        KafkaBackuper(source, "kafka", "my-cluster", path).run()

        target = FakePlatformClient()
        KafkaRestorer(target, "dr", "my-cluster-dr", path, timeout_ms=2000).restore()

        assert target.stored(KAFKA, "dr", "my-cluster-dr") is not None
        pool = target.stored(KAFKA_NODE_POOL, "dr", "broker")
        assert pool["metadata"]["labels"][CLUSTER_LABEL] == "my-cluster-dr"
        assert pool["spec"]["replicas"] == 5

    def test_backup_with_cleared_server_fields_restores(self, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test archives written without server fields restore the same way."""
        path = tmp_path / "backup.gz"
        KafkaBackuper(source, "kafka", "my-cluster", path, cleanser=MetadataCleanser(clear_server_fields=True)).run()

        target = FakePlatformClient()
        operation = KafkaRestorer(target, "kafka", "my-cluster", path, timeout_ms=2000).restore()

        assert operation.status == OperationStatus.COMPLETED

    def test_export_matches_backup_contents(self, source: FakePlatformClient, tmp_path: Path) -> None:
        """Test the exported files are the YAML documents stored in the archive."""
        path = tmp_path / "backup.gz"
        KafkaBackuper(source, "kafka", "my-cluster", path).run()

        ArchiveExporter(path, tmp_path / "export").export()

        exported = sorted(p.name for p in (tmp_path / "export").iterdir())
        assert exported == sorted(
            ["kafka.yaml", "pools.yaml", "ca-secrets.yaml", "topics.yaml", "users.yaml", "user-secrets.yaml"]
        )
        topics = yaml.safe_load((tmp_path / "export" / "topics.yaml").read_text())
        assert len(topics["items"]) == 20
