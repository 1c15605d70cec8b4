"""Backup orchestrator for Strimzi-managed Kafka clusters.

Reads the Kafka resource and its dependent collections in a fixed order and
writes each collection as one member of a new archive file.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..archive.writer import ArchiveWriter
from ..models.archive_member import MemberKind
from ..models.operation import Operation, OperationType
from ..models.resource_kind import (
    KAFKA,
    KAFKA_NODE_POOL,
    KAFKA_TOPIC,
    KAFKA_USER,
    SECRET,
    ResourceKind,
    ca_secret_selector,
    cluster_selector,
    user_secret_selector,
)
from ..platform.client import PlatformClient
from .metadata import MetadataCleanser

logger = logging.getLogger(__name__)


def default_backup_filename(now: Optional[datetime] = None) -> str:
    """Build the default archive name, e.g. backup-2025-01-31-12-00-00.gz."""
    now = now or datetime.now()
    return f"backup-{now.strftime('%Y-%m-%d-%H-%M-%S')}.gz"


def to_yaml(resource: dict[str, Any]) -> bytes:
    """Serialize a resource or list object to UTF-8 YAML."""
    return yaml.safe_dump(resource, default_flow_style=False, sort_keys=False, allow_unicode=True).encode("utf-8")


class KafkaBackuper:
    """Backup orchestrator.

    Owns one ArchiveWriter and uses the platform client handle passed in.
    Collections are written in canonical order: Kafka, node pools, CA secrets,
    topics, users, user secrets.

    Attributes:
        client: Platform client handle
        namespace: Namespace of the Kafka cluster
        name: Name of the Kafka cluster
        archive_path: Path of the archive to create
        cleanse_metadata: Whether to cleanse metadata before writing
        cleanser: Metadata cleansing policy
    """

    def __init__(
        self,
        client: PlatformClient,
        namespace: str,
        name: str,
        archive_path: Union[str, Path],
        cleanse_metadata: bool = True,
        cleanser: Optional[MetadataCleanser] = None,
    ) -> None:
        self.client = client
        self.namespace = namespace
        self.name = name
        self.archive_path = Path(archive_path)
        self.cleanse_metadata = cleanse_metadata
        self.cleanser = cleanser or MetadataCleanser()
        self.writer = ArchiveWriter(self.archive_path)
        self.operation = Operation(
            operation_type=OperationType.BACKUP,
            cluster_name=name,
            namespace=namespace,
            archive_path=str(self.archive_path),
        )

    def run(self, skip_ca_secrets: bool = False, skip_user_secrets: bool = False) -> Operation:
        """Back up the whole cluster.

        The archive is created first, so an existing file fails the run before
        any API call. Any failure discards the partially written archive.

        Args:
            skip_ca_secrets: Do not back up the CA Secrets
            skip_user_secrets: Do not back up the KafkaUser Secrets

        Returns:
            Completed backup Operation

        Raises:
            ArchiveError: If the archive cannot be created or written
            PlatformAPIError: If any API request fails
        """
        logger.info(f"Starting backup of Kafka cluster {self.name} in namespace {self.namespace}")

        try:
            self.writer.open()
            self.backup_kafka()
            self.backup_node_pools()
            if skip_ca_secrets:
                logger.info("Skipping backup of CA Secrets")
            else:
                self.backup_ca_secrets()
            self.backup_topics()
            self.backup_users()
            if skip_user_secrets:
                logger.info("Skipping backup of User Secrets")
            else:
                self.backup_user_secrets()
            self.writer.close()
        except Exception as e:
            self.operation.abort(e)
            logger.error(f"Backup of Kafka cluster {self.name} failed: {e}")
            self.discard()
            raise

        self.operation.complete()
        logger.info(f"Backup of Kafka cluster {self.name} is complete: {self.archive_path}")
        return self.operation

    def backup_kafka(self) -> None:
        """Back up the Kafka resource. A missing cluster is fatal."""
        logger.info(f"Backing up the Kafka resource {self.name}")

        resource = self.client.get(KAFKA, self.namespace, self.name)
        if self.cleanse_metadata:
            resource = self.cleanser.cleanse(resource)

        self._write_member(MemberKind.KAFKA, resource)
        self.operation.record_member(MemberKind.KAFKA.filename, 1)
        logger.info(f"Backup of the Kafka resource {self.name} complete")

    def backup_node_pools(self) -> None:
        self._backup_list(MemberKind.NODE_POOLS, KAFKA_NODE_POOL, cluster_selector(self.name))

    def backup_ca_secrets(self) -> None:
        self._backup_list(MemberKind.CA_SECRETS, SECRET, ca_secret_selector(self.name))

    def backup_topics(self) -> None:
        self._backup_list(MemberKind.TOPICS, KAFKA_TOPIC, cluster_selector(self.name))

    def backup_users(self) -> None:
        self._backup_list(MemberKind.USERS, KAFKA_USER, cluster_selector(self.name))

    def backup_user_secrets(self) -> None:
        self._backup_list(MemberKind.USER_SECRETS, SECRET, user_secret_selector(self.name))

    def discard(self) -> None:
        """Remove the archive file instead of leaving a truncated one on disk."""
        self.writer.discard()

    def _backup_list(self, member: MemberKind, kind: ResourceKind, label_selector: str) -> None:
        logger.info(f"Backing up the {kind} resources with label selector {label_selector}")

        resources = self.client.list(kind, self.namespace, label_selector=label_selector)
        items = resources.get("items") or []
        for item in items:
            # Core list endpoints omit apiVersion and kind on items
            item.setdefault("apiVersion", kind.api_version)
            item.setdefault("kind", kind.kind)

        if self.cleanse_metadata:
            resources = self.cleanser.cleanse_list(resources)

        self._write_member(member, resources)
        self.operation.record_member(member.filename, len(items))
        logger.info(f"Backup of {len(items)} {kind} resource(s) complete")

    def _write_member(self, member: MemberKind, resource: dict[str, Any]) -> None:
        self.writer.add_member(member.filename, member.comment, to_yaml(resource), datetime.now(timezone.utc))
