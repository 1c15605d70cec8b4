"""Restore orchestrator for Strimzi-managed Kafka clusters.

Replays a backup archive into a target namespace under a target cluster name.
The Kafka resource is created with reconciliation paused so the operator does
not act on a half-restored cluster; it is unpaused once every member has been
replayed.
"""

from __future__ import annotations

import copy
import functools
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml

from ..archive.reader import ArchiveReader, Member
from ..backup.metadata import MetadataCleanser
from ..errors import ArchiveError, UnknownArchiveMemberError
from ..models.archive_member import MemberKind
from ..models.operation import Operation, OperationType
from ..models.reconciliation import ReconciliationState, get_reconciliation_state
from ..models.resource_kind import CLUSTER_LABEL, KAFKA, PAUSE_ANNOTATION, ResourceKind
from ..platform.client import PlatformClient
from .waiter import ConditionWaiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 300000


def load_yaml(member: Member) -> dict[str, Any]:
    """Parse a member payload as a single YAML document."""
    try:
        document = yaml.safe_load(member.text)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ArchiveError(f"Archive member {member.name!r} is not valid YAML: {e}") from e

    if not isinstance(document, dict):
        raise ArchiveError(f"Archive member {member.name!r} does not contain a resource")
    return document


def _set_annotation(resource: dict[str, Any], key: str, value: str) -> None:
    metadata = resource.setdefault("metadata", {})
    annotations = metadata.get("annotations") or {}
    annotations[key] = value
    metadata["annotations"] = annotations


class KafkaRestorer:
    """Restore orchestrator.

    Walks the archive member by member and dispatches on the member name.
    The first failing step aborts the run; resources already created are left
    in place.

    Attributes:
        client: Platform client handle
        namespace: Target namespace
        name: Target Kafka cluster name
        archive_path: Path of the archive to restore
        timeout_ms: Deadline of each wait for the operator
        waiter: Condition waiter used for the pause and readiness waits
        cleanser: Metadata cleansing policy applied before every create
    """

    def __init__(
        self,
        client: PlatformClient,
        namespace: str,
        name: str,
        archive_path: Union[str, Path],
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        waiter: Optional[ConditionWaiter] = None,
        cleanser: Optional[MetadataCleanser] = None,
    ) -> None:
        self.client = client
        self.namespace = namespace
        self.name = name
        self.archive_path = Path(archive_path)
        self.timeout_ms = timeout_ms
        self.waiter = waiter or ConditionWaiter(client)
        # Create rejects resourceVersion, so server fields always go on restore
        self.cleanser = cleanser or MetadataCleanser(clear_server_fields=True)
        self.operation = Operation(
            operation_type=OperationType.RESTORE,
            cluster_name=name,
            namespace=namespace,
            archive_path=str(self.archive_path),
        )
        self._handlers: dict[MemberKind, Callable[[Member], int]] = {MemberKind.KAFKA: self._restore_kafka_member}
        for member_kind in MemberKind:
            if member_kind.is_list:
                self._handlers[member_kind] = functools.partial(self._restore_list_member, member_kind.resource_kind)

    def restore(self) -> Operation:
        """Restore every member of the archive, then unpause the cluster.

        Returns:
            Completed restore Operation

        Raises:
            ArchiveError: If the archive cannot be read or has an unknown member
            PlatformAPIError: If any API request fails
            WaitTimeoutError: If the operator does not confirm pause or readiness
        """
        logger.info(
            f"Starting restore of {self.archive_path} as Kafka cluster {self.name} in namespace {self.namespace}"
        )

        try:
            with ArchiveReader(self.archive_path) as reader:
                for member in reader:
                    self.restore_member(member)

            logger.info("Restoring data completed")
            self._unpause_and_wait_for_readiness()
        except Exception as e:
            self.operation.abort(e)
            logger.error(f"Restore of Kafka cluster {self.name} failed: {e}")
            raise

        self.operation.complete()
        logger.info(f"Restore of Kafka cluster {self.name} is complete")
        return self.operation

    def restore_member(self, member: Member) -> None:
        """Dispatch one archive member to its handler.

        Raises:
            UnknownArchiveMemberError: If the member name is not a known collection
        """
        member_kind = MemberKind.parse(member.name)
        handler = self._handlers.get(member_kind)
        if handler is None:
            logger.error(
                f"Unknown resources found in backup: name={member.name!r} comment={member.comment!r} "
                f"mod_time={member.mod_time}"
            )
            raise UnknownArchiveMemberError(member.name)

        logger.info(f"Restoring {member_kind.comment}")
        count = handler(member)
        self.operation.record_member(member.name, count)
        logger.info(f"{member_kind.comment} restored")

    def restore_kafka(self, backup: dict[str, Any]) -> dict[str, Any]:
        """Create the Kafka resource paused, then restore its cluster ID.

        Args:
            backup: Kafka resource as stored in the archive

        Returns:
            The Kafka resource after the pause was confirmed
        """
        cluster_id = (backup.get("status") or {}).get("clusterId")

        kafka = self.cleanser.cleanse(backup)
        metadata = kafka.setdefault("metadata", {})
        metadata["namespace"] = self.namespace
        metadata["name"] = self.name
        _set_annotation(kafka, PAUSE_ANNOTATION, "true")

        self.client.create(KAFKA, self.namespace, kafka)
        paused = self.waiter.wait_until_paused(self.namespace, self.name, self.timeout_ms)

        if not cluster_id:
            logger.warning("Cannot restore Kafka Cluster ID as it is not present in the original Kafka resource")
            return paused

        logger.info(f"Restoring Kafka Cluster ID {cluster_id}")
        current = copy.deepcopy(self.client.get(KAFKA, self.namespace, self.name))
        status = current.get("status") or {}
        status["clusterId"] = cluster_id
        current["status"] = status
        return self.client.update_status(KAFKA, self.namespace, self.name, current)

    def restore_list(self, kind: ResourceKind, resources: dict[str, Any]) -> int:
        """Create every item of a list object in the target namespace.

        Items are re-labelled to the target cluster. The first failing create
        aborts the list.

        Returns:
            Number of resources created
        """
        items = resources.get("items") or []
        for item in items:
            resource = self.cleanser.cleanse(item)
            resource.setdefault("apiVersion", kind.api_version)
            resource.setdefault("kind", kind.kind)

            metadata = resource.setdefault("metadata", {})
            metadata["namespace"] = self.namespace
            labels = metadata.get("labels") or {}
            labels[CLUSTER_LABEL] = self.name
            metadata["labels"] = labels

            logger.info(f"Restoring {kind} {metadata.get('name')}")
            self.client.create(kind, self.namespace, resource)

        return len(items)

    def _restore_kafka_member(self, member: Member) -> int:
        self.restore_kafka(load_yaml(member))
        return 1

    def _restore_list_member(self, kind: ResourceKind, member: Member) -> int:
        return self.restore_list(kind, load_yaml(member))

    def _unpause_and_wait_for_readiness(self) -> None:
        kafka = self.client.get(KAFKA, self.namespace, self.name)
        state = get_reconciliation_state(kafka)

        if state == ReconciliationState.PAUSED:
            logger.info(f"Unpausing the Kafka cluster {self.name}")
            unpaused = copy.deepcopy(kafka)
            _set_annotation(unpaused, PAUSE_ANNOTATION, "false")
            self.client.update(KAFKA, self.namespace, self.name, unpaused)
        elif state == ReconciliationState.READY:
            logger.warning(f"The Kafka cluster {self.name} is already ready and does not need to be unpaused")
            return
        else:
            logger.warning(f"The Kafka cluster {self.name} is not paused, but it is not ready. Waiting for it to get ready.")

        self.waiter.wait_until_ready(self.namespace, self.name, self.timeout_ms)
        logger.info(f"The Kafka cluster {self.name} is ready")
