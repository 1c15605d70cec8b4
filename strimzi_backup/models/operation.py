"""Operation model.

Records one backup, restore or export run with its outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class OperationType(Enum):
    """Kind of run."""

    BACKUP = "backup"
    RESTORE = "restore"
    EXPORT = "export"


class OperationStatus(Enum):
    """Operation status with state transitions."""

    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class Operation:
    """Backup/restore operation entity.

    State transitions:
        running → completed (every step succeeded)
        running → aborted (first error, already-processed steps are kept)

    Attributes:
        operation_type: backup, restore or export
        cluster_name: Name of the Kafka cluster (target name on restore)
        namespace: Kubernetes namespace (target namespace on restore)
        archive_path: Path of the archive file
        status: Current status
        started_at: When the run started (UTC)
        completed_at: When the run reached a terminal state (optional)
        members: Archive members processed, in order
        resource_count: Number of resources written or created
        error: Error message if the run was aborted (optional)
    """

    operation_type: OperationType
    cluster_name: str
    namespace: str
    archive_path: str
    status: OperationStatus = OperationStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    members: list[str] = field(default_factory=list)
    resource_count: int = 0
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def is_finished(self) -> bool:
        return self.status != OperationStatus.RUNNING

    def record_member(self, member_name: str, resource_count: int) -> None:
        """Record a processed archive member and the number of resources in it."""
        self.members.append(member_name)
        self.resource_count += resource_count

    def complete(self) -> None:
        """Move the operation to the completed state."""
        self.status = OperationStatus.COMPLETED
        self.completed_at = datetime.now(timezone.utc)

    def abort(self, error: BaseException) -> None:
        """Move the operation to the aborted state and keep the error message."""
        self.status = OperationStatus.ABORTED
        self.error = str(error) or error.__class__.__name__
        self.completed_at = datetime.now(timezone.utc)

    def validate(self) -> bool:
        """Validate operation invariants.

        Validation rules:
            - completed_at must not be before started_at
            - aborted operations must carry an error
            - terminal operations must have completed_at

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.completed_at and self.completed_at < self.started_at:
            raise ValueError("Completion time before start time")

        if self.status == OperationStatus.ABORTED and not self.error:
            raise ValueError("Aborted operation must record an error")

        if self.is_finished and self.completed_at is None:
            raise ValueError("Finished operation must have a completion time")

        return True
