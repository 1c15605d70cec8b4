"""Data models for archive members, resource kinds and operations."""

from __future__ import annotations

from .archive_member import MemberKind
from .operation import Operation, OperationStatus, OperationType
from .reconciliation import ReconciliationState, get_reconciliation_state, is_ready, is_reconciliation_paused
from .resource_kind import KAFKA, KAFKA_NODE_POOL, KAFKA_TOPIC, KAFKA_USER, SECRET, ResourceKind

__all__ = [
    "KAFKA",
    "KAFKA_NODE_POOL",
    "KAFKA_TOPIC",
    "KAFKA_USER",
    "SECRET",
    "MemberKind",
    "Operation",
    "OperationStatus",
    "OperationType",
    "ReconciliationState",
    "ResourceKind",
    "get_reconciliation_state",
    "is_ready",
    "is_reconciliation_paused",
]
