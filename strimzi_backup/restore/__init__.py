"""Restore of Strimzi-managed Kafka clusters from a backup archive."""

from __future__ import annotations

from .restorer import DEFAULT_TIMEOUT_MS, KafkaRestorer
from .waiter import ConditionWaiter

__all__ = ["DEFAULT_TIMEOUT_MS", "ConditionWaiter", "KafkaRestorer"]
