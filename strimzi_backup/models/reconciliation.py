"""Reconciliation state of a Kafka resource, derived from its status conditions."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ReconciliationState(Enum):
    """Derived reconciliation state. Never stored, always computed from status."""

    PAUSED = "paused"
    READY = "ready"
    NOT_READY = "not-ready"


def _has_true_condition(resource: dict[str, Any], condition_type: str) -> bool:
    status = resource.get("status") or {}
    for condition in status.get("conditions") or []:
        if condition.get("type") == condition_type and condition.get("status") == "True":
            return True
    return False


def is_ready(resource: dict[str, Any]) -> bool:
    """Check the Ready condition is True and the status reflects the latest spec.

    Args:
        resource: Kafka resource as a dictionary

    Returns:
        True if Ready=True and status.observedGeneration == metadata.generation
    """
    if not _has_true_condition(resource, "Ready"):
        return False

    observed = (resource.get("status") or {}).get("observedGeneration")
    generation = (resource.get("metadata") or {}).get("generation")
    return observed == generation


def is_reconciliation_paused(resource: dict[str, Any]) -> bool:
    """Check the operator has confirmed the pause request."""
    return _has_true_condition(resource, "ReconciliationPaused")


def get_reconciliation_state(resource: dict[str, Any]) -> ReconciliationState:
    """Compute the reconciliation state. Paused wins over ready."""
    if is_reconciliation_paused(resource):
        return ReconciliationState.PAUSED
    if is_ready(resource):
        return ReconciliationState.READY
    return ReconciliationState.NOT_READY
