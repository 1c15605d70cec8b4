"""Metadata cleansing.

Normalizes the bookkeeping metadata of a resource before it is written to a
backup or replayed into a cluster. Pure transformation, no I/O.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from ..models.resource_kind import LAST_APPLIED_ANNOTATION

# Removed by every cleanse
TRACKING_FIELDS = ("ownerReferences", "managedFields")

# Assigned by the API server; removed only when clear_server_fields is set
SERVER_FIELDS = (
    "resourceVersion",
    "uid",
    "generation",
    "creationTimestamp",
    "deletionTimestamp",
    "deletionGracePeriodSeconds",
    "selfLink",
)


@dataclass(frozen=True)
class MetadataCleanser:
    """Metadata cleansing policy.

    Always drops the kubectl last-applied-configuration annotation, owner
    references and managed fields. Server-assigned fields (resourceVersion,
    uid, generation, timestamps) are dropped only when clear_server_fields is
    True.

    Attributes:
        clear_server_fields: Also remove server-assigned metadata fields
    """

    clear_server_fields: bool = False

    def cleanse(self, resource: dict[str, Any]) -> dict[str, Any]:
        """Return a cleansed deep copy of a resource.

        Args:
            resource: Resource dictionary

        Returns:
            New dictionary; the input is not modified
        """
        cleansed = copy.deepcopy(resource)
        metadata = cleansed.get("metadata")
        if not isinstance(metadata, dict):
            return cleansed

        for field_name in TRACKING_FIELDS:
            metadata.pop(field_name, None)

        annotations = metadata.get("annotations")
        if isinstance(annotations, dict):
            annotations.pop(LAST_APPLIED_ANNOTATION, None)
            if not annotations:
                del metadata["annotations"]

        if self.clear_server_fields:
            for field_name in SERVER_FIELDS:
                metadata.pop(field_name, None)

        return cleansed

    def cleanse_list(self, resource_list: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of a list object with every item cleansed."""
        cleansed = dict(resource_list)
        cleansed["items"] = [self.cleanse(item) for item in resource_list.get("items") or []]
        return cleansed


def cleanse_metadata(resource: dict[str, Any], clear_server_fields: bool = False) -> dict[str, Any]:
    """Cleanse a single resource with a one-off policy."""
    return MetadataCleanser(clear_server_fields=clear_server_fields).cleanse(resource)
