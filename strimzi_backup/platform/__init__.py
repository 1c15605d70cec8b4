"""Kubernetes platform access.

Classes:
    PlatformClient: Typed get/list/create/update/update_status/watch per resource kind
    ResourceWatch: Watch stream on a single named resource
"""

from __future__ import annotations

__all__ = [
    "PlatformClient",
    "ResourceWatch",
]

from .client import PlatformClient, ResourceWatch
