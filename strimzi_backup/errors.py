"""Error taxonomy for backup, restore and export runs.

Every component raises one of these up to the orchestrator, which logs the
failing step and re-raises. The CLI maps them to a non-zero exit code.
"""

from __future__ import annotations

from typing import Optional


class StrimziBackupError(Exception):
    """Base class for all errors raised by strimzi-backup."""


class ConfigurationError(StrimziBackupError):
    """Required identity, path or connection setting is missing or invalid."""


class ArchiveError(StrimziBackupError):
    """Archive file could not be opened, parsed or written."""


class ArchiveExistsError(ArchiveError):
    """Backup target already exists. Archives are never overwritten."""


class UnknownArchiveMemberError(ArchiveError):
    """Archive contains a member whose name is not a known resource collection."""

    def __init__(self, member_name: str) -> None:
        super().__init__(f"Unknown resources {member_name!r} found in backup")
        self.member_name = member_name


class PlatformAPIError(StrimziBackupError):
    """Kubernetes API request failed.

    Attributes:
        status: HTTP status code returned by the API server (if any)
        reason: Kubernetes status reason (e.g. "AlreadyExists", "Conflict")
    """

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class ResourceNotFoundError(PlatformAPIError):
    """Requested resource does not exist."""


class ResourceAlreadyExistsError(PlatformAPIError):
    """Resource being created already exists in the target namespace."""


class ResourceConflictError(PlatformAPIError):
    """Update was rejected because the resource changed in the meantime."""


class WaitTimeoutError(StrimziBackupError):
    """Watched resource did not reach the expected condition before the deadline.

    Kept apart from PlatformAPIError so callers can tell "the platform never
    converged" from "the request was rejected".
    """

    def __init__(self, message: str, timeout_ms: int) -> None:
        super().__init__(message)
        self.timeout_ms = timeout_ms


class WaitCancelledError(StrimziBackupError):
    """Wait was cancelled before the condition was met."""
