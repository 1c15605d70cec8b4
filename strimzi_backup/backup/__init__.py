"""Backup of Strimzi-managed Kafka clusters.

Classes:
    KafkaBackuper: Writes the Kafka cluster and its dependents to an archive
    MetadataCleanser: Normalizes resource metadata before it is persisted
"""

from __future__ import annotations

from .backuper import KafkaBackuper, default_backup_filename
from .metadata import MetadataCleanser, cleanse_metadata

__all__ = [
    "KafkaBackuper",
    "MetadataCleanser",
    "cleanse_metadata",
    "default_backup_filename",
]
