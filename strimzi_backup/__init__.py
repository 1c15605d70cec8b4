"""Strimzi Backup - backup and restore of Strimzi-managed Apache Kafka clusters.

Packages:
    archive: Concatenated gzip archive writer, reader and exporter
    backup: Backup orchestration and metadata cleansing
    restore: Restore orchestration and the condition waiter
    platform: Kubernetes client wrapper and connection discovery
    cli: Typer command line interface
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
