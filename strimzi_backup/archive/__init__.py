"""Backup archive format: concatenated, independently compressed gzip members.

Classes:
    ArchiveWriter: Appends named members to a new archive file
    ArchiveReader: Reads members back as a lazy, forward-only sequence
    ArchiveExporter: Unpacks members into individual files
    Member: One decoded archive member
"""

from __future__ import annotations

from .exporter import ArchiveExporter
from .reader import ArchiveReader, Member
from .writer import ArchiveWriter

__all__ = [
    "ArchiveExporter",
    "ArchiveReader",
    "ArchiveWriter",
    "Member",
]
