"""Archive writer.

Writes a backup archive as a sequence of independent gzip members (RFC 1952)
concatenated in one file. Every member carries its own header (name, comment,
modification time) and its own trailer, so the reader can walk the file member
by member without a central index.
"""

from __future__ import annotations

import logging
import struct
import zlib
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..errors import ArchiveError, ArchiveExistsError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
CM_DEFLATE = 8
FTEXT = 0x01
FHCRC = 0x02
FEXTRA = 0x04
FNAME = 0x08
FCOMMENT = 0x10
OS_UNKNOWN = 255


def build_member_header(name: str, comment: str, mod_time: Optional[datetime]) -> bytes:
    """Build a gzip member header carrying FNAME and FCOMMENT.

    Args:
        name: Member file name (Latin-1, no NUL bytes)
        comment: Human readable label (Latin-1, no NUL bytes)
        mod_time: Modification time, or None to write 0

    Returns:
        Header bytes

    Raises:
        ArchiveError: If name or comment cannot be stored in a gzip header
    """
    mtime = int(mod_time.timestamp()) if mod_time is not None else 0
    header = GZIP_MAGIC + struct.pack("<BBIBB", CM_DEFLATE, FNAME | FCOMMENT, mtime & 0xFFFFFFFF, 0, OS_UNKNOWN)
    return header + _header_string(name, "name") + _header_string(comment, "comment")


def _header_string(value: str, field_name: str) -> bytes:
    if "\x00" in value:
        raise ArchiveError(f"Archive member {field_name} must not contain NUL characters: {value!r}")
    try:
        return value.encode("latin-1") + b"\x00"
    except UnicodeEncodeError as e:
        raise ArchiveError(f"Archive member {field_name} must be Latin-1 encodable: {value!r}") from e


class _OpenMember:
    """Compression state of the member being written."""

    def __init__(self, name: str, level: int) -> None:
        self.name = name
        self.compressor = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)
        self.crc = 0
        self.size = 0


class ArchiveWriter:
    """Sequential, non-reentrant writer of concatenated gzip members.

    Usage:
        with ArchiveWriter(path) as writer:
            writer.begin_member("kafka.yaml", "Kafka cluster")
            writer.write(data)
            writer.close_member()

    Attributes:
        path: Archive file path
        compression_level: zlib compression level for every member
    """

    def __init__(self, path: Union[str, Path], compression_level: int = 6) -> None:
        self.path = Path(path)
        self.compression_level = compression_level
        self._file: Optional[BinaryIO] = None
        self._member: Optional[_OpenMember] = None
        self._written_names: list[str] = []
        self._created = False

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def member_names(self) -> list[str]:
        """Names of the members closed so far, in write order."""
        return list(self._written_names)

    def open(self) -> "ArchiveWriter":
        """Create the archive file. Never overwrites an existing file.

        Raises:
            ArchiveExistsError: If a file already exists at the path
            ArchiveError: If the file cannot be created
        """
        if self._file is not None:
            raise ArchiveError(f"Archive {self.path} is already open")

        try:
            self._file = open(self.path, "xb")
            self._created = True
        except FileExistsError as e:
            raise ArchiveExistsError(f"Backup file {self.path} already exists") from e
        except OSError as e:
            raise ArchiveError(f"Failed to create backup file {self.path}: {e}") from e

        logger.debug(f"Opened archive {self.path} for writing")
        return self

    def begin_member(self, name: str, comment: str = "", mod_time: Optional[datetime] = None) -> None:
        """Start a new member. The previous member must have been closed.

        Args:
            name: Member file name, unique within the archive
            comment: Human readable label
            mod_time: Modification time stored in the header

        Raises:
            ArchiveError: If the writer is not open, a member is already open,
                or the name was already used
        """
        out = self._require_file()
        if self._member is not None:
            raise ArchiveError(f"Member {self._member.name!r} must be closed before starting {name!r}")
        if name in self._written_names:
            raise ArchiveError(f"Archive already contains a member named {name!r}")

        header = build_member_header(name, comment, mod_time)
        self._member = _OpenMember(name, self.compression_level)
        self._write_raw(out, header)

    def write(self, data: bytes) -> int:
        """Append data to the open member.

        Returns:
            Number of uncompressed bytes accepted
        """
        out = self._require_file()
        if self._member is None:
            raise ArchiveError("No archive member is open")

        member = self._member
        member.crc = zlib.crc32(data, member.crc)
        member.size += len(data)
        self._write_raw(out, member.compressor.compress(data))
        return len(data)

    def close_member(self) -> None:
        """Finish the open member with its deflate tail and gzip trailer."""
        out = self._require_file()
        if self._member is None:
            raise ArchiveError("No archive member is open")

        member = self._member
        self._member = None
        self._write_raw(out, member.compressor.flush(zlib.Z_FINISH))
        self._write_raw(out, struct.pack("<II", member.crc & 0xFFFFFFFF, member.size & 0xFFFFFFFF))
        self._written_names.append(member.name)
        logger.debug(f"Wrote archive member {member.name} ({member.size} bytes)")

    def add_member(self, name: str, comment: str, data: bytes, mod_time: Optional[datetime] = None) -> None:
        """Write a complete member in one call."""
        self.begin_member(name, comment, mod_time)
        self.write(data)
        self.close_member()

    def close(self) -> None:
        """Close any open member, then flush and close the file."""
        if self._file is None:
            return

        try:
            if self._member is not None:
                self.close_member()
            self._file.flush()
        except OSError as e:
            raise ArchiveError(f"Failed to flush backup file {self.path}: {e}") from e
        finally:
            self._file.close()
            self._file = None
            self._member = None

    def discard(self) -> None:
        """Close the handle and remove the archive file.

        Used when a run fails so that no truncated archive is left behind.
        """
        if self._file is not None:
            self._file.close()
            self._file = None
            self._member = None

        if not self._created:
            return
        self._created = False

        try:
            self.path.unlink()
            logger.info(f"Removed incomplete backup file {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ArchiveError(f"Failed to remove incomplete backup file {self.path}: {e}") from e

    def _require_file(self) -> BinaryIO:
        if self._file is None:
            raise ArchiveError(f"Archive {self.path} is not open")
        return self._file

    def _write_raw(self, out: BinaryIO, data: bytes) -> None:
        if not data:
            return
        try:
            out.write(data)
        except OSError as e:
            raise ArchiveError(f"Failed to write to backup file {self.path}: {e}") from e

    def __enter__(self) -> "ArchiveWriter":
        if self._file is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
