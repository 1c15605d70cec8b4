"""Archive reader.

Reads the concatenated gzip members written by ArchiveWriter as a lazy,
forward-only sequence. A single-shot gzip decoder stops at the first member
trailer, so every member gets a fresh raw-deflate decoder anchored at the byte
where the previous trailer ended.
"""

from __future__ import annotations

import io
import logging
import struct
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from ..errors import ArchiveError
from .writer import CM_DEFLATE, FCOMMENT, FEXTRA, FHCRC, FNAME, GZIP_MAGIC

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


@dataclass
class Member:
    """One member of a backup archive.

    Attributes:
        name: Member file name (selects the resource collection on restore)
        comment: Human readable label
        mod_time: Modification time from the header, None when unset
        payload: Decompressed member content
    """

    name: str
    comment: str
    mod_time: Optional[datetime]
    payload: bytes

    def open(self) -> io.BytesIO:
        """Return the payload as a readable byte stream."""
        return io.BytesIO(self.payload)

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8")


@dataclass
class _MemberHeader:
    name: str
    comment: str
    mod_time: Optional[datetime]


class ArchiveReader:
    """Forward-only reader of a backup archive.

    Usage:
        with ArchiveReader(path) as reader:
            for member in reader:
                ...

    The sequence can only be read once; reopen the path to start over.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._file: Optional[BinaryIO] = None
        self._pending = b""
        self._next_header: Optional[_MemberHeader] = None
        self._exhausted = False

    def open(self) -> "ArchiveReader":
        """Open the archive and parse the first member header.

        Raises:
            ArchiveError: If the file cannot be opened or is not a gzip archive
        """
        if self._file is not None:
            raise ArchiveError(f"Archive {self.path} is already open")

        try:
            self._file = open(self.path, "rb")
        except OSError as e:
            raise ArchiveError(f"Failed to open backup file {self.path}: {e}") from e

        try:
            header = self._read_header()
        except ArchiveError:
            self.close()
            raise

        if header is None:
            self.close()
            raise ArchiveError(f"Backup file {self.path} is empty")

        self._next_header = header
        return self

    def next_member(self) -> Optional[Member]:
        """Read the next member.

        Returns:
            The next Member, or None at the end of the archive

        Raises:
            ArchiveError: If the member is truncated or fails its integrity check
        """
        if self._file is None:
            raise ArchiveError(f"Archive {self.path} is not open")
        if self._exhausted:
            return None

        header = self._next_header
        if header is None:
            header = self._read_header()
            if header is None:
                self._exhausted = True
                return None
        self._next_header = None

        payload = self._inflate_member(header.name)
        logger.debug(f"Read archive member {header.name} ({len(payload)} bytes)")
        return Member(name=header.name, comment=header.comment, mod_time=header.mod_time, payload=payload)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        self._pending = b""
        self._next_header = None

    def __iter__(self) -> Iterator[Member]:
        while True:
            member = self.next_member()
            if member is None:
                return
            yield member

    def __enter__(self) -> "ArchiveReader":
        if self._file is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _inflate_member(self, name: str) -> bytes:
        # Fresh decoder per member; whatever it over-reads belongs to the next member.
        decoder = zlib.decompressobj(-zlib.MAX_WBITS)
        chunks = []
        data = self._take_pending()

        try:
            while not decoder.eof:
                if not data:
                    data = self._read_chunk()
                    if not data:
                        raise ArchiveError(f"Archive member {name!r} is truncated")
                chunks.append(decoder.decompress(data))
                data = b""
        except zlib.error as e:
            raise ArchiveError(f"Archive member {name!r} is corrupt: {e}") from e

        self._pending = decoder.unused_data
        payload = b"".join(chunks)

        trailer = self._read_exact(8, f"trailer of member {name!r}")
        crc, size = struct.unpack("<II", trailer)
        if crc != zlib.crc32(payload) & 0xFFFFFFFF:
            raise ArchiveError(f"Archive member {name!r} failed its CRC check")
        if size != len(payload) & 0xFFFFFFFF:
            raise ArchiveError(f"Archive member {name!r} has an incorrect length")

        return payload

    def _read_header(self) -> Optional[_MemberHeader]:
        """Parse a member header, or return None at a clean end of file."""
        first = self._read_up_to(10)
        if not first:
            return None
        if len(first) < 10:
            raise ArchiveError(f"Backup file {self.path} has a truncated member header")

        magic, method, flags, mtime = first[:2], first[2], first[3], struct.unpack("<I", first[4:8])[0]
        if magic != GZIP_MAGIC:
            raise ArchiveError(f"Backup file {self.path} is not a gzip archive")
        if method != CM_DEFLATE:
            raise ArchiveError(f"Backup file {self.path} uses unsupported compression method {method}")

        header_bytes = bytearray(first)

        if flags & FEXTRA:
            extra_length_bytes = self._read_exact(2, "member header")
            header_bytes += extra_length_bytes
            (extra_length,) = struct.unpack("<H", extra_length_bytes)
            header_bytes += self._read_exact(extra_length, "member header")

        name = ""
        if flags & FNAME:
            raw_name = self._read_cstring()
            header_bytes += raw_name + b"\x00"
            name = raw_name.decode("latin-1")

        comment = ""
        if flags & FCOMMENT:
            raw_comment = self._read_cstring()
            header_bytes += raw_comment + b"\x00"
            comment = raw_comment.decode("latin-1")

        if flags & FHCRC:
            (header_crc,) = struct.unpack("<H", self._read_exact(2, "member header"))
            if header_crc != zlib.crc32(bytes(header_bytes)) & 0xFFFF:
                raise ArchiveError(f"Backup file {self.path} has a corrupt member header")

        mod_time = datetime.fromtimestamp(mtime, tz=timezone.utc) if mtime else None
        return _MemberHeader(name=name, comment=comment, mod_time=mod_time)

    def _read_cstring(self) -> bytes:
        value = bytearray()
        while True:
            data = self._pending or self._read_chunk()
            if not data:
                raise ArchiveError(f"Backup file {self.path} has a truncated member header")
            end = data.find(b"\x00")
            if end >= 0:
                value += data[:end]
                self._pending = data[end + 1 :]
                return bytes(value)
            value += data
            self._pending = b""

    def _read_exact(self, size: int, what: str) -> bytes:
        data = self._read_up_to(size)
        if len(data) < size:
            raise ArchiveError(f"Backup file {self.path} is truncated in the {what}")
        return data

    def _read_up_to(self, size: int) -> bytes:
        while len(self._pending) < size:
            chunk = self._read_chunk()
            if not chunk:
                break
            self._pending += chunk
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def _take_pending(self) -> bytes:
        data, self._pending = self._pending, b""
        return data

    def _read_chunk(self) -> bytes:
        if self._file is None:
            raise ArchiveError(f"Archive {self.path} is not open")
        try:
            return self._file.read(READ_CHUNK_SIZE)
        except OSError as e:
            raise ArchiveError(f"Failed to read backup file {self.path}: {e}") from e
