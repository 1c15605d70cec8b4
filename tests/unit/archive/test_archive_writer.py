"""Tests for ArchiveWriter and gzip member headers."""

from __future__ import annotations

import gzip
import struct
import zlib
from datetime import datetime, timezone
from pathlib import Path

import pytest

from strimzi_backup.archive.writer import FCOMMENT, FNAME, GZIP_MAGIC, ArchiveWriter, build_member_header
from strimzi_backup.errors import ArchiveError, ArchiveExistsError


class TestBuildMemberHeader:
    """Test suite for build_member_header."""

    def test_header_layout(self) -> None:
        """Test header carries magic, deflate method, FNAME|FCOMMENT, mtime and strings."""
        mod_time = datetime(2025, 1, 31, 12, 0, 0, tzinfo=timezone.utc)

        header = build_member_header("kafka.yaml", "Kafka cluster", mod_time)

        assert header[:2] == GZIP_MAGIC
        assert header[2] == 8
        assert header[3] == FNAME | FCOMMENT
        assert struct.unpack("<I", header[4:8])[0] == int(mod_time.timestamp())
        assert header[10:] == b"kafka.yaml\x00Kafka cluster\x00"

    def test_missing_mod_time_writes_zero(self) -> None:
        """Test mtime field is zero when no modification time is given."""
        header = build_member_header("topics.yaml", "", None)

        assert struct.unpack("<I", header[4:8])[0] == 0
        assert header[10:] == b"topics.yaml\x00\x00"

    def test_nul_in_name_rejected(self) -> None:
        """Test names containing NUL cannot be stored."""
        with pytest.raises(ArchiveError):
            build_member_header("bad\x00name", "", None)

    def test_non_latin1_comment_rejected(self) -> None:
        """Test comments outside Latin-1 cannot be stored."""
        with pytest.raises(ArchiveError):
            build_member_header("kafka.yaml", "Kafka ✓", None)


class TestArchiveWriter:
    """Test suite for ArchiveWriter."""

    def test_single_member_readable_by_gzip(self, tmp_path: Path) -> None:
        """Test a one-member archive decompresses with the standard gzip module."""
        path = tmp_path / "backup.gz"

        with ArchiveWriter(path) as writer:
            writer.add_member("kafka.yaml", "Kafka cluster", b"kind: Kafka\n")

        assert gzip.decompress(path.read_bytes()) == b"kind: Kafka\n"

    def test_members_are_concatenated(self, tmp_path: Path) -> None:
        """Test a multi-member archive is a valid concatenation of gzip members."""
        path = tmp_path / "backup.gz"

        with ArchiveWriter(path) as writer:
            writer.add_member("kafka.yaml", "Kafka cluster", b"first\n")
            writer.add_member("topics.yaml", "List of Kafka Topics", b"second\n")

        # gzip.decompress joins every member of a multi-member file
        assert gzip.decompress(path.read_bytes()) == b"first\nsecond\n"
        assert writer.member_names == ["kafka.yaml", "topics.yaml"]

    def test_streaming_writes_match_single_write(self, tmp_path: Path) -> None:
        """Test payload written in chunks produces the correct CRC and size."""
        path = tmp_path / "backup.gz"
        payload = b"items:\n" + b"- name: topic\n" * 1000

        with ArchiveWriter(path) as writer:
            writer.begin_member("topics.yaml", "List of Kafka Topics")
            for start in range(0, len(payload), 333):
                writer.write(payload[start : start + 333])
            writer.close_member()

        data = path.read_bytes()
        crc, size = struct.unpack("<II", data[-8:])
        assert crc == zlib.crc32(payload)
        assert size == len(payload)

    def test_existing_file_is_not_overwritten(self, tmp_path: Path) -> None:
        """Test opening an existing path fails and leaves the file intact."""
        path = tmp_path / "backup.gz"
        path.write_bytes(b"precious")

        writer = ArchiveWriter(path)
        with pytest.raises(ArchiveExistsError):
            writer.open()

        assert path.read_bytes() == b"precious"
        assert not writer.is_open

    def test_begin_member_requires_previous_closed(self, tmp_path: Path) -> None:
        """Test starting a member while another is open fails."""
        with ArchiveWriter(tmp_path / "backup.gz") as writer:
            writer.begin_member("kafka.yaml")
            with pytest.raises(ArchiveError, match="must be closed"):
                writer.begin_member("pools.yaml")

    def test_duplicate_member_name_rejected(self, tmp_path: Path) -> None:
        """Test member names are unique within an archive."""
        with ArchiveWriter(tmp_path / "backup.gz") as writer:
            writer.add_member("kafka.yaml", "", b"a")
            with pytest.raises(ArchiveError, match="already contains"):
                writer.add_member("kafka.yaml", "", b"b")

    def test_write_without_open_member(self, tmp_path: Path) -> None:
        """Test write fails when no member has been started."""
        with ArchiveWriter(tmp_path / "backup.gz") as writer:
            with pytest.raises(ArchiveError, match="No archive member is open"):
                writer.write(b"data")

    def test_write_before_open(self, tmp_path: Path) -> None:
        """Test writer refuses members before the file is created."""
        writer = ArchiveWriter(tmp_path / "backup.gz")

        with pytest.raises(ArchiveError):
            writer.begin_member("kafka.yaml")

    def test_close_finishes_open_member(self, tmp_path: Path) -> None:
        """Test close writes the trailer of a member left open."""
        path = tmp_path / "backup.gz"
        writer = ArchiveWriter(path).open()
        writer.begin_member("kafka.yaml")
        writer.write(b"unfinished")

        writer.close()

        assert gzip.decompress(path.read_bytes()) == b"unfinished"
        assert not writer.is_open

    def test_discard_removes_file(self, tmp_path: Path) -> None:
        """Test discard closes the handle and removes the partial archive."""
        path = tmp_path / "backup.gz"
        writer = ArchiveWriter(path).open()
        writer.add_member("kafka.yaml", "", b"partial")

        writer.discard()

        assert not path.exists()
        assert not writer.is_open

    def test_discard_after_failed_open_keeps_existing_file(self, tmp_path: Path) -> None:
        """Test discard never removes a file the writer did not create."""
        path = tmp_path / "backup.gz"
        path.write_bytes(b"precious")
        writer = ArchiveWriter(path)
        with pytest.raises(ArchiveExistsError):
            writer.open()

        writer.discard()

        assert path.read_bytes() == b"precious"
