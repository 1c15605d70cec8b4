"""Archive exporter.

Unpacks every member of a backup archive into a same-named file, without any
transformation, so the YAML can be inspected or applied by hand.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from ..errors import ArchiveError
from ..models.operation import Operation, OperationType
from .reader import ArchiveReader

logger = logging.getLogger(__name__)


class ArchiveExporter:
    """Export archive members to individual files.

    Attributes:
        archive_path: Backup archive to read
        target_directory: Directory receiving one file per member
    """

    def __init__(self, archive_path: Union[str, Path], target_directory: Union[str, Path]) -> None:
        self.archive_path = Path(archive_path)
        self.target_directory = Path(target_directory)

    def export(self) -> Operation:
        """Write each member to <target_directory>/<member name>.

        Existing files are never overwritten.

        Returns:
            Completed export Operation listing the exported members

        Raises:
            ArchiveError: If the archive cannot be read, a member name is not a
                plain file name, or a target file cannot be created
        """
        operation = Operation(
            operation_type=OperationType.EXPORT,
            cluster_name="",
            namespace="",
            archive_path=str(self.archive_path),
        )

        try:
            self.target_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveError(f"Failed to create target directory {self.target_directory}: {e}") from e

        try:
            with ArchiveReader(self.archive_path) as reader:
                for member in reader:
                    logger.info(f"Exporting {member.name} ({member.comment})")
                    self._write_member_file(member.name, member.payload)
                    operation.record_member(member.name, 1)
        except ArchiveError as e:
            operation.abort(e)
            logger.error(f"Failed to export {self.archive_path}: {e}")
            raise

        operation.complete()
        logger.info(f"Exported {len(operation.members)} member(s) to {self.target_directory}")
        return operation

    def _write_member_file(self, name: str, payload: bytes) -> Path:
        if not name or Path(name).name != name or name in (".", ".."):
            raise ArchiveError(f"Archive member name {name!r} is not a plain file name")

        target = self.target_directory / name
        try:
            with open(target, "xb") as f:
                f.write(payload)
        except FileExistsError as e:
            raise ArchiveError(f"Export file {target} already exists") from e
        except OSError as e:
            raise ArchiveError(f"Failed to write export file {target}: {e}") from e
        return target
