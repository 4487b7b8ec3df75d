"""Backup artifact persistence.

Defines the ``ArtifactStore`` Protocol the assembler and retention manager
write through, and ``LocalArtifactStore``, which keeps artifacts as plain
files in one directory.

Usage:
    from db_backup.storage.artifacts import LocalArtifactStore

    store = LocalArtifactStore("backups")
    store.ensure_directory()
    store.write_all("backup_shop_2024-01-01_00-00-00.sql", b"...")
    for entry in store.list_entries():
        print(entry.name, entry.size)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from db_backup.errors import ArtifactIOError, BackupDirectoryError

logger = logging.getLogger(__name__)

BACKUP_SUFFIXES = (".sql", ".sql.gz")


def is_backup_name(name: str) -> bool:
    """Return ``True`` if *name* ends in ``.sql`` or ``.sql.gz`` (any case)."""
    return name.lower().endswith(BACKUP_SUFFIXES)


def is_compressed_name(name: str) -> bool:
    return name.lower().endswith(".sql.gz")


@dataclass(frozen=True)
class ArtifactEntry:
    """One stored backup file."""

    name: str
    size: int  # bytes
    mtime: float  # seconds since the epoch


class ArtifactStore(Protocol):
    """Storage for backup artifacts, addressed by bare file name."""

    def ensure_directory(self) -> None:
        """Create the storage location if needed.

        Raises:
            BackupDirectoryError: If it cannot be created.
        """
        ...

    def write_all(self, name: str, data: bytes) -> None:
        """Write *data* as artifact *name*, replacing any existing one."""
        ...

    def read_all(self, name: str) -> bytes:
        ...

    def list_entries(self) -> list[ArtifactEntry]:
        """Return every artifact with a backup suffix, in no particular order."""
        ...

    def delete(self, name: str) -> None:
        ...

    def exists(self, name: str) -> bool:
        ...

    def path_for(self, name: str) -> Path:
        """Return the local path of artifact *name* (for download and upload)."""
        ...


class LocalArtifactStore:
    """``ArtifactStore`` over a local directory.

    Names are reduced to their final path component, so callers cannot
    address files outside the directory.

    Args:
        directory: Directory holding the backup files.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def ensure_directory(self) -> None:
        if self.directory.is_dir():
            return
        try:
            self.directory.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Could not create backup directory: %s", self.directory)
            raise BackupDirectoryError(
                f"Could not create backup directory: {self.directory}"
            ) from e
        logger.info("Backup directory created: %s", self.directory)

    def path_for(self, name: str) -> Path:
        return self.directory / Path(name).name

    def write_all(self, name: str, data: bytes) -> None:
        path = self.path_for(name)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ArtifactIOError(f"Backup file could not be written: {path}") from e

    def read_all(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ArtifactIOError(f"Backup file could not be read: {path}") from e

    def list_entries(self) -> list[ArtifactEntry]:
        try:
            children = list(self.directory.iterdir())
        except OSError as e:
            raise ArtifactIOError(f"Backup directory could not be read: {self.directory}") from e

        entries = []
        for child in children:
            if not is_backup_name(child.name) or not child.is_file():
                continue
            try:
                stat = child.stat()
            except FileNotFoundError:
                # Removed since the directory was listed
                continue
            except OSError as e:
                raise ArtifactIOError(f"Backup file could not be read: {child}") from e
            entries.append(ArtifactEntry(name=child.name, size=stat.st_size, mtime=stat.st_mtime))
        return entries

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink()
        except OSError as e:
            raise ArtifactIOError(f"Backup file could not be deleted: {path}") from e

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()
