"""Retention and lifecycle management for backup artifacts.

Keeps the backup directory within the configured count and age limits,
and serves the listing, delete and download operations on it.

Usage:
    from db_backup.backup.retention import RetentionManager

    manager = RetentionManager(store, cache, options)
    report = manager.cleanup()
    for info in manager.list_backups():
        print(info.file_name, info.size, info.date)
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from db_backup.backup.models import BackupFileInfo, DownloadInfo, OperationResult
from db_backup.cache import BACKUP_LIST_KEY, ListingCache
from db_backup.config.models import BackupOptions
from db_backup.errors import ArtifactIOError
from db_backup.storage.artifacts import (
    ArtifactEntry,
    ArtifactStore,
    is_backup_name,
    is_compressed_name,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
SECONDS_PER_DAY = 86400

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_file_size(size: int) -> str:
    """Format a byte count with 1024-based units and at most two decimals.

    Example:
        >>> format_file_size(0)
        '0 B'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(1048576)
        '1 MB'
    """
    if size <= 0:
        return "0 B"
    power = 0
    while power < len(_SIZE_UNITS) - 1 and size >= 1024 ** (power + 1):
        power += 1
    value = round(size / 1024**power, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[power]}"


@dataclass
class CleanupReport:
    """Results of one retention pass."""

    deleted: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)  # name -> reason

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class RetentionManager:
    """Applies retention limits and manages the stored backups.

    Args:
        store: Where the backups live.
        cache: Listing cache; invalidated whenever a backup is removed.
        options: Supplies ``max_backup_count`` and ``max_backup_age_days``.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        store: ArtifactStore,
        cache: ListingCache,
        options: BackupOptions,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._cache = cache
        self._options = options
        self._clock = clock

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> CleanupReport:
        """Delete backups beyond the count limit, then those past the age limit.

        A file that cannot be deleted is logged and recorded in the report;
        the pass continues with the next one.

        Returns:
            CleanupReport listing deleted names and per-file errors
        """
        logger.info("Cleaning old backups...")
        report = CleanupReport()
        entries = self._sorted_entries()

        max_count = self._options.max_backup_count
        if len(entries) > max_count:
            for entry in entries[max_count:]:
                self._delete_entry(entry, "count limit", report)
            entries = entries[:max_count]

        cutoff = self._clock() - self._options.max_backup_age_days * SECONDS_PER_DAY
        for entry in entries:
            if entry.mtime < cutoff:
                self._delete_entry(entry, "age limit", report)

        if report.deleted:
            self._cache.invalidate(BACKUP_LIST_KEY)

        logger.info("Old backup cleanup completed. %d files deleted.", len(report.deleted))
        return report

    def _delete_entry(self, entry: ArtifactEntry, reason: str, report: CleanupReport) -> None:
        try:
            self._store.delete(entry.name)
        except ArtifactIOError as e:
            logger.error("Could not delete old backup (%s): %s: %s", reason, entry.name, e)
            report.errors[entry.name] = str(e)
            return
        logger.info("Old backup (%s) deleted: %s", reason, entry.name)
        report.deleted.append(entry.name)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_backups(self) -> list[BackupFileInfo]:
        """List backups newest first, served from the cache while it is fresh."""
        cached = self._cache.get(BACKUP_LIST_KEY)
        if cached is not None:
            return [BackupFileInfo.model_validate(item) for item in cached]

        backups = [
            BackupFileInfo(
                file_name=entry.name,
                size=format_file_size(entry.size),
                date=datetime.fromtimestamp(entry.mtime).strftime(DATE_FORMAT),
                compressed=is_compressed_name(entry.name),
            )
            for entry in self._sorted_entries()
        ]
        self._cache.set(BACKUP_LIST_KEY, [info.model_dump() for info in backups])
        return backups

    def _sorted_entries(self) -> list[ArtifactEntry]:
        return sorted(
            self._store.list_entries(), key=lambda e: (e.mtime, e.name), reverse=True
        )

    # ------------------------------------------------------------------
    # Single-file operations
    # ------------------------------------------------------------------

    def resolve(self, file_name: str) -> str | None:
        """Return the stored name for *file_name*, or ``None`` if it is not a backup.

        Only the final path component is used, it must carry a backup suffix,
        and the file must exist.
        """
        name = file_name.replace("\\", "/").rsplit("/", 1)[-1]
        if not name or not is_backup_name(name) or not self._store.exists(name):
            return None
        return name

    def delete_backup(self, file_name: str) -> OperationResult:
        name = self.resolve(file_name)
        if name is None:
            return OperationResult(
                success=False, message="Backup file to delete not found or invalid."
            )

        try:
            self._store.delete(name)
        except ArtifactIOError as e:
            logger.error("File deletion error (%s): %s", name, e)
            return OperationResult(
                success=False,
                message=f"An error occurred while deleting the file: {e}",
            )

        self._cache.invalidate(BACKUP_LIST_KEY)
        logger.info("Backup file successfully deleted: %s", name)
        return OperationResult(success=True, message="Backup file successfully deleted.")

    def prepare_download(self, file_name: str) -> DownloadInfo:
        name = self.resolve(file_name)
        if name is None:
            logger.error("Backup file to download not found or invalid: %s", file_name)
            return DownloadInfo(success=False, message="Backup file not found or invalid.")

        compressed = is_compressed_name(name)
        logger.info("File prepared for download: %s", name)
        return DownloadInfo(
            success=True,
            message="File ready for download.",
            file_path=str(self._store.path_for(name)),
            file_name=name,
            mime_type="application/gzip" if compressed else "application/sql",
            is_compressed=compressed,
        )
