"""Result models returned by backup operations.

Every public operation of ``DatabaseBackupService`` reports through one of
these instead of raising, so callers (CLI, schedulers, web handlers) can
branch on ``success``.

Usage:
    from db_backup.backup.models import BackupResult

    result = service.create_backup()
    if not result.success:
        print(result.message)
"""

from pydantic import BaseModel


class OperationResult(BaseModel):
    """Outcome of a delete, upload or similar single-file operation."""

    success: bool
    message: str


class BackupResult(OperationResult):
    """Outcome of ``create_backup()``."""

    file_name: str | None = None    # set on success


class BackupFileInfo(BaseModel):
    """One backup file as presented by ``list_backups()``."""

    file_name: str
    size: str           # human readable, e.g. "1.5 KB"
    date: str           # modification time, "%Y-%m-%d %H:%M:%S"
    compressed: bool


class DownloadInfo(OperationResult):
    """Everything a caller needs to stream a backup file to a client."""

    file_path: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    is_compressed: bool = False
