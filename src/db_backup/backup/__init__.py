"""Backup pipeline: script assembly, retention, and result models.

Usage:
    >>> from db_backup.backup import BackupAssembler, RetentionManager, BackupResult
"""

from db_backup.backup.assembler import (
    BackupAssembler,
    BackupScript,
    CallbackProgressObserver,
    ProgressObserver,
    ProgressState,
    ProgressTracker,
)
from db_backup.backup.models import (
    BackupFileInfo,
    BackupResult,
    DownloadInfo,
    OperationResult,
)
from db_backup.backup.retention import CleanupReport, RetentionManager, format_file_size

__all__ = [
    "BackupAssembler",
    "BackupScript",
    "CallbackProgressObserver",
    "ProgressObserver",
    "ProgressState",
    "ProgressTracker",
    "BackupFileInfo",
    "BackupResult",
    "DownloadInfo",
    "OperationResult",
    "CleanupReport",
    "RetentionManager",
    "format_file_size",
]
