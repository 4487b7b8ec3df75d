"""db-backup: logical backups of MySQL/MariaDB databases.

Renders tables, views, triggers and stored routines into a replayable SQL
script without an external dump tool, and keeps the backup directory within
count and age limits.

Usage:
    from db_backup import create_service

    service = create_service("local")
    result = service.create_backup()
"""

from db_backup.backup.models import (
    BackupFileInfo,
    BackupResult,
    DownloadInfo,
    OperationResult,
)
from db_backup.config.models import (
    BackupOptions,
    ConnectionSettings,
    DatabaseProfile,
    FtpSettings,
    TableMode,
)
from db_backup.errors import (
    ArtifactIOError,
    BackupDirectoryError,
    BackupError,
    DatabaseConnectionError,
    DatabaseNotFoundError,
    QueryError,
    UploadError,
)
from db_backup.factory import ProfileNotFoundError, create_service
from db_backup.service import DatabaseBackupService

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Service
    "DatabaseBackupService",
    "create_service",
    "ProfileNotFoundError",
    # Configuration
    "BackupOptions",
    "ConnectionSettings",
    "DatabaseProfile",
    "FtpSettings",
    "TableMode",
    # Results
    "BackupFileInfo",
    "BackupResult",
    "DownloadInfo",
    "OperationResult",
    # Errors
    "ArtifactIOError",
    "BackupDirectoryError",
    "BackupError",
    "DatabaseConnectionError",
    "DatabaseNotFoundError",
    "QueryError",
    "UploadError",
]
