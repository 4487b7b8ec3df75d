"""Exception types raised by db-backup.

Every error raised by the gateway, storage, and upload layers derives from
``BackupError`` so callers can catch the whole family at once.  Service
methods translate these into structured results; only connection and
directory failures at construction time reach the caller as exceptions.

Usage:
    from db_backup.errors import BackupError, DatabaseNotFoundError

    try:
        service = DatabaseBackupService(settings, "backups")
    except DatabaseNotFoundError as e:
        print(f"No such schema: {e}")
"""


class BackupError(Exception):
    """Base class for all db-backup errors."""

    pass


class DatabaseConnectionError(BackupError):
    """Raised when the database server cannot be reached or authentication fails."""

    pass


class DatabaseNotFoundError(BackupError):
    """Raised when the named schema does not exist on the server."""

    pass


class QueryError(BackupError):
    """Raised when a query is malformed or not permitted."""

    pass


class ArtifactIOError(BackupError):
    """Raised when a backup file cannot be written, read, or deleted."""

    pass


class UploadError(BackupError):
    """Raised when transferring a backup to the FTP server fails."""

    pass


class BackupDirectoryError(BackupError):
    """Raised when the backup directory does not exist and cannot be created."""

    pass
