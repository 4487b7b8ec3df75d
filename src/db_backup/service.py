"""Backup service facade.

``DatabaseBackupService`` wires the gateway, artifact store, listing cache,
retention manager, FTP uploader and assembler for one database, and exposes
the operations callers need.  Every operation returns a result model rather
than raising; only construction raises (unreachable database, unusable
backup directory).

Usage:
    from db_backup.config import BackupOptions, ConnectionSettings
    from db_backup.service import DatabaseBackupService

    with DatabaseBackupService(
        ConnectionSettings(database="shop", user="backup", password="secret"),
        "backups/shop",
        BackupOptions(compress_output=True, max_backup_count=5),
        progress=lambda status, current, total: print(f"{current}/{total} {status}"),
    ) as service:
        result = service.create_backup()
        print(result.message)
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from db_backup.adapters.base import QueryGateway
from db_backup.adapters.mysql import MySQLGateway
from db_backup.backup.assembler import BackupAssembler, ProgressObserver, as_observer
from db_backup.backup.models import (
    BackupFileInfo,
    BackupResult,
    DownloadInfo,
    OperationResult,
)
from db_backup.backup.retention import CleanupReport, RetentionManager
from db_backup.cache import CACHE_FILE_NAME, JsonFileCache, ListingCache
from db_backup.config.models import BackupOptions, ConnectionSettings
from db_backup.errors import BackupError, DatabaseConnectionError, QueryError
from db_backup.storage.artifacts import ArtifactStore, LocalArtifactStore
from db_backup.storage.ftp import FtpUploader

logger = logging.getLogger(__name__)


class DatabaseBackupService:
    """Creates and manages backups of one MySQL/MariaDB database.

    Collaborators not passed in are built from the settings: a
    ``MySQLGateway`` connection, a ``LocalArtifactStore`` on *backup_dir*, a
    ``JsonFileCache`` at ``<backup_dir>/.backup_cache.json`` and, when FTP is
    enabled, an ``FtpUploader``.

    Args:
        connection: Database connection settings.
        backup_dir: Directory for backup files.
        options: Backup options (defaults apply when ``None``).
        gateway: Pre-connected gateway.
        store: Artifact store replacing the local directory.
        cache: Listing cache replacing the JSON file cache.
        uploader: FTP uploader replacing the one built from ``options.ftp``.
        progress: Progress observer, or a ``callback(status, current, total)``.
        clock: Returns the current local time.

    Raises:
        BackupDirectoryError: If *backup_dir* cannot be created.
        DatabaseConnectionError: If the server cannot be reached.
        DatabaseNotFoundError: If the database does not exist.
    """

    def __init__(
        self,
        connection: ConnectionSettings,
        backup_dir: Path | str,
        options: BackupOptions | None = None,
        *,
        gateway: QueryGateway | None = None,
        store: ArtifactStore | None = None,
        cache: ListingCache | None = None,
        uploader: FtpUploader | None = None,
        progress: ProgressObserver | Callable[[str, int, int], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.connection = connection
        self.backup_dir = Path(backup_dir)
        self.options = options if options is not None else BackupOptions()

        self._store = store or LocalArtifactStore(self.backup_dir)
        self._store.ensure_directory()

        if gateway is None:
            try:
                gateway = MySQLGateway.connect(connection)
            except BackupError as e:
                logger.error("Could not establish database connection: %s", e)
                raise
        self._gateway = gateway

        self._cache = cache or JsonFileCache(
            self.backup_dir / CACHE_FILE_NAME, ttl_seconds=self.options.cache_time
        )
        if uploader is None and self.options.ftp.enabled:
            uploader = FtpUploader(self.options.ftp)
        self._uploader = uploader

        self.retention = RetentionManager(
            self._store,
            self._cache,
            self.options,
            clock=lambda: clock().timestamp(),
        )
        self.assembler = BackupAssembler(
            self._gateway,
            self._store,
            self._cache,
            self.retention,
            self.options,
            connection,
            uploader=self._uploader,
            observer=as_observer(progress),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Backup operations
    # ------------------------------------------------------------------

    def create_backup(self) -> BackupResult:
        return self.assembler.create_backup()

    def list_backups(self) -> list[BackupFileInfo]:
        return self.retention.list_backups()

    def clean_old_backups(self) -> CleanupReport:
        return self.retention.cleanup()

    def delete_backup(self, file_name: str) -> OperationResult:
        return self.retention.delete_backup(file_name)

    def prepare_download(self, file_name: str) -> DownloadInfo:
        return self.retention.prepare_download(file_name)

    def upload_backup_to_ftp(self, file_name: str) -> OperationResult:
        """Upload an existing backup to the configured FTP server."""
        if not self.options.ftp.enabled or self._uploader is None:
            return OperationResult(success=False, message="FTP backup feature is not active.")

        name = self.retention.resolve(file_name)
        if name is None:
            return OperationResult(
                success=False, message="Backup file to upload not found or invalid."
            )

        try:
            self._uploader.upload(self._store.path_for(name), name)
        except BackupError as e:
            logger.error("An error occurred during manual FTP upload: %s", e)
            return OperationResult(
                success=False, message=f"An error occurred during FTP upload: {e}"
            )

        logger.info("Manual FTP upload successful: %s", name)
        return OperationResult(
            success=True, message="Backup file successfully uploaded to FTP server."
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def test_database_connection(self) -> bool:
        try:
            return self._gateway.execute_scalar("SELECT 1") == 1
        except (DatabaseConnectionError, QueryError) as e:
            logger.error("Connection test failed: %s", e)
            return False

    def test_ftp_connection(self) -> bool:
        """Return ``False`` when FTP is disabled or the server cannot be reached."""
        if not self.options.ftp.enabled or self._uploader is None:
            return False
        return self._uploader.test_connection()

    def get_database_version(self) -> str:
        return str(self._gateway.execute_scalar("SELECT VERSION()"))

    def close(self) -> None:
        self._gateway.close()

    def __enter__(self) -> "DatabaseBackupService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
