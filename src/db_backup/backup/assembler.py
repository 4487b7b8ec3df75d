"""Backup script assembly and artifact creation.

Orchestrates one backup run: enumerate the schema, render every object in a
fixed order into one script, compress and store it, then run retention and
the optional FTP upload.

Script layout:
    header -> tables (structure, then data) -> views -> triggers
    -> routines -> footer

Usage:
    from db_backup.backup.assembler import BackupAssembler

    assembler = BackupAssembler(
        gateway, store, cache, retention, options, connection,
        observer=CallbackProgressObserver(print_progress),
    )
    result = assembler.create_backup()
"""

import gzip
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pymysql.charset import charset_by_name

from db_backup.adapters.base import QueryGateway
from db_backup.backup.models import BackupResult
from db_backup.backup.retention import RetentionManager
from db_backup.cache import BACKUP_LIST_KEY, ListingCache
from db_backup.config.models import BackupOptions, ConnectionSettings
from db_backup.errors import QueryError, UploadError
from db_backup.render.data import DataRenderer
from db_backup.render.objects import SqlObjectRenderer, quote_identifier
from db_backup.schema.introspector import SchemaIntrospector
from db_backup.schema.models import SchemaInventory
from db_backup.storage.artifacts import ArtifactStore
from db_backup.storage.ftp import FtpUploader

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
GZIP_LEVEL = 9

# Compression, file write, cleanup
POST_PROCESSING_STEPS = 3


def script_encoding(charset: str) -> str:
    """Return the Python codec matching a MySQL charset name.

    The script is written in the same charset its ``SET NAMES`` line pins.

    Example:
        >>> script_encoding("latin1")
        'cp1252'
        >>> script_encoding("utf8mb4")
        'utf8'

    Raises:
        ValueError: If MySQL does not know *charset*.
    """
    info = charset_by_name(charset)
    if info is None:
        raise ValueError(f"Unknown MySQL charset: {charset}")
    return info.encoding


# ============================================================================
# Progress reporting
# ============================================================================


class ProgressObserver(Protocol):
    """Receives one notification per completed backup step."""

    def on_progress(self, status: str, current: int, total: int) -> None:
        ...


class CallbackProgressObserver:
    """Adapts a plain ``callback(status, current, total)`` to ``ProgressObserver``."""

    def __init__(self, callback: Callable[[str, int, int], None]):
        self._callback = callback

    def on_progress(self, status: str, current: int, total: int) -> None:
        self._callback(status, current, total)


def as_observer(
    progress: ProgressObserver | Callable[[str, int, int], None] | None,
) -> ProgressObserver | None:
    """Return *progress* as an observer, wrapping plain callables."""
    if progress is None or hasattr(progress, "on_progress"):
        return progress
    return CallbackProgressObserver(progress)


@dataclass
class ProgressState:
    current: int = 0
    total: int = 0
    status: str = ""


class ProgressTracker:
    """Counts steps towards a total fixed up front.

    Raises:
        ValueError: From ``advance()`` if the step count would pass ``total``.
    """

    def __init__(self, total: int, observer: ProgressObserver | None = None):
        self.state = ProgressState(total=total)
        self._observer = observer

    def advance(self, status: str) -> None:
        state = self.state
        if state.current >= state.total:
            raise ValueError(
                f"Progress overflow: step '{status}' exceeds total of {state.total}"
            )
        state.current += 1
        state.status = status
        if self._observer is not None:
            self._observer.on_progress(status, state.current, state.total)


# ============================================================================
# Script
# ============================================================================


class BackupScript:
    """Append-only sequence of SQL text segments."""

    def __init__(self) -> None:
        self._segments: list[str] = []

    def append(self, text: str) -> None:
        if text:
            self._segments.append(text)

    def render(self) -> str:
        return "".join(self._segments)

    def __len__(self) -> int:
        return len(self._segments)


# ============================================================================
# Assembler
# ============================================================================


class BackupAssembler:
    """Builds one backup script and turns it into a stored artifact.

    Args:
        gateway: Connected query gateway.
        store: Destination for the artifact.
        cache: Listing cache, invalidated after the write.
        retention: Runs cleanup after the write.
        options: Table selection, compression and definer handling.
        connection: Supplies the database name and charset.
        uploader: FTP uploader; used only when ``options.ftp.enabled``.
        observer: Progress observer (``None`` for silent runs).
        clock: Returns the current local time.
    """

    def __init__(
        self,
        gateway: QueryGateway,
        store: ArtifactStore,
        cache: ListingCache,
        retention: RetentionManager,
        options: BackupOptions,
        connection: ConnectionSettings,
        *,
        uploader: FtpUploader | None = None,
        observer: ProgressObserver | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._gateway = gateway
        self._store = store
        self._cache = cache
        self._retention = retention
        self._options = options
        self._connection = connection
        self._uploader = uploader
        self._observer = observer
        self._clock = clock

        self._introspector = SchemaIntrospector(gateway)
        self._objects = SqlObjectRenderer(gateway, remove_definers=options.remove_definers)
        self._data = DataRenderer(gateway)
        self.progress: ProgressTracker | None = None

    # ------------------------------------------------------------------
    # Script generation
    # ------------------------------------------------------------------

    def count_steps(self, inventory: SchemaInventory) -> int:
        """Number of progress steps a run over *inventory* takes."""
        total = 0
        for table in inventory.tables:
            if self._options.is_excluded(table.name):
                continue
            mode = self._options.mode_for(table.name)
            total += int(mode.includes_structure) + int(mode.includes_data)
        total += len(inventory.views) + len(inventory.triggers) + len(inventory.routines)
        return total + POST_PROCESSING_STEPS

    def generate(self) -> str:
        """Render the complete backup script.

        Also creates ``self.progress``, with the total fixed before the first
        object is rendered.  The post-processing steps are left for
        ``create_backup()``.
        """
        inventory = self._introspector.introspect()
        logger.info("Found %d schema objects to back up.", inventory.object_count)
        tracker = ProgressTracker(self.count_steps(inventory), self._observer)
        self.progress = tracker

        script = BackupScript()
        script.append(self.render_header())

        logger.debug("Getting table structures and data...")
        for table in inventory.tables:
            name = table.name
            if self._options.is_excluded(name):
                logger.info("%s table excluded.", name)
                continue

            mode = self._options.mode_for(name)
            if mode.includes_structure:
                tracker.advance(f"Getting table structure: {name}")
                script.append(
                    self._render("TABLE", name, self._objects.render_table_structure, name)
                )
            if mode.includes_data:
                tracker.advance(f"Getting table data: {name}")
                script.append(self._render("TABLE", name, self._data.render_table_data, name))

        logger.debug("Getting view structures...")
        for view in inventory.views:
            tracker.advance(f"Getting view structure: {view.name}")
            script.append(self._render("VIEW", view.name, self._objects.render_view, view.name))

        logger.debug("Getting trigger structures...")
        for trigger in inventory.triggers:
            tracker.advance(f"Getting trigger structure: {trigger.name}")
            script.append(
                self._render("TRIGGER", trigger.name, self._objects.render_trigger, trigger)
            )

        logger.debug("Getting routine (Procedure/Function) structures...")
        for routine in inventory.routines:
            tracker.advance(f"Getting routine structure: {routine.name}")
            kind = routine.routine_type.value if routine.routine_type else "ROUTINE"
            script.append(
                self._render(kind, routine.name, self._objects.render_routine, routine)
            )

        script.append(self.render_footer())
        return script.render()

    def _render(self, kind: str, name: str, render: Callable, arg) -> str:
        """Run one renderer, turning a rejected query into an inline marker."""
        try:
            return render(arg)
        except QueryError as e:
            logger.error("Could not back up %s %s: %s", kind, quote_identifier(name), e)
            return f"-- ERROR: Could not back up {kind} {quote_identifier(name)}: {e}\n"

    def render_header(self) -> str:
        version = self._gateway.execute_scalar("SELECT VERSION()")
        return (
            "-- -------------------------------------------------------\n"
            f"-- Database Backup: {self._connection.database}\n"
            f"-- Server Version: {version}\n"
            f"-- Creation Date: {self._clock().strftime(TIMESTAMP_FORMAT)}\n"
            "-- -------------------------------------------------------\n\n"
            'SET SQL_MODE = "NO_AUTO_VALUE_ON_ZERO";\n'
            "SET AUTOCOMMIT = 0;\n"
            "START TRANSACTION;\n"
            'SET time_zone = "+00:00";\n\n'
            "/*!40101 SET @OLD_CHARACTER_SET_CLIENT=@@CHARACTER_SET_CLIENT */;\n"
            "/*!40101 SET @OLD_CHARACTER_SET_RESULTS=@@CHARACTER_SET_RESULTS */;\n"
            "/*!40101 SET @OLD_COLLATION_CONNECTION=@@COLLATION_CONNECTION */;\n"
            f"SET NAMES {self._connection.effective_charset};\n"
            "SET FOREIGN_KEY_CHECKS=0;\n\n"
        )

    def render_footer(self) -> str:
        return (
            "\nSET FOREIGN_KEY_CHECKS=1;\n"
            "COMMIT;\n\n"
            "/*!40101 SET CHARACTER_SET_CLIENT=@OLD_CHARACTER_SET_CLIENT */;\n"
            "/*!40101 SET CHARACTER_SET_RESULTS=@OLD_CHARACTER_SET_RESULTS */;\n"
            "/*!40101 SET COLLATION_CONNECTION=@OLD_COLLATION_CONNECTION */;\n"
            f"-- Backup completed: {self._clock().strftime(TIMESTAMP_FORMAT)}\n"
        )

    # ------------------------------------------------------------------
    # Artifact creation
    # ------------------------------------------------------------------

    def backup_file_name(self) -> str:
        """Return ``backup_<db>_<YYYY-MM-DD_HH-mm-ss>.sql`` (``.sql.gz`` when compressing)."""
        suffix = ".sql.gz" if self._options.compress_output else ".sql"
        stamp = self._clock().strftime(FILE_TIMESTAMP_FORMAT)
        return f"backup_{self._connection.database}_{stamp}{suffix}"

    def create_backup(self) -> BackupResult:
        """Generate, store and post-process one backup.

        Failures up to and including the file write produce
        ``success=False``.  Cleanup and upload failures are logged and leave
        the result successful.

        Returns:
            BackupResult with the artifact's file name on success
        """
        logger.info("Backup process is starting...")
        started = time.monotonic()

        try:
            script = self.generate()
            tracker = self.progress
            file_name = self.backup_file_name()
            data = script.encode(script_encoding(self._connection.effective_charset))

            if self._options.compress_output:
                tracker.advance(f"Compressing backup: {file_name}")
                data = gzip.compress(data, compresslevel=GZIP_LEVEL)
            else:
                tracker.advance(f"Compression skipped: {file_name}")

            tracker.advance(f"Writing backup file: {file_name}")
            self._store.write_all(file_name, data)
            logger.info("Backup file successfully created: %s", file_name)
        except Exception as e:
            logger.exception("Backup error: %s", e)
            return BackupResult(
                success=False, message=f"An error occurred during backup: {e}"
            )

        self._cache.invalidate(BACKUP_LIST_KEY)

        try:
            tracker.advance("Cleaning old backups")
            self._retention.cleanup()
        except Exception as e:
            # The artifact is already written
            logger.exception("Old backup cleanup failed: %s", e)

        if self._options.ftp.enabled and self._uploader is not None:
            logger.info("Starting FTP upload: %s", file_name)
            try:
                self._uploader.upload(self._store.path_for(file_name), file_name)
            except UploadError as e:
                logger.error("Automatic FTP backup error: %s", e)
            else:
                logger.info("Backup file successfully uploaded to FTP: %s", file_name)

        duration = round(time.monotonic() - started, 2)
        logger.info(
            "Backup successfully completed. File: %s. Duration: %s seconds.",
            file_name,
            duration,
        )
        return BackupResult(
            success=True,
            message=f"Backup successfully completed. File: {file_name}",
            file_name=file_name,
        )
