"""MySQL/MariaDB query gateway.

Provides ``MySQLGateway``, a synchronous implementation of the
``QueryGateway`` protocol using a SQLAlchemy engine with the ``pymysql``
driver.

Usage:
    from db_backup.adapters.mysql import MySQLGateway
    from db_backup.config.models import ConnectionSettings

    gateway = MySQLGateway.connect(
        ConnectionSettings(host="localhost", database="shop", user="backup")
    )
    rows = gateway.execute("SHOW FULL TABLES")
    gateway.close()
"""

import logging
from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, CursorResult, Engine
from sqlalchemy.exc import DBAPIError

from db_backup.config.models import ConnectionSettings
from db_backup.errors import DatabaseConnectionError, DatabaseNotFoundError, QueryError

logger = logging.getLogger(__name__)

# A failed connection to this host name is retried once against LOOPBACK_ADDRESS
# (socket vs. TCP resolution differs between client setups).
LOOPBACK_HOST = "localhost"
LOOPBACK_ADDRESS = "127.0.0.1"

_SCHEMA_EXISTS_SQL = (
    "SELECT SCHEMA_NAME FROM information_schema.SCHEMATA WHERE SCHEMA_NAME = %s"
)


def build_url(
    settings: ConnectionSettings,
    host: str | None = None,
    with_database: bool = True,
) -> URL:
    """Build a ``mysql+pymysql`` URL from connection settings.

    Args:
        settings: Connection settings.
        host: Override for ``settings.host`` (used for the loopback retry).
        with_database: When ``False``, the URL targets the server only so the
            schema can be checked before connecting to it.

    Returns:
        SQLAlchemy ``URL`` with the sanitized charset as a query option.
    """
    return URL.create(
        "mysql+pymysql",
        username=settings.user,
        password=settings.password or None,
        host=host or settings.host,
        port=settings.port,
        database=settings.database if with_database else None,
        query={"charset": settings.effective_charset},
    )


def create_engine_pooled(url: URL | str, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with connection pooling.

    Default pool settings:

    - ``pool_size=5``: Reasonable default for typical workloads.
    - ``max_overflow=10``: Allow burst connections.
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.
    - ``connect_timeout=10``: Passed to the driver via ``connect_args``.

    Args:
        url: Database URL with ``mysql+pymysql://`` scheme.
        **kwargs: Additional keyword arguments forwarded to ``create_engine``.

    Returns:
        Configured ``Engine``.
    """
    defaults: dict[str, Any] = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {"connect_timeout": 10},
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_engine(url, **merged)


class MySQLGateway:
    """SQLAlchemy-backed implementation of the ``QueryGateway`` protocol.

    Holds a single connection for its lifetime so one backup run sees one
    session.  Use ``MySQLGateway.connect()`` to build one from settings; the
    constructor only wraps an already-open engine and connection.

    Args:
        engine: Engine the connection was checked out from.
        connection: Open connection used for every query.

    Example:
        with MySQLGateway.connect(settings) as gateway:
            version = gateway.execute_scalar("SELECT VERSION()")
    """

    def __init__(self, engine: Engine, connection: Connection) -> None:
        self._engine: Engine = engine
        self._connection: Connection = connection

    # ------------------------------------------------------------------
    # Connection bootstrap
    # ------------------------------------------------------------------

    @classmethod
    def connect(cls, settings: ConnectionSettings, **engine_kwargs: Any) -> "MySQLGateway":
        """Connect to the configured server and schema.

        Checks that the schema exists before connecting to it.  When the host
        is ``localhost`` and the first attempt fails at the connection level,
        the attempt is repeated once against ``127.0.0.1``.

        Args:
            settings: Connection settings.
            **engine_kwargs: Forwarded to ``create_engine_pooled``.

        Returns:
            Connected ``MySQLGateway``.

        Raises:
            DatabaseConnectionError: If the server cannot be reached.
            DatabaseNotFoundError: If the schema does not exist.
        """
        try:
            return cls._connect_host(settings, settings.host, **engine_kwargs)
        except DatabaseConnectionError as e:
            if settings.host != LOOPBACK_HOST:
                logger.error("Database connection error: %s", e)
                raise

            logger.info(
                "Connection failed with '%s', trying '%s'...",
                LOOPBACK_HOST,
                LOOPBACK_ADDRESS,
            )

        try:
            gateway = cls._connect_host(settings, LOOPBACK_ADDRESS, **engine_kwargs)
        except DatabaseConnectionError as e:
            logger.error(
                "Database connection error (with both '%s' and '%s'): %s",
                LOOPBACK_HOST,
                LOOPBACK_ADDRESS,
                e,
            )
            raise DatabaseConnectionError(
                "Could not establish database connection with either "
                f"'{LOOPBACK_HOST}' or '{LOOPBACK_ADDRESS}': {e}"
            ) from e

        logger.info(
            "Connected to database with alternative host (%s): %s",
            LOOPBACK_ADDRESS,
            settings.database,
        )
        return gateway

    @classmethod
    def _connect_host(
        cls, settings: ConnectionSettings, host: str, **engine_kwargs: Any
    ) -> "MySQLGateway":
        """Check the schema on *host* and open a connection to it."""
        server_engine = create_engine_pooled(
            build_url(settings, host=host, with_database=False), **engine_kwargs
        )
        try:
            with server_engine.connect() as conn:
                found = conn.exec_driver_sql(
                    _SCHEMA_EXISTS_SQL, (settings.database,)
                ).scalar()
        except DBAPIError as e:
            raise DatabaseConnectionError(
                f"Could not connect to {host}:{settings.port}: {e.orig or e}"
            ) from e
        finally:
            server_engine.dispose()

        if not found:
            logger.error("Database not found: %s", settings.database)
            raise DatabaseNotFoundError(f"Database not found: {settings.database}")

        engine = create_engine_pooled(build_url(settings, host=host), **engine_kwargs)
        try:
            connection = engine.connect()
        except DBAPIError as e:
            engine.dispose()
            raise DatabaseConnectionError(
                f"Could not connect to database {settings.database} on {host}: {e.orig or e}"
            ) from e

        logger.info("Successfully connected to database: %s", settings.database)
        return cls(engine, connection)

    # ------------------------------------------------------------------
    # QueryGateway methods
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: dict | tuple | None = None) -> list[dict[str, Any]]:
        """Run a query and return all rows as dicts."""
        result = self._run(sql, params)
        try:
            return [dict(row) for row in result.mappings()]
        finally:
            result.close()

    def execute_scalar(self, sql: str, params: dict | tuple | None = None) -> Any:
        """Run a query and return the first column of the first row."""
        return self._run(sql, params).scalar()

    def stream(self, sql: str) -> Iterator[dict[str, Any]]:
        """Yield rows one at a time from a server-side cursor.

        ``stream_results`` makes pymysql use an unbuffered ``SSCursor``, so
        rows are fetched as the caller iterates.
        """
        result = self._run(sql, None, stream=True)
        try:
            for row in result.mappings():
                yield dict(row)
        except DBAPIError as e:
            raise self._translate(e, sql) from e
        finally:
            result.close()

    def close(self) -> None:
        """Close the connection and dispose of the engine's pool."""
        if self._connection is not None:
            self._connection.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> "MySQLGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(
        self, sql: str, params: dict | tuple | None, stream: bool = False
    ) -> CursorResult:
        execution_options = {"stream_results": True} if stream else {}
        try:
            return self._connection.exec_driver_sql(
                sql, params, execution_options=execution_options
            )
        except DBAPIError as e:
            raise self._translate(e, sql) from e

    @staticmethod
    def _translate(error: DBAPIError, sql: str) -> Exception:
        """Map a driver error to the db-backup error taxonomy."""
        if error.connection_invalidated:
            return DatabaseConnectionError(f"Connection lost: {error.orig or error}")
        return QueryError(f"Query failed ({sql[:80]}): {error.orig or error}")
