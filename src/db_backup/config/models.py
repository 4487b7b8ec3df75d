"""Pydantic models for connection settings and backup options."""

import re
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_CHARSET = "utf8mb4"

_CHARSET_DISALLOWED = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_charset(charset: str | None) -> str:
    """Reduce a charset name to characters that are safe inside ``SET NAMES``.

    The charset is interpolated into SQL text rather than bound as a
    parameter, so everything except ASCII letters, digits and underscore is
    dropped.  An empty result falls back to ``utf8mb4``.

    Example:
        >>> sanitize_charset("utf8mb4; DROP TABLE users")
        'utf8mb4DROPTABLEusers'
        >>> sanitize_charset("';--")
        'utf8mb4'
    """
    cleaned = _CHARSET_DISALLOWED.sub("", charset or "")
    return cleaned or DEFAULT_CHARSET


# ============================================================================
# Table modes
# ============================================================================


class TableMode(str, Enum):
    """Per-table backup granularity."""

    FULL = "full"
    STRUCTURE_ONLY = "structure_only"
    DATA_ONLY = "data_only"

    @property
    def includes_structure(self) -> bool:
        return self is not TableMode.DATA_ONLY

    @property
    def includes_data(self) -> bool:
        return self is not TableMode.STRUCTURE_ONLY


# ============================================================================
# Connection Models
# ============================================================================


class ConnectionSettings(BaseModel):
    """Connection parameters for a MySQL/MariaDB server."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = "localhost"
    database: str = Field(validation_alias=AliasChoices("database", "dbname"))
    user: str = "root"
    password: str = Field(default="", validation_alias=AliasChoices("password", "pass"))
    charset: str = DEFAULT_CHARSET
    port: int = 3306

    @property
    def effective_charset(self) -> str:
        """Charset value that is safe to embed in SQL text."""
        return sanitize_charset(self.charset)


class DatabaseProfile(ConnectionSettings):
    """Named connection profile from db-backup.toml."""

    description: str = ""
    backup_dir: str = "backups"


# ============================================================================
# Backup Options
# ============================================================================


class FtpSettings(BaseModel):
    """Remote upload settings.  Disabled unless ``enabled`` is set."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    host: str = ""
    username: str = ""
    password: str = ""
    port: int = 21
    path: str = "/"  # remote base directory
    ssl: bool = False
    passive: bool = True

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return value.rstrip("/") + "/"


class BackupOptions(BaseModel):
    """Options controlling content, compression, and retention of backups.

    Field names are snake_case; the camelCase spellings (``maxBackupCount``,
    ``ftpConfig``, ...) are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cache_time: int = Field(
        default=3600,
        ge=0,
        validation_alias=AliasChoices("cache_time", "cacheTime"),
    )
    max_backup_count: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("max_backup_count", "maxBackupCount"),
    )
    max_backup_age_days: int = Field(
        default=365,
        ge=1,
        validation_alias=AliasChoices("max_backup_age_days", "maxBackupAgeDays"),
    )
    excluded_tables: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("excluded_tables", "excludedTables"),
    )
    table_modes: dict[str, TableMode] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("table_modes", "tableModes"),
    )
    compress_output: bool = Field(
        default=False,
        validation_alias=AliasChoices("compress_output", "compressOutput"),
    )
    remove_definers: bool = Field(
        default=True,
        validation_alias=AliasChoices("remove_definers", "removeDefiners"),
    )
    ftp: FtpSettings = Field(
        default_factory=FtpSettings,
        validation_alias=AliasChoices("ftp", "ftpConfig"),
    )

    def is_excluded(self, table: str) -> bool:
        return table in self.excluded_tables

    def mode_for(self, table: str) -> TableMode:
        """Return the configured mode for *table* (``FULL`` when unset)."""
        return self.table_modes.get(table, TableMode.FULL)


class BackupConfig(BaseModel):
    """Complete configuration loaded from db-backup.toml."""

    profiles: dict[str, DatabaseProfile]
    options: BackupOptions = Field(default_factory=BackupOptions)
