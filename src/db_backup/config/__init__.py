"""Configuration management: profiles, TOML loading, and option models.

Usage:
    >>> from db_backup.config import load_backup_config, BackupOptions, ConnectionSettings
"""

from db_backup.config.loader import load_backup_config
from db_backup.config.models import (
    BackupConfig,
    BackupOptions,
    ConnectionSettings,
    DatabaseProfile,
    FtpSettings,
    TableMode,
    sanitize_charset,
)

__all__ = [
    "load_backup_config",
    "BackupConfig",
    "BackupOptions",
    "ConnectionSettings",
    "DatabaseProfile",
    "FtpSettings",
    "TableMode",
    "sanitize_charset",
]
