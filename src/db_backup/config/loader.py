"""TOML configuration loader for db-backup.

Example ``db-backup.toml``::

    [profiles.local]
    host = "localhost"
    database = "shop"
    user = "backup"
    password = "secret"
    backup_dir = "backups/shop"

    [options]
    max_backup_count = 5
    compress_output = true
    excluded_tables = ["sessions"]

    [options.table_modes]
    audit_log = "structure_only"

    [options.ftp]
    enabled = true
    host = "ftp.example.com"
    username = "backups"
    path = "/mysql/"
"""

import tomllib
from pathlib import Path

from db_backup.config.models import BackupConfig, BackupOptions, DatabaseProfile

DEFAULT_CONFIG_FILE = "db-backup.toml"


def load_backup_config(config_path: Path | str | None = None) -> BackupConfig:
    """Load backup configuration from a TOML file.

    Args:
        config_path: Path to the TOML file.  Defaults to ``db-backup.toml``
            in the current working directory.

    Returns:
        ``BackupConfig`` with all profiles and the shared options.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        pydantic.ValidationError: If a profile or option is invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Backup config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with at least one [profiles.<name>] section."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    options = BackupOptions.model_validate(data.get("options", {}))

    return BackupConfig(profiles=profiles, options=options)
