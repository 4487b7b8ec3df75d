"""Backup service factory.

Builds a ``DatabaseBackupService`` from a named profile in
``db-backup.toml``.

Profile resolution:
1. Explicit profile name (``--profile`` on the CLI)
2. ``<PREFIX>DB_BACKUP_PROFILE`` env var
3. The only profile, when exactly one is configured
4. Raise ProfileNotFoundError
"""

import os
from collections.abc import Callable
from pathlib import Path

from db_backup.backup.assembler import ProgressObserver
from db_backup.config.loader import load_backup_config
from db_backup.config.models import BackupConfig, BackupOptions, DatabaseProfile
from db_backup.service import DatabaseBackupService

PROFILE_ENV_VAR = "DB_BACKUP_PROFILE"
PASSWORD_ENV_VAR = "DB_BACKUP_PASSWORD"


# ============================================================================
# Profile Resolution
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when no database profile can be selected."""

    pass


def get_active_profile_name(
    profile_name: str | None = None,
    config: BackupConfig | None = None,
    env_prefix: str = "",
) -> str:
    """Resolve which profile to use.

    Priority:
    1. ``profile_name`` argument
    2. ``{env_prefix}DB_BACKUP_PROFILE`` env var
    3. The single configured profile

    Args:
        profile_name: Explicit profile name
        config: Loaded configuration (needed for the single-profile fallback)
        env_prefix: Prefix for the environment variable names (e.g. "SHOP_")

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile can be determined
    """
    if profile_name:
        return profile_name

    env_profile = os.environ.get(f"{env_prefix}{PROFILE_ENV_VAR}")
    if env_profile:
        return env_profile

    if config is not None and len(config.profiles) == 1:
        return next(iter(config.profiles))

    available = ", ".join(config.profiles) if config and config.profiles else "none"
    raise ProfileNotFoundError(
        "No database profile selected.\n"
        f"Pass --profile <name> or set {env_prefix}{PROFILE_ENV_VAR}=<name>\n"
        f"Available profiles: {available}"
    )


def get_active_profile(
    profile_name: str | None = None,
    config: BackupConfig | None = None,
    env_prefix: str = "",
) -> tuple[str, DatabaseProfile]:
    """Get the active profile name and its configuration.

    A profile without a password takes it from
    ``{env_prefix}DB_BACKUP_PASSWORD`` when that variable is set.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile is selected or the name is unknown
    """
    if config is None:
        config = load_backup_config()

    name = get_active_profile_name(profile_name, config, env_prefix)
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in config.\n"
            f"Available profiles: {', '.join(config.profiles) or 'none'}"
        )

    profile = config.profiles[name]
    env_password = os.environ.get(f"{env_prefix}{PASSWORD_ENV_VAR}")
    if not profile.password and env_password:
        profile = profile.model_copy(update={"password": env_password})

    return name, profile


# ============================================================================
# Service Factory
# ============================================================================


def create_service(
    profile_name: str | None = None,
    config_path: Path | str | None = None,
    env_prefix: str = "",
    progress: ProgressObserver | Callable[[str, int, int], None] | None = None,
) -> DatabaseBackupService:
    """Create a backup service for a configured profile.

    Args:
        profile_name: Profile to use (see module docstring for resolution)
        config_path: Path to db-backup.toml (default: current directory)
        env_prefix: Prefix for the environment variable names
        progress: Progress observer or callback for ``create_backup()``

    Returns:
        Connected DatabaseBackupService

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ProfileNotFoundError: If no usable profile is found
        BackupError: If the directory or database connection fails

    Example:
        >>> service = create_service("local")
        >>> result = service.create_backup()
    """
    config = load_backup_config(config_path)
    _, profile = get_active_profile(profile_name, config, env_prefix)

    return service_for_profile(profile, config.options, progress=progress)


def service_for_profile(
    profile: DatabaseProfile,
    options: BackupOptions,
    progress: ProgressObserver | Callable[[str, int, int], None] | None = None,
) -> DatabaseBackupService:
    """Connect a backup service for an already resolved profile.

    Backups go to the profile's ``backup_dir``.

    Raises:
        BackupError: If the directory or database connection fails
    """
    return DatabaseBackupService(
        profile,
        profile.backup_dir,
        options,
        progress=progress,
    )
