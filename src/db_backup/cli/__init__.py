"""CLI module for MySQL/MariaDB logical backups.

Provides commands for creating, listing, pruning, deleting and uploading
backups of a database profile from db-backup.toml.

Usage:
    db-backup profiles
    db-backup --profile local check
    db-backup --profile local create
    db-backup list
    db-backup delete backup_shop_2024-01-01_00-00-00.sql --yes
    db-backup clean
    db-backup download backup_shop_2024-01-01_00-00-00.sql.gz
    db-backup upload backup_shop_2024-01-01_00-00-00.sql.gz

Commands:
    profiles  - List configured profiles
    check     - Test the database (and FTP) connection
    create    - Create a backup
    list      - List existing backups
    delete    - Delete one backup
    clean     - Apply the retention limits
    download  - Resolve a backup's path and MIME type
    upload    - Upload one backup to the FTP server
"""

import argparse
import sys
from collections.abc import Callable

from pydantic import ValidationError
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
)
from rich.prompt import Confirm
from rich.table import Table

from db_backup.config.loader import load_backup_config
from db_backup.errors import BackupError
from db_backup.factory import ProfileNotFoundError, get_active_profile, service_for_profile
from db_backup.log import configure_logging
from db_backup.service import DatabaseBackupService

console = Console()


# ============================================================================
# Service setup (CLI-internal helper)
# ============================================================================


def _open_service(
    args: argparse.Namespace,
    progress: Callable[[str, int, int], None] | None = None,
) -> DatabaseBackupService | None:
    """Build a connected service for the selected profile.

    Also points the log files at the profile's backup directory.  Errors are
    printed and ``None`` is returned.

    Args:
        args: Parsed arguments with config, profile, env_prefix, verbose.
        progress: Optional progress callback for ``create_backup()``.

    Returns:
        DatabaseBackupService, or None if setup failed.
    """
    try:
        config = load_backup_config(args.config)
        _, profile = get_active_profile(args.profile, config, args.env_prefix)
    except (FileNotFoundError, ProfileNotFoundError, ValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None

    configure_logging(log_dir=profile.backup_dir, verbose=args.verbose)

    try:
        return service_for_profile(profile, config.options, progress=progress)
    except BackupError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return None


# ============================================================================
# Command implementations
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db-backup.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db-backup.toml not found or invalid.
    """
    try:
        config = load_backup_config(args.config)
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Database")
    table.add_column("Host")
    table.add_column("Backup Directory")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(
            f"[bold cyan]{name}[/bold cyan]",
            profile.database,
            f"{profile.host}:{profile.port}",
            profile.backup_dir,
            profile.description or "",
        )

    console.print(table)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Test the database connection and, if enabled, the FTP connection.

    Returns:
        0 if every enabled check passes, 1 otherwise.
    """
    service = _open_service(args)
    if service is None:
        return 1

    with service:
        ok = service.test_database_connection()
        if ok:
            console.print(
                f"[bold green]v[/bold green] Database connection: "
                f"[bold cyan]{service.connection.database}[/bold cyan] "
                f"(server {service.get_database_version()})"
            )
        else:
            console.print("[bold red]x[/bold red] Database connection failed")

        if service.options.ftp.enabled:
            if service.test_ftp_connection():
                console.print(
                    f"[bold green]v[/bold green] FTP connection: {service.options.ftp.host}"
                )
            else:
                console.print("[bold red]x[/bold red] FTP connection failed")
                ok = False
        else:
            console.print("  FTP upload: [dim]disabled[/dim]")

    return 0 if ok else 1


def cmd_create(args: argparse.Namespace) -> int:
    """Create a backup, showing a progress bar while it runs.

    Returns:
        0 on success, 1 on failure.
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Connecting...", total=None)

        def on_progress(status: str, current: int, total: int) -> None:
            progress.update(task, description=status, completed=current, total=total)

        service = _open_service(args, progress=on_progress)
        if service is None:
            return 1

        with service:
            result = service.create_backup()

    if result.success:
        console.print(f"[bold green]v[/bold green] {result.message}")
        return 0
    console.print(f"[bold red]x[/bold red] {result.message}")
    return 1


def cmd_list(args: argparse.Namespace) -> int:
    """Show existing backups, newest first.

    Returns:
        0 on success, 1 on failure.
    """
    service = _open_service(args)
    if service is None:
        return 1

    with service:
        try:
            backups = service.list_backups()
        except BackupError as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1

    if not backups:
        console.print("[yellow]No backups found.[/yellow]")
        return 0

    table = Table(title="Backups", show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Date")
    table.add_column("Compressed")

    for info in backups:
        table.add_row(
            info.file_name,
            info.size,
            info.date,
            "[green]yes[/green]" if info.compressed else "no",
        )

    console.print(table)
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete one backup file, asking for confirmation unless ``--yes``.

    Returns:
        0 on success or when declined, 1 on failure.
    """
    if not args.yes and not Confirm.ask(f"Delete [bold]{args.name}[/bold]?", console=console):
        console.print("[dim]Cancelled.[/dim]")
        return 0

    service = _open_service(args)
    if service is None:
        return 1

    with service:
        result = service.delete_backup(args.name)

    if result.success:
        console.print(f"[bold green]v[/bold green] {result.message}")
        return 0
    console.print(f"[bold red]x[/bold red] {result.message}")
    return 1


def cmd_clean(args: argparse.Namespace) -> int:
    """Apply the count and age retention limits.

    Returns:
        0 if every selected file was deleted, 1 otherwise.
    """
    service = _open_service(args)
    if service is None:
        return 1

    with service:
        try:
            report = service.clean_old_backups()
        except BackupError as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1

    for name in report.deleted:
        console.print(f"  [dim]deleted[/dim] {name}")
    for name, reason in report.errors.items():
        console.print(f"  [red]failed[/red] {name}: {reason}")

    console.print(f"Old backup cleanup completed. {len(report.deleted)} files deleted.")
    return 0 if report.success else 1


def cmd_download(args: argparse.Namespace) -> int:
    """Print the local path and MIME type of one backup.

    Returns:
        0 on success, 1 if the backup is unknown.
    """
    service = _open_service(args)
    if service is None:
        return 1

    with service:
        info = service.prepare_download(args.name)

    if not info.success:
        console.print(f"[bold red]x[/bold red] {info.message}")
        return 1

    table = Table(title="Download", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("File", info.file_name)
    table.add_row("Path", info.file_path)
    table.add_row("MIME type", info.mime_type)
    table.add_row("Compressed", "yes" if info.is_compressed else "no")
    console.print(table)
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    """Upload one backup to the configured FTP server.

    Returns:
        0 on success, 1 on failure.
    """
    service = _open_service(args)
    if service is None:
        return 1

    with service:
        result = service.upload_backup_to_ftp(args.name)

    if result.success:
        console.print(f"[bold green]v[/bold green] {result.message}")
        return 0
    console.print(f"[bold red]x[/bold red] {result.message}")
    return 1


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-backup",
        description="Logical backups of MySQL/MariaDB databases",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to db-backup.toml (default: ./db-backup.toml)",
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile to use (default: DB_BACKUP_PROFILE or the only profile)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_BACKUP_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List configured profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # check command
    p_check = subparsers.add_parser("check", help="Test database and FTP connections")
    p_check.set_defaults(func=cmd_check)

    # create command
    p_create = subparsers.add_parser("create", help="Create a backup")
    p_create.set_defaults(func=cmd_create)

    # list command
    p_list = subparsers.add_parser("list", help="List existing backups")
    p_list.set_defaults(func=cmd_list)

    # delete command
    p_delete = subparsers.add_parser("delete", help="Delete one backup")
    p_delete.add_argument("name", help="Backup file name")
    p_delete.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Delete without asking for confirmation",
    )
    p_delete.set_defaults(func=cmd_delete)

    # clean command
    p_clean = subparsers.add_parser("clean", help="Apply retention limits")
    p_clean.set_defaults(func=cmd_clean)

    # download command
    p_download = subparsers.add_parser(
        "download",
        help="Show the path and MIME type of a backup",
    )
    p_download.add_argument("name", help="Backup file name")
    p_download.set_defaults(func=cmd_download)

    # upload command
    p_upload = subparsers.add_parser("upload", help="Upload one backup to FTP")
    p_upload.add_argument("name", help="Backup file name")
    p_upload.set_defaults(func=cmd_upload)

    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
