"""Tests for the db-backup command line."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from db_backup.backup.models import BackupFileInfo, BackupResult, DownloadInfo, OperationResult
from db_backup.backup.retention import CleanupReport
from db_backup.cli import main
from db_backup.errors import DatabaseConnectionError

CONFIG = """
[profiles.local]
database = "shop"
user = "backup"
backup_dir = "{backup_dir}"
description = "Shop database"
"""


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "db-backup.toml"
    path.write_text(CONFIG.format(backup_dir=(tmp_path / "out").as_posix()), encoding="utf-8")
    return path


@pytest.fixture
def output():
    """Swap the CLI console for one writing to a buffer."""
    buffer = io.StringIO()
    with patch("db_backup.cli.console", Console(file=buffer, width=200)):
        yield buffer


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("db_backup.cli.configure_logging") as mock_configure:
        yield mock_configure


@pytest.fixture
def service():
    """Patched DatabaseBackupService; yields the instance the CLI will get."""
    with patch("db_backup.factory.DatabaseBackupService") as mock_cls:
        instance = mock_cls.return_value
        instance.__enter__.return_value = instance
        yield instance


def run(config_path, *args):
    return main(["--config", str(config_path), *args])


class TestProfiles:
    def test_lists_profiles(self, config_path, output):
        assert run(config_path, "profiles") == 0

        text = output.getvalue()
        assert "local" in text
        assert "shop" in text
        assert "Shop database" in text

    def test_missing_config(self, tmp_path, output):
        assert run(tmp_path / "absent.toml", "profiles") == 1
        assert "Backup config not found" in output.getvalue()


class TestCreate:
    """Test the create command."""

    def test_success(self, config_path, output, service):
        service.create_backup.return_value = BackupResult(
            success=True,
            message="Backup successfully completed. File: backup_shop.sql",
            file_name="backup_shop.sql",
        )

        assert run(config_path, "create") == 0
        assert "Backup successfully completed" in output.getvalue()
        service.__exit__.assert_called_once()

    def test_failure(self, config_path, output, service):
        service.create_backup.return_value = BackupResult(
            success=False, message="An error occurred during backup: disk full"
        )

        assert run(config_path, "create") == 1
        assert "disk full" in output.getvalue()

    def test_connection_error(self, config_path, output):
        with patch(
            "db_backup.factory.DatabaseBackupService",
            side_effect=DatabaseConnectionError("Connection refused"),
        ):
            assert run(config_path, "create") == 1
        assert "Connection refused" in output.getvalue()

    def test_log_files_go_to_backup_dir(
        self, config_path, output, service, no_logging_setup, tmp_path
    ):
        service.create_backup.return_value = BackupResult(success=True, message="ok")

        run(config_path, "--verbose", "create")

        no_logging_setup.assert_called_with(
            log_dir=(tmp_path / "out").as_posix(), verbose=True
        )

    def test_unknown_profile(self, config_path, output):
        assert main(["--config", str(config_path), "--profile", "nope", "create"]) == 1
        assert "Profile 'nope' not found" in output.getvalue()


class TestList:
    def test_table(self, config_path, output, service):
        service.list_backups.return_value = [
            BackupFileInfo(
                file_name="backup_shop_2024-03-01_12-00-00.sql.gz",
                size="1.5 KB",
                date="2024-03-01 12:00:00",
                compressed=True,
            )
        ]

        assert run(config_path, "list") == 0

        text = output.getvalue()
        assert "backup_shop_2024-03-01_12-00-00.sql.gz" in text
        assert "1.5 KB" in text

    def test_empty(self, config_path, output, service):
        service.list_backups.return_value = []

        assert run(config_path, "list") == 0
        assert "No backups found." in output.getvalue()


class TestDelete:
    def test_with_yes(self, config_path, output, service):
        service.delete_backup.return_value = OperationResult(
            success=True, message="Backup file successfully deleted."
        )

        assert run(config_path, "delete", "a.sql", "--yes") == 0
        service.delete_backup.assert_called_once_with("a.sql")

    @patch("db_backup.cli.Confirm.ask", return_value=False)
    def test_declined(self, mock_ask, config_path, output, service):
        assert run(config_path, "delete", "a.sql") == 0

        service.delete_backup.assert_not_called()
        assert "Cancelled." in output.getvalue()

    def test_not_found(self, config_path, output, service):
        service.delete_backup.return_value = OperationResult(
            success=False, message="Backup file to delete not found or invalid."
        )

        assert run(config_path, "delete", "a.sql", "-y") == 1


class TestClean:
    def test_reports_deleted_and_failed(self, config_path, output, service):
        service.clean_old_backups.return_value = CleanupReport(
            deleted=["old.sql"], errors={"locked.sql": "permission denied"}
        )

        assert run(config_path, "clean") == 1

        text = output.getvalue()
        assert "old.sql" in text
        assert "locked.sql: permission denied" in text
        assert "1 files deleted." in text


class TestDownloadAndUpload:
    def test_download(self, config_path, output, service):
        service.prepare_download.return_value = DownloadInfo(
            success=True,
            message="File ready for download.",
            file_path="/backups/a.sql.gz",
            file_name="a.sql.gz",
            mime_type="application/gzip",
            is_compressed=True,
        )

        assert run(config_path, "download", "a.sql.gz") == 0
        assert "application/gzip" in output.getvalue()

    def test_download_missing(self, config_path, output, service):
        service.prepare_download.return_value = DownloadInfo(
            success=False, message="Backup file not found or invalid."
        )

        assert run(config_path, "download", "x.sql") == 1

    def test_upload(self, config_path, output, service):
        service.upload_backup_to_ftp.return_value = OperationResult(
            success=False, message="FTP backup feature is not active."
        )

        assert run(config_path, "upload", "a.sql") == 1
        assert "FTP backup feature is not active." in output.getvalue()


class TestCheck:
    def test_database_ok_ftp_disabled(self, config_path, output, service):
        service.test_database_connection.return_value = True
        service.get_database_version.return_value = "8.0.36"
        service.connection.database = "shop"
        service.options.ftp.enabled = False

        assert run(config_path, "check") == 0

        text = output.getvalue()
        assert "8.0.36" in text
        assert "disabled" in text

    def test_ftp_failure(self, config_path, output, service):
        service.test_database_connection.return_value = True
        service.options.ftp.enabled = True
        service.test_ftp_connection.return_value = False

        assert run(config_path, "check") == 1
        assert "FTP connection failed" in output.getvalue()


class TestArguments:
    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_delete_requires_name(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["delete"])
        assert exc_info.value.code == 2

    def test_env_prefix_passed_through(self, config_path):
        with patch("db_backup.cli.cmd_list", return_value=0) as mock_list:
            assert main(["--env-prefix", "APP_", "list"]) == 0
        assert mock_list.call_args.args[0].env_prefix == "APP_"
