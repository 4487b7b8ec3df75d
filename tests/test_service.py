"""End-to-end tests for DatabaseBackupService over an in-memory gateway."""

import gzip
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from db_backup.cache import CACHE_FILE_NAME, InMemoryCache, JsonFileCache
from db_backup.config.models import BackupOptions, FtpSettings
from db_backup.errors import BackupDirectoryError, DatabaseConnectionError, UploadError
from db_backup.service import DatabaseBackupService
from db_backup.storage.ftp import FtpUploader

FTP_ON = FtpSettings(enabled=True, host="ftp.example.com", username="backups")


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def make_service(connection, backup_dir, clock, items_gateway):
    def _make(options=None, **kwargs):
        kwargs.setdefault("gateway", items_gateway)
        kwargs.setdefault("cache", InMemoryCache())
        return DatabaseBackupService(connection, backup_dir, options, clock=clock, **kwargs)

    return _make


class TestConstruction:
    """Test DatabaseBackupService wiring."""

    def test_creates_backup_directory(self, make_service, backup_dir):
        make_service()
        assert backup_dir.is_dir()

    def test_unusable_directory_raises(self, connection, tmp_path, items_gateway):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(BackupDirectoryError):
            DatabaseBackupService(connection, blocker / "backups", gateway=items_gateway)

    @patch("db_backup.service.MySQLGateway")
    def test_connects_when_no_gateway_given(self, mock_gateway_cls, connection, backup_dir):
        service = DatabaseBackupService(connection, backup_dir)

        mock_gateway_cls.connect.assert_called_once_with(connection)
        assert service.assembler is not None

    @patch("db_backup.service.MySQLGateway")
    def test_connection_failure_propagates(self, mock_gateway_cls, connection, backup_dir):
        mock_gateway_cls.connect.side_effect = DatabaseConnectionError("refused")

        with pytest.raises(DatabaseConnectionError):
            DatabaseBackupService(connection, backup_dir)

    def test_default_cache_is_json_file(self, connection, backup_dir, items_gateway):
        service = DatabaseBackupService(connection, backup_dir, gateway=items_gateway)

        assert isinstance(service._cache, JsonFileCache)
        assert service._cache.path == backup_dir / CACHE_FILE_NAME

    def test_uploader_built_when_ftp_enabled(self, make_service):
        assert make_service()._uploader is None
        service = make_service(BackupOptions(ftp=FTP_ON))
        assert isinstance(service._uploader, FtpUploader)


class TestCreateBackup:
    """Test a full backup run through the service."""

    def test_plain_backup(self, make_service, backup_dir):
        result = make_service().create_backup()

        assert result.success
        path = backup_dir / "backup_shop_2024-03-01_12-00-00.sql"
        content = path.read_text(encoding="utf-8")
        assert "-- Database Backup: shop" in content
        assert "DROP TABLE IF EXISTS `items`;" in content
        assert "(2, 'O\\'Brien');" in content
        assert "DROP VIEW IF EXISTS `items_view`;" in content
        assert "DEFINER=" not in content

    def test_compressed_backup(self, make_service, backup_dir):
        result = make_service(BackupOptions(compress_output=True)).create_backup()

        assert result.file_name == "backup_shop_2024-03-01_12-00-00.sql.gz"
        content = gzip.decompress((backup_dir / result.file_name).read_bytes()).decode("utf-8")
        assert content.startswith("-- -------------------------------------------------------\n")

    def test_progress_callback(self, make_service):
        calls = []
        make_service(progress=lambda *a: calls.append(a)).create_backup()

        assert calls[-1] == ("Cleaning old backups", 6, 6)

    def test_retention_after_repeated_runs(self, make_service, clock, backup_dir):
        service = make_service(BackupOptions(max_backup_count=3))

        for _ in range(5):
            assert service.create_backup().success
            clock.advance(seconds=1)

        assert len(list(backup_dir.glob("*.sql"))) == 3

    def test_listing_reflects_new_backup(self, make_service):
        service = make_service()
        assert service.list_backups() == []

        result = service.create_backup()

        assert [b.file_name for b in service.list_backups()] == [result.file_name]

    def test_backup_file_vanishing_during_cleanup(self, make_service, backup_dir):
        """Another process deletes a backup between listing and stat."""
        service = make_service()
        real_iterdir, real_is_file = Path.iterdir, Path.is_file

        def iterdir(self):
            yield from real_iterdir(self)
            yield self / "backup_shop_gone.sql"

        def is_file(self):
            return self.name == "backup_shop_gone.sql" or real_is_file(self)

        with patch.object(Path, "iterdir", iterdir), patch.object(Path, "is_file", is_file):
            result = service.create_backup()
            listed = [b.file_name for b in service.list_backups()]

        assert result.success
        assert (backup_dir / result.file_name).is_file()
        assert listed == [result.file_name]


class TestFileOperations:
    """Test delete, download and cleanup through the service."""

    def test_delete_then_download_fails(self, make_service):
        service = make_service()
        name = service.create_backup().file_name

        assert service.prepare_download(name).success
        assert service.delete_backup(name).success
        assert not service.prepare_download(name).success
        assert service.list_backups() == []

    def test_clean_old_backups(self, make_service, backup_dir):
        service = make_service(BackupOptions(max_backup_count=1))
        backup_dir.mkdir(exist_ok=True)
        (backup_dir / "a.sql").write_text("a")
        (backup_dir / "b.sql").write_text("b")

        report = service.clean_old_backups()

        assert len(report.deleted) == 1
        assert report.success


class TestFtpUpload:
    """Test upload_backup_to_ftp()."""

    def test_disabled(self, make_service):
        result = make_service().upload_backup_to_ftp("x.sql")

        assert not result.success
        assert result.message == "FTP backup feature is not active."

    def test_invalid_file(self, make_service):
        service = make_service(BackupOptions(ftp=FTP_ON), uploader=MagicMock())

        result = service.upload_backup_to_ftp("missing.sql")

        assert result.message == "Backup file to upload not found or invalid."

    def test_success(self, make_service, backup_dir):
        uploader = MagicMock()
        service = make_service(BackupOptions(ftp=FTP_ON), uploader=uploader)
        name = service.create_backup().file_name
        uploader.reset_mock()

        result = service.upload_backup_to_ftp(name)

        assert result.success
        assert result.message == "Backup file successfully uploaded to FTP server."
        uploader.upload.assert_called_once_with(backup_dir / name, name)

    def test_failure(self, make_service):
        uploader = MagicMock()
        service = make_service(BackupOptions(ftp=FTP_ON), uploader=uploader)
        name = service.create_backup().file_name
        uploader.upload.side_effect = UploadError("530 Login incorrect")

        result = service.upload_backup_to_ftp(name)

        assert not result.success
        assert result.message == "An error occurred during FTP upload: 530 Login incorrect"


class TestDiagnostics:
    def test_database_connection_and_version(self, make_service):
        service = make_service()

        assert service.test_database_connection() is True
        assert service.get_database_version() == "8.0.36"

    def test_database_connection_failure(self, make_service, make_gateway):
        gateway = make_gateway(fail_on={"SELECT 1": DatabaseConnectionError("gone")})

        assert make_service(gateway=gateway).test_database_connection() is False

    def test_ftp_connection(self, make_service):
        assert make_service().test_ftp_connection() is False

        uploader = MagicMock()
        uploader.test_connection.return_value = True
        service = make_service(BackupOptions(ftp=FTP_ON), uploader=uploader)
        assert service.test_ftp_connection() is True

    def test_context_manager_closes_gateway(self, make_service, items_gateway):
        with make_service():
            pass
        assert items_gateway.closed
