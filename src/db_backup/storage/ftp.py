"""FTP / FTPS upload of finished backups.

Usage:
    from db_backup.storage.ftp import FtpUploader

    uploader = FtpUploader(options.ftp)
    uploader.upload(Path("backups/backup_shop.sql.gz"), "backup_shop.sql.gz")
"""

import ftplib
import logging
from pathlib import Path

from db_backup.config.models import FtpSettings
from db_backup.errors import UploadError

logger = logging.getLogger(__name__)

FTP_TIMEOUT = 30


class FtpUploader:
    """Uploads files to the remote directory configured in ``FtpSettings``.

    A fresh session is opened for every call and closed afterwards.  Missing
    segments of the remote path are created on the way.

    Args:
        settings: Remote host, credentials, base path and transport flags.
    """

    def __init__(self, settings: FtpSettings):
        self.settings = settings

    def upload(self, local_path: Path | str, remote_name: str) -> None:
        """Upload one file in binary mode.

        Args:
            local_path: File to send.
            remote_name: Name under the configured remote path.

        Raises:
            UploadError: If the connection, login, directory setup or
                transfer fails.
        """
        local_path = Path(local_path)
        if not local_path.is_file():
            raise UploadError(f"Local file to upload not found: {local_path}")

        remote_path = self.settings.path + remote_name
        ftp = self._open()
        try:
            self._ensure_remote_directory(ftp)
            with open(local_path, "rb") as f:
                ftp.storbinary(f"STOR {remote_name}", f)
        except ftplib.all_errors as e:
            logger.error("FTP upload failed for %s: %s", remote_path, e)
            raise UploadError(f"FTP upload failed for {remote_path}: {e}") from e
        finally:
            self._close(ftp)

        logger.info("File successfully uploaded to FTP: %s", remote_path)

    def test_connection(self) -> bool:
        """Return ``True`` if a session can be opened and logged into."""
        try:
            ftp = self._open()
        except UploadError as e:
            logger.error("FTP connection test failed: %s", e)
            return False
        self._close(ftp)
        return True

    def _open(self) -> ftplib.FTP:
        settings = self.settings
        if not settings.host or not settings.username:
            raise UploadError("Required FTP settings (host, username) are missing.")

        ftp: ftplib.FTP = ftplib.FTP_TLS() if settings.ssl else ftplib.FTP()
        try:
            ftp.connect(settings.host, settings.port, timeout=FTP_TIMEOUT)
            ftp.login(settings.username, settings.password)
            if settings.ssl:
                # Encrypt the data channel too
                ftp.prot_p()
            ftp.set_pasv(settings.passive)
        except ftplib.all_errors as e:
            self._close(ftp)
            raise UploadError(
                f"Could not connect to FTP server {settings.host}:{settings.port}: {e}"
            ) from e
        logger.debug("FTP session opened: %s:%s", settings.host, settings.port)
        return ftp

    def _ensure_remote_directory(self, ftp: ftplib.FTP) -> None:
        """Change into the configured path, creating each missing segment."""
        ftp.cwd("/")
        for segment in [s for s in self.settings.path.split("/") if s]:
            try:
                ftp.cwd(segment)
            except ftplib.error_perm:
                logger.info("Creating FTP directory: %s", segment)
                ftp.mkd(segment)
                ftp.cwd(segment)

    @staticmethod
    def _close(ftp: ftplib.FTP) -> None:
        try:
            ftp.quit()
        except ftplib.all_errors:
            ftp.close()
