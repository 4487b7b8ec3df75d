"""Artifact storage: local backup files and remote FTP upload.

Usage:
    >>> from db_backup.storage import LocalArtifactStore, FtpUploader
"""

from db_backup.storage.artifacts import (
    ArtifactEntry,
    ArtifactStore,
    LocalArtifactStore,
    is_backup_name,
    is_compressed_name,
)
from db_backup.storage.ftp import FtpUploader

__all__ = [
    "ArtifactEntry",
    "ArtifactStore",
    "LocalArtifactStore",
    "is_backup_name",
    "is_compressed_name",
    "FtpUploader",
]
