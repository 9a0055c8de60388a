"""
Must-gather shipper.

Packages a must-gather diagnostic directory into a tar.gz archive, obtains
short-lived storage credentials from the issuing service and uploads the
archive to the bucket/key it names.

Components:
- archive: Streaming directory -> tar.gz packager
- credentials: Credential issuer client
- upload: Object storage uploader
- pipeline: Sequential archive -> fetch -> upload run
"""

from .archive import ArchiveSummary, DirectoryArchiver, archive_directory
from .config import ShipperConfig
from .credentials import CredentialClient, Credentials
from .errors import (
    ArchiveError,
    ArchiveIOError,
    ConfigError,
    CredentialFetchError,
    ShipperError,
    SourceNotFoundError,
    UploadError,
)
from .pipeline import PipelineResult, ShipperPipeline
from .upload import UploadResult, Uploader

__version__ = "0.1.0"

__all__ = [
    "ArchiveError",
    "ArchiveIOError",
    "ArchiveSummary",
    "ConfigError",
    "CredentialClient",
    "CredentialFetchError",
    "Credentials",
    "DirectoryArchiver",
    "PipelineResult",
    "ShipperConfig",
    "ShipperError",
    "ShipperPipeline",
    "SourceNotFoundError",
    "UploadError",
    "UploadResult",
    "Uploader",
    "archive_directory",
]
