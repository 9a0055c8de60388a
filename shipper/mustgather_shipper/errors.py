"""
Error types for the must-gather shipper.

Every pipeline stage raises its own exception type so the entry point can
report which stage failed:
- ConfigError: Missing or invalid environment settings
- ArchiveIOError: Filesystem read/write failures while archiving
- SourceNotFoundError: Source directory missing or not a directory
- ArchiveError: tar/gzip writer failures
- CredentialFetchError: Credential issuer request failures
- UploadError: Object storage transfer failures

Invariants:
    - All errors inherit from ShipperError
    - Every error names the stage it was raised in
    - Error messages and details never contain secrets
"""

from __future__ import annotations

from typing import Any


class ShipperError(Exception):
    """Base exception for all shipper errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        stage: Pipeline stage that failed
        details: Additional error context
    """

    default_code = "SHIPPER_ERROR"
    default_stage = "pipeline"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.stage = stage or self.default_stage
        self.details = details or {}


class ConfigError(ShipperError):
    """Configuration is missing or invalid."""

    default_code = "CONFIG_ERROR"
    default_stage = "config"


class ArchiveIOError(ShipperError):
    """Filesystem read or write failed while building the archive.

    Raised when:
    - A source directory cannot be listed
    - A source file cannot be opened or read
    - The sink cannot be written, flushed or rewound, or is already closed
    """

    default_code = "ARCHIVE_IO_ERROR"
    default_stage = "archive"

    def __init__(
        self,
        message: str,
        path: str | None = None,
        stage: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code, stage=stage, details={"path": path})
        self.path = path


class SourceNotFoundError(ArchiveIOError):
    """The directory to archive does not exist or is not a directory."""

    default_code = "SOURCE_NOT_FOUND"


class ArchiveError(ShipperError):
    """The tar or gzip writer failed.

    The sink's partial contents are not a valid archive and must be
    discarded.
    """

    default_code = "ARCHIVE_ERROR"
    default_stage = "archive"

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


class CredentialFetchError(ShipperError):
    """Temporary storage credentials could not be obtained.

    Raised when:
    - The issuer is unreachable or the request times out
    - The issuer answers with a status other than 200
    - The response body is not valid JSON or lacks required fields
    """

    default_code = "CREDENTIAL_FETCH_ERROR"
    default_stage = "credentials"

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details={"url": url, "status_code": status_code})
        self.url = url
        self.status_code = status_code


class UploadError(ShipperError):
    """The archive could not be written to object storage."""

    default_code = "UPLOAD_ERROR"
    default_stage = "upload"

    def __init__(
        self,
        message: str,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, details={"bucket": bucket, "key": key})
        self.bucket = bucket
        self.key = key
