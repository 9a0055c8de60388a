"""
Configuration management for the must-gather shipper.

All configuration is done via environment variables - there are no config
files. This module provides typed configuration classes with validation.

Invariants:
    - All settings except the issuer URL have defaults matching the
      historical fixed paths and behavior
    - Secrets are never logged or exposed in error messages
    - Skipping TLS verification is an explicit, named setting

How to change safely:
    - Add new settings with defaults that keep current behavior
    - Never flip the insecure_skip_verify default silently
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIR = "./must-gather/"
DEFAULT_ARCHIVE_PATH = "./must-gather.tar.gz"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name} '{raw}'. Must be a number")


@dataclass(frozen=True)
class CredentialServiceConfig:
    """Credential issuer (Hydra) configuration.

    Attributes:
        url: Endpoint that issues temporary storage credentials
        username: Basic-auth username
        password: Basic-auth password
        file_name: Value sent as "fileName" in the request body
            (defaults to the archive file name when empty)
        insecure_skip_verify: Do not validate the issuer's TLS certificate
        timeout_seconds: Request timeout, None for no timeout
    """

    url: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    file_name: str = ""
    insecure_skip_verify: bool = True
    timeout_seconds: float | None = 60.0

    @classmethod
    def from_env(cls) -> CredentialServiceConfig:
        """Load configuration from environment variables."""
        timeout = _env_float("HYDRA_TIMEOUT_SECONDS", "60")
        return cls(
            url=os.getenv("HYDRA_URL", ""),
            username=os.getenv("HYDRA_USER", ""),
            password=os.getenv("HYDRA_PASS", ""),
            file_name=os.getenv("HYDRA_FILE_NAME", ""),
            insecure_skip_verify=_env_bool("HYDRA_INSECURE_SKIP_VERIFY", "true"),
            timeout_seconds=timeout if timeout > 0 else None,
        )


@dataclass(frozen=True)
class BundleConfig:
    """Local paths for the bundle being shipped.

    Attributes:
        source_dir: Directory to archive
        archive_path: Temporary archive file (created or overwritten)
    """

    source_dir: str = DEFAULT_SOURCE_DIR
    archive_path: str = DEFAULT_ARCHIVE_PATH

    @classmethod
    def from_env(cls) -> BundleConfig:
        """Load configuration from environment variables."""
        return cls(
            source_dir=os.getenv("BUNDLE_SOURCE_DIR", DEFAULT_SOURCE_DIR),
            archive_path=os.getenv("BUNDLE_ARCHIVE_PATH", DEFAULT_ARCHIVE_PATH),
        )

    @property
    def archive_name(self) -> str:
        return Path(self.archive_path).name


@dataclass(frozen=True)
class S3Config:
    """Object storage client configuration.

    Bucket, key, region and keys come from the credential issuer; only the
    transport can be tuned here.

    Attributes:
        endpoint_url: Custom endpoint URL (for MinIO or other S3-compatible stores)
        content_type: Content-Type stored with the uploaded object
    """

    endpoint_url: str | None = None
    content_type: str = "application/gzip"

    @classmethod
    def from_env(cls) -> S3Config:
        """Load configuration from environment variables."""
        return cls(
            endpoint_url=os.getenv("S3_ENDPOINT") or None,
            content_type=os.getenv("S3_CONTENT_TYPE", "application/gzip"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass(frozen=True)
class ShipperConfig:
    """Complete shipper configuration.

    Attributes:
        hydra: Credential issuer configuration
        bundle: Source directory and archive path
        s3: Object storage client configuration
        observability: Logging configuration
    """

    hydra: CredentialServiceConfig = field(default_factory=CredentialServiceConfig)
    bundle: BundleConfig = field(default_factory=BundleConfig)
    s3: S3Config = field(default_factory=S3Config)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ShipperConfig:
        """Load complete configuration from environment variables.

        Returns:
            ShipperConfig with all sections populated from environment.

        Raises:
            ConfigError: If required configuration is missing or invalid.
        """
        config = cls(
            hydra=CredentialServiceConfig.from_env(),
            bundle=BundleConfig.from_env(),
            s3=S3Config.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def with_overrides(
        self,
        source_dir: str | None = None,
        archive_path: str | None = None,
    ) -> ShipperConfig:
        """Return a copy with bundle paths replaced where given."""
        bundle = self.bundle
        if source_dir:
            bundle = replace(bundle, source_dir=source_dir)
        if archive_path:
            bundle = replace(bundle, archive_path=archive_path)
        return replace(self, bundle=bundle)

    @property
    def request_file_name(self) -> str:
        """File name announced to the credential issuer."""
        return self.hydra.file_name or self.bundle.archive_name

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ConfigError: If configuration is invalid.
        """
        if not self.hydra.url:
            raise ConfigError("HYDRA_URL is required")
        if not self.hydra.url.startswith(("http://", "https://")):
            raise ConfigError("HYDRA_URL must be an http:// or https:// URL")
        if not self.bundle.source_dir:
            raise ConfigError("BUNDLE_SOURCE_DIR must not be empty")
        if not self.bundle.archive_path:
            raise ConfigError("BUNDLE_ARCHIVE_PATH must not be empty")
        if self.observability.log_format not in ("json", "text"):
            raise ConfigError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if not self.hydra.username or not self.hydra.password:
            logger.warning(
                "HYDRA_USER or HYDRA_PASS is empty; the issuer will likely reject the request"
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Shipper configuration loaded",
            extra={
                "hydra_url": self.hydra.url,
                "hydra_user": self.hydra.username,
                "hydra_password_set": bool(self.hydra.password),
                "insecure_skip_verify": self.hydra.insecure_skip_verify,
                "timeout_seconds": self.hydra.timeout_seconds,
                "source_dir": self.bundle.source_dir,
                "archive_path": self.bundle.archive_path,
                "s3_endpoint": self.s3.endpoint_url,
                "log_level": self.observability.log_level,
            },
        )
