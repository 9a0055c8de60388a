"""
Object storage uploader for the must-gather shipper.

Writes the finished archive to the bucket/key named by the credential issuer,
authenticating with the temporary keys it returned.

Invariants:
    - One put_object call per upload, attempted exactly once
    - The body is sent from its current position, which the caller rewinds
    - Temporary keys are never logged
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, BinaryIO

from aiobotocore.config import AioConfig
from aiobotocore.session import AioSession, get_session
from botocore.exceptions import BotoCoreError, ClientError

from ..config import S3Config
from ..credentials import Credentials
from ..errors import UploadError

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Result of an upload.

    Attributes:
        bucket: Destination bucket
        key: Destination object key
        size_bytes: Bytes sent
        etag: ETag reported by object storage
    """

    bucket: str
    key: str
    size_bytes: int
    etag: str | None = None


class Uploader:
    """Uploads a byte source to object storage.

    Attributes:
        s3_config: Endpoint and content type settings

    Example:
        >>> uploader = Uploader(config.s3)
        >>> result = await uploader.upload(creds, sink)
    """

    def __init__(
        self,
        s3_config: S3Config | None = None,
        session: AioSession | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            s3_config: Optional S3 settings (defaults to AWS endpoints)
            session: Optional aiobotocore session (tests inject a fake one)
        """
        self.s3_config = s3_config or S3Config()
        self._session = session

    def _client_kwargs(self, credentials: Credentials) -> dict[str, Any]:
        client_kwargs: dict[str, Any] = {
            "region_name": credentials.region,
            "aws_access_key_id": credentials.access_key,
            "aws_secret_access_key": credentials.secret_key,
            "aws_session_token": credentials.session_token,
            "config": AioConfig(retries={"max_attempts": 1, "mode": "standard"}),
        }

        if self.s3_config.endpoint_url:
            client_kwargs["endpoint_url"] = self.s3_config.endpoint_url

        return client_kwargs

    async def upload(self, credentials: Credentials, body: BinaryIO) -> UploadResult:
        """Upload the remaining content of body to credentials.bucket_name/key.

        Args:
            credentials: Temporary credentials and destination from the issuer
            body: Readable, seekable binary source positioned at its start

        Returns:
            UploadResult for the stored object

        Raises:
            UploadError: On transport, authorization or read failure
        """
        bucket = credentials.bucket_name
        key = credentials.key

        try:
            size_bytes = _remaining_bytes(body)
        except (OSError, ValueError) as e:
            raise UploadError(f"Cannot read upload body: {e}", bucket=bucket, key=key) from e

        logger.info(
            "Uploading archive",
            extra={
                "bucket": bucket,
                "key": key,
                "region": credentials.region,
                "size_bytes": size_bytes,
            },
        )

        session = self._session or get_session()
        try:
            async with session.create_client("s3", **self._client_kwargs(credentials)) as s3:
                response = await s3.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=body,
                    ContentLength=size_bytes,
                    ContentType=self.s3_config.content_type,
                )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise UploadError(
                f"Upload to s3://{bucket}/{key} rejected ({code}): {e}", bucket=bucket, key=key
            ) from e
        except (BotoCoreError, OSError) as e:
            raise UploadError(
                f"Upload to s3://{bucket}/{key} failed: {e}", bucket=bucket, key=key
            ) from e

        result = UploadResult(
            bucket=bucket,
            key=key,
            size_bytes=size_bytes,
            etag=response.get("ETag"),
        )
        logger.info(
            "Archive uploaded",
            extra={"bucket": bucket, "key": key, "size_bytes": size_bytes, "etag": result.etag},
        )
        return result


def _remaining_bytes(body: BinaryIO) -> int:
    """Bytes between the current position and the end of body."""
    position = body.tell()
    end = body.seek(0, os.SEEK_END)
    body.seek(position)
    return end - position
