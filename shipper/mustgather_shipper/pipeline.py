"""
Ship pipeline for must-gather bundles.

Runs the three stages strictly in order:
1. Archive the source directory into the temporary archive file
2. Fetch temporary storage credentials from the issuer
3. Rewind the archive file and upload it

Invariants:
    - Stages never overlap; each completes before the next starts
    - Any failure aborts the remaining stages (no upload after a failure)
    - The archive file handle is owned here and closed on every exit path
    - Nothing is retried

How to change safely:
    - Streaming the archive straight into the upload is a different design
      (no rewind, no local file); do not retrofit it here
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from .archive import ArchiveSummary, DirectoryArchiver
from .config import ShipperConfig
from .credentials import CredentialClient
from .errors import ArchiveIOError
from .upload import Uploader, UploadResult

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of a complete ship run.

    Attributes:
        archive_path: Local archive file that was uploaded
        archive: Summary of the archive stage
        upload: Result of the upload stage
        duration_ms: Total run duration
    """

    archive_path: str
    archive: ArchiveSummary
    upload: UploadResult
    duration_ms: int


class ShipperPipeline:
    """Archives a must-gather directory and ships it to object storage.

    Attributes:
        config: Shipper configuration
        credential_client: Client for the credential issuer
        uploader: Object storage uploader

    Example:
        >>> pipeline = ShipperPipeline(ShipperConfig.from_env())
        >>> result = await pipeline.run()
    """

    def __init__(
        self,
        config: ShipperConfig,
        credential_client: CredentialClient | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        self.config = config
        self.credential_client = credential_client or CredentialClient(
            config.hydra, file_name=config.request_file_name
        )
        self.uploader = uploader or Uploader(config.s3)

    async def run(self) -> PipelineResult:
        """Execute archive, credential fetch and upload in sequence.

        Returns:
            PipelineResult for the run

        Raises:
            ShipperError: Subclass naming the stage that failed
        """
        start_time = time.time()
        archive_path = self.config.bundle.archive_path

        logger.info("Creating temporary archive file", extra={"archive_path": archive_path})
        try:
            sink = open(archive_path, "w+b")
        except OSError as e:
            raise ArchiveIOError(
                f"Unable to create temporary archive file: {e}", path=archive_path
            ) from e

        with sink:
            archiver = DirectoryArchiver(self.config.bundle.source_dir)
            summary = archiver.archive(sink)

            credentials = await self.credential_client.fetch()

            logger.info("Rewinding temporary archive file")
            try:
                sink.seek(0)
            except OSError as e:
                raise ArchiveIOError(
                    f"Unable to rewind archive file: {e}", path=archive_path, stage="rewind"
                ) from e

            upload = await self.uploader.upload(credentials, sink)

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Must-gather bundle shipped",
            extra={
                "bucket": upload.bucket,
                "key": upload.key,
                "files": summary.file_count,
                "duration_ms": duration_ms,
            },
        )
        return PipelineResult(
            archive_path=archive_path,
            archive=summary,
            upload=upload,
            duration_ms=duration_ms,
        )
