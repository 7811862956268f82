# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Object Transfer Utils."""

# pylint: disable=too-many-arguments

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from tqdm import tqdm

from gcs2drive.enums import TransferStatus
from gcs2drive.errors import InvalidConfigError, TransferError
from gcs2drive.logging import logger
from gcs2drive.schema.transfer import (
    Chunk,
    ChunkPlan,
    ObjectDescriptor,
    TransferRequest,
    TransferResult,
    UploadOutcome,
    UploadSession,
)
from gcs2drive.utils.format import format_bytes
from gcs2drive.utils.fs import get_file_size, get_scratch_path, remove_scratch_file

if TYPE_CHECKING:
    from gcs2drive.client.drive import DriveClient
    from gcs2drive.cloud.storage import CloudStorageClient
    from gcs2drive.settings import Settings

KiB = 1024
MiB = KiB * KiB
GiB = MiB * KiB
DRIVE_CHUNK_GRANULARITY = 256 * KiB
DEFAULT_CHUNK_SIZE = 200 * DRIVE_CHUNK_GRANULARITY


def validate_chunk_size(chunk_size: int) -> int:
    """Check that the chunk size is a positive multiple of 256 KiB."""
    if chunk_size <= 0 or chunk_size % DRIVE_CHUNK_GRANULARITY != 0:
        raise InvalidConfigError(
            f"Chunk size({chunk_size}) must be a positive multiple of "
            f"{DRIVE_CHUNK_GRANULARITY} bytes."
        )
    return chunk_size


def plan_chunks(total_size: int, chunk_size: int) -> ChunkPlan:
    """Divide ``[0, total_size)`` into contiguous chunks of ``chunk_size`` bytes.

    An empty object has no chunks.
    """
    if total_size < 0:
        raise TransferError(f"Invalid object size: {total_size}")
    return ChunkPlan(total_size=total_size, chunk_size=chunk_size)


class TransferManager:
    """Copies one GCS object into Drive chunk by chunk.

    Chunks are downloaded into a scratch file and relayed to a single resumable
    upload session strictly in order. Each scratch file is removed before the
    next chunk starts, whatever the outcome of its upload.
    """

    def __init__(
        self,
        storage: CloudStorageClient,
        drive: DriveClient,
        settings: Settings,
        scratch_dir: Optional[Union[str, Path]] = None,
        show_progress: bool = False,
    ) -> None:
        """Initializes TransferManager."""
        self._storage = storage
        self._drive = drive
        self._settings = settings
        self._chunk_size = validate_chunk_size(settings.chunk_size)
        self._scratch_dir = Path(scratch_dir or settings.scratch_dir)
        self._show_progress = show_progress

    def transfer(self, request: TransferRequest) -> TransferResult:
        """Transfer the requested object and verify its checksum."""
        descriptor = self._storage.get_object_descriptor(
            request.bucket, request.filename
        )
        logger.info("File size is %s", format_bytes(descriptor.size))

        plan = plan_chunks(descriptor.size, self._chunk_size)
        logger.info("Transfer in %d chunks", plan.num_chunks)

        session = self._drive.open_session(
            name=request.filename,
            folder_id=request.drive_folder,
            total_size=descriptor.size,
            content_type=descriptor.content_type,
        )

        if plan.num_chunks == 0:
            outcome = self._drive.finish_empty_session(session)
        else:
            outcome = self._relay_chunks(request, plan, session)

        if not outcome.is_complete or outcome.file is None:
            raise TransferError(
                f"Drive did not finalize {request.filename} after the last chunk."
            )
        drive_id = outcome.file.id
        logger.info("Created file %s", drive_id)

        status = self._verify(descriptor, drive_id)
        if status == TransferStatus.TRANSFERRED and self._settings.move:
            self._storage.delete_object(request.bucket, request.filename)
            logger.info(
                "Deleted file %s from bucket %s", request.filename, request.bucket
            )

        return TransferResult(status=status, drive_id=drive_id)

    def _relay_chunks(
        self, request: TransferRequest, plan: ChunkPlan, session: UploadSession
    ) -> UploadOutcome:
        outcome: Optional[UploadOutcome] = None

        with tqdm(
            desc=request.filename,
            total=plan.total_size,
            unit="B",
            unit_scale=True,
            unit_divisor=KiB,
            disable=not self._show_progress,
        ) as pbar:
            for chunk in plan.chunks:
                outcome = self._relay_chunk(request, plan, session, chunk)
                pbar.update(chunk.size)

        if outcome is None:
            raise TransferError(f"No chunk of {request.filename} was uploaded.")
        return outcome

    def _relay_chunk(
        self,
        request: TransferRequest,
        plan: ChunkPlan,
        session: UploadSession,
        chunk: Chunk,
    ) -> UploadOutcome:
        if chunk.is_last:
            logger.info("Process last chunk %d / %d", chunk.index + 1, plan.num_chunks)
        else:
            logger.info("Process chunk %d / %d", chunk.index + 1, plan.num_chunks)

        scratch_path = get_scratch_path(self._scratch_dir, request.filename, chunk.index)
        try:
            logger.info(
                "Download bytes %d -> %d into %s", chunk.start, chunk.end, scratch_path
            )
            self._storage.download_range(
                request.bucket, request.filename, scratch_path, chunk.start, chunk.end
            )
            logger.debug("Download temp file size is %d", get_file_size(scratch_path))

            outcome = self._drive.upload_range(
                session, scratch_path, chunk.start, chunk.end
            )
        finally:
            remove_scratch_file(scratch_path)

        if outcome.is_complete and not chunk.is_last:
            raise TransferError(
                f"Drive finalized the upload at chunk {chunk.index + 1} "
                f"of {plan.num_chunks}."
            )
        if not outcome.is_complete:
            if chunk.is_last:
                raise TransferError("Drive expects more bytes after the last chunk.")
            if outcome.received_end is None or outcome.received_end < chunk.end:
                raise TransferError(
                    f"Drive persisted bytes up to {outcome.received_end}, "
                    f"expected {chunk.end}."
                )
        return outcome

    def _verify(self, descriptor: ObjectDescriptor, drive_id: str) -> TransferStatus:
        drive_file = self._drive.get_file_metadata(drive_id)
        source_md5 = descriptor.md5_hash.lower() if descriptor.md5_hash else None
        drive_md5 = drive_file.md5_checksum.lower() if drive_file.md5_checksum else None

        if source_md5 is not None and source_md5 == drive_md5:
            logger.info("Verified: Checksums match")
            return TransferStatus.TRANSFERRED

        logger.error(
            "Not verified: Checksums do not match %s <> %s", source_md5, drive_md5
        )
        return TransferStatus.CHECKSUM_MISMATCH
