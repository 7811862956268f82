# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Transfer request and response schemas."""

from __future__ import annotations

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gcs2drive.enums import TransferStatus, UploadState


class TransferRequest(BaseModel):
    """A single GCS object to copy into a Drive folder."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    filename: str
    drive_folder: str


class ObjectDescriptor(BaseModel):
    """Source object metadata read once at the start of a transfer."""

    bucket: str
    name: str
    size: int = Field(ge=0)
    md5_hash: Optional[str] = None
    content_type: Optional[str] = None


class Chunk(BaseModel):
    """Inclusive byte range of the source object."""

    index: int
    start: int
    end: int
    is_last: bool = False

    @property
    def size(self) -> int:
        """Number of bytes in the chunk."""
        return self.end - self.start + 1


class ChunkPlan(BaseModel):
    """Fixed-size chunk partition of ``[0, total_size)``."""

    total_size: int = Field(ge=0)
    chunk_size: int = Field(gt=0)

    @property
    def num_chunks(self) -> int:
        """Number of chunks."""
        return math.ceil(self.total_size / self.chunk_size)

    @property
    def chunks(self) -> List[Chunk]:
        """Chunks in increasing offset order."""
        num_chunks = self.num_chunks
        chunks = []
        for index in range(num_chunks):
            start = index * self.chunk_size
            end = min(start + self.chunk_size - 1, self.total_size - 1)
            chunks.append(
                Chunk(
                    index=index,
                    start=start,
                    end=end,
                    is_last=(index == num_chunks - 1),
                )
            )
        return chunks


class UploadSession(BaseModel):
    """Drive resumable upload session."""

    url: str
    total_size: int = Field(ge=0)


class DriveFile(BaseModel):
    """Drive file resource."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    size: Optional[int] = None
    md5_checksum: Optional[str] = Field(default=None, alias="md5Checksum")
    sha1_checksum: Optional[str] = Field(default=None, alias="sha1Checksum")
    sha256_checksum: Optional[str] = Field(default=None, alias="sha256Checksum")


class UploadOutcome(BaseModel):
    """Result of a range upload.

    ``INCOMPLETE`` means Drive expects more bytes. ``received_end`` is the last
    byte offset Drive acknowledged: -1 when nothing is persisted, None when
    unknown. ``COMPLETE`` carries
    the created file.
    """

    state: UploadState
    received_end: Optional[int] = None
    file: Optional[DriveFile] = None

    @property
    def is_complete(self) -> bool:
        """Whether the upload is finalized."""
        return self.state == UploadState.COMPLETE


class TransferResult(BaseModel):
    """Response body of a transfer."""

    status: TransferStatus
    drive_id: str
