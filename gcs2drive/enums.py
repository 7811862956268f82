# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive enums."""


from __future__ import annotations

from enum import Enum


class TransferStatus(str, Enum):
    """Terminal status of a transfer."""

    TRANSFERRED = "transferred"
    CHECKSUM_MISMATCH = "checksum_mismatch"

    def __str__(self):
        """Convert to a human-readable string."""
        return self.value


class UploadState(str, Enum):
    """Outcome of a range upload to a resumable session."""

    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
