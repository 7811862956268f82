# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive errors."""

from __future__ import annotations

from typing import Optional


class Gcs2DriveError(Exception):
    """gcs2drive exception base."""


class InvalidConfigError(Gcs2DriveError):
    """Invalid configuration provided."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize InvalidConfigError."""
        super().__init__(f"Invalid configuration provided: {detail}")


class InvalidRequestError(Gcs2DriveError):
    """Invalid transfer request."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize InvalidRequestError."""
        self.detail = detail
        super().__init__(f"Invalid request: {detail}")


class NotFoundError(Gcs2DriveError):
    """Requested resource is not found."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize NotFoundError."""
        super().__init__(f"The resource is not found: {detail}")


class SourceReadError(Gcs2DriveError):
    """Failed to read the source object."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize SourceReadError."""
        super().__init__(f"Failed to read the source object: {detail}")


class UploadSessionError(Gcs2DriveError):
    """Resumable upload session failed."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize UploadSessionError."""
        super().__init__(f"Upload session failed: {detail}")


class TransferError(Gcs2DriveError):
    """Object transfer failed."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize TransferError."""
        super().__init__(f"Transfer failed: {detail}")


class APIError(Gcs2DriveError):
    """Drive API error."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize APIError."""
        super().__init__(f"API error: {detail}")


class AuthenticationError(Gcs2DriveError):
    """Authentication failure error."""

    def __init__(self, detail: Optional[str] = None) -> None:
        """Initialize AuthenticationError."""
        super().__init__(f"Failed to authenticate: {detail}")
