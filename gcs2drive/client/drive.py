# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Google Drive Client."""

from __future__ import annotations

import http
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
from google.auth import default as google_auth_default
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from pydantic import ValidationError
from requests.models import Response

from gcs2drive.enums import UploadState
from gcs2drive.errors import APIError, AuthenticationError, UploadSessionError
from gcs2drive.logging import logger
from gcs2drive.schema.transfer import DriveFile, UploadOutcome, UploadSession
from gcs2drive.utils.request import DEFAULT_REQ_TIMEOUT, DRIVE_SCOPES, decode_http_err

DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_METADATA_FIELDS = [
    "id",
    "name",
    "mimeType",
    "size",
    "md5Checksum",
    "sha1Checksum",
    "sha256Checksum",
]

# Drive answers a partial range upload with 308 "Resume Incomplete".
RESUME_INCOMPLETE = http.HTTPStatus.PERMANENT_REDIRECT
_RANGE_HEADER_RE = re.compile(r"^bytes=(\d+)-(\d+)$")


class DriveClient:
    """Google Drive v3 client for resumable uploads and file metadata."""

    def __init__(self, session: requests.Session) -> None:
        """Initialize Drive client."""
        self.session = session

    @property
    def default_request_options(self) -> Dict[str, Any]:
        """Common request options."""
        return {"timeout": DEFAULT_REQ_TIMEOUT}

    def open_session(
        self,
        name: str,
        folder_id: str,
        total_size: int,
        content_type: Optional[str] = None,
    ) -> UploadSession:
        """Start a resumable upload session.

        Args:
            name (str): Name of the file to create.
            folder_id (str): Parent folder ID.
            total_size (int): Final size of the file in bytes.
            content_type (Optional[str], optional): MIME type of the file.

        Returns:
            UploadSession: Session to upload byte ranges into.

        Raises:
            UploadSessionError: Drive refused to open the session.

        """
        headers = {"X-Upload-Content-Length": str(total_size)}
        if content_type:
            headers["X-Upload-Content-Type"] = content_type

        try:
            response = self.session.post(
                DRIVE_UPLOAD_URL,
                params={"uploadType": "resumable", "supportsAllDrives": "true"},
                headers=headers,
                json={"name": name, "parents": [folder_id]},
                **self.default_request_options,
            )
        except (requests.exceptions.RequestException, GoogleAuthError) as exc:
            raise UploadSessionError(f"Cannot open session: {exc!r}") from exc

        if not response.ok:
            raise UploadSessionError(decode_http_err(response))

        location = response.headers.get("Location")
        if not location:
            raise UploadSessionError("Drive did not return a session URI")

        logger.debug("Opened resumable upload session for %s", name)
        return UploadSession(url=location, total_size=total_size)

    def upload_range(
        self,
        session: UploadSession,
        file_path: Union[str, Path],
        start: int,
        end: int,
    ) -> UploadOutcome:
        """Upload a local file as the byte range ``[start, end]`` of the session.

        Returns:
            UploadOutcome: ``INCOMPLETE`` if Drive expects more bytes, else
                ``COMPLETE`` with the created file.

        Raises:
            UploadSessionError: Network failure or unexpected status.

        """
        headers = {"Content-Range": f"bytes {start}-{end}/{session.total_size}"}
        with open(file_path, "rb") as f:
            return self._put(session, headers=headers, data=f)

    def finish_empty_session(self, session: UploadSession) -> UploadOutcome:
        """Finalize a session that declared zero bytes."""
        headers = {"Content-Range": f"bytes */{session.total_size}"}
        return self._put(session, headers=headers, data=b"")

    def get_file_metadata(self, file_id: str) -> DriveFile:
        """Get metadata of a Drive file, including its checksums."""
        try:
            response = self.session.get(
                f"{DRIVE_FILES_URL}/{file_id}",
                params={
                    "supportsAllDrives": "true",
                    "fields": ",".join(DRIVE_METADATA_FIELDS),
                },
                **self.default_request_options,
            )
        except (requests.exceptions.RequestException, GoogleAuthError) as exc:
            raise APIError(f"Cannot read metadata of {file_id}: {exc!r}") from exc

        if not response.ok:
            raise APIError(decode_http_err(response))

        try:
            return DriveFile.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise APIError(f"Invalid file metadata of {file_id}: {exc}") from exc

    def _put(
        self, session: UploadSession, headers: Dict[str, str], data: Any
    ) -> UploadOutcome:
        try:
            response = self.session.put(
                session.url,
                headers=headers,
                data=data,
                allow_redirects=False,
                **self.default_request_options,
            )
        except (requests.exceptions.RequestException, GoogleAuthError) as exc:
            raise UploadSessionError(
                f"{headers['Content-Range']} not uploaded: {exc!r}"
            ) from exc

        logger.debug("Status: %s %s", response.status_code, response.reason)
        if response.status_code == RESUME_INCOMPLETE:
            return UploadOutcome(
                state=UploadState.INCOMPLETE,
                received_end=_parse_received_end(response),
            )

        if response.status_code in (http.HTTPStatus.OK, http.HTTPStatus.CREATED):
            try:
                drive_file = DriveFile.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                raise UploadSessionError(
                    f"Invalid file resource in the final response: {exc}"
                ) from exc
            return UploadOutcome(state=UploadState.COMPLETE, file=drive_file)

        raise UploadSessionError(decode_http_err(response))


def _parse_received_end(response: Response) -> Optional[int]:
    """Parse the last persisted byte offset from a 308 response.

    No ``Range`` header means nothing is persisted yet, reported as -1. An
    unparsable header gives None.
    """
    range_header = response.headers.get("Range")
    if range_header is None:
        return -1
    matched = _RANGE_HEADER_RE.match(range_header.strip())
    if matched is None:
        return None
    return int(matched.group(2))


def build_drive_session(secret_file: Optional[str] = None) -> AuthorizedSession:
    """Build an authorized HTTP session for the Drive API."""
    try:
        if secret_file:
            credentials = service_account.Credentials.from_service_account_file(
                secret_file, scopes=DRIVE_SCOPES
            )
        else:
            credentials, _ = google_auth_default(scopes=DRIVE_SCOPES)
    except (GoogleAuthError, OSError, ValueError) as exc:
        raise AuthenticationError(f"No Drive credentials: {exc!r}") from exc
    return AuthorizedSession(credentials)


def build_drive_client(secret_file: Optional[str] = None) -> DriveClient:
    """Build a Drive client."""
    return DriveClient(build_drive_session(secret_file))
