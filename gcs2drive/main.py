# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""HTTP function entrypoint."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import flask
import functions_framework

from gcs2drive.client.drive import build_drive_client
from gcs2drive.cloud.storage import build_storage_client
from gcs2drive.errors import Gcs2DriveError, InvalidConfigError, InvalidRequestError
from gcs2drive.logging import logger
from gcs2drive.schema.transfer import TransferRequest
from gcs2drive.settings import Settings
from gcs2drive.utils.transfer import TransferManager

ResponseReturnValue = Union[Dict[str, Any], Tuple[str, int]]


def get_request_param(request: flask.Request, name: str) -> Optional[str]:
    """Get a parameter from the JSON body, falling back to the query string."""
    body = request.get_json(silent=True)
    value = body.get(name) if isinstance(body, dict) else None
    if not value:
        value = request.args.get(name)
    return str(value) if value else None


def parse_source(request: flask.Request) -> Tuple[str, str]:
    """Get the source bucket and object name of an inbound request."""
    bucket = get_request_param(request, "bucket")
    if bucket is None:
        raise InvalidRequestError("Bucket is missing")

    filename = get_request_param(request, "filename")
    if filename is None:
        raise InvalidRequestError("File name is missing")

    return bucket, filename


@functions_framework.http
def gcs2drive(request: flask.Request) -> ResponseReturnValue:
    """Copy ``bucket``/``filename`` from GCS into the configured Drive folder."""
    try:
        bucket, filename = parse_source(request)
    except InvalidRequestError as exc:
        return exc.detail or str(exc), 400

    try:
        settings = Settings.from_env()
        if not settings.drive_folder:
            raise InvalidConfigError("DRIVEFOLDER is not set")

        manager = TransferManager(
            storage=build_storage_client(settings.secret_file),
            drive=build_drive_client(settings.secret_file),
            settings=settings,
        )
        result = manager.transfer(
            TransferRequest(
                bucket=bucket, filename=filename, drive_folder=settings.drive_folder
            )
        )
    except Gcs2DriveError as exc:
        logger.exception("Failed to transfer gs://%s/%s", bucket, filename)
        return str(exc), 500

    response = result.model_dump(mode="json")
    logger.info("Send response %s", response)
    return response
