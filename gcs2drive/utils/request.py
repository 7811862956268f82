# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""HTTP Request Utilities."""

from __future__ import annotations

from requests.models import Response

DEFAULT_REQ_TIMEOUT = 600.0
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]


def decode_http_err(response: Response) -> str:
    """Decode an error response of a Google API."""
    try:
        detail_json = response.json()
        error = detail_json.get("error") if isinstance(detail_json, dict) else None
        if isinstance(error, dict) and "message" in error:
            error_str = f"Error Code: {response.status_code}\nDetail: {error['message']}"
        elif isinstance(error, str):
            error_str = f"Error Code: {response.status_code}\nDetail: {error}"
        else:
            error_str = f"Error Code: {response.status_code}"
    except ValueError:
        error_str = (
            f"Error Code: {response.status_code}\n"
            f"Detail: {response.content.decode(errors='replace')}"
        )

    return error_str
