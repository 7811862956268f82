# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive: copy Google Cloud Storage objects into Google Drive."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
