# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from gcs2drive.client.drive import DriveClient
from gcs2drive.cloud.storage import CloudStorageClient
from gcs2drive.settings import Settings
from gcs2drive.utils.transfer import DRIVE_CHUNK_GRANULARITY


@pytest.fixture
def chunk_size() -> int:
    return DRIVE_CHUNK_GRANULARITY


@pytest.fixture
def settings(tmp_path: Path, chunk_size: int) -> Settings:
    return Settings(
        drive_folder="fake-folder-id",
        chunk_size=chunk_size,
        scratch_dir=str(tmp_path),
    )


@pytest.fixture
def storage_mock() -> Mock:
    return Mock(CloudStorageClient)


@pytest.fixture
def drive_mock() -> Mock:
    return Mock(DriveClient)
