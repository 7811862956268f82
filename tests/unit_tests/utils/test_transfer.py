# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Test transfer utils."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple
from unittest.mock import Mock, call

import pytest

from gcs2drive.enums import TransferStatus, UploadState
from gcs2drive.errors import (
    InvalidConfigError,
    SourceReadError,
    TransferError,
    UploadSessionError,
)
from gcs2drive.schema.transfer import (
    DriveFile,
    ObjectDescriptor,
    TransferRequest,
    UploadOutcome,
    UploadSession,
)
from gcs2drive.settings import Settings
from gcs2drive.utils.transfer import (
    DRIVE_CHUNK_GRANULARITY,
    TransferManager,
    plan_chunks,
    validate_chunk_size,
)

MD5 = "5eb63bbbe01eeed093cb22bb8f5acdc3"


def _ranges(total_size: int, chunk_size: int):
    return [(c.start, c.end) for c in plan_chunks(total_size, chunk_size).chunks]


def test_plan_chunks_example():
    assert _ranges(1000, 400) == [(0, 399), (400, 799), (800, 999)]


@pytest.mark.parametrize(
    "total_size, chunk_size",
    [(1, 1), (1, 400), (399, 400), (400, 400), (401, 400), (1000, 400), (12345, 7)],
)
def test_plan_chunks_partition(total_size: int, chunk_size: int):
    plan = plan_chunks(total_size, chunk_size)
    chunks = plan.chunks

    assert len(chunks) == plan.num_chunks
    assert chunks[0].start == 0
    assert chunks[-1].end == total_size - 1
    for prev, cur in zip(chunks, chunks[1:]):
        assert cur.start == prev.end + 1
    assert sum(c.size for c in chunks) == total_size
    assert [c.is_last for c in chunks] == [False] * (len(chunks) - 1) + [True]


def test_plan_chunks_empty():
    plan = plan_chunks(0, 400)
    assert plan.num_chunks == 0
    assert plan.chunks == []


def test_validate_chunk_size():
    assert validate_chunk_size(DRIVE_CHUNK_GRANULARITY) == DRIVE_CHUNK_GRANULARITY
    assert validate_chunk_size(3 * DRIVE_CHUNK_GRANULARITY) == 3 * DRIVE_CHUNK_GRANULARITY
    for invalid in (0, -DRIVE_CHUNK_GRANULARITY, 1000):
        with pytest.raises(InvalidConfigError):
            validate_chunk_size(invalid)


@pytest.fixture
def transfer_request() -> TransferRequest:
    return TransferRequest(
        bucket="my-bucket", filename="dir/file.bin", drive_folder="fake-folder-id"
    )


@pytest.fixture
def total_size(chunk_size: int) -> int:
    return 2 * chunk_size + 100


@pytest.fixture
def upload_log() -> List[Tuple[Path, UploadState]]:
    return []


@pytest.fixture
def storage(storage_mock: Mock, total_size: int) -> Mock:
    storage_mock.get_object_descriptor.return_value = ObjectDescriptor(
        bucket="my-bucket",
        name="dir/file.bin",
        size=total_size,
        md5_hash=MD5,
        content_type="application/octet-stream",
    )

    def _download(bucket, path, out, start, end):
        Path(out).write_bytes(b"x" * (end - start + 1))

    storage_mock.download_range.side_effect = _download
    return storage_mock


@pytest.fixture
def drive(
    drive_mock: Mock, total_size: int, upload_log: List[Tuple[Path, UploadState]]
) -> Mock:
    drive_mock.open_session.return_value = UploadSession(
        url="https://fake-session", total_size=total_size
    )

    def _upload(session, file_path, start, end):
        assert Path(file_path).exists()
        if end == session.total_size - 1:
            outcome = UploadOutcome(
                state=UploadState.COMPLETE, file=DriveFile(id="drive-file-id")
            )
        else:
            outcome = UploadOutcome(state=UploadState.INCOMPLETE, received_end=end)
        upload_log.append((Path(file_path), outcome.state))
        return outcome

    drive_mock.upload_range.side_effect = _upload
    drive_mock.get_file_metadata.return_value = DriveFile(
        id="drive-file-id", md5Checksum=MD5
    )
    return drive_mock


def _manager(storage: Mock, drive: Mock, settings: Settings) -> TransferManager:
    return TransferManager(storage=storage, drive=drive, settings=settings)


class TestTransferManager:
    """Unit test for `TransferManager`."""

    def test_transfer(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
        chunk_size: int,
        total_size: int,
        upload_log: List[Tuple[Path, UploadState]],
    ):
        result = _manager(storage, drive, settings).transfer(transfer_request)

        assert result.status == TransferStatus.TRANSFERRED
        assert result.drive_id == "drive-file-id"
        assert result.model_dump(mode="json") == {
            "status": "transferred",
            "drive_id": "drive-file-id",
        }

        drive.open_session.assert_called_once_with(
            name="dir/file.bin",
            folder_id="fake-folder-id",
            total_size=total_size,
            content_type="application/octet-stream",
        )
        session = drive.open_session.return_value
        assert [c.args[2:] for c in drive.upload_range.call_args_list] == [
            (0, chunk_size - 1),
            (chunk_size, 2 * chunk_size - 1),
            (2 * chunk_size, total_size - 1),
        ]
        assert all(c.args[0] == session for c in drive.upload_range.call_args_list)

        assert [state for _, state in upload_log] == [
            UploadState.INCOMPLETE,
            UploadState.INCOMPLETE,
            UploadState.COMPLETE,
        ]

        assert [path.name for path, _ in upload_log] == [
            "file.bin_0",
            "file.bin_1",
            "file.bin_2",
        ]
        assert list(Path(settings.scratch_dir).iterdir()) == []
        drive.get_file_metadata.assert_called_once_with("drive-file-id")
        storage.delete_object.assert_not_called()

    def test_transfer_checksum_mismatch(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        drive.get_file_metadata.return_value = DriveFile(
            id="drive-file-id", md5Checksum="0" * 32
        )
        settings = settings.model_copy(update={"move": True})

        result = _manager(storage, drive, settings).transfer(transfer_request)

        assert result.status == TransferStatus.CHECKSUM_MISMATCH
        assert result.drive_id == "drive-file-id"
        storage.delete_object.assert_not_called()

    def test_transfer_without_source_md5(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        descriptor = storage.get_object_descriptor.return_value
        storage.get_object_descriptor.return_value = descriptor.model_copy(
            update={"md5_hash": None}
        )
        settings = settings.model_copy(update={"move": True})

        result = _manager(storage, drive, settings).transfer(transfer_request)

        assert result.status == TransferStatus.CHECKSUM_MISMATCH
        storage.delete_object.assert_not_called()

    def test_transfer_move(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        parent = Mock()
        parent.attach_mock(drive.get_file_metadata, "get_file_metadata")
        parent.attach_mock(storage.delete_object, "delete_object")
        settings = settings.model_copy(update={"move": True})

        result = _manager(storage, drive, settings).transfer(transfer_request)

        assert result.status == TransferStatus.TRANSFERRED
        storage.delete_object.assert_called_once_with("my-bucket", "dir/file.bin")
        assert parent.mock_calls == [
            call.get_file_metadata("drive-file-id"),
            call.delete_object("my-bucket", "dir/file.bin"),
        ]

    def test_transfer_empty_object(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        descriptor = storage.get_object_descriptor.return_value
        storage.get_object_descriptor.return_value = descriptor.model_copy(
            update={"size": 0, "md5_hash": "d41d8cd98f00b204e9800998ecf8427e"}
        )
        drive.open_session.return_value = UploadSession(
            url="https://fake-session", total_size=0
        )
        drive.finish_empty_session.return_value = UploadOutcome(
            state=UploadState.COMPLETE, file=DriveFile(id="empty-file-id")
        )
        drive.get_file_metadata.return_value = DriveFile(
            id="empty-file-id", md5Checksum="d41d8cd98f00b204e9800998ecf8427e"
        )

        result = _manager(storage, drive, settings).transfer(transfer_request)

        assert result.status == TransferStatus.TRANSFERRED
        assert result.drive_id == "empty-file-id"
        storage.download_range.assert_not_called()
        drive.upload_range.assert_not_called()
        drive.finish_empty_session.assert_called_once_with(drive.open_session.return_value)

    def test_transfer_upload_failure_removes_scratch(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        outcomes = [
            UploadOutcome(state=UploadState.INCOMPLETE),
            UploadSessionError("Error Code: 503"),
        ]
        drive.upload_range.side_effect = outcomes

        with pytest.raises(UploadSessionError):
            _manager(storage, drive, settings).transfer(transfer_request)

        assert drive.upload_range.call_count == 2
        assert list(Path(settings.scratch_dir).iterdir()) == []
        drive.get_file_metadata.assert_not_called()
        storage.delete_object.assert_not_called()

    def test_transfer_download_failure_removes_scratch(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        def _partial_download(bucket, path, out, start, end):
            Path(out).write_bytes(b"x")
            raise SourceReadError("short read")

        storage.download_range.side_effect = _partial_download

        with pytest.raises(SourceReadError):
            _manager(storage, drive, settings).transfer(transfer_request)

        drive.upload_range.assert_not_called()
        assert list(Path(settings.scratch_dir).iterdir()) == []

    def test_transfer_metadata_failure(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        storage.get_object_descriptor.side_effect = SourceReadError("fake err")

        with pytest.raises(SourceReadError):
            _manager(storage, drive, settings).transfer(transfer_request)

        drive.open_session.assert_not_called()

    def test_transfer_session_open_failure(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        drive.open_session.side_effect = UploadSessionError("fake err")

        with pytest.raises(UploadSessionError):
            _manager(storage, drive, settings).transfer(transfer_request)

        storage.download_range.assert_not_called()

    def test_transfer_last_chunk_incomplete(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        drive.upload_range.side_effect = lambda session, file_path, start, end: (
            UploadOutcome(state=UploadState.INCOMPLETE, received_end=end)
        )

        with pytest.raises(TransferError):
            _manager(storage, drive, settings).transfer(transfer_request)

        assert drive.upload_range.call_count == 3
        drive.get_file_metadata.assert_not_called()

    @pytest.mark.parametrize("received_end", [-1, None])
    def test_transfer_first_chunk_not_persisted(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
        chunk_size: int,
        received_end,
    ):
        drive.upload_range.side_effect = [
            UploadOutcome(state=UploadState.INCOMPLETE, received_end=received_end),
            UploadOutcome(
                state=UploadState.INCOMPLETE, received_end=2 * chunk_size - 1
            ),
            UploadOutcome(
                state=UploadState.COMPLETE, file=DriveFile(id="drive-file-id")
            ),
        ]

        with pytest.raises(TransferError):
            _manager(storage, drive, settings).transfer(transfer_request)

        assert drive.upload_range.call_count == 1
        drive.get_file_metadata.assert_not_called()
        assert list(Path(settings.scratch_dir).iterdir()) == []

    def test_transfer_early_complete(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        drive.upload_range.side_effect = None
        drive.upload_range.return_value = UploadOutcome(
            state=UploadState.COMPLETE, file=DriveFile(id="drive-file-id")
        )

        with pytest.raises(TransferError):
            _manager(storage, drive, settings).transfer(transfer_request)

        assert drive.upload_range.call_count == 1

    def test_transfer_partially_persisted_chunk(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
    ):
        drive.upload_range.side_effect = None
        drive.upload_range.return_value = UploadOutcome(
            state=UploadState.INCOMPLETE, received_end=10
        )

        with pytest.raises(TransferError):
            _manager(storage, drive, settings).transfer(transfer_request)

        assert drive.upload_range.call_count == 1
        assert list(Path(settings.scratch_dir).iterdir()) == []

    def test_invalid_chunk_size(self, storage: Mock, drive: Mock, settings: Settings):
        settings = settings.model_copy(update={"chunk_size": 1000})

        with pytest.raises(InvalidConfigError):
            _manager(storage, drive, settings)

    def test_relay_chunks_without_chunks(
        self,
        storage: Mock,
        drive: Mock,
        settings: Settings,
        transfer_request: TransferRequest,
        chunk_size: int,
    ):
        session = UploadSession(url="https://upload.example/session", total_size=0)
        manager = _manager(storage, drive, settings)

        with pytest.raises(TransferError):
            manager._relay_chunks(  # pylint: disable=protected-access
                transfer_request, plan_chunks(0, chunk_size), session
            )

        drive.upload_range.assert_not_called()
