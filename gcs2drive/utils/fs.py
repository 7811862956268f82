# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Local File System Utilities."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Union

from gcs2drive.logging import logger


def get_file_size(file_path: Union[str, Path]) -> int:
    """Calculate a file size in bytes.

    Args:
        file_path (Union[str, Path]): Path to the target file.

    Returns:
        int: The size of a file.

    """
    if isinstance(file_path, str):
        return os.stat(file_path).st_size
    return file_path.stat().st_size


def get_scratch_path(scratch_dir: Union[str, Path], object_name: str, index: int) -> Path:
    """Get the local scratch file path of a chunk.

    Args:
        scratch_dir (Union[str, Path]): Directory to hold scratch files.
        object_name (str): Object path in the bucket. Only the last path
            component is used.
        index (int): Chunk index.

    Returns:
        Path: ``<scratch_dir>/<basename>_<index>``.

    """
    basename = PurePosixPath(object_name).name or "object"
    return Path(scratch_dir) / f"{basename}_{index}"


def remove_scratch_file(path: Union[str, Path]) -> bool:
    """Delete a scratch file, logging instead of raising on failure.

    Returns:
        bool: True if nothing is left at ``path``.

    """
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Failed to remove temp file %s: %r", path, exc)
        return False

    logger.debug("Removed temp file %s", path)
    return True
