# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Function settings."""

from __future__ import annotations

import os
import tempfile
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError, field_validator

from gcs2drive.errors import InvalidConfigError
from gcs2drive.utils.transfer import DEFAULT_CHUNK_SIZE, validate_chunk_size

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Transfer settings.

    Attributes:
        drive_folder: Parent folder ID in Drive that receives the files.
        chunk_size: Bytes per chunk. Must be a multiple of 256 KiB.
        secret_file: Service account key file. Ambient credentials when unset.
        move: Delete the source object after a verified transfer.
        scratch_dir: Directory for the chunk scratch files.

    """

    drive_folder: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    secret_file: Optional[str] = None
    move: bool = False
    scratch_dir: str = tempfile.gettempdir()

    @field_validator("chunk_size")
    @classmethod
    def check_chunk_size(cls, v: int) -> int:
        """Chunk size must be a positive multiple of the Drive granularity."""
        try:
            return validate_chunk_size(v)
        except InvalidConfigError as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Load settings from environment variables."""
        if environ is None:
            environ = os.environ

        values = {
            "drive_folder": environ.get("DRIVEFOLDER") or None,
            "secret_file": environ.get("SECRET_FILE") or None,
            "move": environ.get("MOVE", "").strip().lower() in _TRUE_VALUES,
        }
        if environ.get("CHUNK_SIZE"):
            values["chunk_size"] = environ["CHUNK_SIZE"]
        if environ.get("SCRATCH_DIR"):
            values["scratch_dir"] = environ["SCRATCH_DIR"]

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            msgs = [f"{error['loc'][-1]}: {error['msg']}" for error in exc.errors()]
            raise InvalidConfigError("; ".join(msgs)) from exc
