# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Formatting Utilities."""

from __future__ import annotations

import base64
import binascii
from math import floor, log2
from typing import List, NoReturn, Optional

import typer

_SiUnits = ["B", "KB", "MB", "GB", "TB", "PB", "EB"]
_IecUnits = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def secho_error_and_exit(text: str, color: str = typer.colors.RED) -> NoReturn:
    """Print error and exit."""
    typer.secho(text, err=True, fg=color)
    raise typer.Exit(1)


def format_bytes(v: float) -> str:
    """Format a number to a human readable byte string."""
    return _humanize_bytes(v, 1000, _SiUnits)


def format_ibytes(v: float) -> str:
    """Format a number to a human readable byte string in IEC units."""
    return _humanize_bytes(v, 1024, _IecUnits)


def _humanize_bytes(v: float, base: int, units: List[str]) -> str:
    if v < 10:
        return f"{v} {units[0]}"

    exp = min(floor(log2(v) / log2(base)), len(units) - 1)
    unit = units[exp]

    val = round((v / base**exp) * 10) / 10

    if val < 10:
        return f"{val:.1f} {unit}"

    return f"{int(val)} {unit}"


def b64_to_hex(value: Optional[str]) -> Optional[str]:
    """Convert a base64 digest (as GCS reports it) to lower-case hex.

    Returns None when ``value`` is empty or not valid base64.
    """
    if not value:
        return None
    try:
        return base64.b64decode(value, validate=True).hex()
    except (binascii.Error, ValueError):
        return None
