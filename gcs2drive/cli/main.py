# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive CLI."""

from __future__ import annotations

import json
from typing import Optional

import typer

from gcs2drive import __version__
from gcs2drive.client.drive import build_drive_client
from gcs2drive.cloud.storage import build_storage_client
from gcs2drive.errors import Gcs2DriveError
from gcs2drive.schema.transfer import TransferRequest
from gcs2drive.settings import Settings
from gcs2drive.utils.format import format_ibytes, secho_error_and_exit
from gcs2drive.utils.transfer import TransferManager, plan_chunks, validate_chunk_size

app = typer.Typer(
    help="Copy Google Cloud Storage objects into Google Drive.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    pretty_exceptions_enable=False,
)


@app.command()
def transfer(
    bucket: str = typer.Argument(..., help="Source bucket name."),
    filename: str = typer.Argument(..., help="Object path in the bucket."),
    folder: Optional[str] = typer.Option(
        None, "--folder", "-f", help="Drive folder ID. Defaults to $DRIVEFOLDER."
    ),
    chunk_size: Optional[int] = typer.Option(
        None, "--chunk-size", help="Bytes per chunk, a multiple of 262144."
    ),
    secret_file: Optional[str] = typer.Option(
        None, "--secret-file", help="Service account key file."
    ),
    move: Optional[bool] = typer.Option(
        None, "--move/--copy", help="Delete the source object after verification."
    ),
):
    """Transfer an object to Drive and verify its checksum."""
    try:
        settings = Settings.from_env()
        overrides = {
            "drive_folder": folder,
            "chunk_size": chunk_size,
            "secret_file": secret_file,
            "move": move,
        }
        settings = settings.model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )
        if not settings.drive_folder:
            secho_error_and_exit("Drive folder is not set. Use '--folder'.")

        manager = TransferManager(
            storage=build_storage_client(settings.secret_file),
            drive=build_drive_client(settings.secret_file),
            settings=settings,
            show_progress=True,
        )
        result = manager.transfer(
            TransferRequest(
                bucket=bucket, filename=filename, drive_folder=settings.drive_folder
            )
        )
    except Gcs2DriveError as exc:
        secho_error_and_exit(str(exc))

    typer.echo(json.dumps(result.model_dump(mode="json")))


@app.command()
def plan(
    size: int = typer.Argument(..., min=0, help="Object size in bytes."),
    chunk_size: Optional[int] = typer.Option(
        None, "--chunk-size", help="Bytes per chunk, a multiple of 262144."
    ),
):
    """Show the byte ranges an object of SIZE bytes is transferred in."""
    try:
        if chunk_size is None:
            chunk_size = Settings.from_env().chunk_size
        chunk_plan = plan_chunks(size, validate_chunk_size(chunk_size))
    except Gcs2DriveError as exc:
        secho_error_and_exit(str(exc))

    typer.echo(
        f"{chunk_plan.num_chunks} chunks of {format_ibytes(chunk_plan.chunk_size)}"
    )
    for chunk in chunk_plan.chunks:
        typer.echo(f"{chunk.index}\t{chunk.start}-{chunk.end}")


@app.command()
def version():
    """Check the installed package version."""
    typer.echo(__version__)
