"""Command-line entry point for storage vault tooling.

Commands:
- validate: check a vault declaration and print its masked DDL
- ls: glob-list remote paths through a vault
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from storage_vault.cli import list_files_command, validate_vault_command
from storage_vault.logging import LOG_LEVEL_ENV

# Credentials such as AWS_ACCESS_KEY may live in a local .env file.
load_dotenv(Path.cwd() / ".env")

app = typer.Typer(name="storage-vault", no_args_is_help=True)

VaultFile = Annotated[
    Path,
    typer.Argument(
        help="Path to the vault declaration YAML file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]
LogLevel = Annotated[
    str,
    typer.Option(
        "--log-level",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        case_sensitive=False,
    ),
]


@app.command()
def validate(
    vault_file: VaultFile,
    log_level: LogLevel = os.getenv(LOG_LEVEL_ENV, "INFO"),
) -> None:
    """Validate a vault declaration and print the resulting configuration."""
    validate_vault_command(vault_file, log_level)


@app.command(name="ls")
def list_files(
    vault_file: VaultFile,
    pattern: Annotated[
        str, typer.Argument(help="Remote glob, e.g. s3://bucket/data/*.parquet")
    ],
    name_only: Annotated[
        bool,
        typer.Option("--name-only", "-n", help="Show only the final path segment"),
    ] = False,
    log_level: LogLevel = os.getenv(LOG_LEVEL_ENV, "INFO"),
) -> None:
    """List remote entries matching a glob pattern."""
    list_files_command(vault_file, pattern, name_only, log_level)


if __name__ == "__main__":
    app()
