"""CLI command implementations for storage vaults."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import override

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from storage_vault.config import (
    MASK,
    StorageVaultConfig,
    VaultDeclaration,
    is_sensitive_key,
)
from storage_vault.factory import create_file_system
from storage_vault.logging import setup_logging
from storage_vault.models import RemoteFile

logger = logging.getLogger(__name__)
console = Console()


class CLIError(Exception):
    """A vault command failure, carrying the command name and its cause.

    Raised for unreadable declaration files and non-OK listing statuses;
    any other error reaching cli_error_handler is wrapped in one.
    """

    def __init__(
        self,
        message: str,
        command: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialise the error.

        Args:
            message: What went wrong, e.g. the rendered listing Status
            command: Failing subcommand ("validate" or "ls"), if known
            original_error: Validation or listing error behind this one

        """
        super().__init__(message)
        self.command = command
        self.original_error = original_error

    @override
    def __str__(self) -> str:
        """Return the message, prefixed with the subcommand when known."""
        base_message = super().__str__()
        if self.command:
            return f"CLI command '{self.command}' failed: {base_message}"
        return base_message


@contextmanager
def cli_error_handler(command: str, title: str) -> Generator[None]:
    """Render any error as a red panel and exit with status 1.

    Args:
        command: Subcommand used to wrap errors that are not CLIError.
        title: Panel title, e.g. "Listing failed".

    """
    try:
        yield
    except CLIError as e:
        logger.error("%s: %s", title, e)
        _print_error(title, e)
        raise typer.Exit(1) from e
    except Exception as e:
        cli_error = CLIError(str(e), command=command, original_error=e)
        logger.error("%s: %s", title, cli_error)
        _print_error(title, cli_error)
        raise typer.Exit(1) from cli_error


def _print_error(title: str, error: CLIError) -> None:
    console.print(
        Panel(f"[red]{escape(str(error))}[/red]", title=f"❌ {title}", border_style="red")
    )


def load_declaration(vault_file: Path) -> VaultDeclaration:
    """Read a YAML vault declaration.

    Raises:
        CLIError: If the file is not valid YAML or not a declaration.

    """
    try:
        with open(vault_file, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        return VaultDeclaration.model_validate(raw)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise CLIError(f"Invalid vault file {vault_file}: {e}") from e


def _format_millis(millis: int) -> str:
    if millis <= 0:
        return "-"
    return datetime.fromtimestamp(millis / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


def print_config(config: StorageVaultConfig) -> None:
    """Print a validated vault as summary and property tables."""
    summary = Table(title=f"Storage vault '{config.name}'", show_header=False)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value")
    summary.add_row("type", config.vault_type.value)
    summary.add_row("path_version", str(config.path_version))
    summary.add_row("num_shard", str(config.num_shard))
    summary.add_row("set_as_default", str(config.set_as_default).lower())
    summary.add_row("if_not_exists", str(config.if_not_exists).lower())
    console.print(summary)

    props = Table(title="Properties")
    props.add_column("Key", style="cyan")
    props.add_column("Value")
    for key, value in sorted(config.properties.items()):
        props.add_row(key, MASK if is_sensitive_key(key) else value)
    console.print(props)


def print_files(files: list[RemoteFile]) -> None:
    """Print listing results as a table."""
    table = Table(title=f"{len(files)} entries")
    table.add_column("Path", style="cyan")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for entry in files:
        table.add_row(
            escape(entry.path),
            "file" if entry.is_file else "dir",
            str(entry.size) if entry.is_file else "-",
            _format_millis(entry.modification_time),
        )
    console.print(table)


def validate_vault_command(vault_file: Path, log_level: str = "INFO") -> None:
    """CLI command implementation for validating a vault declaration."""
    setup_logging(level=log_level)

    with cli_error_handler("validate", "Vault validation failed"):
        config = load_declaration(vault_file).to_config()
        print_config(config)
        console.print(config.to_sql(), markup=False, highlight=False)
        console.print("[green]✅ Vault declaration is valid[/green]")


def list_files_command(
    vault_file: Path,
    pattern: str,
    name_only: bool = False,
    log_level: str = "INFO",
) -> None:
    """CLI command implementation for glob listing through a vault."""
    setup_logging(level=log_level)

    with cli_error_handler("ls", "Listing failed"):
        config = load_declaration(vault_file).to_config()
        with create_file_system(config) as fs:
            status, files = fs.glob_list(pattern, name_only)
        if not status.ok:
            raise CLIError(str(status), command="ls")
        print_files(files)
