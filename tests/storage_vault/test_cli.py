"""Tests for the storage-vault command line interface."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from storage_vault.__main__ import app
from storage_vault.cli import CLIError
from storage_vault.models import RemoteFile, Status

runner = CliRunner()

VALID_VAULT = """\
name: s3_vault
properties:
  type: S3
  s3.endpoint: http://minio:9000
  s3.access_key: AKIAEXAMPLE
  s3.secret_key: topsecret
  path_version: 1
"""


@pytest.fixture
def vault_file(tmp_path: Path) -> Path:
    """Write a valid S3 vault declaration."""
    path = tmp_path / "vault.yaml"
    path.write_text(VALID_VAULT)
    return path


def fake_file_system(status: Status, files: list[RemoteFile]) -> MagicMock:
    """Build a connector stand-in usable as a context manager."""
    fs = MagicMock()
    fs.__enter__.return_value = fs
    fs.glob_list.return_value = (status, files)
    return fs


class TestValidateCommand:
    """Test the validate command."""

    def test_valid_declaration(self, vault_file: Path) -> None:
        """Test that a valid declaration is accepted and secrets are masked."""
        result = runner.invoke(app, ["validate", str(vault_file)])

        assert result.exit_code == 0
        assert "Vault declaration is valid" in result.output
        assert "topsecret" not in result.output

    def test_missing_type_fails(self, tmp_path: Path) -> None:
        """Test that validation errors exit with status 1."""
        path = tmp_path / "vault.yaml"
        path.write_text("name: v\nproperties:\n  s3.region: us-east-1\n")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Missing property type" in result.output

    def test_malformed_yaml_fails(self, tmp_path: Path) -> None:
        """Test that unparsable files are reported."""
        path = tmp_path / "vault.yaml"
        path.write_text("name: [unclosed\n")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid vault file" in result.output

    def test_missing_file_is_usage_error(self, tmp_path: Path) -> None:
        """Test that a nonexistent file is rejected by argument parsing."""
        result = runner.invoke(app, ["validate", str(tmp_path / "absent.yaml")])

        assert result.exit_code == 2


class TestListCommand:
    """Test the ls command."""

    def test_lists_entries(
        self, vault_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that matched entries are printed and the connector is closed."""
        fs = fake_file_system(
            Status.OK, [RemoteFile("s3://b/a.csv", True, 10, 0, 0)]
        )
        monkeypatch.setattr("storage_vault.cli.create_file_system", lambda c: fs)

        result = runner.invoke(app, ["ls", str(vault_file), "s3://b/*.csv", "-n"])

        assert result.exit_code == 0
        assert "s3://b/a.csv" in result.output
        fs.glob_list.assert_called_once_with("s3://b/*.csv", True)
        fs.__exit__.assert_called_once()

    def test_error_status_fails(
        self, vault_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a non-OK listing status exits with status 1."""
        fs = fake_file_system(Status.not_found("b/missing"), [])
        monkeypatch.setattr("storage_vault.cli.create_file_system", lambda c: fs)

        result = runner.invoke(app, ["ls", str(vault_file), "s3://b/missing/*"])

        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output


class TestCLIError:
    """Test CLIError formatting."""

    def test_str_includes_command(self) -> None:
        """Test that the subcommand prefixes the message."""
        cause = ValueError("bad")
        error = CLIError("[NOT_FOUND] file not found: b/x", "ls", cause)

        assert str(error) == "CLI command 'ls' failed: [NOT_FOUND] file not found: b/x"
        assert error.original_error is cause

    def test_str_without_command(self) -> None:
        """Test that the message is unchanged when no command is known."""
        assert str(CLIError("Invalid vault file v.yaml")) == "Invalid vault file v.yaml"
