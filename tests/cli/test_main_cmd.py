"""Tests for the ``neko`` command group and its global options."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

from click.testing import CliRunner

from nekocli import __version__
from nekocli.cli.main import cli


class TestCliGroup:
    """Tests for help, version and global options."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """--help lists every subcommand, including the alias."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("add", "remove", "install", "all", "verify"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the package version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_package_manager(self, runner: CliRunner, project_dir: Path) -> None:
        """An unsupported --package-manager is a usage error."""
        result = runner.invoke(cli, ["--package-manager", "bun", "install"])
        assert result.exit_code == 2

    def test_bad_timeout(self, runner: CliRunner, wired: MagicMock, project_dir: Path) -> None:
        """A non-positive --timeout is rejected."""
        result = runner.invoke(cli, ["--project", str(project_dir), "--timeout", "0", "install"])
        assert result.exit_code == 2
        assert "Timeout must be positive" in result.output

    def test_env_registry(
        self, runner: CliRunner, wired: MagicMock, project_dir: Path
    ) -> None:
        """NEKO_REGISTRY is picked up when --registry is not given."""
        runner.invoke(
            cli,
            ["--project", str(project_dir), "install"],
            env={"NEKO_REGISTRY": "https://env-mirror.example.test"},
        )
        assert wired.call_args.args[1].registry_url == "https://env-mirror.example.test"

    def test_verbose_enables_debug(
        self, runner: CliRunner, wired: MagicMock, project_dir: Path
    ) -> None:
        """-v turns on debug logging for the nekocli logger."""
        runner.invoke(cli, ["-v", "--project", str(project_dir), "install"])
        assert logging.getLogger("nekocli").level == logging.DEBUG
        runner.invoke(cli, ["--project", str(project_dir), "install"])
        assert logging.getLogger("nekocli").level == logging.ERROR
