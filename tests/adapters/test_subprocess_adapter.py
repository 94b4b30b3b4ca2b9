"""Tests for SubprocessAdapter: process creation is mocked."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nekocli.adapters import NPM, RunFlags, SubprocessAdapter
from nekocli.exceptions import SubprocessError

_EXEC = "nekocli.adapters.base.asyncio.create_subprocess_exec"
_WHICH = "nekocli.adapters.base.shutil.which"


def _process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    """A fake asyncio process with canned output."""
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc


class TestSubprocessAdapter:
    """Tests for SubprocessAdapter.run."""

    def test_success(self, tmp_path: Path) -> None:
        """A zero exit returns the captured output."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        exec_mock = AsyncMock(return_value=_process(stdout=b"added 1 package\n"))
        with patch(_WHICH, return_value="/usr/bin/npm"), patch(_EXEC, exec_mock):
            result = asyncio.run(adapter.run("install", ["left-pad@1.3.0"]))

        assert result.returncode == 0
        assert result.stdout == "added 1 package\n"
        assert result.command == ["npm", "install", "left-pad@1.3.0", "--save", "--silent"]
        args, kwargs = exec_mock.call_args
        assert args == ("/usr/bin/npm", "install", "left-pad@1.3.0", "--save", "--silent")
        assert kwargs["cwd"] == str(tmp_path)

    def test_non_zero_exit(self, tmp_path: Path) -> None:
        """A failing tool raises SubprocessError with its stderr."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        proc = _process(returncode=1, stderr=b"npm ERR! 404 Not Found\n")
        with patch(_WHICH, return_value="/usr/bin/npm"), patch(_EXEC, AsyncMock(return_value=proc)):
            with pytest.raises(SubprocessError) as exc_info:
                asyncio.run(adapter.run("install", ["nope@1.0.0"], RunFlags(dev=True)))

        err = exc_info.value
        assert err.returncode == 1
        assert err.output == "npm ERR! 404 Not Found"
        assert err.command[:3] == ["npm", "install", "nope@1.0.0"]
        assert "exited with status 1" in str(err)

    def test_stdout_used_when_stderr_empty(self, tmp_path: Path) -> None:
        """Tools that report errors on stdout still surface them."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        proc = _process(returncode=2, stdout=b"error: bad\n")
        with patch(_WHICH, return_value="/usr/bin/npm"), patch(_EXEC, AsyncMock(return_value=proc)):
            with pytest.raises(SubprocessError) as exc_info:
                asyncio.run(adapter.run("uninstall", ["left-pad"]))
        assert exc_info.value.output == "error: bad"

    def test_missing_executable(self, tmp_path: Path) -> None:
        """A tool that is not on PATH raises without spawning anything."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        exec_mock = AsyncMock()
        with patch(_WHICH, return_value=None), patch(_EXEC, exec_mock):
            with pytest.raises(SubprocessError, match="not found on PATH") as exc_info:
                asyncio.run(adapter.run("install", []))
        assert exc_info.value.returncode == -1
        exec_mock.assert_not_called()

    def test_spawn_failure(self, tmp_path: Path) -> None:
        """An OS error while starting the process becomes SubprocessError."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        with patch(_WHICH, return_value="/usr/bin/npm"), \
                patch(_EXEC, AsyncMock(side_effect=PermissionError("denied"))):
            with pytest.raises(SubprocessError, match="Cannot start npm"):
                asyncio.run(adapter.run("install", []))

    def test_command_preview(self, tmp_path: Path) -> None:
        """command() shows the argv without running it."""
        adapter = SubprocessAdapter(NPM, tmp_path)
        assert adapter.command("install", [], RunFlags(silent=False)) == ["npm", "install"]
