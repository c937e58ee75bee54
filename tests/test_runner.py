"""
Tests for the external CLI runner.

The Python interpreter stands in for the external CLI so that real
processes are spawned without extra tools installed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from spacemig.core.runner import (
    CliCredentials,
    CommandResult,
    CommandRunner,
    OutputEvent,
    OutputEventType,
    get_extended_path,
)


def of_type(events: list[OutputEvent], kind: OutputEventType) -> str:
    return "".join(e.data for e in events if e.type == kind)


class TestCliCredentials:
    """Tests for CliCredentials."""

    def test_to_env(self):
        creds = CliCredentials(oauth_token="tok", space_id="123", access_token="pub")

        assert creds.to_env() == {
            "STORYBLOK_OAUTH_TOKEN": "tok",
            "STORYBLOK_SPACE_ID": "123",
            "STORYBLOK_ACCESS_TOKEN": "pub",
        }

    def test_unset_values_are_left_out(self):
        assert CliCredentials(space_id="1").to_env() == {"STORYBLOK_SPACE_ID": "1"}


class TestExtendedPath:
    """Tests for get_extended_path()."""

    def test_includes_user_dirs_and_existing_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "/custom/bin")

        path = get_extended_path(tmp_path).split(":")

        assert str(tmp_path / ".local" / "bin") in path
        assert "/custom/bin" in path
        assert len(path) == len(set(path))

    def test_nvm_versions(self, tmp_path):
        (tmp_path / ".nvm" / "versions" / "node" / "v20.1.0" / "bin").mkdir(parents=True)

        path = get_extended_path(tmp_path)

        assert str(tmp_path / ".nvm" / "versions" / "node" / "v20.1.0" / "bin") in path


class TestCommandRunner:
    """Tests for CommandRunner and RunHandle."""

    @pytest.mark.asyncio
    async def test_streams_stdout_and_completes(self, tmp_path):
        events: list[OutputEvent] = []
        runner = CommandRunner(sys.executable)

        handle = await runner.start(["-c", "print('hello')"], tmp_path, None, events.append)
        result = await handle.wait()

        assert result == CommandResult(success=True, exit_code=0)
        assert events[0].type == OutputEventType.INFO
        assert events[0].data.startswith("$ ")
        assert "hello" in of_type(events, OutputEventType.STDOUT)
        assert events[-1].type == OutputEventType.COMPLETE
        assert events[-1].data == "Process exited with code 0"

    @pytest.mark.asyncio
    async def test_stderr_and_exit_code(self, tmp_path):
        events: list[OutputEvent] = []
        runner = CommandRunner(sys.executable)

        handle = await runner.start(
            ["-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            tmp_path,
            None,
            events.append,
        )
        result = await handle.wait()

        assert result.success is False
        assert result.exit_code == 3
        assert "bad" in of_type(events, OutputEventType.STDERR)

    @pytest.mark.asyncio
    async def test_credentials_are_injected(self, tmp_path):
        events: list[OutputEvent] = []
        runner = CommandRunner(sys.executable)
        creds = CliCredentials(oauth_token="tok-1", space_id="42")

        handle = await runner.start(
            [
                "-c",
                "import os; print(os.environ['STORYBLOK_OAUTH_TOKEN'], "
                "os.environ['STORYBLOK_SPACE_ID'])",
            ],
            tmp_path,
            creds,
            events.append,
        )
        await handle.wait()

        assert "tok-1 42" in of_type(events, OutputEventType.STDOUT)

    @pytest.mark.asyncio
    async def test_runs_in_working_dir(self, tmp_path):
        events: list[OutputEvent] = []
        runner = CommandRunner(sys.executable)

        handle = await runner.start(
            ["-c", "import os; print(os.getcwd())"], tmp_path, None, events.append
        )
        await handle.wait()

        assert of_type(events, OutputEventType.STDOUT).strip() == str(tmp_path.resolve())

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        """A missing CLI is a failed result and an error event, not an exception."""
        events: list[OutputEvent] = []
        runner = CommandRunner("spacemig-no-such-cli")

        handle = await runner.start(["--help"], tmp_path, None, events.append)
        result = await handle.wait()

        assert result.success is False
        assert result.exit_code is None
        assert "Command not found" in (result.error or "")
        assert events[-1].type == OutputEventType.ERROR
        assert handle.is_running() is False
        assert handle.kill() is False

    @pytest.mark.asyncio
    async def test_kill(self, tmp_path):
        events: list[OutputEvent] = []
        runner = CommandRunner(sys.executable)

        handle = await runner.start(
            ["-c", "import time; time.sleep(30)"], tmp_path, None, events.append
        )

        assert handle.is_running() is True
        assert handle.kill() is True
        result = await handle.wait()

        assert result.success is False
        assert handle.is_running() is False
        assert handle.kill() is False
        assert any(
            e.type == OutputEventType.INFO and e.data == "Process terminated by user"
            for e in events
        )

    @pytest.mark.asyncio
    async def test_handles_are_independent(self, tmp_path):
        """Each start returns its own handle."""
        runner = CommandRunner(sys.executable)

        first = await runner.start(["-c", "import time; time.sleep(30)"], tmp_path)
        second = await runner.start(["-c", "pass"], tmp_path)
        await second.wait()

        assert first.is_running() is True
        first.kill()
        await first.wait()

    @pytest.mark.asyncio
    async def test_wait_is_repeatable(self, tmp_path):
        handle = await CommandRunner(sys.executable).start(["-c", "pass"], tmp_path)

        assert await handle.wait() == await handle.wait()

    @pytest.mark.asyncio
    async def test_version(self):
        version = await CommandRunner(sys.executable).version()

        assert version is not None
        assert version.startswith("Python")

    @pytest.mark.asyncio
    async def test_version_missing_executable(self):
        assert await CommandRunner("spacemig-no-such-cli").version() is None


FAKE_CLI = """#!/bin/sh
if [ "$1" = "--version" ]; then
    [ -n "$FAKE_CLI_NO_VERSION" ] && exit 1
    echo "loading..."
    echo "5.1.0"
    exit 0
fi
if [ "$1" = "debug" ]; then
    echo "space: $STORYBLOK_SPACE_ID"
    echo "cwd: $(pwd)" >&2
    exit "${FAKE_CLI_EXIT:-0}"
fi
exit 1
"""


def write_fake_cli(directory: Path, name: str = "fake-mig") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(FAKE_CLI)
    path.chmod(0o755)
    return path


@pytest.mark.skipif(sys.platform == "win32", reason="shell script stands in for the CLI")
class TestValidate:
    """Tests for CommandRunner.validate()."""

    @pytest.mark.asyncio
    async def test_reports_output_and_credential_flags(self, tmp_path):
        cli = write_fake_cli(tmp_path / "bin")
        project = tmp_path / "project"
        project.mkdir()

        result = await CommandRunner(str(cli)).validate(
            project, CliCredentials(oauth_token="tok", space_id="42")
        )

        assert result.success is True
        assert result.error is None
        assert result.working_dir == project
        assert "space: 42" in result.raw_output
        assert f"cwd: {project.resolve()}" in result.raw_output
        assert result.has_oauth_token is True
        assert result.has_space_id is True
        assert result.has_access_token is False

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FAKE_CLI_EXIT", "2")
        cli = write_fake_cli(tmp_path / "bin")

        result = await CommandRunner(str(cli)).validate(tmp_path)

        assert result.success is False
        assert result.error == f"{cli} debug exited with code 2"
        assert "space:" in result.raw_output
        assert result.has_oauth_token is False

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        result = await CommandRunner("spacemig-no-such-cli").validate(
            tmp_path, CliCredentials(access_token="pub")
        )

        assert result.success is False
        assert result.error == "Command not found: spacemig-no-such-cli"
        assert result.raw_output == ""
        assert result.has_access_token is True


@pytest.mark.skipif(sys.platform == "win32", reason="shell script stands in for the CLI")
class TestInstallChecks:
    """Tests for is_installed() and debug_info()."""

    @pytest.mark.asyncio
    async def test_is_installed(self, tmp_path):
        cli = write_fake_cli(tmp_path)

        assert await CommandRunner(str(cli)).is_installed() is True
        assert await CommandRunner("spacemig-no-such-cli").is_installed() is False

    @pytest.mark.asyncio
    async def test_debug_info_finds_cli_in_user_bin(self, tmp_path):
        """A CLI in ~/.local/bin is found even when PATH does not list it."""
        cli = write_fake_cli(tmp_path / ".local" / "bin")

        info = await CommandRunner("fake-mig").debug_info(home=tmp_path)

        assert info.found is True
        assert info.executable_path == str(cli)
        assert info.version == "5.1.0"
        assert info.error is None
        assert str(tmp_path / ".local" / "bin") in info.extended_path.split(":")

    @pytest.mark.asyncio
    async def test_debug_info_version_check_fails(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FAKE_CLI_NO_VERSION", "1")
        cli = write_fake_cli(tmp_path / ".local" / "bin")

        info = await CommandRunner("fake-mig").debug_info(home=tmp_path)

        assert info.found is True
        assert info.version == f"installed (at {cli})"
        assert info.error == "Version check failed"

    @pytest.mark.asyncio
    async def test_debug_info_not_found(self, tmp_path):
        info = await CommandRunner("spacemig-no-such-cli").debug_info(home=tmp_path)

        assert info.found is False
        assert info.executable_path is None
        assert info.error == "spacemig-no-such-cli not found on PATH"
