"""
Runner for the external migration CLI.

Spawns the CLI (``sb-mig`` by default) with credentials injected through
the environment and streams its stdout/stderr as OutputEvent objects.

Each start() returns its own RunHandle; there is no module-level "current
process". Callers that want at most one run at a time keep the handle
and check ``handle.is_running()`` themselves.

Example:
    >>> runner = CommandRunner()
    >>> handle = await runner.start(["sync", "components", "--all"], Path("."), creds)
    >>> result = await handle.wait()
    >>> result.exit_code
    0
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)

IS_UNIX = sys.platform != "win32"
READ_CHUNK_SIZE = 4096


class OutputEventType(str, Enum):
    """Type of a streamed output event."""

    STDOUT = "stdout"
    STDERR = "stderr"
    INFO = "info"
    ERROR = "error"
    COMPLETE = "complete"


class OutputEvent(BaseModel):
    """A chunk of process output or a lifecycle notice."""

    type: OutputEventType
    data: str
    timestamp: int
    """Milliseconds since the epoch."""


class CommandResult(BaseModel):
    """Structured result of one external CLI run."""

    success: bool
    """Whether the process exited with code 0."""

    exit_code: int | None
    """Process exit code, or None if it never started."""

    error: str | None = None
    """Error message if the process could not be run."""


class CliCredentials(BaseModel):
    """Credentials handed to the external CLI through its environment."""

    oauth_token: str | None = None
    space_id: str | None = None
    access_token: str | None = None

    def to_env(self) -> dict[str, str]:
        env: dict[str, str] = {}
        if self.oauth_token:
            env["STORYBLOK_OAUTH_TOKEN"] = self.oauth_token
        if self.space_id:
            env["STORYBLOK_SPACE_ID"] = str(self.space_id)
        if self.access_token:
            env["STORYBLOK_ACCESS_TOKEN"] = self.access_token
        return env


class ValidationResult(BaseModel):
    """Outcome of running the CLI's ``debug`` command in a project."""

    success: bool
    working_dir: Path
    raw_output: str = ""
    """Combined stdout and stderr of the debug command."""

    has_oauth_token: bool = False
    has_space_id: bool = False
    has_access_token: bool = False
    error: str | None = None


class DebugInfo(BaseModel):
    """Where the CLI was looked for and what was found."""

    home: Path
    extended_path: str
    executable: str
    executable_path: str | None = None
    version: str | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.version is not None


OutputCallback = Callable[[OutputEvent], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def get_extended_path(home: Path | None = None) -> str:
    """
    PATH with common user binary locations prepended.

    GUI launchers and service managers often start processes without the
    login shell's PATH, so node-based CLIs installed per user are missing.
    """
    home = home or Path.home()
    candidates = [
        Path("/usr/local/bin"),
        Path("/opt/homebrew/bin"),
        home / ".npm-global" / "bin",
        home / ".volta" / "bin",
        home / ".asdf" / "shims",
        home / ".local" / "bin",
    ]

    nvm_versions = home / ".nvm" / "versions" / "node"
    if nvm_versions.is_dir():
        try:
            candidates.extend(sorted(p / "bin" for p in nvm_versions.iterdir()))
        except OSError:
            logger.debug("Cannot list %s", nvm_versions)

    parts = [str(p) for p in candidates]
    parts.extend(os.environ.get("PATH", "").split(os.pathsep))
    return os.pathsep.join(dict.fromkeys(p for p in parts if p))


class RunHandle:
    """
    Handle to one running (or finished) external CLI process.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process | None,
        on_output: OutputCallback,
        *,
        failed: CommandResult | None = None,
    ) -> None:
        self._process = process
        self._emit = on_output
        self._result = failed
        self._killed = False
        self._readers: asyncio.Future[list[None]] | None = None

        if process is not None:
            self._readers = asyncio.gather(
                self._pump(process.stdout, OutputEventType.STDOUT),
                self._pump(process.stderr, OutputEventType.STDERR),
            )

    async def _pump(self, stream: asyncio.StreamReader | None, kind: OutputEventType) -> None:
        if stream is None:
            return
        while chunk := await stream.read(READ_CHUNK_SIZE):
            self._emit(
                OutputEvent(
                    type=kind,
                    data=chunk.decode("utf-8", errors="replace"),
                    timestamp=_now_ms(),
                )
            )

    def is_running(self) -> bool:
        """Whether the process is still alive and was not killed."""
        return (
            self._process is not None
            and self._process.returncode is None
            and not self._killed
        )

    def kill(self) -> bool:
        """
        Terminate the process with SIGTERM.

        Returns:
            True if a running process was signalled, False otherwise
        """
        if not self.is_running():
            return False
        assert self._process is not None

        try:
            self._process.terminate()
        except ProcessLookupError:
            return False

        self._killed = True
        self._emit(
            OutputEvent(
                type=OutputEventType.INFO,
                data="Process terminated by user",
                timestamp=_now_ms(),
            )
        )
        return True

    async def wait(self) -> CommandResult:
        """Wait for the process and its output streams to finish."""
        if self._result is not None:
            return self._result
        assert self._process is not None

        if self._readers is not None:
            await self._readers
        exit_code = await self._process.wait()

        self._emit(
            OutputEvent(
                type=OutputEventType.COMPLETE,
                data=f"Process exited with code {exit_code}",
                timestamp=_now_ms(),
            )
        )
        self._result = CommandResult(success=exit_code == 0, exit_code=exit_code)
        return self._result


class CommandRunner:
    """
    Starts the external migration CLI.
    """

    def __init__(self, executable: str = "sb-mig") -> None:
        self.executable = executable

    def build_env(self, credentials: CliCredentials | None = None) -> dict[str, str]:
        """Process environment: current env, extended PATH, credentials."""
        env = dict(os.environ)
        env["PATH"] = get_extended_path()
        if credentials is not None:
            env.update(credentials.to_env())
        return env

    async def start(
        self,
        args: list[str],
        working_dir: Path,
        credentials: CliCredentials | None = None,
        on_output: OutputCallback | None = None,
    ) -> RunHandle:
        """
        Start the CLI and begin streaming its output.

        A missing executable or unusable working directory does not raise:
        the returned handle is already finished with a failed result and an
        ERROR event has been emitted.
        """
        emit = on_output or _ignore_output
        emit(
            OutputEvent(
                type=OutputEventType.INFO,
                data=f"$ {self.executable} {' '.join(args)}".rstrip(),
                timestamp=_now_ms(),
            )
        )

        kwargs: dict[str, object] = {
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "cwd": str(working_dir),
            "env": self.build_env(credentials),
        }
        if IS_UNIX:
            kwargs["start_new_session"] = True

        logger.debug("Running %s %s in %s", self.executable, " ".join(args), working_dir)
        try:
            process = await asyncio.create_subprocess_exec(self.executable, *args, **kwargs)
        except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
            message = (
                f"Command not found: {self.executable}. Ensure it is installed and in PATH."
                if isinstance(e, FileNotFoundError)
                else str(e)
            )
            emit(OutputEvent(type=OutputEventType.ERROR, data=f"Error: {message}", timestamp=_now_ms()))
            return RunHandle(
                None,
                emit,
                failed=CommandResult(success=False, exit_code=None, error=message),
            )

        return RunHandle(process, emit)

    async def version(self) -> str | None:
        """
        Installed CLI version (last line of ``--version``), or None.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.build_env(),
            )
        except (FileNotFoundError, PermissionError):
            return None

        stdout, _stderr = await process.communicate()
        if process.returncode != 0:
            return "installed"
        lines = stdout.decode("utf-8", errors="replace").strip().splitlines()
        return lines[-1].strip() if lines else "installed"


    async def is_installed(self) -> bool:
        return await self.version() is not None

    async def validate(
        self,
        working_dir: Path,
        credentials: CliCredentials | None = None,
    ) -> ValidationResult:
        """
        Run ``<executable> debug`` in a project with credentials injected.

        The CLI prints its resolved configuration; a non-zero exit or a
        missing executable gives an unsuccessful result rather than raising.
        """
        credentials = credentials or CliCredentials()
        flags = {
            "has_oauth_token": bool(credentials.oauth_token),
            "has_space_id": bool(credentials.space_id),
            "has_access_token": bool(credentials.access_token),
        }

        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                "debug",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(working_dir),
                env=self.build_env(credentials),
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
            logger.debug("Cannot start %s debug: %s", self.executable, e)
            return ValidationResult(
                success=False,
                working_dir=working_dir,
                error=f"Command not found: {self.executable}"
                if isinstance(e, FileNotFoundError)
                else str(e),
                **flags,
            )

        stdout, stderr = await process.communicate()
        output = (stdout + stderr).decode("utf-8", errors="replace")
        error = None
        if process.returncode != 0:
            error = f"{self.executable} debug exited with code {process.returncode}"

        return ValidationResult(
            success=error is None,
            working_dir=working_dir,
            raw_output=output,
            error=error,
            **flags,
        )

    async def debug_info(self, home: Path | None = None) -> DebugInfo:
        """Report the extended PATH and whether the CLI can be found on it."""
        home = home or Path.home()
        extended_path = get_extended_path(home)
        location = shutil.which(self.executable, path=extended_path)

        info = DebugInfo(
            home=home,
            extended_path=extended_path,
            executable=self.executable,
            executable_path=location,
        )
        if location is None:
            info.error = f"{self.executable} not found on PATH"
            return info

        info.version = await CommandRunner(location).version()
        if info.version == "installed":
            info.version = f"installed (at {location})"
            info.error = "Version check failed"
        return info


def _ignore_output(_event: OutputEvent) -> None:
    pass


__all__ = [
    "CliCredentials",
    "CommandResult",
    "CommandRunner",
    "DebugInfo",
    "OutputEvent",
    "OutputEventType",
    "RunHandle",
    "ValidationResult",
    "get_extended_path",
]
