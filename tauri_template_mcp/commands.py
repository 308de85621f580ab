"""External process execution for the Tauri template toolchain."""

import asyncio
import logging
import os
import subprocess
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Raised when an external command cannot be spawned or exits nonzero."""

    def __init__(
        self,
        command: Sequence[str],
        message: str,
        *,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def detail(self) -> str:
        """Return the most useful captured text for reporting."""

        for text in (self.stderr, self.stdout):
            if text and text.strip():
                return f"{self} - {text.strip()}"
        return str(self)


class CommandRunner:  # pylint: disable=too-few-public-methods
    """Run external programs and capture their standard output."""

    def __init__(self, env: Optional[dict] = None):
        """Initialize the runner.

        Args:
            env: Optional environment overrides applied to every command
        """
        self.env = env

    def run(
        self, command: str, args: Optional[List[str]] = None, cwd: Optional[str] = None
    ) -> str:
        """Run ``command`` with ``args`` inside ``cwd``.

        Args:
            command: Program to execute
            args: Program arguments
            cwd: Working directory (defaults to the current directory)

        Returns:
            Captured standard output

        Raises:
            CommandError: If the program cannot be started or exits nonzero
        """
        cmd = [command, *(args or [])]
        workdir = cwd or os.getcwd()
        display = " ".join(cmd)
        logger.info("Executing: %s (cwd=%s)", display, workdir)

        env = None
        if self.env:
            env = {**os.environ, **self.env}

        try:
            process = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                cwd=workdir,
                env=env,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as error:
            logger.error("Failed to start %s: %s", display, error)
            raise CommandError(cmd, f"Failed to start {display}: {error}") from error

        if process.returncode != 0:
            logger.error("Command failed: %s (exit %s)", display, process.returncode)
            logger.debug("Stdout: %s", process.stdout)
            logger.debug("Stderr: %s", process.stderr)
            raise CommandError(
                cmd,
                f"Command failed with exit code {process.returncode}: {display}",
                returncode=process.returncode,
                stdout=process.stdout or "",
                stderr=process.stderr or "",
            )

        logger.info("Command completed: %s", display)
        return process.stdout or ""

    async def run_async(
        self, command: str, args: Optional[List[str]] = None, cwd: Optional[str] = None
    ) -> str:
        """Run a command on a worker thread so the event loop keeps serving."""

        return await asyncio.to_thread(self.run, command, args, cwd)
