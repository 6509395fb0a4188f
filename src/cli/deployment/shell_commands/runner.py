"""Command runner for executing shell commands.

Every helm/kubectl invocation goes through ``CommandRunner`` so tests can
substitute a ``MagicMock`` and never spawn a process.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling."""

    def __init__(self, working_dir: Path) -> None:
        """Initialize the command runner.

        Args:
            working_dir: Directory commands run from by default
                         (the manifest root)
        """
        self.working_dir = working_dir

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a command and capture its output.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            timeout: Seconds before the process is killed

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.working_dir,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(success=False, stderr=str(e), returncode=127)
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]} timed out after {e.timeout}s",
                returncode=124,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_streaming(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Execute a command, passing each output line to ``on_output``.

        stderr is merged into stdout.
        """
        logger.debug(f"Streaming {' '.join(cmd)}")
        try:
            process = subprocess.Popen(
                list(cmd),
                cwd=cwd or self.working_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as e:
            return CommandResult(success=False, stderr=str(e), returncode=127)

        lines: list[str] = []
        if process.stdout:
            for line in iter(process.stdout.readline, ""):
                line = line.rstrip("\n")
                if line:
                    lines.append(line)
                    if on_output:
                        on_output(line)

        process.wait()
        return CommandResult(
            success=process.returncode == 0,
            stdout="\n".join(lines),
            returncode=process.returncode or 0,
        )
