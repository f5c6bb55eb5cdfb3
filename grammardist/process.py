"""Subprocess helpers for the external tools grammardist drives."""

from __future__ import annotations

import shlex
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Optional

from .logging import get_logger

CommandRunner = Callable[..., str]

_logger = get_logger("process")


class CommandError(RuntimeError):
    """Raised when an external command cannot be run or exits non-zero."""

    def __init__(self, args: Iterable[str], message: str, returncode: int | None = None) -> None:
        self.command = list(args)
        self.returncode = returncode
        super().__init__(f"{message}: {format_command(self.command)}")


class CommandTimeoutError(CommandError):
    """Raised when an external command exceeds its timeout."""

    def __init__(self, args: Iterable[str], timeout: float) -> None:
        self.timeout = timeout
        super().__init__(args, f"Command timed out after {timeout:g}s")


def format_command(args: Iterable[str]) -> str:
    return " ".join(shlex.quote(str(arg)) for arg in args)


def run_command(
    args: Iterable[str],
    *,
    cwd: Path | None = None,
    timeout: Optional[float] = None,
    capture_output: bool = False,
) -> str:
    """Run ``args`` and return captured stdout (empty unless ``capture_output``)."""
    command = [str(arg) for arg in args]
    _logger.debug("Running %s (cwd=%s)", format_command(command), cwd or ".")
    if cwd is not None and not Path(cwd).is_dir():
        raise CommandError(command, f"Working directory not found: {cwd}")
    try:
        completed = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            check=True,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(command, f"Unable to locate executable '{command[0]}'") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(command, exc.timeout) from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() if capture_output else ""
        message = f"Command exited with code {exc.returncode}"
        if detail:
            message = f"{message} ({detail})"
        raise CommandError(command, message, exc.returncode) from exc
    if capture_output:
        return completed.stdout
    return ""


__all__ = [
    "CommandError",
    "CommandRunner",
    "CommandTimeoutError",
    "format_command",
    "run_command",
]
