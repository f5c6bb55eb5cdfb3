"""Shallow mirror of the upstream grammars repository."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from ..logging import get_logger
from ..process import CommandRunner, run_command


class GrammarMirror:
    """Clones the grammars repository on first use and refreshes it afterwards.

    The ``reset`` policy hard-resets the working tree to the fetched head so
    every build sees exactly the upstream state. ``fetch`` only refreshes refs
    and leaves the checkout untouched.
    """

    def __init__(
        self,
        directory: Path,
        url: str,
        *,
        depth: int = 1,
        update_policy: str = "reset",
        timeout: Optional[float] = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.directory = directory
        self.url = url
        self.depth = depth
        self.update_policy = update_policy
        self.timeout = timeout
        self._runner = runner or run_command
        self.logger = get_logger("git.mirror")

    def exists(self) -> bool:
        return (self.directory / ".git").exists()

    def sync(self) -> None:
        """Clone when absent, otherwise update according to the policy."""
        if not self.exists():
            self.clone()
        else:
            self.update()

    def clone(self) -> None:
        self.logger.info("Cloning %s...", self.url)
        self.directory.parent.mkdir(parents=True, exist_ok=True)
        self._run(
            [
                "git",
                "clone",
                "--depth",
                str(self.depth),
                self.url,
                str(self.directory),
            ],
            cwd=self.directory.parent,
        )

    def update(self) -> None:
        self.logger.info("Updating %s...", self.directory.name)
        self._run(
            ["git", "fetch", "--depth", str(self.depth), "origin"],
            cwd=self.directory,
        )
        if self.update_policy == "reset":
            self._run(["git", "reset", "--hard", "FETCH_HEAD"], cwd=self.directory)

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(args, cwd=cwd, timeout=self.timeout)


__all__ = ["GrammarMirror"]
