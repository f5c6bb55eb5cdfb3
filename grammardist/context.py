"""Explicit run context passed to every pipeline step."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import GrammarDistConfig
from .fetcher import Fetcher
from .models import Grammar
from .process import CommandRunner, run_command
from .stores import BuildCache


@dataclass
class BuildContext:
    """Resolved paths, collaborators and the cache handle for one run."""

    config: GrammarDistConfig
    cache: Optional[BuildCache] = None
    runner: CommandRunner = run_command
    fetcher: Optional[Fetcher] = None
    use_cache: bool = True

    def __post_init__(self) -> None:
        if self.fetcher is None:
            sources = self.config.sources
            self.fetcher = Fetcher(
                timeout=sources.network_timeout,
                max_redirects=sources.max_redirects,
            )

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    @property
    def mirror_dir(self) -> Path:
        return self.config.mirror_dir

    def source_dir(self, grammar: Grammar) -> Path:
        return self.config.mirror_dir / grammar.base

    def generated_dir(self, grammar: Grammar) -> Path:
        return self.config.generated_dir / grammar.base

    def grammar_output_dir(self, grammar: Grammar) -> Path:
        return self.config.output_dir / grammar.base

    def artifact_path(self, grammar: Grammar, component: str) -> Path:
        return self.grammar_output_dir(grammar) / f"{component}{self.config.generator.extension}"

    def load_cache(self) -> Optional[BuildCache]:
        """Open the persisted cache once; disabled caching yields None."""
        if not (self.use_cache and self.config.cache.enabled):
            return None
        if self.cache is None:
            self.cache = BuildCache(self.config.cache_file)
        return self.cache


__all__ = ["BuildContext"]
