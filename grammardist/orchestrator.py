"""Pipeline orchestration for the dist and readme modes."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .builder import GrammarBuilder
from .config import GrammarDistConfig
from .context import BuildContext
from .git.mirror import GrammarMirror
from .logging import get_logger
from .manifest import load_grammars
from .models import COMPONENTS, BuildResult, Grammar
from .readme import ReadmeGenerator


@dataclass
class DistOutcome:
    """Result of a full distribution build."""

    grammars: Tuple[Grammar, ...]
    results: List[BuildResult] = field(default_factory=list)
    readme_path: Optional[Path] = None

    @property
    def built(self) -> List[BuildResult]:
        return [result for result in self.results if not result.cached]

    @property
    def cached(self) -> List[BuildResult]:
        return [result for result in self.results if result.cached]


class Orchestrator:
    """Coordinates dependency setup, grammar builds and README rendering."""

    def __init__(
        self,
        context: BuildContext,
        *,
        mirror: GrammarMirror | None = None,
        builder: GrammarBuilder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.context = context
        self.config: GrammarDistConfig = context.config
        sources = self.config.sources
        self.mirror = mirror or GrammarMirror(
            self.config.mirror_dir,
            sources.grammars_repo,
            depth=sources.clone_depth,
            update_policy=sources.mirror_update,
            timeout=sources.git_timeout,
            runner=context.runner,
        )
        self.builder = builder or GrammarBuilder(context)
        self.readme = ReadmeGenerator(
            self.config.readme.template, extension=self.config.generator.extension
        )
        self._clock = clock
        self._grammars: Optional[Tuple[Grammar, ...]] = None
        self.logger = get_logger("orchestrator")

    def setup_dependencies(self) -> None:
        """Create working directories, fetch the ANTLR jar and sync the mirror."""
        for directory in (self.config.build_dir, self.config.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

        jar = self.config.jar_path
        if not jar.exists():
            self.logger.info("Downloading ANTLR...")
            self.context.fetcher.download(self.config.sources.antlr_jar_url, jar)
        self.mirror.sync()

    def load_grammars(self) -> Tuple[Grammar, ...]:
        """Load the manifest once per run and reuse it afterwards."""
        if self._grammars is None:
            self._grammars = load_grammars(self.config)
            self.logger.info("Found %d grammars", len(self._grammars))
        return self._grammars

    def run_dist(self) -> DistOutcome:
        """Build every grammar and assemble the distribution directory."""
        self.setup_dependencies()
        grammars = self.load_grammars()
        outcome = DistOutcome(grammars=grammars)

        cache = self.context.load_cache()
        self.logger.info("Processing %d grammars...", len(grammars))
        for grammar in grammars:
            outcome.results.append(self.builder.build(grammar))
            if cache is not None:
                cache.save()

        if cache is not None:
            retired = cache.prune(grammar.key for grammar in grammars)
            cache.save()
            for base in retired:
                self.remove_retired_output(base)

        self.copy_package_metadata()
        outcome.readme_path = self.write_readme(grammars)
        self.logger.info(
            "Built %d grammars (%d unchanged)", len(outcome.built), len(outcome.cached)
        )
        return outcome

    def run_readme(self) -> Path:
        """Refresh the README without touching generated or bundled artifacts."""
        if not self.mirror.exists():
            self.setup_dependencies()
        grammars = self.load_grammars()
        return self.write_readme(grammars)

    def remove_retired_output(self, base: str) -> None:
        """Delete the bundles of a grammar that left the manifest."""
        output_root = self.config.output_dir.resolve()
        directory = (output_root / base).resolve()
        if directory == output_root or output_root not in directory.parents:
            self.logger.warning("Ignoring retired cache key outside the output: %s", base)
            return
        extension = self.config.generator.extension
        for component in COMPONENTS:
            (directory / f"{component}{extension}").unlink(missing_ok=True)
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
        self.logger.info("Removed retired grammar %s", base)

    def copy_package_metadata(self) -> Path:
        source = self.config.package_metadata
        destination = self.config.output_dir / source.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        return destination

    def write_readme(self, grammars: Tuple[Grammar, ...]) -> Path:
        destination = self.config.output_dir / self.config.readme.output
        generated_at = self._clock() if self._clock is not None else None
        return self.readme.write(
            grammars,
            self.config.output_dir,
            destination,
            generated_at=generated_at,
        )


__all__ = ["DistOutcome", "Orchestrator"]
