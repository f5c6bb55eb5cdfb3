"""Per-grammar generation and bundling."""

from __future__ import annotations

import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Tuple

from .context import BuildContext
from .logging import get_logger
from .models import COMPONENTS, BuildResult, ComponentEntry, Grammar
from .stores import digest_file

ANTLR_TOOL_CLASS = "org.antlr.v4.Tool"


class MissingArtifactError(RuntimeError):
    """Raised when a grammar source or an expected generated file is absent."""


class GrammarBuilder:
    """Runs the ANTLR tool and the bundler for one grammar at a time."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.config = context.config
        self.logger = get_logger("builder")

    def build(self, grammar: Grammar) -> BuildResult:
        """Generate and bundle ``grammar`` unless the cache proves it current."""
        source_dir = self.context.source_dir(grammar)
        digests = self.source_digests(grammar)
        expected = [self.context.artifact_path(grammar, name) for name in grammar.components]

        cache = self.context.load_cache()
        if cache is not None and cache.is_valid(grammar.key, digests, expected):
            self.logger.info("Skipping %s (unchanged)", grammar.name)
            return BuildResult(grammar=grammar, cached=True, artifacts=self._existing(grammar))

        self.logger.info("Building %s...", grammar.name)
        generated_dir = self.context.generated_dir(grammar)
        if generated_dir.exists():
            shutil.rmtree(generated_dir)
        generated_dir.mkdir(parents=True)
        self.context.grammar_output_dir(grammar).mkdir(parents=True, exist_ok=True)
        self.remove_artifacts(grammar)

        self.generate(grammar, source_dir, generated_dir)
        self.relocate(source_dir, generated_dir)
        entries = self.locate_entries(grammar, generated_dir)
        artifacts = self.bundle(grammar, entries, generated_dir)

        if cache is not None:
            cache.record(grammar.key, digests, artifacts.values())
        return BuildResult(grammar=grammar, cached=False, artifacts=artifacts)

    def source_digests(self, grammar: Grammar) -> Dict[str, str]:
        source_dir = self.context.source_dir(grammar)
        digests: Dict[str, str] = {}
        for name in grammar.files:
            path = source_dir / name
            if not path.is_file():
                raise MissingArtifactError(f"{grammar.name}: grammar source not found: {path}")
            digests[name] = digest_file(path)
        return digests

    def generate(self, grammar: Grammar, source_dir: Path, generated_dir: Path) -> None:
        generator = self.config.generator
        args = [
            generator.java,
            f"-Xmx{generator.heap}",
            "-cp",
            str(self.config.jar_path),
            ANTLR_TOOL_CLASS,
            f"-Dlanguage={generator.target}",
            "-visitor",
            *grammar.files,
            "-o",
            str(generated_dir),
        ]
        self.context.runner(args, cwd=source_dir, timeout=generator.timeout)

    def relocate(self, source_dir: Path, generated_dir: Path) -> None:
        """Bring target-specific files next to the generated entry modules."""
        target = self.config.generator.target
        support_dir = source_dir / target
        if support_dir.is_dir():
            self.logger.debug("Copying %s support files from %s", target, support_dir)
            shutil.copytree(support_dir, generated_dir, dirs_exist_ok=True)
        nested = generated_dir / target
        if nested.is_dir():
            shutil.copytree(nested, generated_dir, dirs_exist_ok=True)

    def locate_entries(
        self, grammar: Grammar, generated_dir: Path
    ) -> List[Tuple[ComponentEntry, Path]]:
        extension = self.config.generator.extension
        located: List[Tuple[ComponentEntry, Path]] = []
        for entry in grammar.entries:
            candidates = sorted(
                generated_dir.rglob(f"{entry.entry}{extension}"),
                key=lambda path: (len(path.parts), path.as_posix()),
            )
            if candidates:
                located.append((entry, candidates[0]))
            elif entry.required:
                raise MissingArtifactError(
                    f"{grammar.name}: generated {entry.component} "
                    f"{entry.entry}{extension} not found in {generated_dir}"
                )
        return located

    def bundle(
        self,
        grammar: Grammar,
        entries: List[Tuple[ComponentEntry, Path]],
        generated_dir: Path,
    ) -> Dict[str, Path]:
        """Bundle each component into its own minified module."""
        if not entries:
            return {}
        workers = max(1, min(self.config.bundler.workers, len(entries)))

        def run(item: Tuple[ComponentEntry, Path]) -> Tuple[str, Path]:
            entry, source = item
            outfile = self.context.artifact_path(grammar, entry.component)
            self.context.runner(
                self.bundle_command(source, outfile),
                cwd=generated_dir,
                timeout=self.config.bundler.timeout,
            )
            return entry.component, outfile

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return dict(executor.map(run, entries))

    def bundle_command(self, source: Path, outfile: Path) -> List[str]:
        bundler = self.config.bundler
        return [
            bundler.executable,
            str(source),
            "--bundle",
            "--minify",
            "--tree-shaking=true",
            f"--format={bundler.format}",
            "--platform=neutral",
            *(f"--external:{package}" for package in bundler.external),
            f"--outfile={outfile}",
        ]

    def remove_artifacts(self, grammar: Grammar) -> None:
        """Delete bundles from a previous build so only fresh output is shipped."""
        for component in COMPONENTS:
            path = self.context.artifact_path(grammar, component)
            if path.exists():
                self.logger.debug("Removing stale %s", path)
                path.unlink()

    def _existing(self, grammar: Grammar) -> Dict[str, Path]:
        artifacts: Dict[str, Path] = {}
        for entry in grammar.entries:
            path = self.context.artifact_path(grammar, entry.component)
            if path.exists():
                artifacts[entry.component] = path
        return artifacts


__all__ = ["ANTLR_TOOL_CLASS", "GrammarBuilder", "MissingArtifactError"]
