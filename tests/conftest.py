from __future__ import annotations

from pathlib import Path

import pytest

from grammardist.config import GrammarDistConfig, default_config
from grammardist.context import BuildContext
from tests._fixtures.grammar_repo import FakeToolchain, GrammarRepoBuilder


class RecordingFetcher:
    """Fetcher double that records downloads and writes placeholder files."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path]] = []

    def download(self, url: str, dest: Path) -> Path:
        self.calls.append((url, dest))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"jar")
        return dest


@pytest.fixture
def config(tmp_path: Path) -> GrammarDistConfig:
    """Default configuration rooted at tmp_path with template and metadata present."""
    cfg = default_config(tmp_path)
    cfg.readme.template.write_text(
        "# Grammars\n\n<!-- SUPPORTED_LANGS -->\n\nGenerated <!-- GENERATED_AT -->\n",
        encoding="utf-8",
    )
    cfg.package_metadata.write_text('{"name": "antlr4-grammars"}\n', encoding="utf-8")
    return cfg


@pytest.fixture
def grammar_repo(config: GrammarDistConfig) -> GrammarRepoBuilder:
    return GrammarRepoBuilder(config.mirror_dir)


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def fetcher() -> RecordingFetcher:
    return RecordingFetcher()


@pytest.fixture
def context(config: GrammarDistConfig, toolchain: FakeToolchain, fetcher: RecordingFetcher) -> BuildContext:
    return BuildContext(config=config, runner=toolchain, fetcher=fetcher)  # type: ignore[arg-type]
