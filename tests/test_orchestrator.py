"""Tests for grammardist.orchestrator."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from grammardist.builder import MissingArtifactError
from grammardist.context import BuildContext
from grammardist.orchestrator import Orchestrator
from grammardist.stores import BuildCache
from tests._fixtures.grammar_repo import (
    COMBINED_JSON,
    SPLIT_LEXER,
    SPLIT_PARSER,
    FakeToolchain,
    GrammarRepoBuilder,
)

FIXED_TIME = datetime(2025, 6, 1, 8, 30, tzinfo=UTC)


def _orchestrator(context: BuildContext) -> Orchestrator:
    return Orchestrator(context, clock=lambda: FIXED_TIME)


def _seed_alpha_beta(grammar_repo: GrammarRepoBuilder) -> None:
    grammar_repo.add_grammar("alpha", name="Alpha", sources={"Alpha.g4": "grammar Alpha;\n"})
    grammar_repo.add_grammar("beta", name="Beta", sources={
        "BetaLexer.g4": SPLIT_LEXER.format(name="Beta"),
        "BetaParser.g4": SPLIT_PARSER.format(name="Beta"),
    })


def _dist_snapshot(dist: Path) -> dict[str, bytes]:
    return {
        path.relative_to(dist).as_posix(): path.read_bytes()
        for path in sorted(dist.rglob("*"))
        if path.is_file()
    }


def test_run_dist_builds_distribution(
    context: BuildContext, grammar_repo: GrammarRepoBuilder, toolchain: FakeToolchain, fetcher
) -> None:
    _seed_alpha_beta(grammar_repo)
    grammar_repo.add_grammar("cobol", name="Cobol", sources={"Cobol.g4": "grammar Cobol;\n"}, targets=("Java",))
    config = context.config

    outcome = _orchestrator(context).run_dist()

    assert [grammar.name for grammar in outcome.grammars] == ["Alpha", "Beta"]
    assert len(outcome.built) == 2
    assert fetcher.calls == [(config.sources.antlr_jar_url, config.jar_path)]
    assert toolchain.calls[0][:2] == ["git", "fetch"]
    assert toolchain.calls[1] == ["git", "reset", "--hard", "FETCH_HEAD"]
    assert len(toolchain.commands("java")) == 2

    dist = config.output_dir
    assert (dist / "package.json").read_text(encoding="utf-8") == '{"name": "antlr4-grammars"}\n'
    readme = (dist / "README.md").read_text(encoding="utf-8")
    assert "| Alpha | `alpha` | ✓ | ✓ | ✓ | ✓ |" in readme
    assert "| Beta | `beta` | ✓ | ✓ | ✓ | ✓ |" in readme
    assert "Cobol" not in readme
    assert "Generated 2025-06-01T08:30:00Z" in readme

    saved = json.loads(config.cache_file.read_text(encoding="utf-8"))
    assert sorted(saved["entries"]) == ["alpha", "beta"]


def test_run_dist_skips_download_when_jar_present(
    context: BuildContext, grammar_repo: GrammarRepoBuilder, fetcher
) -> None:
    grammar_repo.add_grammar("json", name="JSON", sources={"JSON.g4": COMBINED_JSON})
    context.config.jar_path.parent.mkdir(parents=True, exist_ok=True)
    context.config.jar_path.write_bytes(b"jar")

    _orchestrator(context).run_dist()

    assert fetcher.calls == []


def test_failure_keeps_completed_grammars(
    context: BuildContext, grammar_repo: GrammarRepoBuilder
) -> None:
    _seed_alpha_beta(grammar_repo)
    toolchain = FakeToolchain(skip_outputs={"BetaParser"})
    context.runner = toolchain

    with pytest.raises(MissingArtifactError, match="BetaParser"):
        _orchestrator(context).run_dist()

    dist = context.config.output_dir
    assert (dist / "alpha" / "lexer.js").is_file()
    assert (dist / "alpha" / "parser.js").is_file()
    assert not (dist / "beta" / "parser.js").exists()
    assert not (dist / "README.md").exists()

    reloaded = BuildCache(context.config.cache_file)
    assert "alpha" in reloaded
    assert "beta" not in reloaded


def test_unchanged_rerun_reuses_cache(
    config, grammar_repo: GrammarRepoBuilder, fetcher
) -> None:
    _seed_alpha_beta(grammar_repo)
    first_toolchain = FakeToolchain()
    _orchestrator(BuildContext(config=config, runner=first_toolchain, fetcher=fetcher)).run_dist()
    before = _dist_snapshot(config.output_dir)

    second_toolchain = FakeToolchain()
    outcome = _orchestrator(
        BuildContext(config=config, runner=second_toolchain, fetcher=fetcher)
    ).run_dist()

    assert len(outcome.cached) == 2
    assert second_toolchain.commands("java") == []
    assert second_toolchain.commands("esbuild") == []
    assert _dist_snapshot(config.output_dir) == before


def test_removed_grammars_are_pruned_from_cache(
    context: BuildContext, grammar_repo: GrammarRepoBuilder
) -> None:
    _seed_alpha_beta(grammar_repo)
    cache = context.load_cache()
    assert cache is not None
    cache.record("retired", {"Retired.g4": "0"})
    retired_dir = context.config.output_dir / "retired"
    retired_dir.mkdir(parents=True)
    (retired_dir / "lexer.js").write_text("/* old */", encoding="utf-8")

    _orchestrator(context).run_dist()

    assert "retired" not in BuildCache(context.config.cache_file)
    assert not retired_dir.exists()
    assert (context.config.output_dir / "alpha" / "lexer.js").is_file()


def test_run_readme_does_not_build(
    context: BuildContext, grammar_repo: GrammarRepoBuilder, toolchain: FakeToolchain
) -> None:
    _seed_alpha_beta(grammar_repo)
    grammar_repo.add_grammar("json", name="JSON", sources={"JSON.g4": COMBINED_JSON})
    dist = context.config.output_dir
    (dist / "json").mkdir(parents=True)
    (dist / "json" / "lexer.js").write_text("", encoding="utf-8")

    readme_path = _orchestrator(context).run_readme()

    assert toolchain.calls == []
    rows = [line for line in readme_path.read_text(encoding="utf-8").splitlines() if line.startswith("| ")]
    assert rows[2:] == [
        "| Alpha | `alpha` |  |  |  |  |",
        "| Beta | `beta` |  |  |  |  |",
        "| JSON | `json` | ✓ |  |  |  |",
    ]
    assert not (dist / "package.json").exists()


def test_run_readme_clones_missing_mirror(config, toolchain: FakeToolchain, fetcher) -> None:
    context = BuildContext(config=config, runner=toolchain, fetcher=fetcher)

    readme_path = _orchestrator(context).run_readme()

    assert toolchain.calls[0][:2] == ["git", "clone"]
    assert readme_path.exists()
    assert (config.mirror_dir / ".git").is_dir()
