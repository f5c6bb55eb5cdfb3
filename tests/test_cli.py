"""CLI behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

import grammardist.cli as cli
from grammardist.cli import _build_parser, main
from grammardist.orchestrator import DistOutcome


class StubOrchestrator:
    """Stands in for the real pipeline and records which mode ran."""

    instances: list["StubOrchestrator"] = []
    error: Exception | None = None

    def __init__(self, context) -> None:  # type: ignore[no-untyped-def]
        self.context = context
        self.ran: list[str] = []
        StubOrchestrator.instances.append(self)

    def run_dist(self) -> DistOutcome:
        self.ran.append("dist")
        if self.error is not None:
            raise self.error
        return DistOutcome(grammars=(), readme_path=self.context.config.output_dir / "README.md")

    def run_readme(self) -> Path:
        self.ran.append("readme")
        return self.context.config.output_dir / "README.md"


@pytest.fixture(autouse=True)
def stub_orchestrator(monkeypatch):
    StubOrchestrator.instances = []
    StubOrchestrator.error = None
    monkeypatch.setattr(cli, "Orchestrator", StubOrchestrator)
    return StubOrchestrator


def test_cli_accepts_verbose_and_mode() -> None:
    args = _build_parser().parse_args(["--verbose", "dist"])
    assert args.verbose is True
    assert args.mode == "dist"


def test_cli_requires_mode(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "usage: grammardist" in err
    assert StubOrchestrator.instances == []


def test_cli_rejects_unknown_mode(capsys, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(tmp_path), "publish"])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "unknown mode 'publish'" in err
    assert StubOrchestrator.instances == []


def test_cli_runs_readme_mode(capsys, tmp_path: Path) -> None:
    main(["--root", str(tmp_path), "readme"])

    (instance,) = StubOrchestrator.instances
    assert instance.ran == ["readme"]
    assert instance.context.config.root == tmp_path.resolve()
    assert "README written to" in capsys.readouterr().out


def test_cli_no_cache_flag_disables_cache(tmp_path: Path) -> None:
    main(["--root", str(tmp_path), "--no-cache", "dist"])

    (instance,) = StubOrchestrator.instances
    assert instance.ran == ["dist"]
    assert instance.context.use_cache is False


def test_cli_reports_pipeline_failure(capsys, tmp_path: Path) -> None:
    StubOrchestrator.error = RuntimeError("java exited with code 1")

    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(tmp_path), "dist"])

    assert excinfo.value.code == 1
    assert "grammardist dist failed: java exited with code 1" in capsys.readouterr().err


def test_cli_reports_config_errors(capsys, tmp_path: Path) -> None:
    (tmp_path / ".grammardist.yml").write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(tmp_path), "dist"])

    assert excinfo.value.code == 1
    assert "must contain a mapping" in capsys.readouterr().err
    assert StubOrchestrator.instances == []


def test_cli_rejects_missing_root(capsys, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(tmp_path / "missing"), "dist"])

    assert excinfo.value.code == 1
    assert "Project root not found" in capsys.readouterr().err
    assert StubOrchestrator.instances == []
