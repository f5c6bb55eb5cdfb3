"""README table rendering for the distribution."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import List, Sequence

from .logging import get_logger
from .models import COMPONENTS, Grammar

TABLE_PLACEHOLDER = "<!-- SUPPORTED_LANGS -->"
TIMESTAMP_PLACEHOLDER = "<!-- GENERATED_AT -->"
CHECKMARK = "✓"

_HEADER = ("Language", "Path", "Lexer", "Parser", "Visitor", "Listener")

_logger = get_logger("readme")


def render_table(grammars: Sequence[Grammar], dist_dir: Path, extension: str = ".js") -> str:
    """Render one row per grammar, marking components whose bundle exists."""
    lines = [
        _row(_HEADER),
        _row(tuple("-" * len(title) for title in _HEADER)),
    ]
    for grammar in grammars:
        output_dir = dist_dir / grammar.base
        cells: List[str] = [_escape(grammar.name), f"`{grammar.base}`"]
        for component in COMPONENTS:
            present = (output_dir / f"{component}{extension}").is_file()
            cells.append(CHECKMARK if present else "")
        lines.append(_row(cells))
    return "\n".join(lines)


def apply_template(template: str, table: str, *, generated_at: datetime | None = None) -> str:
    """Substitute every placeholder, leaving the rest of the template untouched."""
    if TABLE_PLACEHOLDER not in template:
        _logger.warning("README template has no %s placeholder", TABLE_PLACEHOLDER)
        return template
    rendered = template.replace(TABLE_PLACEHOLDER, table)
    if TIMESTAMP_PLACEHOLDER in rendered:
        stamp = (generated_at or datetime.now(UTC)).isoformat().replace("+00:00", "Z")
        rendered = rendered.replace(TIMESTAMP_PLACEHOLDER, stamp)
    return rendered


class ReadmeGenerator:
    """Writes the distributable README from a template."""

    def __init__(self, template_path: Path, *, extension: str = ".js") -> None:
        self.template_path = template_path
        self.extension = extension

    def render(
        self,
        grammars: Sequence[Grammar],
        dist_dir: Path,
        *,
        generated_at: datetime | None = None,
    ) -> str:
        template = self.template_path.read_text(encoding="utf-8")
        table = render_table(grammars, dist_dir, self.extension)
        return apply_template(template, table, generated_at=generated_at)

    def write(
        self,
        grammars: Sequence[Grammar],
        dist_dir: Path,
        destination: Path,
        *,
        generated_at: datetime | None = None,
    ) -> Path:
        _logger.info("Generating %s...", destination.name)
        content = self.render(grammars, dist_dir, generated_at=generated_at)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")
        return destination


def _row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def _escape(text: str) -> str:
    return text.replace("|", "\\|")


__all__ = [
    "CHECKMARK",
    "TABLE_PLACEHOLDER",
    "TIMESTAMP_PLACEHOLDER",
    "ReadmeGenerator",
    "apply_template",
    "render_table",
]
