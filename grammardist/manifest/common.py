"""Helpers shared by the manifest loading strategies."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Sequence, Tuple

from ..models import ComponentEntry

_HEADER_RE = re.compile(r"^\s*(?:(lexer|parser)\s+)?grammar\s+(\w+)\s*;", re.MULTILINE)


class ManifestError(RuntimeError):
    """Raised when the grammar manifest is malformed."""


def grammar_kind(path: Path) -> Tuple[str, str]:
    """Return ``(kind, grammar name)`` for a ``.g4`` file.

    ``kind`` is ``lexer``, ``parser`` or ``combined``. The declaration
    header wins; the file name decides when the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        text = ""
    match = _HEADER_RE.search(text)
    if match:
        return match.group(1) or "combined", match.group(2)
    stem = PurePosixPath(path.name).stem
    if stem.endswith("Lexer"):
        return "lexer", stem
    if stem.endswith("Parser"):
        return "parser", stem
    return "combined", stem


def infer_entries(grammar_dir: Path, files: Sequence[str]) -> Tuple[ComponentEntry, ...]:
    """Map grammar sources to the entry modules the generator emits for them."""
    entries: List[ComponentEntry] = []
    seen: set[str] = set()

    def add(component: str, entry: str, required: bool = True) -> None:
        if component in seen:
            return
        seen.add(component)
        entries.append(ComponentEntry(component=component, entry=entry, required=required))

    for name in files:
        kind, grammar_name = grammar_kind(grammar_dir / name)
        if kind == "lexer":
            add("lexer", grammar_name)
        elif kind == "parser":
            add("parser", grammar_name)
            add("visitor", f"{grammar_name}Visitor", required=False)
            add("listener", f"{grammar_name}Listener", required=False)
        else:
            add("lexer", f"{grammar_name}Lexer")
            add("parser", f"{grammar_name}Parser")
            add("visitor", f"{grammar_name}Visitor", required=False)
            add("listener", f"{grammar_name}Listener", required=False)

    order = {"lexer": 0, "parser": 1, "visitor": 2, "listener": 3}
    return tuple(sorted(entries, key=lambda entry: order[entry.component]))


def common_base(paths: Iterable[str]) -> str:
    """Return the deepest directory shared by every posix path."""
    parents = [PurePosixPath(path).parent.parts for path in paths]
    if not parents:
        return ""
    prefix: List[str] = []
    for parts in zip(*parents):
        if len(set(parts)) != 1:
            break
        prefix.append(parts[0])
    return "/".join(prefix)


def split_file_list(value: str) -> List[str]:
    return [item for item in re.split(r"[\s,]+", value.strip()) if item]


__all__ = [
    "ManifestError",
    "common_base",
    "grammar_kind",
    "infer_entries",
    "split_file_list",
]
