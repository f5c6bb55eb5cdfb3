"""Core data models shared across grammardist components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

COMPONENTS = ("lexer", "parser", "visitor", "listener")


@dataclass(frozen=True)
class ComponentEntry:
    """A generated entry module for one grammar component.

    ``entry`` is the generated file stem, e.g. ``JSONLexer``. Lexer and
    parser entries are required once declared; visitor and listener entries
    are bundled only when the generator produced them.
    """

    component: str
    entry: str
    required: bool = True


@dataclass(frozen=True)
class Grammar:
    """Describes one grammar directory inside the mirror."""

    name: str
    base: str
    files: Tuple[str, ...]
    entries: Tuple[ComponentEntry, ...] = ()

    @property
    def key(self) -> str:
        return self.base

    @property
    def components(self) -> Tuple[str, ...]:
        """Components the grammar sources declare."""
        return tuple(entry.component for entry in self.entries if entry.required)

    def entry_for(self, component: str) -> Optional[ComponentEntry]:
        for entry in self.entries:
            if entry.component == component:
                return entry
        return None


@dataclass
class BuildResult:
    """Outcome of building one grammar."""

    grammar: Grammar
    cached: bool
    artifacts: Dict[str, Path] = field(default_factory=dict)


__all__ = ["COMPONENTS", "BuildResult", "ComponentEntry", "Grammar"]
