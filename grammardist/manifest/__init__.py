"""Grammar manifest loading."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from ..config import GrammarDistConfig
from ..models import Grammar
from .central import load_central_manifest
from .common import ManifestError
from .scan import scan_grammars


def load_grammars(config: GrammarDistConfig, mirror_dir: Path | None = None) -> Tuple[Grammar, ...]:
    """Return the ordered grammars applicable to the configured target."""
    mirror = mirror_dir or config.mirror_dir
    if config.manifest.strategy == "central":
        if config.manifest.path is None:
            raise ManifestError("Central manifest strategy requires manifest.path")
        return tuple(load_central_manifest(config.manifest.path, mirror))
    return tuple(scan_grammars(mirror, config.generator.target))


__all__ = ["ManifestError", "load_grammars"]
