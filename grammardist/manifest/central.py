"""Load grammars from a single central manifest file."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional

import yaml

from ..logging import get_logger
from ..models import Grammar
from .common import ManifestError, common_base, infer_entries

_logger = get_logger("manifest.central")

_SOURCE_KEYS = ("lexer", "parser")
_SOURCE_URL_RES = (
    re.compile(r"^https://github\.com/[^/]+/[^/]+/blob/[^/]+/(?P<path>.+\.g4)$"),
    re.compile(r"^https://raw\.githubusercontent\.com/[^/]+/[^/]+/[^/]+/(?P<path>.+\.g4)$"),
)


def source_path(reference: str) -> str:
    """Translate a repository file URL into a path inside the mirror."""
    for pattern in _SOURCE_URL_RES:
        match = pattern.match(reference.strip())
        if match:
            path = PurePosixPath(match.group("path"))
            if ".." in path.parts:
                break
            return path.as_posix()
    raise ManifestError(f"Unsupported grammar source reference: {reference}")


def load_central_manifest(manifest_path: Path, mirror_dir: Path) -> List[Grammar]:
    """Read grammar records from a YAML/JSON manifest in declaration order."""
    try:
        data = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Unable to read manifest {manifest_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ManifestError(f"Failed to parse manifest {manifest_path}: {exc}") from exc

    records = data.get("grammars") if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ManifestError(f"Manifest {manifest_path} must contain a list of grammars")

    grammars: List[Grammar] = []
    for index, record in enumerate(records):
        grammar = _grammar_from_record(record, index, mirror_dir)
        if grammar is not None:
            grammars.append(grammar)
    return grammars


def _grammar_from_record(record: Any, index: int, mirror_dir: Path) -> Optional[Grammar]:
    if not isinstance(record, dict):
        raise ManifestError(f"Manifest entry #{index} must be a mapping")
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ManifestError(f"Manifest entry #{index} has no name")

    paths: List[str] = []
    for key in _SOURCE_KEYS:
        reference = record.get(key)
        if reference is None or reference == "":
            continue
        if not isinstance(reference, str):
            raise ManifestError(f"Manifest entry {name!r}: {key} must be a URL string")
        paths.append(source_path(reference))

    if not paths:
        _logger.warning("Skipping %s: no lexer or parser source", name)
        return None

    base = common_base(paths)
    if base:
        files = tuple(PurePosixPath(path).relative_to(base).as_posix() for path in paths)
    else:
        files = tuple(paths)
    return Grammar(
        name=name.strip(),
        base=base,
        files=files,
        entries=infer_entries(mirror_dir / base, files),
    )


__all__ = ["load_central_manifest", "source_path"]
