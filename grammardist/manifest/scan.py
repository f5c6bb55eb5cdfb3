"""Discover grammars by scanning per-directory desc.xml/pom.xml metadata."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from ..logging import get_logger
from ..models import Grammar
from .common import ManifestError, infer_entries, split_file_list

_logger = get_logger("manifest.scan")

DESC_FILENAME = "desc.xml"
POM_FILENAME = "pom.xml"
_ANTLR_GROUP_ID = "org.antlr"


def scan_grammars(mirror_dir: Path, target: str) -> List[Grammar]:
    """Return grammars under ``mirror_dir`` that support ``target``, sorted by path."""
    if not mirror_dir.is_dir():
        raise ManifestError(f"Grammar mirror not found: {mirror_dir}")

    grammars: List[Grammar] = []
    desc_files = sorted(
        path.relative_to(mirror_dir).as_posix()
        for path in mirror_dir.rglob(DESC_FILENAME)
        if ".git" not in path.relative_to(mirror_dir).parts
    )
    for relative in desc_files:
        grammar = _load_grammar(mirror_dir, relative, target)
        if grammar is not None:
            grammars.append(grammar)
    return grammars


def _load_grammar(mirror_dir: Path, desc_relative: str, target: str) -> Optional[Grammar]:
    desc_path = mirror_dir / desc_relative
    grammar_dir = desc_path.parent
    base = grammar_dir.relative_to(mirror_dir).as_posix()

    targets = read_targets(desc_path)
    if target not in targets:
        _logger.debug("Skipping %s: %s is not a declared target", base, target)
        return None

    pom_path = grammar_dir / POM_FILENAME
    if not pom_path.exists():
        _logger.debug("Skipping %s: no %s", base, POM_FILENAME)
        return None

    project = _parse_xml(pom_path)
    artifact_id = _text(project.find("artifactId"))
    files = grammar_files(project)
    if not files:
        if not artifact_id:
            raise ManifestError(f"{pom_path} declares neither grammars nor an artifactId")
        files = [f"{artifact_id}.g4"]

    name = _text(project.find("name")) or artifact_id or grammar_dir.name
    return Grammar(
        name=name,
        base=base,
        files=tuple(files),
        entries=infer_entries(grammar_dir, files),
    )


def read_targets(desc_path: Path) -> List[str]:
    desc = _parse_xml(desc_path)
    raw = _text(desc.find("targets"))
    if not raw:
        return []
    return [item.strip() for item in raw.split(";") if item.strip()]


def grammar_files(project: ET.Element) -> List[str]:
    """Return grammar files configured on the pom's ANTLR plugin."""
    build = project.find("build")
    if build is None:
        return []
    plugins = build.findall("pluginManagement/plugins/plugin") or build.findall(
        "plugins/plugin"
    )
    plugin = next(
        (item for item in plugins if _text(item.find("groupId")) == _ANTLR_GROUP_ID),
        None,
    )
    if plugin is None:
        return []
    configuration = plugin.find("configuration")
    if configuration is None:
        return []
    grammars = _text(configuration.find("grammars"))
    if grammars:
        return split_file_list(grammars)
    return [
        text
        for text in (_text(item) for item in configuration.findall("includes/include"))
        if text
    ]


def _parse_xml(path: Path) -> ET.Element:
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as exc:
        raise ManifestError(f"Failed to parse {path}: {exc}") from exc
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
    return root


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


__all__ = ["grammar_files", "read_targets", "scan_grammars"]
