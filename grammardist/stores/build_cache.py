"""Persistent content-hash cache for grammar builds."""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

_CACHE_VERSION = 1


def digest_file(path: Path) -> str:
    """Return the SHA-256 hex digest of the file's raw bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class BuildCache:
    """Stores source digests and produced artifacts keyed by grammar."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, key: str) -> Optional[Dict[str, object]]:
        return self._entries.get(key)

    def is_valid(
        self,
        key: str,
        digests: Mapping[str, str],
        expected_outputs: Iterable[Path],
    ) -> bool:
        """Return True when recorded digests match and every output still exists."""
        entry = self._entries.get(key)
        if not entry:
            return False
        recorded = entry.get("digests")
        if not isinstance(recorded, dict) or recorded != dict(digests):
            return False
        outputs = [Path(path) for path in expected_outputs]
        artifacts = entry.get("artifacts")
        if isinstance(artifacts, list):
            outputs.extend(Path(item) for item in artifacts if isinstance(item, str))
        return all(path.exists() for path in outputs)

    def record(
        self,
        key: str,
        digests: Mapping[str, str],
        artifacts: Iterable[Path | str] = (),
        *,
        timestamp: datetime | None = None,
    ) -> None:
        built_at = timestamp or datetime.now(UTC)
        self._entries[key] = {
            "digests": dict(sorted(digests.items())),
            "artifacts": sorted(str(item) for item in artifacts),
            "built_at": built_at.isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def prune(self, keys_to_keep: Iterable[str]) -> List[str]:
        """Drop entries not in ``keys_to_keep`` and return the removed keys."""
        keep = set(keys_to_keep)
        removed = [key for key in self._entries if key not in keep]
        if removed:
            for key in removed:
                self._entries.pop(key, None)
            self._dirty = True
        return removed

    def save(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _CACHE_VERSION,
            "entries": self._entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self._path.with_name(self._path.name + ".tmp")
        temporary.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(temporary, self._path)
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid_entries: Dict[str, Dict[str, object]] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            if not isinstance(raw.get("digests"), dict):
                continue
            valid_entries[key] = raw
        self._entries = valid_entries
        self._dirty = False


__all__ = ["BuildCache", "digest_file"]
