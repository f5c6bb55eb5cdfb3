"""Persistent stores used across grammardist runs."""

from .build_cache import BuildCache, digest_file

__all__ = ["BuildCache", "digest_file"]
