"""Git helpers for mirroring the upstream grammars repository."""

from .mirror import GrammarMirror

__all__ = ["GrammarMirror"]
