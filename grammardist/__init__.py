"""Build ANTLR grammars into bundled JavaScript modules."""

__version__ = "0.1.0"
