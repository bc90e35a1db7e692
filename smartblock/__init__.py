"""smartblock - context-aware domain access classifier for parental controls."""

__version__ = "0.1.0"
