"""Exclusion-aware search and replace for Word documents."""

__version__ = "0.1.0"
