"""Core domain types shared by the host engines and the services."""

from .ranges import LocationRelation, TextRange, classify_location

__all__ = ["LocationRelation", "TextRange", "classify_location"]
