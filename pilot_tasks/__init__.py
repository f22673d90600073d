"""Dependency-aware task board for human and agent pair programming."""

__version__ = "0.1.0"
