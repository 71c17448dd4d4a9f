"""Command-line entry point: ``python -m levscore.cli``."""

from .main import main

__all__ = ["main"]
