"""Command line interface."""

from .audit import cli

__all__ = ["cli"]
