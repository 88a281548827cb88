"""
glyphrun CLI — Typer-based command-line interface.

Usage::

    glyphrun run chart.svg -l python -l wasm
    glyphrun languages
"""

from glyphrun.cli.app import app

__all__ = ["app"]
