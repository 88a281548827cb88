"""
Shared pytest fixtures and configuration for glyphrun tests.

This module provides:
- Registry and settings cleanup fixtures for test isolation
- WebAssembly sources (Fibonacci, broken, trapping) as WAT text
- Document builders for SVG containers with embedded fragments

Usage:
    def test_something(make_document, fib_wat):
        document = make_document(f'<script type="text/wasm">{fib_wat}</script>')
"""

import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

# Ensure glyphrun package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from glyphrun.core.settings import reset_settings
from glyphrun.document.model import SVG_NS, Document, local_name
from glyphrun.execution.registry import reset_default_registry
from glyphrun.execution.reporter import DIAGNOSTIC_CLASS


# =============================================================================
# WebAssembly sources
# =============================================================================

FIB_WAT = """
(module
  (func $fibonacci (export "fibonacci") (param $n i32) (result i32)
    (if (result i32) (i32.le_s (local.get $n) (i32.const 1))
      (then (local.get $n))
      (else
        (i32.add
          (call $fibonacci (i32.sub (local.get $n) (i32.const 1)))
          (call $fibonacci (i32.sub (local.get $n) (i32.const 2))))))))
"""

DOUBLE_WAT = """
(module
  (func (export "double") (param i32) (result i32)
    (i32.mul (local.get 0) (i32.const 2))))
"""

# Declares an import the loader never provides.
IMPORTING_WAT = '(module (import "env" "host" (func)))'

# Start function traps during instantiation.
TRAPPING_WAT = "(module (func $boot unreachable) (start $boot))"

TRUNCATED_WASM = b"\x00asm\x01\x00\x00\x00\x01\x06\x01\x60"


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_default_registry() -> Generator[None, None, None]:
    """Drop the global strategy registry before and after each test."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset cached settings and strip GLYPHRUN_* variables from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("GLYPHRUN_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Sources and documents
# =============================================================================


@pytest.fixture
def fib_wat() -> str:
    return FIB_WAT


@pytest.fixture
def double_wat() -> str:
    return DOUBLE_WAT


def build_markup(*containers: str) -> str:
    """Wrap each body in its own ``<svg>`` under a single XML root."""
    svgs = "".join(f'<svg xmlns="{SVG_NS}">{body}</svg>' for body in containers)
    return f"<html><body>{svgs}</body></html>"


@pytest.fixture
def make_document() -> Callable[..., Document]:
    """Build a Document with one ``<svg>`` container per positional body."""

    def _make(*containers: str, base: str | None = None) -> Document:
        return Document.from_string(build_markup(*containers), base=base)

    return _make


def diagnostics(element: Any) -> list[Any]:
    """Diagnostic ``<text>`` children of a container element."""
    return [
        child
        for child in element
        if local_name(child) == "text" and child.get("class") == DIAGNOSTIC_CLASS
    ]


def svg_elements(document: Document) -> list[Any]:
    return [el for el in document.root.iter() if local_name(el) == "svg"]
