"""
glyphrun - run code fragments embedded in SVG/HTML documents.

Scans a document for ``<script type="text/<language>">`` fragments inside
``<svg>`` containers and executes them per language: command programs are
interpreted, WebAssembly modules are compiled and instantiated with their
companion fragment run against the instance.  Failures become diagnostic
``<text>`` elements in the container that hosts the fragment.
"""

__version__ = "0.1.0"

from glyphrun.document import Container, Document, Fragment, locate
from glyphrun.execution import ExecutionCoordinator, RunReport, get_default_registry

__all__ = [
    "Container",
    "Document",
    "ExecutionCoordinator",
    "Fragment",
    "RunReport",
    "get_default_registry",
    "locate",
    "__version__",
]
