"""Document layer — lxml-backed containers and fragments, plus the locator."""

from glyphrun.document.locator import (
    companion_of,
    iter_containers,
    iter_fragments,
    locate,
    preceding_fragment,
)
from glyphrun.document.model import SVG_NS, XLINK_NS, Container, Document, Fragment

__all__ = [
    "Container",
    "Document",
    "Fragment",
    "SVG_NS",
    "XLINK_NS",
    "companion_of",
    "iter_containers",
    "iter_fragments",
    "locate",
    "preceding_fragment",
]
