"""Document model — containers and code fragments over an lxml tree.

The dispatcher never owns the document: it reads ``<script>`` elements out
of ``<svg>`` containers and, on failure, appends diagnostic nodes.  These
types are thin views over the live lxml elements so that every scan sees the
current state of the tree.

ARCHITECTURE
────────────
::

    Document            ─ lxml ElementTree + base for relative references
      └── Container     ─ one <svg> element (any namespace), by position
            └── Fragment ─ one <script> element: type, text, src/href

Example::

    document = Document.from_path("chart.svg")
    for container, fragment in locate(document):
        print(container.index, fragment.language_tag, fragment.position)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urljoin, urlparse

import lxml.html
from lxml import etree

from glyphrun.core.errors import DocumentError

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

CONTAINER_TAG = "svg"
FRAGMENT_TAG = "script"
LANGUAGE_PREFIX = "text/"

_HTML_SUFFIXES = {".html", ".htm"}
# the HTML parser keeps prefixed attributes under their literal name
_REFERENCE_ATTRIBUTES = ("src", "href", f"{{{XLINK_NS}}}href", "xlink:href")


def local_name(element: Any) -> str:
    """Namespace-free tag name; empty for comments and processing instructions."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def namespace_of(element: Any) -> str | None:
    tag = element.tag
    if not isinstance(tag, str):
        return None
    return etree.QName(tag).namespace


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


@dataclass
class Document:
    """A parsed host document.

    ``base`` is a directory path or an absolute URL; relative fragment
    references are resolved against it.
    """

    tree: Any
    base: str | None = None
    html: bool = False
    source_path: Path | None = None

    @property
    def root(self) -> Any:
        return self.tree.getroot()

    @classmethod
    def from_string(
        cls,
        text: str | bytes,
        *,
        base: str | None = None,
        html: bool = False,
    ) -> Document:
        data = text.encode("utf-8") if isinstance(text, str) else text
        try:
            if html:
                root = lxml.html.document_fromstring(data)
            else:
                root = etree.fromstring(data, _xml_parser())
        except (etree.ParseError, etree.ParserError, ValueError) as e:
            raise DocumentError(f"Could not parse document: {e}", cause=e) from e
        return cls(tree=root.getroottree(), base=base, html=html)

    @classmethod
    def from_path(cls, path: str | Path) -> Document:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DocumentError(f"Could not read document {path}: {e}", cause=e) from e
        document = cls.from_string(
            data,
            base=str(path.resolve().parent),
            html=path.suffix.lower() in _HTML_SUFFIXES,
        )
        document.source_path = path
        return document

    def resolve(self, reference: str) -> str:
        """Resolve a fragment reference to a URL or absolute local path."""
        if urlparse(reference).scheme in ("http", "https", "file", "data"):
            return reference
        if self.base and urlparse(self.base).scheme in ("http", "https", "file"):
            return urljoin(self.base.rstrip("/") + "/", reference)
        reference_path = Path(reference)
        if reference_path.is_absolute() or not self.base:
            return str(reference_path)
        return str(Path(self.base) / reference_path)

    def to_bytes(self) -> bytes:
        if self.html:
            return etree.tostring(self.tree, method="html", encoding="utf-8")
        return etree.tostring(self.tree, encoding="utf-8", xml_declaration=True)

    def write(self, path: str | Path) -> None:
        Path(path).write_bytes(self.to_bytes())


@dataclass(frozen=True)
class Container:
    """A graphical container (``<svg>``) identified by its document position."""

    index: int
    element: Any = field(compare=False, repr=False)

    @property
    def namespace(self) -> str | None:
        return namespace_of(self.element)

    def append(self, tag: str, text: str, attributes: dict[str, str]) -> Any:
        """Append a child element in the container's own namespace."""
        namespace = self.namespace
        qualified = f"{{{namespace}}}{tag}" if namespace else tag
        child = etree.SubElement(self.element, qualified)
        for name, value in attributes.items():
            child.set(name, value)
        child.text = text
        return child


@dataclass(frozen=True)
class Fragment:
    """One embedded unit of source; immutable once read."""

    language_tag: str
    inline_source: str | None
    external_reference: str | None
    position: int
    element: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_element(cls, element: Any, position: int) -> Fragment:
        text = "".join(element.itertext())
        reference = None
        for attribute in _REFERENCE_ATTRIBUTES:
            value = element.get(attribute)
            if value:
                reference = value.strip()
                break
        return cls(
            language_tag=(element.get("type") or "").strip(),
            inline_source=text if text.strip() else None,
            external_reference=reference,
            position=position,
            element=element,
        )

    @property
    def language(self) -> str | None:
        """``text/wasm`` → ``wasm``; ``None`` for tags without the text/ prefix."""
        if not self.language_tag.startswith(LANGUAGE_PREFIX):
            return None
        return self.language_tag[len(LANGUAGE_PREFIX):] or None

    def matches(self, language: str) -> bool:
        return self.language_tag == f"{LANGUAGE_PREFIX}{language}"

    @property
    def has_source(self) -> bool:
        return self.inline_source is not None or self.external_reference is not None
