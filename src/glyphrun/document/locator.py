"""Fragment Locator — enumerate (container, fragment) pairs in document order.

Every call re-scans the live tree; nothing is cached.  A fragment belongs
to its nearest ``<svg>`` ancestor, so nested containers never report the
same fragment twice.  No filtering by language happens here.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from glyphrun.document.model import (
    CONTAINER_TAG,
    FRAGMENT_TAG,
    Container,
    Document,
    Fragment,
    local_name,
)


def _owning_container(element: Any) -> Any | None:
    for ancestor in element.iterancestors():
        if local_name(ancestor) == CONTAINER_TAG:
            return ancestor
    return None


def _next_element(element: Any) -> Any | None:
    sibling = element.getnext()
    while sibling is not None and not isinstance(sibling.tag, str):
        sibling = sibling.getnext()
    return sibling


def _previous_element(element: Any) -> Any | None:
    sibling = element.getprevious()
    while sibling is not None and not isinstance(sibling.tag, str):
        sibling = sibling.getprevious()
    return sibling


def iter_containers(document: Document) -> Iterator[Container]:
    index = 0
    for element in document.root.iter():
        if local_name(element) == CONTAINER_TAG:
            yield Container(index=index, element=element)
            index += 1


def iter_fragments(container: Container) -> Iterator[Fragment]:
    position = 0
    for element in container.element.iterdescendants():
        if local_name(element) != FRAGMENT_TAG:
            continue
        if _owning_container(element) is not container.element:
            continue
        yield Fragment.from_element(element, position)
        position += 1


def locate(document: Document) -> Iterator[tuple[Container, Fragment]]:
    """Yield every ``(container, fragment)`` pair, containers in document order."""
    for container in iter_containers(document):
        for fragment in iter_fragments(container):
            yield container, fragment


def _nested_fragments(container: Container, element: Any) -> int:
    return sum(
        1
        for descendant in element.iterdescendants()
        if local_name(descendant) == FRAGMENT_TAG
        and _owning_container(descendant) is container.element
    )


# Siblings share a parent, hence an owning container; positions follow from
# document order without re-enumerating the container.


def companion_of(container: Container, fragment: Fragment) -> Fragment | None:
    """The fragment immediately following ``fragment`` as an element sibling."""
    sibling = _next_element(fragment.element)
    if sibling is None or local_name(sibling) != FRAGMENT_TAG:
        return None
    position = fragment.position + 1 + _nested_fragments(container, fragment.element)
    return Fragment.from_element(sibling, position)


def preceding_fragment(container: Container, fragment: Fragment) -> Fragment | None:
    """The fragment immediately preceding ``fragment`` as an element sibling."""
    sibling = _previous_element(fragment.element)
    if sibling is None or local_name(sibling) != FRAGMENT_TAG:
        return None
    position = fragment.position - 1 - _nested_fragments(container, sibling)
    return Fragment.from_element(sibling, position)
