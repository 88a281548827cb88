"""Execution context — explicit carrier for published module instances.

A binary-module strategy publishes its instance here and then hands the
same context to the companion fragment, so nothing depends on ambient
globals.  One context lives as long as the page (one coordinator).

Publishing rules:

    publish(name) with no open lease   → replaces any earlier instance
    publish(name) while lease(name)    → PublishConflictError
    lease(name) with nothing published → GlyphError (INTERNAL)

Example::

    context = ExecutionContext()
    context.publish(instance)
    with context.lease() as module:
        module.call("fibonacci", 10)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from glyphrun.core.errors import GlyphError, PublishConflictError
from glyphrun.core.logging import get_logger

logger = get_logger(__name__)

MODULE_NAME = "module"


class ExecutionContext:
    """Per-page state shared by strategies through explicit threading."""

    def __init__(self) -> None:
        self._published: dict[str, Any] = {}
        self._leases: Counter[str] = Counter()
        self.publish_count = 0

    def publish(self, instance: Any, name: str = MODULE_NAME) -> None:
        if self._leases[name]:
            raise PublishConflictError(name)
        replaced = name in self._published
        self._published[name] = instance
        self.publish_count += 1
        logger.debug("context.published", name=name, replaced=replaced, count=self.publish_count)

    def get(self, name: str = MODULE_NAME) -> Any | None:
        return self._published.get(name)

    @property
    def module(self) -> Any | None:
        return self.get(MODULE_NAME)

    def is_leased(self, name: str = MODULE_NAME) -> bool:
        return self._leases[name] > 0

    @contextmanager
    def lease(self, name: str = MODULE_NAME) -> Iterator[Any]:
        """Hold ``name`` for a consumer; publishes are refused until release."""
        if name not in self._published:
            raise GlyphError(f"No instance published under '{name}'")
        self._leases[name] += 1
        try:
            yield self._published[name]
        finally:
            self._leases[name] -= 1
