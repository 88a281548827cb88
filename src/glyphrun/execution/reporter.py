"""Failure Reporter — surface a fragment failure inside its container.

Each report does two things: append one ``<text>`` diagnostic to the
container at a fixed anchor, and emit one ``fragment.failed`` log record.
Reporting never raises; if the tree refuses the insertion the problem is
logged and ``report`` returns ``None``.
"""

from __future__ import annotations

from typing import Any

from glyphrun.core.errors import GlyphError
from glyphrun.core.logging import get_logger
from glyphrun.core.settings import get_settings
from glyphrun.document.model import Container

logger = get_logger(__name__)

DIAGNOSTIC_CLASS = "glyphrun-diagnostic"


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class FailureReporter:
    """Insert diagnostic elements and log failures."""

    def __init__(self, x: float | None = None, y: float | None = None) -> None:
        settings = get_settings()
        self.x = settings.diagnostic_x if x is None else x
        self.y = settings.diagnostic_y if y is None else y

    @staticmethod
    def message_for(error: Exception) -> str:
        if isinstance(error, GlyphError):
            return f"Error: {error.message}"
        return f"Error: {error}"

    def report(self, container: Container, error: Exception) -> Any | None:
        details = error.to_dict() if isinstance(error, GlyphError) else {
            "error_type": type(error).__name__,
            "message": str(error),
        }
        node = None
        try:
            node = container.append(
                "text",
                self.message_for(error),
                {
                    "x": _format_number(self.x),
                    "y": _format_number(self.y),
                    "class": DIAGNOSTIC_CLASS,
                },
            )
            logger.error("fragment.failed", container_index=container.index, **details)
        except Exception:
            logger.exception("reporter.insert_failed", container_index=container.index, **details)
        return node
