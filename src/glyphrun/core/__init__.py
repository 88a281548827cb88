"""glyphrun core -- errors, logging and settings shared by every layer.

Architecture::

    errors.py     Typed failure hierarchy (GlyphError and its subclasses)
    logging.py    structlog configuration, get_logger, LogContext
    settings.py   GlyphSettings (pydantic-settings, GLYPHRUN_ prefix)
"""

from glyphrun.core.errors import (
    CompilationFailure,
    DocumentError,
    ErrorCategory,
    ErrorContext,
    EvaluationFailure,
    GlyphError,
    InstantiationFailure,
    PublishConflictError,
    RetrievalFailure,
    StrategyNotFoundError,
    categorize_error,
)
from glyphrun.core.logging import LogContext, configure_logging, get_logger
from glyphrun.core.settings import GlyphSettings, get_settings, reset_settings

__all__ = [
    "CompilationFailure",
    "DocumentError",
    "ErrorCategory",
    "ErrorContext",
    "EvaluationFailure",
    "GlyphError",
    "InstantiationFailure",
    "PublishConflictError",
    "RetrievalFailure",
    "StrategyNotFoundError",
    "categorize_error",
    "LogContext",
    "configure_logging",
    "get_logger",
    "GlyphSettings",
    "get_settings",
    "reset_settings",
]
