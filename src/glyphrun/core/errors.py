"""
Structured error types for glyphrun.

Every failure the dispatcher can hit while executing an embedded fragment is
a typed ``GlyphError``.  The coordinator catches them at its boundary and the
failure reporter turns each one into a diagnostic element plus a log record,
so the errors carry enough context (container, fragment, reference) to make
that diagnostic useful on its own.

Manifesto:
    - **Typed taxonomy:** One class per failure mode of a fragment
    - **Rich context:** Errors know which container and fragment failed
    - **Error chaining:** The runtime's original exception is kept as cause
    - **No retry semantics:** Each fragment gets exactly one attempt

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                        GlyphError                          │
        │              (category, context, cause)                    │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  RetrievalFailure     CompilationFailure                   │
        │  (RETRIEVAL)          (COMPILATION)                        │
        │                                                            │
        │  InstantiationFailure EvaluationFailure                    │
        │  (INSTANTIATION)      (EVALUATION)                         │
        │                                                            │
        │  PublishConflictError StrategyNotFoundError  DocumentError │
        │  (CONTEXT)            (CONFIG)               (DOCUMENT)    │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = RetrievalFailure("HTTP 404 for module.wasm")
    >>> error.category
    <ErrorCategory.RETRIEVAL: 'RETRIEVAL'>
    >>> error.with_context(container_index=0, reference="module.wasm").to_dict()["context"]
    {'container_index': 0, 'reference': 'module.wasm'}

Tags:
    error-handling, exception-hierarchy, error-context, glyphrun
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories used for log routing and diagnostics.

    The first four mirror the failure modes of a fragment execution; the
    rest cover misuse of the engine itself.
    """

    # Fragment execution failures
    RETRIEVAL = "RETRIEVAL"           # Reference could not be fetched
    COMPILATION = "COMPILATION"       # Binary malformed or unsupported
    INSTANTIATION = "INSTANTIATION"   # Binary valid but could not be linked/run
    EVALUATION = "EVALUATION"         # Command program failed to parse or run

    # Engine errors
    CONTEXT = "CONTEXT"               # Module publish while a consumer reads
    CONFIG = "CONFIG"                 # Missing strategy, invalid settings
    DOCUMENT = "DOCUMENT"             # Unreadable or unparseable document

    INTERNAL = "INTERNAL"             # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"               # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        container_index: Position of the graphical container in the document
        fragment_position: Position of the fragment among its siblings
        language_tag: Declared tag of the failing fragment (``text/wasm``)
        reference: External reference as written in the document
        url: Resolved URL that was being retrieved
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    container_index: int | None = None
    fragment_position: int | None = None
    language_tag: str | None = None
    reference: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["container_index", "fragment_position", "language_tag",
                    "reference", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class GlyphError(Exception):
    """
    Base exception for all glyphrun errors.

    Subclasses set ``default_category``.  The message is what ends up in the
    diagnostic element, so keep it short and human-readable.

    Example:
        >>> try:
        ...     raise ValueError("bad magic")
        ... except ValueError as e:
        ...     error = CompilationFailure("Binary module compilation failed", cause=e)
        >>> error.cause
        ValueError('bad magic')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> GlyphError:
        """
        Add context to this error (fluent API).

        Fields that are already set are kept, so the innermost raiser wins.

        Usage:
            raise RetrievalFailure("Failed").with_context(
                reference="fib.wasm",
                url="https://example.org/fib.wasm",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# FRAGMENT EXECUTION FAILURES
# =============================================================================


class RetrievalFailure(GlyphError):
    """An external reference could not be fetched."""

    default_category = ErrorCategory.RETRIEVAL


class CompilationFailure(GlyphError):
    """Binary module content is malformed or unsupported."""

    default_category = ErrorCategory.COMPILATION


class InstantiationFailure(GlyphError):
    """Binary module compiled but could not be linked or started."""

    default_category = ErrorCategory.INSTANTIATION


class EvaluationFailure(GlyphError):
    """A command program failed to parse or raised while running."""

    default_category = ErrorCategory.EVALUATION


# =============================================================================
# ENGINE ERRORS
# =============================================================================


class PublishConflictError(GlyphError):
    """A module was published while a consumer still held the previous one."""

    default_category = ErrorCategory.CONTEXT

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(
            message or f"Cannot publish '{name}' while a companion is still reading it"
        )


class StrategyNotFoundError(GlyphError):
    """No strategy registered for a language."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, language: str, available: list[str] | None = None):
        self.language = language
        self.available = available or []
        super().__init__(
            f"No strategy registered for '{language}'. "
            f"Available languages: {self.available or 'none'}"
        )


class DocumentError(GlyphError):
    """The host document could not be read or parsed."""

    default_category = ErrorCategory.DOCUMENT


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, GlyphError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.RETRIEVAL
    if isinstance(error, (ArithmeticError, NameError, TypeError, ValueError)):
        return ErrorCategory.EVALUATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "GlyphError",
    "RetrievalFailure",
    "CompilationFailure",
    "InstantiationFailure",
    "EvaluationFailure",
    "PublishConflictError",
    "StrategyNotFoundError",
    "DocumentError",
    "categorize_error",
]
