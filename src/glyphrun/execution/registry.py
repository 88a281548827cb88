"""Strategy Registry — injectable language → strategy lookup.

Manifesto:
The coordinator needs to resolve ``"wasm"`` to a strategy.  The registry
decouples registration (at startup) from resolution (per run), and
supports both a global default and injectable instances for testing.

ARCHITECTURE
────────────
::

    StrategyRegistry
      ├── .register(language, strategy)  ─ store strategy (one per language)
      ├── .resolve(language)             ─ strategy or None (NotFound)
      ├── .get(language)                 ─ strategy or StrategyNotFoundError
      ├── .list_languages()              ─ all registered languages
      └── .has(language)                 ─ existence check

    get_default_registry()    ─ module-level singleton with built-ins:
                                  python → EvaluationStrategy
                                  wasm   → BinaryModuleStrategy
    reset_default_registry()  ─ clear for testing
    register_strategy(lang)   ─ decorator for ``async def`` strategies

BEST PRACTICES
──────────────
- Pass an explicit ``StrategyRegistry`` to the coordinator in tests.
- Call ``reset_default_registry()`` in test fixtures.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from glyphrun.core.errors import StrategyNotFoundError
from glyphrun.core.logging import get_logger
from glyphrun.execution.models import StrategyFamily

if TYPE_CHECKING:
    from glyphrun.execution.strategies import Strategy

logger = get_logger(__name__)


class StrategyRegistry:
    """Injectable strategy registry.

    Example:
        >>> registry = StrategyRegistry()
        >>> registry.register("python", EvaluationStrategy())
        >>> registry.resolve("python").family
        <StrategyFamily.EVALUATION: 'evaluation'>
        >>> registry.resolve("lua") is None
        True
    """

    def __init__(self) -> None:
        self._strategies: dict[str, Strategy] = {}
        self._metadata: dict[str, dict[str, Any]] = {}

    def register(
        self,
        language: str,
        strategy: Strategy,
        description: str | None = None,
        replace: bool = False,
    ) -> None:
        """Register a strategy.

        Args:
            language: Language name, matched against ``text/<language>``
            strategy: Object implementing the Strategy protocol
            description: Optional description for listings
            replace: Allow replacing an existing registration

        Raises:
            ValueError: If ``language`` is already registered and not ``replace``
        """
        if language in self._strategies and not replace:
            raise ValueError(f"Strategy already registered for '{language}'")
        self._strategies[language] = strategy
        self._metadata[language] = {
            "language": language,
            "family": StrategyFamily(strategy.family).value,
            "strategy": type(strategy).__name__,
            "description": description,
        }
        logger.debug("registry.registered", language=language, family=strategy.family)

    def resolve(self, language: str) -> Strategy | None:
        """Strategy for ``language``, or ``None`` when nothing is registered."""
        return self._strategies.get(language)

    def get(self, language: str) -> Strategy:
        """Strategy for ``language``.

        Raises:
            StrategyNotFoundError: If no strategy is registered
        """
        strategy = self.resolve(language)
        if strategy is None:
            raise StrategyNotFoundError(language, self.list_languages())
        return strategy

    def has(self, language: str) -> bool:
        return language in self._strategies

    def get_metadata(self, language: str) -> dict[str, Any] | None:
        return self._metadata.get(language)

    def list_languages(self) -> list[str]:
        return sorted(self._strategies)

    def list_with_metadata(self) -> list[dict[str, Any]]:
        return [self._metadata[language].copy() for language in self.list_languages()]

    def unregister(self, language: str) -> bool:
        """Unregister a strategy; False if it was not registered."""
        if language in self._strategies:
            del self._strategies[language]
            del self._metadata[language]
            return True
        return False

    def clear(self) -> None:
        """Clear all strategies (for testing)."""
        self._strategies.clear()
        self._metadata.clear()


def install_builtin_strategies(registry: StrategyRegistry) -> StrategyRegistry:
    """Register the two built-in strategies into ``registry``."""
    from glyphrun.execution.strategies import BinaryModuleStrategy, EvaluationStrategy

    registry.register(
        "python",
        EvaluationStrategy("python"),
        description="Interpret command programs (Python-syntax subset).",
    )
    registry.register(
        "wasm",
        BinaryModuleStrategy("wasm"),
        description="Compile and instantiate WebAssembly, then run its companion.",
    )
    return registry


# === GLOBAL DEFAULT REGISTRY ===

_default_registry: StrategyRegistry | None = None


def get_default_registry() -> StrategyRegistry:
    """Get the global default registry.

    Creates it lazily on first access, with the built-in strategies.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = install_builtin_strategies(StrategyRegistry())
    return _default_registry


def reset_default_registry() -> None:
    """Reset the global registry (for testing)."""
    global _default_registry
    _default_registry = None


# === DECORATOR API ===


def register_strategy(
    language: str,
    registry: StrategyRegistry | None = None,
    family: StrategyFamily = StrategyFamily.EVALUATION,
    description: str | None = None,
):
    """Decorator to register an ``async def handler(task, context)`` strategy.

    Example:
        >>> @register_strategy("upper")
        >>> async def upper(task, context):
        ...     return (task.fragment.inline_source or "").upper()
    """
    from glyphrun.execution.strategies import FunctionStrategy

    def decorator(func: Callable) -> Callable:
        target = registry or get_default_registry()
        target.register(
            language,
            FunctionStrategy(language, func, family=family),
            description=description or func.__doc__,
        )
        return func

    return decorator
