"""Execution strategies — how a fragment of each language family runs.

ARCHITECTURE
────────────
::

    Strategy (Protocol)
      ├── .language          ─ registry key ("python", "wasm")
      ├── .family            ─ StrategyFamily.EVALUATION | BINARY
      └── .execute(task, context) ─ run one fragment (async)

    Implementations:
      EvaluationStrategy    ─ parse → rewrite calls → interpret
      BinaryModuleStrategy  ─ payload → loader.load → companion
      FunctionStrategy      ─ wraps a plain ``async def`` (register_strategy)

Strategies hold configuration only; all per-page state travels through
the :class:`ExecutionContext` argument.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from glyphrun.core.errors import EvaluationFailure, RetrievalFailure
from glyphrun.core.logging import get_logger
from glyphrun.core.settings import get_settings
from glyphrun.document.locator import companion_of
from glyphrun.document.model import Fragment
from glyphrun.execution.commands import Interpreter, parse_commands, rewrite_calls
from glyphrun.execution.context import ExecutionContext
from glyphrun.execution.loader import BinaryModuleLoader, ModuleInstance
from glyphrun.execution.models import FragmentTask, StrategyFamily
from glyphrun.execution.retrieval import Retriever

logger = get_logger(__name__)


@runtime_checkable
class Strategy(Protocol):
    """Execution behaviour associated with one language."""

    language: str
    family: StrategyFamily

    async def execute(self, task: FragmentTask, context: ExecutionContext) -> Any:
        """Run ``task.fragment``; raise a ``GlyphError`` subclass on failure."""
        ...


def _default_retriever() -> Retriever:
    settings = get_settings()
    return Retriever(timeout=settings.fetch_timeout, allow_network=settings.allow_network)


async def _reference_bytes(task: FragmentTask, fragment: Fragment, retriever: Retriever) -> bytes:
    reference = fragment.external_reference
    try:
        return await retriever.fetch(task.document.resolve(reference))
    except RetrievalFailure as e:
        raise e.with_context(reference=reference)


class EvaluationStrategy:
    """Interpret command-program fragments.

    ``call_aliases`` is the fixed call rewrite applied before interpreting
    (defaults to ``GlyphSettings.call_aliases``).  ``functions`` are host
    callables made available to every fragment.
    """

    family = StrategyFamily.EVALUATION

    def __init__(
        self,
        language: str = "python",
        *,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        call_aliases: Mapping[str, str] | None = None,
        retriever: Retriever | None = None,
    ) -> None:
        self.language = language
        self.functions = dict(functions or {})
        self.call_aliases = dict(get_settings().call_aliases if call_aliases is None else call_aliases)
        self.retriever = retriever or _default_retriever()

    async def source_for(self, task: FragmentTask) -> str:
        fragment = task.fragment
        if fragment.inline_source is not None:
            return fragment.inline_source
        if fragment.external_reference is None:
            return ""
        data = await _reference_bytes(task, fragment, self.retriever)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RetrievalFailure(
                f"Reference {fragment.external_reference} is not UTF-8 text", cause=e
            ).with_context(reference=fragment.external_reference) from e

    def evaluate(self, source: str, module: ModuleInstance | None = None) -> Any:
        program = rewrite_calls(parse_commands(source), self.call_aliases)
        return Interpreter(functions=self.functions, module=module).run(program)

    async def execute(self, task: FragmentTask, context: ExecutionContext) -> Any:
        source = await self.source_for(task)
        value = self.evaluate(source, module=context.module)
        logger.debug("evaluation.completed", position=task.fragment.position, value=repr(value))
        return value


@dataclass
class ModuleRun:
    """Result of a binary-module fragment: the instance and its companion."""

    instance: ModuleInstance
    companion_position: int | None = None
    companion_value: Any = None

    @property
    def companion_ran(self) -> bool:
        return self.companion_position is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"exports": self.instance.exports}
        if self.companion_ran:
            result["companion_position"] = self.companion_position
            result["companion_value"] = (
                self.companion_value
                if isinstance(self.companion_value, bool | int | float | str | type(None))
                else repr(self.companion_value)
            )
        return result


class BinaryModuleStrategy:
    """Load a WebAssembly module, then run the companion fragment against it.

    The companion is the element sibling right after the binary fragment,
    provided its language resolves (through ``task.registry``) to an
    evaluation-family strategy.  It runs under a context lease, so the
    instance it sees cannot be replaced underneath it.
    """

    family = StrategyFamily.BINARY

    def __init__(
        self,
        language: str = "wasm",
        *,
        loader: BinaryModuleLoader | None = None,
        retriever: Retriever | None = None,
    ) -> None:
        self.language = language
        self.loader = loader or BinaryModuleLoader()
        self.retriever = retriever or _default_retriever()

    async def payload_for(self, task: FragmentTask) -> bytes | str:
        fragment = task.fragment
        if fragment.inline_source is not None:
            return fragment.inline_source
        if fragment.external_reference is not None:
            return await _reference_bytes(task, fragment, self.retriever)
        raise RetrievalFailure("No binary module source found")

    def companion_for(self, task: FragmentTask) -> tuple[Fragment, Strategy] | None:
        companion = companion_of(task.container, task.fragment)
        if companion is None or companion.language is None or task.registry is None:
            return None
        strategy = task.registry.resolve(companion.language)
        if strategy is None or strategy.family != StrategyFamily.EVALUATION:
            return None
        return companion, strategy

    async def execute(self, task: FragmentTask, context: ExecutionContext) -> ModuleRun:
        payload = await self.payload_for(task)
        instance = await self.loader.load(payload, context)
        run = ModuleRun(instance=instance)

        found = self.companion_for(task)
        if found is None:
            return run
        companion, strategy = found
        companion_task = FragmentTask(task.document, task.container, companion, task.registry)
        with context.lease():
            try:
                run.companion_value = await strategy.execute(companion_task, context)
            except EvaluationFailure as e:
                raise e.with_context(companion_position=companion.position)
        run.companion_position = companion.position
        logger.info(
            "binary.companion_completed",
            position=task.fragment.position,
            companion_position=companion.position,
        )
        return run


class FunctionStrategy:
    """Adapter turning ``async def handler(task, context)`` into a Strategy."""

    def __init__(
        self,
        language: str,
        handler: Callable[[FragmentTask, ExecutionContext], Awaitable[Any]],
        family: StrategyFamily = StrategyFamily.EVALUATION,
    ) -> None:
        self.language = language
        self.handler = handler
        self.family = family

    async def execute(self, task: FragmentTask, context: ExecutionContext) -> Any:
        return await self.handler(task, context)
