"""Execution Coordinator — the top-level entry point.

WHY
───
A page embeds fragments of several languages.  For one requested language
the coordinator walks the document, hands each matching fragment to its
strategy and turns any failure into a diagnostic, without ever letting an
exception escape.

SCHEDULING CONTRACT
───────────────────
``run(language)`` builds an ordered task list (one task per discovered
fragment, document order) and processes it in a single loop with exactly
one task in flight.  Task *i+1* does not start until task *i*'s awaited
chain has fully resolved, success or reported failure.  That ordering is
what lets a binary module's publish be visible to the companion that
follows it.  There is no cancellation and no retry.

Per-fragment state machine::

    DISCOVERED ─┬─ tag ≠ text/<language>        → SKIPPED (tag_mismatch)
                ├─ no strategy for <language>   → SKIPPED (no_strategy)
                ├─ companion of a binary module → SKIPPED (companion)
                └─ EXECUTING ─┬─ ok              → SUCCEEDED
                              └─ error → FAILED  → REPORTED

Example::

    document = Document.from_path("chart.svg")
    coordinator = ExecutionCoordinator(document)
    await coordinator.execute_language("python")
    await coordinator.execute_language("wasm")
"""

from __future__ import annotations

from collections.abc import Iterable

from glyphrun.core.errors import GlyphError, categorize_error
from glyphrun.core.logging import LogContext, get_logger
from glyphrun.core.settings import get_settings
from glyphrun.document.locator import locate, preceding_fragment
from glyphrun.document.model import Document
from glyphrun.execution.context import ExecutionContext
from glyphrun.execution.models import (
    FragmentOutcome,
    FragmentTask,
    RunReport,
    SkipReason,
    StrategyFamily,
)
from glyphrun.execution.registry import StrategyRegistry, get_default_registry
from glyphrun.execution.reporter import FailureReporter

logger = get_logger(__name__)


class ExecutionCoordinator:
    """Run the fragments of one document, one language at a time.

    One coordinator corresponds to one page: it owns the
    :class:`ExecutionContext`, so a module published during the ``wasm`` run
    stays visible to any later run on the same coordinator.
    """

    def __init__(
        self,
        document: Document,
        *,
        registry: StrategyRegistry | None = None,
        reporter: FailureReporter | None = None,
        context: ExecutionContext | None = None,
    ) -> None:
        self.document = document
        self.registry = registry or get_default_registry()
        self.reporter = reporter or FailureReporter()
        self.context = context or ExecutionContext()

    def plan(self) -> list[FragmentTask]:
        """Ordered task list for the current state of the document."""
        return [
            FragmentTask(self.document, container, fragment, self.registry)
            for container, fragment in locate(self.document)
        ]

    async def run(self, language: str) -> RunReport:
        """Execute every ``text/<language>`` fragment; never raises."""
        report = RunReport(language=language)
        with LogContext(language=language, run_id=report.run_id):
            try:
                logger.info("coordinator.run_started")
                for task in self.plan():
                    report.outcomes.append(await self._process(task, language))
            except Exception:
                logger.exception("coordinator.run_aborted")
            report.finish()
            logger.info("coordinator.run_finished", **report.summary())
        return report

    async def execute_language(self, language: str) -> None:
        """Invocation surface: run one language, report nothing back."""
        await self.run(language)

    async def run_all(self, languages: Iterable[str] | None = None) -> list[RunReport]:
        """Run each language once, in order (defaults to ``GlyphSettings.languages``)."""
        if languages is None:
            languages = get_settings().languages
        return [await self.run(language) for language in languages]

    def _is_companion(self, task: FragmentTask) -> bool:
        previous = preceding_fragment(task.container, task.fragment)
        if previous is None or previous.language is None:
            return False
        strategy = self.registry.resolve(previous.language)
        return strategy is not None and strategy.family == StrategyFamily.BINARY

    def _skip(self, outcome: FragmentOutcome, reason: SkipReason) -> FragmentOutcome:
        outcome.mark_skipped(reason)
        logger.debug(
            "fragment.skipped",
            reason=reason.value,
            container_index=outcome.container_index,
            position=outcome.fragment_position,
            language_tag=outcome.language_tag,
        )
        return outcome

    async def _process(self, task: FragmentTask, language: str) -> FragmentOutcome:
        outcome = FragmentOutcome.for_task(task)
        if not task.fragment.matches(language):
            return self._skip(outcome, SkipReason.TAG_MISMATCH)
        strategy = self.registry.resolve(language)
        if strategy is None:
            return self._skip(outcome, SkipReason.NO_STRATEGY)
        if strategy.family == StrategyFamily.EVALUATION and self._is_companion(task):
            return self._skip(outcome, SkipReason.COMPANION)

        outcome.mark_executing()
        try:
            value = await strategy.execute(task, self.context)
        except Exception as exc:
            error = exc if isinstance(exc, GlyphError) else GlyphError(
                f"{type(exc).__name__}: {exc}", category=categorize_error(exc), cause=exc
            )
            error.with_context(
                container_index=task.container.index,
                fragment_position=task.fragment.position,
                language_tag=task.fragment.language_tag,
                reference=task.fragment.external_reference,
            )
            outcome.mark_failed(error)
            outcome.mark_reported(self.reporter.report(task.container, error))
            return outcome

        outcome.mark_succeeded(value)
        logger.info(
            "fragment.succeeded",
            container_index=outcome.container_index,
            position=outcome.fragment_position,
        )
        return outcome
