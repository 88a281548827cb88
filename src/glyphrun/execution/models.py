"""Execution domain models.

Defines the per-fragment state machine and the records a run produces:
- FragmentTask: one unit of work handed to a strategy
- FragmentOutcome: state history of one fragment within a run
- RunReport: all outcomes of one ``run(language)`` call

State transitions are enforced via ``FRAGMENT_VALID_TRANSITIONS``::

    DISCOVERED → SKIPPED | EXECUTING
    EXECUTING  → SUCCEEDED | FAILED
    FAILED     → REPORTED
    SKIPPED    → (terminal)
    SUCCEEDED  → (terminal)
    REPORTED   → (terminal)
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from glyphrun.document.model import Container, Document, Fragment
    from glyphrun.execution.registry import StrategyRegistry


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class InvalidTransitionError(ValueError):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, current: str, target: str, enum_name: str = "FragmentState") -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid {enum_name} transition: {current} → {target}"
        )


class FragmentState(str, Enum):
    """Lifecycle of one fragment within a run."""

    DISCOVERED = "discovered"
    SKIPPED = "skipped"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REPORTED = "reported"


class SkipReason(str, Enum):
    """Why a discovered fragment was not executed."""

    TAG_MISMATCH = "tag_mismatch"
    NO_STRATEGY = "no_strategy"
    COMPANION = "companion"


class StrategyFamily(str, Enum):
    EVALUATION = "evaluation"
    BINARY = "binary"


FRAGMENT_VALID_TRANSITIONS: dict[FragmentState, frozenset[FragmentState]] = {
    FragmentState.DISCOVERED: frozenset({
        FragmentState.SKIPPED,
        FragmentState.EXECUTING,
    }),
    FragmentState.EXECUTING: frozenset({
        FragmentState.SUCCEEDED,
        FragmentState.FAILED,
    }),
    FragmentState.FAILED: frozenset({
        FragmentState.REPORTED,
    }),
    FragmentState.SKIPPED: frozenset(),  # terminal
    FragmentState.SUCCEEDED: frozenset(),  # terminal
    FragmentState.REPORTED: frozenset(),  # terminal
}

TERMINAL_STATES = frozenset(
    state for state, targets in FRAGMENT_VALID_TRANSITIONS.items() if not targets
)


def validate_fragment_transition(current: FragmentState, target: FragmentState) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_fragment_transition(FragmentState.EXECUTING, FragmentState.SUCCEEDED)
        >>> # OK — no exception
        >>> validate_fragment_transition(FragmentState.SKIPPED, FragmentState.EXECUTING)
        InvalidTransitionError: Invalid FragmentState transition: skipped → executing
    """
    allowed = FRAGMENT_VALID_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransitionError(current.value, target.value)


@dataclass
class FragmentTask:
    """What a strategy receives: the fragment plus where it lives."""

    document: "Document"
    container: "Container"
    fragment: "Fragment"
    registry: "StrategyRegistry | None" = None


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return repr(value)


@dataclass
class FragmentOutcome:
    """State history of one fragment within a run."""

    container_index: int
    fragment_position: int
    language_tag: str
    state: FragmentState = FragmentState.DISCOVERED
    history: list[FragmentState] = field(default_factory=lambda: [FragmentState.DISCOVERED])
    skip_reason: SkipReason | None = None
    value: Any = None
    error: Exception | None = None
    diagnostic: Any = field(default=None, repr=False)

    @classmethod
    def for_task(cls, task: FragmentTask) -> "FragmentOutcome":
        return cls(
            container_index=task.container.index,
            fragment_position=task.fragment.position,
            language_tag=task.fragment.language_tag,
        )

    def transition_to(self, target: FragmentState) -> None:
        validate_fragment_transition(self.state, target)
        self.state = target
        self.history.append(target)

    def mark_skipped(self, reason: SkipReason) -> None:
        self.transition_to(FragmentState.SKIPPED)
        self.skip_reason = reason

    def mark_executing(self) -> None:
        self.transition_to(FragmentState.EXECUTING)

    def mark_succeeded(self, value: Any = None) -> None:
        self.transition_to(FragmentState.SUCCEEDED)
        self.value = value

    def mark_failed(self, error: Exception) -> None:
        self.transition_to(FragmentState.FAILED)
        self.error = error

    def mark_reported(self, diagnostic: Any = None) -> None:
        self.transition_to(FragmentState.REPORTED)
        self.diagnostic = diagnostic

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "container_index": self.container_index,
            "fragment_position": self.fragment_position,
            "language_tag": self.language_tag,
            "state": self.state.value,
        }
        if self.skip_reason is not None:
            result["skip_reason"] = self.skip_reason.value
        if self.state == FragmentState.SUCCEEDED:
            result["value"] = _jsonable(self.value)
        if self.error is not None:
            result["error"] = _jsonable(self.error) if hasattr(self.error, "to_dict") else str(self.error)
        return result


@dataclass
class RunReport:
    """Result of one coordinator run for a single language."""

    language: str
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    outcomes: list[FragmentOutcome] = field(default_factory=list)

    def finish(self) -> None:
        self.finished_at = utcnow()

    def _in_state(self, state: FragmentState) -> list[FragmentOutcome]:
        return [o for o in self.outcomes if o.state == state]

    @property
    def succeeded(self) -> list[FragmentOutcome]:
        return self._in_state(FragmentState.SUCCEEDED)

    @property
    def skipped(self) -> list[FragmentOutcome]:
        return self._in_state(FragmentState.SKIPPED)

    @property
    def reported(self) -> list[FragmentOutcome]:
        return self._in_state(FragmentState.REPORTED)

    @property
    def executed(self) -> list[FragmentOutcome]:
        return [o for o in self.outcomes if FragmentState.EXECUTING in o.history]

    def summary(self) -> dict[str, int]:
        return {
            "discovered": len(self.outcomes),
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "reported": len(self.reported),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            **self.summary(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
