"""glyphrun execution — dispatch and run embedded fragments.

ARCHITECTURE
────────────
::

    ExecutionCoordinator.run(language)
      │  ordered task list from document.locate(), one task in flight
      ▼
    StrategyRegistry.resolve(language)
      ├── EvaluationStrategy   ─ commands.parse → rewrite → Interpreter
      └── BinaryModuleStrategy ─ Retriever → BinaryModuleLoader → companion
      │
      ▼
    FailureReporter.report(container, error)   (on any failure)

MODULE MAP
──────────
  1. models.py       ─ FragmentState machine, FragmentTask, RunReport
  2. context.py      ─ ExecutionContext (published module, leases)
  3. retrieval.py    ─ Retriever (http/https, file, data URIs)
  4. loader.py       ─ BinaryModuleLoader, ModuleInstance (wasmtime)
  5. commands.py     ─ Command variants, parse_commands, Interpreter
  6. strategies.py   ─ Strategy protocol + built-in strategies
  7. registry.py     ─ StrategyRegistry, default registry, decorator
  8. reporter.py     ─ FailureReporter
  9. coordinator.py  ─ ExecutionCoordinator
"""

from .commands import (
    Add,
    Assign,
    Call,
    Div,
    Interpreter,
    Literal,
    Mod,
    Mul,
    Name,
    Neg,
    Sub,
    parse_commands,
    rewrite_calls,
)
from .context import MODULE_NAME, ExecutionContext
from .coordinator import ExecutionCoordinator
from .loader import BinaryModuleLoader, ModuleInstance
from .models import (
    FRAGMENT_VALID_TRANSITIONS,
    FragmentOutcome,
    FragmentState,
    FragmentTask,
    InvalidTransitionError,
    RunReport,
    SkipReason,
    StrategyFamily,
    validate_fragment_transition,
)
from .registry import (
    StrategyRegistry,
    get_default_registry,
    install_builtin_strategies,
    register_strategy,
    reset_default_registry,
)
from .reporter import FailureReporter
from .retrieval import Retriever
from .strategies import (
    BinaryModuleStrategy,
    EvaluationStrategy,
    FunctionStrategy,
    ModuleRun,
    Strategy,
)

__all__ = [
    # Commands
    "Add",
    "Assign",
    "Call",
    "Div",
    "Interpreter",
    "Literal",
    "Mod",
    "Mul",
    "Name",
    "Neg",
    "Sub",
    "parse_commands",
    "rewrite_calls",
    # Context
    "MODULE_NAME",
    "ExecutionContext",
    # Coordinator
    "ExecutionCoordinator",
    # Loader
    "BinaryModuleLoader",
    "ModuleInstance",
    # Models
    "FRAGMENT_VALID_TRANSITIONS",
    "FragmentOutcome",
    "FragmentState",
    "FragmentTask",
    "InvalidTransitionError",
    "RunReport",
    "SkipReason",
    "StrategyFamily",
    "validate_fragment_transition",
    # Registry
    "StrategyRegistry",
    "get_default_registry",
    "install_builtin_strategies",
    "register_strategy",
    "reset_default_registry",
    # Reporting / retrieval
    "FailureReporter",
    "Retriever",
    # Strategies
    "BinaryModuleStrategy",
    "EvaluationStrategy",
    "FunctionStrategy",
    "ModuleRun",
    "Strategy",
]
