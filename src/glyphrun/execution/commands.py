"""Command programs for evaluation-family fragments.

Evaluation fragments are written in a small Python-syntax subset.  The
source is parsed with :mod:`ast`, lowered into tagged command variants and
run by :class:`Interpreter`.  Nothing is handed to ``eval``.

Supported::

    statements   expression, ``name = expression``
    expressions  int/float/str/bool/None literals, names, dotted names,
                 + - * / % on two operands, unary -/+,
                 calls with positional arguments: ``fibonacci(10)``,
                 ``module.fibonacci(n - 1)``

Example::

    program = parse_commands("x = fibonacci(10)\\nx + 1")
    Interpreter(module=instance).run(program)   # 56
"""

from __future__ import annotations

import ast
import operator
import textwrap
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from glyphrun.core.errors import EvaluationFailure, GlyphError
from glyphrun.core.logging import get_logger

logger = get_logger(__name__)


# ── Command variants ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class BinaryOp:
    left: "Command"
    right: "Command"


@dataclass(frozen=True)
class Add(BinaryOp):
    pass


@dataclass(frozen=True)
class Sub(BinaryOp):
    pass


@dataclass(frozen=True)
class Mul(BinaryOp):
    pass


@dataclass(frozen=True)
class Div(BinaryOp):
    pass


@dataclass(frozen=True)
class Mod(BinaryOp):
    pass


@dataclass(frozen=True)
class Neg:
    operand: "Command"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Command", ...] = ()


@dataclass(frozen=True)
class Assign:
    target: str
    value: "Command"


Command = Literal | Name | Add | Sub | Mul | Div | Mod | Neg | Call | Assign
Program = tuple[Command, ...]

_BINARY_OPS: dict[type[ast.operator], type[BinaryOp]] = {
    ast.Add: Add,
    ast.Sub: Sub,
    ast.Mult: Mul,
    ast.Div: Div,
    ast.Mod: Mod,
}

_APPLY: dict[type[BinaryOp], Callable[[Any, Any], Any]] = {
    Add: operator.add,
    Sub: operator.sub,
    Mul: operator.mul,
    Div: operator.truediv,
    Mod: operator.mod,
}


# ── Parsing ──────────────────────────────────────────────────────────────


def _unsupported(node: ast.AST, what: str) -> EvaluationFailure:
    line = getattr(node, "lineno", "?")
    return EvaluationFailure(f"Unsupported {what} '{type(node).__name__}' on line {line}")


def _dotted(node: ast.expr) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_dotted(node.value)}.{node.attr}"
    raise _unsupported(node, "callee")


def _lower(node: ast.expr) -> Command:
    if isinstance(node, ast.Constant):
        if node.value is None or isinstance(node.value, bool | int | float | str):
            return Literal(node.value)
        raise _unsupported(node, "literal")
    if isinstance(node, (ast.Name, ast.Attribute)):
        return Name(_dotted(node))
    if isinstance(node, ast.BinOp):
        variant = _BINARY_OPS.get(type(node.op))
        if variant is None:
            raise _unsupported(node.op, "operator")
        return variant(_lower(node.left), _lower(node.right))
    if isinstance(node, ast.UnaryOp):
        if isinstance(node.op, ast.USub):
            return Neg(_lower(node.operand))
        if isinstance(node.op, ast.UAdd):
            return _lower(node.operand)
        raise _unsupported(node.op, "operator")
    if isinstance(node, ast.Call):
        if node.keywords or any(isinstance(arg, ast.Starred) for arg in node.args):
            raise EvaluationFailure(
                f"Only positional arguments are supported (line {node.lineno})"
            )
        return Call(_dotted(node.func), tuple(_lower(arg) for arg in node.args))
    raise _unsupported(node, "expression")


def _lower_statement(node: ast.stmt) -> Command:
    if isinstance(node, ast.Expr):
        return _lower(node.value)
    if isinstance(node, ast.Assign):
        if len(node.targets) != 1 or not isinstance(node.targets[0], ast.Name):
            raise EvaluationFailure(f"Only 'name = expression' assignments are supported (line {node.lineno})")
        return Assign(node.targets[0].id, _lower(node.value))
    raise _unsupported(node, "statement")


def parse_commands(source: str) -> Program:
    """Parse fragment source into a command program."""
    try:
        tree = ast.parse(textwrap.dedent(source).strip(), mode="exec")
    except SyntaxError as e:
        raise EvaluationFailure(f"Syntax error on line {e.lineno}: {e.msg}", cause=e) from e
    return tuple(_lower_statement(statement) for statement in tree.body)


# ── Call rewriting ───────────────────────────────────────────────────────


def _rewrite(command: Command, aliases: Mapping[str, str]) -> Command:
    if isinstance(command, Call):
        if command.name in aliases:
            return Call(aliases[command.name])
        return Call(command.name, tuple(_rewrite(arg, aliases) for arg in command.args))
    if isinstance(command, BinaryOp):
        return replace(command, left=_rewrite(command.left, aliases), right=_rewrite(command.right, aliases))
    if isinstance(command, Neg):
        return Neg(_rewrite(command.operand, aliases))
    if isinstance(command, Assign):
        return Assign(command.target, _rewrite(command.value, aliases))
    return command


def rewrite_calls(program: Program, aliases: Mapping[str, str]) -> Program:
    """Replace each aliased call with a no-argument call to its target.

    The aliased call's arguments are dropped. Programs without aliased calls
    are returned unchanged.
    """
    if not aliases:
        return program
    return tuple(_rewrite(command, aliases) for command in program)


# ── Interpreter ──────────────────────────────────────────────────────────


def _log(*values: Any) -> None:
    logger.info("fragment.log", values=list(values))


BUILTINS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "min": min,
    "max": max,
    "int": int,
    "float": float,
    "str": str,
    "round": round,
    "log": _log,
}


class Interpreter:
    """Runs a command program.

    Name lookup order: assigned variables, module exports, ``module``
    itself, then host functions (``BUILTINS`` plus ``functions``).
    """

    def __init__(
        self,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        module: Any = None,
    ) -> None:
        self.functions: dict[str, Callable[..., Any]] = {**BUILTINS, **(functions or {})}
        self.module = module
        self.variables: dict[str, Any] = {}

    def run(self, program: Program) -> Any:
        result = None
        for command in program:
            result = self.evaluate(command)
        return result

    def evaluate(self, command: Command) -> Any:
        if isinstance(command, Literal):
            return command.value
        if isinstance(command, Name):
            return self.lookup(command.id)
        if isinstance(command, Assign):
            value = self.evaluate(command.value)
            self.variables[command.target] = value
            return value
        if isinstance(command, BinaryOp):
            left = self.evaluate(command.left)
            right = self.evaluate(command.right)
            try:
                return _APPLY[type(command)](left, right)
            except (ArithmeticError, TypeError) as e:
                raise EvaluationFailure(f"{type(e).__name__}: {e}", cause=e) from e
        if isinstance(command, Neg):
            operand = self.evaluate(command.operand)
            try:
                return -operand
            except TypeError as e:
                raise EvaluationFailure(f"TypeError: {e}", cause=e) from e
        if isinstance(command, Call):
            return self._call(command)
        raise EvaluationFailure(f"Unknown command {command!r}")

    def _call(self, command: Call) -> Any:
        callee = self.lookup(command.name)
        if not callable(callee):
            raise EvaluationFailure(f"'{command.name}' is not callable")
        args = [self.evaluate(arg) for arg in command.args]
        try:
            return callee(*args)
        except GlyphError:
            raise
        except Exception as e:
            raise EvaluationFailure(f"{command.name}() failed: {e}", cause=e) from e

    def lookup(self, name: str) -> Any:
        head, _, rest = name.partition(".")
        value = self._lookup_simple(head)
        for part in rest.split(".") if rest else ():
            value = self._member(value, part, name)
        return value

    def _lookup_simple(self, name: str) -> Any:
        if name in self.variables:
            return self.variables[name]
        if self.module is not None:
            if name in self.module.exports:
                return self.module.get(name)
            if name == "module":
                return self.module
        if name in self.functions:
            return self.functions[name]
        raise EvaluationFailure(f"Unknown name '{name}'")

    @staticmethod
    def _member(value: Any, part: str, full_name: str) -> Any:
        getter = getattr(value, "get", None)
        if getter is None or not hasattr(value, "exports"):
            raise EvaluationFailure(f"Cannot resolve '{full_name}'")
        try:
            return getter(part)
        except KeyError as e:
            raise EvaluationFailure(f"Unknown name '{full_name}'", cause=e) from e
