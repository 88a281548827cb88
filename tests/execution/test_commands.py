"""Tests for glyphrun.execution.commands — parsing, call rewriting, interpreting."""

from __future__ import annotations

import pytest

from glyphrun.core.errors import EvaluationFailure
from glyphrun.execution.commands import (
    Add,
    Assign,
    Call,
    Interpreter,
    Literal,
    Mul,
    Name,
    Neg,
    parse_commands,
    rewrite_calls,
)


class FakeModule:
    """Minimal stand-in for a ModuleInstance: ``exports`` plus ``get``."""

    exports = ["double", "answer"]

    def get(self, name):
        if name == "double":
            return lambda value: value * 2
        if name == "answer":
            return 42
        raise KeyError(name)


def run(source: str, **kwargs):
    return Interpreter(**kwargs).run(parse_commands(source))


# =============================================================================
# Parsing
# =============================================================================


class TestParse:
    def test_call_with_literal(self):
        assert parse_commands("fibonacci(10)") == (Call("fibonacci", (Literal(10),)),)

    def test_assignment_and_arithmetic(self):
        assert parse_commands("x = 2 * (n + 1)") == (
            Assign("x", Mul(Literal(2), Add(Name("n"), Literal(1)))),
        )

    def test_unary_minus(self):
        assert parse_commands("-n") == (Neg(Name("n")),)

    def test_dotted_call(self):
        assert parse_commands("module.fibonacci(5)") == (Call("module.fibonacci", (Literal(5),)),)

    def test_indented_source_is_dedented(self):
        program = parse_commands("\n    a = 1\n    a + 1\n")
        assert len(program) == 2

    def test_empty_source(self):
        assert parse_commands("   \n") == ()

    def test_syntax_error(self):
        with pytest.raises(EvaluationFailure, match="Syntax error"):
            parse_commands("fibonacci(")

    @pytest.mark.parametrize(
        "source",
        [
            "import os",
            "for i in x: pass",
            "def f(): pass",
            "[1, 2]",
            "a ** 2",
            "lambda: 1",
            "b'raw'",
            "a.b = 1",
        ],
    )
    def test_unsupported_constructs(self, source):
        with pytest.raises(EvaluationFailure):
            parse_commands(source)

    def test_keyword_arguments_rejected(self):
        with pytest.raises(EvaluationFailure, match="positional"):
            parse_commands("f(n=1)")


# =============================================================================
# Call rewriting
# =============================================================================


class TestRewriteCalls:
    def test_aliased_call_renamed(self):
        program = parse_commands("execute_script('python')")
        rewritten = rewrite_calls(program, {"execute_script": "regenerate_data"})
        assert rewritten == (Call("regenerate_data"),)

    def test_aliased_call_arguments_dropped(self):
        program = parse_commands("x = 1 + execute_script(execute_script(), 2)")
        (assign,) = rewrite_calls(program, {"execute_script": "go"})
        assert assign.value.right == Call("go")

    def test_alias_inside_plain_call_arguments(self):
        program = parse_commands("max(execute_script('a'), 1)")
        rewritten = rewrite_calls(program, {"execute_script": "go"})
        assert rewritten == (Call("max", (Call("go"), Literal(1))),)

    def test_program_without_alias_unchanged(self):
        program = parse_commands("fibonacci(10)")
        assert rewrite_calls(program, {"execute_script": "regenerate_data"}) == program

    def test_empty_aliases(self):
        program = parse_commands("execute_script()")
        assert rewrite_calls(program, {}) is program


# =============================================================================
# Interpreter
# =============================================================================


class TestInterpreter:
    def test_last_statement_value(self):
        assert run("x = 4\ny = x * 3\ny - 2") == 10

    def test_variables_kept(self):
        interpreter = Interpreter()
        interpreter.run(parse_commands("total = 5 % 3"))
        assert interpreter.variables == {"total": 2}

    def test_strings_and_division(self):
        assert run("'a' + 'b'") == "ab"
        assert run("7 / 2") == 3.5

    def test_builtins(self):
        assert run("max(abs(-3), 2)") == 3
        assert run("round(2.6)") == 3
        assert run("log('hello')") is None

    def test_host_functions(self):
        assert run("regenerate_data('python')", functions={"regenerate_data": str.upper}) == "PYTHON"

    def test_module_exports_resolve_bare_names(self):
        assert run("double(21)", module=FakeModule()) == 42

    def test_module_dotted_and_globals(self):
        assert run("module.double(answer)", module=FakeModule()) == 84

    def test_module_name_itself(self):
        module = FakeModule()
        assert run("module", module=module) is module

    def test_variables_shadow_exports(self):
        assert run("answer = 1\nanswer", module=FakeModule()) == 1

    def test_unknown_name(self):
        with pytest.raises(EvaluationFailure, match="Unknown name 'fibonacci'"):
            run("fibonacci(10)")

    def test_unknown_member(self):
        with pytest.raises(EvaluationFailure, match="Unknown name 'module.missing'"):
            run("module.missing()", module=FakeModule())

    def test_member_of_plain_value(self):
        with pytest.raises(EvaluationFailure, match="Cannot resolve 'x.y'"):
            run("x = 1\nx.y")

    def test_not_callable(self):
        with pytest.raises(EvaluationFailure, match="not callable"):
            run("x = 1\nx()")

    def test_zero_division(self):
        with pytest.raises(EvaluationFailure, match="ZeroDivisionError"):
            run("1 / 0")

    def test_type_error_in_operator(self):
        with pytest.raises(EvaluationFailure, match="TypeError"):
            run("'a' - 1")

    def test_host_function_failure_wrapped(self):
        def explode():
            raise ValueError("bad input")

        with pytest.raises(EvaluationFailure, match=r"explode\(\) failed: bad input") as exc_info:
            run("explode()", functions={"explode": explode})
        assert isinstance(exc_info.value.cause, ValueError)
