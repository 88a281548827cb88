"""Tests for the ``glyphrun`` CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog
from conftest import FIB_WAT, build_markup
from typer.testing import CliRunner

from glyphrun.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # Reports go to stdout; keep log records (stderr) to warnings and above.
    monkeypatch.setenv("GLYPHRUN_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("GLYPHRUN_JSON_LOGS", "true")
    yield
    structlog.reset_defaults()


def _write(tmp_path: Path, *containers: str, name: str = "page.svg") -> Path:
    path = tmp_path / name
    path.write_text(build_markup(*containers), encoding="utf-8")
    return path


FIB_CONTAINER = (
    f'<script type="text/wasm">{FIB_WAT}</script>'
    '<script type="text/python">fibonacci(10)</script>'
)


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("glyphrun ")


class TestRun:
    def test_run_json(self, tmp_path):
        path = _write(tmp_path, FIB_CONTAINER)

        result = runner.invoke(app, ["run", str(path), "--json"])

        assert result.exit_code == 0, result.output
        reports = json.loads(result.stdout)
        assert [r["language"] for r in reports] == ["python", "wasm"]
        wasm_outcome = reports[1]["outcomes"][0]
        assert wasm_outcome["state"] == "succeeded"
        assert wasm_outcome["value"]["companion_value"] == 55

    def test_run_single_language_table(self, tmp_path):
        path = _write(tmp_path, '<script type="text/python">1 + 2</script>')

        result = runner.invoke(app, ["run", str(path), "-l", "python"])

        assert result.exit_code == 0, result.output
        assert "text/python" in result.output
        assert "succeeded" in result.output

    def test_languages_from_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GLYPHRUN_LANGUAGES", '["python"]')
        path = _write(tmp_path, '<script type="text/python">1</script>')

        result = runner.invoke(app, ["run", str(path), "--json"])
        assert [r["language"] for r in json.loads(result.stdout)] == ["python"]

    def test_output_written_with_diagnostic(self, tmp_path):
        path = _write(tmp_path, '<script type="text/python">nope()</script>')
        out = tmp_path / "out.svg"

        result = runner.invoke(app, ["run", str(path), "-l", "python", "-o", str(out)])

        assert result.exit_code == 0, result.output
        written = out.read_text(encoding="utf-8")
        assert "Error: Unknown name 'nope'" in written
        assert 'class="glyphrun-diagnostic"' in written

    def test_fail_on_error(self, tmp_path):
        path = _write(tmp_path, '<script type="text/python">nope()</script>')

        result = runner.invoke(app, ["run", str(path), "-l", "python", "--fail-on-error"])
        assert result.exit_code == 1

    def test_failure_logged_as_json(self, tmp_path):
        path = _write(tmp_path, '<script type="text/python">nope()</script>')

        result = runner.invoke(app, ["run", str(path), "-l", "python", "--json"])

        assert result.exit_code == 0, result.output
        assert result.exception is None
        failed = [
            json.loads(line)
            for line in result.output.splitlines()
            if '"fragment.failed"' in line
        ]
        assert len(failed) == 1
        assert failed[0]["logger"] == "glyphrun.execution.reporter"
        assert failed[0]["message"] == "Unknown name 'nope'"

    def test_debug_logging_does_not_break_run(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GLYPHRUN_LOG_LEVEL", "DEBUG")
        path = _write(tmp_path, FIB_CONTAINER)

        result = runner.invoke(app, ["run", str(path), "-l", "wasm"])

        assert result.exit_code == 0, result.output
        assert result.exception is None
        assert '"coordinator.run_started"' in result.output

    def test_fail_on_error_clean_run(self, tmp_path):
        path = _write(tmp_path, '<script type="text/python">2 * 2</script>')

        result = runner.invoke(app, ["run", str(path), "-l", "python", "--fail-on-error"])
        assert result.exit_code == 0

    def test_unparseable_document(self, tmp_path):
        path = tmp_path / "broken.svg"
        path.write_text("<svg><script></svg>", encoding="utf-8")

        result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1

    def test_missing_document(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "absent.svg")])
        assert result.exit_code != 0


class TestLanguages:
    def test_lists_builtins(self):
        result = runner.invoke(app, ["languages"])
        assert result.exit_code == 0
        assert "text/python" in result.output
        assert "text/wasm" in result.output

    def test_json(self):
        result = runner.invoke(app, ["languages", "--json"])
        entries = json.loads(result.stdout)
        assert [e["language"] for e in entries] == ["python", "wasm"]
        assert entries[1]["family"] == "binary"
