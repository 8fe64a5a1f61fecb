"""Tests for the compress, languages and explain commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from codex_skeleton.cli.app import app
from codex_skeleton.core.render import DEFAULT_PLACEHOLDER

runner = CliRunner()

SOURCE = 'def greet(name):\n    message = f"Hello, {name}"\n    print(message)\n'


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "greet.py"
    path.write_text(SOURCE, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ENABLED", "PLACEHOLDER", "WORKERS", "RETAIN_UNCLAIMED"):
        monkeypatch.delenv(f"CODEX_SKELETON_{name}", raising=False)


class TestCompressCommand:
    def test_prints_compressed_document(self, source_file: Path) -> None:
        result = runner.invoke(app, ["compress", str(source_file)])
        assert result.exit_code == 0, result.output
        assert "def greet(name):" in result.output
        assert DEFAULT_PLACEHOLDER in result.output
        assert "print(message)" not in result.output

    def test_no_compress_keeps_bodies(self, source_file: Path) -> None:
        result = runner.invoke(app, ["compress", str(source_file), "--no-compress"])
        assert result.exit_code == 0, result.output
        assert "print(message)" in result.output

    def test_markdown_output_file(self, source_file: Path, tmp_path: Path) -> None:
        target = tmp_path / "out.md"
        result = runner.invoke(app, ["compress", str(source_file), "--style", "markdown", "-o", str(target)])
        assert result.exit_code == 0, result.output
        document = target.read_text(encoding="utf-8")
        assert "```python\ndef greet(name):" in document

    def test_xml_style_with_instruction(self, source_file: Path) -> None:
        result = runner.invoke(
            app, ["compress", str(source_file), "--style", "xml", "--instruction", "List the public functions."]
        )
        assert result.exit_code == 0, result.output
        assert f'<file path="{source_file.as_posix()}">\ndef greet(name):\n' in result.output
        assert result.output.endswith("<instruction>\nList the public functions.\n</instruction>\n")

    def test_custom_placeholder(self, source_file: Path) -> None:
        result = runner.invoke(app, ["compress", str(source_file), "--placeholder", "# ..."])
        assert result.exit_code == 0, result.output
        assert "def greet(name):\n# ...\n" in result.output

    def test_language_override(self, tmp_path: Path) -> None:
        script = tmp_path / "tool"
        script.write_text(SOURCE, encoding="utf-8")
        result = runner.invoke(app, ["compress", str(script), "--language", "python"])
        assert result.exit_code == 0, result.output
        assert "print(message)" not in result.output

    def test_unknown_language_is_rejected(self, source_file: Path) -> None:
        result = runner.invoke(app, ["compress", str(source_file), "--language", "cobol"])
        assert result.exit_code != 0

    def test_missing_file_fails(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["compress", str(tmp_path / "missing.py")])
        assert result.exit_code == 1

    def test_invalid_workers_fail(self, source_file: Path) -> None:
        result = runner.invoke(app, ["compress", str(source_file), "--workers", "0"])
        assert result.exit_code == 1


class TestLanguagesCommand:
    def test_lists_languages(self) -> None:
        result = runner.invoke(app, ["languages"])
        assert result.exit_code == 0, result.output
        assert "python" in result.output
        assert "(17 rows)" in result.output


class TestExplainCommand:
    def test_shows_decisions(self, source_file: Path) -> None:
        result = runner.invoke(app, ["explain", str(source_file)])
        assert result.exit_code == 0, result.output
        assert "keep" in result.output
        assert "elide" in result.output
        assert "(2 rows)" in result.output

    def test_reports_fallback_reason(self, tmp_path: Path) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("hello\n", encoding="utf-8")
        result = runner.invoke(app, ["explain", str(notes)])
        assert result.exit_code == 0, result.output
        assert "unsupported-language" in result.output

    def test_disabled_by_environment(self, source_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODEX_SKELETON_ENABLED", "false")
        result = runner.invoke(app, ["explain", str(source_file)])
        assert result.exit_code == 0, result.output
        assert "disabled" in result.output
        assert "elide" not in result.output

    def test_invalid_environment_fails(self, source_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODEX_SKELETON_ENABLED", "sometimes")
        result = runner.invoke(app, ["explain", str(source_file)])
        assert result.exit_code == 1
