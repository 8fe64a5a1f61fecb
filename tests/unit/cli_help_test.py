"""Tests that -h is accepted as a help flag on all CLI commands."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from codex_skeleton.cli.app import app

runner = CliRunner()


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["compress"],
        ["languages"],
        ["explain"],
        ["serve"],
        ["serve", "mcp"],
    ],
    ids=["root", "compress", "languages", "explain", "serve", "serve-mcp"],
)
def test_short_help_flag(args: list[str]) -> None:
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_no_arguments_prints_help() -> None:
    result = runner.invoke(app, [])
    assert "Usage" in result.output
