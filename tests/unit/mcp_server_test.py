"""Tests for the MCP server tool definitions."""

from __future__ import annotations

import asyncio

from codex_skeleton.core.languages import LanguageRegistry
from codex_skeleton.core.render import DEFAULT_PLACEHOLDER
from codex_skeleton.mcp.server import create_mcp_server


class TestMcpServerCreation:
    def test_creates_server(self, registry: LanguageRegistry) -> None:
        server = create_mcp_server(registry)
        assert server is not None
        assert server.name == "codex-skeleton"

    def test_server_has_tools(self, registry: LanguageRegistry) -> None:
        server = create_mcp_server(registry)
        tool_names = {t.name for t in server._tool_manager._tools.values()}
        assert tool_names == {"compress_code", "compress_outcome", "supported_languages"}


class TestMcpTools:
    def test_compress_code(self, registry: LanguageRegistry) -> None:
        server = create_mcp_server(registry)
        fn = server._tool_manager._tools["compress_code"].fn  # type: ignore[attr-defined]
        result = asyncio.run(fn(code="def f():\n    return 1\n", path="f.py"))
        assert result == f"def f():\n{DEFAULT_PLACEHOLDER}\n"

    def test_compress_outcome_reports_reason(self, registry: LanguageRegistry) -> None:
        server = create_mcp_server(registry)
        fn = server._tool_manager._tools["compress_outcome"].fn  # type: ignore[attr-defined]
        result = asyncio.run(fn(code="hello", path="notes.txt"))
        assert result["status"] == "unchanged"
        assert result["reason"] == "unsupported-language"
        assert result["content"] == "hello"

    def test_supported_languages(self, registry: LanguageRegistry) -> None:
        server = create_mcp_server(registry)
        fn = server._tool_manager._tools["supported_languages"].fn  # type: ignore[attr-defined]
        result = asyncio.run(fn())
        names = [entry["name"] for entry in result]
        assert names == registry.languages
        assert {"name": "python", "extensions": [".py", ".pyi", ".pyw"]} in result

    def test_empty_registry_is_used_as_given(self) -> None:
        server = create_mcp_server(LanguageRegistry([]))
        languages = server._tool_manager._tools["supported_languages"].fn  # type: ignore[attr-defined]
        outcome = server._tool_manager._tools["compress_outcome"].fn  # type: ignore[attr-defined]
        assert asyncio.run(languages()) == []
        assert asyncio.run(outcome(code="def f():\n    return 1\n", path="f.py"))["reason"] == "unsupported-language"
