"""FastMCP server exposing codex-skeleton tools."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from codex_skeleton.core.compress import compress_outcome as _compress_outcome
from codex_skeleton.core.config import CompressionConfig
from codex_skeleton.core.languages import LanguageRegistry, get_registry
from codex_skeleton.models import SourceFile


def create_mcp_server(registry: LanguageRegistry | None = None) -> FastMCP:
    """Create a FastMCP server that compresses code with the given registry."""

    if registry is None:
        registry = get_registry()
    config = CompressionConfig.from_env()
    mcp = FastMCP("codex-skeleton", instructions="Reduce source code to its signatures and type declarations.")

    @mcp.tool()
    async def compress_code(code: str, path: str, language: str | None = None) -> str:
        """Compress a code snippet; `path` selects the language by extension."""
        source = SourceFile(path=path, content=code, language=language)
        return _compress_outcome(source, registry, config).content

    @mcp.tool()
    async def compress_outcome(code: str, path: str, language: str | None = None) -> dict[str, Any]:
        """Compress a code snippet and report whether it was compressed and why not."""
        source = SourceFile(path=path, content=code, language=language)
        return _compress_outcome(source, registry, config).model_dump(mode="json")

    @mcp.tool()
    async def supported_languages() -> list[dict[str, Any]]:
        """List supported languages and their file extensions."""
        return [{"name": p.name, "extensions": sorted(p.extensions)} for p in registry]

    return mcp
