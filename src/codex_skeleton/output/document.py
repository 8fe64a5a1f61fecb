"""Assemble compressed files into a single document (plain, markdown or xml)."""

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from xml.sax.saxutils import escape, quoteattr

from pydantic import BaseModel, ConfigDict

from codex_skeleton.core.languages import detect_language_from_path
from codex_skeleton.core.render import DEFAULT_PLACEHOLDER
from codex_skeleton.models import CompressedOutput

PLAIN_SEPARATOR = "=" * 16

_BACKTICK_RUN = re.compile(r"`+")


class OutputStyle(StrEnum):
    PLAIN = "plain"
    MARKDOWN = "markdown"
    XML = "xml"


class RenderContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    files: list[CompressedOutput]
    generation_date: str
    tree_string: str
    code_fence: str = "```"
    style: OutputStyle = OutputStyle.PLAIN
    compressed: bool = True
    placeholder: str = DEFAULT_PLACEHOLDER
    header_text: str | None = None
    instruction: str | None = None


def markdown_code_fence(files: Sequence[CompressedOutput]) -> str:
    """A backtick fence longer than any backtick run in the files (at least three)."""
    longest = max((len(run) for f in files for run in _BACKTICK_RUN.findall(f.content)), default=0)
    return "`" * max(3, longest + 1)


def generate_tree_string(paths: Sequence[str]) -> str:
    tree: dict[str, Any] = {}
    for path in paths:
        node = tree
        for part in [p for p in path.replace("\\", "/").split("/") if p and p != "."]:
            node = node.setdefault(part, {})

    lines: list[str] = []

    def _walk(node: dict[str, Any], depth: int) -> None:
        # Directories first, then files, each alphabetically.
        for name in sorted(node, key=lambda n: (not node[n], n)):
            children = node[name]
            lines.append(f"{'  ' * depth}{name}{'/' if children else ''}")
            _walk(children, depth + 1)

    _walk(tree, 0)
    return "\n".join(lines)


def build_render_context(
    files: Sequence[CompressedOutput],
    style: str = OutputStyle.PLAIN,
    compressed: bool = True,
    header_text: str | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    generation_date: datetime | None = None,
    instruction: str | None = None,
) -> RenderContext:
    return RenderContext(
        files=list(files),
        generation_date=(generation_date or datetime.now(UTC)).isoformat(),
        tree_string=generate_tree_string([f.path for f in files]),
        code_fence=markdown_code_fence(files),
        style=OutputStyle(style),
        compressed=compressed,
        placeholder=placeholder,
        header_text=header_text,
        instruction=instruction,
    )


def _summary(context: RenderContext) -> str:
    return (
        f"This document merges {len(context.files)} source file(s) into one text, "
        f"generated by codex-skeleton on {context.generation_date}."
    )


def _notes(context: RenderContext) -> list[str]:
    notes = ["Files appear in the order they were given; each is introduced by its path."]
    if context.compressed:
        notes.append(
            "Function and method bodies are collapsed into single "
            f"'{context.placeholder}' lines. Signatures, type declarations and comments are kept."
        )
    notes.append("Files in languages without a grammar are included unchanged.")
    return notes


def _render_plain(context: RenderContext) -> str:
    def _section(title: str) -> list[str]:
        return [PLAIN_SEPARATOR, title, PLAIN_SEPARATOR]

    lines = [_summary(context), ""]
    lines += _section("Notes")
    lines += [f"- {note}" for note in _notes(context)]
    lines.append("")
    if context.header_text:
        lines += _section("User Provided Header")
        lines += [context.header_text, ""]
    lines += _section("Directory Structure")
    lines += [context.tree_string, ""]
    lines += _section("Files")
    lines.append("")
    for f in context.files:
        lines += _section(f"File: {f.path}")
        lines += [f.content, ""]
    if context.instruction:
        lines += _section("Instruction")
        lines += [context.instruction, ""]
    return "\n".join(lines)


def _render_markdown(context: RenderContext) -> str:
    fence = context.code_fence
    lines = [_summary(context), "", "# Notes", ""]
    lines += [f"- {note}" for note in _notes(context)]
    lines.append("")
    if context.header_text:
        lines += ["# User Provided Header", "", context.header_text, ""]
    lines += ["# Directory Structure", "", fence, context.tree_string, fence, "", "# Files", ""]
    for f in context.files:
        hint = detect_language_from_path(f.path) or ""
        lines += [f"## File: {f.path}", "", f"{fence}{hint}", f.content.rstrip("\n"), fence, ""]
    if context.instruction:
        lines += ["# Instruction", "", context.instruction, ""]
    return "\n".join(lines)


def _render_xml(context: RenderContext) -> str:
    lines = [escape(_summary(context)), "", "<notes>"]
    lines += [f"- {escape(note)}" for note in _notes(context)]
    lines += ["</notes>", ""]
    if context.header_text:
        lines += ["<user_provided_header>", escape(context.header_text), "</user_provided_header>", ""]
    lines += ["<directory_structure>", escape(context.tree_string), "</directory_structure>", "", "<files>"]
    for f in context.files:
        lines += [f"<file path={quoteattr(f.path)}>", escape(f.content.rstrip("\n")), "</file>", ""]
    lines += ["</files>", ""]
    if context.instruction:
        lines += ["<instruction>", escape(context.instruction), "</instruction>", ""]
    return "\n".join(lines)


_RENDERERS = {
    OutputStyle.PLAIN: _render_plain,
    OutputStyle.MARKDOWN: _render_markdown,
    OutputStyle.XML: _render_xml,
}


def render_document(context: RenderContext) -> str:
    try:
        renderer = _RENDERERS[OutputStyle(context.style)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown output style: {context.style}") from None
    return renderer(context).strip() + "\n"
