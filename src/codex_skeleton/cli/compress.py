import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from codex_skeleton.core.batch import compress_files
from codex_skeleton.core.compress import compress_outcome, resolve_file_ranges
from codex_skeleton.core.config import CompressionConfig
from codex_skeleton.core.errors import CompressionError, ConfigurationError
from codex_skeleton.core.languages import get_registry, normalize_language
from codex_skeleton.models import SourceFile
from codex_skeleton.output.document import OutputStyle, build_render_context, render_document

# Diagnostics go to stderr so the document on stdout stays clean.
console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _render_table(headers: Sequence[str], rows: Sequence[tuple[Any, ...]]) -> None:
    table = Table(show_lines=False)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*(str(v) for v in row))
    console.print(table)
    console.print(f"({len(rows)} rows)")


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]{escape(message)}[/red]", highlight=False)
    return typer.Exit(code=1)


def _read_source(path: Path, language: str | None) -> SourceFile:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise _fail(f"Cannot read {path}: {exc}") from exc
    return SourceFile(path=path.as_posix(), content=content, language=language)


def _resolve_language(language: str | None) -> str | None:
    if language is None:
        return None
    try:
        return normalize_language(language)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--language") from exc


def compress(
    paths: Annotated[list[Path], typer.Argument(help="Source files to compress, in output order.")],
    language: Annotated[
        str | None, typer.Option(help="Language for all files, overriding extension detection.")
    ] = None,
    no_compress: Annotated[bool, typer.Option("--no-compress", help="Include files without eliding bodies.")] = False,
    style: Annotated[OutputStyle, typer.Option(help="Document style.")] = OutputStyle.PLAIN,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write the document to a file.")] = None,
    workers: Annotated[int | None, typer.Option(help="Worker threads (default: CPU count).")] = None,
    placeholder: Annotated[str | None, typer.Option(help="Line that replaces each elided body.")] = None,
    header: Annotated[str | None, typer.Option(help="Text to include in the document header.")] = None,
    instruction: Annotated[
        str | None, typer.Option(help="Instruction to append after the files.")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log per-file decisions.")] = False,
) -> None:
    """Compress source files into a single signature-only document."""
    _configure_logging(verbose)
    language = _resolve_language(language)
    try:
        config = CompressionConfig.from_env(
            enabled=False if no_compress else None,
            workers=workers,
            placeholder=placeholder,
        )
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc

    sources = [_read_source(path, language) for path in paths]
    try:
        outputs = compress_files(sources, config)
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc

    context = build_render_context(
        outputs,
        style=style,
        compressed=config.enabled,
        header_text=header,
        placeholder=config.placeholder,
        instruction=instruction,
    )
    document = render_document(context)
    if output is None:
        typer.echo(document, nl=False)
        return
    output.write_text(document, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {len(outputs)} file(s) to {output}")


def languages() -> None:
    """List supported languages and their file extensions."""
    try:
        registry = get_registry()
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc
    rows = [(p.name, ", ".join(sorted(p.extensions)), len(p.rules)) for p in registry]
    _render_table(["language", "extensions", "rules"], rows)


def _line_of(source_bytes: bytes, offset: int) -> int:
    return source_bytes.count(b"\n", 0, offset) + 1


def explain(
    path: Annotated[Path, typer.Argument(help="Source file to explain.")],
    language: Annotated[str | None, typer.Option(help="Language override.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log rule evaluation.")] = False,
) -> None:
    """Show which lines of a file are kept or elided."""
    _configure_logging(verbose)
    source = _read_source(path, _resolve_language(language))
    try:
        config = CompressionConfig.from_env()
    except ConfigurationError as exc:
        raise _fail(str(exc)) from exc
    outcome = compress_outcome(source, config=config)
    if outcome.status == "unchanged":
        console.print(f"[yellow]Unchanged[/yellow] ({outcome.reason})")
        return

    source_bytes = source.content.encode("utf-8")
    try:
        ranges = resolve_file_ranges(source, config=config)
    except CompressionError as exc:
        raise _fail(str(exc)) from exc
    rows = [
        (_line_of(source_bytes, r.start_byte), _line_of(source_bytes, r.end_byte - 1), "keep" if r.keep else "elide")
        for r in ranges
    ]
    _render_table(["start_line", "end_line", "decision"], rows)
    console.print(f"[green]Compressed[/green] ({outcome.language})")
