from collections.abc import Iterable

from codex_skeleton.models import ResolvedRange

DEFAULT_PLACEHOLDER = "⋮----"


def _line_ending(chunk: bytes) -> str:
    if chunk.endswith(b"\r\n"):
        return "\r\n"
    return "\n" if chunk.endswith(b"\n") else ""


def render(source_bytes: bytes, ranges: Iterable[ResolvedRange], placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """Splice the source: kept ranges verbatim, one placeholder line per elided range.

    ``ranges`` must come from ``resolve_ranges`` (line aligned, no two elided
    ranges in a row).
    """
    parts: list[str] = []
    for item in ranges:
        chunk = source_bytes[item.start_byte : item.end_byte]
        if item.keep:
            parts.append(chunk.decode("utf-8"))
        else:
            parts.append(placeholder + _line_ending(chunk))
    return "".join(parts)
