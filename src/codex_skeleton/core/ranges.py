"""Range resolution: capture matches -> a keep/elide partition of the file.

Resolution runs in two passes:

1. Byte coverage. Matches are swept left to right. Every elementary segment
   (between two consecutive match boundaries) is decided by the highest
   priority match covering it; at equal priority a keeping role beats a
   ``body`` match. Segments no match covers follow the language's
   ``retain_unclaimed`` policy. Text between two kept declarations inside a
   construct is covered by the construct's ``body`` match, so it elides.

2. Line snapping. A line is kept when any non-whitespace byte on it is kept
   (for blank lines: any byte). Lines with the same decision are merged into
   maximal runs, so elision never starts or ends mid-line and never removes
   part of a retained signature.

Both passes return a sorted, contiguous, non-overlapping list of
``ResolvedRange`` covering ``[0, file_length)`` in which no two neighbours
share a decision.
"""

from collections.abc import Iterable, Iterator

from codex_skeleton.models import CaptureMatch, ResolvedRange


def sort_matches(matches: Iterable[CaptureMatch]) -> list[CaptureMatch]:
    """Order by start, then higher priority, then narrower span."""
    return sorted(matches, key=lambda m: (m.start_byte, -m.priority, m.width))


def _decide(active: list[CaptureMatch], retain_unclaimed: bool) -> bool:
    if not active:
        return retain_unclaimed
    top = max(m.priority for m in active)
    return any(m.role.keeps for m in active if m.priority == top)


def _append(ranges: list[ResolvedRange], start: int, end: int, keep: bool) -> None:
    if start >= end:
        return
    if ranges and ranges[-1].keep == keep and ranges[-1].end_byte == start:
        ranges[-1] = ResolvedRange(start_byte=ranges[-1].start_byte, end_byte=end, keep=keep)
    else:
        ranges.append(ResolvedRange(start_byte=start, end_byte=end, keep=keep))


def coverage_map(
    file_length: int, matches: Iterable[CaptureMatch], retain_unclaimed: bool = True
) -> list[ResolvedRange]:
    """Byte-level keep/elide partition, before line snapping."""
    clipped = [
        m.model_copy(update={"end_byte": min(m.end_byte, file_length)})
        for m in matches
        if m.start_byte < file_length and m.end_byte > m.start_byte
    ]
    ordered = sort_matches(clipped)

    boundaries = {0, file_length}
    for m in ordered:
        boundaries.add(m.start_byte)
        boundaries.add(m.end_byte)
    points = sorted(boundaries)

    ranges: list[ResolvedRange] = []
    active: list[CaptureMatch] = []
    next_index = 0
    for start, end in zip(points, points[1:]):
        while next_index < len(ordered) and ordered[next_index].start_byte <= start:
            active.append(ordered[next_index])
            next_index += 1
        active = [m for m in active if m.end_byte > start]
        _append(ranges, start, end, _decide(active, retain_unclaimed))
    return ranges


def line_spans(source_bytes: bytes) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` of each line, the end including its newline."""
    start = 0
    length = len(source_bytes)
    while start < length:
        newline = source_bytes.find(b"\n", start)
        end = length if newline == -1 else newline + 1
        yield start, end
        start = end


def _line_is_kept(source_bytes: bytes, start: int, end: int, coverage: list[ResolvedRange], cursor: int) -> bool:
    blank = not source_bytes[start:end].strip()
    index = cursor
    while index < len(coverage) and coverage[index].start_byte < end:
        segment = coverage[index]
        if segment.keep:
            lo = max(start, segment.start_byte)
            hi = min(end, segment.end_byte)
            if lo < hi and (blank or source_bytes[lo:hi].strip()):
                return True
        index += 1
    return False


def resolve_ranges(
    source_bytes: bytes, matches: Iterable[CaptureMatch], retain_unclaimed: bool = True
) -> list[ResolvedRange]:
    """Resolve matches into line-aligned keep/elide ranges covering the whole file."""
    coverage = coverage_map(len(source_bytes), matches, retain_unclaimed)

    ranges: list[ResolvedRange] = []
    cursor = 0
    for start, end in line_spans(source_bytes):
        while cursor < len(coverage) and coverage[cursor].end_byte <= start:
            cursor += 1
        _append(ranges, start, end, _line_is_kept(source_bytes, start, end, coverage, cursor))
    return ranges


def check_partition(ranges: list[ResolvedRange], file_length: int) -> None:
    """Raise ``ValueError`` unless ``ranges`` is a gap-free partition of the file."""
    position = 0
    for previous, current in zip([None, *ranges], ranges):
        if current.start_byte != position or current.end_byte <= current.start_byte:
            raise ValueError(f"Range {current} does not continue from byte {position}")
        if previous is not None and previous.keep == current.keep:
            raise ValueError(f"Adjacent ranges share a decision at byte {position}")
        position = current.end_byte
    if position != file_length:
        raise ValueError(f"Ranges end at byte {position}, file has {file_length} bytes")
