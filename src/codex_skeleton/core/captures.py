from collections.abc import Iterator

from tree_sitter import Node, QueryCursor

from codex_skeleton.core.languages import CaptureRule, LanguageProfile
from codex_skeleton.models import CaptureMatch, CaptureRole

_WHITESPACE = frozenset(b" \t\r\n\f\v")


def find_body(node: Node, hints: tuple[str, ...]) -> Node | None:
    """Locate the body of a construct by field name first, then by child node type."""
    for hint in hints:
        child = node.child_by_field_name(hint)
        if child is not None:
            return child
    for child in node.children:
        if child.type in hints:
            return child
    return None


def _signature_end(source_bytes: bytes, start: int, body_start: int) -> int:
    end = body_start
    while end > start and source_bytes[end - 1] in _WHITESPACE:
        end -= 1
    return end


def matches_for_node(
    rule: CaptureRule, node: Node, source_bytes: bytes, body: Node | None = None
) -> Iterator[CaptureMatch]:
    if rule.role is not CaptureRole.SIGNATURE_ONLY:
        yield CaptureMatch(
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            role=rule.role,
            priority=rule.priority,
            node_kind=node.type,
        )
        return

    if body is None:
        body = find_body(node, rule.body)
    if body is None or not node.start_byte <= body.start_byte <= node.end_byte:
        # Declarations without a body (abstract methods, prototypes) are kept whole.
        yield CaptureMatch(
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            role=CaptureRole.FULL_DEFINITION,
            priority=rule.priority,
            node_kind=node.type,
        )
        return

    end = _signature_end(source_bytes, node.start_byte, body.start_byte)
    if end > node.start_byte:
        yield CaptureMatch(
            start_byte=node.start_byte,
            end_byte=end,
            role=CaptureRole.SIGNATURE_ONLY,
            priority=rule.priority,
            node_kind=node.type,
        )
    if node.end_byte > end:
        yield CaptureMatch(
            start_byte=end,
            end_byte=node.end_byte,
            role=CaptureRole.BODY,
            priority=rule.priority,
            node_kind=body.type,
        )


class CaptureStream:
    """Lazy stream of capture matches for one parsed file.

    Iterating again re-runs the queries against the same tree, so a tree can be
    queried repeatedly (or with a different profile) without re-parsing.
    Matches come out in no particular order.
    """

    def __init__(self, root: Node, source_bytes: bytes, profile: LanguageProfile) -> None:
        self._root = root
        self._source_bytes = source_bytes
        self._profile = profile

    def __iter__(self) -> Iterator[CaptureMatch]:
        for rule, query in self._profile.queries:
            cursor = QueryCursor(query)
            for _, captures in cursor.matches(self._root):
                bodies = captures.get("body") or []
                for node in captures.get("definition", []):
                    body = bodies[0] if bodies else None
                    yield from matches_for_node(rule, node, self._source_bytes, body)


def run_queries(root: Node, source_bytes: bytes, profile: LanguageProfile) -> list[CaptureMatch]:
    return list(CaptureStream(root, source_bytes, profile))
