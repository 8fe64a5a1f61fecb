from typing import cast

from tree_sitter import Node, Tree
from tree_sitter_language_pack import SupportedLanguage, get_parser

from codex_skeleton.core.errors import ParseFailure
from codex_skeleton.core.languages import LanguageProfile


def _spans_content(node: Node, source_bytes: bytes) -> bool:
    content_start = len(source_bytes) - len(source_bytes.lstrip())
    content_end = len(source_bytes.rstrip())
    return node.start_byte <= content_start and node.end_byte >= content_end


def is_total_failure(root: Node, source_bytes: bytes) -> bool:
    """True when the grammar could not recognise anything in the input."""
    if root.type == "ERROR":
        return True
    children = root.children
    return len(children) == 1 and children[0].type == "ERROR" and _spans_content(children[0], source_bytes)


def parse_source(source_bytes: bytes, profile: LanguageProfile) -> Tree:
    """Parse with the profile's grammar.

    Local syntax errors are left in the tree. Only input that yields no tree, or
    a tree that is a single error node, raises ``ParseFailure``.
    """
    parser = get_parser(cast(SupportedLanguage, profile.name))
    try:
        tree = parser.parse(source_bytes)
    except ValueError as exc:
        raise ParseFailure(profile.name, str(exc)) from exc
    if tree is None:
        raise ParseFailure(profile.name, "parser returned no tree")
    if source_bytes.strip() and is_total_failure(tree.root_node, source_bytes):
        raise ParseFailure(profile.name, "input is a single error node")
    return tree
