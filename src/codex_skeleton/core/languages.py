"""Grammar registry: file extension -> language profile (grammar + capture rules).

Languages are data. Each supported language has an entry in the extension map
below and a rule file ``queries/<language>.scm`` shipped with the package::

    ; option: retain-unclaimed=true

    ; rule: signature-only priority=10 body=body,function_body
    (function_declaration) @definition

A ``; rule:`` directive opens a rule and its query text runs until the next
directive. Every rule query captures ``@definition`` and may capture ``@body``.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import cache, cached_property
from pathlib import Path
from typing import cast

from tree_sitter import Language, Query, QueryError
from tree_sitter_language_pack import SupportedLanguage, get_language

from codex_skeleton.core.errors import ConfigurationError, MalformedQueryRule, UnsupportedLanguageError
from codex_skeleton.models import CaptureRole

logger = logging.getLogger(__name__)

QUERIES_DIR = Path(__file__).parent.parent / "queries"

DEFAULT_PRIORITY = 10
DEFAULT_BODY_HINTS = ("body",)

_LANGUAGE_ALIASES = {
    "bash": "bash",
    "c": "c",
    "c#": "csharp",
    "c++": "cpp",
    "cpp": "cpp",
    "cs": "csharp",
    "csharp": "csharp",
    "go": "go",
    "golang": "go",
    "java": "java",
    "javascript": "javascript",
    "js": "javascript",
    "jsx": "javascript",
    "kotlin": "kotlin",
    "kt": "kotlin",
    "lua": "lua",
    "php": "php",
    "py": "python",
    "python": "python",
    "rb": "ruby",
    "ruby": "ruby",
    "rs": "rust",
    "rust": "rust",
    "scala": "scala",
    "sh": "bash",
    "shell": "bash",
    "swift": "swift",
    "ts": "typescript",
    "tsx": "tsx",
    "typescript": "typescript",
}

# ".h" is shared by C and C++; it always resolves to C. C++ headers are
# recognised by .hpp/.hh/.hxx.
_EXTENSION_LANGUAGE_MAP = {
    ".bash": "bash",
    ".c": "c",
    ".cc": "cpp",
    ".cjs": "javascript",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".cts": "typescript",
    ".cxx": "cpp",
    ".go": "go",
    ".h": "c",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".hxx": "cpp",
    ".java": "java",
    ".js": "javascript",
    ".jsx": "javascript",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".lua": "lua",
    ".mjs": "javascript",
    ".mts": "typescript",
    ".php": "php",
    ".py": "python",
    ".pyi": "python",
    ".pyw": "python",
    ".rake": "ruby",
    ".rb": "ruby",
    ".rs": "rust",
    ".sc": "scala",
    ".scala": "scala",
    ".sh": "bash",
    ".swift": "swift",
    ".ts": "typescript",
    ".tsx": "tsx",
}

SUPPORTED_LANGUAGES = frozenset(_EXTENSION_LANGUAGE_MAP.values())

_DIRECTIVE = re.compile(r"^;+\s*(?P<kind>rule|option)\s*:\s*(?P<args>.*?)\s*$")
_BOOL_VALUES = {"true": True, "yes": True, "1": True, "false": False, "no": False, "0": False}


def normalize_language(language: str) -> str:
    normalized = language.strip().lower()
    resolved = _LANGUAGE_ALIASES.get(normalized, normalized)
    if resolved not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(SUPPORTED_LANGUAGES)}")
    return resolved


def detect_language_from_path(file_path: str | Path) -> str | None:
    return _EXTENSION_LANGUAGE_MAP.get(Path(file_path).suffix.lower())


def extensions_for(language: str) -> frozenset[str]:
    return frozenset(ext for ext, name in _EXTENSION_LANGUAGE_MAP.items() if name == language)


@dataclass(frozen=True)
class CaptureRule:
    query_text: str
    role: CaptureRole
    priority: int = DEFAULT_PRIORITY
    body: tuple[str, ...] = DEFAULT_BODY_HINTS

    def compile(self, language: Language) -> Query:
        return Query(language, self.query_text)


@dataclass(frozen=True, eq=False)
class LanguageProfile:
    name: str
    extensions: frozenset[str]
    grammar: Language
    rules: tuple[CaptureRule, ...]
    retain_unclaimed: bool = True

    @cached_property
    def queries(self) -> tuple[tuple[CaptureRule, Query], ...]:
        """Rules paired with their compiled queries, compiled on first use."""
        compiled = []
        for index, rule in enumerate(self.rules):
            try:
                compiled.append((rule, rule.compile(self.grammar)))
            except (QueryError, ValueError) as exc:
                raise MalformedQueryRule(self.name, index, str(exc)) from exc
        return tuple(compiled)


class LanguageRegistry:
    """Read-only lookup of language profiles by file extension or name."""

    def __init__(self, profiles: Iterable[LanguageProfile]) -> None:
        self._profiles: dict[str, LanguageProfile] = {}
        self._extension_map: dict[str, LanguageProfile] = {}
        for profile in profiles:
            self._profiles[profile.name] = profile
            for ext in profile.extensions:
                self._extension_map[ext.lower()] = profile

    def resolve(self, path: str | Path) -> LanguageProfile | None:
        return self._extension_map.get(Path(path).suffix.lower())

    def require(self, path: str | Path) -> LanguageProfile:
        profile = self.resolve(path)
        if profile is None:
            raise UnsupportedLanguageError(str(path))
        return profile

    def get(self, language: str) -> LanguageProfile | None:
        normalized = language.strip().lower()
        return self._profiles.get(_LANGUAGE_ALIASES.get(normalized, normalized))

    @property
    def languages(self) -> list[str]:
        return sorted(self._profiles)

    def __iter__(self) -> Iterator[LanguageProfile]:
        return iter(self._profiles[name] for name in self.languages)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, language: object) -> bool:
        return isinstance(language, str) and self.get(language) is not None


def _parse_directive_args(language: str, tokens: list[str]) -> dict[str, str]:
    args: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key or not value:
            raise ConfigurationError(f"{language}: malformed directive argument {token!r}")
        args[key.strip().lower()] = value.strip()
    return args


def _parse_rule(language: str, header: str, query_lines: list[str]) -> CaptureRule:
    tokens = header.split()
    if not tokens:
        raise ConfigurationError(f"{language}: rule directive without a role")
    try:
        role = CaptureRole(tokens[0])
    except ValueError:
        raise ConfigurationError(f"{language}: unknown capture role {tokens[0]!r}") from None
    if role is CaptureRole.BODY:
        raise ConfigurationError(f"{language}: 'body' matches are derived, not declared")

    args = _parse_directive_args(language, tokens[1:])
    unknown = set(args) - {"priority", "body"}
    if unknown:
        raise ConfigurationError(f"{language}: unknown rule arguments {sorted(unknown)}")
    try:
        priority = int(args.get("priority", DEFAULT_PRIORITY))
    except ValueError:
        raise ConfigurationError(f"{language}: priority must be an integer, got {args['priority']!r}") from None
    body = tuple(h.strip() for h in args["body"].split(",") if h.strip()) if "body" in args else DEFAULT_BODY_HINTS

    query_text = "\n".join(query_lines).strip()
    if "@definition" not in query_text:
        raise ConfigurationError(f"{language}: rule {header!r} does not capture @definition")
    return CaptureRule(query_text=query_text, role=role, priority=priority, body=body)


def parse_rule_file(language: str, text: str) -> tuple[tuple[CaptureRule, ...], dict[str, str]]:
    """Split a rule file into capture rules and language options."""
    rules: list[CaptureRule] = []
    options: dict[str, str] = {}
    current_header: str | None = None
    current_lines: list[str] = []

    for line in text.splitlines():
        directive = _DIRECTIVE.match(line.strip())
        if directive is None:
            if current_header is not None and not line.lstrip().startswith(";"):
                current_lines.append(line)
            continue
        if directive["kind"] == "option":
            options.update(_parse_directive_args(language, directive["args"].split()))
            continue
        if current_header is not None:
            rules.append(_parse_rule(language, current_header, current_lines))
        current_header = directive["args"]
        current_lines = []

    if current_header is not None:
        rules.append(_parse_rule(language, current_header, current_lines))
    return tuple(rules), options


def _retain_unclaimed(language: str, options: dict[str, str]) -> bool:
    raw = options.get("retain-unclaimed", "true").lower()
    if raw not in _BOOL_VALUES:
        raise ConfigurationError(f"{language}: retain-unclaimed must be a boolean, got {raw!r}")
    return _BOOL_VALUES[raw]


def load_profile(language: str, queries_dir: Path = QUERIES_DIR) -> LanguageProfile:
    query_path = queries_dir / f"{language}.scm"
    try:
        text = query_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Query file not found: {query_path}") from None

    rules, options = parse_rule_file(language, text)
    unknown = set(options) - {"retain-unclaimed"}
    if unknown:
        raise ConfigurationError(f"{language}: unknown options {sorted(unknown)}")

    try:
        grammar = get_language(cast(SupportedLanguage, language))
    except (LookupError, ImportError, ValueError) as exc:
        raise ConfigurationError(f"Grammar for {language} is not available: {exc}") from exc

    return LanguageProfile(
        name=language,
        extensions=extensions_for(language),
        grammar=grammar,
        rules=rules,
        retain_unclaimed=_retain_unclaimed(language, options),
    )


def load_registry(queries_dir: Path | None = None) -> LanguageRegistry:
    directory = queries_dir or QUERIES_DIR
    if not directory.is_dir():
        raise ConfigurationError(f"Query bundle directory not found: {directory}")
    profiles = [load_profile(language, directory) for language in sorted(SUPPORTED_LANGUAGES)]
    logger.debug("Loaded %d language profiles from %s", len(profiles), directory)
    return LanguageRegistry(profiles)


@cache
def get_registry() -> LanguageRegistry:
    """Process-wide registry, built on first use and shared read-only afterwards."""
    return load_registry()
