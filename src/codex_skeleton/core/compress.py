import logging

from codex_skeleton.core.captures import CaptureStream
from codex_skeleton.core.config import CompressionConfig
from codex_skeleton.core.errors import MalformedQueryRule, ParseFailure, UnsupportedLanguageError
from codex_skeleton.core.languages import LanguageProfile, LanguageRegistry, get_registry
from codex_skeleton.core.parsing import parse_source
from codex_skeleton.core.ranges import resolve_ranges
from codex_skeleton.core.render import render
from codex_skeleton.models import CompressedOutput, CompressionOutcome, FallbackReason, ResolvedRange, SourceFile

logger = logging.getLogger(__name__)


def select_profile(source: SourceFile, registry: LanguageRegistry) -> LanguageProfile:
    if source.language:
        profile = registry.get(source.language)
        if profile is None:
            raise UnsupportedLanguageError(f"{source.path} ({source.language})")
        return profile
    return registry.require(source.path)


def plan_ranges(source_bytes: bytes, profile: LanguageProfile, config: CompressionConfig) -> list[ResolvedRange]:
    """Parse, query and resolve one file. Raises on parse or rule failures."""
    tree = parse_source(source_bytes, profile)
    matches = CaptureStream(tree.root_node, source_bytes, profile)
    retain = profile.retain_unclaimed if config.retain_unclaimed is None else config.retain_unclaimed
    return resolve_ranges(source_bytes, matches, retain_unclaimed=retain)


def resolve_file_ranges(
    source: SourceFile,
    registry: LanguageRegistry | None = None,
    config: CompressionConfig | None = None,
) -> list[ResolvedRange]:
    """The resolved ranges for ``source``, raising instead of falling back."""
    profile = select_profile(source, get_registry() if registry is None else registry)
    return plan_ranges(source.content.encode("utf-8"), profile, config or CompressionConfig())


def compress_outcome(
    source: SourceFile,
    registry: LanguageRegistry | None = None,
    config: CompressionConfig | None = None,
) -> CompressionOutcome:
    """Compress one file, recording why it was left unchanged when it was.

    Never raises for per-file problems: unsupported languages, empty rule sets,
    parse failures, broken rules and unexpected errors all return the original
    content.
    """
    config = config or CompressionConfig()
    if not config.enabled:
        return CompressionOutcome.unchanged(source, FallbackReason.DISABLED)

    try:
        profile = select_profile(source, get_registry() if registry is None else registry)
    except UnsupportedLanguageError:
        logger.debug("Skipping %s: unsupported language", source.path)
        return CompressionOutcome.unchanged(source, FallbackReason.UNSUPPORTED_LANGUAGE)

    if not profile.rules:
        logger.debug("Skipping %s: no capture rules for %s", source.path, profile.name)
        return CompressionOutcome.unchanged(source, FallbackReason.EMPTY_RULE_SET, profile.name)

    source_bytes = source.content.encode("utf-8")
    try:
        ranges = plan_ranges(source_bytes, profile, config)
        content = render(source_bytes, ranges, config.placeholder)
    except ParseFailure as exc:
        logger.debug("Leaving %s unchanged: %s", source.path, exc)
        return CompressionOutcome.unchanged(source, FallbackReason.PARSE_FAILURE, profile.name)
    except MalformedQueryRule as exc:
        logger.warning("Leaving %s unchanged: %s", source.path, exc)
        return CompressionOutcome.unchanged(source, FallbackReason.MALFORMED_QUERY, profile.name)
    except Exception:
        logger.exception("Unexpected error compressing %s", source.path)
        return CompressionOutcome.unchanged(source, FallbackReason.INTERNAL_ERROR, profile.name)

    return CompressionOutcome.compressed(source, content, profile.name)


def compress(
    source: SourceFile,
    registry: LanguageRegistry | None = None,
    config: CompressionConfig | None = None,
) -> CompressedOutput:
    return compress_outcome(source, registry, config).to_output()


def compress_text(
    content: str,
    path: str,
    registry: LanguageRegistry | None = None,
    config: CompressionConfig | None = None,
) -> str:
    return compress_outcome(SourceFile(path=path, content=content), registry, config).content
