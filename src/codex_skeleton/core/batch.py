import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from codex_skeleton.core.compress import compress_outcome
from codex_skeleton.core.config import CompressionConfig
from codex_skeleton.core.languages import LanguageRegistry, get_registry
from codex_skeleton.models import CompressedOutput, CompressionOutcome, FallbackReason, SourceFile

logger = logging.getLogger(__name__)


def compress_files_outcomes(
    files: Sequence[SourceFile],
    config: CompressionConfig | None = None,
    registry: LanguageRegistry | None = None,
    cancel: threading.Event | None = None,
) -> list[CompressionOutcome]:
    """Compress ``files`` on a worker pool and return outcomes in input order.

    Files whose task has not started when ``cancel`` is set come back unchanged
    with reason ``cancelled``; files already being compressed run to completion.
    """
    config = config or CompressionConfig()
    if not files:
        return []
    if config.enabled and registry is None:
        registry = get_registry()

    def _task(source: SourceFile) -> CompressionOutcome:
        if cancel is not None and cancel.is_set():
            return CompressionOutcome.unchanged(source, FallbackReason.CANCELLED)
        return compress_outcome(source, registry, config)

    results: dict[int, CompressionOutcome] = {}
    workers = min(config.worker_count, len(files))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="codex-skeleton") as pool:
        futures = {pool.submit(_task, source): index for index, source in enumerate(files)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    compressed = sum(1 for outcome in results.values() if outcome.status == "compressed")
    logger.info("Compressed %d of %d file(s) with %d worker(s)", compressed, len(files), workers)
    return [results[index] for index in range(len(files))]


def compress_files(
    files: Sequence[SourceFile],
    config: CompressionConfig | None = None,
    registry: LanguageRegistry | None = None,
    cancel: threading.Event | None = None,
) -> list[CompressedOutput]:
    return [outcome.to_output() for outcome in compress_files_outcomes(files, config, registry, cancel)]
