"""
Concurrent reclassification of a classifier output stream.

A reader task feeds numbered lines into a bounded input queue, a pool of
worker tasks reclassifies them, and the calling thread drains a bounded
output queue as the single writer. Workers never touch the output stream,
so output lines can not interleave and no write lock is needed.

Output order follows completion order unless ``ordered=True``, in which case
the writer holds early results back until every earlier line is written. In
ordered mode the reader also waits for a free slot in a window of
``2 x queue_size`` lines in flight, so one slow record can not make the
writer buffer the rest of the input.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import IO, Any

from taxorefine.core.exceptions import MalformedRecordError
from taxorefine.core.parsers import parse_classification_line
from taxorefine.core.reclassify import ProcessedRecord, Reclassifier
from taxorefine.models.config import FilterConfig

logger = logging.getLogger(__name__)

# Poll interval for queue operations, so blocked tasks notice an abort
_POLL_SECONDS = 0.1

_STOP = object()
_DONE = object()


@dataclass
class StreamStats:
    """Tallies of one stream run."""

    records_read: int = 0
    records_written: int = 0
    classified: int = 0
    unclassified: int = 0
    skipped: int = 0
    missing_ancestor: int = 0

    def record(self, result: ProcessedRecord | None) -> None:
        if result is None:
            self.skipped += 1
            return
        self.records_written += 1
        if result.call.is_classified:
            self.classified += 1
        else:
            self.unclassified += 1
        if result.missing_ancestor:
            self.missing_ancestor += 1


def _put(q: queue.Queue, item: Any, abort: threading.Event) -> bool:
    """Put with abort checks; False if the run was aborted first."""
    while not abort.is_set():
        try:
            q.put(item, timeout=_POLL_SECONDS)
            return True
        except queue.Full:
            continue
    return False


def _acquire(slots: threading.Semaphore, abort: threading.Event) -> bool:
    """Take one in-flight slot; False if the run was aborted first."""
    while not abort.is_set():
        if slots.acquire(timeout=_POLL_SECONDS):
            return True
    return False


def _get(q: queue.Queue, abort: threading.Event) -> Any:
    """Get with abort checks; _STOP once aborted and the queue is empty."""
    while True:
        try:
            return q.get(timeout=_POLL_SECONDS)
        except queue.Empty:
            if abort.is_set():
                return _STOP


class ClassificationStreamProcessor:
    """
    Fan reclassification of a line stream out over a thread pool.

    The taxonomy inside the reclassifier is shared read-only by all workers.
    Queues are bounded, so memory use stays flat on unbounded input.

    Example:
        >>> processor = ClassificationStreamProcessor(reclassifier, workers=8)
        >>> with open("sample.kraken") as fh:
        ...     stats = processor.run(fh, sys.stdout.write)
    """

    def __init__(
        self,
        reclassifier: Reclassifier,
        workers: int = 4,
        ordered: bool = False,
        queue_size: int | None = None,
    ) -> None:
        if workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)
        self.reclassifier = reclassifier
        self.workers = workers
        self.ordered = ordered
        self.queue_size = queue_size or 4 * workers

    @property
    def window_size(self) -> int:
        """Lines allowed between the oldest unwritten line and the reader (ordered mode)."""
        return 2 * self.queue_size

    @classmethod
    def from_config(cls, reclassifier: Reclassifier, config: FilterConfig) -> ClassificationStreamProcessor:
        return cls(
            reclassifier,
            workers=config.workers,
            ordered=config.ordered,
            queue_size=config.effective_queue_size,
        )

    def run(self, lines: Iterable[str], write: Callable[[str], Any]) -> StreamStats:
        """
        Reclassify every line and pass each output line (newline included) to write.

        Blank input lines are ignored; malformed lines are logged and skipped.
        Returns once the input is exhausted and every result is written.

        Raises:
            Any exception raised by the input iterable, a worker or ``write``.
        """
        inbox: queue.Queue = queue.Queue(maxsize=self.queue_size)
        outbox: queue.Queue = queue.Queue(maxsize=self.queue_size)
        abort = threading.Event()
        stats = StreamStats()
        window = threading.Semaphore(self.window_size) if self.ordered else None

        with ThreadPoolExecutor(
            max_workers=self.workers + 1,
            thread_name_prefix="taxorefine",
        ) as executor:
            reader = executor.submit(self._read, lines, inbox, abort, window)
            workers = [
                executor.submit(self._work, inbox, outbox, abort)
                for _ in range(self.workers)
            ]
            try:
                self._drain(outbox, write, stats, abort, window)
            except BaseException:
                abort.set()
                raise
            stats.records_read = reader.result()
            for worker in workers:
                worker.result()

        logger.info(
            "Reclassified %d records: %d classified, %d unclassified, %d skipped",
            stats.records_read,
            stats.classified,
            stats.unclassified,
            stats.skipped,
        )
        if stats.missing_ancestor:
            logger.warning(
                "%d records referenced taxa missing from the taxonomy", stats.missing_ancestor
            )
        return stats

    def process_stream(self, input_handle: IO[str], output_handle: IO[str]) -> StreamStats:
        """Convenience wrapper: read from one text handle, write to another."""
        return self.run(input_handle, output_handle.write)

    def _read(
        self,
        lines: Iterable[str],
        inbox: queue.Queue,
        abort: threading.Event,
        window: threading.Semaphore | None = None,
    ) -> int:
        seq = 0
        try:
            for line_num, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                if window is not None and not _acquire(window, abort):
                    break
                if not _put(inbox, (seq, line_num, line), abort):
                    break
                seq += 1
        except BaseException:
            abort.set()
            raise
        finally:
            for _ in range(self.workers):
                _put(inbox, _STOP, abort)
        return seq

    def _work(self, inbox: queue.Queue, outbox: queue.Queue, abort: threading.Event) -> None:
        try:
            while True:
                item = _get(inbox, abort)
                if item is _STOP:
                    break
                seq, line_num, line = item
                result: ProcessedRecord | None
                try:
                    record = parse_classification_line(line, line_num)
                    result = self.reclassifier.process_record(record)
                except MalformedRecordError as e:
                    logger.warning("Skipping record: %s", e.message)
                    result = None
                if not _put(outbox, (seq, result), abort):
                    break
        except BaseException:
            abort.set()
            raise
        finally:
            _put(outbox, _DONE, abort)

    def _drain(
        self,
        outbox: queue.Queue,
        write: Callable[[str], Any],
        stats: StreamStats,
        abort: threading.Event,
        window: threading.Semaphore | None = None,
    ) -> None:
        pending: dict[int, ProcessedRecord | None] = {}
        next_seq = 0
        done = 0

        def emit(result: ProcessedRecord | None) -> None:
            if result is not None:
                write(result.text + "\n")
            stats.record(result)
            if window is not None:
                window.release()

        while done < self.workers:
            item = _get(outbox, abort)
            if item is _STOP:
                break
            if item is _DONE:
                done += 1
                continue
            seq, result = item
            if not self.ordered:
                emit(result)
                continue
            pending[seq] = result
            while next_seq in pending:
                emit(pending.pop(next_seq))
                next_seq += 1
