"""
Drives a whole catalog of source videos through the variant scheduler.

Paths are pulled from the (possibly lazy) discovery sequence one batch at a
time. Videos within a batch run concurrently up to the video ceiling; the
next batch starts only after the current one has fully joined. With a
variant ceiling per video, at most `videos x variants` encoders run at once
however large the catalog is.
"""

import itertools
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from loguru import logger

from ..domain.exceptions import TaskCancelled
from ..domain.models import BatchStatistics, RunSummary, TaskOutcome, VideoOutcome
from ..utils.format_utils import format_elapsed
from .task_group import BoundedTaskGroup


class BatchScheduler:
    """
    Processes videos in sequential batches with a bounded number in flight.

    Attributes:
        video_processor: Called once per source path; returns its `VideoOutcome`.
        batch_size: Paths taken from the source sequence per batch.
        max_concurrent_videos: Videos processed at the same time within a batch.
        stop_event: Set by `stop()`. Pass the same event to the variant
                    scheduler so running videos see the stop as well.
    """

    def __init__(
        self,
        video_processor: Callable[[Path], VideoOutcome],
        batch_size: int,
        max_concurrent_videos: int,
        stop_event: Optional[threading.Event] = None,
    ):
        if batch_size < 1:
            raise ValueError(f"Batch size must be at least 1, got {batch_size}")
        self.video_processor = video_processor
        self.batch_size = batch_size
        self.max_concurrent_videos = max_concurrent_videos
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self._current_group: Optional[BoundedTaskGroup] = None

    def stop(self):
        """
        Requests a stop: videos not yet started are skipped and no further
        batch is taken. Encoders already running finish, but a variant that
        shares `stop_event` does not start its speed stage.
        """
        if not self.stop_event.is_set():
            logger.warning("Stop requested; finishing videos already in progress.")
        self.stop_event.set()
        group = self._current_group
        if group is not None:
            group.cancel()

    def run(self, paths: Iterable[Path]) -> RunSummary:
        """
        Processes every path in `paths`.

        Returns:
            A `RunSummary` with totals across all batches, the failed videos
            and variants, and every clip produced.
        """
        summary = RunSummary()
        started = time.monotonic()
        path_iter = iter(paths)

        while not self.stop_event.is_set():
            batch = list(itertools.islice(path_iter, self.batch_size))
            if not batch:
                break
            summary.batches += 1
            self._run_batch(summary.batches, batch, summary)

        summary.stopped_early = self.stop_event.is_set()
        summary.elapsed_seconds = time.monotonic() - started
        totals = summary.statistics.snapshot()
        logger.info(
            f"All batches done: {summary.batches} batches, {totals['succeeded']}/{totals['attempted']} videos "
            f"and {totals['variants_succeeded']} clips succeeded in {format_elapsed(summary.elapsed_seconds)}"
        )
        return summary

    def _run_batch(self, batch_number: int, batch: List[Path], summary: RunSummary):
        logger.info(f"Batch {batch_number}: {len(batch)} videos, up to {self.max_concurrent_videos} at once")
        batch_stats = BatchStatistics()

        group = BoundedTaskGroup(self.max_concurrent_videos, fail_fast=False, name=f"batch{batch_number}-video")
        self._current_group = group
        try:
            with group:
                for path in batch:
                    group.submit(self._process_video, path, batch_stats, key=path)
        except BaseException:
            # Interrupted while waiting: the group is still live here.
            self.stop()
            raise
        finally:
            self._current_group = None

        for path, result in zip(batch, group.results):
            if result.skipped:
                logger.info(f"Not started (stopped): {Path(path).name}")
                continue
            if result.success:
                video_outcome = result.value
            else:
                # Only reached when the processor itself raised.
                logger.error(f"Processing {Path(path).name} raised unexpectedly: {result.error!r}")
                video_outcome = VideoOutcome(
                    source_path=Path(path), error=f"{type(result.error).__name__}: {result.error}"
                )
                batch_stats.record(video_outcome)
            self._collect(video_outcome, summary)

        summary.statistics.merge(batch_stats)
        counts = batch_stats.snapshot()
        logger.info(
            f"Batch {batch_number} done: {counts['succeeded']} succeeded, {counts['failed']} failed "
            f"({counts['variants_succeeded']} clips produced, {counts['variants_failed']} failed)"
        )

    def _process_video(self, path: Path, batch_stats: BatchStatistics) -> VideoOutcome:
        if self.stop_event.is_set():
            raise TaskCancelled(f"{Path(path).name} skipped after stop")
        video_outcome = self.video_processor(path)
        batch_stats.record(video_outcome)
        return video_outcome

    @staticmethod
    def _collect(video_outcome: VideoOutcome, summary: RunSummary):
        failed: List[TaskOutcome] = video_outcome.failed_outcomes
        if not video_outcome.success:
            summary.failed_videos.append(video_outcome)
        summary.failed_variants.extend(failed)
        summary.produced.extend(o.output_path for o in video_outcome.succeeded_outcomes if o.output_path)
