import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..domain.exceptions import ClipperException, TaskCancelled
from ..domain.media import SourceVideo
from ..domain.models import TaskOutcome, VariantSpec, VideoOutcome
from ..services.transcode_pipeline import TranscodePipeline
from .task_group import BoundedTaskGroup


class VariantScheduler:
    """
    Produces every configured variant of one source video.

    The source is probed once up front. Variants then run on a collect-all
    task group, so one failing variant never stops its siblings.

    `stop_event` is shared with the batch scheduler. Once it is set, variants
    that have not started are skipped and running ones stop before their
    speed stage.
    """

    def __init__(
        self,
        pipeline: TranscodePipeline,
        variants: List[VariantSpec],
        max_concurrent_variants: int,
        input_root: Optional[Path] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self.pipeline = pipeline
        self.variants = list(variants)
        self.max_concurrent_variants = max_concurrent_variants
        self.input_root = input_root
        self.stop_event = stop_event if stop_event is not None else threading.Event()

    def stop(self):
        self.stop_event.set()

    def process(self, path: Path) -> VideoOutcome:
        """
        Runs all variants for the video at `path`.

        Never raises for problems with the video itself: an unsupported format
        or a failed probe is reported in the returned `VideoOutcome`.
        """
        try:
            source = SourceVideo(path, self.input_root)
        except ClipperException as e:
            logger.error(f"Skipping {Path(path).name}: {e}")
            return VideoOutcome(source_path=Path(path), error=f"{type(e).__name__}: {e}")

        try:
            duration = source.load_duration()
        except ClipperException as e:
            logger.error(f"Could not probe {source.filename}; none of its variants can be cut: {e}")
            error = f"{type(e).__name__}: {e}"
            outcomes = [
                TaskOutcome(source_path=source.path, variant_name=variant.name, success=False, error=error)
                for variant in self.variants
            ]
            return VideoOutcome(source_path=source.path, outcomes=outcomes, error=error)

        logger.info(f"Processing {source.filename} ({duration:.2f}s, {len(self.variants)} variants)")
        group = BoundedTaskGroup(self.max_concurrent_variants, fail_fast=False, name=f"{source.stem[:16]}-variant")
        with group:
            for variant in self.variants:
                group.submit(self._run_variant, source, variant, key=variant.name)

        outcomes = []
        for variant, result in zip(self.variants, group.results):
            if result.success:
                outcomes.append(result.value)
                continue
            if result.skipped:
                logger.info(f"[{variant.name}] {source.filename} not started (stopped)")
            else:
                # Only reached when a unit raised instead of returning an outcome.
                logger.error(f"[{variant.name}] {source.filename} raised unexpectedly: {result.error!r}")
            outcomes.append(
                TaskOutcome(
                    source_path=source.path,
                    variant_name=variant.name,
                    success=False,
                    error=f"{type(result.error).__name__}: {result.error}",
                )
            )

        video_outcome = VideoOutcome(source_path=source.path, outcomes=outcomes)
        succeeded = len(video_outcome.succeeded_outcomes)
        if video_outcome.success:
            logger.info(f"Finished {source.filename}: all {succeeded} variants produced")
        else:
            logger.warning(f"Finished {source.filename}: {succeeded}/{len(outcomes)} variants produced")
        return video_outcome

    def _run_variant(self, source: SourceVideo, variant: VariantSpec) -> TaskOutcome:
        if self.stop_event.is_set():
            raise TaskCancelled(f"[{variant.name}] skipped after stop")
        return self.pipeline.run(source, variant, self.stop_event)
