"""
Main entry point for the Video Clipper application.

This script initializes logging, parses command-line arguments, verifies the
external tools, loads the settings and runs either a single video or a whole
input directory through the schedulers. It ends with an itemized failure list
and a YAML run report next to the clips.
"""

import sys
import threading
import time
from pathlib import Path

from loguru import logger

from video_clipper.cli import get_args
from video_clipper.config.common import LOGGER_FORMAT
from video_clipper.config.settings import ClipperSettings
from video_clipper.domain.exceptions import ClipperException, ConfigValidationFailed, ToolUnavailable
from video_clipper.domain.models import BatchStatistics, RunSummary
from video_clipper.pipeline.batch_scheduler import BatchScheduler
from video_clipper.pipeline.variant_scheduler import VariantScheduler
from video_clipper.services.file_discovery import FileDiscovery
from video_clipper.services.logging_service import ErrorLog, RunReport
from video_clipper.services.path_service import PathService
from video_clipper.services.transcode_pipeline import TranscodePipeline
from video_clipper.utils.tool_check import ExternalTools

# Configure the logger for initial setup.
# The level is overridden once the command-line arguments are parsed.
logger.remove()
logger.add(sys.stderr, level="INFO", format=LOGGER_FORMAT)


def load_settings(args) -> ClipperSettings:
    settings = ClipperSettings.load(args.config)
    return settings.apply_overrides(
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        max_concurrent_videos=args.videos,
        max_concurrent_variants=args.variants,
        batch_size=args.batch_size,
        quality_preset=args.quality_preset,
        encoder_timeout=args.timeout,
        verify_output=False if args.no_verify else None,
    )


def run_single(path: Path, variant_scheduler: VariantScheduler) -> RunSummary:
    logger.info(f"Single-file mode: {path}")
    started = time.monotonic()
    summary = RunSummary(batches=1)
    video_outcome = variant_scheduler.process(path)
    stats = BatchStatistics()
    stats.record(video_outcome)
    summary.statistics.merge(stats)
    if not video_outcome.success:
        summary.failed_videos.append(video_outcome)
    summary.failed_variants.extend(video_outcome.failed_outcomes)
    summary.produced.extend(o.output_path for o in video_outcome.succeeded_outcomes if o.output_path)
    summary.elapsed_seconds = time.monotonic() - started
    return summary


def log_summary(summary: RunSummary):
    counts = summary.statistics.snapshot()
    logger.info(
        f"Videos: {counts['attempted']} attempted, {counts['succeeded']} succeeded, {counts['failed']} failed. "
        f"Clips: {counts['variants_succeeded']} produced, {counts['variants_failed']} failed."
    )
    if summary.failed_videos:
        logger.warning(f"{len(summary.failed_videos)} video(s) did not produce every clip:")
        for video_outcome in summary.failed_videos:
            reason = video_outcome.error or f"{len(video_outcome.failed_outcomes)} variant(s) failed"
            logger.warning(f"  - {video_outcome.source_path}: {reason}")
    for outcome in summary.failed_variants:
        first_line = (outcome.error or "unknown error").splitlines()[0]
        logger.warning(f"  - [{outcome.variant_name}] {outcome.source_path.name}: {first_line}")
    if summary.stopped_early:
        logger.warning("The run was stopped before every video was processed.")


def main(argv=None) -> int:
    """
    Runs the Video Clipper and returns the process exit status.

    1. Parses arguments and re-configures the logger.
    2. Loads settings (file, then command-line overrides).
    3. Handles --write-default-config and --show-config.
    4. Verifies ffmpeg and ffprobe.
    5. Processes a single file or the whole input directory.
    6. Logs the failures and writes the run report.
    """
    args = get_args(argv)

    effective_log_level = "DEBUG" if args.debug else args.log_level
    logger.remove()
    logger.add(sys.stderr, level=effective_log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    if args.write_default_config:
        ClipperSettings().save(args.write_default_config)
        return 0

    try:
        settings = load_settings(args)
    except ConfigValidationFailed as e:
        logger.error(f"Invalid settings: {e}")
        return 1

    if args.target is not None:
        if not args.target.exists():
            logger.error(f"Target does not exist: {args.target}")
            return 1
        if args.target.is_dir():
            settings.input_dir = args.target

    for line in settings.describe():
        logger.info(line)
    if args.show_config:
        return 0

    try:
        ExternalTools.verify()
    except ToolUnavailable as e:
        logger.error(str(e))
        return 1

    pipeline = TranscodePipeline(
        PathService(settings.output_dir),
        audio_bitrate=settings.audio_bitrate,
        quality_preset=settings.quality_preset,
        encoder_timeout=settings.encoder_timeout,
        verify_output=settings.verify_output,
        error_log=ErrorLog(settings.output_dir),
    )

    # One stop event for both schedulers.
    stop_event = threading.Event()
    batch_scheduler = None
    try:
        if args.target is not None and args.target.is_file():
            variant_scheduler = VariantScheduler(
                pipeline,
                settings.variants,
                settings.max_concurrent_variants,
                input_root=args.target.parent,
                stop_event=stop_event,
            )
            summary = run_single(args.target, variant_scheduler)
        else:
            try:
                discovery = FileDiscovery(settings.input_dir, exclude_dirs=[settings.output_dir], shuffle=args.random)
            except FileNotFoundError as e:
                logger.error(str(e))
                return 1
            variant_scheduler = VariantScheduler(
                pipeline,
                settings.variants,
                settings.max_concurrent_variants,
                input_root=settings.input_dir,
                stop_event=stop_event,
            )
            batch_scheduler = BatchScheduler(
                variant_scheduler.process, settings.batch_size, settings.max_concurrent_videos, stop_event=stop_event
            )
            logger.info(f"Running batch clipping for: {settings.input_dir.resolve()}")
            summary = batch_scheduler.run(discovery.iter_files())
            if discovery.skipped:
                logger.debug(f"Ignored {discovery.skipped} non-video file(s).")
    except KeyboardInterrupt:
        stop_event.set()
        if batch_scheduler is not None:
            batch_scheduler.stop()
        logger.warning("Interrupted by user.")
        return 130
    except ClipperException as e:
        logger.exception(f"Run aborted: {e}")
        return 1

    log_summary(summary)
    RunReport(settings.output_dir).write(summary, extra={"input_dir": str(settings.input_dir), "quality_preset": settings.quality_preset.value})

    logger.success("Video Clipper process finished.")
    return 0 if not summary.failed_videos else 2


if __name__ == "__main__":
    sys.exit(main())
