"""
This module defines the TranscodePipeline, which turns one source video into
one clip for one variant with two sequential ffmpeg invocations:

1. Trim + scale: cut the clip window out of the source and fit it to the
   variant's frame (pad for non-square targets, crop for square ones), using
   fast bitrate-targeted settings. Written to a temp file next to the output.
2. Speed + final encode: change playback rate of video and audio, encoding
   with the configured quality tier (CRF-targeted) into the final output.

The temp file is removed on every exit path. No state is shared between
calls, so one pipeline instance serves all worker threads.
"""

import threading
import time
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import ENCODER_OUTPUT_TAIL_LINES
from ..config.video import (
    ATEMPO_MAX,
    ATEMPO_MIN,
    AUDIO_CODEC,
    AUDIO_SAMPLE_RATE,
    DEFAULT_ENCODER_TIMEOUT,
    DURATION_TOLERANCE_SECONDS,
    INTERMEDIATE_QUALITY_PRESET,
    MINIMUM_OUTPUT_SIZE,
    VIDEO_CODEC,
)
from ..domain.exceptions import ClipperException, EncodeFailed, ProbeFailed, TaskCancelled
from ..domain.media import SourceVideo
from ..domain.models import ClipWindow, QualityPreset, RateControl, TaskOutcome, VariantSpec
from ..utils.ffmpeg_utils import probe_duration, run_cmd
from ..utils.format_utils import format_command, format_size, tail_lines
from ..utils.tool_check import ExternalTools
from . import quality_presets, trim_calculator
from .logging_service import ErrorLog
from .path_service import PathService


def scale_filter(variant: VariantSpec) -> str:
    """
    Fits the source into the variant frame.

    Square targets are filled edge to edge (scale up, crop the overflow);
    other targets keep the whole frame (scale down, pad with black).
    """
    w, h = variant.width, variant.height
    if variant.is_square:
        return f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h},setsar=1"
    return f"scale={w}:{h}:force_original_aspect_ratio=decrease,pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:black,setsar=1"


def video_speed_filter(speed: float) -> str:
    return f"setpts={1.0 / speed:.6f}*PTS"


def audio_speed_filter(speed: float) -> str:
    """
    Builds an atempo chain for `speed`.

    Each atempo stage is kept within [0.5, 2.0]; larger changes are split into
    several chained stages whose product is the requested speed.
    """
    stages: List[float] = []
    remaining = speed
    while remaining > ATEMPO_MAX:
        stages.append(ATEMPO_MAX)
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        stages.append(ATEMPO_MIN)
        remaining /= ATEMPO_MIN
    stages.append(remaining)
    return ",".join(f"atempo={stage:.6g}" for stage in stages)


class TranscodePipeline:
    """
    Produces one clip per `run()` call.

    Attributes:
        path_service: Maps (source, variant) to output paths.
        audio_bitrate: ffmpeg audio bitrate for both stages, e.g. "112k".
        quality_preset: Tier for the final encode stage.
        encoder_timeout: Seconds before an ffmpeg invocation is killed.
        verify_output: Re-probe finished clips and warn on duration drift.
        error_log: Where failed commands are recorded, if anywhere.
    """

    def __init__(
        self,
        path_service: PathService,
        audio_bitrate: str = "112k",
        quality_preset: "QualityPreset | str" = QualityPreset.BALANCED,
        encoder_timeout: float = DEFAULT_ENCODER_TIMEOUT,
        verify_output: bool = True,
        error_log: Optional[ErrorLog] = None,
    ):
        self.path_service = path_service
        self.audio_bitrate = audio_bitrate
        self.quality_preset = QualityPreset.parse(quality_preset)
        self.encoder_timeout = encoder_timeout
        self.verify_output = verify_output
        self.error_log = error_log
        self.ffmpeg_cmd = ExternalTools.get_path("ffmpeg")

    # --- Command construction ---

    def build_trim_command(self, source: SourceVideo, variant: VariantSpec, window: ClipWindow, temp_path: Path) -> List[str]:
        bundle = quality_presets.resolve(INTERMEDIATE_QUALITY_PRESET, variant.video_bitrate, RateControl.BITRATE)
        return [
            self.ffmpeg_cmd, "-hide_banner", "-nostdin", "-y",
            "-ss", f"{window.start:.3f}",
            "-i", str(source.path),
            "-t", f"{window.duration:.3f}",
            "-vf", scale_filter(variant),
            "-c:v", VIDEO_CODEC,
            *quality_presets.to_ffmpeg_args(bundle),
            "-c:a", AUDIO_CODEC,
            "-b:a", self.audio_bitrate,
            "-ar", str(AUDIO_SAMPLE_RATE),
            str(temp_path),
        ]

    def build_speed_command(self, variant: VariantSpec, temp_path: Path, output_path: Path) -> List[str]:
        bundle = quality_presets.resolve(self.quality_preset, variant.video_bitrate, RateControl.CRF)
        return [
            self.ffmpeg_cmd, "-hide_banner", "-nostdin", "-y",
            "-i", str(temp_path),
            "-filter:v", video_speed_filter(variant.speed),
            "-filter:a", audio_speed_filter(variant.speed),
            "-c:v", VIDEO_CODEC,
            *quality_presets.to_ffmpeg_args(bundle),
            "-c:a", AUDIO_CODEC,
            "-b:a", self.audio_bitrate,
            "-ar", str(AUDIO_SAMPLE_RATE),
            "-movflags", "+faststart",
            str(output_path),
        ]

    # --- Execution ---

    def run(self, source: SourceVideo, variant: VariantSpec, cancel_event: Optional[threading.Event] = None) -> TaskOutcome:
        """
        Produces the clip for one (source, variant) pair.

        Never raises for per-clip problems: probe, window, encode and
        filesystem errors are all reported in the returned outcome.

        Args:
            source: The source video; its duration is probed if not yet known.
            variant: The variant to produce.
            cancel_event: If set between the two stages, stage two is skipped.
        """
        started = time.monotonic()
        window: Optional[ClipWindow] = None
        output_path: Optional[Path] = None

        try:
            total_duration = source.load_duration()
            window = trim_calculator.compute(total_duration, variant.strategy, variant.clip_duration)
            output_path = self.path_service.output_path(source, variant)
            self.path_service.ensure_dir(output_path.parent)

            logger.info(
                f"[{variant.name}] {source.filename}: cutting {window.start:.2f}s-{window.end:.2f}s "
                f"({window.duration:.2f}s at {variant.speed:g}x -> {window.duration / variant.speed:.2f}s, "
                f"{variant.width}x{variant.height})"
            )
            self._transcode(source, variant, window, output_path, cancel_event)
        except ClipperException as e:
            logger.error(f"[{variant.name}] {source.filename} failed: {e}")
            return TaskOutcome(
                source_path=source.path,
                variant_name=variant.name,
                success=False,
                output_path=output_path,
                error=f"{type(e).__name__}: {e}",
                window=window,
                elapsed_seconds=time.monotonic() - started,
            )
        except OSError as e:
            logger.error(f"[{variant.name}] {source.filename} failed with a filesystem error: {e}")
            return TaskOutcome(
                source_path=source.path,
                variant_name=variant.name,
                success=False,
                output_path=output_path,
                error=f"{type(e).__name__}: {e}",
                window=window,
                elapsed_seconds=time.monotonic() - started,
            )

        if self.verify_output:
            self.verify_duration(output_path, window.duration / variant.speed, variant)

        elapsed = time.monotonic() - started
        logger.info(
            f"[{variant.name}] {source.filename} -> {output_path.name} "
            f"({format_size(output_path.stat().st_size)}, {elapsed:.1f}s)"
        )
        return TaskOutcome(
            source_path=source.path,
            variant_name=variant.name,
            success=True,
            output_path=output_path,
            window=window,
            elapsed_seconds=elapsed,
        )

    def _transcode(
        self,
        source: SourceVideo,
        variant: VariantSpec,
        window: ClipWindow,
        output_path: Path,
        cancel_event: Optional[threading.Event],
    ):
        temp_path = self.path_service.temp_path(output_path)
        try:
            self._run_stage("trim+scale", self.build_trim_command(source, variant, window, temp_path), temp_path, source, variant)
            if cancel_event is not None and cancel_event.is_set():
                raise TaskCancelled(f"[{variant.name}] cancelled before the speed stage")
            self._run_stage("speed+encode", self.build_speed_command(variant, temp_path, output_path), output_path, source, variant)
        finally:
            self._remove_temp(temp_path)

    def _run_stage(self, stage: str, cmd: List[str], expected_output: Path, source: SourceVideo, variant: VariantSpec):
        """
        Runs one ffmpeg invocation and checks it produced a usable file.

        Raises:
            EncodeFailed: On a start failure, timeout, non-zero exit, or a
                          missing/trivially small output file.
        """
        result = run_cmd(cmd, timeout=self.encoder_timeout, show_cmd=True)

        if result is None:
            detail = f"ffmpeg could not be started or was killed after {self.encoder_timeout:g}s"
        elif result.returncode != 0:
            detail = f"ffmpeg exited with code {result.returncode}"
        elif not expected_output.is_file() or expected_output.stat().st_size < MINIMUM_OUTPUT_SIZE:
            detail = "ffmpeg exited cleanly but wrote no usable output"
        else:
            return

        output_tail = tail_lines(result.stdout, ENCODER_OUTPUT_TAIL_LINES) if result is not None else ""
        if self.error_log is not None:
            self.error_log.write(
                f"Stage: {stage}",
                f"Variant: {variant.name}",
                f"Source: {source.path}",
                f"Error: {detail}",
                f"Command: {format_command(cmd)}",
                f"Output:\n{output_tail}",
            )
        message = f"{stage} stage: {detail}"
        if output_tail:
            message += f"\n{output_tail}"
        raise EncodeFailed(message)

    @staticmethod
    def _remove_temp(temp_path: Path):
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temp file {temp_path}: {e}")

    @staticmethod
    def verify_duration(output_path: Path, expected: float, variant: VariantSpec) -> Optional[float]:
        """
        Re-probes a finished clip and warns when it drifts from `expected`.

        Drift is never a failure; the clip is still delivered.

        Returns:
            The probed duration, or None if it could not be probed.
        """
        try:
            actual = probe_duration(output_path)
        except ProbeFailed as e:
            logger.warning(f"[{variant.name}] could not verify duration of {output_path.name}: {e}")
            return None

        if abs(actual - expected) > DURATION_TOLERANCE_SECONDS:
            logger.warning(
                f"[{variant.name}] {output_path.name} is {actual:.2f}s, expected {expected:.2f}s "
                f"(±{DURATION_TOLERANCE_SECONDS:g}s)"
            )
        else:
            logger.debug(f"[{variant.name}] {output_path.name} duration verified: {actual:.2f}s")
        return actual
