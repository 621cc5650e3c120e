"""
Value objects shared by the calculators, the transcode pipeline and the schedulers.

Everything here except `BatchStatistics` is immutable once built. Variant specs
are shared read-only between concurrent tasks; windows, quality bundles and
outcomes are created and owned by the single task that needs them.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .exceptions import ConfigValidationFailed, UnsupportedStrategy


class TrimStrategy(Enum):
    """Which part of the source a clip is cut from."""

    START_SEGMENTS = "start_segments"
    END_SEGMENTS = "end_segments"
    LAST_SEGMENTS = "last_segments"
    MIDDLE_SEGMENTS = "middle_segments"

    @classmethod
    def parse(cls, value: "str | TrimStrategy") -> "TrimStrategy":
        """
        Converts a configuration string into a strategy.

        Raises:
            UnsupportedStrategy: If the identifier is not a known strategy.
        """
        if isinstance(value, TrimStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(s.value for s in cls)
            raise UnsupportedStrategy(
                f"Unsupported trim strategy '{value}' (expected one of: {known})"
            ) from None


class QualityPreset(Enum):
    """Encoder quality tiers, trading encode speed for quality."""

    FAST = "fast"
    BALANCED = "balanced"
    MAXIMUM = "maximum"

    @classmethod
    def parse(cls, value: "str | QualityPreset | None") -> "QualityPreset":
        """
        Converts a user-supplied preset name into a tier.

        Unknown names fall back to BALANCED with a warning; a typo in the
        settings file must not abort a batch run.
        """
        if isinstance(value, QualityPreset):
            return value
        name = (value or "").strip().lower()
        name = _QUALITY_PRESET_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            logger.warning(f"Unknown quality preset '{value}', using '{cls.BALANCED.value}'.")
            return cls.BALANCED


# Tier names used by older settings files.
_QUALITY_PRESET_ALIASES = {"high": "balanced", "ultra": "maximum"}


class RateControl(Enum):
    """How the encoder targets quality: constant rate factor or average bitrate."""

    CRF = "crf"
    BITRATE = "bitrate"


@dataclass(frozen=True)
class VariantSpec:
    """
    Declarative description of one output clip produced for every source video.

    Attributes:
        width, height: Output frame size in pixels.
        clip_duration: Seconds cut from the source, before the speed change.
        speed: Playback speed multiplier applied in the second stage.
        video_bitrate: Target video bitrate in kbps.
        strategy: Which part of the source the clip is taken from.
        output_suffix: Appended to the source stem in the output file name.
        output_folder: Sub-folder of the output directory for this variant.
    """

    width: int
    height: int
    clip_duration: float
    speed: float
    video_bitrate: int
    strategy: TrimStrategy
    output_suffix: str
    output_folder: str

    # Settings-file key for each attribute.
    FIELD_KEYS = {
        "width": "Width",
        "height": "Height",
        "clip_duration": "ClipDuration",
        "speed": "Speed",
        "video_bitrate": "VideoBitrate",
        "strategy": "ClipStrategy",
        "output_suffix": "OutputSuffix",
        "output_folder": "OutputFolder",
    }

    @property
    def name(self) -> str:
        return self.output_folder

    @property
    def is_square(self) -> bool:
        return self.width == self.height

    def validate(self):
        """
        Checks that every numeric field is positive.

        Raises:
            ConfigValidationFailed: With a message naming the offending variant.
        """
        if self.width <= 0 or self.height <= 0:
            raise ConfigValidationFailed(f"[{self.name}] invalid resolution: {self.width}x{self.height}")
        if self.speed <= 0:
            raise ConfigValidationFailed(f"[{self.name}] invalid speed: {self.speed}")
        if self.clip_duration <= 0:
            raise ConfigValidationFailed(f"[{self.name}] invalid clip duration: {self.clip_duration}")
        if self.video_bitrate <= 0:
            raise ConfigValidationFailed(f"[{self.name}] invalid video bitrate: {self.video_bitrate}")
        if not self.output_folder:
            raise ConfigValidationFailed("Variant is missing an output folder")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariantSpec":
        """
        Builds and validates a variant from one `videoConfigs` entry.

        Raises:
            ConfigValidationFailed: On missing keys, non-numeric values,
                                    unknown strategies or non-positive values.
        """
        if not isinstance(data, dict):
            raise ConfigValidationFailed(f"Variant entry must be a mapping, got {type(data).__name__}")
        missing = [key for key in cls.FIELD_KEYS.values() if key not in data and key != "OutputSuffix"]
        if missing:
            raise ConfigValidationFailed(f"Variant entry is missing keys: {', '.join(missing)}")
        try:
            strategy = TrimStrategy.parse(data["ClipStrategy"])
        except UnsupportedStrategy as e:
            raise ConfigValidationFailed(str(e)) from e
        try:
            spec = cls(
                width=int(data["Width"]),
                height=int(data["Height"]),
                clip_duration=float(data["ClipDuration"]),
                speed=float(data["Speed"]),
                video_bitrate=int(data["VideoBitrate"]),
                strategy=strategy,
                output_suffix=str(data.get("OutputSuffix") or ""),
                output_folder=str(data["OutputFolder"]),
            )
        except (TypeError, ValueError) as e:
            raise ConfigValidationFailed(f"Variant entry has a non-numeric value: {e}") from e
        spec.validate()
        return spec

    def to_dict(self) -> Dict[str, Any]:
        clip_duration = int(self.clip_duration) if float(self.clip_duration).is_integer() else self.clip_duration
        return {
            "Width": self.width,
            "Height": self.height,
            "ClipDuration": clip_duration,
            "Speed": self.speed,
            "VideoBitrate": self.video_bitrate,
            "ClipStrategy": self.strategy.value,
            "OutputSuffix": self.output_suffix,
            "OutputFolder": self.output_folder,
        }


@dataclass(frozen=True)
class ClipWindow:
    """A [start, end) range of the source in seconds, with 0 <= start < end <= total."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class QualityParameterBundle:
    """Resolved x264 tuning for one quality tier, rate-control mode and bitrate."""

    preset_name: str
    encoder_preset: str
    rate_control: RateControl
    crf: int
    target_bitrate_kbps: int
    max_rate_kbps: int
    buffer_size_kbps: int
    profile: str
    level: str
    me_method: str
    subme: int
    ref_frames: int
    b_frames: int
    trellis: int
    keyint: int
    keyint_min: int
    sc_threshold: int
    psy_rd: str
    psy_trellis: str
    deblock: str


@dataclass(frozen=True)
class TaskOutcome:
    """Result of producing one clip: one (source video, variant) pair."""

    source_path: Path
    variant_name: str
    success: bool
    output_path: Optional[Path] = None
    error: Optional[str] = None
    window: Optional[ClipWindow] = None
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": str(self.source_path),
            "variant": self.variant_name,
            "success": self.success,
            "output": str(self.output_path) if self.output_path else None,
            "error": self.error,
            "window": [round(self.window.start, 3), round(self.window.end, 3)] if self.window else None,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }


@dataclass(frozen=True)
class VideoOutcome:
    """All variant outcomes for one source video."""

    source_path: Path
    outcomes: List[TaskOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.outcomes) and all(o.success for o in self.outcomes)

    @property
    def failed_outcomes(self) -> List[TaskOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def succeeded_outcomes(self) -> List[TaskOutcome]:
        return [o for o in self.outcomes if o.success]


class BatchStatistics:
    """
    Counters for one batch (or, when merged, a whole run).

    Videos in a batch finish on different worker threads; every update goes
    through `record()` / `merge()` under the same lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.attempted = 0
        self.succeeded = 0
        self.failed = 0
        self.variants_succeeded = 0
        self.variants_failed = 0

    def record(self, video_outcome: VideoOutcome):
        with self._lock:
            self.attempted += 1
            if video_outcome.success:
                self.succeeded += 1
            else:
                self.failed += 1
            self.variants_succeeded += len(video_outcome.succeeded_outcomes)
            self.variants_failed += len(video_outcome.failed_outcomes)

    def merge(self, other: "BatchStatistics"):
        snapshot = other.snapshot()
        with self._lock:
            self.attempted += snapshot["attempted"]
            self.succeeded += snapshot["succeeded"]
            self.failed += snapshot["failed"]
            self.variants_succeeded += snapshot["variants_succeeded"]
            self.variants_failed += snapshot["variants_failed"]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "attempted": self.attempted,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "variants_succeeded": self.variants_succeeded,
                "variants_failed": self.variants_failed,
            }


@dataclass
class RunSummary:
    """Everything a finished run reports: totals plus itemized failures."""

    statistics: BatchStatistics = field(default_factory=BatchStatistics)
    batches: int = 0
    failed_videos: List[VideoOutcome] = field(default_factory=list)
    failed_variants: List[TaskOutcome] = field(default_factory=list)
    produced: List[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    stopped_early: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statistics": self.statistics.snapshot(),
            "batches": self.batches,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "stopped_early": self.stopped_early,
            "failed_videos": [
                {"source": str(v.source_path), "error": v.error} for v in self.failed_videos
            ],
            "failed_variants": [o.to_dict() for o in self.failed_variants],
            "produced": [str(p) for p in self.produced],
        }
