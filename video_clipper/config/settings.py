"""
Run settings for the Video Clipper.

Settings come from a JSON or YAML file (both are read with `yaml.safe_load`,
since JSON is valid YAML). A missing file gives the built-in defaults. The file
uses the key names of the original settings format, e.g. `maxConcurrentVideos`
and a `videoConfigs` list of variant entries.

Everything is validated once at load time, so no malformed variant, unknown
trim strategy or output-path collision reaches the worker threads.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from ..domain.exceptions import ConfigValidationFailed
from ..domain.models import QualityPreset, TrimStrategy, VariantSpec
from .video import DEFAULT_ENCODER_TIMEOUT


def default_variants() -> List[VariantSpec]:
    """Square and 4:3-ish clips from the start and the end of every video, 20s at 2x."""
    variants = []
    for strategy, tag in ((TrimStrategy.START_SEGMENTS, "start"), (TrimStrategy.END_SEGMENTS, "end")):
        for width, height, shape in ((1008, 1008, "square"), (1008, 762, "rect")):
            variants.append(
                VariantSpec(
                    width=width,
                    height=height,
                    clip_duration=20,
                    speed=2.0,
                    video_bitrate=4000,
                    strategy=strategy,
                    output_suffix=f"_{shape}_{tag}",
                    output_folder=f"{width}x{height}_{tag}",
                )
            )
    return variants


@dataclass
class ClipperSettings:
    """
    All values the orchestration consumes for one run.

    Attributes:
        input_dir: Root directory scanned for source videos.
        output_dir: Root directory receiving one sub-folder per variant.
        audio_bitrate: ffmpeg audio bitrate string, e.g. "112k".
        max_concurrent_videos: Videos processed at once within a batch.
        max_concurrent_variants: Variants of one video encoded at once.
        batch_size: Videos discovered and held in flight per batch.
        quality_preset: Tier used for the final encode stage.
        encoder_timeout: Seconds before one ffmpeg invocation is killed.
        verify_output: Re-probe finished clips and warn on duration drift.
        variants: The variants produced for every source video.
    """

    input_dir: Path = Path("input")
    output_dir: Path = Path("output")
    audio_bitrate: str = "112k"
    max_concurrent_videos: int = 10
    max_concurrent_variants: int = 50
    batch_size: int = 20
    quality_preset: QualityPreset = QualityPreset.BALANCED
    encoder_timeout: float = DEFAULT_ENCODER_TIMEOUT
    verify_output: bool = True
    variants: List[VariantSpec] = field(default_factory=default_variants)

    @classmethod
    def load(cls, config_path: Optional[Path]) -> "ClipperSettings":
        """
        Loads settings from a file, or returns defaults if it does not exist.

        Raises:
            ConfigValidationFailed: If the file cannot be parsed or holds invalid values.
        """
        if config_path is None or not Path(config_path).is_file():
            logger.info(f"Settings file '{config_path}' not found, using default settings.")
            settings = cls()
            settings.validate()
            return settings

        try:
            with Path(config_path).open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationFailed(f"Could not read settings file '{config_path}': {e}") from e

        if not isinstance(data, dict):
            raise ConfigValidationFailed(f"Settings file '{config_path}' must contain a mapping at the top level")

        logger.info(f"Loaded settings from {config_path}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClipperSettings":
        defaults = cls()
        raw_variants = data.get("videoConfigs")
        if raw_variants is None:
            variants = defaults.variants
        elif isinstance(raw_variants, list):
            variants = [VariantSpec.from_dict(entry) for entry in raw_variants]
        else:
            raise ConfigValidationFailed("'videoConfigs' must be a list of variant entries")

        max_variants = data.get("maxConcurrentConfigs", data.get("maxConcurrentVariants"))
        try:
            settings = cls(
                input_dir=Path(data.get("inputDir") or defaults.input_dir),
                output_dir=Path(data.get("outputDir") or defaults.output_dir),
                audio_bitrate=str(data.get("audioBitrate") or defaults.audio_bitrate),
                max_concurrent_videos=int(data.get("maxConcurrentVideos", defaults.max_concurrent_videos)),
                max_concurrent_variants=int(max_variants if max_variants is not None else defaults.max_concurrent_variants),
                batch_size=int(data.get("batchSize", defaults.batch_size)),
                quality_preset=QualityPreset.parse(data.get("qualityPreset", defaults.quality_preset.value)),
                encoder_timeout=float(data.get("encoderTimeout", defaults.encoder_timeout)),
                verify_output=bool(data.get("verifyOutput", defaults.verify_output)),
                variants=variants,
            )
        except (TypeError, ValueError) as e:
            raise ConfigValidationFailed(f"Settings contain a non-numeric value: {e}") from e
        settings.validate()
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputDir": str(self.input_dir),
            "outputDir": str(self.output_dir),
            "audioBitrate": self.audio_bitrate,
            "maxConcurrentVideos": self.max_concurrent_videos,
            "maxConcurrentConfigs": self.max_concurrent_variants,
            "batchSize": self.batch_size,
            "qualityPreset": self.quality_preset.value,
            "encoderTimeout": self.encoder_timeout,
            "verifyOutput": self.verify_output,
            "videoConfigs": [variant.to_dict() for variant in self.variants],
        }

    def save(self, config_path: Path):
        """Writes the settings as JSON for a `.json` path, YAML otherwise."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as f:
            if config_path.suffix.lower() == ".json":
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
            else:
                yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        logger.info(f"Settings written to {config_path}")

    def apply_overrides(
        self,
        input_dir: Optional[Path] = None,
        output_dir: Optional[Path] = None,
        max_concurrent_videos: Optional[int] = None,
        max_concurrent_variants: Optional[int] = None,
        batch_size: Optional[int] = None,
        quality_preset: Optional[str] = None,
        encoder_timeout: Optional[float] = None,
        verify_output: Optional[bool] = None,
    ) -> "ClipperSettings":
        """Replaces values given on the command line, then re-validates."""
        if input_dir is not None:
            self.input_dir = Path(input_dir)
        if output_dir is not None:
            self.output_dir = Path(output_dir)
        if max_concurrent_videos is not None:
            self.max_concurrent_videos = max_concurrent_videos
        if max_concurrent_variants is not None:
            self.max_concurrent_variants = max_concurrent_variants
        if batch_size is not None:
            self.batch_size = batch_size
        if quality_preset is not None:
            self.quality_preset = QualityPreset.parse(quality_preset)
        if encoder_timeout is not None:
            self.encoder_timeout = encoder_timeout
        if verify_output is not None:
            self.verify_output = verify_output
        self.validate()
        return self

    def validate(self):
        """
        Raises:
            ConfigValidationFailed: For non-positive ceilings, batch size or
                                    timeout, an empty variant list, an invalid
                                    variant, or two variants sharing an
                                    (output folder, suffix) pair.
        """
        if self.max_concurrent_videos < 1:
            raise ConfigValidationFailed(f"maxConcurrentVideos must be at least 1, got {self.max_concurrent_videos}")
        if self.max_concurrent_variants < 1:
            raise ConfigValidationFailed(f"maxConcurrentConfigs must be at least 1, got {self.max_concurrent_variants}")
        if self.batch_size < 1:
            raise ConfigValidationFailed(f"batchSize must be at least 1, got {self.batch_size}")
        if self.encoder_timeout <= 0:
            raise ConfigValidationFailed(f"encoderTimeout must be positive, got {self.encoder_timeout}")
        if not self.variants:
            raise ConfigValidationFailed("At least one entry in 'videoConfigs' is required")

        # Temp files are named after the output path, so outputs must never collide.
        seen = {}
        for variant in self.variants:
            variant.validate()
            key = (variant.output_folder, variant.output_suffix)
            if key in seen:
                raise ConfigValidationFailed(
                    f"Variants '{seen[key]}' and '{variant.name}' share output folder "
                    f"'{variant.output_folder}' and suffix '{variant.output_suffix}'"
                )
            seen[key] = variant.name

    def describe(self) -> List[str]:
        """One log line per setting and per variant."""
        lines = [
            f"Input directory : {self.input_dir}",
            f"Output directory: {self.output_dir}",
            f"Ceilings        : {self.max_concurrent_videos} videos x {self.max_concurrent_variants} variants, "
            f"batch size {self.batch_size}",
            f"Quality preset  : {self.quality_preset.value}, audio {self.audio_bitrate}, "
            f"timeout {self.encoder_timeout:g}s",
        ]
        for i, variant in enumerate(self.variants, start=1):
            lines.append(
                f"  {i}. {variant.name}: {variant.width}x{variant.height}, {variant.speed:g}x, "
                f"{variant.strategy.value}, {variant.clip_duration:g}s, {variant.video_bitrate}k"
            )
        return lines
