"""
Resolves a quality tier and target bitrate into concrete x264 parameters.

The final encode stage targets perceptual quality with CRF, capped by a
max-rate of 1.5x the target bitrate. The intermediate trim stage, whose output
is re-encoded anyway, uses plain bitrate targeting with a 1.2x max-rate. The
buffer is 2x the target in both modes.
"""
from typing import Any, Dict, List

from ..config.video import PIXEL_FORMAT
from ..domain.models import QualityParameterBundle, QualityPreset, RateControl

# Per-tier encoder tuning. Rate-control values are filled in by `resolve()`.
_TIER_PARAMETERS: Dict[QualityPreset, Dict[str, Any]] = {
    QualityPreset.FAST: {
        "encoder_preset": "fast",
        "crf": 23,
        "me_method": "hex",
        "subme": 6,
        "ref_frames": 3,
        "b_frames": 3,
        "trellis": 1,
        "psy_rd": "1.0",
        "psy_trellis": "0.0",
    },
    QualityPreset.BALANCED: {
        "encoder_preset": "slow",
        "crf": 20,
        "me_method": "umh",
        "subme": 8,
        "ref_frames": 5,
        "b_frames": 8,
        "trellis": 2,
        "psy_rd": "1.0",
        "psy_trellis": "0.1",
    },
    QualityPreset.MAXIMUM: {
        "encoder_preset": "veryslow",
        "crf": 18,
        "me_method": "tesa",
        "subme": 10,
        "ref_frames": 8,
        "b_frames": 16,
        "trellis": 2,
        "psy_rd": "1.0",
        "psy_trellis": "0.15",
    },
}

# Shared by every tier.
_COMMON_PARAMETERS: Dict[str, Any] = {
    "profile": "high",
    "level": "4.1",
    "keyint": 250,
    "keyint_min": 25,
    "sc_threshold": 40,
    "deblock": "0:0",  # alpha:beta offsets; deblocking stays on
}

MAX_RATE_FACTOR = {RateControl.CRF: 1.5, RateControl.BITRATE: 1.2}
BUFFER_SIZE_FACTOR = 2


def resolve(
    preset_name: "str | QualityPreset | None",
    target_bitrate_kbps: int,
    rate_control: RateControl = RateControl.CRF,
) -> QualityParameterBundle:
    """
    Builds the parameter bundle for a tier and bitrate.

    Never fails: unknown tier names resolve to the balanced tier.

    Args:
        preset_name: "fast", "balanced" or "maximum" (or a `QualityPreset`).
        target_bitrate_kbps: The variant's target video bitrate.
        rate_control: CRF for the final stage, BITRATE for the intermediate one.
    """
    preset = QualityPreset.parse(preset_name)
    tier = _TIER_PARAMETERS[preset]
    return QualityParameterBundle(
        preset_name=preset.value,
        rate_control=rate_control,
        target_bitrate_kbps=target_bitrate_kbps,
        max_rate_kbps=int(target_bitrate_kbps * MAX_RATE_FACTOR[rate_control]),
        buffer_size_kbps=target_bitrate_kbps * BUFFER_SIZE_FACTOR,
        **tier,
        **_COMMON_PARAMETERS,
    )


def to_ffmpeg_args(bundle: QualityParameterBundle) -> List[str]:
    """Renders a bundle as libx264 command-line arguments."""
    x264_params = ":".join(
        [
            f"me={bundle.me_method}",
            f"subme={bundle.subme}",
            f"ref={bundle.ref_frames}",
            f"bframes={bundle.b_frames}",
            f"trellis={bundle.trellis}",
            f"psy-rd={bundle.psy_rd},{bundle.psy_trellis}",
            f"deblock={bundle.deblock.replace(':', ',')}",
        ]
    )
    args = [
        "-preset", bundle.encoder_preset,
        "-profile:v", bundle.profile,
        "-level", bundle.level,
        "-pix_fmt", PIXEL_FORMAT,
        "-g", str(bundle.keyint),
        "-keyint_min", str(bundle.keyint_min),
        "-sc_threshold", str(bundle.sc_threshold),
        "-x264-params", x264_params,
    ]
    if bundle.rate_control is RateControl.CRF:
        args += ["-crf", str(bundle.crf)]
    else:
        args += ["-b:v", f"{bundle.target_bitrate_kbps}k"]
    args += [
        "-maxrate", f"{bundle.max_rate_kbps}k",
        "-bufsize", f"{bundle.buffer_size_kbps}k",
    ]
    return args
