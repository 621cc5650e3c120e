"""
Computes which part of a source video a clip is cut from.

Every strategy keeps a fixed guard band clear of the head and tail of the
source (intros, outros, fades). Windows are clamped to the source; a window
that clamps to nothing is an error, not a zero-length ffmpeg request.
"""

from loguru import logger

from ..config.video import GUARD_BAND_SECONDS
from ..domain.exceptions import InvalidWindow
from ..domain.models import ClipWindow, TrimStrategy


def compute(total_duration: float, strategy: "TrimStrategy | str", clip_duration: float) -> ClipWindow:
    """
    Returns the clip window for one strategy.

    - start_segments: [5, 5 + clip], end clamped to the total duration.
    - end_segments / last_segments: [total - 5 - clip, total - 5], start clamped to 0.
    - middle_segments: centred inside [5, total - 5]; if that range is shorter
      than the clip, the whole range is returned (a shorter clip).

    Args:
        total_duration: Probed source duration in seconds.
        strategy: A `TrimStrategy` or its string identifier.
        clip_duration: Requested clip length in seconds, before speed change.

    Raises:
        UnsupportedStrategy: If `strategy` is not a known identifier.
        InvalidWindow: If the clamped window is empty or outside [0, total].
    """
    strategy = TrimStrategy.parse(strategy)
    guard = GUARD_BAND_SECONDS

    if strategy is TrimStrategy.START_SEGMENTS:
        start = guard
        end = min(start + clip_duration, total_duration)
    elif strategy in (TrimStrategy.END_SEGMENTS, TrimStrategy.LAST_SEGMENTS):
        end = total_duration - guard
        start = max(end - clip_duration, 0.0)
    else:
        usable_start = guard
        usable_end = total_duration - guard
        usable_duration = usable_end - usable_start
        if usable_duration < clip_duration:
            start, end = usable_start, usable_end
            if usable_duration > 0:
                logger.debug(
                    f"Usable range {usable_duration:.2f}s is shorter than the {clip_duration:g}s clip; "
                    f"taking all of [{start:.2f}, {end:.2f}]"
                )
        else:
            middle = usable_start + usable_duration / 2
            start = middle - clip_duration / 2
            end = start + clip_duration

    if not (0 <= start < end <= total_duration):
        raise InvalidWindow(
            f"{strategy.value}: no usable window in a {total_duration:.2f}s source "
            f"for a {clip_duration:g}s clip (start={start:.2f}, end={end:.2f})"
        )
    return ClipWindow(start=start, end=end)
