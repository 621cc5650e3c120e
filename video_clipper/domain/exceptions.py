"""
Defines custom exception types for the Video Clipper application.

Errors raised while producing a single clip are captured into that clip's
`TaskOutcome` by the pipeline; only `ToolUnavailable`, `ConfigValidationFailed`
and a missing input root stop a whole run.

All custom exceptions inherit from the base `ClipperException`.
"""


class ClipperException(Exception):
    """Base class for all custom exceptions in the Video Clipper application."""

    pass


# --- Clip window calculation ---
class UnsupportedStrategy(ClipperException):
    """Raised when a trim strategy identifier is not one of the known strategies."""

    pass


class InvalidWindow(ClipperException):
    """
    Raised when a computed clip window is empty or falls outside the source.

    Sources barely longer than the guard bands clamp to a zero or negative
    length window; that is reported instead of being passed on to ffmpeg.
    """

    pass


# --- External tools ---
class EncodeFailed(ClipperException):
    """Raised when either ffmpeg stage exits non-zero, times out or writes no output."""

    pass


class ProbeFailed(ClipperException):
    """Raised when ffprobe cannot report a usable duration for a file."""

    pass


class ToolUnavailable(ClipperException):
    """Raised before any work starts when ffmpeg or ffprobe cannot be executed."""

    pass


# --- Inputs ---
class UnsupportedFormat(ClipperException):
    """Raised when a source file extension is not in the supported format set."""

    pass


class ConfigValidationFailed(ClipperException):
    """
    Raised when the run settings are malformed.

    Covers non-positive dimensions, speed, clip length, bitrate or ceilings,
    unknown trim strategies, and two variants that would write to the same
    output folder with the same suffix.
    """

    pass


# --- Scheduling ---
class TaskCancelled(ClipperException):
    """Raised inside a task that noticed its group was cancelled and stopped early."""

    pass
