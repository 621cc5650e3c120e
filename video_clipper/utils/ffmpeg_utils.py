"""
This module provides helpers for the two external tools the pipeline drives:
a command runner with a hard timeout for ffmpeg, and a duration probe built
on ffprobe (via the ffmpeg-python library).
"""

import re
import subprocess
from pathlib import Path
from typing import List, Optional

import ffmpeg
from loguru import logger

from ..config.video import PROBE_TIMEOUT_SECONDS
from ..domain.exceptions import ProbeFailed
from .format_utils import format_command
from .tool_check import ExternalTools


def run_cmd(
    cmd_list: List[str],
    timeout: Optional[float] = None,
    show_cmd: bool = False,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes an external command and captures its combined output.

    stderr is folded into stdout, so `result.stdout` holds everything the tool
    printed. On timeout the child process is killed by `subprocess.run`.

    Args:
        cmd_list: The command and its arguments. Never run through a shell.
        timeout: Seconds before the process is killed. None waits forever.
        show_cmd: If True, the command line is logged at DEBUG level.

    Returns:
        The `subprocess.CompletedProcess` (check `returncode`), or `None` if the
        executable could not be started or the timeout expired.
    """
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    display_cmd_str = format_command([str(part) for part in cmd_list])
    if show_cmd:
        logger.debug(f"Executing: {display_cmd_str}")

    try:
        result = subprocess.run(
            [str(part) for part in cmd_list],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            shell=False,
        )
    except FileNotFoundError:
        logger.error(f"Command not found: '{cmd_list[0]}'. Ensure it's in your system's PATH or configured correctly.")
        return None
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s and was killed: {display_cmd_str}")
        return None
    except OSError as e:
        logger.error(f"Could not start command '{cmd_list[0]}': {e}")
        return None

    if result.stdout and len(result.stdout) > 500:
        logger.trace(f"Command output (truncated): ...{result.stdout[-500:]}")
    elif result.stdout:
        logger.trace(f"Command output: {result.stdout}")

    return result


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    Accepts either plain seconds ("3600.5") or a timecode ("01:00:00.500",
    hours optional). Returns 0.0 if the string cannot be parsed.
    """
    if duration_str is None:
        return 0.0
    duration_str = str(duration_str).strip()
    try:
        return float(duration_str)
    except ValueError:
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, duration_str)
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            minutes = int(minutes_str)
            seconds = float(seconds_str)
            return float(hours * 3600 + minutes * 60 + seconds)
        logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


def probe_duration(path: Path, timeout: float = PROBE_TIMEOUT_SECONDS) -> float:
    """
    Returns the container duration of a media file in seconds.

    Raises:
        ProbeFailed: If ffprobe fails, cannot be started, runs longer than
                     `timeout`, prints unreadable output, or reports no
                     usable duration.
    """
    try:
        probe = ffmpeg.probe(str(path), cmd=ExternalTools.get_path("ffprobe"), timeout=timeout)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
        raise ProbeFailed(f"ffprobe failed for {path}: {stderr}") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeFailed(f"ffprobe timed out after {timeout:g}s for {path}") from e
    except ValueError as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        raise ProbeFailed(f"ffprobe printed unreadable output for {path}: {e}") from e
    except OSError as e:
        raise ProbeFailed(f"ffprobe could not be executed for {path}: {e}") from e

    raw_duration = (probe.get("format") or {}).get("duration")
    if raw_duration is None:
        raise ProbeFailed(f"ffprobe reported no duration for {path}")

    duration = parse_duration(raw_duration)
    if duration <= 0:
        raise ProbeFailed(f"ffprobe reported an unusable duration '{raw_duration}' for {path}")
    logger.debug(f"Probed duration of {path.name}: {duration:.2f}s")
    return duration
