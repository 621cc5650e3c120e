"""
Renders durations, file sizes and ffmpeg command lines for log lines and the
error log.
"""

import os
import shlex
import subprocess
from typing import List

_SIZE_UNITS = ("KiB", "MiB", "GiB", "TiB")


def format_elapsed(seconds: float) -> str:
    """`3725.4` -> `"1:02:05"`; under an hour -> `"2:05"`. Negative input counts as zero."""
    minutes, secs = divmod(max(0, round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02}:{secs:02}"
    return f"{minutes}:{secs:02}"


def format_size(num_bytes: int) -> str:
    """Binary-prefixed size with one decimal, e.g. `"3.4 MiB"`."""
    if num_bytes < 1024:
        return f"{max(0, num_bytes)} B"
    value = float(num_bytes)
    for unit in _SIZE_UNITS:
        value /= 1024
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            return f"{value:.1f} {unit}"


def format_command(cmd_list: List[str]) -> str:
    """Quotes a command list into a single copy-pasteable line for the current platform."""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd_list)
    return shlex.join(cmd_list)


def tail_lines(text: str, count: int) -> str:
    """Returns the last `count` non-empty lines of `text`."""
    if not text:
        return ""
    lines = [line for line in text.splitlines() if line.strip()]
    return "\n".join(lines[-count:])
