"""Unit tests for the log formatting helpers."""

import os

import pytest

from video_clipper.utils.format_utils import format_command, format_elapsed, format_size, tail_lines


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0:00"), (59.6, "1:00"), (125, "2:05"), (3725.4, "1:02:05"), (-3, "0:00")],
)
def test_format_elapsed(seconds: float, expected: str) -> None:
    assert format_elapsed(seconds) == expected


@pytest.mark.parametrize(
    "num_bytes, expected",
    [(0, "0 B"), (1023, "1023 B"), (1536, "1.5 KiB"), (5 * 1024**2, "5.0 MiB"), (3 * 1024**5, "3072.0 TiB")],
)
def test_format_size(num_bytes: int, expected: str) -> None:
    assert format_size(num_bytes) == expected


@pytest.mark.skipif(os.name == "nt", reason="POSIX quoting")
def test_format_command_quotes_spaces() -> None:
    assert format_command(["ffmpeg", "-i", "my clip.mp4"]) == "ffmpeg -i 'my clip.mp4'"


def test_tail_lines_skips_blank_lines() -> None:
    assert tail_lines("a\n\nb\n  \nc\n", 2) == "b\nc"
    assert tail_lines("", 5) == ""
