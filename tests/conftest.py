"""Shared test fixtures for the Video Clipper."""

import subprocess
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from loguru import logger

from video_clipper.domain.models import TrimStrategy, VariantSpec


class FakeEncoder:
    """Stands in for `run_cmd`: records commands and writes the output file.

    `fail_when(cmd)` decides which invocations fail; a failing invocation can
    still leave a partial output behind, like a real ffmpeg crash would.
    """

    def __init__(
        self,
        fail_when: Optional[Callable[[List[str]], bool]] = None,
        output_size: int = 4096,
        delay: float = 0.0,
        write_partial_on_failure: bool = True,
    ):
        self.fail_when = fail_when or (lambda cmd: False)
        self.output_size = output_size
        self.delay = delay
        self.write_partial_on_failure = write_partial_on_failure
        self.calls: List[List[str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, cmd_list, timeout=None, show_cmd=False):
        with self._lock:
            self.calls.append(list(cmd_list))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            output = Path(cmd_list[-1])
            if self.fail_when(cmd_list):
                if self.write_partial_on_failure:
                    output.write_bytes(b"\0" * 10)
                return subprocess.CompletedProcess(cmd_list, 1, stdout="frame=1\nError while encoding\n")
            output.write_bytes(b"\0" * self.output_size)
            return subprocess.CompletedProcess(cmd_list, 0, stdout="")
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeProbe:
    """Stands in for `probe_duration`, answering from a file-name table."""

    def __init__(self, durations: Optional[Dict[str, float]] = None, default: float = 40.0):
        self.durations = durations or {}
        self.default = default
        self.calls: List[Path] = []
        self._lock = threading.Lock()

    def __call__(self, path):
        path = Path(path)
        with self._lock:
            self.calls.append(path)
        value = self.durations.get(path.name, self.default)
        if isinstance(value, Exception):
            raise value
        return value


def make_variant(
    width: int = 1008,
    height: int = 1008,
    strategy: TrimStrategy = TrimStrategy.START_SEGMENTS,
    folder: str = "square_start",
    suffix: str = "_sq",
    clip_duration: float = 20,
    speed: float = 2.0,
    bitrate: int = 4000,
) -> VariantSpec:
    return VariantSpec(
        width=width,
        height=height,
        clip_duration=clip_duration,
        speed=speed,
        video_bitrate=bitrate,
        strategy=strategy,
        output_suffix=suffix,
        output_folder=folder,
    )


@pytest.fixture
def square_variant() -> VariantSpec:
    return make_variant()


@pytest.fixture
def rect_variant() -> VariantSpec:
    return make_variant(width=1008, height=762, folder="rect_start", suffix="_rect")


@pytest.fixture
def variants() -> List[VariantSpec]:
    """Four distinct variants: two shapes x two strategies."""
    return [
        make_variant(folder="sq_start", suffix="_a"),
        make_variant(height=762, folder="rect_start", suffix="_b"),
        make_variant(strategy=TrimStrategy.END_SEGMENTS, folder="sq_end", suffix="_c"),
        make_variant(height=762, strategy=TrimStrategy.MIDDLE_SEGMENTS, folder="rect_mid", suffix="_d"),
    ]


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    path = tmp_path / "input"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def make_video(input_dir: Path) -> Callable[..., Path]:
    """Create an (empty) source video file under the input directory."""

    def _make(name: str = "clip.mp4") -> Path:
        path = input_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0" * 64)
        return path

    return _make


@pytest.fixture
def fake_encoder(monkeypatch) -> FakeEncoder:
    encoder = FakeEncoder()
    monkeypatch.setattr("video_clipper.services.transcode_pipeline.run_cmd", encoder)
    return encoder


@pytest.fixture
def fake_probe(monkeypatch) -> FakeProbe:
    probe = FakeProbe()
    monkeypatch.setattr("video_clipper.domain.media.probe_duration", probe)
    monkeypatch.setattr("video_clipper.services.transcode_pipeline.probe_duration", probe)
    return probe


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)
