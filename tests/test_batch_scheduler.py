"""Unit tests for BatchScheduler."""

import threading
import time
from pathlib import Path
from typing import List

import pytest

from conftest import FakeEncoder
from video_clipper.domain.models import TaskOutcome, VideoOutcome
from video_clipper.pipeline import task_group
from video_clipper.pipeline.batch_scheduler import BatchScheduler
from video_clipper.pipeline.variant_scheduler import VariantScheduler
from video_clipper.services.path_service import PathService
from video_clipper.services.transcode_pipeline import TranscodePipeline


class RecordingProcessor:
    """Fake video processor recording start/end order and concurrency."""

    def __init__(self, delay: float = 0.005, failing=()):
        self.delay = delay
        self.failing = set(failing)
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, path: Path) -> VideoOutcome:
        with self._lock:
            self.events.append(("start", path))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        time.sleep(self.delay)
        success = path not in self.failing
        outcome = TaskOutcome(
            source_path=path,
            variant_name="v",
            success=success,
            output_path=Path(f"/out/{path.stem}_v.mp4") if success else None,
            error=None if success else "EncodeFailed: boom",
        )
        with self._lock:
            self.in_flight -= 1
            self.events.append(("end", path))
        return VideoOutcome(source_path=path, outcomes=[outcome])


def video_paths(count: int) -> List[Path]:
    return [Path(f"/videos/{i:02}.mp4") for i in range(count)]


def test_seven_videos_in_batches_of_three() -> None:
    paths = video_paths(7)
    processor = RecordingProcessor()

    summary = BatchScheduler(processor, batch_size=3, max_concurrent_videos=2).run(paths)

    assert summary.batches == 3
    assert processor.max_in_flight <= 2
    assert summary.statistics.snapshot()["attempted"] == 7
    assert summary.statistics.snapshot()["succeeded"] == 7

    # Every video of a batch ends before any video of the next batch starts.
    position = {event: i for i, event in enumerate(processor.events)}
    batches = [paths[0:3], paths[3:6], paths[6:7]]
    for current, following in zip(batches, batches[1:]):
        last_end = max(position[("end", p)] for p in current)
        first_start = min(position[("start", p)] for p in following)
        assert last_end < first_start


def test_paths_are_pulled_one_batch_at_a_time() -> None:
    pulled = []

    def lazy_paths():
        for path in video_paths(7):
            pulled.append(path)
            yield path

    seen_when_started = {}

    def processor(path: Path) -> VideoOutcome:
        seen_when_started[path] = len(pulled)
        return VideoOutcome(source_path=path, outcomes=[TaskOutcome(path, "v", True, output_path=path)])

    BatchScheduler(processor, batch_size=3, max_concurrent_videos=2).run(lazy_paths())

    paths = video_paths(7)
    assert all(seen_when_started[p] == 3 for p in paths[:3])
    assert all(seen_when_started[p] == 6 for p in paths[3:6])
    assert seen_when_started[paths[6]] == 7


def test_failures_are_itemized() -> None:
    paths = video_paths(5)
    processor = RecordingProcessor(failing={paths[1], paths[4]})

    summary = BatchScheduler(processor, batch_size=2, max_concurrent_videos=2).run(paths)

    counts = summary.statistics.snapshot()
    assert counts == {
        "attempted": 5,
        "succeeded": 3,
        "failed": 2,
        "variants_succeeded": 3,
        "variants_failed": 2,
    }
    assert [v.source_path for v in summary.failed_videos] == [paths[1], paths[4]]
    assert [o.source_path for o in summary.failed_variants] == [paths[1], paths[4]]
    assert len(summary.produced) == 3
    assert not summary.stopped_early


def test_processor_exception_counts_as_failed_video() -> None:
    paths = video_paths(3)

    def processor(path: Path) -> VideoOutcome:
        if path == paths[0]:
            raise RuntimeError("unexpected")
        return VideoOutcome(source_path=path, outcomes=[TaskOutcome(path, "v", True, output_path=path)])

    summary = BatchScheduler(processor, batch_size=3, max_concurrent_videos=3).run(paths)

    assert summary.statistics.snapshot()["attempted"] == 3
    assert summary.statistics.snapshot()["failed"] == 1
    assert summary.failed_videos[0].error == "RuntimeError: unexpected"


def test_stop_skips_pending_videos_and_batches() -> None:
    paths = video_paths(6)
    processed = []
    scheduler = None

    def processor(path: Path) -> VideoOutcome:
        processed.append(path)
        scheduler.stop()
        return VideoOutcome(source_path=path, outcomes=[TaskOutcome(path, "v", True, output_path=path)])

    scheduler = BatchScheduler(processor, batch_size=3, max_concurrent_videos=1)
    summary = scheduler.run(paths)

    assert processed == [paths[0]]
    assert summary.batches == 1
    assert summary.stopped_early
    assert summary.statistics.snapshot()["attempted"] == 1


def test_empty_source() -> None:
    summary = BatchScheduler(RecordingProcessor(), batch_size=3, max_concurrent_videos=2).run([])

    assert summary.batches == 0
    assert summary.statistics.snapshot()["attempted"] == 0


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BatchScheduler(RecordingProcessor(), batch_size=0, max_concurrent_videos=1)


def test_interrupt_while_waiting_stops_queued_videos(monkeypatch) -> None:
    paths = video_paths(8)
    started = threading.Event()
    release = threading.Event()
    processed = []

    def processor(path: Path) -> VideoOutcome:
        processed.append(path)
        started.set()
        release.wait(timeout=5)
        return VideoOutcome(source_path=path, outcomes=[TaskOutcome(path, "v", True, output_path=path)])

    def interrupted_wait(futures, *args, **kwargs):
        started.wait(timeout=5)
        raise KeyboardInterrupt

    monkeypatch.setattr(task_group.concurrent.futures, "wait", interrupted_wait)
    scheduler = BatchScheduler(processor, batch_size=8, max_concurrent_videos=1)

    try:
        with pytest.raises(KeyboardInterrupt):
            scheduler.run(paths)
    finally:
        release.set()

    assert scheduler.stop_event.is_set()
    assert processed == [paths[0]]


def test_stop_event_set_elsewhere_skips_videos_not_started() -> None:
    stop_event = threading.Event()
    paths = video_paths(4)
    processed = []

    def processor(path: Path) -> VideoOutcome:
        processed.append(path)
        stop_event.set()
        return VideoOutcome(source_path=path, outcomes=[TaskOutcome(path, "v", True, output_path=path)])

    summary = BatchScheduler(processor, batch_size=4, max_concurrent_videos=1, stop_event=stop_event).run(paths)

    assert processed == [paths[0]]
    assert summary.stopped_early
    assert summary.statistics.snapshot()["attempted"] == 1


class TestWithVariantScheduler:
    """Both schedulers together, with the encoder faked."""

    @pytest.fixture
    def pipeline(self, output_dir: Path) -> TranscodePipeline:
        return TranscodePipeline(PathService(output_dir), encoder_timeout=60, verify_output=False)

    def test_encoders_in_flight_bounded_by_both_ceilings(
        self, monkeypatch, pipeline, variants, input_dir, make_video, fake_probe
    ) -> None:
        encoder = FakeEncoder(delay=0.01)
        monkeypatch.setattr("video_clipper.services.transcode_pipeline.run_cmd", encoder)
        paths = [make_video(f"v{i}.mp4") for i in range(5)]
        variant_scheduler = VariantScheduler(pipeline, variants, max_concurrent_variants=3, input_root=input_dir)

        summary = BatchScheduler(variant_scheduler.process, batch_size=4, max_concurrent_videos=2).run(paths)

        assert encoder.max_in_flight <= 2 * 3
        assert len(encoder.calls) == 2 * len(variants) * len(paths)
        assert summary.statistics.snapshot()["variants_succeeded"] == len(variants) * len(paths)

    def test_same_stem_sources_produce_separate_clips(
        self, pipeline, square_variant, input_dir, make_video, fake_encoder, fake_probe
    ) -> None:
        paths = [make_video("clip.mp4"), make_video("clip.mov")]
        variant_scheduler = VariantScheduler(pipeline, [square_variant], max_concurrent_variants=1, input_root=input_dir)

        summary = BatchScheduler(variant_scheduler.process, batch_size=2, max_concurrent_videos=2).run(paths)

        assert summary.statistics.snapshot()["succeeded"] == 2
        assert len(set(summary.produced)) == 2
        assert all(path.is_file() for path in summary.produced)
        temp_paths = {cmd[-1] for cmd in fake_encoder.calls if cmd[-1].endswith("_temp.mp4")}
        assert len(temp_paths) == 2

    def test_stop_reaches_videos_already_running(
        self, monkeypatch, pipeline, variants, input_dir, make_video, fake_probe
    ) -> None:
        stop_event = threading.Event()
        encoder = FakeEncoder(delay=0.01)
        batch_scheduler = None

        def stopping_encoder(cmd_list, timeout=None, show_cmd=False):
            result = encoder(cmd_list, timeout, show_cmd)
            batch_scheduler.stop()
            return result

        monkeypatch.setattr("video_clipper.services.transcode_pipeline.run_cmd", stopping_encoder)
        paths = [make_video(f"v{i}.mp4") for i in range(4)]
        variant_scheduler = VariantScheduler(
            pipeline, variants, max_concurrent_variants=1, input_root=input_dir, stop_event=stop_event
        )
        batch_scheduler = BatchScheduler(
            variant_scheduler.process, batch_size=4, max_concurrent_videos=2, stop_event=stop_event
        )

        summary = batch_scheduler.run(paths)

        # Only first stages ran: one per video that had started.
        assert 1 <= len(encoder.calls) <= 2
        assert all(cmd[-1].endswith("_temp.mp4") for cmd in encoder.calls)
        assert summary.produced == []
        assert summary.stopped_early
