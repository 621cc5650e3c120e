"""Unit tests for the error log and the run report."""

import threading
from pathlib import Path

import yaml

from video_clipper.domain.models import BatchStatistics, ClipWindow, RunSummary, TaskOutcome, VideoOutcome
from video_clipper.services.logging_service import ErrorLog, RunReport


def test_error_log_appends_entries(output_dir: Path) -> None:
    error_log = ErrorLog(output_dir)

    error_log.write("Stage: trim+scale", "Error: ffmpeg exited with code 1")
    error_log.write("Stage: speed+encode")

    content = (output_dir / "clip_errors" / "error.txt").read_text(encoding="utf-8")
    assert content.count(ErrorLog.linesep_marker) == 2
    assert "ffmpeg exited with code 1" in content
    assert content.index("trim+scale") < content.index("speed+encode")


def test_error_log_concurrent_writers(output_dir: Path) -> None:
    error_log = ErrorLog(output_dir)
    threads = [threading.Thread(target=error_log.write, args=(f"entry {i}",)) for i in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    content = error_log.log_file_path.read_text(encoding="utf-8")
    assert content.count(ErrorLog.linesep_marker) == 20
    assert all(f"entry {i}\n" in content for i in range(20))


def test_run_report(output_dir: Path) -> None:
    failed = TaskOutcome(Path("/in/a.mp4"), "sq_start", False, error="EncodeFailed: boom", window=ClipWindow(5, 25))
    produced = TaskOutcome(Path("/in/a.mp4"), "rect_start", True, output_path=Path("/out/a_rect.mp4"))
    video = VideoOutcome(Path("/in/a.mp4"), outcomes=[failed, produced])
    statistics = BatchStatistics()
    statistics.record(video)
    summary = RunSummary(
        statistics=statistics,
        batches=1,
        failed_videos=[video],
        failed_variants=[failed],
        produced=[produced.output_path],
        elapsed_seconds=3.14159,
    )

    RunReport(output_dir).write(summary, extra={"quality_preset": "balanced"})

    report = yaml.safe_load((output_dir / "clip_report.yaml").read_text(encoding="utf-8"))
    assert report["quality_preset"] == "balanced"
    assert report["statistics"]["failed"] == 1
    assert report["statistics"]["variants_succeeded"] == 1
    assert report["failed_variants"][0]["window"] == [5, 25]
    assert report["failed_variants"][0]["error"] == "EncodeFailed: boom"
    assert report["produced"] == ["/out/a_rect.mp4"]
    assert report["elapsed_seconds"] == 3.14
