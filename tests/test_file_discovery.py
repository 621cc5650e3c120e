"""Unit tests for source video discovery."""

from pathlib import Path

import pytest

from video_clipper.services.file_discovery import FileDiscovery


@pytest.fixture
def video_tree(input_dir: Path) -> Path:
    for name in ("b.mp4", "a.MKV", "notes.txt", "sub/c.webm", "sub/deeper/d.mov", "work_temp/e.mp4", "cover.jpg"):
        path = input_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
    return input_dir


def relative(paths, root: Path):
    return [p.relative_to(root).as_posix() for p in paths]


def test_walks_sorted_and_filters(video_tree: Path) -> None:
    discovery = FileDiscovery(video_tree)

    found = list(discovery.iter_files())

    assert relative(found, video_tree) == ["a.MKV", "b.mp4", "sub/c.webm", "sub/deeper/d.mov"]
    assert discovery.skipped == 2


def test_output_directory_inside_input_is_skipped(video_tree: Path) -> None:
    output = video_tree / "clips"
    (output / "square").mkdir(parents=True)
    (output / "square" / "b_sq.mp4").touch()

    found = list(FileDiscovery(video_tree, exclude_dirs=[output]).iter_files())

    assert "clips/square/b_sq.mp4" not in relative(found, video_tree)


def test_is_lazy(video_tree: Path) -> None:
    iterator = FileDiscovery(video_tree).iter_files()

    assert next(iterator).name == "a.MKV"


def test_shuffle_keeps_the_same_files(video_tree: Path) -> None:
    ordered = set(FileDiscovery(video_tree).iter_files())
    shuffled = list(FileDiscovery(video_tree, shuffle=True).iter_files())

    assert set(shuffled) == ordered
    assert len(shuffled) == len(ordered)


def test_missing_root(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        FileDiscovery(tmp_path / "nowhere")
