import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.video import SUPPORTED_FORMATS
from ..utils.ffmpeg_utils import probe_duration
from .exceptions import ProbeFailed, UnsupportedFormat


class SourceVideo:
    """
    A source video file, identified by its path.

    The container format is taken from the extension and checked against the
    supported set when the object is built. The duration is probed lazily, the
    first time `load_duration()` is called, and cached from then on; every
    variant of the same video reuses the one probe.

    Attributes:
        path (Path): Absolute path to the source file.
        filename (str): The file name including extension.
        stem (str): The file name without extension.
        format (str): Lower-case extension, e.g. ".mp4".
        relative_dir (Path): Directory relative to the input root, or "." when
                             there is no root or the file lies outside it.
    """

    def __init__(self, path: Path, input_root: Optional[Path] = None):
        """
        Raises:
            UnsupportedFormat: If the extension is not a supported video format.
        """
        self.path: Path = Path(path).resolve()
        self.filename: str = self.path.name
        self.stem: str = self.path.stem
        self.format: str = self.path.suffix.lower()
        if self.format not in SUPPORTED_FORMATS:
            raise UnsupportedFormat(f"Unsupported video format '{self.format or '(none)'}': {self.path}")

        self.relative_dir: Path = Path(".")
        if input_root is not None:
            try:
                self.relative_dir = self.path.parent.relative_to(Path(input_root).resolve())
            except ValueError:
                logger.warning(f"File {self.path} is not under input root {input_root}. Writing it at the variant root.")

        self._duration: Optional[float] = None
        self._duration_lock = threading.Lock()

    @property
    def duration(self) -> Optional[float]:
        """Total duration in seconds, or None if not probed yet."""
        return self._duration

    def load_duration(self) -> float:
        """
        Probes the duration on first call and returns the cached value after.

        Raises:
            ProbeFailed: If the file is missing or ffprobe cannot report a duration.
        """
        with self._duration_lock:
            if self._duration is None:
                if not self.path.is_file():
                    raise ProbeFailed(f"Source video not found: {self.path}")
                self._duration = probe_duration(self.path)
            return self._duration

    def __repr__(self) -> str:
        return f"SourceVideo({str(self.path)!r}, duration={self._duration})"
