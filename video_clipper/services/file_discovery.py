"""
Discovers the source videos to process under an input root.

Files are yielded lazily so the batch scheduler can start the first batch
before the whole tree has been walked.
"""

import random
from pathlib import Path
from typing import Iterator, List, Optional

from loguru import logger

from ..config.video import EXCEPT_FOLDERS_KEYWORDS, SUPPORTED_FORMATS


class FileDiscovery:
    """
    Walks an input root for supported video files.

    Directories are visited in sorted order. The output directory (when it
    sits inside the input root) and folders whose name contains one of
    `EXCEPT_FOLDERS_KEYWORDS` are skipped, so clips from an earlier run are
    never picked up as sources.

    Attributes:
        source_dir (Path): The resolved input root.
        skipped (int): Non-video files seen so far.
    """

    def __init__(self, source_dir: Path, exclude_dirs: Optional[List[Path]] = None, shuffle: bool = False):
        """
        Raises:
            FileNotFoundError: If the input root does not exist or is not a directory.
        """
        self.source_dir = Path(source_dir).resolve()
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Input directory does not exist: {self.source_dir}")
        self.exclude_dirs = [Path(d).resolve() for d in (exclude_dirs or [])]
        self.shuffle = shuffle
        self.skipped = 0

    def _is_excluded_dir(self, directory: Path) -> bool:
        if directory in self.exclude_dirs:
            return True
        name = directory.name.lower()
        return any(keyword.lower() in name for keyword in EXCEPT_FOLDERS_KEYWORDS)

    def _walk(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.error(f"Cannot list directory {directory}: {e}")
            return
        for entry in entries:
            if entry.is_dir():
                if self._is_excluded_dir(entry.resolve()):
                    logger.debug(f"Skipping excluded directory: {entry}")
                    continue
                yield from self._walk(entry)
            elif entry.is_file():
                if entry.suffix.lower() in SUPPORTED_FORMATS:
                    yield entry
                else:
                    self.skipped += 1
                    logger.trace(f"Skipping non-video file: {entry}")

    def iter_files(self) -> Iterator[Path]:
        """
        Yields source video paths.

        With `shuffle` the whole tree is collected first and returned in random
        order; otherwise paths stream out in sorted walk order.
        """
        if not self.shuffle:
            yield from self._walk(self.source_dir)
            return
        files = list(self._walk(self.source_dir))
        logger.debug(f"Randomizing order of {len(files)} files.")
        yield from random.sample(files, len(files))
