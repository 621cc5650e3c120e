"""
This module provides the file-based logs written next to the clips.

ErrorLog appends a human-readable record for every failed encoder invocation.
RunReport writes a machine-readable YAML summary of a finished run: totals,
failed videos, failed variants and every clip produced.
"""

import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

import yaml
from loguru import logger

from ..config.common import ERROR_LOG_DIR_NAME, RUN_REPORT_FILE_NAME
from ..domain.models import RunSummary


class Log:
    """
    Base class for the file logs: resolves the log directory and creates it.
    """

    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path):
        self.log_file_path: Path
        self.log_dir: Path = Path(log_dir).resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, *args, **kwargs):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends error records to a plain text file.

    Several worker threads can fail at the same time, so appends are
    serialized with a class-wide lock.
    """

    DEFAULT_ERROR_FILENAME = "error.txt"
    _write_lock = threading.Lock()

    def __init__(self, output_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        """
        Args:
            output_dir: The run's output directory; the log goes in its
                        `clip_errors` sub-folder.
            filename: Name of the error log file.
        """
        super().__init__(Path(output_dir) / ERROR_LOG_DIR_NAME)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Appends the given message lines followed by a separator line.
        """
        if not error_messages:
            return

        timestamp = datetime.now().isoformat(timespec="seconds")
        content_to_write = f"[{timestamp}]\n" + "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"

        try:
            with self._write_lock, self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Fall back to the application logger so the message is not lost.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class RunReport(Log):
    """
    Writes the YAML summary of one run to `<output_dir>/clip_report.yaml`.

    Each run replaces the previous report.
    """

    def __init__(self, output_dir: Path, filename: str = RUN_REPORT_FILE_NAME):
        super().__init__(Path(output_dir))
        self.log_file_path = self.log_dir / filename

    def write(self, summary: RunSummary, extra: Dict[str, Any] | None = None):
        report = {
            "finished_at": datetime.now().isoformat(timespec="seconds"),
            **(extra or {}),
            **summary.to_dict(),
        }
        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(report, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
            logger.info(f"Run report written to {self.log_file_path}")
        except OSError as e:
            logger.error(f"Failed to write run report {self.log_file_path}: {e}")
