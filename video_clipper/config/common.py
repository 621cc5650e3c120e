"""
Common configuration settings used throughout the application.

This module centralizes the logging format, report/error file names and the
loading of user-specific tool locations from an optional `config.user.yaml`
file at the project root, so FFmpeg can live outside the system PATH.
"""
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Path Configuration ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"

# Directory containing the ffmpeg and ffprobe executables. None means PATH lookup.
MODULE_PATH: Path | None = None

if USER_CONFIG_PATH.is_file():
    try:
        with USER_CONFIG_PATH.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
        if user_config and "paths" in user_config:
            paths_config = user_config.get("paths") or {}
            ffmpeg_dir_str = paths_config.get("ffmpeg_dir")
            if ffmpeg_dir_str:
                MODULE_PATH = Path(ffmpeg_dir_str)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{USER_CONFIG_PATH}': {e}")
else:
    logger.debug(f"User config '{USER_CONFIG_PATH}' not found. Relying on system PATH for executables.")


# --- Logging Configuration ---
# Workers are threads, so the thread name identifies which task logged a line.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)

# --- Settings file ---
DEFAULT_SETTINGS_FILE = "config.json"

# --- Reports and error logs (relative to the output directory) ---
ERROR_LOG_DIR_NAME = "clip_errors"
RUN_REPORT_FILE_NAME = "clip_report.yaml"

# Lines of captured encoder output kept in error details and error logs.
ENCODER_OUTPUT_TAIL_LINES = 20
