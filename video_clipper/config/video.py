"""
Configuration settings related to video processing.

Supported source formats, codec settings shared by both transcode stages,
clip-window policy and output naming.
"""

# --- Source discovery ---
SUPPORTED_FORMATS = (
    ".mp4", ".avi", ".mov", ".mkv", ".flv", ".wmv", ".m4v", ".3gp", ".webm",
)
# Folders containing any of these keywords are never scanned for sources.
EXCEPT_FOLDERS_KEYWORDS = ("_temp", ".clipper_cache")

# --- Clip window policy (seconds) ---
GUARD_BAND_SECONDS = 5.0
DURATION_TOLERANCE_SECONDS = 0.5

# --- Encoder settings ---
VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"
AUDIO_SAMPLE_RATE = 48_000
PIXEL_FORMAT = "yuv420p"
# Quality tier used for the intermediate trim+scale stage.
INTERMEDIATE_QUALITY_PRESET = "fast"
# Largest factor a single atempo filter is asked to apply; larger or smaller
# factors are chained.
ATEMPO_MAX = 2.0
ATEMPO_MIN = 0.5

# --- Subprocess limits ---
DEFAULT_ENCODER_TIMEOUT = 1800  # seconds per ffmpeg invocation
PROBE_TIMEOUT_SECONDS = 60  # seconds per ffprobe invocation

# --- Output naming ---
OUTPUT_EXTENSION = ".mp4"
TEMP_FILE_MARKER = "_temp"
# Outputs smaller than this are treated as a failed encode.
MINIMUM_OUTPUT_SIZE = 1024
