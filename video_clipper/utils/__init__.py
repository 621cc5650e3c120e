"""
Utilities package for the Video Clipper.

Modules:
    - ffmpeg_utils.py: Runs external commands with a timeout and probes media
      durations through ffprobe.
    - format_utils.py: Human-readable formatting of durations, sizes and
      command lines for log output.
    - tool_check.py: Locates and verifies the ffmpeg/ffprobe executables.
"""
