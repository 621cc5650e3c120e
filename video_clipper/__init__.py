"""
Video Clipper: batch-converts source videos into fixed-shape, fixed-duration clips.

Every source video found under the input root is cut into several derivative
clips (one per configured variant) by driving ffmpeg as an external process.
The package is split into layers the same way the rest of the code base is:

- config:   static constants and the user-editable run settings.
- domain:   value objects (variants, clip windows, outcomes) and exceptions.
- services: the trim/quality calculators, the two-stage transcode pipeline,
            file discovery, path generation and log writers.
- pipeline: the bounded task group and the per-video / per-batch schedulers.
- utils:    subprocess helpers, ffprobe access and formatting helpers.
"""

__version__ = "1.0.0"
