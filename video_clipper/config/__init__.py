"""
Configuration package for the Video Clipper.

- common.py:   logging format, user tool paths (`config.user.yaml`) and
               output/report file names.
- video.py:    supported formats, codec settings and clip policy constants.
- settings.py: the `ClipperSettings` run configuration loaded from JSON/YAML.
"""
