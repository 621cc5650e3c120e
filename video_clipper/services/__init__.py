"""
Services Package for the Video Clipper.

This package holds the service layer: classes and functions that each perform
one well-defined step of producing clips, used by the schedulers in
`video_clipper.pipeline`.

- **Trim calculation (`trim_calculator`):**
  Turns a source duration, a strategy and a clip length into the window of the
  source to cut.

- **Quality presets (`quality_presets`):**
  Resolves a quality tier and target bitrate into x264 encoder parameters and
  renders them as ffmpeg arguments.

- **Transcode pipeline (`TranscodePipeline`):**
  Runs the two ffmpeg stages (trim+scale, then speed+encode) for one source and
  one variant, cleaning up its temp file on every path.

- **File discovery (`FileDiscovery`) and paths (`PathService`):**
  Find source videos under the input root and map each one to its outputs.

- **Logging (`ErrorLog`, `RunReport`):**
  Plain text error records for failed encoder invocations and a YAML summary
  of each run, separate from the console log.
"""
