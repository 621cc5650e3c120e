"""
Output and temporary path generation for clips.
"""
from pathlib import Path

from ..config.video import OUTPUT_EXTENSION, TEMP_FILE_MARKER
from ..domain.media import SourceVideo
from ..domain.models import VariantSpec


class PathService:
    """
    Maps a (source video, variant) pair to its output file.

    Outputs mirror the source's directory structure below the input root:
    `<output_dir>/<variant folder>/<relative dir>/<stem>_<ext><suffix>.mp4`.
    The source extension stays in the name, so `clip.mp4` and `clip.mov`
    in one folder never share an output or a temp file.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir).resolve()

    def output_path(self, source: SourceVideo, variant: VariantSpec) -> Path:
        source_ext = source.format.lstrip(".")
        file_name = f"{source.stem}_{source_ext}{variant.output_suffix}{OUTPUT_EXTENSION}"
        return self.output_dir / variant.output_folder / source.relative_dir / file_name

    @staticmethod
    def temp_path(output_path: Path) -> Path:
        """The stage-one file, next to the final output so the move stays on one disk."""
        return output_path.with_name(f"{output_path.stem}{TEMP_FILE_MARKER}{output_path.suffix}")

    @staticmethod
    def ensure_dir(directory: Path):
        directory.mkdir(parents=True, exist_ok=True)
