"""
This module provides the ExternalTools class, which locates the ffmpeg and
ffprobe executables and verifies they run before any work starts.
"""
import subprocess
import sys

from loguru import logger

from ..config.common import MODULE_PATH
from ..domain.exceptions import ToolUnavailable

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")


class ExternalTools:
    """
    Resolves and checks the external tools the pipeline shells out to.

    A tool is taken from the `ffmpeg_dir` configured in `config.user.yaml` when
    it exists there, otherwise from the system PATH.
    """

    @staticmethod
    def get_path(tool_name: str) -> str:
        """
        Determines the command or absolute path used to invoke a tool.

        Args:
            tool_name: Base name of the executable, e.g. "ffmpeg".

        Returns:
            The configured absolute path if present, else the bare tool name.
        """
        exe_name = f"{tool_name}.exe" if sys.platform == "win32" else tool_name

        if MODULE_PATH and MODULE_PATH.is_dir():
            configured_path = MODULE_PATH / exe_name
            if configured_path.is_file():
                return str(configured_path)
            logger.warning(f"`ffmpeg_dir` is configured, but '{exe_name}' was not found there. Falling back to system PATH.")

        return tool_name

    @staticmethod
    def verify_tool(tool_name: str):
        """
        Runs `<tool> -version` and logs the first line of its output.

        Raises:
            ToolUnavailable: If the tool is missing or exits non-zero.
        """
        tool_cmd = ExternalTools.get_path(tool_name)
        try:
            result = subprocess.run(
                [tool_cmd, "-version"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=30,
            )
        except FileNotFoundError:
            raise ToolUnavailable(
                f"{tool_name} command not found. Install FFmpeg and add it to PATH, "
                f"or set 'paths.ffmpeg_dir' in config.user.yaml."
            ) from None
        except subprocess.CalledProcessError as e:
            raise ToolUnavailable(f"{tool_name} -version failed (return code {e.returncode}):\n{e.stderr}") from e
        except subprocess.TimeoutExpired as e:
            raise ToolUnavailable(f"{tool_name} -version did not finish in {e.timeout}s") from e

        version_output_lines = result.stdout.splitlines()
        first_line = version_output_lines[0] if version_output_lines else "(no output)"
        logger.info(f"{tool_name} version check successful: {first_line}")

    @staticmethod
    def verify():
        """Checks every required tool; called once at startup."""
        for tool_name in REQUIRED_TOOLS:
            ExternalTools.verify_tool(tool_name)
