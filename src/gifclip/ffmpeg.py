"""FFmpeg wrapper for rendering clips.

Builds the command lines that cut a time range out of a video and encode it
as GIF (palette-optimized), WebM (VP9) or MP4 (H.264), optionally burning
in subtitles. Also pulls an embedded subtitle track out of local files.
"""

from __future__ import annotations

import platform
import subprocess
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from gifclip.errors import ExternalToolError, ToolNotFoundError
from gifclip.logging import get_logger

logger = get_logger(__name__)


class OutputFormat(str, Enum):
    """Output container/codec."""

    GIF = "gif"
    WEBM = "webm"
    MP4 = "mp4"


class EncodeSettings(BaseModel):
    """Encoding settings for a clip."""

    format: OutputFormat = OutputFormat.GIF
    width: int = Field(default=480, gt=0, description="Output width; height keeps aspect")
    fps: int = Field(default=15, gt=0, description="Output frame rate")
    quality: int = Field(
        default=80,
        ge=1,
        le=100,
        description="1-100, higher is better. For GIF this controls the palette size",
    )

    @property
    def gif_max_colors(self) -> int:
        return 16 + int(self.quality / 100 * 240)

    @property
    def webm_crf(self) -> int:
        return 63 - int(self.quality / 100 * 53)

    @property
    def mp4_crf(self) -> int:
        return 51 - int(self.quality / 100 * 41)


def escape_filter_path(path: str | Path) -> str:
    """Escape a path for use inside an ffmpeg filter argument."""
    return str(path).replace("\\", "\\\\").replace(":", "\\:").replace("'", "\\'")


def build_subtitle_filter(subtitle_path: str | Path | None) -> str | None:
    """Build the ``subtitles=`` filter that burns captions into the frames."""
    if subtitle_path is None:
        return None
    return f"subtitles='{escape_filter_path(subtitle_path)}'"


def build_filter_chain(settings: EncodeSettings, subtitle_path: str | Path | None = None) -> str:
    """Build the -vf filter string for the chosen output format.

    Subtitles are applied before scaling so they render at source resolution.
    """
    if settings.format == OutputFormat.GIF:
        scale = f"scale={settings.width}:-1:flags=lanczos"
    else:
        scale = f"scale={settings.width}:-1"

    filters = [f"fps={settings.fps}", scale]
    subtitle_filter = build_subtitle_filter(subtitle_path)
    if subtitle_filter:
        filters.insert(0, subtitle_filter)

    chain = ",".join(filters)
    if settings.format == OutputFormat.GIF:
        chain += (
            f",split[s0][s1];[s0]palettegen=max_colors={settings.gif_max_colors}[p];"
            "[s1][p]paletteuse=dither=bayer"
        )
    return chain


def build_encode_args(
    video_path: str | Path,
    output_path: str | Path,
    start: float,
    duration: float,
    settings: EncodeSettings,
    subtitle_path: str | Path | None = None,
) -> list[str]:
    """Build ffmpeg arguments for rendering a clip.

    Seeking happens after ``-i`` so the subtitle filter sees source
    timestamps and burned captions stay in sync.

    Args:
        video_path: Source video
        output_path: Output file
        start: Clip start in seconds
        duration: Clip length in seconds
        settings: Encoding settings
        subtitle_path: Optional .srt file to burn in

    Returns:
        List of ffmpeg arguments (excluding the executable)
    """
    args = [
        "-y",
        "-i", str(video_path),
        "-ss", f"{start:.3f}",
        "-t", f"{duration:.3f}",
        "-vf", build_filter_chain(settings, subtitle_path),
    ]

    if settings.format == OutputFormat.WEBM:
        args.extend([
            "-c:v", "libvpx-vp9",
            "-crf", str(settings.webm_crf),
            "-b:v", "0",
            "-an",
        ])
    elif settings.format == OutputFormat.MP4:
        args.extend([
            "-c:v", "libx264",
            "-crf", str(settings.mp4_crf),
            "-preset", "medium",
            "-an",
            "-movflags", "+faststart",
        ])

    args.append(str(output_path))
    return args


class FFmpegWrapper:
    """Runs ffmpeg for clip rendering and subtitle extraction."""

    def __init__(self, ffmpeg_path: str) -> None:
        self._ffmpeg_path = ffmpeg_path

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    def _get_subprocess_flags(self) -> int:
        if platform.system() == "Windows":
            return subprocess.CREATE_NO_WINDOW
        return 0

    def _run_ffmpeg(
        self,
        args: list[str],
        timeout: int | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run ffmpeg with the given arguments.

        Raises:
            ToolNotFoundError: If the executable is missing
            ExternalToolError: If ffmpeg fails (and check=True) or times out
        """
        cmd = [self._ffmpeg_path] + args
        logger.debug("Running ffmpeg", extra={"command": " ".join(args)})

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=self._get_subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError("ffmpeg", f"ffmpeg timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise ToolNotFoundError("ffmpeg", f"ffmpeg not found at {self._ffmpeg_path}") from e
        except OSError as e:
            raise ExternalToolError("ffmpeg", f"Failed to run ffmpeg: {e}") from e

        if check and result.returncode != 0:
            error_msg = (result.stderr or result.stdout or "Unknown error").strip()
            # ffmpeg prints its banner first; the cause is at the end
            tail = "\n".join(error_msg.splitlines()[-5:])
            raise ExternalToolError("ffmpeg", f"ffmpeg failed: {tail}", result.returncode)

        return result

    def encode(
        self,
        video_path: str | Path,
        output_path: str | Path,
        start: float,
        duration: float,
        settings: EncodeSettings,
        subtitle_path: str | Path | None = None,
    ) -> Path:
        """Render a clip.

        Returns:
            Path to the output file

        Raises:
            ExternalToolError: If ffmpeg fails or produces no output
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        args = build_encode_args(video_path, output_path, start, duration, settings, subtitle_path)
        logger.info(
            f"Encoding {settings.format.value}",
            extra={"start": round(start, 3), "duration": round(duration, 3)},
        )
        self._run_ffmpeg(args)

        if not output_path.exists():
            raise ExternalToolError("ffmpeg", f"Output file was not created: {output_path}")
        return output_path

    def extract_subtitles(self, video_path: str | Path, dest: str | Path, lang: str) -> Path | None:
        """Extract an embedded subtitle track as SubRip.

        Tries the track tagged with ``lang`` first, then the first subtitle
        track of any language.

        Returns:
            Path to the .srt file, or None if the video has no usable track
        """
        dest = Path(dest)
        for stream in (f"0:s:m:language:{lang}", "0:s:0"):
            args = ["-y", "-i", str(video_path), "-map", stream, "-c:s", "srt", str(dest)]
            result = self._run_ffmpeg(args, check=False)
            if result.returncode == 0 and dest.exists() and dest.stat().st_size > 0:
                logger.info("Extracted embedded subtitles", extra={"stream": stream})
                return dest
        return None
