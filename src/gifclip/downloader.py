"""Video and subtitle acquisition.

Remote sources go through yt-dlp, which also fetches the subtitle track
(manual or auto-generated) converted to SubRip. Local files are used in
place, with subtitles taken from a sidecar .srt when one exists.
"""

from __future__ import annotations

import platform
import subprocess
from pathlib import Path

from gifclip.errors import ExternalToolError, ToolNotFoundError
from gifclip.logging import get_logger

logger = get_logger(__name__)

URL_SCHEMES = ("http://", "https://")


def is_url(source: str) -> bool:
    """Check whether a clip source is a URL rather than a local path."""
    return source.lower().startswith(URL_SCHEMES)


def find_subtitle_file(directory: str | Path, lang: str) -> Path | None:
    """Find the .srt yt-dlp wrote for a language.

    yt-dlp names files like ``video.en.srt`` or ``video.en-US.srt``; the
    shortest matching name is the closest to the requested language.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    candidates = [
        path
        for path in directory.iterdir()
        if path.suffix == ".srt" and lang in path.name
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda p: len(str(p)))


def find_sidecar_subtitle(video_path: str | Path, lang: str) -> Path | None:
    """Find a subtitle file next to a local video.

    Checks ``<stem>.<lang>.srt`` then ``<stem>.srt``.
    """
    video_path = Path(video_path)
    for name in (f"{video_path.stem}.{lang}.srt", f"{video_path.stem}.srt"):
        candidate = video_path.with_name(name)
        if candidate.is_file():
            return candidate
    return None


class YtDlp:
    """Runs yt-dlp to fetch titles, videos and subtitles."""

    def __init__(self, ytdlp_path: str) -> None:
        self._ytdlp_path = ytdlp_path

    @property
    def ytdlp_path(self) -> str:
        return self._ytdlp_path

    def _get_subprocess_flags(self) -> int:
        if platform.system() == "Windows":
            return subprocess.CREATE_NO_WINDOW
        return 0

    def _run(self, args: list[str], timeout: int | None = None) -> subprocess.CompletedProcess:
        """Run yt-dlp with the given arguments.

        Raises:
            ToolNotFoundError: If the executable is missing
            ExternalToolError: If yt-dlp fails or times out
        """
        cmd = [self._ytdlp_path] + args
        logger.debug("Running yt-dlp", extra={"command": " ".join(args)})

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=self._get_subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError("yt-dlp", f"yt-dlp timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise ToolNotFoundError("yt-dlp", f"yt-dlp not found at {self._ytdlp_path}") from e
        except OSError as e:
            raise ExternalToolError("yt-dlp", f"Failed to run yt-dlp: {e}") from e

        if result.returncode != 0:
            error_msg = (result.stderr or result.stdout or "Unknown error").strip()
            raise ExternalToolError("yt-dlp", f"yt-dlp failed: {error_msg}", result.returncode)

        return result

    def get_title(self, url: str) -> str:
        """Fetch a video's title."""
        result = self._run(["--get-title", "--no-playlist", url], timeout=60)
        return result.stdout.strip()

    def download(
        self,
        url: str,
        dest_dir: str | Path,
        lang: str = "en",
        with_subs: bool = True,
    ) -> Path:
        """Download a video, and optionally its subtitles, into a directory.

        Args:
            url: Video URL
            dest_dir: Directory to download into
            lang: Subtitle language code
            with_subs: Also fetch subtitles (manual or automatic) as .srt

        Returns:
            Path to the downloaded video

        Raises:
            ExternalToolError: If the download fails
        """
        dest_dir = Path(dest_dir)
        video_path = dest_dir / "video.mp4"

        args = ["-f", "b[ext=mp4]/b", "-o", str(video_path), "--no-playlist"]
        if with_subs:
            args.extend([
                "--write-sub",
                "--write-auto-sub",
                "--sub-lang", lang,
                "--convert-subs", "srt",
            ])
        args.append(url)

        logger.info("Downloading video", extra={"url": url})
        self._run(args)

        if not video_path.exists():
            raise ExternalToolError("yt-dlp", f"Downloaded video not found: {video_path}")
        return video_path
