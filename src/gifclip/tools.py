"""External tool location and managed installation.

gifclip drives two binaries: yt-dlp (download) and ffmpeg (encode). They come
either from the system PATH or from ``~/.gifclip/tools``. For managed
ffmpeg the binary bundled with imageio-ffmpeg is used, so only yt-dlp is
ever downloaded.
"""

from __future__ import annotations

import http.client
import platform
import shutil
import urllib.request
from pathlib import Path
from typing import NamedTuple

from gifclip.config import Settings, ToolSource, tools_dir
from gifclip.errors import ConfigurationError, ExternalToolError, ToolNotFoundError
from gifclip.logging import get_logger

logger = get_logger(__name__)

YTDLP_RELEASE_BASE = "https://github.com/yt-dlp/yt-dlp/releases/latest/download"


class ToolInfo(NamedTuple):
    """Information about an external tool."""

    name: str
    path: str
    source: str  # "system", "managed", "imageio" or "not_found"
    available: bool


def _exe_name(name: str) -> str:
    if platform.system() == "Windows":
        return f"{name}.exe"
    return name


def _managed_path(name: str) -> Path:
    return tools_dir() / _exe_name(name)


def _get_ffmpeg_from_imageio() -> str | None:
    """Get FFmpeg path from imageio-ffmpeg package."""
    try:
        import imageio_ffmpeg

        return imageio_ffmpeg.get_ffmpeg_exe()
    except (ImportError, RuntimeError):
        return None


def locate_ytdlp(settings: Settings) -> ToolInfo:
    """Locate yt-dlp according to the configured tool source."""
    if settings.tool_source == ToolSource.MANAGED:
        path = _managed_path("yt-dlp")
        if path.exists():
            return ToolInfo("yt-dlp", str(path), "managed", True)
        return ToolInfo("yt-dlp", str(path), "not_found", False)

    system_path = shutil.which("yt-dlp")
    if system_path:
        return ToolInfo("yt-dlp", system_path, "system", True)
    return ToolInfo("yt-dlp", "", "not_found", False)


def locate_ffmpeg(settings: Settings) -> ToolInfo:
    """Locate ffmpeg according to the configured tool source.

    Managed mode checks ``tools_dir()`` first, then the imageio-ffmpeg binary.
    """
    if settings.tool_source == ToolSource.MANAGED:
        path = _managed_path("ffmpeg")
        if path.exists():
            return ToolInfo("ffmpeg", str(path), "managed", True)
        imageio_path = _get_ffmpeg_from_imageio()
        if imageio_path:
            return ToolInfo("ffmpeg", imageio_path, "imageio", True)
        return ToolInfo("ffmpeg", str(path), "not_found", False)

    system_path = shutil.which("ffmpeg")
    if system_path:
        return ToolInfo("ffmpeg", system_path, "system", True)
    return ToolInfo("ffmpeg", "", "not_found", False)


def find_ytdlp(settings: Settings) -> str:
    """Get the yt-dlp executable path.

    Raises:
        ToolNotFoundError: If yt-dlp is not available
    """
    info = locate_ytdlp(settings)
    if not info.available:
        raise ToolNotFoundError("yt-dlp", f"yt-dlp not found ({settings.tool_source.value} tools)")
    return info.path


def find_ffmpeg(settings: Settings) -> str:
    """Get the ffmpeg executable path.

    Raises:
        ToolNotFoundError: If ffmpeg is not available
    """
    info = locate_ffmpeg(settings)
    if not info.available:
        raise ToolNotFoundError("ffmpeg", f"ffmpeg not found ({settings.tool_source.value} tools)")
    return info.path


def check_tools(settings: Settings) -> dict[str, ToolInfo]:
    """Report on every external tool gifclip needs."""
    return {
        "yt-dlp": locate_ytdlp(settings),
        "ffmpeg": locate_ffmpeg(settings),
    }


def ytdlp_download_url(system: str | None = None) -> str:
    """Get the yt-dlp release URL for a platform.

    Args:
        system: ``platform.system()`` value (defaults to the current platform)

    Raises:
        ConfigurationError: If no standalone yt-dlp build exists for the platform
    """
    system = system or platform.system()
    assets = {
        "Linux": "yt-dlp",
        "FreeBSD": "yt-dlp",
        "Darwin": "yt-dlp_macos",
        "Windows": "yt-dlp.exe",
    }
    if system not in assets:
        raise ConfigurationError(
            "Managed yt-dlp download is not supported on this platform. "
            "Please install yt-dlp manually.",
            context={"platform": system},
        )
    return f"{YTDLP_RELEASE_BASE}/{assets[system]}"


def install_ytdlp(dest_dir: Path | None = None, timeout: int = 120) -> Path:
    """Download the standalone yt-dlp binary.

    Args:
        dest_dir: Target directory (defaults to ``tools_dir()``)
        timeout: Network timeout in seconds

    Returns:
        Path to the installed binary

    Raises:
        ExternalToolError: If the download fails
        ConfigurationError: If the binary cannot be written
    """
    dest_dir = dest_dir or tools_dir()
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = dest_dir / _exe_name("yt-dlp")
    url = ytdlp_download_url()

    logger.info("Downloading yt-dlp", extra={"url": url, "dest": str(dest)})
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            data = response.read()
    except (OSError, http.client.HTTPException) as e:
        raise ExternalToolError("yt-dlp", f"Failed to download yt-dlp: {e}") from e

    # Atomic write: a partial binary must never look installed
    temp_path = dest.with_name(dest.name + ".tmp")
    try:
        temp_path.write_bytes(data)
        if platform.system() != "Windows":
            temp_path.chmod(0o755)
        temp_path.replace(dest)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise ConfigurationError(
            f"Failed to install yt-dlp to {dest}",
            context={"error": str(e)},
        ) from e
    return dest


def ensure_managed_tools(settings: Settings) -> None:
    """Install whatever managed tools are missing.

    Raises:
        ToolNotFoundError: If ffmpeg cannot be provided (imageio-ffmpeg missing)
    """
    if not locate_ytdlp(settings).available:
        install_ytdlp()
    if not locate_ffmpeg(settings).available:
        raise ToolNotFoundError(
            "ffmpeg",
            "No bundled ffmpeg available. Install imageio-ffmpeg or place ffmpeg "
            f"in {tools_dir()}",
        )
