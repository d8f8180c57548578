"""Timestamp parsing and output naming helpers."""

from __future__ import annotations

import math
import re

from gifclip.errors import TimestampError

# [H:]M:S[.fraction]
CLOCK_PATTERN = re.compile(r"^(?:(\d+):)?(\d+):(\d+(?:\.\d+)?)$")

UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

MAX_TITLE_LENGTH = 50


def parse_timestamp(text: str) -> float:
    """Parse a user timestamp into seconds.

    Accepts plain seconds ("90", "90.5"), "M:SS" and "H:MM:SS[.fff]".

    Raises:
        TimestampError: If the text is not a timestamp
    """
    text = text.strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(seconds) and seconds >= 0:
            return seconds

    match = CLOCK_PATTERN.match(text)
    if match:
        hours, minutes, secs = match.groups()
        return int(hours or 0) * 3600 + int(minutes) * 60 + float(secs)

    raise TimestampError(
        f"Invalid timestamp format: {text}. Use MM:SS, HH:MM:SS, or seconds",
        context={"value": text},
    )


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``XmYs`` for filenames."""
    return f"{int(seconds // 60)}m{int(seconds % 60)}s"


def sanitize_filename(name: str) -> str:
    """Make a video title safe to use as a filename."""
    return UNSAFE_FILENAME_CHARS.sub("_", name)[:MAX_TITLE_LENGTH]


def default_output_name(title: str, start: float, end: float, extension: str) -> str:
    """Build ``{title}_{start}-{end}.{ext}`` for an unnamed clip."""
    return (
        f"{sanitize_filename(title)}_"
        f"{format_timestamp(start)}-{format_timestamp(end)}.{extension}"
    )


def format_clock(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS.mmm`` for display."""
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
