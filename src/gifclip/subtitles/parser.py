"""SubRip (.srt) subtitle parser.

Turns a caption file into an ordered list of timed text entries. Parsing is
deliberately tolerant: anything that does not look like a timed caption
block (style blocks, metadata, truncated cues) is dropped without error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from gifclip.errors import ReadError
from gifclip.logging import get_logger

logger = get_logger(__name__)

# 00:01:23,456 --> 00:01:25,789 (a dot is accepted as the fraction separator)
TIMING_PATTERN = re.compile(
    r"(\d{2}):(\d{2}):(\d{2})[,.](\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2})[,.](\d{3})"
)

# Removed by literal substring replacement, not HTML parsing
EMPHASIS_TAGS = ("<i>", "</i>", "<b>", "</b>", "<u>", "</u>")


@dataclass(frozen=True)
class SubtitleEntry:
    """A single timed caption.

    Attributes:
        start: Start time in seconds
        end: End time in seconds
        text: Caption text flattened to one line, emphasis tags removed
    """

    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        """Duration of the caption in seconds."""
        return self.end - self.start


def timecode_to_seconds(hours: str, minutes: str, seconds: str, millis: str) -> float:
    """Convert timecode fields to seconds."""
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds) + int(millis) / 1000


def strip_emphasis(text: str) -> str:
    """Remove italic/bold/underline open and close tags."""
    for tag in EMPHASIS_TAGS:
        text = text.replace(tag, "")
    return text


def _parse_block(block: str) -> SubtitleEntry | None:
    # Only "\n" separates lines; a trailing newline does not start a new one
    lines = block.split("\n")
    if lines[-1] == "":
        lines.pop()
    if len(lines) < 3:
        return None

    # The index line is optional, so take the first line that looks like timing
    for i, line in enumerate(lines):
        match = TIMING_PATTERN.search(line)
        if match:
            break
    else:
        return None

    groups = match.groups()
    start = timecode_to_seconds(*groups[:4])
    end = timecode_to_seconds(*groups[4:])

    text = strip_emphasis(" ".join(lines[i + 1 :])).strip()
    if not text:
        return None

    return SubtitleEntry(start=start, end=end, text=text)


def parse_srt(content: str) -> list[SubtitleEntry]:
    """Parse SubRip content into subtitle entries.

    Blocks are separated by blank lines and kept in file order. Blocks with
    fewer than three lines, no timing line, or no text are skipped.

    Args:
        content: Raw subtitle file content

    Returns:
        List of SubtitleEntry objects in the order they appear
    """
    content = content.replace("\r\n", "\n")

    entries = []
    skipped = 0
    for block in content.split("\n\n"):
        entry = _parse_block(block)
        if entry is None:
            if block.strip():
                skipped += 1
            continue
        entries.append(entry)

    logger.debug(
        f"Parsed {len(entries)} subtitle entries",
        extra={"skipped_blocks": skipped},
    )
    return entries


def load_srt(path: str | Path) -> list[SubtitleEntry]:
    """Read and parse a SubRip file.

    Args:
        path: Path to the .srt file

    Returns:
        List of SubtitleEntry objects

    Raises:
        ReadError: If the file cannot be read
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise ReadError(
            f"Failed to read subtitle file: {path}",
            context={"path": str(path), "reason": e.strerror or str(e)},
        ) from e

    return parse_srt(content)
