"""Subtitle parsing and dialogue lookup.

Parses SubRip files into timed entries and resolves quotes to clip ranges.
"""

from gifclip.subtitles.parser import SubtitleEntry, load_srt, parse_srt
from gifclip.subtitles.dialogue import (
    Padding,
    ResolvedRange,
    find_dialogue,
    resolve_quote,
    resolve_range,
)

__all__ = [
    "SubtitleEntry",
    "load_srt",
    "parse_srt",
    "Padding",
    "ResolvedRange",
    "find_dialogue",
    "resolve_quote",
    "resolve_range",
]
