"""Clip orchestration.

Ties the pieces together for one clip: obtain the video and its subtitles,
work out the time range (manual timestamps or dialogue), then encode.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from gifclip.downloader import YtDlp, find_sidecar_subtitle, find_subtitle_file, is_url
from gifclip.errors import ClipRequestError, ReadError, TimestampError, ToolNotFoundError
from gifclip.ffmpeg import EncodeSettings, FFmpegWrapper
from gifclip.logging import get_logger
from gifclip.subtitles import Padding, ResolvedRange, load_srt, resolve_quote, resolve_range
from gifclip.timestamps import default_output_name, parse_timestamp

logger = get_logger(__name__)


class ClipMode(str, Enum):
    """How the clip bounds are specified."""

    MANUAL = "manual"  # start/end timestamps
    QUOTE = "quote"  # one line of dialogue
    RANGE = "range"  # from one line of dialogue to another


class ClipRequest(BaseModel):
    """Everything needed to produce one clip."""

    source: str
    start: str | None = None
    end: str | None = None
    quote: str | None = None
    from_quote: str | None = None
    to_quote: str | None = None
    padding: Padding = Field(default_factory=Padding)
    output: Path | None = None
    encode: EncodeSettings = Field(default_factory=EncodeSettings)
    lang: str = "en"
    # Only disables burning captions in; dialogue lookup still reads them
    no_subs: bool = False

    @property
    def mode(self) -> ClipMode:
        """Work out the clip mode from the given options.

        Raises:
            ClipRequestError: If the options do not describe exactly one mode
        """
        manual = self.start is not None or self.end is not None
        quote = self.quote is not None
        dialogue_range = self.from_quote is not None or self.to_quote is not None

        if sum((manual, quote, dialogue_range)) != 1:
            raise ClipRequestError(
                "Specify either START and END, --quote, or --from and --to"
            )
        if manual and (self.start is None or self.end is None):
            raise ClipRequestError("Both START and END timestamps are required")
        if dialogue_range and (self.from_quote is None or self.to_quote is None):
            raise ClipRequestError("--from and --to must be used together")

        for text in (self.quote, self.from_quote, self.to_quote):
            if text is not None and not text.strip():
                raise ClipRequestError("Dialogue query cannot be empty")

        if manual:
            return ClipMode.MANUAL
        if quote:
            return ClipMode.QUOTE
        return ClipMode.RANGE

    @property
    def needs_subtitles(self) -> bool:
        return self.mode != ClipMode.MANUAL or not self.no_subs


@dataclass
class ClipResult:
    """Outcome of a clip job.

    Attributes:
        output: Path of the rendered clip
        title: Source video title
        clip_range: Time range that was encoded
        subtitles_burned: Whether captions were burned in
    """

    output: Path
    title: str
    clip_range: ResolvedRange
    subtitles_burned: bool


@dataclass
class SourceMedia:
    video: Path
    title: str
    subtitles: Path | None


class ClipJob:
    """Produces a single clip from a ClipRequest.

    Example usage:
        job = ClipJob(request, FFmpegWrapper(ffmpeg), YtDlp(ytdlp))
        result = job.run()
    """

    def __init__(
        self,
        request: ClipRequest,
        ffmpeg: FFmpegWrapper,
        ytdlp: YtDlp | None = None,
    ) -> None:
        self.request = request
        self.ffmpeg = ffmpeg
        self.ytdlp = ytdlp

    def run(self) -> ClipResult:
        """Acquire the source, resolve the range and encode.

        Raises:
            GifclipError: Any failure along the way
        """
        mode = self.request.mode

        # Validate manual timestamps before downloading anything
        manual_range = self._manual_range() if mode == ClipMode.MANUAL else None

        with tempfile.TemporaryDirectory(prefix="gifclip-") as tmp:
            media = self._acquire(Path(tmp), mode)

            if manual_range is not None:
                clip_range = manual_range
            else:
                clip_range = self._dialogue_range(mode, media.subtitles)

            logger.info(
                f"Clipping {clip_range.duration:.1f}s",
                extra={"start": round(clip_range.start, 3), "end": round(clip_range.end, 3)},
            )

            output = self.request.output or Path(
                default_output_name(
                    media.title,
                    clip_range.start,
                    clip_range.end,
                    self.request.encode.format.value,
                )
            )

            burn = None if self.request.no_subs else media.subtitles
            self.ffmpeg.encode(
                media.video,
                output,
                clip_range.start,
                clip_range.duration,
                self.request.encode,
                burn,
            )

        return ClipResult(
            output=output,
            title=media.title,
            clip_range=clip_range,
            subtitles_burned=burn is not None,
        )

    def _manual_range(self) -> ResolvedRange:
        start = parse_timestamp(self.request.start)
        end = parse_timestamp(self.request.end)
        if end <= start:
            raise TimestampError(
                "End time must be after start time",
                context={"start": start, "end": end},
            )
        return ResolvedRange(start=start, end=end)

    def _dialogue_range(self, mode: ClipMode, subtitles: Path | None) -> ResolvedRange:
        if subtitles is None:
            raise ReadError(
                "No subtitles found; dialogue mode needs a subtitle track",
                context={"lang": self.request.lang},
            )

        entries = load_srt(subtitles)
        if mode == ClipMode.QUOTE:
            return resolve_quote(entries, self.request.quote, self.request.padding)
        return resolve_range(
            entries,
            self.request.from_quote,
            self.request.to_quote,
            self.request.padding,
        )

    def _acquire(self, workdir: Path, mode: ClipMode) -> SourceMedia:
        if is_url(self.request.source):
            media = self._acquire_remote(workdir)
        else:
            media = self._acquire_local(workdir)

        # Dialogue modes raise ReadError on missing subtitles instead
        if mode == ClipMode.MANUAL and not self.request.no_subs and media.subtitles is None:
            logger.warning(
                "No subtitles found, proceeding without them",
                extra={"lang": self.request.lang},
            )
        return media

    def _acquire_remote(self, workdir: Path) -> SourceMedia:
        if self.ytdlp is None:
            raise ToolNotFoundError("yt-dlp", "yt-dlp is required for URL sources")

        url = self.request.source
        title = self.ytdlp.get_title(url)
        logger.info(f"Video: {title}")

        want_subs = self.request.needs_subtitles
        video = self.ytdlp.download(url, workdir, lang=self.request.lang, with_subs=want_subs)
        subtitles = find_subtitle_file(workdir, self.request.lang) if want_subs else None
        return SourceMedia(video=video, title=title, subtitles=subtitles)

    def _acquire_local(self, workdir: Path) -> SourceMedia:
        video = Path(self.request.source).expanduser()
        if not video.is_file():
            raise ReadError(f"Video file not found: {video}", context={"path": str(video)})

        subtitles = None
        if self.request.needs_subtitles:
            subtitles = find_sidecar_subtitle(video, self.request.lang)
            if subtitles is None:
                subtitles = self.ffmpeg.extract_subtitles(
                    video, workdir / f"subs.{self.request.lang}.srt", self.request.lang
                )
        return SourceMedia(video=video, title=video.stem, subtitles=subtitles)
