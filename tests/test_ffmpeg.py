"""Tests for ffmpeg command building and execution."""

import logging
import subprocess
from unittest.mock import patch

import pytest

from gifclip.errors import ExternalToolError, ToolNotFoundError
from gifclip.ffmpeg import (
    EncodeSettings,
    FFmpegWrapper,
    OutputFormat,
    build_encode_args,
    build_filter_chain,
    build_subtitle_filter,
    escape_filter_path,
)
from gifclip.logging import LogConfig, LogLevel, configure_logging


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestEncodeSettings:
    """Tests for quality mapping."""

    def test_defaults(self):
        settings = EncodeSettings()

        assert settings.format == OutputFormat.GIF
        assert settings.width == 480
        assert settings.fps == 15
        assert settings.quality == 80

    def test_quality_mapping_default(self):
        settings = EncodeSettings(quality=80)

        assert settings.gif_max_colors == 208
        assert settings.webm_crf == 21
        assert settings.mp4_crf == 19

    def test_quality_mapping_max(self):
        settings = EncodeSettings(quality=100)

        assert settings.gif_max_colors == 256
        assert settings.webm_crf == 10
        assert settings.mp4_crf == 10

    def test_quality_bounds(self):
        with pytest.raises(ValueError):
            EncodeSettings(quality=0)
        with pytest.raises(ValueError):
            EncodeSettings(quality=101)

    def test_format_from_string(self):
        assert EncodeSettings(format="webm").format == OutputFormat.WEBM


class TestFilters:
    """Tests for filter string building."""

    def test_escape_filter_path(self):
        assert escape_filter_path(r"C:\subs\it's.srt") == r"C\:\\subs\\it\'s.srt"

    def test_subtitle_filter(self):
        assert build_subtitle_filter("/tmp/video.en.srt") == "subtitles='/tmp/video.en.srt'"
        assert build_subtitle_filter(None) is None

    def test_gif_chain_with_palette(self):
        chain = build_filter_chain(EncodeSettings(width=320, fps=10, quality=100))

        assert chain == (
            "fps=10,scale=320:-1:flags=lanczos,split[s0][s1];"
            "[s0]palettegen=max_colors=256[p];[s1][p]paletteuse=dither=bayer"
        )

    def test_subtitles_come_first(self):
        chain = build_filter_chain(EncodeSettings(format=OutputFormat.MP4), "/tmp/s.srt")

        assert chain == "subtitles='/tmp/s.srt',fps=15,scale=480:-1"


class TestBuildEncodeArgs:
    """Tests for full argument lists."""

    def test_seek_after_input(self):
        """Test -ss follows -i so burned subtitles use source timestamps."""
        args = build_encode_args("in.mp4", "out.gif", 8.0, 6.5, EncodeSettings())

        assert args.index("-i") < args.index("-ss")
        assert args[args.index("-ss") + 1] == "8.000"
        assert args[args.index("-t") + 1] == "6.500"
        assert args[-1] == "out.gif"
        assert args[0] == "-y"

    def test_gif_has_no_codec_args(self):
        args = build_encode_args("in.mp4", "out.gif", 0, 1, EncodeSettings())
        assert "-c:v" not in args

    def test_webm(self):
        settings = EncodeSettings(format=OutputFormat.WEBM)
        args = build_encode_args("in.mp4", "out.webm", 0, 1, settings)

        assert args[args.index("-c:v") + 1] == "libvpx-vp9"
        assert args[args.index("-crf") + 1] == "21"
        assert args[args.index("-b:v") + 1] == "0"
        assert "-an" in args

    def test_mp4(self):
        settings = EncodeSettings(format=OutputFormat.MP4)
        args = build_encode_args("in.mp4", "out.mp4", 0, 1, settings, "/tmp/s.srt")

        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-crf") + 1] == "19"
        assert args[args.index("-preset") + 1] == "medium"
        assert args[args.index("-movflags") + 1] == "+faststart"
        assert args[args.index("-vf") + 1].startswith("subtitles=")


class TestFFmpegWrapper:
    """Tests for running ffmpeg."""

    def test_encode_success(self, tmp_path):
        output = tmp_path / "clips" / "out.gif"

        def fake_run(cmd, **kwargs):
            output.write_bytes(b"GIF89a")
            return completed()

        wrapper = FFmpegWrapper("/usr/bin/ffmpeg")
        with patch("gifclip.ffmpeg.subprocess.run", side_effect=fake_run) as run:
            result = wrapper.encode("in.mp4", output, 1.0, 2.0, EncodeSettings())

        assert result == output
        assert run.call_args[0][0][0] == "/usr/bin/ffmpeg"

    def test_encode_failure(self, tmp_path):
        wrapper = FFmpegWrapper("ffmpeg")
        with patch(
            "gifclip.ffmpeg.subprocess.run",
            return_value=completed(returncode=1, stderr="banner\nNo such filter: 'subtitles'"),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                wrapper.encode("in.mp4", tmp_path / "out.gif", 0, 1, EncodeSettings())

        assert exc_info.value.returncode == 1
        assert "No such filter" in exc_info.value.message

    def test_encode_no_output(self, tmp_path):
        wrapper = FFmpegWrapper("ffmpeg")
        with patch("gifclip.ffmpeg.subprocess.run", return_value=completed()):
            with pytest.raises(ExternalToolError):
                wrapper.encode("in.mp4", tmp_path / "out.gif", 0, 1, EncodeSettings())

    def test_missing_binary(self, tmp_path):
        wrapper = FFmpegWrapper("/nope/ffmpeg")
        with patch("gifclip.ffmpeg.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ToolNotFoundError):
                wrapper.encode("in.mp4", tmp_path / "out.gif", 0, 1, EncodeSettings())

    def test_extract_subtitles_falls_back_to_first_track(self, tmp_path):
        dest = tmp_path / "subs.en.srt"
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            if "0:s:0" in cmd:
                dest.write_text("1\n00:00:01,000 --> 00:00:02,000\nhi\n")
                return completed()
            return completed(returncode=1, stderr="Stream map matches no streams")

        wrapper = FFmpegWrapper("ffmpeg")
        with patch("gifclip.ffmpeg.subprocess.run", side_effect=fake_run):
            result = wrapper.extract_subtitles("movie.mkv", dest, "en")

        assert result == dest
        assert "0:s:m:language:en" in calls[0]
        assert len(calls) == 2

    def test_extract_subtitles_none_available(self, tmp_path):
        wrapper = FFmpegWrapper("ffmpeg")
        with patch("gifclip.ffmpeg.subprocess.run", return_value=completed(returncode=1)):
            assert wrapper.extract_subtitles("movie.mkv", tmp_path / "s.srt", "en") is None


class TestFFmpegDebugLogging:
    """Tests for running ffmpeg with debug logging on."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        configure_logging(LogConfig())

    def test_run_at_debug_level(self):
        configure_logging(LogConfig(level=LogLevel.DEBUG))
        wrapper = FFmpegWrapper("ffmpeg")

        with patch("gifclip.ffmpeg.subprocess.run", return_value=completed(stdout="ffmpeg version")):
            result = wrapper._run_ffmpeg(["-version"])

        assert result.returncode == 0

    def test_command_written_to_log_file(self, tmp_path):
        log_file = tmp_path / "gifclip.log"
        configure_logging(LogConfig(log_file=log_file))
        wrapper = FFmpegWrapper("ffmpeg")

        with patch("gifclip.ffmpeg.subprocess.run", return_value=completed()):
            wrapper._run_ffmpeg(["-version"])
        for handler in logging.getLogger("gifclip").handlers:
            handler.flush()

        assert "command=-version" in log_file.read_text(encoding="utf-8")
