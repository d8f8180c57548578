"""Tests for settings and external tool location."""

import http.client
import json
from unittest.mock import MagicMock, patch

import pytest

from gifclip.config import (
    Settings,
    ToolSource,
    config_dir,
    load_settings,
    save_settings,
    settings_path,
    tools_dir,
)
from gifclip.errors import ConfigurationError, ExternalToolError, ToolNotFoundError
from gifclip.tools import (
    check_tools,
    ensure_managed_tools,
    find_ffmpeg,
    find_ytdlp,
    install_ytdlp,
    locate_ffmpeg,
    locate_ytdlp,
    ytdlp_download_url,
)


@pytest.fixture
def gifclip_home(tmp_path, monkeypatch):
    home = tmp_path / "gifclip-home"
    monkeypatch.setenv("GIFCLIP_HOME", str(home))
    return home


class TestSettingsPaths:
    """Tests for settings locations."""

    def test_env_override(self, gifclip_home):
        assert config_dir() == gifclip_home
        assert settings_path() == gifclip_home / "settings.json"
        assert tools_dir() == gifclip_home / "tools"

    def test_default_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GIFCLIP_HOME", raising=False)
        with patch("gifclip.config.Path.home", return_value=tmp_path):
            assert config_dir() == tmp_path / ".gifclip"


class TestLoadSaveSettings:
    """Tests for loading and saving settings."""

    def test_missing_file_gives_defaults(self, gifclip_home):
        settings = load_settings()

        assert settings.tool_source == ToolSource.SYSTEM
        assert settings.format == "gif"
        assert settings.width == 480
        assert settings.fps == 15
        assert settings.quality == 80
        assert settings.lang == "en"

    def test_save_and_load(self, gifclip_home):
        path = save_settings(Settings(tool_source=ToolSource.MANAGED, width=320))

        assert path == gifclip_home / "settings.json"
        assert json.loads(path.read_text())["tool_source"] == "managed"
        assert not (gifclip_home / "settings.json.tmp").exists()

        loaded = load_settings()
        assert loaded.tool_source == ToolSource.MANAGED
        assert loaded.width == 320

    def test_invalid_json(self, gifclip_home):
        gifclip_home.mkdir(parents=True)
        (gifclip_home / "settings.json").write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_invalid_values(self, gifclip_home):
        gifclip_home.mkdir(parents=True)
        (gifclip_home / "settings.json").write_text(json.dumps({"tool_source": "somewhere"}))

        with pytest.raises(ConfigurationError):
            load_settings()

    def test_non_object_json(self, gifclip_home):
        gifclip_home.mkdir(parents=True)
        (gifclip_home / "settings.json").write_text("[1, 2]")

        with pytest.raises(ConfigurationError):
            load_settings()


class TestLocateTools:
    """Tests for locating yt-dlp and ffmpeg."""

    def test_system_tools_found(self):
        with patch("gifclip.tools.shutil.which", side_effect=lambda name: f"/usr/bin/{name}"):
            tools = check_tools(Settings())

        assert tools["yt-dlp"].path == "/usr/bin/yt-dlp"
        assert tools["yt-dlp"].source == "system"
        assert tools["ffmpeg"].available

    def test_system_tool_missing(self):
        with patch("gifclip.tools.shutil.which", return_value=None):
            info = locate_ytdlp(Settings())

            assert not info.available
            assert info.source == "not_found"
            with pytest.raises(ToolNotFoundError) as exc_info:
                find_ytdlp(Settings())

        assert exc_info.value.tool == "yt-dlp"

    def test_managed_ytdlp(self, gifclip_home):
        settings = Settings(tool_source=ToolSource.MANAGED)
        with patch("gifclip.tools.platform.system", return_value="Linux"):
            assert not locate_ytdlp(settings).available

            (gifclip_home / "tools").mkdir(parents=True)
            (gifclip_home / "tools" / "yt-dlp").write_bytes(b"binary")

            assert find_ytdlp(settings) == str(gifclip_home / "tools" / "yt-dlp")

    def test_managed_ffmpeg_prefers_tools_dir(self, gifclip_home):
        settings = Settings(tool_source=ToolSource.MANAGED)
        (gifclip_home / "tools").mkdir(parents=True)
        (gifclip_home / "tools" / "ffmpeg").write_bytes(b"binary")

        with patch("gifclip.tools.platform.system", return_value="Linux"):
            info = locate_ffmpeg(settings)

        assert info.source == "managed"

    def test_managed_ffmpeg_falls_back_to_imageio(self, gifclip_home):
        settings = Settings(tool_source=ToolSource.MANAGED)

        with patch("gifclip.tools._get_ffmpeg_from_imageio", return_value="/site/imageio/ffmpeg"):
            info = locate_ffmpeg(settings)

        assert info.source == "imageio"
        assert info.path == "/site/imageio/ffmpeg"

    def test_managed_ffmpeg_missing(self, gifclip_home):
        settings = Settings(tool_source=ToolSource.MANAGED)

        with patch("gifclip.tools._get_ffmpeg_from_imageio", return_value=None):
            with pytest.raises(ToolNotFoundError):
                find_ffmpeg(settings)


class TestInstallYtdlp:
    """Tests for managed yt-dlp download."""

    @pytest.mark.parametrize(
        "system, asset",
        [
            ("Linux", "yt-dlp"),
            ("FreeBSD", "yt-dlp"),
            ("Darwin", "yt-dlp_macos"),
            ("Windows", "yt-dlp.exe"),
        ],
    )
    def test_download_url(self, system, asset):
        url = ytdlp_download_url(system)
        assert url == f"https://github.com/yt-dlp/yt-dlp/releases/latest/download/{asset}"

    def test_unsupported_platform(self):
        with pytest.raises(ConfigurationError):
            ytdlp_download_url("Plan9")

    def test_install_writes_executable(self, tmp_path):
        response = MagicMock()
        response.read.return_value = b"#!/bin/sh\n"
        response.__enter__.return_value = response

        with patch("gifclip.tools.platform.system", return_value="Linux"), patch(
            "gifclip.tools.urllib.request.urlopen", return_value=response
        ) as urlopen:
            dest = install_ytdlp(tmp_path / "tools")

        assert dest == tmp_path / "tools" / "yt-dlp"
        assert dest.read_bytes() == b"#!/bin/sh\n"
        assert dest.stat().st_mode & 0o111
        assert urlopen.call_args[0][0].endswith("/yt-dlp")

    def test_install_network_failure(self, tmp_path):
        import urllib.error

        with patch("gifclip.tools.platform.system", return_value="Linux"), patch(
            "gifclip.tools.urllib.request.urlopen",
            side_effect=urllib.error.URLError("offline"),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                install_ytdlp(tmp_path / "tools")

        assert exc_info.value.tool == "yt-dlp"

    def test_ensure_managed_tools_installs_missing_ytdlp(self, gifclip_home):
        settings = Settings(tool_source=ToolSource.MANAGED)

        with patch("gifclip.tools.install_ytdlp") as install, patch(
            "gifclip.tools._get_ffmpeg_from_imageio", return_value="/site/ffmpeg"
        ):
            ensure_managed_tools(settings)

        install.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [http.client.IncompleteRead(b"partial"), ConnectionResetError("reset by peer")],
    )
    def test_install_interrupted_read(self, tmp_path, error):
        response = MagicMock()
        response.read.side_effect = error
        response.__enter__.return_value = response

        with patch("gifclip.tools.platform.system", return_value="Linux"), patch(
            "gifclip.tools.urllib.request.urlopen", return_value=response
        ):
            with pytest.raises(ExternalToolError):
                install_ytdlp(tmp_path / "tools")

        assert not (tmp_path / "tools" / "yt-dlp").exists()

    def test_install_write_failure_leaves_nothing(self, tmp_path):
        response = MagicMock()
        response.read.return_value = b"#!/bin/sh\n"
        response.__enter__.return_value = response

        with patch("gifclip.tools.platform.system", return_value="Linux"), patch(
            "gifclip.tools.urllib.request.urlopen", return_value=response
        ), patch("gifclip.tools.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(ConfigurationError):
                install_ytdlp(tmp_path / "tools")

        assert list((tmp_path / "tools").iterdir()) == []
