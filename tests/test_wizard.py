"""Tests for interactive setup."""

from unittest.mock import patch

import pytest
from rich.console import Console

from gifclip.config import Settings, ToolSource, load_settings
from gifclip.tools import ToolInfo
from gifclip.wizard import ensure_setup, run_setup


@pytest.fixture(autouse=True)
def gifclip_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("GIFCLIP_HOME", str(home))
    return home


@pytest.fixture
def console():
    return Console(quiet=True)


def tools(ytdlp=True, ffmpeg=True):
    return {
        "yt-dlp": ToolInfo("yt-dlp", "/usr/bin/yt-dlp" if ytdlp else None, "system", ytdlp),
        "ffmpeg": ToolInfo("ffmpeg", "/usr/bin/ffmpeg" if ffmpeg else None, "system", ffmpeg),
    }


class TestRunSetup:
    """Tests for run_setup."""

    def test_system_tools_chosen(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools()), patch(
            "gifclip.wizard.ensure_managed_tools"
        ) as install:
            settings = run_setup(console, prompt=lambda *a, **k: "1")

        assert settings.tool_source == ToolSource.SYSTEM
        assert load_settings().tool_source == ToolSource.SYSTEM
        install.assert_not_called()

    def test_missing_tools_default_to_managed(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools(ytdlp=False)), patch(
            "gifclip.wizard.ensure_managed_tools"
        ) as install:
            settings = run_setup(console, prompt=lambda *a, **k: "1")

        assert settings.tool_source == ToolSource.MANAGED
        install.assert_called_once()

    def test_missing_tools_user_installs(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools(ffmpeg=False)):
            settings = run_setup(console, prompt=lambda *a, **k: "2")

        assert settings.tool_source == ToolSource.SYSTEM


class TestEnsureSetup:
    """Tests for ensure_setup."""

    def test_ready(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools()), patch(
            "gifclip.wizard.run_setup"
        ) as setup:
            settings = ensure_setup(console)

        assert settings.tool_source == ToolSource.SYSTEM
        setup.assert_not_called()

    def test_only_required_tools_checked(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools(ytdlp=False)), patch(
            "gifclip.wizard.run_setup"
        ) as setup:
            ensure_setup(console, required=("ffmpeg",))

        setup.assert_not_called()

    def test_managed_reinstalls(self, console):
        from gifclip.config import save_settings

        save_settings(Settings(tool_source=ToolSource.MANAGED))
        with patch("gifclip.wizard.check_tools", return_value=tools(ytdlp=False)), patch(
            "gifclip.wizard.ensure_managed_tools"
        ) as install:
            settings = ensure_setup(console)

        assert settings.tool_source == ToolSource.MANAGED
        install.assert_called_once()

    def test_system_missing_runs_setup(self, console):
        with patch("gifclip.wizard.check_tools", return_value=tools(ffmpeg=False)), patch(
            "gifclip.wizard.run_setup", return_value=Settings()
        ) as setup:
            ensure_setup(console)

        setup.assert_called_once()
