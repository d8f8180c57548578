"""Interactive first-run setup.

Asks whether to use system yt-dlp/ffmpeg or managed copies, installs the
managed ones if needed, and saves the choice.
"""

from __future__ import annotations

from typing import Callable

import typer
from rich.console import Console

from gifclip.config import Settings, ToolSource, load_settings, save_settings, tools_dir
from gifclip.logging import get_logger
from gifclip.tools import check_tools, ensure_managed_tools

logger = get_logger(__name__)

Prompt = Callable[..., str]


def _ask_tool_source(console: Console, all_found: bool, prompt: Prompt) -> ToolSource:
    if all_found:
        console.print("  1. Use system tools (recommended if already installed)")
        console.print(f"  2. Download and manage tools in {tools_dir()}")
        choice = prompt("How would you like gifclip to access yt-dlp and ffmpeg?", default="1")
        return ToolSource.SYSTEM if str(choice).strip() == "1" else ToolSource.MANAGED

    console.print(f"  1. Download and manage tools in {tools_dir()} (recommended)")
    console.print("  2. I'll install them myself (use system PATH)")
    choice = prompt("How would you like to proceed?", default="1")
    return ToolSource.MANAGED if str(choice).strip() == "1" else ToolSource.SYSTEM


def run_setup(console: Console, prompt: Prompt = typer.prompt) -> Settings:
    """Run interactive setup and save the result.

    Args:
        console: Rich console for output
        prompt: Prompt function (``typer.prompt`` signature)

    Returns:
        The saved settings
    """
    console.print("[bold]gifclip setup[/bold]\n")

    settings = load_settings()
    system_tools = check_tools(settings.model_copy(update={"tool_source": ToolSource.SYSTEM}))
    all_found = all(info.available for info in system_tools.values())

    console.print("Found system installations:" if all_found else "System tools:")
    for name, info in system_tools.items():
        location = info.path if info.available else "[yellow]not found[/yellow]"
        console.print(f"  {name}: {location}")
    console.print()

    source = _ask_tool_source(console, all_found, prompt)
    settings = settings.model_copy(update={"tool_source": source})

    if source == ToolSource.MANAGED:
        console.print(f"\nInstalling tools to {tools_dir()}...")
        ensure_managed_tools(settings)
        console.print("[green]Tools installed successfully![/green]")

    path = save_settings(settings)
    console.print(f"\nConfiguration saved to {path}")
    logger.info("Saved settings", extra={"tool_source": source.value})
    return settings


def ensure_setup(
    console: Console,
    required: tuple[str, ...] = ("yt-dlp", "ffmpeg"),
    prompt: Prompt = typer.prompt,
) -> Settings:
    """Load settings, repairing or configuring tools if they are missing.

    Args:
        console: Rich console for output
        required: Tool names the current command needs
        prompt: Prompt function (``typer.prompt`` signature)

    Returns:
        Settings whose tools are available
    """
    settings = load_settings()
    tools = check_tools(settings)
    if all(tools[name].available for name in required):
        return settings

    if settings.tool_source == ToolSource.MANAGED:
        console.print("Managed tools missing, downloading...")
        ensure_managed_tools(settings)
        return settings

    console.print("gifclip requires yt-dlp and ffmpeg to work.\n")
    return run_setup(console, prompt)
