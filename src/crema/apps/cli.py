"""CLI entry point for crema.

Runs one voice command against a seeded in-memory store so the whole
pipeline can be exercised from a terminal:

    crema "log shot 18 in 36 out 28 seconds rated 3"
    crema --normalize-only "does eighteen grand five point five"
    crema --list-tools
"""

import argparse
import asyncio
import dataclasses

from rich.console import Console
from rich.table import Table


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Interpret an espresso voice command and run it against a demo store"
    )
    parser.add_argument(
        "transcript",
        nargs="*",
        help="Transcript text, as speech-to-text produced it",
    )
    parser.add_argument(
        "--normalize-only",
        action="store_true",
        help="Print the normalized transcript and exit",
    )
    parser.add_argument(
        "--list-tools", action="store_true", help="List the available tools"
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Cloud model (litellm model string). Falls back to ai.cloud_model in config.json.",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="JSON config file (default: ~/.config/crema/config.json)",
    )
    return parser


class ConsoleNavigator:
    """Navigator that reports page changes on the console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def navigate(self, route: str) -> None:
        self.console.print(f"[dim]→ navigate {route}[/dim]")


def list_tools(console: Console) -> None:
    """Display the tool registry."""
    from crema.tools import build_registry

    table = Table(title="Voice Command Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Parameters", style="white")
    for tool in build_registry():
        params = ", ".join(
            p.name if p.required else f"{p.name}?" for p in tool.parameters
        )
        table.add_row(tool.name, tool.kind.value, params)
    console.print(table)


def _run_command(args: argparse.Namespace, transcript: str, console: Console) -> int:
    from crema.api import build_service
    from crema.apps.config import load_config
    from crema.domain.memory import InMemoryStore, seed_demo

    config = load_config(args.config_file)
    if args.model:
        config = dataclasses.replace(
            config, ai=dataclasses.replace(config.ai, cloud_model=args.model)
        )

    store = seed_demo(InMemoryStore())
    service = build_service(
        store.services(navigator=ConsoleNavigator(console)), config
    )
    outcome = asyncio.run(service.process_command(transcript))

    style = "green" if outcome.success else "red"
    console.print(f"[{style}]{outcome.message}[/{style}]")
    return 0 if outcome.success else 1


def main() -> int:
    """CLI entry point. Returns exit code."""
    from crema.core.env import setup_logging

    setup_logging()

    parser = build_arg_parser()
    args = parser.parse_args()
    console = Console()

    if args.list_tools:
        list_tools(console)
        return 0

    transcript = " ".join(args.transcript).strip()
    if not transcript:
        parser.error("no transcript given")

    if args.normalize_only:
        from crema.apps.config import load_config
        from crema.core.text import Normalizer

        config = load_config(args.config_file)
        console.print(Normalizer(config.vocabulary.corrections)(transcript))
        return 0

    return _run_command(args, transcript, console)
