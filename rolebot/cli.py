"""
Command-line interface for role orchestration.

This module provides a CLI for routing requests through a configured
capability registry from the terminal, listing capabilities, and cleaning up
stored conversation state.
"""

import asyncio
from datetime import timedelta
import json
import logging
from pathlib import Path
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .capabilities import CapabilityRegistry, default_factories
from .config import RegistrySettings, load_registry_settings
from .errors import ConfigurationError
from .models import ExecutionMode, OrchestrationConfig, RequestContext, Response
from .orchestration import CapabilityOrchestrator
from .state import FileStateBackend, StateStore

console = Console()


def setup_logging(verbose: int = 0) -> None:
    """
    Configure logging for CLI runs.

    Args:
        verbose: 0 = warnings only, 1 = info, 2+ = debug
    """
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def load_settings_or_exit(config: Path) -> RegistrySettings:
    try:
        return load_registry_settings(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def create_state_store(settings: RegistrySettings) -> Optional[StateStore]:
    """File-backed state store, or None when persistence is disabled."""
    if not settings.enable_state_persistence:
        return None
    return StateStore(FileStateBackend(settings.state_directory))


async def build_registry(settings: RegistrySettings) -> CapabilityRegistry:
    """Registry with every capability of the settings document registered."""
    registry = CapabilityRegistry()
    try:
        await registry.load_from_settings(settings, default_factories())
    except Exception:
        await registry.dispose_all()
        raise
    return registry


def build_run_config(
    settings: RegistrySettings,
    mode: Optional[str],
    tags: Tuple[str, ...],
    exclude_tags: Tuple[str, ...],
    roles: Tuple[str, ...],
    stop_on_failure: bool,
) -> OrchestrationConfig:
    """Overlay CLI options on the settings' orchestration defaults."""
    defaults = settings.orchestration_defaults()
    return defaults.model_copy(
        update={
            "execution_mode": ExecutionMode(mode) if mode else defaults.execution_mode,
            "required_tags": list(tags) or None,
            "excluded_tags": list(exclude_tags) or None,
            "specific_roles": list(roles) or None,
            "stop_on_first_failure": stop_on_failure,
        }
    )


async def process_lines(
    lines: List[str],
    settings: RegistrySettings,
    config: OrchestrationConfig,
    conversation_id: str,
    user_id: str,
    verbose: int,
) -> List[Tuple[str, Response, str]]:
    """
    Route each line through a freshly built registry.

    Returns:
        ``(input, response, timing summary)`` per line, in input order
    """
    registry = await build_registry(settings)
    orchestrator = CapabilityOrchestrator(
        registry,
        state_store=create_state_store(settings),
        default_config=config,
        response_timeout=settings.response_timeout_seconds,
        verbose=verbose,
    )

    results = []
    try:
        for text in lines:
            context = RequestContext(input=text, conversation_id=conversation_id, user_id=user_id)
            response = await orchestrator.process(context)
            results.append((text, response, orchestrator.format_timing_summary()))
    finally:
        await registry.dispose_all()

    return results


def display_response(text: str, response: Response, timings: str, verbose: int) -> None:
    """Print one response as a rich panel."""
    panel_lines = [escape(response.content) if response.content else "(no content)"]

    if verbose:
        executed = response.metadata.get(
            "executed_capabilities", [response.metadata.get("executed_capability", "-")]
        )
        panel_lines.append(f"\n[bold]Capabilities:[/bold] {', '.join(map(str, executed))}")
        panel_lines.append(f"[bold]Timing:[/bold]\n{timings}")

    if response.metadata.get("error"):
        panel_lines.append(f"\n[bold]Error:[/bold] {escape(str(response.metadata['error']))}")

    console.print(
        Panel(
            "\n".join(panel_lines),
            title=f"Input: {escape(text[:50])}...",
            border_style="green" if response.is_complete else "yellow",
        )
    )


@click.group()
def main():
    """Route requests to pluggable bot capabilities."""


@main.command()
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to registry JSON file",
)
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in ExecutionMode]),
    default=None,
    help="Execution mode (defaults to the registry's default mode)",
)
@click.option("--tag", "tags", multiple=True, help="Required tag (repeatable)")
@click.option("--exclude-tag", "exclude_tags", multiple=True, help="Excluded tag (repeatable)")
@click.option("--role", "roles", multiple=True, help="Run these capability ids in order")
@click.option("--conversation-id", default="", help="Conversation id for persisted state")
@click.option("--user-id", default="", help="User id recorded with the state")
@click.option("--stop-on-failure", is_flag=True, help="Stop multi-step runs on a failed step")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Optional JSON output file",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v, -vv)")
def run(
    config: Path,
    mode: Optional[str],
    tags: Tuple[str, ...],
    exclude_tags: Tuple[str, ...],
    roles: Tuple[str, ...],
    conversation_id: str,
    user_id: str,
    stop_on_failure: bool,
    output: Optional[Path],
    verbose: int,
):
    """
    Process requests read from stdin (one per line).

    Examples:

        echo "Can you help me?" | rolebot run --config registry.json -v

        echo "Summarize this please" | rolebot run --config registry.json \\
            --mode sequential --tag summarization --tag response
    """
    setup_logging(verbose)

    lines = [line.strip() for line in sys.stdin if line.strip()]

    if not lines:
        console.print("[yellow]No input text provided on stdin[/yellow]")
        return

    settings = load_settings_or_exit(config)
    run_config = build_run_config(settings, mode, tags, exclude_tags, roles, stop_on_failure)

    console.print(
        f"[cyan]Processing {len(lines)} request(s) in {run_config.execution_mode.value} mode[/cyan]"
    )

    try:
        results = asyncio.run(
            process_lines(lines, settings, run_config, conversation_id, user_id, verbose)
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    for text, response, timings in results:
        display_response(text, response, timings, verbose)

    if output:
        payload = [
            {"input": text, "response": response.model_dump(mode="json")}
            for text, response, _ in results
        ]
        with open(output, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        console.print(f"[green]Results saved to {output}[/green]")


@main.command(name="list")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to registry JSON file",
)
def list_command(config: Path):
    """List the capabilities defined in a registry file."""
    setup_logging()
    settings = load_settings_or_exit(config)

    async def describe_all():
        registry = await build_registry(settings)
        try:
            return [capability.describe() for capability in registry.get_all()]
        finally:
            await registry.dispose_all()

    try:
        descriptions = asyncio.run(describe_all())
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if not descriptions:
        console.print("[yellow]No capabilities configured[/yellow]")
        return

    lines = [
        f"  • {d['id']} ({d['name']}): priority={d['priority']}, tags={', '.join(d['tags'])}"
        for d in descriptions
    ]
    console.print(Panel("\n".join(lines), title=f"Capabilities: {config}", border_style="blue"))


@main.command()
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to registry JSON file",
)
@click.option(
    "--max-age-hours",
    type=float,
    default=None,
    help="Delete state older than this (defaults to cleanupIntervalHours)",
)
def cleanup(config: Path, max_age_hours: Optional[float]):
    """Delete stored conversation state older than a given age."""
    setup_logging()
    settings = load_settings_or_exit(config)

    store = create_state_store(settings)
    if store is None:
        console.print("[yellow]State persistence is disabled, nothing to clean up[/yellow]")
        return

    hours = max_age_hours if max_age_hours is not None else settings.cleanup_interval_hours
    deleted = store.cleanup_older_than(timedelta(hours=hours))

    console.print(f"[green]Removed {deleted} conversation state(s) older than {hours}h[/green]")


if __name__ == "__main__":
    main()
