"""Command-line interface for auto-anki."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import Settings, load_config, save_config, find_config, default_search_paths
from .core.exceptions import (
    AuthenticationError,
    AutoAnkiError,
    ConfigError,
    ControlApiUnreachableError,
    AnkiConnectError,
    EmptyInputError,
    NoValidRecordsError,
    ProviderError,
    TransportError,
)
from .core.models import RunSummary
from .generation import get_provider
from .generation.prompts import load_prompt
from .orchestrator import ExportOrchestrator
from .status import PipelineState, StatusReporter
from .sync.anki_connect import AnkiConnectClient, FlashcardSyncClient

# Rich console for enhanced output
console = Console()

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    PipelineState.IDLE: "[green]✓ auto-anki[/green]",
    PipelineState.RUNNING: "[cyan]⟳ auto-anki: exporting...[/cyan]",
    PipelineState.ERROR: "[red]! auto-anki: error[/red]",
}


def setup_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def describe_error(error: AutoAnkiError) -> str:
    """User-facing notice for a failed export."""
    if isinstance(error, EmptyInputError):
        return str(error)
    if isinstance(error, AuthenticationError):
        return "The API key was rejected: check your API key."
    if isinstance(error, ProviderError):
        return f"The provider returned an error (status {error.status_code}): {error}"
    if isinstance(error, TransportError):
        return f"Could not reach the provider, check your connection. ({error})"
    if isinstance(error, NoValidRecordsError):
        return "The model's answer could not be turned into flashcards. Try again."
    return str(error)


def render_summary(summary: RunSummary, deck_name: str) -> None:
    if summary.unreachable:
        console.print(Panel.fit(
            f"Could not connect to Anki. Start Anki with the AnkiConnect add-on enabled.\n"
            f"{len(summary.skipped)} card(s) were not sent.",
            title="[bold red]Export failed[/bold red]",
            border_style="red",
        ))
        return

    style = "green" if not summary.failed else "yellow"
    console.print(Panel.fit(
        f"[bold]Deck:[/bold] {deck_name}\n"
        f"[bold]Delivered:[/bold] {summary.delivered}/{summary.attempted}\n"
        f"[bold]Rejected:[/bold] {len(summary.failed)}",
        title=f"[bold {style}]Export finished[/bold {style}]",
        border_style=style,
    ))

    if summary.failed:
        table = Table(title="Rejected cards")
        table.add_column("Question", style="cyan")
        table.add_column("Reason", style="red")
        for record, reason in summary.failed:
            table.add_row(record.question, reason)
        console.print(table)

    if summary.parse_failures:
        console.print(
            f"[yellow]{len(summary.parse_failures)} generated question(s) were malformed and dropped.[/yellow]"
        )


async def run_export(settings: Settings, source_text: str, selection: bool, **overrides) -> RunSummary:
    """Build the pipeline for one run and execute it."""
    snapshot = settings.snapshot(source_text, selection=selection, **overrides)
    template = None
    if settings.prompt_file:
        try:
            template = load_prompt(settings.prompt_file)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load prompt file {settings.prompt_file}: {e}", config_key="prompt_file")

    reporter = StatusReporter()
    reporter.subscribe(lambda state: console.print(STATUS_ICONS[state]))

    provider = get_provider(snapshot)
    sync_client = FlashcardSyncClient.for_port(snapshot.control_api_port)
    try:
        orchestrator = ExportOrchestrator(provider, sync_client, reporter, template)
        return await orchestrator.run(source_text, snapshot)
    finally:
        await provider.aclose()
        await sync_client.aclose()


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """auto-anki - Turn notes into Anki flashcards with an LLM.

    \b
    QUICK START:
        auto-anki config set api_key sk-...
        auto-anki export notes.md --questions 5 --alternatives 3

    Anki must be running with the AnkiConnect add-on installed.
    """
    pass


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'))
@click.option('--selection', is_flag=True,
              help='Treat the input as a text selection (uses the selection defaults)')
@click.option('--deck', type=str, help='Anki deck to add the cards to')
@click.option('-n', '--questions', type=click.IntRange(min=0), help='Number of questions to generate')
@click.option('-a', '--alternatives', type=click.IntRange(min=0),
              help='Wrong alternatives per question (0 = answer only)')
@click.option('--port', type=click.IntRange(min=1), help='AnkiConnect port')
@click.option('--model', type=str, help='Model name (e.g., gpt-3.5-turbo, gpt-4o-mini)')
@click.option('-c', '--config', type=click.Path(exists=True), help='Config file path')
@click.option('-v', '--verbose', is_flag=True, help='Verbose output')
def export(
    source,
    selection: bool,
    deck: Optional[str],
    questions: Optional[int],
    alternatives: Optional[int],
    port: Optional[int],
    model: Optional[str],
    config: Optional[str],
    verbose: bool,
):
    """Generate flashcards from SOURCE and add them to Anki.

    SOURCE is a text or markdown file, or - to read standard input.

    Examples:
        # Whole file with the configured defaults
        auto-anki export notes.md

        # A pasted selection, three distractors per question
        pbpaste | auto-anki export - --selection -a 3
    """
    settings = _load_settings(config)
    setup_logging(settings.log_level, verbose)

    source_text = source.read()
    if not source_text.strip():
        console.print("[yellow]There is nothing in the file![/yellow]")
        sys.exit(1)

    try:
        summary = asyncio.run(run_export(
            settings,
            source_text,
            selection,
            deck_name=deck,
            num_questions=questions,
            num_alternatives=alternatives,
            control_api_port=port,
            model=model,
        ))
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)
    except AutoAnkiError as e:
        if isinstance(e, NoValidRecordsError):
            logger.debug(f"Unparsable response: {e.raw_response}")
        console.print(f"[red]Error:[/red] {describe_error(e)}")
        sys.exit(1)

    render_summary(summary, deck or settings.deck_name)
    if summary.unreachable:
        sys.exit(1)


@cli.group('config')
def config_group():
    """Show or change settings."""
    pass


@config_group.command('show')
@click.option('-c', '--config', type=click.Path(exists=True), help='Config file path')
def config_show(config: Optional[str]):
    """Show the effective settings."""
    settings = _load_settings(config)

    table = Table(title="auto-anki settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("api_key", settings.api_key_identifier)
    for key, value in _flatten(settings.to_dict()):
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@config_group.command('set')
@click.argument('key')
@click.argument('value')
@click.option('-c', '--config', type=click.Path(), help='Config file to write')
def config_set(key: str, value: str, config: Optional[str]):
    """Set KEY (dotted, e.g. sampling.temperature) to VALUE and save."""
    if config:
        path = Path(config)
    else:
        path = find_config() or default_search_paths()[-1]

    try:
        # A file that does not exist yet starts from defaults, not another config
        settings = load_config(str(path), use_env=False) if path.exists() else Settings()
        data = settings.to_dict(include_secret=True)
        _set_dotted(data, key, value)
        settings = Settings.from_dict(data)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    save_config(settings, str(path))
    shown = settings.api_key_identifier if key == "api_key" else value
    console.print(f"[green]✓[/green] {key} = {shown} (saved to {path})")


@cli.command()
@click.option('--port', type=click.IntRange(min=1), help='AnkiConnect port')
@click.option('-c', '--config', type=click.Path(exists=True), help='Config file path')
def ping(port: Optional[int], config: Optional[str]):
    """Check that AnkiConnect is reachable."""
    settings = _load_settings(config)
    port = port or settings.anki_connect_port

    async def _ping() -> int:
        async with AnkiConnectClient(f"http://localhost:{port}") as client:
            return await client.version()

    try:
        version = asyncio.run(_ping())
    except ControlApiUnreachableError:
        console.print(f"[red]✗[/red] AnkiConnect is not reachable on port {port}. Is Anki running?")
        sys.exit(1)
    except AnkiConnectError as e:
        console.print(f"[red]✗[/red] AnkiConnect error: {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] AnkiConnect version {version} on port {port}")


def _load_settings(config: Optional[str]) -> Settings:
    try:
        return load_config(config)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)


def _flatten(data: dict, prefix: str = ""):
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _flatten(value, f"{name}.")
        else:
            yield name, value


def _set_dotted(data: dict, key: str, value: str) -> None:
    """Set a dotted key in nested settings data, parsing the value as YAML."""
    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            raise ConfigError(f"Unknown setting: {key}", config_key=key)
        target = target[part]
    if parts[-1] not in target:
        raise ConfigError(f"Unknown setting: {key}", config_key=key)
    # Keys are secrets, never reinterpret them
    target[parts[-1]] = value if parts[-1] == "api_key" else yaml.safe_load(value)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
