#!/usr/bin/env python3
"""
FeedPress - Feed to Wiki Publishing Pipeline
============================================

Main application entry point with CLI interface for management and manual runs.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate settings
    python main.py show-config               # Show stored feeds and routes
    python main.py add-feed ID NAME URL -k ai -k llm
    python main.py add-route TOPIC SPACE     # Map a topic to a wiki space
    python main.py process                   # Run the pipeline once
    python main.py run-scheduler             # Run on the configured interval
    python main.py ledger                    # Show deduplication ledger
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedpress.config.settings import get_settings
from feedpress.scheduler.scheduled_trigger import ScheduledTrigger
from feedpress.services import build_services
from feedpress.utils.logging import configure_application_logging
from feedpress.utils.exceptions import FeedPressError

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(debug: bool = False) -> None:
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


def _run_action(envelope: dict) -> dict:
    """Send one action envelope through the action service and close resources."""
    async def run():
        services = build_services()
        try:
            return await services.actions.handle(envelope)
        finally:
            await services.close()

    return asyncio.run(run())


def _exit_on_error(response: dict) -> None:
    if "error" in response:
        console.print(f"[bold red]❌ {response['error']}[/bold red]")
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedPress - keyword-filtered feed publishing to a wiki."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    _setup_logging(debug)


@cli.command()
def check_config():
    """Validate settings and environment variables."""
    console.print("[bold blue]🔧 Checking FeedPress Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Storage", _check_storage_config),
            ("Logging", _check_logging_config),
            ("Wiki", _check_wiki_config),
            ("Fetching", _check_fetch_config),
        ]

        all_passed = True
        for name, check_func in checks:
            try:
                status, details = check_func(settings)
                table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
                if not status:
                    all_passed = False
            except Exception as e:
                table.add_row(name, "❌ Error", str(e))
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
            sys.exit(0)
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except FeedPressError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def show_config():
    """Show stored feeds, topic routes and scheduling options."""
    response = _run_action({"action": "getConfig"})
    _exit_on_error(response)
    config = response["config"]

    feeds_table = Table(title=f"Feeds ({len(config['feeds'])})")
    feeds_table.add_column("ID", style="cyan")
    feeds_table.add_column("Name")
    feeds_table.add_column("URL")
    feeds_table.add_column("Keywords")
    feeds_table.add_column("Enabled")
    for feed in config["feeds"]:
        feeds_table.add_row(
            feed["id"],
            feed["name"],
            feed["url"],
            ", ".join(feed["keywords"]) or "-",
            "✅" if feed["enabled"] else "❌",
        )
    console.print(feeds_table)

    routes_table = Table(title=f"Topic Routes ({len(config['topic_routes'])})")
    routes_table.add_column("Topic", style="cyan")
    routes_table.add_column("Space")
    routes_table.add_column("Parent")
    for route in config["topic_routes"]:
        parent = route.get("parent_container_id") or route.get("parent_container_title") or "-"
        routes_table.add_row(route["topic"], route["target_space"], parent)
    console.print(routes_table)

    console.print(
        f"Schedule: every {config['schedule_interval_minutes']} minutes | "
        f"Dedup window: {config['deduplication_window_days']} days | "
        f"Summarization: {'on' if config['enable_summarization'] else 'off'}"
    )


@cli.command()
@click.argument('feed_id')
@click.argument('name')
@click.argument('url')
@click.option('--keyword', '-k', 'keywords', multiple=True, help='Keyword to match (repeatable)')
@click.option('--disabled', is_flag=True, help='Store the feed disabled')
def add_feed(feed_id, name, url, keywords, disabled):
    """Add or replace a feed by ID."""
    response = _run_action({
        "action": "upsertFeed",
        "payload": {
            "feed": {
                "id": feed_id,
                "name": name,
                "url": url,
                "keywords": list(keywords),
                "enabled": not disabled,
            }
        },
    })
    _exit_on_error(response)
    console.print(f"[green]✅ Saved feed {feed_id}[/green]")


@cli.command()
@click.argument('feed_id')
def remove_feed(feed_id):
    """Remove a feed by ID."""
    response = _run_action({"action": "removeFeed", "payload": {"feedId": feed_id}})
    _exit_on_error(response)
    console.print(f"[green]✅ Removed feed {feed_id}[/green]")


@cli.command()
@click.argument('topic')
@click.argument('space')
@click.option('--parent-id', help='ID of the parent page')
@click.option('--parent-title', help='Title of the parent page (used when no ID is given)')
def add_route(topic, space, parent_id, parent_title):
    """Add or replace the wiki route for a topic."""
    response = _run_action({
        "action": "upsertTopicMapping",
        "payload": {
            "mapping": {
                "topic": topic,
                "target_space": space,
                "parent_container_id": parent_id,
                "parent_container_title": parent_title,
            }
        },
    })
    _exit_on_error(response)
    console.print(f"[green]✅ Routed '{topic}' to space {space}[/green]")


@cli.command()
@click.argument('topic')
def remove_route(topic):
    """Remove the route for a topic."""
    response = _run_action({"action": "removeTopicMapping", "payload": {"topic": topic}})
    _exit_on_error(response)
    console.print(f"[green]✅ Removed route for '{topic}'[/green]")


@cli.command()
def process():
    """Run the pipeline once and print the run summary."""
    console.print("[bold blue]🔄 Processing feeds[/bold blue]")
    response = _run_action({"action": "processFeeds"})
    _exit_on_error(response)
    result = response["result"]

    table = Table(title="Processing Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Feeds", f"{result['successful_feeds']}/{result['total_feeds']}")
    table.add_row("Items fetched", str(result["total_items"]))
    table.add_row("Items matched", str(result["filtered_items"]))
    table.add_row("Published", str(result["published_items"]))
    table.add_row("Skipped", str(result["skipped_items"]))
    table.add_row("Errors", str(len(result["errors"])))
    console.print(table)

    for error in result["errors"]:
        console.print(f"  [yellow]⚠️ {error}[/yellow]")


@cli.command()
@click.option('--once', is_flag=True, help='Run a single scheduled trigger and exit')
@click.option('--max-runs', type=int, default=None, help='Stop after this many runs')
def run_scheduler(once, max_runs):
    """Run the pipeline on the stored schedule interval."""
    async def run():
        services = build_services()
        trigger = ScheduledTrigger(services.pipeline, services.config_repository)
        try:
            if once:
                await trigger.run_once()
            else:
                await trigger.run_forever(max_runs=max_runs)
        finally:
            await services.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Scheduler stopped[/yellow]")
    except Exception as e:
        console.print(f"[bold red]❌ Scheduled run failed: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--limit', default=10, help='Number of newest records to show (default: 10)')
@click.option('--prune', is_flag=True, help='Evict records outside the dedup window first')
def ledger(limit, prune):
    """Show the deduplication ledger size and newest records."""
    async def run():
        services = build_services()
        try:
            evicted = services.ledger.prune() if prune else 0
            return evicted, services.ledger.load_records()
        finally:
            await services.close()

    try:
        evicted, records = asyncio.run(run())
    except FeedPressError as e:
        console.print(f"[bold red]❌ Ledger error: {e}[/bold red]")
        sys.exit(1)

    if prune:
        console.print(f"[yellow]🧹 Pruned {evicted} expired records[/yellow]")

    newest = sorted(records.values(), key=lambda r: r.processed_at, reverse=True)[:limit]

    table = Table(title=f"Processed Items ({len(records)} total)")
    table.add_column("Item ID", style="cyan")
    table.add_column("Processed At")
    table.add_column("Page ID")
    table.add_column("URL")
    for record in newest:
        table.add_row(
            record.item_id,
            record.processed_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.published_content_id or "-",
            record.published_content_url or "-",
        )
    console.print(table)


# Helper functions for configuration checks
def _check_storage_config(settings) -> tuple[bool, str]:
    """Check storage configuration."""
    try:
        if settings.storage.path != ":memory:":
            Path(settings.storage.path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.storage.path}"
    except OSError as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            Path(settings.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def _check_wiki_config(settings) -> tuple[bool, str]:
    if not settings.wiki.base_url:
        return False, "Base URL not set"
    if not settings.wiki.has_credentials():
        return False, "Username or API token not set"
    return True, f"{settings.wiki.base_url} as {settings.wiki.username}"


def _check_fetch_config(settings) -> tuple[bool, str]:
    return True, (
        f"Timeout: {settings.fetch.request_timeout}s, "
        f"Redirects: {settings.fetch.max_redirects}, "
        f"Parallel: {settings.fetch.parallel_feeds}"
    )


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 FeedPress interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
