"""Command line interface for nostr-rank."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from nostr_rank.config import AppConfig, load_config
from nostr_rank.core.ranking.result_types import RankRecord
from nostr_rank.core.seed_import import import_seed_file
from nostr_rank.services.ranking_service import RankingService, create_ranking_service

T = TypeVar("T")

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _get_config(ctx: click.Context) -> AppConfig:
    """Load configuration for the current invocation."""
    try:
        return load_config(ctx.obj.get("config_path"))
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _run_with_service(
    config: AppConfig, action: Callable[[RankingService], Awaitable[T]]
) -> T:
    """Run ``action`` against a fresh service and always close it."""

    async def runner() -> T:
        service = create_ranking_service(config)
        try:
            return await action(service)
        finally:
            await service.close()

    return asyncio.run(runner())


def _render_ranks(title: str, records: list[RankRecord]) -> None:
    table = Table(title=title)
    table.add_column("Rank", justify="right")
    table.add_column("Pubkey")
    table.add_column("Score", justify="right")
    for record in records:
        table.add_row(str(record.rank), record.pubkey, f"{record.score:.6f}")
    console.print(table)


@click.group()
@click.version_option(package_name="nostr-rank")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the YAML config file (default: ./nostr-rank.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """nostr-rank: PageRank influence scores for Nostr participants."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--show", default=10, show_default=True, help="Top ranks to print")
@click.option(
    "--output-format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
@click.pass_context
def rank(ctx: click.Context, show: int, output_format: str) -> None:
    """Build the follow graph, compute PageRank and store the ranks."""
    config = _get_config(ctx)
    try:
        result = _run_with_service(config, lambda service: service.run_ranking())
    except Exception as e:
        raise click.ClickException(f"Ranking run failed: {e}") from e

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    status = "converged" if result.converged else "hit iteration cap"
    click.echo(
        f"Ranked {result.participants} participants "
        f"({result.edges} edges, {result.batches} batches), "
        f"{status} after {result.iterations} iterations"
    )
    if show > 0 and result.records:
        _render_ranks("Top participants", result.records[:show])


@cli.command()
@click.option("--limit", default=10, show_default=True)
@click.pass_context
def top(ctx: click.Context, limit: int) -> None:
    """Show the highest ranked participants from the store."""
    config = _get_config(ctx)
    records = _run_with_service(config, lambda service: service.store.top_ranks(limit))
    if not records:
        click.echo("No ranks stored yet. Run 'nostr-rank rank' first.")
        return
    _render_ranks("Popular participants", records)


@cli.command()
@click.option("--limit", default=10, show_default=True)
@click.pass_context
def bottom(ctx: click.Context, limit: int) -> None:
    """Show the lowest ranked participants from the store."""
    config = _get_config(ctx)
    records = _run_with_service(
        config, lambda service: service.store.bottom_ranks(limit)
    )
    if not records:
        click.echo("No ranks stored yet. Run 'nostr-rank rank' first.")
        return
    _render_ranks("Isolated participants", records)


@cli.command("collect-users")
@click.pass_context
def collect_users(ctx: click.Context) -> None:
    """Discover new participants from recent Japanese profiles."""
    config = _get_config(ctx)
    added = _run_with_service(config, lambda service: service.collect_participants())
    click.echo(f"Added {added} new participant(s)")


@cli.command("collect-last-posts")
@click.pass_context
def collect_last_posts(ctx: click.Context) -> None:
    """Record the latest post date of every participant."""
    config = _get_config(ctx)
    saved = _run_with_service(config, lambda service: service.collect_last_posts())
    click.echo(f"Stored last post dates for {saved} participant(s)")


@cli.command("import-users")
@click.argument("seed_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_users(ctx: click.Context, seed_file: str) -> None:
    """Import existing participants from a file of npubs."""
    config = _get_config(ctx)
    inserted = _run_with_service(
        config, lambda service: import_seed_file(service.store, seed_file)
    )
    click.echo(f"Imported {inserted} participant(s) from {seed_file}")


@cli.command("run-scheduled")
@click.pass_context
def run_scheduled(ctx: click.Context) -> None:
    """Run discovery, ranking and last-post collection once (for cron)."""
    config = _get_config(ctx)
    report: dict[str, Any] = _run_with_service(
        config, lambda service: service.run_scheduled_jobs()
    )
    click.echo(json.dumps(report, indent=2))
    if any(job["status"] == "failed" for job in report.values()):
        raise SystemExit(1)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8787, show_default=True, type=int)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Serve the HTTP API."""
    import uvicorn

    from nostr_rank.web.server import create_app

    config = _get_config(ctx)
    app = create_app(create_ranking_service(config))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
