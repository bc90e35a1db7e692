"""Command-line interface for smartblock."""

import asyncio
import logging
import sys
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import Optional, TextIO

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from smartblock.config import Config, ConfigError, find_config_file, load_config, merge_cli_options
from smartblock.models import Decision, Outcome
from smartblock.notifiers import BlockAlerter
from smartblock.policies import ContextAwareClassifier, StaticCategoryOracle
from smartblock.replay import ReplayParseError, read_events

console = Console()
logger = logging.getLogger(__name__)

REASON_STYLES = {
    "whitelisted": "green",
    "dependency-in-context": "cyan",
    "default-allow": "dim",
    "social-primary-blocked": "red",
    "restricted-other-blocked": "red bold",
    "dependency-without-context": "yellow",
}


def _build_classifier(
    cfg: Config,
    on_block: Optional[Callable[[Decision], None]] = None,
) -> ContextAwareClassifier:
    oracle = StaticCategoryOracle.from_config(cfg)
    return ContextAwareClassifier(oracle, cfg.classifier_config(), on_block=on_block)


def _decision_table(title: str, rows: list[tuple[float, Decision, Optional[str]]]) -> Table:
    table = Table(title=title)
    table.add_column("Time", justify="right", style="dim")
    table.add_column("Domain")
    table.add_column("Category")
    table.add_column("Decision")
    table.add_column("Reason")
    table.add_column("Client", style="dim")

    for timestamp, decision, client in rows:
        style = REASON_STYLES.get(decision.reason.value, "white")
        outcome = decision.outcome.value.upper()
        table.add_row(
            f"{timestamp:.2f}",
            decision.domain or "[red]<invalid>[/red]",
            decision.label.value,
            f"[{style}]{outcome}[/{style}]",
            decision.reason.value,
            escape(client or ""),
        )
    return table


def _print_summary(verb: str, rows: list[tuple[float, Decision, Optional[str]]]) -> None:
    blocked = sum(1 for _, decision, _ in rows if decision.blocked)
    console.print(
        f"[cyan]{verb} {len(rows):,} requests: "
        f"{len(rows) - blocked:,} allowed, {blocked:,} blocked[/cyan]"
    )
    reasons = Counter(decision.reason.value for _, decision, _ in rows)
    for reason, count in reasons.most_common():
        style = REASON_STYLES.get(reason, "white")
        console.print(f"  [{style}]{reason}[/{style}]: {count:,}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to config file (default: searches standard locations)",
)
@click.option("--window", type=float, default=None, help="Context window in seconds (default: 10)")
@click.option(
    "--strict-dependencies/--lenient-dependencies",
    default=None,
    help="Block social dependencies seen without recent legitimate context",
)
@click.option(
    "--social/--no-social",
    default=None,
    help="Block direct navigation to social media (default: on)",
)
@click.option("--adult/--no-adult", default=None, help="Block adult content (default: on)")
@click.option("--gaming/--no-gaming", default=None, help="Block gaming sites (default: off)")
@click.option("--block", type=str, multiple=True, help="Extra domain to block (can specify multiple)")
@click.option("--allow", type=str, multiple=True, help="Extra domain to whitelist (can specify multiple)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (debug logging)")
@click.pass_context
def main(
    ctx: click.Context,
    config: Path | None,
    window: float | None,
    strict_dependencies: bool | None,
    social: bool | None,
    adult: bool | None,
    gaming: bool | None,
    block: tuple[str, ...],
    allow: tuple[str, ...],
    verbose: bool,
) -> None:
    """smartblock - Context-aware domain access classifier."""
    ctx.ensure_object(dict)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        cfg = load_config(config)
        cfg = merge_cli_options(
            cfg,
            window=window,
            strict_dependencies=strict_dependencies,
            social=social,
            adult=adult,
            gaming=gaming,
            block=block,
            allow=allow,
        )
    except ConfigError as e:
        console.print(f"[red]Config error: {escape(str(e))}[/red]")
        sys.exit(1)

    ctx.obj["config"] = cfg

    config_path = config or find_config_file()
    if config_path:
        ctx.obj["config_path"] = config_path


@main.command()
@click.argument("domains", nargs=-1, required=True)
@click.option(
    "--interval",
    type=float,
    default=1.0,
    show_default=True,
    help="Simulated seconds between consecutive requests",
)
@click.pass_context
def check(ctx: click.Context, domains: tuple[str, ...], interval: float) -> None:
    """Classify DOMAINS in order, as if requested INTERVAL seconds apart.

    Exits with status 2 if any domain is blocked.

    Example:
        smartblock check legitimate-news-site.com graph.facebook.com facebook.com
    """
    cfg: Config = ctx.obj["config"]

    rows = []
    with _build_classifier(cfg) as classifier:
        for i, domain in enumerate(domains):
            timestamp = i * interval
            rows.append((timestamp, classifier.classify(domain, timestamp), None))

    console.print(_decision_table("Decisions", rows))
    _print_summary("Checked", rows)

    if any(decision.blocked for _, decision, _ in rows):
        sys.exit(2)


@main.command()
@click.argument("domain")
@click.option(
    "--context",
    "context_domains",
    type=str,
    multiple=True,
    help="Domain visited before DOMAIN (can specify multiple)",
)
@click.option(
    "--age",
    type=float,
    default=1.0,
    show_default=True,
    help="Seconds between the context visits and DOMAIN",
)
@click.pass_context
def explain(ctx: click.Context, domain: str, context_domains: tuple[str, ...], age: float) -> None:
    """Show how DOMAIN would be classified, without recording it."""
    cfg: Config = ctx.obj["config"]

    with _build_classifier(cfg) as classifier:
        for context_domain in context_domains:
            if classifier.add_to_context(context_domain, timestamp=0.0) is None:
                console.print(f"[yellow]Ignoring malformed context domain: {escape(context_domain)}[/yellow]")
        result = classifier.explain(domain, timestamp=age)

    style = "red" if result["outcome"] == Outcome.BLOCK.value else "green"
    console.print(f"[cyan]Smart blocking breakdown for {escape(domain)}[/cyan]")
    console.print(f"  Normalized: {result['normalized'] or '[red]<invalid>[/red]'}")
    console.print(f"  Category: {result['label']}")
    console.print(f"  Primary social media: {result['is_primary']}")
    console.print(f"  Social dependency: {result['is_dependency']}")
    console.print(f"  Recent legitimate context: {result['has_context']}")
    console.print(f"  Social blocking enabled: {result['social_blocking']}")
    console.print(f"  Strict dependencies: {result['strict_dependencies']}")
    console.print(f"  Decision: [{style}]{result['outcome'].upper()}[/{style}] ({result['reason']})")


@main.command()
@click.argument("capture", type=click.File("r"))
@click.option("--quiet", "-q", is_flag=True, help="Only print the summary")
@click.option("--notify", is_flag=True, help="Send block alerts to Slack (requires [slack] config)")
@click.pass_context
def replay(ctx: click.Context, capture: TextIO, quiet: bool, notify: bool) -> None:
    """Replay a recorded request stream from CAPTURE ('-' for stdin).

    Each line is '<seconds> <domain> [client]' or a JSON object with
    'timestamp', 'domain' and optional 'client'.
    """
    cfg: Config = ctx.obj["config"]

    try:
        events = read_events(capture)
    except ReplayParseError as e:
        console.print(f"[red]Capture error: {escape(str(e))}[/red]")
        sys.exit(1)

    if not events:
        console.print("[yellow]No events in capture[/yellow]")
        return

    alerter = BlockAlerter(severity=cfg.alert_severity, dedup_window=cfg.alert_dedup_window)
    rows = []
    with _build_classifier(cfg, on_block=alerter) as classifier:
        for event in events:
            decision = classifier.classify(event.domain, event.timestamp, context_hint=event.client)
            rows.append((event.timestamp, decision, event.client))
        logger.debug(f"Classifier stats: {classifier.stats}")

    if not quiet:
        console.print(_decision_table("Replayed Decisions", rows))
    _print_summary("Replayed", rows)

    if notify:
        _send_alerts(cfg, alerter)


def _send_alerts(cfg: Config, alerter: BlockAlerter) -> None:
    if not (cfg.slack_enabled and cfg.slack_webhook_url):
        console.print("[yellow]Slack is not configured, skipping notifications[/yellow]")
        return

    from smartblock.notifiers.slack import SlackConfig, SlackNotifier

    alerts = alerter.drain()
    if not alerts:
        console.print("[green]No alerts to send[/green]")
        return

    notifier = SlackNotifier(
        SlackConfig(
            webhook_url=cfg.slack_webhook_url,
            min_severity=cfg.slack_min_severity,
        )
    )

    async def run() -> int:
        try:
            return await notifier.send_alerts(alerts)
        finally:
            await notifier.close()

    sent = asyncio.run(run())
    console.print(f"[cyan]Slack: sent {sent} of {len(alerts)} alerts[/cyan]")


@main.command()
@click.pass_context
def categories(ctx: click.Context) -> None:
    """Show the size of each category list."""
    cfg: Config = ctx.obj["config"]
    oracle = StaticCategoryOracle.from_config(cfg)

    if "config_path" in ctx.obj:
        console.print(f"[dim]Config: {ctx.obj['config_path']}[/dim]")

    table = Table(title="Category Lists")
    table.add_column("Category")
    table.add_column("Entries", justify="right")
    for name, size in oracle.category_sizes().items():
        table.add_row(name, f"{size:,}")
    console.print(table)

    console.print(
        f"[dim]Adult: {cfg.block_adult_content}, Gaming: {cfg.block_gaming}, "
        f"Social: {cfg.block_social_media} (smart blocking), "
        f"window: {cfg.window_seconds}s[/dim]"
    )


if __name__ == "__main__":
    main()
