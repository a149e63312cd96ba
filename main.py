#!/usr/bin/env python3
import argparse
import os
import threading
from typing import List, Optional

from rich.panel import Panel
from rich.table import Table

from common.containers import AgentContainer
from common.models import ChangeSet, ConfigDomain
from common.utils import console, enable_console_logging, logger

CONF_DIR_ENV = "AGENT_CONF_DIR"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discover and watch pipeline and instance configuration directories"
    )
    parser.add_argument(
        "--conf-dir",
        default=os.environ.get(CONF_DIR_ENV),
        help=f"Config root directory (default: ${CONF_DIR_ENV} or /etc/telemetry-agent/config)",
    )
    parser.add_argument("--suffix", default="default", help="Subdirectory under each config domain")
    parser.add_argument("--interval", type=float, default=3.0, help="Seconds between reconciliation cycles")
    parser.add_argument(
        "--fingerprint",
        choices=["stat", "hash"],
        default="stat",
        help="Detect changes by mtime+size or by content hash",
    )
    parser.add_argument("--notify", action="store_true", help="Use filesystem notifications to rescan early")
    parser.add_argument("--once", action="store_true", help="Run a single reconciliation cycle and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Also log to stderr")
    return parser.parse_args(argv)


def build_container(args: argparse.Namespace) -> AgentContainer:
    container = AgentContainer()
    container.config.from_dict(
        {
            "conf_dir": args.conf_dir,
            "watcher": {
                "interval_seconds": args.interval,
                "fingerprint": args.fingerprint,
                "use_notifications": args.notify,
            },
        }
    )
    return container


def render_change_set(change_set: ChangeSet) -> Table:
    table = Table(title=f"{change_set.domain.value} config changes", title_style="bold cyan")
    table.add_column("Change", style="bold")
    table.add_column("File")
    for label, names, style in (
        ("new", change_set.new, "green"),
        ("modified", change_set.modified, "yellow"),
        ("deleted", change_set.deleted, "red"),
    ):
        for name in names:
            table.add_row(f"[{style}]{label}[/{style}]", name)
    table.caption = change_set.source
    return table


def print_change_set(change_set: ChangeSet) -> None:
    console.print(render_change_set(change_set))


def wait_for_shutdown() -> None:
    """Block until interrupted; watchers run on their own threads."""
    threading.Event().wait()


def display_banner(container: AgentContainer) -> None:
    provider = container.config_provider()
    lines = [
        f"[bold]pipeline[/bold]: {provider.pipeline_source_dir}",
        f"[bold]instance[/bold]: {provider.instance_source_dir}",
    ]
    console.print(Panel("\n".join(lines), title="Watching config directories", border_style="green"))


def main(argv: Optional[List[str]] = None) -> int:
    """Main function"""
    args = parse_args(argv)
    if args.verbose:
        enable_console_logging()

    container = build_container(args)
    provider = container.config_provider()
    if not provider.initialize(args.suffix):
        console.print("[yellow]Some config directories could not be registered, see logs[/yellow]")

    watchers = [provider.watcher(domain) for domain in ConfigDomain]
    for watcher in watchers:
        watcher.subscribe(print_change_set)

    display_banner(container)

    if args.once:
        for watcher in watchers:
            watcher.reconcile()
        return 0

    for watcher in watchers:
        watcher.start()

    try:
        wait_for_shutdown()
    except KeyboardInterrupt:
        console.print("\n\nGoodbye!", style="bold green")
    finally:
        for watcher in watchers:
            watcher.stop()
        logger.info("Config watchers shut down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
