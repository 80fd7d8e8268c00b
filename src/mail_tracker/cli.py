# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for genro-mail-tracker.

Usage:
    mail-tracker [--db PATH] [--config FILE] feedback notification.json
    mail-tracker show <token>
    mail-tracker purge --days 60

Example:
    $ mail-tracker --db /data/mail_tracker.db feedback bounce.json
    $ mail-tracker show 3fJ9...Qx --json
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from mail_tracker.config_loader import TrackerConfig, load_tracker_config
from mail_tracker.events import (
    ComplaintEvent,
    EventDispatcher,
    PermanentBounceEvent,
    TransientBounceEvent,
)
from mail_tracker.feedback import DeliveryFeedbackProcessor, MalformedNotificationError
from mail_tracker.tracker_db import TrackerDb

console = Console()
err_console = Console(stderr=True)

SECONDS_PER_DAY = 86400


def run_async(coro):
    """Execute an async coroutine synchronously from CLI context."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, indent=2, default=str))


def _configure_logging() -> None:
    log_level = os.getenv("MT_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.version_option(package_name="genro-mail-tracker")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="INI file with a [tracker] section.")
@click.option("--db", "db_path", default=None, help="Database path (overrides config).")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, db_path: str | None) -> None:
    """Inspect and feed the mail tracker database."""
    _configure_logging()
    config = load_tracker_config(config_path)
    if db_path:
        config.db_path = db_path
    ctx.obj = {"config": config}


def _db(ctx: click.Context) -> TrackerDb:
    config: TrackerConfig = ctx.obj["config"]
    return TrackerDb(config.db_path)


@main.command("feedback")
@click.argument("notification_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def feedback(ctx: click.Context, notification_file: Path) -> None:
    """Apply a bounce or complaint notification (SNS envelope or bare JSON)."""
    db = _db(ctx)
    events = EventDispatcher()
    emitted: list[Any] = []
    for event_type in (PermanentBounceEvent, TransientBounceEvent, ComplaintEvent):
        events.listen(event_type, emitted.append)
    processor = DeliveryFeedbackProcessor(db, events)

    async def _apply():
        await db.init_db()
        return await processor.handle_notification(notification_file.read_text())

    try:
        record = run_async(_apply())
    except MalformedNotificationError as exc:
        print_error(str(exc))
        sys.exit(1)

    if record is None:
        console.print("[dim]No matching send record; nothing recorded.[/dim]")
        return

    print_success(f"Updated record {record['hash']}")
    for event in emitted:
        console.print(f"  {type(event).__name__}: {event.email_address}")


@main.command("show")
@click.argument("token")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, token: str, as_json: bool) -> None:
    """Show the send record for a token."""
    db = _db(ctx)

    async def _show():
        await db.init_db()
        return await db.find_by_token(token)

    record = run_async(_show())
    if not record:
        print_error(f"No record for token '{token}'.")
        sys.exit(1)

    if as_json:
        print_json(record)
        return

    meta = record.get("meta") or {}
    table = Table(title=f"Send record {token}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Provider id", record.get("message_id") or "-")
    table.add_row("Recipient", record.get("recipient_email") or "-")
    table.add_row("Subject", record.get("subject") or "-")
    table.add_row("Opens / clicks", f"{record.get('opens', 0)} / {record.get('clicks', 0)}")
    table.add_row("Success", "Yes" if meta.get("success", True) else "No")
    table.add_row("Complaint", "Yes" if meta.get("complaint") else "No")
    failures = ", ".join(f.get("emailAddress", "?") for f in meta.get("failures", []))
    table.add_row("Failures", failures or "-")
    console.print(table)


@main.command("purge")
@click.option("--days", type=int, default=None,
              help="Remove records older than this many days (default: expire_days).")
@click.pass_context
def purge(ctx: click.Context, days: int | None) -> None:
    """Remove send records older than the retention age."""
    config: TrackerConfig = ctx.obj["config"]
    days = config.expire_days if days is None else days
    if days <= 0:
        console.print("[dim]Retention disabled (days <= 0); nothing removed.[/dim]")
        return

    db = _db(ctx)
    threshold = int(time.time()) - days * SECONDS_PER_DAY

    async def _purge():
        await db.init_db()
        return await db.remove_older_than(threshold)

    removed = run_async(_purge())
    for row in removed:
        file_path = (row.get("meta") or {}).get("content_file_path")
        if file_path:
            Path(file_path).unlink(missing_ok=True)
    print_success(f"Removed {len(removed)} record(s) older than {days} day(s)")


if __name__ == "__main__":
    main()
