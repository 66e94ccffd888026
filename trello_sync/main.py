from __future__ import annotations

import signal
import sys
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator

import click
from PySide6.QtCore import QCoreApplication

from trello_sync import __version__
from trello_sync.config import Settings, load_env, load_settings
from trello_sync.domain.board import BoardClient
from trello_sync.domain.codec import serialize, split_items
from trello_sync.domain.errors import MissingCredentials
from trello_sync.infra.db import create_db_engine, create_session_factory, init_db
from trello_sync.infra.logging import setup_logging
from trello_sync.infra.repository import TaskStore
from trello_sync.infra.sources import line_ending, read_source, write_source
from trello_sync.infra.trello import TrelloClient
from trello_sync.services.inbound import InboundSync
from trello_sync.services.notifier import EchoNotifier
from trello_sync.services.reconciler import Reconciler
from trello_sync.watcher import SyncWatcher


@dataclass
class AppContext:
    settings: Settings
    board: BoardClient | None = None
    task_store: TaskStore | None = None

    @property
    def store(self) -> TaskStore:
        if self.task_store is None:
            self.task_store = open_store(self.settings)
        return self.task_store


def open_store(settings: Settings) -> TaskStore:
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    return TaskStore(create_session_factory(engine))


@contextmanager
def remote_board(app: AppContext) -> Iterator[BoardClient]:
    try:
        app.settings.require_credentials()
    except MissingCredentials as e:
        click.secho(str(e), fg="red", err=True)
        sys.exit(2)

    if app.board is not None:
        yield app.board
        return
    with TrelloClient.from_settings(app.settings) as client:
        yield client


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Keep `/* [RED] trello task ... */` comments in sync with a Trello list."""
    load_env()
    settings = load_settings()
    if verbose:
        settings = replace(settings, log_level="DEBUG")
    setup_logging(settings)

    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    ctx.obj = AppContext(settings=settings, board=obj.get("board"), task_store=obj.get("store"))


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--force", is_flag=True, help="Process files whose suffix is not watched")
@click.pass_obj
def save(app: AppContext, files: tuple[str, ...], force: bool) -> None:
    """Create cards for new or edited task comments in FILES."""
    notifier = EchoNotifier()
    unreadable = []
    with remote_board(app) as board:
        reconciler = Reconciler.from_settings(app.settings, app.store, board, notifier)
        for path in files:
            if not force and not app.settings.watches(path):
                click.echo(f"Skipping {path}: suffix not in {', '.join(app.settings.watch_extensions)}")
                continue
            try:
                report = reconciler.reconcile_file(path)
            except (OSError, UnicodeDecodeError) as e:
                click.secho(f"{path}: could not read file: {e}", fg="red", err=True)
                unreadable.append(path)
                continue
            click.echo(
                f"{path}: {len(report.created)} created, {len(report.adopted)} adopted, "
                f"{len(report.unchanged)} unchanged, {len(report.skipped)} deprecated skipped, "
                f"{len(report.failed)} failed"
            )
    if unreadable:
        sys.exit(1)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.pass_obj
def sync(app: AppContext, files: tuple[str, ...]) -> None:
    """Pull checklist changes and list moves from Trello into the comments."""
    notifier = EchoNotifier()
    with remote_board(app) as board:
        inbound = InboundSync.from_settings(app.settings, app.store, board, notifier)
        if files:
            reports = [inbound.sync_file(path) for path in files]
        else:
            reports = [inbound.run()]
    rewritten = sum(len(report.rewritten) for report in reports)
    deprecated = sum(len(report.deprecated) for report in reports)
    failed = sum(len(report.failed) + len(report.failed_files) for report in reports)
    click.echo(f"{rewritten} rewritten, {deprecated} deprecated, {failed} failed")


@cli.command()
@click.argument("targets", nargs=-1, type=click.Path(exists=True))
@click.pass_obj
def watch(app: AppContext, targets: tuple[str, ...]) -> None:
    """Reconcile on every save under TARGETS and sync on a timer."""
    with remote_board(app) as board:
        settings = app.settings
        qt_app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
        watcher = SyncWatcher(
            Reconciler.from_settings(settings, app.store, board),
            InboundSync.from_settings(settings, app.store, board),
            targets or (str(Path.cwd()),),
            suffixes=settings.watch_extensions,
            interval_sec=settings.sync_interval_sec,
        )
        watcher.start()
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        qt_app.exec()
        watcher.stop()


@cli.command()
@click.option("--title", prompt="Enter Trello task title", help="e.g. Validate order total")
@click.option(
    "--items",
    prompt="Enter checklist items (comma-separated)",
    help="e.g. Validate product prices,Check shipping fee",
)
@click.option("--final", is_flag=True, help="Tag with [FINAL] so no card is created")
@click.option("--insert", "target", type=click.Path(exists=True, dir_okay=False), help="File to insert into")
@click.option("--line", type=click.IntRange(min=1), default=None, help="1-based line to insert before")
def snippet(title: str, items: str, final: bool, target: str | None, line: int | None) -> None:
    """Print (or insert) a task comment block."""
    title = title.strip()
    checklist = split_items(items)
    if not title or "," in title:
        raise click.BadParameter("title must be non-empty and contain no commas", param_hint="--title")
    if not checklist:
        raise click.BadParameter("at least one checklist item is required", param_hint="--items")

    if not target:
        click.echo(serialize(title, checklist, final=final))
        return

    text = read_source(target)
    newline = line_ending(text)
    block = serialize(title, checklist, final=final, newline=newline)
    lines = text.splitlines(keepends=True)
    index = len(lines) if line is None else min(line - 1, len(lines))
    if index == len(lines) and lines and not lines[-1].endswith("\n"):
        lines[-1] += newline
    lines.insert(index, block + newline)
    write_source(target, "".join(lines))
    click.echo(f"Trello task snippet inserted: {title}")


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.pass_obj
def status(app: AppContext, files: tuple[str, ...]) -> None:
    """Show the tracked tasks of each file."""
    if files:
        stored = {path: app.store.load(path) for path in files}
    else:
        stored = app.store.load_all()
    if not stored:
        click.echo("No tracked tasks")
        return
    for path, tasks in stored.items():
        click.secho(path, bold=True)
        for task in tasks:
            ids = f" card={task.card_id}" if task.card_id else ""
            if task.checklist_id:
                ids += f" checklist={task.checklist_id}"
            click.echo(f"  [{task.state}] {task.title} ({len(task.checklist)} items){ids}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
