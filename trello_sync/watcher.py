from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from PySide6.QtCore import QFileSystemWatcher, QObject, QTimer

from trello_sync.domain.errors import TrelloSyncError
from trello_sync.infra.repository import file_key
from trello_sync.services.inbound import InboundSync
from trello_sync.services.reconciler import Reconciler

log = logging.getLogger(__name__)

SAVE_DEBOUNCE_MS = 300
IGNORED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "dist", "build"}


def discover_files(targets: Iterable[str | Path], suffixes: tuple[str, ...]) -> list[str]:
    """Expand files and directories into the source files worth watching."""
    found: list[str] = []
    for target in targets:
        path = Path(target)
        if path.is_file():
            found.append(file_key(path))
            continue
        if not path.is_dir():
            log.warning("Watch target %s does not exist", path)
            continue
        for root, dirs, files in os.walk(path):
            dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)
            for name in sorted(files):
                if not suffixes or name.endswith(suffixes):
                    found.append(file_key(Path(root) / name))
    return found


class SyncWatcher(QObject):
    """Drives save-time reconciliation and periodic inbound sync from a Qt event loop.

    Only one pass runs at a time; a timer tick that lands while a pass is
    running is deferred until it finishes.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        inbound: InboundSync,
        targets: Iterable[str | Path],
        suffixes: tuple[str, ...] = (".ts",),
        interval_sec: int = 300,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._reconciler = reconciler
        self._inbound = inbound
        self._targets = [Path(target) for target in targets]
        self._suffixes = suffixes
        self._pending: list[str] = []
        self._busy = False
        self._sync_requested = False

        self._watcher = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self.on_file_changed)
        self._watcher.directoryChanged.connect(self.on_directory_changed)

        self._debounce = QTimer(self)
        self._debounce.setSingleShot(True)
        self._debounce.setInterval(SAVE_DEBOUNCE_MS)
        self._debounce.timeout.connect(self.flush_pending)

        self._timer = QTimer(self)
        self._timer.setInterval(max(int(interval_sec), 1) * 1000)
        self._timer.timeout.connect(self.run_inbound)

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def watched_files(self) -> list[str]:
        return sorted(self._watcher.files())

    def start(self) -> None:
        self.rescan()
        directories = [str(target) for target in self._targets if target.is_dir()]
        if directories:
            self._watcher.addPaths(directories)
        self._timer.start()
        log.info(
            "Watching %d file(s), inbound sync every %ds",
            len(self._watcher.files()),
            self._timer.interval() // 1000,
        )

    def stop(self) -> None:
        self._timer.stop()
        self._debounce.stop()

    def rescan(self) -> None:
        known = set(self._watcher.files())
        fresh = [path for path in discover_files(self._targets, self._suffixes) if path not in known]
        if fresh:
            self._watcher.addPaths(fresh)
            log.debug("Watching %d new file(s)", len(fresh))

    def on_file_changed(self, path: str) -> None:
        # editors that save by rename drop the path from the watcher
        if Path(path).exists() and path not in self._watcher.files():
            self._watcher.addPath(path)
        self.enqueue(path)

    def on_directory_changed(self, _path: str) -> None:
        self.rescan()

    def enqueue(self, path: str | Path) -> None:
        key = file_key(path)
        if key not in self._pending:
            self._pending.append(key)
        self._debounce.start()

    def flush_pending(self) -> None:
        if self._busy:
            self._debounce.start()
            return
        self._busy = True
        try:
            while self._pending:
                path = self._pending.pop(0)
                if not Path(path).exists():
                    continue
                try:
                    report = self._reconciler.reconcile_file(path)
                except (TrelloSyncError, OSError, UnicodeDecodeError) as e:
                    log.error("Save pass for %s failed: %s", path, e)
                    continue
                log.info(
                    "Save pass for %s: %d created, %d unchanged, %d failed",
                    path,
                    len(report.created),
                    len(report.unchanged),
                    len(report.failed),
                )
        finally:
            self._busy = False
        self._run_deferred_sync()

    def run_inbound(self) -> None:
        if self._busy:
            self._sync_requested = True
            return
        self._busy = True
        self._sync_requested = False
        try:
            report = self._inbound.run()
            log.info(
                "Inbound sync: %d rewritten, %d deprecated, %d failed",
                len(report.rewritten),
                len(report.deprecated),
                len(report.failed),
            )
        except (TrelloSyncError, OSError, UnicodeDecodeError) as e:
            log.error("Inbound sync failed: %s", e)
        finally:
            self._busy = False

    def _run_deferred_sync(self) -> None:
        if self._sync_requested:
            self.run_inbound()
