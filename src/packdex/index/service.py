"""IndexService — asyncio single-worker front end for ``AddonIndex``.

Scan requests and file deltas are queued and applied one at a time, in
arrival order, by a single worker task.  The blocking file I/O of each
event runs in the default executor so the event loop stays responsive;
queries are answered from the last published snapshot meanwhile.

A file event that is still queued behind a pending scan covering its path
is dropped: the scan will read that file's latest content anyway.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Union

from packdex.index.addon_index import AddonIndex
from packdex.index.schema import (
    AddonStructure,
    IndexSnapshot,
    Kind,
    KindIndex,
    Record,
    ScanResult,
)

logger = logging.getLogger(__name__)

# Sentinel that stops the worker.
_STOP = object()


@dataclass(frozen=True)
class ScanRequest:
    roots: tuple[str, ...]


@dataclass(frozen=True)
class FileChanged:
    """A file was created or modified."""

    path: str


@dataclass(frozen=True)
class FileDeleted:
    path: str
    kind: Kind | None = None


IndexEvent = Union[ScanRequest, FileChanged, FileDeleted]


class IndexService:
    """Serialize every mutation of an ``AddonIndex`` through one worker.

    Example::

        service = IndexService(AddonIndex())
        await service.start()
        await service.scan([workspace])
        service.notify_changed(path)       # fire-and-forget from a watcher
        await service.stop()
    """

    def __init__(self, index: AddonIndex | None = None) -> None:
        self._index = index or AddonIndex()
        self._queue: asyncio.Queue[tuple[IndexEvent, asyncio.Future[Any]] | object] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._pending_scans: list[tuple[str, ...]] = []

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._worker is not None:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Drain already-queued events, then stop the worker."""
        if self._worker is None or self._queue is None:
            return
        self._queue.put_nowait(_STOP)
        await self._worker
        self._worker = None
        self._queue = None

    @property
    def running(self) -> bool:
        return self._worker is not None

    # ── Submitting events ─────────────────────────────────────────────────────

    def submit(self, event: IndexEvent) -> asyncio.Future[Any]:
        """Queue *event*; the returned future resolves with its result.

        Results: ``ScanResult`` for scans, the new ``Record`` (or None) for
        changes, a bool for deletes, and None for superseded file events.
        """
        if self._queue is None:
            raise RuntimeError("IndexService is not running")
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        if isinstance(event, ScanRequest):
            self._pending_scans.append(event.roots)
        self._queue.put_nowait((event, future))
        return future

    async def scan(self, roots: Iterable[str | Path]) -> ScanResult:
        return await self.submit(ScanRequest(tuple(str(Path(r)) for r in roots)))

    async def apply_create_or_change(self, path: str | Path) -> Record | None:
        return await self.submit(FileChanged(str(Path(path))))

    async def apply_delete(self, path: str | Path, kind: Kind | None = None) -> bool:
        return await self.submit(FileDeleted(str(Path(path)), kind))

    def notify_changed(self, path: str | Path) -> None:
        """Fire-and-forget variant for change-notification sources."""
        self._discard_result(self.submit(FileChanged(str(Path(path)))))

    def notify_deleted(self, path: str | Path, kind: Kind | None = None) -> None:
        self._discard_result(self.submit(FileDeleted(str(Path(path)), kind)))

    # ── Queries (never queued) ────────────────────────────────────────────────

    def get_structure(self) -> AddonStructure:
        return self._index.get_structure()

    def get_file_kind(self, path: str | Path) -> Kind:
        return self._index.get_file_kind(path)

    def get_uses_of(self, path: str | Path) -> KindIndex:
        return self._index.get_uses_of(path)

    def get_used_by(self, kind: Kind, identifier: str) -> list[Record]:
        return self._index.get_used_by(kind, identifier)

    def on_update(self, callback: Callable[[IndexSnapshot], None]) -> Callable[[], None]:
        return self._index.on_update(callback)

    @property
    def index(self) -> AddonIndex:
        return self._index

    # ── Worker ────────────────────────────────────────────────────────────────

    async def _run(self) -> None:
        queue = self._queue
        if queue is None:
            return
        loop = asyncio.get_running_loop()
        while True:
            item = await queue.get()
            if item is _STOP:
                break
            event, future = item  # type: ignore[misc]
            if isinstance(event, ScanRequest):
                self._pending_scans.remove(event.roots)

            if self._is_superseded(event):
                logger.debug("Dropping %s, a queued scan covers it", event)
                if not future.done():
                    future.set_result(None)
                continue

            try:
                result = await loop.run_in_executor(None, self._apply, event)
            except Exception as exc:
                logger.exception("Failed to apply %s", event)
                if not future.done():
                    future.set_exception(exc)
                continue
            if not future.done():
                future.set_result(result)

    def _apply(self, event: IndexEvent) -> Any:
        if isinstance(event, ScanRequest):
            return self._index.scan(event.roots)
        if isinstance(event, FileChanged):
            return self._index.apply_create_or_change(event.path)
        if isinstance(event, FileDeleted):
            return self._index.apply_delete(event.path, event.kind)
        raise TypeError(f"Unknown index event: {event!r}")

    def _is_superseded(self, event: IndexEvent) -> bool:
        if isinstance(event, ScanRequest) or not self._pending_scans:
            return False
        target = Path(event.path)
        for roots in self._pending_scans:
            for root in roots:
                if target.is_relative_to(root):
                    return True
        return False

    @staticmethod
    def _discard_result(future: asyncio.Future[Any]) -> None:
        def _log_failure(f: asyncio.Future[Any]) -> None:
            if not f.cancelled() and f.exception() is not None:
                logger.debug("Background index event failed: %s", f.exception())

        future.add_done_callback(_log_failure)
