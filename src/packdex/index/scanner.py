"""WorkspaceScanner — full rebuild of the pack index from disk.

A scan runs in three phases:

  1. discover packs    — every manifest.json under the roots; its first
                         recognized module type makes the parent directory
                         a resource or behavior pack
  2. index pack files  — classify, read, extract and upsert every file with
                         a recognized extension under each pack
  3. rebuild graph     — exactly once, after the last upsert

Per-file failures are counted and logged; they never abort the scan.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator

from packdex.index.classifier import (
    MANIFEST_FILENAME,
    classify,
    is_recognized,
    relative_parts,
)
from packdex.index.errors import (
    ClassificationUnknown,
    ContentUnreadable,
    ManifestInvalid,
)
from packdex.index.extractors import (
    PACK_TYPE_RESOURCE,
    extract,
    needs_content,
    pack_type_of,
    read_json,
)
from packdex.index.graph import ReferenceGraph, compute_stats
from packdex.index.schema import Kind, Record, ScanResult
from packdex.index.store import IndexStore

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = frozenset({
    ".git", ".svn", ".hg", "node_modules", "__pycache__",
    ".venv", "venv", ".idea", ".vscode",
})

ProgressCallback = Callable[[int, int, str], None]


# ── Walking ───────────────────────────────────────────────────────────────────

def iter_files(
    root: str | Path,
    accept: Callable[[Path], bool],
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
) -> Iterator[Path]:
    """Lazily yield accepted files under *root*, depth-first in sorted order.

    Each call starts a fresh walk.  Symlinked directories are not followed
    and unreadable directories are skipped.
    """
    skip = frozenset(skip_dirs)
    pending = [Path(root)]
    while pending:
        directory = pending.pop()
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            continue

        subdirs: list[Path] = []
        for entry in entries:
            try:
                if entry.is_dir():
                    if entry.name not in skip and not entry.is_symlink():
                        subdirs.append(entry)
                elif entry.is_file() and accept(entry):
                    yield entry
            except OSError:
                continue
        pending.extend(reversed(subdirs))


def iter_manifests(root: str | Path, skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS) -> Iterator[Path]:
    """Lazily yield every pack manifest under *root*."""
    return iter_files(root, lambda p: p.name == MANIFEST_FILENAME, skip_dirs)


def read_pack_type(manifest_path: str | Path) -> str:
    """Return "resource" or "behavior" for a manifest, raising ``ManifestInvalid``."""
    try:
        content = read_json(manifest_path)
    except ContentUnreadable as exc:
        raise ManifestInvalid(path=str(manifest_path), reason=exc.reason) from exc
    pack_type = pack_type_of(content)
    if pack_type is None:
        raise ManifestInvalid(path=str(manifest_path), reason="no 'resources' or 'data' module")
    return pack_type


# ── Single file ───────────────────────────────────────────────────────────────

def load_record(
    path: str | Path,
    roots: Iterable[str | Path] = (),
    max_bytes: int = 0,
) -> tuple[Kind, Record | None]:
    """Classify and extract one file.

    Raises ``ClassificationUnknown`` for files no rule claims and
    ``ContentUnreadable`` for I/O or JSON errors.  A ``None`` record means the
    content lacked a required identifier.
    """
    path = Path(path)
    roots = list(roots)
    kind = classify(path, roots)
    if kind is Kind.UNKNOWN:
        raise ClassificationUnknown(path=str(path))

    content = None
    if needs_content(kind):
        if max_bytes:
            try:
                size = path.stat().st_size
            except OSError as exc:
                raise ContentUnreadable(path=str(path), reason=str(exc)) from exc
            if size > max_bytes:
                raise ContentUnreadable(path=str(path), reason=f"larger than {max_bytes} bytes")
        content = read_json(path)

    return kind, extract(kind, path, content, parts=relative_parts(path, roots))


# ── Scanner ───────────────────────────────────────────────────────────────────

class WorkspaceScanner:
    """Rebuild an ``IndexStore`` and its ``ReferenceGraph`` from workspace roots.

    Parameters
    ----------
    store:
        Store to reset and repopulate (caller owns it).
    graph:
        Graph rebuilt once at the end of every scan.
    skip_dirs:
        Directory names never descended into.
    max_file_size_kb:
        JSON files larger than this are not parsed (0 = no limit).
    """

    def __init__(
        self,
        store: IndexStore,
        graph: ReferenceGraph,
        skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
        max_file_size_kb: int = 0,
    ) -> None:
        self._store = store
        self._graph = graph
        self._skip_dirs = frozenset(skip_dirs)
        self._max_bytes = max_file_size_kb * 1024

    def scan(
        self,
        roots: Iterable[str | Path],
        progress_callback: ProgressCallback | None = None,
    ) -> ScanResult:
        """Discard the current index and rebuild it from every pack under *roots*."""
        root_list = tuple(str(Path(r)) for r in roots)
        self._store.reset()

        resource_packs, behavior_packs = self.discover_packs(root_list)
        self._store.set_packs(resource_packs, behavior_packs)
        pack_roots = resource_packs + behavior_packs

        files: list[Path] = []
        seen: set[Path] = set()
        for pack in pack_roots:
            for path in iter_files(pack, is_recognized, self._skip_dirs):
                if path not in seen:
                    seen.add(path)
                    files.append(path)

        indexed = skipped = failed = 0
        for i, path in enumerate(files):
            if progress_callback is not None:
                try:
                    progress_callback(i + 1, len(files), path.name)
                except Exception as exc:
                    logger.debug("Progress callback error (scan): %s", exc)

            outcome = self._index_one(path, pack_roots)
            if outcome == "indexed":
                indexed += 1
            elif outcome == "failed":
                failed += 1
            else:
                skipped += 1

        self._graph.rebuild(self._store.structure)

        stats = compute_stats(self._store.structure, self._graph.uses_of_map)
        logger.info(
            "Scan: %d resource packs, %d behavior packs | indexed=%d skipped=%d failed=%d",
            len(resource_packs), len(behavior_packs), indexed, skipped, failed,
        )
        return ScanResult(
            roots=root_list, indexed=indexed, skipped=skipped, failed=failed, stats=stats,
        )

    def discover_packs(self, roots: Iterable[str]) -> tuple[list[str], list[str]]:
        """Return ``(resource_packs, behavior_packs)`` found under *roots*."""
        resource_packs: list[str] = []
        behavior_packs: list[str] = []
        for root in roots:
            for manifest in iter_manifests(root, self._skip_dirs):
                try:
                    pack_type = read_pack_type(manifest)
                except ManifestInvalid as exc:
                    logger.warning("%s", exc)
                    continue
                target = resource_packs if pack_type == PACK_TYPE_RESOURCE else behavior_packs
                pack_dir = str(manifest.parent)
                if pack_dir not in target:
                    target.append(pack_dir)
        logger.debug("Resource packs: %s", resource_packs)
        logger.debug("Behavior packs: %s", behavior_packs)
        return resource_packs, behavior_packs

    def _index_one(self, path: Path, pack_roots: list[str]) -> str:
        """Index a single file.  Returns 'indexed', 'skipped' or 'failed'."""
        try:
            _, record = load_record(path, pack_roots, self._max_bytes)
        except ClassificationUnknown:
            logger.debug("Skipping unclassified file: %s", path)
            return "skipped"
        except ContentUnreadable as exc:
            logger.warning("%s", exc)
            return "failed"

        if record is None:
            return "skipped"
        self._store.upsert(record)
        return "indexed"
