"""Concurrent directory scanning with exact completion counting.

Each configured root is scanned as a ``ScanTask`` tagged with the
namespace its pages belong to. For every directory entry exactly one of
four things happens:

- static extension: ``load_static_page`` starts in the task group
- dynamic extension: ``load_dynamic_page`` starts in the task group
- subdirectory: a child ``ScanTask`` starts (same namespace, name prefix
  extended), unless it is hidden or is itself a configured root
- anything else: skipped

When two files in one directory map to the same page name, the one
whose extension comes first in classify order is loaded and the rest
are reported through the sink's ``warn()``.

A per-directory ``_Listing`` counts entry completions; when it reaches the
listing size the directory reports to the scan-wide ``ScanTracker``. A
subdirectory is added to the tracker's expected count *before* its parent
entry is marked complete, so the tracker can never see a finished scan
while a child directory is still pending.

All counting happens on the event loop thread. Worker threads (used by
anyio for file I/O and module execution) never touch a counter.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import anyio
from anyio.abc import TaskGroup

from servelet.config import ServeletConfig
from servelet.errors import PageReadError
from servelet.pages.types import Namespace, PageKind, PageSource, ScanMode

logger = logging.getLogger("servelet.discovery")

type CompletionCallback = Callable[[Exception | None], Any]


class PageSink(Protocol):
    """Receiver for classified page files (the registry)."""

    async def load_static_page(
        self, source: PageSource, on_complete: CompletionCallback | None = None
    ) -> Exception | None: ...

    async def load_dynamic_page(
        self, source: PageSource, on_complete: CompletionCallback | None = None
    ) -> Exception | None: ...

    def warn(self, message: str) -> None: ...


@dataclass(frozen=True, slots=True)
class ScanTask:
    """One directory to list, with the namespace its pages go to.

    Attributes:
        namespace: Target mapping, fixed when the root task is created.
        directory: Directory to list.
        prefix: Name prefix for nested pages (``"blog"`` -> ``"blog/post"``).
    """

    namespace: Namespace
    directory: Path
    prefix: str = ""

    def name_for(self, stem: str) -> str:
        return f"{self.prefix}/{stem}" if self.prefix else stem

    def child(self, dirname: str) -> "ScanTask":
        return ScanTask(
            namespace=self.namespace,
            directory=self.directory / dirname,
            prefix=self.name_for(dirname),
        )


class ScanTracker:
    """Scan-wide completion counter.

    ``callback`` fires exactly once: with the first failure reported, or
    with ``None`` when every expected directory has completed. Later
    failures are logged and otherwise ignored.
    """

    __slots__ = ("_callback", "_completed", "_error", "_expected", "_finished")

    def __init__(self, callback: CompletionCallback | None = None) -> None:
        self._callback = callback
        self._expected = 0
        self._completed = 0
        self._error: Exception | None = None
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def expected(self) -> int:
        return self._expected

    @property
    def completed(self) -> int:
        return self._completed

    def expect(self, count: int = 1) -> None:
        self._expected += count

    def complete(self) -> None:
        self._completed += 1
        if not self._finished and self._completed >= self._expected:
            self._finish()

    def fail(self, error: Exception) -> None:
        if self._finished:
            logger.debug("Ignoring scan failure after completion: %s", error)
            return
        self._error = error
        self._finish()

    def _finish(self) -> None:
        self._finished = True
        if self._callback is not None:
            self._callback(self._error)


class _Listing:
    """Completion counter for the entries of one directory."""

    __slots__ = ("_done", "_total", "_tracker")

    def __init__(self, total: int, tracker: ScanTracker) -> None:
        self._total = total
        self._done = 0
        self._tracker = tracker
        if total == 0:
            tracker.complete()

    def entry_done(self, error: Exception | None = None) -> None:
        if error is not None:
            self._tracker.fail(error)
        self._done += 1
        if self._done == self._total:
            self._tracker.complete()


class DirectoryScanner:
    """Lists directories and dispatches each entry to the page sink."""

    __slots__ = ("_config", "_mode", "_roots", "_sink", "_task_group", "_tracker")

    def __init__(
        self,
        config: ServeletConfig,
        sink: PageSink,
        task_group: TaskGroup,
        tracker: ScanTracker,
        mode: ScanMode = ScanMode.ALL,
    ) -> None:
        self._config = config
        self._sink = sink
        self._task_group = task_group
        self._tracker = tracker
        self._mode = ScanMode(mode)
        self._roots = frozenset({config.views_path, config.partials_path})

    def classify(self, filename: str) -> PageKind | None:
        """Kind for ``filename`` by extension, or ``None`` to skip.

        The static list is consulted first. The scan mode is not applied
        here.
        """
        ext = Path(filename).suffix.lstrip(".")
        if not ext:
            return None
        if ext in self._config.static_extensions:
            return PageKind.STATIC
        if ext in self._config.dynamic_extensions:
            return PageKind.DYNAMIC
        return None

    def rank(self, filename: str) -> int:
        """Position of ``filename``'s extension in classify order.

        Static extensions come first, then dynamic ones, each in configured
        order. Lower wins when two files map to the same page name.
        """
        ext = Path(filename).suffix.lstrip(".")
        order = (*self._config.static_extensions, *self._config.dynamic_extensions)
        return order.index(ext) if ext in order else len(order)

    def start(self, task: ScanTask) -> None:
        """Expect and start a directory scan in the task group."""
        self._tracker.expect()
        self._task_group.start_soon(self.scan, task)

    async def scan(self, task: ScanTask) -> None:
        """List ``task.directory`` and dispatch every entry.

        Subdirectories and skipped files are handled while the listing is
        walked. Page files are collected first so that, when several files
        share a page name (``dup.html`` and ``dup.py``), only the first in
        classify order is loaded and the others raise a warning.
        """
        try:
            entries = sorted(
                [entry async for entry in anyio.Path(task.directory).iterdir()],
                key=lambda entry: entry.name,
            )
        except OSError as exc:
            error = PageReadError(
                f"Could not list the {task.directory} directory.",
                path=task.directory,
            )
            error.__cause__ = exc
            logger.debug("Listing failed for %s: %s", task.directory, exc)
            self._tracker.fail(error)
            return

        listing = _Listing(len(entries), self._tracker)
        pages: list[tuple[PageKind, PageSource]] = []
        for entry in entries:
            page = await self._visit(task, entry, listing)
            if page is not None:
                pages.append(page)

        chosen: dict[str, PageSource] = {}
        for kind, source in sorted(pages, key=lambda page: self.rank(page[1].filename)):
            kept = chosen.get(source.name)
            if kept is not None:
                self._sink.warn(
                    f"The {source.filename} file in {source.directory} was skipped "
                    f"because {kept.filename} already provides the {source.name} page."
                )
                listing.entry_done()
                continue
            chosen[source.name] = source

            if not self._mode.includes(kind):
                listing.entry_done()
            elif kind is PageKind.STATIC:
                self._task_group.start_soon(self._sink.load_static_page, source, listing.entry_done)
            else:
                self._task_group.start_soon(self._sink.load_dynamic_page, source, listing.entry_done)

    async def _visit(
        self,
        task: ScanTask,
        entry: anyio.Path,
        listing: _Listing,
    ) -> tuple[PageKind, PageSource] | None:
        """Recurse or skip ``entry``, or return it as a page to load."""
        try:
            is_dir = await entry.is_dir()
        except OSError as exc:
            error = PageReadError(f"Could not stat {entry}.", path=Path(entry))
            error.__cause__ = exc
            listing.entry_done(error)
            return None

        if is_dir:
            if self._should_recurse(Path(entry)):
                self.start(task.child(entry.name))
            listing.entry_done()
            return None

        kind = self.classify(entry.name)
        if kind is None:
            listing.entry_done()
            return None

        source = PageSource(
            namespace=task.namespace,
            name=task.name_for(entry.stem),
            directory=task.directory,
            filename=entry.name,
        )
        return kind, source

    def _should_recurse(self, path: Path) -> bool:
        if not self._config.recursive or path.name.startswith("."):
            return False
        return path.resolve() not in self._roots
