"""Page registry: the views and partials namespaces and how they fill.

The registry owns both namespace mappings and the ``RegistryState``
record. ``scan_all()`` runs a ``DirectoryScanner`` over the views root and
the partials root inside one anyio task group and reports through a single
completion callback. Individual pages are (re)loaded with
``load_static_page()`` and ``load_dynamic_page()``; ``reload_static()``
re-reads static pages by name or all at once.

Mutation:
    Namespace mappings are written only by load operations running on the
    event loop, and entries are replaced whole, never modified. Renders
    read them with plain dict lookups and do no I/O.
"""

import logging
from collections.abc import Iterable, Iterator

import anyio

from servelet.config import ServeletConfig
from servelet.errors import PageLoadError, PageNotFound, PageReadError
from servelet.pages.discovery import CompletionCallback, DirectoryScanner, ScanTask, ScanTracker
from servelet.pages.loader import (
    LoadedPage,
    LoadError,
    MissingExport,
    ModuleLoader,
    PageLoader,
    read_page_file,
)
from servelet.pages.types import (
    Namespace,
    PageEntry,
    PageKind,
    PageSource,
    Producer,
    ScanMode,
    empty_producer,
    static_producer,
)
from servelet.signals import RegistryState, Signal, SignalBus

logger = logging.getLogger("servelet.registry")


class PageRegistry:
    """Named page entries for the views and partials namespaces.

    Usage::

        registry = PageRegistry(ServeletConfig(root="site"))
        error = await registry.scan_all()
        entry = registry.lookup(Namespace.VIEWS, "index")
    """

    __slots__ = ("_config", "_loader", "_pages", "_signals", "_state")

    def __init__(
        self,
        config: ServeletConfig,
        *,
        loader: PageLoader | None = None,
        signals: SignalBus | None = None,
    ) -> None:
        self._config = config
        self._loader = loader or ModuleLoader(config.render_attribute)
        self._signals = signals or SignalBus()
        self._state = RegistryState(self._signals)
        self._pages: dict[Namespace, dict[str, PageEntry]] = {ns: {} for ns in Namespace}

    @property
    def config(self) -> ServeletConfig:
        return self._config

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def signals(self) -> SignalBus:
        return self._signals

    @property
    def views(self) -> dict[str, PageEntry]:
        return self._pages[Namespace.VIEWS]

    @property
    def partials(self) -> dict[str, PageEntry]:
        return self._pages[Namespace.PARTIALS]

    def roots(self) -> list[ScanTask]:
        return [
            ScanTask(Namespace.VIEWS, self._config.views_path),
            ScanTask(Namespace.PARTIALS, self._config.partials_path),
        ]

    # -- Lookup --

    def lookup(self, namespace: Namespace | str, name: str) -> PageEntry | None:
        """Entry for ``name`` in ``namespace``, or ``None``. Never does I/O."""
        return self._pages[Namespace(namespace)].get(name)

    def names(self, namespace: Namespace | str) -> list[str]:
        return sorted(self._pages[Namespace(namespace)])

    def __iter__(self) -> Iterator[PageEntry]:
        for namespace in Namespace:
            yield from self._pages[namespace].values()

    def __len__(self) -> int:
        return sum(len(pages) for pages in self._pages.values())

    # -- Scanning --

    async def scan_all(
        self,
        mode: ScanMode | str = ScanMode.ALL,
        on_complete: CompletionCallback | None = None,
    ) -> Exception | None:
        """Scan every root and initialize the pages ``mode`` selects.

        ``on_complete`` is called exactly once: with the first failure, or
        with ``None`` after every root and every discovered subdirectory
        has completed. The coroutine itself returns once all started work
        has finished, with the same error (or ``None``).

        Scanning publishes no error signal; the caller decides whether a
        failure is fatal (initial scan) or local (reload).
        """
        mode = ScanMode(mode)
        tracker = ScanTracker(on_complete)
        async with anyio.create_task_group() as tg:
            scanner = DirectoryScanner(self._config, self, tg, tracker, mode)
            for task in self.roots():
                scanner.start(task)

        if tracker.error is None:
            logger.debug(
                "Scanned %d directories (%s): %d views, %d partials",
                tracker.completed,
                mode.value,
                len(self.views),
                len(self.partials),
            )
        return tracker.error

    # -- Loading --

    async def load_static_page(
        self,
        source: PageSource,
        on_complete: CompletionCallback | None = None,
    ) -> Exception | None:
        """Read a static page and store it, replacing any previous entry.

        The entry is replaced only after the read succeeds. A failed read
        leaves the namespace untouched and is reported through
        ``on_complete`` and the return value, not the error signal.
        """
        error: Exception | None = None
        try:
            content = await read_page_file(source.path, self._config.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            error = PageReadError(
                f"Could not read the static {source.name} page at {source.path}.",
                path=source.path,
            )
            error.__cause__ = exc
        else:
            self._store(source, PageKind.STATIC, static_producer(content))

        if on_complete is not None:
            on_complete(error)
        return error

    async def load_dynamic_page(
        self,
        source: PageSource,
        on_complete: CompletionCallback | None = None,
    ) -> Exception | None:
        """Load a dynamic page module and store its render callable.

        A module that fails to load is stored as an empty-string page and
        the failure is reported through ``on_complete``. A module without a
        callable render attribute is also stored as an empty page, with a
        warning signal instead of an error.
        """
        error: Exception | None = None
        result = await self._loader.load(source.path)

        match result:
            case LoadedPage(producer=producer):
                self._store(source, PageKind.DYNAMIC, producer)
            case MissingExport(attribute=attribute, found=None):
                self._store(source, PageKind.DYNAMIC, empty_producer)
                self.warn(
                    f"The {source.name} dynamic page did not export a {attribute}() "
                    f"function to build the page content."
                )
            case MissingExport(attribute=attribute, found=found):
                self._store(source, PageKind.DYNAMIC, empty_producer)
                self.warn(
                    f"The {source.name} dynamic page exported {attribute} as "
                    f"{type(found).__name__}, not a function to build the page content."
                )
            case LoadError(error=cause):
                self._store(source, PageKind.DYNAMIC, empty_producer)
                error = PageLoadError(
                    f"Could not load the dynamic {source.name} page: {cause!r}",
                    path=source.path,
                )
                error.__cause__ = cause

        if on_complete is not None:
            on_complete(error)
        return error

    def warn(self, message: str) -> None:
        """Publish a warning signal."""
        self._state.publish(Signal.WARNING, message)

    def _store(self, source: PageSource, kind: PageKind, producer: Producer) -> None:
        self._pages[source.namespace][source.name] = PageEntry(
            name=source.name,
            kind=kind,
            extension=source.extension,
            source_dir=source.directory,
            producer=producer,
            namespace=source.namespace,
        )

    # -- Reloading --

    def find_static(self, name: str) -> PageEntry:
        """Static entry that ``reload_static(name)`` would re-read.

        Views win over partials. Raises ``PageNotFound`` when neither
        namespace holds a static entry whose extension is still configured
        as static.
        """
        for namespace in Namespace:
            entry = self._pages[namespace].get(name)
            if (
                entry is not None
                and entry.kind is PageKind.STATIC
                and entry.extension in self._config.static_extensions
            ):
                return entry
        msg = f"Could not reload the static {name} page, since it was never initialized."
        raise PageNotFound(msg, name=name)

    async def reload_static(self, names: str | Iterable[str] | None = None) -> Exception | None:
        """Re-read static pages from disk.

        - ``None``: rescan every root in static mode.
        - a name: re-read that page only, from its recorded location.
        - several names: re-read each in turn. A failure does not stop the
          remaining names; one failure is returned as itself, several as an
          ``ExceptionGroup``.

        Failures leave existing entries untouched and never publish the
        error signal.
        """
        if names is None:
            logger.debug("Reloading all static pages")
            return await self.scan_all(ScanMode.STATIC)

        if isinstance(names, str):
            return await self._reload_one(names)

        errors = [error for name in names if (error := await self._reload_one(name)) is not None]
        if not errors:
            return None
        if len(errors) == 1:
            return errors[0]
        return ExceptionGroup("Could not reload some static pages", errors)

    async def _reload_one(self, name: str) -> Exception | None:
        try:
            entry = self.find_static(name)
        except PageNotFound as exc:
            return exc
        logger.debug("Reloading static %s page from %s", name, entry.source_dir)
        return await self.load_static_page(entry.source())
