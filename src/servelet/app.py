"""Servelet facade.

Mutable during startup (the initial scan is in flight, ``serve()`` calls
are queued). Ready once every page under the views and partials roots has
been initialized; from then on ``serve()`` renders immediately.

Usage::

    servelet = Servelet(views_dir="views", partials_dir="views/partials")
    servelet.on("error", report)
    await servelet.start()

    html = servelet.serve("index", {"title": "Home"})
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable, Mapping
from functools import partial
from typing import Any, Self

import anyio

from servelet.config import ServeletConfig
from servelet.pages.loader import PageLoader
from servelet.pages.registry import PageRegistry
from servelet.pages.renderer import RenderEngine
from servelet.pages.types import ScanMode
from servelet.signals import Handler, Signal

logger = logging.getLogger("servelet.app")

type ServeCallback = Callable[[str], Any]
type ReloadCallback = Callable[[Exception | None], Any]


class PendingServe:
    """Handle returned by ``serve()`` before the registry is ready.

    Resolved with the rendered page when the queued call is replayed::

        handle = servelet.serve("index")
        await servelet.start()
        html = await handle.wait()
    """

    __slots__ = ("_done", "_event", "_result", "page")

    def __init__(self, page: str) -> None:
        self.page = page
        self._done = False
        self._result: str | None = None
        self._event: anyio.Event | None = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def result(self) -> str | None:
        """The rendered page, or ``None`` while still queued."""
        return self._result

    async def wait(self) -> str:
        if not self._done:
            if self._event is None:
                self._event = anyio.Event()
            await self._event.wait()
        assert self._result is not None
        return self._result

    def _resolve(self, html: str) -> None:
        self._result = html
        self._done = True
        if self._event is not None:
            self._event.set()

    def __repr__(self) -> str:
        state = "done" if self._done else "pending"
        return f"<PendingServe {self.page!r} {state}>"


class Servelet:
    """Serves cached static and dynamic pages from a views directory.

    Configuration comes from a ``ServeletConfig`` and/or keyword overrides
    of its fields::

        Servelet(ServeletConfig(root="site"), static_ext="html;txt")

    Events (``on`` / ``off``):
        ``"error"``: an exception, on every failure (initial scan, missing
        page or partial, failing page).
        ``"warning"``: a message, e.g. a dynamic page without ``render``.
        ``"ready"``: no payload, once the initial scan succeeds.
    """

    __slots__ = ("_engine", "_registry", "_started")

    def __init__(
        self,
        config: ServeletConfig | None = None,
        *,
        loader: PageLoader | None = None,
        **overrides: Any,
    ) -> None:
        if config is None:
            config = ServeletConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self._registry = PageRegistry(config, loader=loader)
        self._engine = RenderEngine(self._registry)
        self._started = False

    # -- Lifecycle --

    async def start(self) -> Self:
        """Run the initial scan. Idempotent.

        On success the registry becomes ready, ``ready`` handlers run, and
        queued ``serve()`` calls replay in arrival order. On failure the
        ``error`` signal fires and the registry stays not ready.
        """
        if self._started:
            return self
        self._started = True

        error = await self._registry.scan_all(ScanMode.ALL)
        if error is not None:
            logger.error("Initial page scan failed: %s", error)
            self._registry.state.publish(Signal.ERROR, error)
            return self

        self._registry.state.publish(Signal.READY)
        return self

    async def __aenter__(self) -> Self:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    # -- State --

    @property
    def config(self) -> ServeletConfig:
        return self._registry.config

    @property
    def registry(self) -> PageRegistry:
        return self._registry

    @property
    def engine(self) -> RenderEngine:
        return self._engine

    @property
    def ready(self) -> bool:
        return self._registry.state.ready

    @property
    def error(self) -> BaseException | None:
        """The most recent error, or ``None``."""
        return self._registry.state.error

    @property
    def warning(self) -> str | None:
        """The most recent warning, or ``None``."""
        return self._registry.state.warning

    @property
    def global_data(self) -> dict[str, Any]:
        return self._engine.global_data

    # -- Serving --

    def serve(
        self,
        page: str = "index",
        data: Mapping[str, Any] | ServeCallback | None = None,
        callback: ServeCallback | None = None,
    ) -> "str | Servelet | PendingServe":
        """Render a page from the views namespace.

        ``serve(page, callback)`` is accepted as a shorthand for
        ``serve(page, None, callback)``.

        Returns:
            The page string when ready and no callback is given; the
            servelet itself when a callback is given; a ``PendingServe``
            when called before the registry is ready.
        """
        if callable(data) and callback is None:
            callback, data = data, None

        if not self._registry.state.ready:
            handle = PendingServe(page)
            self._registry.state.defer(partial(self._replay, handle, page, data, callback))
            return handle

        html = self._engine.render(page, data)
        if callback is not None:
            callback(html)
            return self
        return html

    def _replay(
        self,
        handle: PendingServe,
        page: str,
        data: Mapping[str, Any] | None,
        callback: ServeCallback | None,
    ) -> None:
        html = self._engine.render(page, data)
        handle._resolve(html)
        if callback is not None:
            callback(html)

    def update_global_data(self, data: Mapping[str, Any]) -> Self:
        """Merge ``data`` into the global data every render sees."""
        self._engine.update_global_data(data)
        return self

    async def reload_static_page(
        self,
        names: str | Iterable[str] | ReloadCallback | None = None,
        callback: ReloadCallback | None = None,
    ) -> Exception | None:
        """Re-read static pages from disk; all of them when ``names`` is omitted.

        ``callback`` receives the failure (or ``None``) once; the same value
        is returned. Failures leave the cached pages as they were.
        """
        if callable(names) and callback is None:
            callback, names = names, None

        error = await self._registry.reload_static(names)
        if callback is not None:
            callback(error)
        return error

    # -- Events --

    def on(self, event: Signal | str, handler: Handler) -> Self:
        self._registry.signals.on(event, handler)
        return self

    def off(self, event: Signal | str, handler: Handler) -> Self:
        self._registry.signals.off(event, handler)
        return self
