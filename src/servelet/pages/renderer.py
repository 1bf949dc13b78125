"""Render engine: data context, includes, and layouts.

Every render builds a fresh data context from the caller's data::

    {**data, "global": <live global data>, "include": ..., "layout": ...}

and calls the page producer with it. Page code composes with the two
bound capabilities::

    def render(data):
        nav = data["include"](["header", "nav"], {"active": "home"})
        return data["layout"]("layout:body:aside", nav + "<main>…</main>", "<p>side</p>")

Failures never escape: a missing page or a producer that raises becomes
an ``error`` signal plus a sentinel string, and a missing or failing
partial contributes ``""``.
"""

import inspect
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from servelet.errors import PageNotFound, PageRenderError
from servelet.pages.registry import PageRegistry
from servelet.pages.types import Namespace, PageEntry
from servelet.signals import Signal

logger = logging.getLogger("servelet.render")

PAGE_NOT_FOUND = "The {page} page could not be found."
PAGE_FAILED = "An error has occurred within the dynamic {page} page."
INCLUDE_NOT_FOUND = "Could not find the {page} include file."


class RenderEngine:
    """Composes pages from a registry's cache.

    ``global_data`` is a single mutable mapping shared by every render;
    ``update_global_data()`` is visible to the next render without a reload.
    """

    __slots__ = ("_global_data", "_registry")

    def __init__(self, registry: PageRegistry, global_data: Mapping[str, Any] | None = None) -> None:
        self._registry = registry
        if global_data is None:
            global_data = registry.config.global_data
        self._global_data: dict[str, Any] = dict(global_data)

    @property
    def registry(self) -> PageRegistry:
        return self._registry

    @property
    def global_data(self) -> dict[str, Any]:
        return self._global_data

    def update_global_data(self, data: Mapping[str, Any]) -> None:
        self._global_data.update(data)

    # -- Pages --

    def render(self, page: str = "index", data: Mapping[str, Any] | None = None) -> str:
        """Render a view with a freshly built data context. Always a string."""
        entry = self._find_view(page)
        if entry is None:
            return PAGE_NOT_FOUND.format(page=page)
        return self._render_entry(entry, self.build_context(data))

    def render_with_context(self, page: str, context: dict[str, Any]) -> str:
        """Render a view with an already-built context (used by layouts)."""
        entry = self._find_view(page)
        if entry is None:
            return PAGE_NOT_FOUND.format(page=page)
        return self._render_entry(entry, context)

    def build_context(self, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
        context: dict[str, Any] = dict(data or {})
        context["global"] = self._global_data

        def include(names: str | Sequence[str], extra: Mapping[str, Any] | None = None) -> str:
            return self.include(context, names, extra)

        def layout(spec: str, *parts: str) -> str | tuple[str, ...]:
            return self.layout(context, spec, parts)

        context["include"] = include
        context["layout"] = layout
        return context

    def _find_view(self, page: str) -> PageEntry | None:
        entry = self._registry.lookup(Namespace.VIEWS, page)
        if entry is None:
            self._publish_error(PageNotFound(PAGE_NOT_FOUND.format(page=page), name=page))
        return entry

    def _render_entry(self, entry: PageEntry, context: dict[str, Any]) -> str:
        try:
            return self._invoke(entry, context)
        except Exception as exc:
            self._publish_error(self._render_error(entry, exc))
            return PAGE_FAILED.format(page=entry.name)

    # -- Includes --

    def include(
        self,
        context: Mapping[str, Any],
        names: str | Sequence[str],
        extra: Mapping[str, Any] | None = None,
    ) -> str:
        """Include one partial (``str``) or several (any other sequence)."""
        if isinstance(names, str):
            return self.include_one(context, names, extra)
        return self.include_many(context, names, extra)

    def include_one(
        self,
        context: Mapping[str, Any],
        name: str,
        extra: Mapping[str, Any] | None = None,
    ) -> str:
        """Render a partial with ``extra`` merged over a copy of ``context``.

        A missing or failing partial publishes an error and yields ``""``.
        """
        entry = self._registry.lookup(Namespace.PARTIALS, name)
        if entry is None:
            self._publish_error(
                PageNotFound(
                    INCLUDE_NOT_FOUND.format(page=name),
                    name=name,
                    namespace=Namespace.PARTIALS,
                )
            )
            return ""

        data = {**context, **(extra or {})}
        try:
            return self._invoke(entry, data)
        except Exception as exc:
            self._publish_error(self._render_error(entry, exc))
            return ""

    def include_many(
        self,
        context: Mapping[str, Any],
        names: Sequence[str],
        extra: Mapping[str, Any] | None = None,
    ) -> str:
        """Concatenate ``include_one`` for each name, in order."""
        return "".join(self.include_one(context, name, extra) for name in names)

    # -- Layouts --

    def layout(
        self,
        context: Mapping[str, Any],
        spec: str,
        parts: Sequence[str],
    ) -> str | Sequence[str]:
        """Render the layout named by ``spec`` around ``parts``.

        ``spec`` is ``"name:field1:field2..."``; ``parts[i]`` is bound to
        field ``i + 1`` (missing parts bind ``""``). The layout page gets a
        copy of ``context`` with the bindings merged in, without a new
        context being built, so its ``include``/``layout`` stay bound to the
        original context. A spec with no name returns ``parts`` unchanged.
        """
        name, *fields = spec.split(":")
        if not name:
            return parts

        bindings = {field: (parts[i] if i < len(parts) else "") or "" for i, field in enumerate(fields)}
        return self.render_with_context(name, {**context, **bindings})

    # -- Internals --

    def _invoke(self, entry: PageEntry, data: dict[str, Any]) -> str:
        result = entry.producer(data)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            msg = f"The {entry.name} page returned an awaitable; page producers must be synchronous."
            raise PageRenderError(msg, name=entry.name)
        if result is None:
            return ""
        return result if isinstance(result, str) else str(result)

    def _render_error(self, entry: PageEntry, exc: Exception) -> PageRenderError:
        if isinstance(exc, PageRenderError):
            return exc
        error = PageRenderError(
            f"The {entry.name} page raised {type(exc).__name__}: {exc}",
            name=entry.name,
        )
        error.__cause__ = exc
        return error

    def _publish_error(self, error: Exception) -> None:
        logger.debug("%s", error)
        self._registry.state.publish(Signal.ERROR, error)
