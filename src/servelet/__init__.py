"""Servelet: cached static and dynamic pages with includes and layouts.

Scans a views folder and a partials folder once at startup, caches every
page as a callable, and renders pages on demand with per-call data.

Basic usage::

    from servelet import Servelet

    async with Servelet(views_dir="views") as servelet:
        html = servelet.serve("index", {"title": "Home"})

Dynamic pages are Python files exposing ``render(data)``::

    def render(data):
        body = data["include"]("header") + f"<h1>{data['title']}</h1>"
        return data["layout"]("layout:body", body)
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ConfigurationError",
    "Namespace",
    "PageEntry",
    "PageKind",
    "PageLoadError",
    "PageNotFound",
    "PageReadError",
    "PageRegistry",
    "PageRenderError",
    "PendingServe",
    "RenderEngine",
    "ScanMode",
    "Servelet",
    "ServeletConfig",
    "ServeletError",
    "Signal",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import servelet`` fast while providing a clean top-level API.
    """
    if name in ("Servelet", "PendingServe"):
        from servelet import app as _app

        return getattr(_app, name)

    if name == "ServeletConfig":
        from servelet.config import ServeletConfig

        return ServeletConfig

    if name == "Signal":
        from servelet.signals import Signal

        return Signal

    if name in ("PageRegistry", "RenderEngine", "Namespace", "PageEntry", "PageKind", "ScanMode"):
        from servelet import pages as _pages

        return getattr(_pages, name)

    if name in (
        "ServeletError",
        "ConfigurationError",
        "PageNotFound",
        "PageReadError",
        "PageLoadError",
        "PageRenderError",
    ):
        from servelet import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
