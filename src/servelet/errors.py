"""Servelet exception hierarchy.

Shared across the scanner, registry, render engine, and facade so every
module raises and reports the same types. Render-time failures are never
raised to callers of ``serve()``; they are published through the ``error``
signal and replaced by a sentinel string.
"""

from pathlib import Path


class ServeletError(Exception):
    """Base for all servelet-specific errors."""


class ConfigurationError(ServeletError):
    """Raised when registry configuration is invalid.

    Raised by ``ServeletConfig.__post_init__`` at construction.
    """


class PageNotFound(ServeletError, LookupError):  # noqa: N818
    """A page or partial name has no entry in its namespace."""

    def __init__(self, message: str, *, name: str, namespace: str = "views") -> None:
        super().__init__(message)
        self.name = name
        self.namespace = namespace


class PageReadError(ServeletError, OSError):
    """A directory could not be listed or a page file could not be read."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class PageLoadError(ServeletError):
    """A dynamic page module failed to execute or could not be located."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class PageRenderError(ServeletError):
    """A page producer raised, or returned an awaitable, while rendering."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name
