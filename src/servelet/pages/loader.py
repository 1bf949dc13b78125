"""Leaf loaders: static file text and dynamic page modules.

Static pages are read with ``anyio.Path``. Dynamic pages go through a
``PageLoader``: a capability that turns a file path into a typed
``LoadResult`` and never raises for page-author errors, so a broken page
module cannot take the host process down with it.

The default ``ModuleLoader`` executes the file as an isolated module in a
worker thread and looks up its ``render`` attribute::

    # views/about.py
    def render(data):
        return data["include"]("header") + "<p>About</p>"
"""

import importlib.util
import itertools
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import anyio
import anyio.to_thread

from servelet.pages.types import Producer

_MODULE_SAFE_RE = re.compile(r"\W")

# Distinguishes repeated loads of the same file in module names
_load_counter = itertools.count()


async def read_page_file(path: Path, encoding: str = "utf-8") -> str:
    """Read a static page's text. ``OSError`` propagates to the caller."""
    return await anyio.Path(path).read_text(encoding=encoding)


@dataclass(frozen=True, slots=True)
class LoadedPage:
    """The module exposed a callable."""

    producer: Producer


@dataclass(frozen=True, slots=True)
class MissingExport:
    """The module ran but its render attribute is absent or not callable.

    ``found`` is the non-callable value, or ``None`` when absent.
    """

    path: Path
    attribute: str
    found: Any = None


@dataclass(frozen=True, slots=True)
class LoadError:
    """The module could not be located or raised while executing."""

    path: Path
    error: BaseException


type LoadResult = LoadedPage | MissingExport | LoadError


class PageLoader(Protocol):
    """Anything that can turn a page file into a ``LoadResult``."""

    async def load(self, path: Path) -> LoadResult: ...


class ModuleLoader:
    """Execute ``.py`` page files and return their render callable."""

    __slots__ = ("_attribute",)

    def __init__(self, attribute: str = "render") -> None:
        self._attribute = attribute

    async def load(self, path: Path) -> LoadResult:
        return await anyio.to_thread.run_sync(self._load_sync, path)

    def _load_sync(self, path: Path) -> LoadResult:
        module_name = f"_servelet_page_{_MODULE_SAFE_RE.sub('_', path.stem)}_{next(_load_counter)}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            return LoadError(path, ImportError(f"No module loader for {path}"))

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except (KeyboardInterrupt, GeneratorExit):
            raise
        except BaseException as exc:
            # SystemExit from a page module must not stop the host
            return LoadError(path, exc)

        func = getattr(module, self._attribute, None)
        if func is None or not callable(func):
            return MissingExport(path, self._attribute, func)
        return LoadedPage(func)
