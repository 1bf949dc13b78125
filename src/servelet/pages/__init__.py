"""Page registry subsystem.

Scans a views root and a partials root into two namespaces of cached,
callable pages and composes them at request time.

Conventions:

    views/
      index.html         # static view "index"
      about.py           # dynamic view "about" (exports render(data))
      layout.py          # view rendered through data["layout"]("layout:body", ...)
      blog/
        post.html        # nested view "blog/post"
      partials/
        header.html      # partial "header", via data["include"]("header")
"""

from servelet.pages.discovery import DirectoryScanner, ScanTask, ScanTracker
from servelet.pages.loader import LoadedPage, LoadError, MissingExport, ModuleLoader, PageLoader
from servelet.pages.registry import PageRegistry
from servelet.pages.renderer import RenderEngine
from servelet.pages.types import Namespace, PageEntry, PageKind, PageSource, ScanMode

__all__ = [
    "DirectoryScanner",
    "LoadError",
    "LoadedPage",
    "MissingExport",
    "ModuleLoader",
    "Namespace",
    "PageEntry",
    "PageKind",
    "PageLoader",
    "PageRegistry",
    "PageSource",
    "RenderEngine",
    "ScanMode",
    "ScanTask",
    "ScanTracker",
]
