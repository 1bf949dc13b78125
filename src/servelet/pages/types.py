"""Data models for the page registry.

``PageSource`` describes where a page comes from and which namespace it
belongs to; ``PageEntry`` is the cached, callable result. Both are frozen
dataclasses, replaced (never mutated) by a reload.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

type Producer = Callable[[dict[str, Any]], Any]


class PageKind(StrEnum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class Namespace(StrEnum):
    """The two independent page mappings.

    A name may exist in both; each is addressed separately.
    """

    VIEWS = "views"
    PARTIALS = "partials"


class ScanMode(StrEnum):
    """Which classifications a scan initializes.

    Files whose extension belongs to a kind outside the mode are skipped.
    """

    STATIC = "static"
    DYNAMIC = "dynamic"
    ALL = "all"

    def includes(self, kind: PageKind) -> bool:
        return self is ScanMode.ALL or self.value == kind.value


@dataclass(frozen=True, slots=True)
class PageSource:
    """A page file located during a scan, tagged with its namespace.

    Attributes:
        namespace: Mapping the entry is stored in. Set once when the scan
            task is dispatched.
        name: Registry key. ``"index"`` at a root, ``"blog/post"`` when
            nested.
        directory: Directory containing the file.
        filename: File name including extension (``"index.html"``).
    """

    namespace: Namespace
    name: str
    directory: Path
    filename: str

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    @property
    def extension(self) -> str:
        """Extension without the leading dot."""
        return Path(self.filename).suffix.lstrip(".")


@dataclass(frozen=True, slots=True)
class PageEntry:
    """A named, cached content producer.

    Static producers close over file content read at scan time and ignore
    their argument. Dynamic producers are the page module's ``render``
    callable, or an empty-string placeholder when loading failed.

    Attributes:
        name: Key within its namespace.
        kind: Static or dynamic.
        extension: Original extension (no dot), kept for targeted reloads.
        source_dir: Directory the entry was loaded from.
        producer: ``data -> str``.
        namespace: Mapping that holds the entry.
    """

    name: str
    kind: PageKind
    extension: str
    source_dir: Path
    producer: Producer
    namespace: Namespace = Namespace.VIEWS

    @property
    def filename(self) -> str:
        return f"{self.name.rsplit('/', 1)[-1]}.{self.extension}"

    def source(self) -> PageSource:
        """Rebuild the ``PageSource`` this entry was loaded from."""
        return PageSource(
            namespace=self.namespace,
            name=self.name,
            directory=self.source_dir,
            filename=self.filename,
        )


def static_producer(content: str) -> Producer:
    """Producer returning ``content`` for any data."""

    def produce(data: dict[str, Any] | None = None) -> str:
        return content

    return produce


def empty_producer(data: dict[str, Any] | None = None) -> str:
    """Placeholder for dynamic pages that failed to load or export nothing."""
    return ""
