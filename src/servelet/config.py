"""Registry configuration.

ServeletConfig is a frozen dataclass: immutable after creation, with the
semicolon-delimited extension lists normalized once at construction.
"""

import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from servelet.errors import ConfigurationError


def split_extensions(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Normalize ``"html;.htm"`` (or a sequence) to ``("html", "htm")``.

    Order is preserved, blanks and duplicates are dropped, and a leading
    dot is optional on every entry.
    """
    parts = value.split(";") if isinstance(value, str) else list(value)
    seen: list[str] = []
    for part in parts:
        ext = part.strip().lstrip(".")
        if ext and ext not in seen:
            seen.append(ext)
    return tuple(seen)


@dataclass(frozen=True, slots=True)
class ServeletConfig:
    """Page registry configuration. Immutable after creation.

    All fields have defaults. Override what you need::

        config = ServeletConfig(views_dir="site/views", static_ext="html;txt")
    """

    # Filesystem
    root: str | Path = "."
    views_dir: str | Path = "views"
    partials_dir: str | Path = "views/partials"
    recursive: bool = True  # Nested folders become "sub/name" pages

    # Classification (semicolon lists, normalized below)
    static_ext: str = "html"
    dynamic_ext: str = "py"

    # Data injected into every render as data["global"]
    global_data: dict[str, Any] = field(default_factory=dict)

    # Dynamic pages
    render_attribute: str = "render"

    # Static pages
    encoding: str = "utf-8"

    static_extensions: tuple[str, ...] = field(init=False)
    dynamic_extensions: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "static_extensions", split_extensions(self.static_ext))
        object.__setattr__(self, "dynamic_extensions", split_extensions(self.dynamic_ext))

        if not self.static_extensions and not self.dynamic_extensions:
            msg = "At least one static or dynamic page extension must be configured."
            raise ConfigurationError(msg)
        if not self.render_attribute.isidentifier():
            msg = f"render_attribute must be a Python identifier, got {self.render_attribute!r}"
            raise ConfigurationError(msg)
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            msg = f"Unknown page encoding: {self.encoding!r}"
            raise ConfigurationError(msg) from None

    @property
    def views_path(self) -> Path:
        """Absolute views root."""
        return (Path(self.root) / self.views_dir).resolve()

    @property
    def partials_path(self) -> Path:
        """Absolute partials root."""
        return (Path(self.root) / self.partials_dir).resolve()
