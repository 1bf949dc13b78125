"""Shared fixtures: a temporary site with views and partials."""

from pathlib import Path

import pytest

from servelet.config import ServeletConfig

LAYOUT_PAGE = '''\
def render(data):
    return "<html>" + data["title"] + "|" + data["body"] + "</html>"
'''

GREET_PAGE = '''\
def render(data):
    return "Hello " + data.get("name", "stranger")
'''

HOME_PAGE = '''\
def render(data):
    header = data["include"]("header")
    return data["layout"]("layout:title:body", "Home", header + "<p>home</p>")
'''

BROKEN_PAGE = '''\
def render(data):
    raise RuntimeError("boom")
'''


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def write_site(root: Path) -> Path:
    """Write the standard test site under ``root`` and return ``root``."""
    views = root / "views"
    partials = views / "partials"
    partials.mkdir(parents=True)

    (views / "index.html").write_text("<h1>Index</h1>")
    (views / "greet.py").write_text(GREET_PAGE)
    (views / "layout.py").write_text(LAYOUT_PAGE)
    (views / "home.py").write_text(HOME_PAGE)
    (views / "broken.py").write_text(BROKEN_PAGE)
    (views / "notes.txt").write_text("skipped")

    blog = views / "blog"
    blog.mkdir()
    (blog / "post.html").write_text("<article>Post</article>")

    (partials / "header.html").write_text("<header>Site</header>")
    (partials / "footer.html").write_text("<footer>Bye</footer>")
    (partials / "who.py").write_text(GREET_PAGE)
    (partials / "bad.py").write_text(BROKEN_PAGE)
    return root


@pytest.fixture
def site(tmp_path: Path) -> Path:
    return write_site(tmp_path)


@pytest.fixture
def make_site():
    """The site writer, for tests that need more than one site."""
    return write_site


@pytest.fixture
def config(site: Path) -> ServeletConfig:
    return ServeletConfig(root=site)
