"""Site: a small page tree served through servelet.

Demonstrates static pages, dynamic ``render(data)`` pages, partial
includes, a layout with two slots, nested folders, global data, and a
static reload.

Run:
    python app.py
"""

from pathlib import Path

import anyio

from servelet import Servelet

servelet = Servelet(
    root=Path(__file__).parent,
    global_data={"site": "Example", "year": 2026},
)
servelet.on("warning", lambda message: print(f"warning: {message}"))
servelet.on("error", lambda error: print(f"error: {error}"))


async def main() -> None:
    # Queued until the initial scan finishes, then replayed in order
    servelet.serve("index", {"user": "visitor"}, print)

    await servelet.start()

    for page in ("about", "docs/intro", "missing"):
        print(servelet.serve(page, {"user": "visitor"}))


if __name__ == "__main__":
    anyio.run(main)
