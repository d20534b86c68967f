"""
01: Fan out, fan in

Fetch several "pages" concurrently inside one scope. Each page may discover
more pages and spawn them on the same scope; do() returns only once the
whole tree has been fetched. A broken page fails the scope, but only after
every sibling has finished.

Run: python examples/01_do.py
"""

from __future__ import annotations

import os
import sys
import threading
import time

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import strand
from strand.trace import all_records, clear as clear_traces


SITE = {
    "/": ["/docs", "/blog"],
    "/docs": ["/docs/install", "/docs/api"],
    "/blog": ["/blog/2024", "/blog/broken"],
    "/docs/install": [],
    "/docs/api": [],
    "/blog/2024": [],
}


def crawl(root: str, skip_broken: bool) -> list[str]:
    fetched: list[str] = []
    lock = threading.Lock()

    def body(scope: strand.Scope) -> None:
        if skip_broken:
            scope.on_failure = lambda exc: not isinstance(exc, KeyError)

        def fetch(path: str) -> None:
            time.sleep(0.01)  # simulated network latency
            links = SITE[path]  # KeyError for pages that do not exist
            with lock:
                fetched.append(path)
            for link in links:
                scope.spawn(lambda link=link: fetch(link))

        scope.spawn(lambda: fetch(root))

    strand.do(body)
    return fetched


def main() -> None:
    clear_traces()

    print("Crawl, absorbing missing pages")
    print("=" * 60)
    t0 = time.monotonic()
    pages = crawl("/", skip_broken=True)
    print(f"  fetched {len(pages)} pages in {(time.monotonic() - t0) * 1000:.0f}ms")
    for page in sorted(pages):
        print(f"  • {page}")

    print("\nCrawl, failing on missing pages")
    print("=" * 60)
    try:
        crawl("/", skip_broken=False)
    except KeyError as exc:
        print(f"  scope failed after all siblings finished: {exc!r}")

    rec = all_records()[0]
    print(f"\n{'-' * 60}")
    print(f"  first scope: spawned={rec.spawned} absorbed={rec.absorbed} {rec.duration_ms}ms")


if __name__ == "__main__":
    main()
