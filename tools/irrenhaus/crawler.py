"""Paginated crawling – fetch every result page concurrently and merge the records."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterable, TypeVar

import httpx

from .errors import FetchError, ParseError
from .extract import CATALOG_PAGINATION, iter_catalog_entries, parse_page_count
from .models import CatalogEntry, CrawlPage
from .session import Session

logger = logging.getLogger("irrenhaus.crawler")

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

BROWSE_PATH = "/browse.php"

PageLoader = Callable[[int], CrawlPage]
Extractor = Callable[[str, Callable[[ParseError], None]], Iterable[T]]
ProgressHook = Callable[[int, int], None]


def page_text(resp: httpx.Response, encoding: str | None = None) -> str:
    if resp.status_code >= 400:
        raise FetchError(str(resp.request.url), f"HTTP {resp.status_code}")
    return resp.content.decode(encoding, errors="replace") if encoding else resp.text


class PageCrawler(Generic[K, T]):
    """Fan out one task per result page, fan the records back in keyed by identity.

    Pages are zero based: the caller has already fetched page 0 (to read the
    pagination) and passes it in, the crawler loads pages 1..N itself.  A page
    that fails to load or to parse contributes whatever it yielded before the
    failure; the crawl itself never fails because of a single page.
    """

    def __init__(
        self,
        load: PageLoader,
        extract: Extractor[T],
        key: Callable[[T], K],
        *,
        max_workers: int = 8,
        what: str = "page",
    ) -> None:
        self._load = load
        self._extract = extract
        self._key = key
        self.max_workers = max(1, max_workers)
        self.what = what
        self._lock = threading.Lock()
        self.stats = {"pages": 0, "failed_pages": 0, "records": 0, "skipped_rows": 0}

    def _count(self, stat: str, n: int = 1) -> None:
        with self._lock:
            self.stats[stat] += n

    def _skip_row(self, exc: ParseError) -> None:
        self._count("skipped_rows")

    def _run(self, index: int, first: CrawlPage) -> list[T]:
        records: list[T] = []
        try:
            page = first if index == first.index else self._load(index)
            for record in self._extract(page.markup, self._skip_row):
                records.append(record)
        except Exception as exc:
            logger.warning("Failed to crawl %s %d (%d records kept): %s", self.what, index, len(records), exc)
            self._count("failed_pages")
        return records

    def crawl(self, first: CrawlPage, page_count: int, progress: ProgressHook | None = None) -> dict[K, T]:
        """Run exactly `page_count + 1` tasks and return once all of them finished."""
        indices = [first.index] + [first.index + n for n in range(1, page_count + 1)]
        merged: dict[K, T] = {}
        done = 0
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(indices))) as pool:
            futures = [pool.submit(self._run, index, first) for index in indices]
            for future in as_completed(futures):
                for record in future.result():
                    merged[self._key(record)] = record
                done += 1
                if progress:
                    progress(done, len(indices))
        self._count("pages", len(indices))
        self._count("records", len(merged))
        logger.debug("Crawled %d %ss, %d distinct records", len(indices), self.what, len(merged))
        return merged


def merge_stats(target: dict[str, int] | None, crawler: PageCrawler) -> None:
    if target is None:
        return
    for key, value in crawler.stats.items():
        target[key] = target.get(key, 0) + value


# ── catalog search ───────────────────────────────────────────────


@dataclass(frozen=True)
class SearchQuery:
    term: str = ""
    categories: tuple[int, ...] = ()
    include_dead: bool = False

    def params(self, page: int = 0) -> list[tuple[str, str]]:
        params = [
            ("search", self.term),
            ("incldead", "1" if self.include_dead else "0"),
            ("orderby", "added"),
        ]
        if len(self.categories) == 1:
            params.append(("cat", str(self.categories[0])))
        else:
            params.extend((f"c{cat}", "1") for cat in self.categories)
        if page:
            params.append(("page", str(page)))
        return params


def search(
    session: Session,
    query: SearchQuery,
    *,
    max_workers: int | None = None,
    progress: ProgressHook | None = None,
    stats: dict[str, int] | None = None,
) -> list[CatalogEntry]:
    """All catalog entries matching `query`, one per torrent id, in no particular order."""
    session.ensure_authenticated()
    first = CrawlPage(0, page_text(session.fetch(BROWSE_PATH, query.params())))
    page_count = parse_page_count(first.markup, CATALOG_PAGINATION)
    logger.info("Search %r: %d additional result pages", query.term, page_count)

    def load(index: int) -> CrawlPage:
        return CrawlPage(index, page_text(session.fetch(BROWSE_PATH, query.params(index))))

    crawler: PageCrawler[int, CatalogEntry] = PageCrawler(
        load,
        lambda markup, on_error: iter_catalog_entries(markup, on_error),
        lambda entry: entry.id,
        max_workers=max_workers or session.site.max_workers,
        what="result page",
    )
    entries = crawler.crawl(first, page_count, progress)
    merge_stats(stats, crawler)
    return list(entries.values())
