import threading
import time

import pytest

from conftest import catalog_page, catalog_row
from irrenhaus.crawler import BROWSE_PATH, PageCrawler, SearchQuery, merge_stats, search
from irrenhaus.errors import FetchError, ParseError
from irrenhaus.models import CrawlPage


def _numbers(markup, on_error):
    for token in markup.split():
        if token == "bad":
            on_error(ParseError("bad token"))
            continue
        if token == "boom":
            raise ValueError("extractor exploded")
        yield int(token)


class RecordingLoader:
    def __init__(self, pages, delays=None):
        self.pages = pages
        self.delays = delays or {}
        self.loaded = []
        self._lock = threading.Lock()

    def __call__(self, index):
        with self._lock:
            self.loaded.append(index)
        time.sleep(self.delays.get(index, 0))
        page = self.pages[index]
        if isinstance(page, Exception):
            raise page
        return CrawlPage(index, page)


def test_crawl_loads_every_page_except_the_first():
    loader = RecordingLoader({1: "2 3", 2: "4", 3: "5 6"})
    crawler = PageCrawler(loader, _numbers, lambda n: n, max_workers=4)

    merged = crawler.crawl(CrawlPage(0, "1"), page_count=3)

    assert sorted(loader.loaded) == [1, 2, 3]
    assert sorted(merged) == [1, 2, 3, 4, 5, 6]
    assert crawler.stats == {"pages": 4, "failed_pages": 0, "records": 6, "skipped_rows": 0}


def test_single_page_crawl_loads_nothing():
    loader = RecordingLoader({})
    crawler = PageCrawler(loader, _numbers, lambda n: n)

    assert sorted(crawler.crawl(CrawlPage(0, "7 8"), page_count=0)) == [7, 8]
    assert loader.loaded == []


def test_records_are_merged_by_key():
    loader = RecordingLoader({1: "11 12", 2: "12 13"})
    crawler = PageCrawler(loader, _numbers, lambda n: n % 10)

    merged = crawler.crawl(CrawlPage(0, "1 2"), page_count=2)

    assert sorted(merged) == [1, 2, 3]
    assert crawler.stats["records"] == 3


def test_slow_page_is_waited_for():
    loader = RecordingLoader({1: "2", 2: "3"}, delays={1: 0.2})
    crawler = PageCrawler(loader, _numbers, lambda n: n, max_workers=2)

    assert sorted(crawler.crawl(CrawlPage(0, "1"), page_count=2)) == [1, 2, 3]


def test_failed_page_is_absorbed_and_counted():
    loader = RecordingLoader({1: FetchError("/browse.php", "HTTP 500"), 2: "3"})
    crawler = PageCrawler(loader, _numbers, lambda n: n)

    merged = crawler.crawl(CrawlPage(0, "1"), page_count=2)

    assert sorted(merged) == [1, 3]
    assert crawler.stats["failed_pages"] == 1
    assert crawler.stats["pages"] == 3


def test_records_before_an_extractor_failure_are_kept():
    loader = RecordingLoader({1: "2 boom 99"})
    crawler = PageCrawler(loader, _numbers, lambda n: n)

    merged = crawler.crawl(CrawlPage(0, "1"), page_count=1)

    assert sorted(merged) == [1, 2]
    assert crawler.stats["failed_pages"] == 1


def test_skipped_rows_are_counted():
    loader = RecordingLoader({1: "bad 2 bad"})
    crawler = PageCrawler(loader, _numbers, lambda n: n)

    crawler.crawl(CrawlPage(0, "1 bad"), page_count=1)

    assert crawler.stats["skipped_rows"] == 3


def test_progress_reports_every_task():
    calls = []
    loader = RecordingLoader({1: "2", 2: "3"})
    crawler = PageCrawler(loader, _numbers, lambda n: n)

    crawler.crawl(CrawlPage(0, "1"), page_count=2, progress=lambda done, total: calls.append((done, total)))

    assert calls == [(1, 3), (2, 3), (3, 3)]


def test_merge_stats_accumulates():
    crawler = PageCrawler(RecordingLoader({}), _numbers, lambda n: n)
    crawler.crawl(CrawlPage(0, "1 2"), page_count=0)
    target = {"pages": 2, "records": 5}

    merge_stats(target, crawler)
    merge_stats(None, crawler)

    assert target == {"pages": 3, "records": 7, "failed_pages": 0, "skipped_rows": 0}


# ── search ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "query, expected",
    [
        (SearchQuery("x"), [("search", "x"), ("incldead", "0"), ("orderby", "added")]),
        (SearchQuery("", (10,), True), [("search", ""), ("incldead", "1"), ("orderby", "added"), ("cat", "10")]),
        (SearchQuery("", (10, 15)), [("search", ""), ("incldead", "0"), ("orderby", "added"), ("c10", "1"), ("c15", "1")]),
    ],
)
def test_search_query_params(query, expected):
    assert query.params() == expected


def test_search_query_page_param():
    assert SearchQuery("x").params(3)[-1] == ("page", "3")
    assert ("page", "0") not in SearchQuery("x").params(0)


def test_search_fetches_all_pages_and_deduplicates(tracker, session):
    tracker.paged(BROWSE_PATH, {
        0: catalog_page([catalog_row(1), catalog_row(2)], max_page=2),
        1: catalog_page([catalog_row(3), catalog_row(2)], max_page=2),
        2: catalog_page([catalog_row(4)], max_page=2),
    })
    stats = {}

    entries = search(session, SearchQuery("release"), stats=stats)

    assert sorted(e.id for e in entries) == [1, 2, 3, 4]
    assert len(tracker.calls(BROWSE_PATH)) == 3
    assert all(r.url.params["search"] == "release" for r in tracker.calls(BROWSE_PATH))
    assert stats["pages"] == 3 and stats["records"] == 4


def test_search_survives_a_failing_page(tracker, session):
    tracker.paged(BROWSE_PATH, {
        0: catalog_page([catalog_row(1)], max_page=2),
        1: 500,
        2: catalog_page([catalog_row(3)], max_page=2),
    })
    stats = {}

    entries = search(session, SearchQuery(), stats=stats)

    assert sorted(e.id for e in entries) == [1, 3]
    assert stats["failed_pages"] == 1


def test_search_without_results(tracker, session):
    tracker.html(BROWSE_PATH, catalog_page([]))
    assert search(session, SearchQuery("nichts")) == []


def test_search_fails_when_first_page_fails(tracker, session):
    tracker.html(BROWSE_PATH, "", status=503)
    with pytest.raises(FetchError):
        search(session, SearchQuery())
