"""Per-torrent operations: details, snatch history, download, upload, thanks, comments."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import BinaryIO

from .crawler import PageCrawler, ProgressHook, merge_stats, page_text
from .errors import ActionError, NotFoundError
from .extract import SNATCH_PAGINATION, iter_snatches, parse_detail_page, parse_page_count, parse_upload_response
from .models import CatalogEntry, CrawlPage, Download, SnatchRecord
from .session import Session

logger = logging.getLogger("irrenhaus.details")

DETAILS_PATH = "/details.php"
SNATCHES_PATH = "/viewsnatches.php"
DOWNLOAD_PATH = "/download.php"
UPLOAD_PATH = "/takeupload.php"
THANKS_PATH = "/thanksajax.php"
COMMENT_PATH = "/comment.php"

SITE_ERROR_MARKER = "<span>Fehler</span>"
MISSING_ID_MARKER = "<span>ERROR</span>"
FILENAME_RE = re.compile(r'^attachment; filename="(.+)"$')


def fetch_details(
    session: Session,
    torrent_id: int,
    *,
    files: bool = False,
    peers: bool = False,
    snatches: bool = False,
    max_workers: int | None = None,
    progress: ProgressHook | None = None,
    stats: dict[str, int] | None = None,
) -> CatalogEntry:
    """Fetch one torrent.  Raises `NotFoundError` if it no longer exists."""
    session.ensure_authenticated()
    query = {"id": str(torrent_id)}
    if files:
        query["filelist"] = "1"
    if peers:
        query["dllist"] = "1"
    resp = session.fetch(DETAILS_PATH, query)
    if resp.status_code == 404:
        raise NotFoundError(f"torrent {torrent_id} not found")

    entry = parse_detail_page(
        page_text(resp, session.site.encoding),
        files=files,
        peers=peers,
        base_url=session.site.base_url,
    )
    if snatches:
        entry.snatches = fetch_snatches(
            session, torrent_id, max_workers=max_workers, progress=progress, stats=stats
        )
    return entry


def fetch_snatches(
    session: Session,
    torrent_id: int,
    *,
    max_workers: int | None = None,
    progress: ProgressHook | None = None,
    stats: dict[str, int] | None = None,
) -> list[SnatchRecord]:
    """Complete snatch history across all pages, one record per user."""
    def params(index: int) -> dict[str, str]:
        query = {"id": str(torrent_id)}
        if index:
            query["page"] = str(index)
        return query

    resp = session.fetch(SNATCHES_PATH, params(0))
    if resp.status_code == 404:
        logger.info("No snatch history for torrent %d", torrent_id)
        return []
    first = CrawlPage(0, page_text(resp, session.site.encoding))

    def load(index: int) -> CrawlPage:
        return CrawlPage(index, page_text(session.fetch(SNATCHES_PATH, params(index)), session.site.encoding))

    crawler: PageCrawler[str, SnatchRecord] = PageCrawler(
        load,
        lambda markup, on_error: iter_snatches(markup, on_error),
        lambda snatch: snatch.name,
        max_workers=max_workers or session.site.max_workers,
        what="snatch page",
    )
    found = crawler.crawl(first, parse_page_count(first.markup, SNATCH_PAGINATION), progress)
    merge_stats(stats, crawler)
    return list(found.values())


def download_torrent(session: Session, torrent_id: int) -> Download:
    session.ensure_authenticated()
    resp = session.fetch(DOWNLOAD_PATH, {"torrent": str(torrent_id)})
    if resp.status_code == 404:
        raise NotFoundError(f"torrent {torrent_id} not found")
    page_text(resp)

    disposition = resp.headers.get("Content-Disposition", "")
    m = FILENAME_RE.match(disposition)
    filename = m.group(1) if m else f"{torrent_id}.torrent"
    return Download(content=resp.content, filename=filename)


@dataclass
class UploadRequest:
    name: str
    category: int
    description: str
    meta: BinaryIO
    nfo: BinaryIO
    image: BinaryIO
    image2: BinaryIO | None = None


def upload(session: Session, req: UploadRequest) -> int:
    """Upload a torrent and return the id the tracker assigned to it."""
    session.ensure_authenticated()
    files = {
        "file": (f"{req.name}.torrent", req.meta, "application/x-bittorrent"),
        "nfo": (f"{req.name}.nfo", req.nfo, "application/octet-stream"),
        "pic1": (f"{req.name}.jpg", req.image, "image/jpeg"),
    }
    if req.image2 is not None:
        files["pic2"] = (f"{req.name}_2.jpg", req.image2, "image/jpeg")
    resp = session.submit_form(
        UPLOAD_PATH,
        fields={"name": req.name, "type": str(req.category), "descr": req.description},
        files=files,
    )
    if resp.status_code == 404:
        raise NotFoundError("upload endpoint not found")
    torrent_id = parse_upload_response(page_text(resp, session.site.encoding))
    logger.info("Uploaded %r as torrent %d", req.name, torrent_id)
    return torrent_id


def thank(session: Session, torrent_id: int) -> None:
    session.ensure_authenticated()
    resp = session.fetch(THANKS_PATH, {"torrentid": str(torrent_id)})
    if resp.status_code == 404:
        raise NotFoundError(f"torrent {torrent_id} not found")
    body = page_text(resp)
    if SITE_ERROR_MARKER in body:
        raise ActionError("account parked")
    if MISSING_ID_MARKER in body:
        raise ActionError("missing torrent id")


def write_comment(session: Session, torrent_id: int, text: str) -> None:
    session.ensure_authenticated()
    resp = session.submit_form(
        COMMENT_PATH,
        {"action": "add"},
        fields={"tid": str(torrent_id), "text": text},
    )
    if resp.status_code == 404:
        raise NotFoundError(f"torrent {torrent_id} not found")
    if SITE_ERROR_MARKER in page_text(resp):
        raise ActionError(f"comment on torrent {torrent_id} rejected")
