"""High-level client – one session, every tracker operation."""

from __future__ import annotations

import logging
from typing import Iterable

from . import details, shoutbox
from .config import ClientConfig
from .crawler import ProgressHook, SearchQuery, search
from .details import UploadRequest
from .models import CatalogEntry, ChatBatch, Download
from .session import Session

logger = logging.getLogger("irrenhaus.client")


class Irrenhaus:
    """Facade over the tracker operations sharing one authenticated session.

    `stats` accumulates crawl bookkeeping across calls: result pages fetched,
    pages that failed, distinct records and rows skipped as unparseable.  A
    search that lost a page still returns normally; the loss only shows here.
    """

    def __init__(self, cfg: ClientConfig | None = None, *, session: Session | None = None) -> None:
        self.cfg = cfg or ClientConfig()
        self.session = session or Session.from_config(self.cfg)
        self.stats = {"pages": 0, "failed_pages": 0, "records": 0, "skipped_rows": 0}

    # ── catalog ──────────────────────────────────────────────────

    def search(
        self,
        term: str = "",
        categories: Iterable[int] = (),
        *,
        include_dead: bool = False,
        progress: ProgressHook | None = None,
    ) -> list[CatalogEntry]:
        query = SearchQuery(term=term, categories=tuple(categories), include_dead=include_dead)
        entries = search(self.session, query, progress=progress, stats=self.stats)
        logger.info("Search %r found %d torrents", term, len(entries))
        return entries

    def details(
        self,
        torrent_id: int,
        *,
        files: bool = False,
        peers: bool = False,
        snatches: bool = False,
        progress: ProgressHook | None = None,
    ) -> CatalogEntry:
        return details.fetch_details(
            self.session,
            torrent_id,
            files=files,
            peers=peers,
            snatches=snatches,
            progress=progress,
            stats=self.stats,
        )

    # ── torrent actions ──────────────────────────────────────────

    def download(self, torrent_id: int) -> Download:
        return details.download_torrent(self.session, torrent_id)

    def upload(self, req: UploadRequest) -> int:
        return details.upload(self.session, req)

    def thank(self, torrent_id: int) -> None:
        details.thank(self.session, torrent_id)

    def comment(self, torrent_id: int, text: str) -> None:
        details.write_comment(self.session, torrent_id, text)

    # ── shoutbox ─────────────────────────────────────────────────

    def shoutbox_read(self, feed_id: int, last_id: int = 0) -> ChatBatch:
        return shoutbox.read(self.session, feed_id, last_id)

    def shoutbox_write(self, feed_id: int, text: str) -> bool:
        return shoutbox.write(self.session, feed_id, text)

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> Irrenhaus:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
