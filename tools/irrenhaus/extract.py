"""Record extractors – tracker HTML → typed records.

The pages carry no field names, so every extractor is a schema of positions:
"the Nth cell of a row is X, convert it with F".  A missing cell or a missing
anchor is a structural error for that one row; values that merely fail to
convert fall back to their zero value (see `convert`).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, TypeVar

from bs4 import BeautifulSoup, Tag

from . import categories
from .config import DEFAULT_BASE_URL
from .convert import (
    CATALOG_DATE_FORMAT,
    DETAIL_DATE_FORMAT,
    parse_duration,
    parse_int,
    parse_percent,
    parse_ratio,
    parse_timestamp,
    size_to_bytes,
)
from .errors import ParseError, UploadError
from .models import CatalogEntry, FileRecord, PeerRecord, SnatchRecord
from .text import normalize

logger = logging.getLogger("irrenhaus.extract")

T = TypeVar("T")
ErrorHook = Callable[[ParseError], None]

PARSER = "html.parser"

PAGE_RE = re.compile(r"[?&]page=(\d+)")
CATEGORY_HREF_RE = re.compile(r"browse\.php\?cat=(\d+)")
DETAILS_HREF_RE = re.compile(r"details\.php\?id=(\d+)")
DOWNLOAD_HREF_RE = re.compile(r"download\.php\?torrent=(\d+)")
EXACT_SIZE_RE = re.compile(r"\(([\d.,]+)\s*Bytes?\)")
SNATCH_COUNT_RE = re.compile(r"(\d+) mal")
PEER_SUMMARY_RE = re.compile(r"(\d+) Seeder, (\d+) Leecher")

CATALOG_PAGINATION = "p[align=center] a"
SNATCH_PAGINATION = 'a[href*="page="]'
CATALOG_HEADER = "Typ"
DETAIL_TITLE_PREFIX = "Details zu "
UPLOAD_FAILED_MARKER = "TorrentUpload-Upload fehlgeschlagen!"
STILL_SEEDING = "Seedet im Moment"
CONNECTABLE_YES = "Ja"
ANONYMOUS = "anon"


# ── schema plumbing ──────────────────────────────────────────────


@dataclass(frozen=True)
class Column:
    name: str
    index: int
    convert: Callable[[Tag], Any]


def apply_columns(cells: list[Tag], columns: Iterable[Column]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for col in columns:
        if col.index >= len(cells):
            raise ParseError(f"row has {len(cells)} cells, {col.name!r} expects column {col.index}")
        values[col.name] = col.convert(cells[col.index])
    return values


def soup_of(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, PARSER)


def rows_of(table: Tag) -> list[Tag]:
    """Direct rows of a table; rows of nested tables are not included."""
    body = table.find("tbody", recursive=False)
    return (body or table).find_all("tr", recursive=False)


def cells_of(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


def _iter_rows(
    rows: Iterable[Tag],
    build: Callable[[list[Tag]], T],
    what: str,
    on_error: ErrorHook | None,
) -> Iterator[T]:
    for n, row in enumerate(rows):
        try:
            yield build(cells_of(row))
        except ParseError as exc:
            logger.warning("Skipping %s row %d: %s", what, n, exc)
            if on_error:
                on_error(exc)


# ── cell converters ──────────────────────────────────────────────


def _text(td: Tag) -> str:
    return td.get_text(strip=True)


def _compact(td: Tag) -> str:
    return "".join(td.get_text().split())


def _anchor(td: Tag) -> Tag:
    a = td.find("a", href=True)
    if a is None:
        raise ParseError("expected a link")
    return a


def _anchor_text_or_text(td: Tag) -> str:
    a = td.find("a")
    return a.get_text(strip=True) if a is not None else _text(td)


def _href_number(pattern: re.Pattern[str], required: bool) -> Callable[[Tag], int]:
    def convert(td: Tag) -> int:
        m = pattern.search(_anchor(td)["href"])
        if m:
            return int(m.group(1))
        if required:
            raise ParseError(f"link does not match {pattern.pattern}")
        return 0
    return convert


def _link_title(td: Tag) -> str:
    a = _anchor(td)
    return a.get("title") or a.get_text(strip=True)


def _count(td: Tag) -> int:
    return parse_int(_text(td))


def _size(td: Tag) -> int:
    return size_to_bytes(_text(td))


def _uploader(td: Tag) -> str:
    links = td.find_all("a")
    return links[0].get_text(strip=True) if len(links) == 1 else ANONYMOUS


def _bold(td: Tag) -> str:
    b = td.find("b")
    text = b.get_text(strip=True) if b is not None else _text(td)
    return text.removeprefix("Torrent:").strip()


def _completion(td: Tag) -> float:
    div = td.find("div", title=True)
    return parse_percent(div["title"]) if div is not None else 0.0


# ── pagination ───────────────────────────────────────────────────


def parse_page_count(markup: str | BeautifulSoup, selector: str = CATALOG_PAGINATION) -> int:
    """Highest `page=N` among the pagination links, 0 when there is only one page."""
    soup = soup_of(markup) if isinstance(markup, str) else markup
    highest = 0
    for a in soup.select(selector):
        for m in PAGE_RE.finditer(a.get("href", "")):
            highest = max(highest, int(m.group(1)))
    return highest


# ── catalog (browse.php) ─────────────────────────────────────────

CATALOG_COLUMNS: tuple[Column, ...] = (
    Column("category", 0, _href_number(CATEGORY_HREF_RE, required=False)),
    Column("id", 1, _href_number(DETAILS_HREF_RE, required=True)),
    Column("name", 1, _link_title),
    Column("file_count", 2, _count),
    Column("comment_count", 3, _count),
    Column("added", 4, lambda td: parse_timestamp(_compact(td), CATALOG_DATE_FORMAT)),
    Column("size", 6, _size),
    Column("snatch_count", 8, _count),
    Column("seeder_count", 9, _count),
    Column("leecher_count", 10, _count),
    Column("uploader", 12, _uploader),
)


def parse_catalog_row(cells: list[Tag]) -> CatalogEntry:
    return CatalogEntry(**apply_columns(cells, CATALOG_COLUMNS))


def _catalog_table(soup: BeautifulSoup) -> Tag | None:
    for table in soup.select("table.tableinborder"):
        first = table.find("td")
        if first is not None and first.get_text(strip=True) == CATALOG_HEADER:
            return table
    return None


def iter_catalog_entries(markup: str | BeautifulSoup, on_error: ErrorHook | None = None) -> Iterator[CatalogEntry]:
    """Yield one entry per torrent row of a browse page (header row skipped)."""
    soup = soup_of(markup) if isinstance(markup, str) else markup
    table = _catalog_table(soup)
    if table is None:
        return
    yield from _iter_rows(rows_of(table)[1:], parse_catalog_row, "catalog", on_error)


# ── file / peer tables (details.php) ─────────────────────────────

FILE_COLUMNS: tuple[Column, ...] = (
    Column("name", 0, _text),
    Column("size", 1, _size),
)

PEER_COLUMNS: tuple[Column, ...] = (
    Column("name", 0, _anchor_text_or_text),
    Column("connectable", 1, lambda td: _text(td) == CONNECTABLE_YES),
    Column("uploaded", 2, _size),
    Column("upload_rate", 3, _size),
    Column("downloaded", 4, _size),
    Column("download_rate", 5, _size),
    Column("ratio", 6, lambda td: parse_ratio(_text(td))),
    Column("completed", 7, _completion),
    Column("connected", 8, lambda td: parse_duration(_text(td))),
    Column("idle", 9, lambda td: parse_duration(_text(td))),
    Column("client", 10, _text),
)


def parse_file_row(cells: list[Tag]) -> FileRecord:
    return FileRecord(**apply_columns(cells, FILE_COLUMNS))


def parse_peer_row(cells: list[Tag]) -> PeerRecord:
    values = apply_columns(cells, PEER_COLUMNS)
    return PeerRecord(seeder=int(values["completed"]) == 100, **values)


def parse_file_table(table: Tag, on_error: ErrorHook | None = None) -> list[FileRecord]:
    return list(_iter_rows(rows_of(table)[1:], parse_file_row, "file", on_error))


def parse_peer_table(table: Tag, on_error: ErrorHook | None = None) -> list[PeerRecord]:
    return list(_iter_rows(rows_of(table)[1:], parse_peer_row, "peer", on_error))


# ── snatch history (viewsnatches.php) ────────────────────────────


def _snatch_name(td: Tag) -> str:
    name = _anchor_text_or_text(td)
    if not name:
        raise ParseError("snatch row without user name")
    return name


def _stopped(td: Tag) -> str:
    font = td.find("font")
    return font.get_text(strip=True) if font is not None else _text(td)


SNATCH_COLUMNS: tuple[Column, ...] = (
    Column("name", 0, _snatch_name),
    Column("downloaded", 1, lambda td: size_to_bytes(_bold(td))),
    Column("uploaded", 2, lambda td: size_to_bytes(_bold(td))),
    Column("ratio", 3, lambda td: parse_ratio(_bold(td))),
    Column("completed", 4, lambda td: parse_timestamp(_bold(td))),
    Column("stopped", 5, _stopped),
)


def parse_snatch_row(cells: list[Tag]) -> SnatchRecord:
    values = apply_columns(cells, SNATCH_COLUMNS)
    stopped = values.pop("stopped")
    if stopped == STILL_SEEDING:
        return SnatchRecord(seeding=True, **values)
    return SnatchRecord(stopped=parse_timestamp(stopped), **values)


def iter_snatches(markup: str | BeautifulSoup, on_error: ErrorHook | None = None) -> Iterator[SnatchRecord]:
    soup = soup_of(markup) if isinstance(markup, str) else markup
    table = soup.select_one("table.tableb")
    if table is None:
        return
    yield from _iter_rows(rows_of(table)[1:], parse_snatch_row, "snatch", on_error)


# ── detail page (details.php) ────────────────────────────────────


@dataclass(frozen=True)
class DetailLayout:
    """Row positions inside the details table (second cell holds the value)."""
    download: int = 0
    info_hash: int = 1
    description: int = 2
    category: int = 4
    size: int = 6
    added: int = 7
    snatches: int = 13
    file_count: int = 15

    def file_table(self) -> int:
        return self.file_count + 1

    def peers(self, with_files: bool) -> int:
        # the file table, when requested, pushes the peer section down one row
        return self.file_count + 2 + (1 if with_files else 0)


DETAIL_LAYOUT = DetailLayout()


def _value_cell(rows: list[Tag], index: int, field: str) -> Tag:
    if index >= len(rows):
        raise ParseError(f"details table has {len(rows)} rows, {field!r} expects row {index}")
    cells = cells_of(rows[index])
    if len(cells) < 2:
        raise ParseError(f"row {index} ({field}) has no value cell")
    return cells[1]


def _optional_table(rows: list[Tag], index: int) -> Tag | None:
    if index >= len(rows):
        return None
    cells = cells_of(rows[index])
    if len(cells) < 2:
        return None
    return cells[1].find("table")


def _exact_size(td: Tag) -> int:
    # "117,73 GB (126.413.824.819 Bytes)"
    text = _text(td)
    m = EXACT_SIZE_RE.search(text)
    return parse_int(m.group(1)) if m else size_to_bytes(text)


def _details_block(soup: BeautifulSoup) -> tuple[str, Tag]:
    for block in soup.select("div.blockinborder"):
        title = block.select_one("div.centeredtitle b")
        if title is None or not title.get_text().startswith(DETAIL_TITLE_PREFIX.strip()):
            continue
        table = block.select_one("div > table.tableinborder")
        if table is None:
            break
        return title.get_text().removeprefix(DETAIL_TITLE_PREFIX).strip(), table
    raise ParseError("could not find details table")


def parse_detail_page(
    markup: str,
    *,
    files: bool = False,
    peers: bool = False,
    base_url: str = DEFAULT_BASE_URL,
    layout: DetailLayout = DETAIL_LAYOUT,
) -> CatalogEntry:
    """Parse one details page.  Structural problems raise `ParseError`."""
    name, table = _details_block(soup_of(markup))
    rows = rows_of(table)

    _value_cell(rows, layout.download, "download")
    link = rows[layout.download].find("a", href=DOWNLOAD_HREF_RE)
    if link is None:
        raise ParseError("download link missing")
    entry = CatalogEntry(id=int(DOWNLOAD_HREF_RE.search(link["href"]).group(1)), name=name)

    entry.info_hash = _text(_value_cell(rows, layout.info_hash, "info_hash"))
    entry.description = normalize(
        _value_cell(rows, layout.description, "description").decode_contents(formatter="html"), base_url
    ).strip()
    entry.category = categories.name_to_id(_text(_value_cell(rows, layout.category, "category"))) or 0
    entry.size = _exact_size(_value_cell(rows, layout.size, "size"))
    entry.added = parse_timestamp(_text(_value_cell(rows, layout.added, "added")), DETAIL_DATE_FORMAT)

    m = SNATCH_COUNT_RE.search(_text(_value_cell(rows, layout.snatches, "snatches")))
    entry.snatch_count = int(m.group(1)) if m else 0
    entry.file_count = parse_int(_text(_value_cell(rows, layout.file_count, "file_count")).split(" ")[0])

    if files:
        file_table = _optional_table(rows, layout.file_table())
        if file_table is not None:
            entry.files = parse_file_table(file_table)
            entry.file_count = len(entry.files)

    peer_row = layout.peers(files)
    if peers:
        seeders = _optional_table(rows, peer_row)
        leechers = _optional_table(rows, peer_row + 1)
        seeder_list = parse_peer_table(seeders) if seeders is not None else []
        leecher_list = parse_peer_table(leechers) if leechers is not None else []
        entry.seeder_count = len(seeder_list)
        entry.leecher_count = len(leecher_list)
        entry.peers = seeder_list + leecher_list
    elif peer_row < len(rows):
        m = PEER_SUMMARY_RE.search(rows[peer_row].get_text(" ", strip=True))
        if m:
            entry.seeder_count = int(m.group(1))
            entry.leecher_count = int(m.group(2))

    return entry


# ── upload response (takeupload.php) ────────────────────────────


def parse_upload_response(markup: str) -> int:
    """Return the id of the new torrent or raise `UploadError` with the site's message."""
    soup = soup_of(markup)
    failed = any(
        span.get_text(strip=True) == UPLOAD_FAILED_MARKER
        for span in soup.select(".centeredtitle span")
    )
    if failed:
        node = soup.select_one('p + p[style="color:red"]')
        message = node.get_text(strip=True) if node is not None else ""
        raise UploadError(f"upload failed: {message or 'unknown error'}")
    link = soup.find("a", href=DETAILS_HREF_RE)
    if link is None:
        raise UploadError("upload failed: no details link in response")
    return int(DETAILS_HREF_RE.search(link["href"]).group(1))
