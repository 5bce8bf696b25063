"""Shared fixtures: tracker markup builders and an in-memory tracker behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from irrenhaus.config import Credentials, SessionCookies, SiteConfig
from irrenhaus.session import Session

BASE_URL = "https://tracker.test"


# ── markup builders ──────────────────────────────────────────────


def catalog_row(
    tid: int,
    name: str = "Some.Release.2017",
    *,
    cat: int = 10,
    files: int = 3,
    comments: int = 1,
    added: tuple[str, str] = ("24.12.2017", "18:30:00"),
    size: str = "1,50<br>GB",
    snatches: int = 5,
    seeders: int = 2,
    leechers: int = 1,
    uploader: str | None = "alice",
) -> str:
    uploader_cell = (
        f'<td><a href="userdetails.php?id=1">{uploader}</a></td>' if uploader else "<td><i>Anonym</i></td>"
    )
    return (
        "<tr>"
        f'<td><a href="browse.php?cat={cat}"><img src="pic/cat{cat}.png" alt=""></a></td>'
        f'<td><a href="details.php?id={tid}" title="{name}"><b>{name[:12]}...</b></a></td>'
        f'<td><a href="details.php?id={tid}&amp;filelist=1">{files}</a></td>'
        f'<td><a href="details.php?id={tid}#comments">{comments}</a></td>'
        f"<td>{added[0]}<br>{added[1]}</td>"
        "<td>12 Tage</td>"
        f"<td>{size}</td>"
        "<td>-</td>"
        f'<td><a href="viewsnatches.php?id={tid}">{snatches}</a></td>'
        f'<td><a href="details.php?id={tid}&amp;dllist=1#seeders">{seeders}</a></td>'
        f'<td><a href="details.php?id={tid}&amp;dllist=1#leechers">{leechers}</a></td>'
        "<td>-</td>"
        f"{uploader_cell}"
        "</tr>"
    )


def catalog_page(rows: list[str], max_page: int = 0) -> str:
    links = "".join(
        f'<a href="browse.php?search=&amp;incldead=0&amp;page={n}">{n + 1}</a> ' for n in range(1, max_page + 1)
    )
    header = "<tr>" + "".join(f"<td>{h}</td>" for h in ("Typ", "Name", "Dateien", "Komm.", "Hinzugef.",
                                                        "TTL", "Größe", "-", "Fertig", "Seeder",
                                                        "Leecher", "-", "Uploader")) + "</tr>"
    table = f'<table class="tableinborder">{header}{"".join(rows)}</table>' if rows else "<p>Nichts gefunden!</p>"
    return (
        "<html><body>"
        '<table class="tableinborder"><tr><td>Navigation</td></tr></table>'
        f'<p align="center">{links}</p>'
        f"{table}"
        "</body></html>"
    )


def peer_row(name: str, *, done: str = "100%", ratio: str = '<font color="green">1.50</font>') -> str:
    return (
        "<tr>"
        f'<td><a href="userdetails.php?id=5">{name}</a></td>'
        "<td>Ja</td>"
        "<td>1,00 GB</td>"
        "<td>10,00 KB/s</td>"
        "<td>512,00 MB</td>"
        "<td>0 B/s</td>"
        f"<td>{ratio}</td>"
        f'<td><div title="{done}" class="progressbar"></div></td>'
        "<td>2d 03:04:05</td>"
        "<td>00:00:10</td>"
        "<td>uTorrent 3.5.5</td>"
        "</tr>"
    )


def peer_table(rows: list[str]) -> str:
    header = "<tr>" + "<td>Benutzer</td>" * 11 + "</tr>"
    return f'<table class="tableinborder">{header}{"".join(rows)}</table>'


def file_table(files: list[tuple[str, str]]) -> str:
    rows = "".join(f"<tr><td>{name}</td><td>{size}</td></tr>" for name, size in files)
    return f'<table class="tableinborder"><tr><td>Datei</td><td>Größe</td></tr>{rows}</table>'


def detail_page(
    tid: int = 4711,
    name: str = "Some.Release.2017",
    *,
    files: list[tuple[str, str]] | None = None,
    seeders: list[str] | None = None,
    leechers: list[str] | None = None,
    category: str = "PC",
    description: str = '<center><b>Hello</b></center><br>\nSee <a href="/forums.php">the forum</a> &amp; more',
) -> str:
    def row(label: str, value: str) -> str:
        return f"<tr><td>{label}</td><td>{value}</td></tr>"

    rows = [
        row("Download", f'<a href="download.php?torrent={tid}">{name}.torrent</a>'),
        row("Info-Hash", "0123456789abcdef0123456789abcdef01234567"),
        row("Beschreibung", description),
        row("NFO", '<a href="viewnfo.php?id=1">NFO anzeigen</a>'),
        row("Typ", category),
        row("Zuletzt aktiv", "2017-12-25 10:00:00"),
        row("Größe", "1,50 GB (1.610.612.736 Bytes)"),
        row("Hinzugefügt", "2017-12-24 18:30:00"),
        row("Aufrufe", "120"),
        row("Hits", "80"),
        row("Bewertung", "keine"),
        row("Uploader", '<a href="userdetails.php?id=1">alice</a>'),
        row("Danke", "12 Benutzer"),
        row("Fertiggestellt", '42 mal [<a href="viewsnatches.php?id=1">Liste</a>]'),
        row("Kommentare", "3"),
        row("Anzahl Dateien", "3 Dateien"),
    ]
    if files is not None:
        rows.append(row("Dateiliste", file_table(files)))
        rows.append(row("", '<a href="details.php?id=1">Liste verbergen</a>'))
    else:
        rows.append(row("Dateiliste", '<a href="details.php?id=1&amp;filelist=1">Liste anzeigen</a>'))
    if seeders is not None or leechers is not None:
        rows.append(row("Seeder", peer_table(seeders or []) if seeders else "keine"))
        rows.append(row("Leecher", peer_table(leechers or []) if leechers else "keine"))
    else:
        rows.append(row("Peers", "2 Seeder, 1 Leecher = 3 Peer(s) gesamt"))
    return (
        "<html><body>"
        '<div class="blockinborder"><div class="centeredtitle"><b>Suche</b></div></div>'
        '<div class="blockinborder">'
        f'<div class="centeredtitle"><b>Details zu {name}</b></div>'
        f'<div><table class="tableinborder">{"".join(rows)}</table></div>'
        "</div></body></html>"
    )


def snatch_row(name: str, *, stopped: str = "Seedet im Moment", ratio: str = "2.00") -> str:
    return (
        "<tr>"
        f'<td><a href="userdetails.php?id=7">{name}</a></td>'
        "<td><b>Torrent: 1,00 GB</b><br>Gesamt: 20,00 GB</td>"
        "<td><b>Torrent: 2,00 GB</b><br>Gesamt: 40,00 GB</td>"
        f"<td><b>Torrent: {ratio}</b></td>"
        "<td><b>2017-12-24 18:30:00</b></td>"
        f'<td><font color="green">{stopped}</font></td>'
        "</tr>"
    )


def snatch_page(rows: list[str], tid: int = 4711, max_page: int = 0) -> str:
    links = "".join(f'<a href="viewsnatches.php?id={tid}&amp;page={n}">{n + 1}</a> ' for n in range(1, max_page + 1))
    header = "<tr>" + "<td>Benutzer</td>" * 6 + "</tr>"
    return f'<html><body><p>{links}</p><table class="tableb">{header}{"".join(rows)}</table></body></html>'


def shout_payload(*tuples: list[str]) -> str:
    return json.dumps([list(t) for t in tuples])


# ── fake tracker ─────────────────────────────────────────────────


class FakeTracker:
    """Routes requests by path to registered handlers and records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {
            "/my.php": lambda request: httpx.Response(200, text="<html>Mein Profil</html>"),
        }

    def route(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = handler

    def html(self, path: str, markup: str, status: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status, text=markup)

    def paged(self, path: str, pages: dict[int, str | int]) -> None:
        """Serve `pages[page]`; an int value is answered as a bare status code."""
        def handler(request: httpx.Request) -> httpx.Response:
            page = pages[int(request.url.params.get("page", "0"))]
            if isinstance(page, int):
                return httpx.Response(page)
            return httpx.Response(200, text=page)
        self.routes[path] = handler

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def site() -> SiteConfig:
    return SiteConfig(base_url=BASE_URL, max_retries=1, max_workers=4, encoding="utf-8")


@pytest.fixture
def session(tracker: FakeTracker, site: SiteConfig) -> Session:
    s = Session(
        site,
        Credentials("user", "secret", "1234"),
        SessionCookies(uid=42, pass_="cafebabe"),
        transport=httpx.MockTransport(tracker.handle),
    )
    yield s
    s.close()
