"""Static category table of the tracker (name ↔ id)."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

CATEGORIES: Mapping[int, str] = MappingProxyType({
    1: "A-book",
    2: "Album/Sampler",
    3: "Musik Pack",
    4: "Musik DVD/Vids",
    5: "Doku HD",
    6: "Doku HD Pack",
    7: "Doku SD",
    8: "Doku SD Pack",
    9: "Nintendo",
    10: "PC",
    11: "PlayStation",
    12: "XboX",
    13: "eBooks",
    14: "Mobilgeräte",
    15: "Software",
    16: "DVDR",
    17: "1080p",
    18: "720p",
    19: "h264/x264",
    20: "Xvid",
    21: "XXX",
    22: "Serie HD",
    23: "Serie HD Pack",
    24: "Serie SD",
    25: "Serie SD Pack",
    26: "Sport",
    27: "TV",
    28: "3-D",
})

_BY_NAME: Mapping[str, int] = MappingProxyType({name: cid for cid, name in CATEGORIES.items()})


def name_to_id(name: str) -> int | None:
    return _BY_NAME.get(name.strip())


def id_to_name(cid: int) -> str | None:
    return CATEGORIES.get(cid)


def all_categories() -> list[tuple[int, str]]:
    return sorted(CATEGORIES.items())
