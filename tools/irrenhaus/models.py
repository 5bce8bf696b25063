"""Record types returned by the client.  All of them are plain value objects."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

# Stands in for "unknown" dates and for snatches that are still seeding.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RatioKind(enum.Enum):
    VALUE = "value"
    INFINITE = "infinite"
    UNDEFINED = "undefined"


@dataclass(frozen=True)
class Ratio:
    """Share ratio.  The site prints `Inf.` for nothing downloaded and `---` for nothing at all."""
    kind: RatioKind = RatioKind.UNDEFINED
    amount: float = 0.0

    @classmethod
    def of(cls, amount: float) -> Ratio:
        return cls(RatioKind.VALUE, amount)

    @classmethod
    def infinite(cls) -> Ratio:
        return cls(RatioKind.INFINITE)

    @classmethod
    def undefined(cls) -> Ratio:
        return cls(RatioKind.UNDEFINED)

    @property
    def value(self) -> float:
        """Legacy numeric form: -1.0 for infinite, 0.0 for undefined."""
        if self.kind is RatioKind.INFINITE:
            return -1.0
        if self.kind is RatioKind.UNDEFINED:
            return 0.0
        return self.amount

    def __float__(self) -> float:
        return self.value

    def __str__(self) -> str:
        if self.kind is RatioKind.INFINITE:
            return "Inf."
        if self.kind is RatioKind.UNDEFINED:
            return "---"
        return f"{self.amount:.2f}"


@dataclass
class FileRecord:
    name: str
    size: int = 0


@dataclass
class PeerRecord:
    name: str
    connectable: bool = False
    seeder: bool = False
    uploaded: int = 0
    downloaded: int = 0
    upload_rate: int = 0
    download_rate: int = 0
    ratio: Ratio = field(default_factory=Ratio.undefined)
    completed: float = 0.0
    connected: int = 0  # seconds
    idle: int = 0  # seconds
    client: str = ""


@dataclass
class SnatchRecord:
    name: str
    uploaded: int = 0
    downloaded: int = 0
    ratio: Ratio = field(default_factory=Ratio.undefined)
    completed: datetime = EPOCH
    stopped: datetime = EPOCH
    seeding: bool = False


@dataclass
class CatalogEntry:
    id: int
    name: str = ""
    category: int = 0
    added: datetime = EPOCH
    size: int = 0
    description: str = ""
    info_hash: str = ""
    file_count: int = 0
    seeder_count: int = 0
    leecher_count: int = 0
    snatch_count: int = 0
    comment_count: int = 0
    uploader: str = ""
    files: list[FileRecord] = field(default_factory=list)
    peers: list[PeerRecord] = field(default_factory=list)
    snatches: list[SnatchRecord] = field(default_factory=list)


@dataclass(frozen=True)
class CrawlPage:
    """One fetched result page, handed straight to an extractor."""
    index: int
    markup: str


@dataclass(frozen=True)
class Download:
    content: bytes
    filename: str


class ChatEventType(enum.IntFlag):
    """Bits of the shoutbox control tuple.  Only two of them are understood."""
    NONE = 0
    USER_MESSAGE = 2  # unread private message count in data[1]
    DELETE_ENTRY = 64  # data[3] is "clear" or "del,ID1,ID2,..."


@dataclass(frozen=True)
class ChatEvent:
    type: int
    id: int
    data: tuple[str, str, str, str] = ("", "", "", "")

    def has(self, flag: ChatEventType) -> bool:
        return bool(self.type & flag)


@dataclass(frozen=True)
class ChatMessage:
    id: int
    user: str
    user_id: int
    date: datetime
    text: str


@dataclass
class ChatBatch:
    """One decoded shoutbox response, messages oldest first."""
    event: ChatEvent | None = None
    messages: list[ChatMessage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)

    @property
    def last_id(self) -> int:
        return self.messages[-1].id if self.messages else 0
