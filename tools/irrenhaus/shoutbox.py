"""Shoutbox feed – decode the chat wire format and post messages."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from .config import DEFAULT_BASE_URL
from .errors import DecodeError, ServerOverloadedError
from .models import EPOCH, ChatBatch, ChatEvent, ChatMessage
from .session import Session
from .text import normalize

logger = logging.getLogger("irrenhaus.shoutbox")

SHOUTBOX_PATH = "/shoutx.php"
OVERLOAD_MARKER = "Die Serverlast ist Momentan zu hoch"
TUPLE_SIZE = 7
TAB_REPLACEMENT = "    "
DATE_FORMAT = "%d.%m. %H:%M %Y"

# Wire tuple layout of a chat message
F_ID, F_USER_ID, F_DATE, F_USER, F_TEXT, F_TYPE = 0, 1, 2, 4, 5, 6


def sanitize_payload(raw: bytes | str) -> str:
    """The server emits literal tabs inside JSON strings, which no decoder accepts."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    return text.replace("\t", TAB_REPLACEMENT)


def _int(value: str, field: str) -> int:
    try:
        return int(value)
    except ValueError:
        logger.debug("Bad %s in shoutbox tuple: %r", field, value)
        return 0


def _date(value: str, now: datetime | None = None) -> datetime:
    # "17.10. 14:05" carries no year; assume the current one
    year = (now or datetime.now(timezone.utc)).year
    try:
        return datetime.strptime(f"{value.strip()} {year}", DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.debug("Bad date in shoutbox tuple: %r", value)
        return EPOCH


def _tuples(payload: str) -> list[list[str]]:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        if OVERLOAD_MARKER in payload:
            raise ServerOverloadedError("shoutbox server overloaded") from exc
        raise DecodeError(f"invalid shoutbox payload: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(t, list) for t in data):
        raise DecodeError("shoutbox payload is not a list of tuples")
    # pad short tuples so every field index exists
    return [["" if v is None else str(v) for v in t] + [""] * (TUPLE_SIZE - len(t)) for t in data]


def _event(t: list[str]) -> ChatEvent:
    return ChatEvent(
        type=_int(t[0], "event type"),
        id=_int(t[1], "event id"),
        data=(t[3], t[4], t[5], t[6]),
    )


def decode_feed(
    payload: bytes | str,
    base_url: str = DEFAULT_BASE_URL,
    *,
    now: datetime | None = None,
) -> ChatBatch:
    """Decode one shoutbox response into its control event and chat messages.

    The wire format lists messages newest first; the batch holds them oldest
    first.  Tuples with a non-empty type field (not plain text) are dropped.
    """
    payload = sanitize_payload(payload)
    if len(payload.strip()) <= 2:
        return ChatBatch()

    batch = ChatBatch()
    for i, t in enumerate(_tuples(payload)):
        if i == 0:
            batch.event = _event(t)
            continue
        if not t[F_ID]:
            continue
        if t[F_TYPE]:
            logger.debug("Dropping shoutbox message of type %r", t[F_TYPE])
            continue
        batch.messages.append(
            ChatMessage(
                id=_int(t[F_ID], "message id"),
                user=t[F_USER],
                user_id=_int(t[F_USER_ID], "user id"),
                date=_date(t[F_DATE], now),
                text=normalize(t[F_TEXT], base_url),
            )
        )
    batch.messages.reverse()
    return batch


def read(session: Session, feed_id: int, last_id: int = 0) -> ChatBatch:
    """New messages of feed `feed_id` (all recent ones when `last_id` is 0)."""
    session.ensure_authenticated()
    query = {"b": str(feed_id)}
    if last_id > 0:
        query["lid"] = str(last_id)
    resp = session.fetch(SHOUTBOX_PATH, query)
    return decode_feed(resp.content, session.site.base_url)


def write(session: Session, feed_id: int, text: str) -> bool:
    """Post `text` and report whether it shows up in the returned feed.

    The check compares raw bodies, so text the server reformats (links,
    smilies) is reported as not confirmed even when it was accepted.
    """
    session.ensure_authenticated()
    resp = session.submit_form(SHOUTBOX_PATH, {"b": str(feed_id)}, {"shbox_text": text})
    payload = sanitize_payload(resp.content)
    if len(payload.strip()) <= 2:
        return False
    uid = session.uid
    for t in _tuples(payload)[1:]:
        if t[F_ID] and _int(t[F_USER_ID], "user id") == uid and t[F_TEXT] == text:
            return True
    return False
