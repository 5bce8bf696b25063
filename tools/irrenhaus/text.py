"""Strip the site's BBCode-ish HTML from shoutbox messages and descriptions."""

from __future__ import annotations

import html
import re

from .config import DEFAULT_BASE_URL
from .emoji import emojify, sentinel

_FLAGS = re.IGNORECASE | re.DOTALL

WRAPPER_RE = re.compile(r"<(center|b|i|u)>(.*?)</\1>", _FLAGS)
EMOJI_IMG_RE = re.compile(r'<img[^>]*?src="(?:https?://[^/"]+)?/pic/smilies/([^"]+)"[^>]*>', _FLAGS)
IMG_RE = re.compile(r'<img[^>]*?src="([^"]+)"[^>]*>', _FLAGS)

# Order matters: the NFO wrapper carries a font face and must go before FONT_FACE_RE.
FORMAT_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r'<tt><nobr><font face="MS Linedraw"[^>]*>(.*?)</font></nobr></tt>', _FLAGS),
    re.compile(r"<tt><nobr>(.*?)</nobr></tt>", _FLAGS),
    re.compile(r'<font color="?(?:[a-z]+|#[0-9a-f]+)"?>(.*?)</font>', _FLAGS),
    re.compile(r'<font size="?\d+"?>(.*?)</font>', _FLAGS),
    re.compile(r'<font face="[^"]+">(.*?)</font>', _FLAGS),
)

ABSOLUTE_LINK_RE = re.compile(r'<a href="(https?://[^"]+)"(?: target="[^"]*")?>(.*?)</a>', _FLAGS)
RELATIVE_LINK_RE = re.compile(r'<a href="(/[^"]*)"(?: target="[^"]*")?>(.*?)</a>', _FLAGS)
OBFUSCATED_SCHEME_RE = re.compile(r"hxxp(s?)://", re.IGNORECASE)
BREAK_RE = re.compile(r"<br\s*/?>\n?", re.IGNORECASE)


def _unwrap(pattern: re.Pattern[str], text: str) -> str:
    """Replace each match by its last group until nothing matches (nested tags)."""
    while True:
        stripped = pattern.sub(lambda m: m.group(m.lastindex or 0), text)
        if stripped == text:
            return text
        text = stripped


def normalize(text: str, base_url: str = DEFAULT_BASE_URL) -> str:
    """Turn a formatted message body into plain text.

    Links become ``text [url]`` (relative ones are resolved against
    `base_url`), smilies become emoji and HTML entities are unescaped last so
    an ``&amp;`` inside a URL is only decoded once.
    """
    base_url = base_url.rstrip("/")

    text = _unwrap(WRAPPER_RE, text)
    text = EMOJI_IMG_RE.sub(lambda m: sentinel(m.group(1)), text)
    text = IMG_RE.sub(r"\1", text)
    for pattern in FORMAT_RES:
        text = _unwrap(pattern, text)

    text = ABSOLUTE_LINK_RE.sub(lambda m: f"{m.group(2)} [{m.group(1)}]", text)
    text = RELATIVE_LINK_RE.sub(lambda m: f"{m.group(2)} [{base_url}{m.group(1)}]", text)
    text = OBFUSCATED_SCHEME_RE.sub(lambda m: f"http{m.group(1)}://", text)

    text = BREAK_RE.sub("\n", text)
    text = text.replace("&nbsp;", " ")

    text = emojify(text)
    return html.unescape(text)
