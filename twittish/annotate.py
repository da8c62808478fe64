"""Tag and mention extraction from post text.

Text is split on whitespace. A token counts as a tag when it starts with
`#` followed by a word character, and the reference is the rest of the
token as written, punctuation included ("#demo," -> "demo,"). Mentions work
the same way with `@`.

Tags are case-folded (topics are case-insensitive). Mentions are not:
usernames are case-sensitive, so "@Bob" and "@bob" are two references.

annotate() is for display only. It highlights the `#word`/`@word` run
anywhere in the text, so "#demo," renders as a tag followed by a comma.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel

_TAG_RE = re.compile(r"#(\w\S*)")
_MENTION_RE = re.compile(r"@(\w\S*)")
_INLINE_RE = re.compile(r"([#@])(\w+)")


def _extract(text: str, pattern: re.Pattern[str]) -> list[str]:
    found: list[str] = []
    for token in text.split():
        m = pattern.match(token)
        if m:
            found.append(m.group(1))
    return found


def extract_tags(text: str) -> list[str]:
    """Return the lowercased tags in `text`, first occurrence order, no duplicates."""
    return list(dict.fromkeys(t.lower() for t in _extract(text, _TAG_RE)))


def extract_mentions(text: str) -> list[str]:
    """Return the mentioned usernames in `text`, case preserved, no duplicates."""
    return list(dict.fromkeys(_extract(text, _MENTION_RE)))


class Segment(BaseModel):
    kind: Literal["text", "tag", "mention"]
    text: str  # exactly as written, including the # or @
    ref: str = ""  # tag (lowercased) or username


def annotate(text: str) -> list[Segment]:
    """Split text into plain, tag and mention segments for rendering.

    Joining every segment's `text` gives back the input unchanged.
    """
    segments: list[Segment] = []
    pos = 0
    for m in _INLINE_RE.finditer(text):
        if m.start() > pos:
            segments.append(Segment(kind="text", text=text[pos:m.start()]))
        if m.group(1) == "#":
            segments.append(Segment(kind="tag", text=m.group(0), ref=m.group(2).lower()))
        else:
            segments.append(Segment(kind="mention", text=m.group(0), ref=m.group(2)))
        pos = m.end()
    if pos < len(text):
        segments.append(Segment(kind="text", text=text[pos:]))
    return segments
