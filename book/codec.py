"""
Line codec for bookmark records.

Format: ``key,target,tag1,tag2,...,\\n``. The trailing comma before the
newline is always written, even with no tags (``gh,https://x,\\n``).
"""
import re
from typing import TextIO

from book.constants import FIELD_DELIMITER, LINE_TERMINATOR
from book.errors import MalformedRecord
from book.models import Bookmark

# Bytes that were not valid UTF-8 arrive as lone surrogates
# (errors="surrogateescape").
_UNDECODABLE = re.compile("[\udc80-\udcff]")


def strip_terminator(line: str) -> str:
    """Remove a trailing \\n (or \\r\\n) from a raw line."""
    if line.endswith(LINE_TERMINATOR):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def encode(bookmark: Bookmark) -> str:
    """Serialize a bookmark to a single terminated line."""
    fields = [bookmark.key, bookmark.target] + list(bookmark.tags)
    return "".join(f + FIELD_DELIMITER for f in fields) + LINE_TERMINATOR


def decode(line: str) -> Bookmark:
    """
    Parse one line into a bookmark.

    Field 0 is the key, field 1 the target, every later non-empty field a
    tag. Empty fields, including the one after the trailing comma, are
    dropped.

    Raises:
        MalformedRecord: if there is no target field, or the line held
            bytes that were not valid UTF-8
    """
    if _UNDECODABLE.search(line):
        raise MalformedRecord(line, reason="invalid UTF-8")
    fields = strip_terminator(line).split(FIELD_DELIMITER)
    if len(fields) < 2:
        raise MalformedRecord(line)
    key, target = fields[0], fields[1]
    tags = [tag for tag in fields[2:] if tag]
    return Bookmark(key=key, target=target, tags=tags)


def key_prefix(line: str):
    """Characters before the first comma, or None if the line has no comma."""
    head, sep, _ = line.partition(FIELD_DELIMITER)
    return head if sep else None


def write_record(sink: TextIO, bookmark: Bookmark) -> None:
    """Encode a bookmark and write it to a text sink."""
    sink.write(encode(bookmark))
