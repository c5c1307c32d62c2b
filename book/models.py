"""
Plain data types shared by the codec, the store and the browser.

A Bookmark has no persistent identity: it is materialized from a line
during lookup or search and handed to the caller.
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Bookmark:
    """
    One bookmark record.

    Neither key nor target may contain a comma or a newline; the line
    format does not escape them.
    """
    key: str
    target: str
    tags: List[str] = field(default_factory=list)

    def tags_display(self) -> str:
        """Tags joined the way they appear in tables."""
        return ",".join(self.tags)


@dataclass
class SearchQuery:
    """
    Search conditions.

    text: substring looked for anywhere in the raw line (None or "" matches all)
    tags: any of these substrings anywhere in the raw line (None matches all)
    """
    text: Optional[str] = None
    tags: Optional[List[str]] = None


@dataclass
class ImportResult:
    """Outcome of a tolerant bulk import."""
    records: List[Bookmark] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
