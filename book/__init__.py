"""
book - keyed bookmarks in a plain text file.

Each bookmark maps a short key to a target (usually a URL) plus optional
tags, stored one per line as ``key,target,tag1,tag2,...,``.

Design Principles:
- Streaming: every operation is one forward pass over the file
- Plain text: the storage file can be edited, grepped and piped
- Bulk operations tolerate bad lines, single lookups do not

Example Usage:
    >>> from book import RecordStore, SearchQuery
    >>> store = RecordStore("bookmarks.csv")
    >>> store.store("gh", "https://github.com", ["dev", "code"])
    >>> store.lookup("gh").target
    'https://github.com'
    >>> store.search(SearchQuery(text="dev"))
"""

__version__ = "0.3.0"

# Codec
from book.codec import decode, encode

# Models
from book.models import Bookmark, ImportResult, SearchQuery

# Store
from book.store import RecordStore, delete, import_from_text, lookup, search, store

# Errors
from book.errors import BookError, MalformedRecord, NotFound, StreamFault

# Configuration
from book.config import BookConfig, get_config, init_config

__all__ = [
    # Codec
    "encode",
    "decode",
    # Models
    "Bookmark",
    "ImportResult",
    "SearchQuery",
    # Store
    "RecordStore",
    "lookup",
    "search",
    "delete",
    "import_from_text",
    "store",
    # Errors
    "BookError",
    "MalformedRecord",
    "NotFound",
    "StreamFault",
    # Config
    "BookConfig",
    "get_config",
    "init_config",
]
