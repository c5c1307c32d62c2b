"""
Streaming record store.

Every operation is a single forward pass over a text stream, reading one
line at a time, so the bookmark file is never held in memory as a whole.
The stream functions work on any object with ``readline``/``write``
(open files, ``io.StringIO``, ``sys.stdin``); RecordStore binds them to
the backing file and scopes one stream per operation.

Error policy:
- lookup is strict: the first malformed or overlong line it has to decode
  ends the scan with MalformedRecord
- search and import are tolerant: malformed lines are skipped (and counted
  by import), never failing the whole pass
- I/O failures surface as StreamFault
"""
import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, TextIO, Tuple

from book.codec import decode, encode, key_prefix, strip_terminator, write_record
from book.constants import DEFAULT_MAX_LINE_LENGTH, FIELD_DELIMITER, LINE_TERMINATOR
from book.errors import MalformedRecord, NotFound, StreamFault
from book.models import Bookmark, ImportResult, SearchQuery
from book.predicates import LinePredicate, TruePredicate, predicate_for

logger = logging.getLogger(__name__)

# Lines end at \n only, so a lone \r stays inside its field. Bytes that are
# not valid UTF-8 survive a read and write round trip unchanged.
TEXT_MODE = {"encoding": "utf-8", "errors": "surrogateescape", "newline": LINE_TERMINATOR}


@contextmanager
def _io_faults(action: str, path: Optional[str] = None):
    """Re-raise I/O and decoding failures as StreamFault."""
    try:
        yield
    except (OSError, UnicodeError) as e:
        raise StreamFault(f"Error {action}: {e}", path=path) from e


def open_text(path, mode: str = "r") -> TextIO:
    """Open a bookmark-format file for reading or writing."""
    with _io_faults(f"opening {path}", str(path)):
        return open(path, mode, **TEXT_MODE)


def _fsync_dir(path: Path):
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError as e:
        logger.debug(f"Cannot open {path} to sync: {e}")
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug(f"Cannot sync {path}: {e}")
    finally:
        os.close(fd)


# ============================================================================
# Stream operations
# ============================================================================

def read_line(source: TextIO, max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH) -> str:
    """
    Read the next line from a source, terminator included.

    Returns "" at end of stream. A final line without a terminator is
    still returned as a line.

    Raises:
        MalformedRecord: if the line is longer than max_length characters.
            The rest of the overlong line is consumed first, so the next
            call starts at the following line.
    """
    with _io_faults("reading bookmarks"):
        if max_length is None:
            return source.readline()

        line = source.readline(max_length + 1)
        if len(line) <= max_length or line.endswith(LINE_TERMINATOR):
            return line

        head = line
        while line and not line.endswith(LINE_TERMINATOR):
            line = source.readline(max_length + 1)
    raise MalformedRecord(head, reason=f"line longer than {max_length} characters")


def iter_decoded(source: TextIO,
                 predicate: Optional[LinePredicate] = None,
                 max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH
                 ) -> Iterator[Tuple[str, Optional[Bookmark]]]:
    """
    Tolerantly decode every line that satisfies a raw-line predicate.

    Yields:
        (raw_line, bookmark) pairs; bookmark is None for lines that could
        not be decoded or were too long. Lines rejected by the predicate
        are not yielded.
    """
    predicate = predicate or TruePredicate()
    while True:
        try:
            line = read_line(source, max_length)
        except MalformedRecord as e:
            logger.debug(str(e))
            yield e.line, None
            continue

        if not line:
            return

        raw = strip_terminator(line)
        if not predicate.matches(raw):
            continue

        try:
            bookmark = decode(raw)
        except MalformedRecord as e:
            logger.debug(str(e))
            bookmark = None
        yield raw, bookmark


def lookup(source: TextIO, key: str,
           max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH) -> Bookmark:
    """
    Return the first bookmark whose key equals key exactly.

    Raises:
        NotFound: if the stream ends without a match
        MalformedRecord: on an overlong line, or if the matching line has
            no target
    """
    while True:
        line = read_line(source, max_length)
        if not line:
            raise NotFound(key)

        raw = strip_terminator(line)
        if raw.split(FIELD_DELIMITER, 1)[0] == key:
            return decode(raw)


def iter_search(source: TextIO, query: Optional[SearchQuery] = None,
                max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH) -> Iterator[Bookmark]:
    """Yield matching bookmarks in input order, skipping malformed lines."""
    for _, bookmark in iter_decoded(source, predicate_for(query), max_length):
        if bookmark is not None:
            yield bookmark


def search(source: TextIO, query: Optional[SearchQuery] = None,
           max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH) -> List[Bookmark]:
    """
    Return every bookmark whose raw line matches the query.

    A line is included when the text filter (absent, empty, or a substring
    of the line) and the tag filter (absent, or any tag a substring of the
    line) both match. An empty source gives an empty list.
    """
    return list(iter_search(source, query, max_length))


def delete(source: TextIO, sink: TextIO, key: str) -> int:
    """
    Copy source to sink, omitting every line whose key equals key.

    The key of a line is the text before its first comma; lines with no
    comma are kept. Each kept line is written followed by a newline.
    Lines are not length-limited here so no untouched line is ever lost.

    Returns:
        Number of lines removed
    """
    removed = 0
    while True:
        line = read_line(source, max_length=None)
        if not line:
            break

        raw = strip_terminator(line)
        if key_prefix(raw) == key:
            removed += 1
            continue

        with _io_faults("writing bookmarks"):
            sink.write(raw + LINE_TERMINATOR)

    logger.debug(f"Removed {removed} line(s) with key {key!r}")
    return removed


def import_from_text(source: TextIO,
                     max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH) -> ImportResult:
    """
    Decode every line of an import stream.

    Lines that fail to decode are counted in failure_count and left out
    of records. A bad line never fails the whole import.
    """
    result = ImportResult()
    for _, bookmark in iter_decoded(source, max_length=max_length):
        if bookmark is None:
            result.failure_count += 1
        else:
            result.records.append(bookmark)
            result.success_count += 1
    return result


def store(sink: TextIO, key: str, target: str,
          tags: Optional[Iterable[str]] = None) -> Bookmark:
    """
    Append one bookmark to a sink.

    There is no uniqueness check: storing an existing key adds a second
    line, and lookup keeps returning the first one.
    """
    bookmark = Bookmark(key=key, target=target, tags=list(tags or []))
    with _io_faults("writing bookmarks"):
        write_record(sink, bookmark)
    return bookmark


def export(bookmarks: Iterable[Bookmark], sink: TextIO) -> int:
    """Write bookmarks to a sink in the storage line format."""
    count = 0
    with _io_faults("writing bookmarks"):
        for bookmark in bookmarks:
            sink.write(encode(bookmark))
            count += 1
    return count


# ============================================================================
# File-backed store
# ============================================================================

class RecordStore:
    """
    Bookmark store backed by a single text file.

    Each method opens the file, makes one pass, and closes it again. There
    is no locking: two processes rewriting the same file at once can lose
    updates.
    """

    def __init__(self, path, max_line_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH):
        self.path = Path(path)
        self.max_line_length = max_line_length

    @classmethod
    def from_config(cls, config) -> "RecordStore":
        """Create a store at the file configured in a BookConfig."""
        return cls(config.get_bookmarks_path(), config.max_line_length)

    def __repr__(self):
        return f"RecordStore({str(self.path)!r})"

    def ensure_exists(self):
        """Create the storage directory and an empty file if missing."""
        with _io_faults("creating bookmark file", str(self.path)):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self.path.touch()
                logger.debug(f"Created bookmark file {self.path}")

    @contextmanager
    def open(self, mode: str = "r"):
        """Open the backing file, creating it first if needed."""
        self.ensure_exists()
        f = open_text(self.path, mode)
        try:
            yield f
        finally:
            f.close()

    def lookup(self, key: str) -> Bookmark:
        with self.open("r") as f:
            return lookup(f, key, self.max_line_length)

    def search(self, query: Optional[SearchQuery] = None) -> List[Bookmark]:
        with self.open("r") as f:
            results = search(f, query, self.max_line_length)
        logger.debug(f"Search {query} matched {len(results)} bookmark(s)")
        return results

    def list(self) -> List[Bookmark]:
        """All well-formed bookmarks in file order."""
        return self.search(SearchQuery())

    def store(self, key: str, target: str, tags: Optional[Iterable[str]] = None) -> Bookmark:
        with self.open("a") as f:
            return store(f, key, target, tags)

    def store_many(self, bookmarks: Iterable[Bookmark]) -> int:
        """Append a batch of bookmarks; returns how many were written."""
        with self.open("a") as f:
            return export(bookmarks, f)

    def import_stream(self, source: TextIO) -> ImportResult:
        """Decode an import stream and append every good record."""
        result = import_from_text(source, self.max_line_length)
        self.store_many(result.records)
        logger.info(f"Imported {result.success_count} bookmark(s), "
                    f"{result.failure_count} failed")
        return result

    def import_file(self, path) -> ImportResult:
        with open_text(Path(path)) as f:
            return self.import_stream(f)

    def delete(self, key: str) -> int:
        """
        Remove every line with this key.

        The file is rewritten into a temporary file beside it, synced, given
        the original's permissions, and then moved over the original. If
        the rewrite fails the original is left as it was.

        Returns:
            Number of lines removed
        """
        self.ensure_exists()
        with _io_faults("rewriting bookmark file", str(self.path)):
            tmp_fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
        try:
            with os.fdopen(tmp_fd, "w", **TEXT_MODE) as sink:
                with self.open("r") as source:
                    removed = delete(source, sink, key)
                with _io_faults("syncing bookmark file", tmp_name):
                    sink.flush()
                    os.fsync(sink.fileno())
            with _io_faults("replacing bookmark file", str(self.path)):
                os.chmod(tmp_name, stat.S_IMODE(os.stat(self.path).st_mode))
                os.replace(tmp_name, self.path)
            _fsync_dir(self.path.parent)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return removed

    def delete_all(self) -> bool:
        """Remove the backing file. Returns False if it did not exist."""
        with _io_faults("deleting bookmark file", str(self.path)):
            if not self.path.exists():
                return False
            self.path.unlink()
        logger.debug(f"Deleted bookmark file {self.path}")
        return True

    def export(self, sink: TextIO, query: Optional[SearchQuery] = None) -> int:
        """Write matching bookmarks to sink in the storage line format."""
        return export(self.search(query), sink)
