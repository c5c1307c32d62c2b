import os
import pytest
from io import StringIO

from book import config as book_config
from book.store import RecordStore


SAMPLE_LINES = (
    "gh,https://www.github.com,dev,code,\n"
    "gl,https://gitlab.com,dev,ci,\n"
    "hn,https://news.ycombinator.com,news,tech,\n"
)


@pytest.fixture
def sample_text():
    """Three well-formed bookmark lines."""
    return SAMPLE_LINES


@pytest.fixture
def sample_source(sample_text):
    """The sample lines as a readable stream."""
    return StringIO(sample_text)


@pytest.fixture
def bookmarks_path(tmp_path):
    """Path of a bookmark file inside a not yet existing storage dir."""
    return tmp_path / "storage" / "bookmarks.csv"


@pytest.fixture
def empty_store(bookmarks_path):
    """A store whose file does not exist yet."""
    return RecordStore(bookmarks_path)


@pytest.fixture
def populated_store(bookmarks_path, sample_text):
    """A store with the sample lines on disk."""
    bookmarks_path.parent.mkdir(parents=True)
    bookmarks_path.write_text(sample_text, encoding="utf-8")
    return RecordStore(bookmarks_path)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with an empty home and cwd and no cached global config."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    for key in list(os.environ):
        if key.startswith("BOOK_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(book_config, "_config", None)
    return tmp_path
