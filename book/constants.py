"""
Constants for book.

These are the defaults; most are also available via the config system.
"""

# Line format
FIELD_DELIMITER = ","
LINE_TERMINATOR = "\n"

# Storage
DEFAULT_STORAGE_DIR = "~/.local/share/book"
DEFAULT_FILE_NAME = "bookmarks.csv"
DEFAULT_MAX_LINE_LENGTH = 1024

# Display limits
DEFAULT_KEY_WIDTH = 16
DEFAULT_TARGET_WIDTH = 40

# Browser table
COLUMNS = ("Key", "Target", "Tags")
