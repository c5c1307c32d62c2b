"""
Configuration management for book.

Provides a hierarchical configuration system with sensible defaults.
Supports both user (~/.config/book/config.toml) and local (book.toml)
configuration files.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict

from book.constants import (
    DEFAULT_FILE_NAME,
    DEFAULT_MAX_LINE_LENGTH,
    DEFAULT_STORAGE_DIR,
    DEFAULT_TARGET_WIDTH,
)


@dataclass
class BookConfig:
    """
    book configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (BOOK_*)
    3. Local config file (./book.toml)
    4. User config file (~/.config/book/config.toml)
    5. System defaults
    """

    # Storage settings
    storage_dir: str = field(default=DEFAULT_STORAGE_DIR)
    file_name: str = field(default=DEFAULT_FILE_NAME)
    bookmarks_file: Optional[str] = field(default=None)  # Full path (overrides storage_dir/file_name)
    max_line_length: int = field(default=DEFAULT_MAX_LINE_LENGTH)

    # Browser integration
    default_browser: Optional[str] = field(default=None)

    # Display settings
    color_output: bool = field(default=True)
    target_width: int = field(default=DEFAULT_TARGET_WIDTH)

    # Advanced
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "BookConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "book" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_config_path = Path.cwd() / "book.toml"
        if local_config_path.exists():
            config._merge(cls._load_toml(local_config_path))

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with BOOK_ prefix."""
        prefix = "BOOK_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if hasattr(self, config_key):
                    current_value = getattr(self, config_key)
                    if isinstance(current_value, bool):
                        setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                    elif isinstance(current_value, int):
                        setattr(self, config_key, int(value))
                    else:
                        setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        for field_name in ("storage_dir", "bookmarks_file"):
            value = getattr(self, field_name)
            if isinstance(value, str):
                expanded = os.path.expanduser(os.path.expandvars(value))
                setattr(self, field_name, expanded)

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = Path.home() / ".config" / "book" / "config.toml"

        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null
        data = {k: v for k, v in asdict(self).items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get_bookmarks_path(self) -> Path:
        """Get the resolved path of the bookmark file."""
        if self.bookmarks_file:
            path = Path(self.bookmarks_file)
        else:
            path = Path(self.storage_dir) / self.file_name
        if not path.is_absolute():
            path = Path.cwd() / path
        return path


# Global configuration instance
_config: Optional[BookConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> BookConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = BookConfig.load(config_file)
    return _config


def init_config(bookmarks_file: Optional[str] = None,
                config_file: Optional[Path] = None, **kwargs) -> BookConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        bookmarks_file: Bookmark file path override
        config_file: Extra config file to merge
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    if bookmarks_file:
        config.bookmarks_file = os.path.expanduser(bookmarks_file)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
