"""Constants for the ~/.todohub directory structure."""

from pathlib import Path

TODOHUB_DIR = ".todohub"
CONFIG_FILE = "config.toml"
ENV_PREFIX = "TODOHUB_"


def get_todohub_dir(home: Path | None = None) -> Path:
    """Get the .todohub directory path."""
    return (home or Path.home()) / TODOHUB_DIR


def get_config_path(home: Path | None = None) -> Path:
    """Get the default settings file path."""
    return get_todohub_dir(home) / CONFIG_FILE
