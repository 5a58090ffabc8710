"""todohub: optimistic local state for a GitHub-backed todo list."""

__version__ = "0.1.0"
