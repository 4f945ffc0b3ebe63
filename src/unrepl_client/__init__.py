"""unrepl-client: project registry and pending evaluation tracking for streaming REPL servers."""

__version__ = "0.1.0"
