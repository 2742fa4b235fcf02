"""Usage snapshots, retry back-off, settings and log-based cost scanning for AI coding assistants."""

__version__ = "0.1.0"

__all__ = [
    "claude_cost",
    "codex_cost",
    "cost_store",
    "models",
    "retry",
    "scanner",
    "settings",
    "store",
]