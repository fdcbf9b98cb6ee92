"""Session Threads - agent session logs with sub-agents nested inline."""

__version__ = "0.1.0"
