"""Alfred: an agentic command-line assistant with permission-gated tools."""

__version__ = "0.1.0"
