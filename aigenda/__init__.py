"""AI-ready daily notes CLI."""

__version__ = "0.1.0"
