"""Credential re-signing bridge for chat-platform launch data."""

__version__ = "0.1.0"
