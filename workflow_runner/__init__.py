"""Workflow Runner: turns a requirements document into a generated API skeleton."""

__version__ = "0.1.0"
