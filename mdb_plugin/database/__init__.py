"""
Command document construction for the command helpers.
"""

from .commands import build_command, normalize_options, pop_as_cursor

__all__ = [
    "build_command",
    "normalize_options",
    "pop_as_cursor",
]
