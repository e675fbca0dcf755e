"""
Core connection component.
"""

from .connection import MongoConnection

__all__ = ["MongoConnection"]
