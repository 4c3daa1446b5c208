"""
Session storage for Tasmee library.
"""

from tasmee.storage.base import InMemorySessionStore, JsonFileSessionStore, SessionStore

__all__ = [
    "SessionStore",
    "InMemorySessionStore",
    "JsonFileSessionStore",
]
