"""
Storage backends for events and lead notes.

Services depend on the EventStore / NoteStore protocols only; the SQL
implementations back the HTTP app, the in-memory ones back tests and
embedded use.
"""

from .base import EventStore, NoteRecord, NoteStore
from .memory import InMemoryEventStore, InMemoryNoteStore
from .sql import SqlEventStore, SqlNoteStore

__all__ = [
    "EventStore",
    "NoteStore",
    "NoteRecord",
    "InMemoryEventStore",
    "InMemoryNoteStore",
    "SqlEventStore",
    "SqlNoteStore",
]
