"""
Inspection Stores

Collaborator contracts and their in-memory and SQLAlchemy implementations.
"""

from .contracts import (
    Store,
    HistoryStore,
    Clock,
    Notifier,
    RecordQuery,
    to_document_patch,
)

from .memory import (
    InMemoryStore,
    InMemoryHistoryStore,
    SystemClock,
    FixedClock,
    LoggingNotifier,
    RecordingNotifier,
)

from .sql import (
    SqlInspectionStore,
    SqlHistoryStore,
)


__all__ = [
    # Contracts
    "Store",
    "HistoryStore",
    "Clock",
    "Notifier",
    "RecordQuery",
    "to_document_patch",
    # In-memory
    "InMemoryStore",
    "InMemoryHistoryStore",
    "SystemClock",
    "FixedClock",
    "LoggingNotifier",
    "RecordingNotifier",
    # SQLAlchemy
    "SqlInspectionStore",
    "SqlHistoryStore",
]
