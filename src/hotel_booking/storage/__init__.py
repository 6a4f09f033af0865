"""Persistence layer."""

from .document_store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentExistsError,
    Increment,
    PersistenceError,
    SqliteDocumentStore,
    Transaction,
)

__all__ = [
    "SERVER_TIMESTAMP",
    "Document",
    "DocumentExistsError",
    "Increment",
    "PersistenceError",
    "SqliteDocumentStore",
    "Transaction",
]
