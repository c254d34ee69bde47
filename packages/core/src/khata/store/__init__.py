"""Document store adapters for the Khata computation core."""

from khata.store.base import DocumentStore, SequenceReserver
from khata.store.client import DocumentStoreClient
from khata.store.memory import InMemoryDocumentStore, InMemorySequenceStore

__all__ = [
    "DocumentStore",
    "SequenceReserver",
    "DocumentStoreClient",
    "InMemoryDocumentStore",
    "InMemorySequenceStore",
]
