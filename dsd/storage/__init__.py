"""Collaborator adapters for object storage and evaluation records."""

from dsd.storage.memory import InMemoryEvaluationStore, InMemoryObjectStorage

__all__ = ["InMemoryEvaluationStore", "InMemoryObjectStorage"]
