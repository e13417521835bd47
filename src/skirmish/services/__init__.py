"""Collaborators around the combat core: catalog, state store and encounter orchestration."""
from .catalog import CatalogProvider, CharacterRecord, InMemoryCatalog, ItemRecord, load_catalog
from .encounter import EncounterService
from .store import CharacterState, InMemoryStateStore, StateStore

__all__ = [
    "CatalogProvider",
    "CharacterRecord",
    "CharacterState",
    "EncounterService",
    "InMemoryCatalog",
    "InMemoryStateStore",
    "ItemRecord",
    "StateStore",
    "load_catalog",
]
