"""
Read-only catalog of characters, class abilities, items and monsters.

The combat core never talks to the catalog directly; the encounter service
pre-fetches everything a session needs through the CatalogProvider contract.
InMemoryCatalog is the bundled implementation, loadable from a YAML or JSON
document validated against ``skirmish/data/schemas/catalog.schema.json``.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import yaml
from jsonschema import Draft202012Validator

from skirmish.combat.dice import DiceSpec
from skirmish.combat.models import Ability, MonsterDefinition
from skirmish.exceptions import CatalogError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CharacterRecord:
    id: str
    name: str
    class_name: str
    level: int = 1
    attributes: Dict[str, int] = field(default_factory=dict)
    initial_state: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CharacterRecord":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            class_name=str(data.get("class", "")),
            level=int(data.get("level", 1)),
            attributes={str(k): int(v) for k, v in (data.get("attributes") or {}).items()},
            initial_state=dict(data["state"]) if data.get("state") is not None else None,
        )


@dataclass(frozen=True)
class ItemRecord:
    """An equippable item. ``damage`` is only meaningful for weapons."""

    id: str
    name: str
    type: str
    attack: int = 0
    defense: int = 0
    damage: Optional[DiceSpec] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ItemRecord":
        damage = data.get("damage")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            type=str(data.get("type", "misc")),
            attack=int(data.get("attack", 0)),
            defense=int(data.get("defense", 0)),
            damage=DiceSpec.from_value(damage) if damage is not None else None,
        )


class CatalogProvider(Protocol):
    def get_character(self, character_id: str) -> CharacterRecord: ...

    def get_class_abilities(self, class_name: str) -> List[Ability]: ...

    def get_item(self, item_id: str) -> ItemRecord: ...

    def get_monster(self, monster_id: str) -> MonsterDefinition: ...


def abilities_for(catalog: CatalogProvider, character: CharacterRecord) -> List[Ability]:
    """Class abilities the character has unlocked (required level <= character level)."""
    unlocked = [a for a in catalog.get_class_abilities(character.class_name) if a.level <= character.level]
    logger.debug("%s (level %d) has %d ability(ies) unlocked", character.id, character.level, len(unlocked))
    return unlocked


class InMemoryCatalog:
    """Dictionary-backed CatalogProvider.

    Unknown ids raise CatalogError rather than returning None, so a missing
    record surfaces before any session state is created.
    """

    def __init__(
        self,
        characters: Iterable[CharacterRecord] = (),
        class_abilities: Optional[Mapping[str, Iterable[Ability]]] = None,
        items: Iterable[ItemRecord] = (),
        monsters: Iterable[MonsterDefinition] = (),
    ) -> None:
        self._characters: Dict[str, CharacterRecord] = {c.id: c for c in characters}
        self._abilities: Dict[str, Tuple[Ability, ...]] = {
            k: tuple(v) for k, v in (class_abilities or {}).items()
        }
        self._items: Dict[str, ItemRecord] = {i.id: i for i in items}
        self._monsters: Dict[str, MonsterDefinition] = {m.id: m for m in monsters}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InMemoryCatalog":
        validate_catalog(data)
        try:
            return cls(
                characters=[CharacterRecord.from_dict(c) for c in data.get("characters", [])],
                class_abilities={
                    str(k["id"]): [Ability.from_dict(a) for a in k.get("abilities", [])]
                    for k in data.get("classes", [])
                },
                items=[ItemRecord.from_dict(i) for i in data.get("items", [])],
                monsters=[MonsterDefinition.from_dict(m) for m in data.get("monsters", [])],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogError(f"Invalid catalog record: {exc}") from exc

    def characters(self) -> List[CharacterRecord]:
        return list(self._characters.values())

    def get_character(self, character_id: str) -> CharacterRecord:
        try:
            return self._characters[character_id]
        except KeyError:
            raise CatalogError(f"Unknown character '{character_id}'") from None

    def get_class_abilities(self, class_name: str) -> List[Ability]:
        return list(self._abilities.get(class_name, ()))

    def get_item(self, item_id: str) -> ItemRecord:
        try:
            return self._items[item_id]
        except KeyError:
            raise CatalogError(f"Unknown item '{item_id}'") from None

    def get_monster(self, monster_id: str) -> MonsterDefinition:
        try:
            return self._monsters[monster_id]
        except KeyError:
            raise CatalogError(f"Unknown monster '{monster_id}'") from None


@lru_cache(maxsize=1)
def _load_catalog_schema() -> Dict[str, Any]:
    with resources.files("skirmish.data").joinpath("schemas").joinpath("catalog.schema.json").open("r", encoding="utf-8") as f:
        logger.debug("Loading catalog schema from package data")
        return json.load(f)


def validate_catalog(data: Any) -> None:
    """
    Validate a catalog document against the bundled JSON schema.

    Raises:
        CatalogError carrying every validation error, sorted by path.
    """
    validator = Draft202012Validator(_load_catalog_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        for err in errors:
            logger.error("Catalog schema validation error at %s: %s", list(err.path), err.message)
        raise CatalogError("Catalog validation failed", errors)


def load_catalog(path: os.PathLike | str) -> InMemoryCatalog:
    """Load a YAML (``.yaml``/``.yml``) or JSON catalog file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    with p.open("r", encoding="utf-8") as f:
        if p.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)
    catalog = InMemoryCatalog.from_dict(data)
    logger.info(
        "Loaded catalog %s: %d character(s), %d item(s), %d monster(s)",
        p,
        len(data.get("characters", [])),
        len(data.get("items", [])),
        len(data.get("monsters", [])),
    )
    return catalog


__all__ = [
    "CatalogProvider",
    "CharacterRecord",
    "InMemoryCatalog",
    "ItemRecord",
    "abilities_for",
    "load_catalog",
    "validate_catalog",
]
