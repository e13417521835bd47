from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict, Optional

import yaml

from skirmish.combat.dice import DIFFICULTY_ATTACK_OFFSETS, Difficulty, resolve_difficulty
from skirmish.exceptions import SettingsError

logger = logging.getLogger(__name__)


@dataclass
class CombatSettings:
    attack_die_faces: int = 6
    initiative_die_faces: int = 6
    initiative_attribute: str = "Dexterity"
    melee_attribute: str = "Strength"
    defending_attribute: str = "Strength"
    auto_advance_monster_turn: bool = True
    log_capacity: int = 1000
    difficulty_offsets: Dict[str, int] = field(
        default_factory=lambda: {tier.value: offset for tier, offset in DIFFICULTY_ATTACK_OFFSETS.items()}
    )

    def offset_table(self) -> Dict[Difficulty, int]:
        table: Dict[Difficulty, int] = {}
        for name, offset in self.difficulty_offsets.items():
            tier = resolve_difficulty(name)
            if tier is None:
                logger.warning("Ignoring offset for unknown difficulty tier %r", name)
                continue
            table[tier] = int(offset)
        return table


@dataclass
class LootSettings:
    default_max_inventory_size: int = 20


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class Settings:
    combat: CombatSettings = field(default_factory=CombatSettings)
    loot: LootSettings = field(default_factory=LootSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        try:
            return Settings(
                combat=CombatSettings(**data.get("combat", {})),
                loot=LootSettings(**data.get("loot", {})),
                logging=LoggingSettings(**data.get("logging", {})),
            )
        except TypeError as exc:
            raise SettingsError(f"Invalid settings: {exc}") from exc

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults and optional user override file.

        If user_path is provided and exists, overlay values onto defaults.
        """
        try:
            with resources.files("skirmish.data").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = dataclasses.asdict(Settings())

        user_data = {}
        if user_path is not None:
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        settings = cls._from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(dataclasses.asdict(self), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
