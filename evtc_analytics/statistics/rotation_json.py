"""
JSON model of player rotations for the rotation comparison renderer.

The renderer reads fields by name and numeric code, so the model layout
below must not change:

    {"Rotations": [{"PlayerData": {"Name", "IconUrl", "LogName", "EncounterName"},
                    "Items": [...]}],
     "SkillData": {"<skill id>": {"Name", "IconUrl"}}}
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..config.gw2_data import get_tiny_profession_icon_url
from ..models.log import Log
from .rotation import PlayerRotation, RotationItem, SkillCastItem, SkillCastOutcome, WeaponSwapItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillInfo:
    """Display data of a skill."""

    name: Optional[str]
    icon_url: Optional[str] = None


class SkillDataSource(ABC):
    """Provides skill names and icons, e.g. from the game API."""

    @abstractmethod
    def get_skill_info(self, skill_id: int) -> Optional[SkillInfo]:
        """Get display data of a skill, None if unknown."""


class StaticSkillDataSource(SkillDataSource):
    """Skill data from a prepared mapping."""

    def __init__(self, skills: Dict[int, SkillInfo]):
        self.skills = dict(skills)

    def get_skill_info(self, skill_id: int) -> Optional[SkillInfo]:
        return self.skills.get(skill_id)


@dataclass(frozen=True)
class RotationSource:
    """Rotations of one log together with its labels."""

    log: Log
    rotations: Sequence[PlayerRotation]
    log_name: str
    encounter_name: str


class RotationJsonWriter:
    """Builds and serializes the rotation comparison model."""

    def __init__(self, skill_data_source: Optional[SkillDataSource] = None):
        self.skill_data_source = skill_data_source

    def build_model(self, sources: Iterable[RotationSource]) -> Dict[str, Any]:
        """
        Build the model for rotations of one or more logs.

        Item times are offsets from the fight start of their log.

        Args:
            sources: Rotations with their log and labels

        Returns:
            Dictionary ready for JSON serialization
        """
        rotations: List[Dict[str, Any]] = []
        used_skills: Dict[int, Optional[str]] = {}

        for source in sources:
            fight_start = source.log.fight_start
            for rotation in source.rotations:
                items = []
                for item in rotation.items:
                    items.append(self._item_to_dict(item, fight_start))
                    if isinstance(item, SkillCastItem):
                        skill = source.log.get_skill(item.skill_id)
                        used_skills[item.skill_id] = skill.name if skill is not None else None

                player = rotation.player
                rotations.append(
                    {
                        "PlayerData": {
                            "Name": player.name,
                            "IconUrl": get_tiny_profession_icon_url(player.profession, player.elite_specialization),
                            "LogName": source.log_name,
                            "EncounterName": source.encounter_name,
                        },
                        "Items": items,
                    }
                )

        return {"Rotations": rotations, "SkillData": self._skill_data(used_skills)}

    def write(self, sources: Iterable[RotationSource]) -> str:
        """Serialize the model to a compact JSON string."""
        model = self.build_model(sources)
        logger.debug(f"Writing rotation model with {len(model['Rotations'])} rotations")
        return json.dumps(model, separators=(",", ":"), ensure_ascii=False)

    @staticmethod
    def _item_to_dict(item: RotationItem, fight_start: int) -> Dict[str, Any]:
        time = item.time - fight_start
        if isinstance(item, WeaponSwapItem):
            return {
                "Type": int(item.item_type),
                "Time": time,
                "Duration": 0,
                "TimeEnd": time,
                "NewWeaponSet": int(item.new_weapon_set),
            }

        # Casts still running at log end have no code of their own
        cast_type = int(item.outcome) if item.outcome != SkillCastOutcome.INCOMPLETE else 0
        return {
            "Type": int(item.item_type),
            "Time": time,
            "Duration": item.duration,
            "TimeEnd": time + item.duration,
            "CastType": cast_type,
            "SkillId": item.skill_id,
        }

    def _skill_data(self, used_skills: Dict[int, Optional[str]]) -> Dict[str, Dict[str, Optional[str]]]:
        skill_data = {}
        for skill_id in sorted(used_skills):
            info = self.skill_data_source.get_skill_info(skill_id) if self.skill_data_source else None
            if info is None:
                skill_data[str(skill_id)] = {"Name": used_skills[skill_id], "IconUrl": None}
            else:
                skill_data[str(skill_id)] = {"Name": info.name, "IconUrl": info.icon_url}
        return skill_data
