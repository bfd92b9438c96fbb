"""
Skill models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config.gw2_data import BOON_NAMES


class SkillCategory(Enum):
    """Broad category of a skill."""

    HEAL = "heal"
    BUFF = "buff"
    DODGE = "dodge"
    RESURRECT = "resurrect"
    WEAPON_SWAP = "weapon_swap"
    UNKNOWN = "unknown"


# Skill ids with a fixed meaning in every log
WEAPON_SWAP_SKILL_ID = -2
DODGE_SKILL_IDS = frozenset({65001, 23275})
RESURRECT_SKILL_ID = 1066
BANDAGE_SKILL_ID = 1175


@dataclass(frozen=True)
class Skill:
    """A skill or buff from the skill table."""

    skill_id: int
    name: Optional[str]
    category: SkillCategory = SkillCategory.UNKNOWN
    is_placeholder: bool = False

    @property
    def display_name(self) -> str:
        return self.name if self.name else f"Skill {self.skill_id}"


def categorize_skill(skill_id: int) -> SkillCategory:
    """Categorize a skill from its id alone."""
    if skill_id == WEAPON_SWAP_SKILL_ID:
        return SkillCategory.WEAPON_SWAP
    if skill_id in DODGE_SKILL_IDS:
        return SkillCategory.DODGE
    if skill_id == RESURRECT_SKILL_ID:
        return SkillCategory.RESURRECT
    if skill_id == BANDAGE_SKILL_ID:
        return SkillCategory.HEAL
    if skill_id in BOON_NAMES:
        return SkillCategory.BUFF
    return SkillCategory.UNKNOWN
