"""
Statistics aggregation and rotation extraction.
"""

from .models import (
    DamageData,
    SquadDamageData,
    TargetSquadDamageData,
    BuffUptime,
    PlayerStatistics,
    GroupStatistics,
    PhaseStats,
    BuffData,
    LogStatistics,
)
from .buffs import coalesce, collect_buff_intervals, overlap_length
from .aggregator import StatisticsCalculator, calculate_statistics
from .rotation import (
    RotationItemType,
    SkillCastOutcome,
    SkillCastItem,
    WeaponSwapItem,
    RotationItem,
    PlayerRotation,
    RotationExtractor,
    extract_rotations,
)
from .rotation_json import (
    SkillInfo,
    SkillDataSource,
    StaticSkillDataSource,
    RotationSource,
    RotationJsonWriter,
)

__all__ = [
    "DamageData",
    "SquadDamageData",
    "TargetSquadDamageData",
    "BuffUptime",
    "PlayerStatistics",
    "GroupStatistics",
    "PhaseStats",
    "BuffData",
    "LogStatistics",
    "coalesce",
    "collect_buff_intervals",
    "overlap_length",
    "StatisticsCalculator",
    "calculate_statistics",
    "RotationItemType",
    "SkillCastOutcome",
    "SkillCastItem",
    "WeaponSwapItem",
    "RotationItem",
    "PlayerRotation",
    "RotationExtractor",
    "extract_rotations",
    "SkillInfo",
    "SkillDataSource",
    "StaticSkillDataSource",
    "RotationSource",
    "RotationJsonWriter",
]
