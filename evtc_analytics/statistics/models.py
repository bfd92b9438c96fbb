"""
Statistics snapshots computed from a processed log.

All snapshots are immutable and refer to agents only by their agent_id.
Damage is kept as integer sums; rates are derived on read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..config.gw2_data import EliteSpecialization, Profession
from ..encounters.results import EncounterResult
from ..models.log import ProcessingFlags
from ..models.phases import Phase


@dataclass(frozen=True)
class DamageData:
    """Damage dealt over a time window."""

    duration_ms: int
    physical_damage: int = 0
    condition_damage: int = 0

    @property
    def total_damage(self) -> int:
        return self.physical_damage + self.condition_damage

    @property
    def dps(self) -> float:
        return self._rate(self.total_damage)

    @property
    def physical_dps(self) -> float:
        return self._rate(self.physical_damage)

    @property
    def condition_dps(self) -> float:
        return self._rate(self.condition_damage)

    def _rate(self, damage: int) -> float:
        if self.duration_ms <= 0:
            return 0.0
        return damage * 1000 / self.duration_ms

    def combine(self, other: "DamageData") -> "DamageData":
        """Add the damage of another window of the same duration."""
        return DamageData(
            duration_ms=self.duration_ms,
            physical_damage=self.physical_damage + other.physical_damage,
            condition_damage=self.condition_damage + other.condition_damage,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "physical_damage": self.physical_damage,
            "condition_damage": self.condition_damage,
            "total_damage": self.total_damage,
            "dps": round(self.dps, 2),
        }


@dataclass(frozen=True)
class SquadDamageData:
    """Damage of the whole squad with the per-player breakdown."""

    damage: DamageData
    player_damage: Dict[int, DamageData] = field(default_factory=dict)


@dataclass(frozen=True)
class TargetSquadDamageData:
    """Damage the squad dealt to one encounter target."""

    target_id: int
    target_name: str
    squad_damage: SquadDamageData


@dataclass(frozen=True)
class BuffUptime:
    """Active time of a buff within a window."""

    buff_id: int
    name: str
    active_ms: int
    window_ms: int

    @property
    def uptime(self) -> float:
        """Fraction of the window the buff was active, in [0, 1]."""
        if self.window_ms <= 0:
            return 0.0
        return self.active_ms / self.window_ms

    def combine(self, other: "BuffUptime") -> "BuffUptime":
        """Pool two uptimes, e.g. of two players in a group."""
        return BuffUptime(
            buff_id=self.buff_id,
            name=self.name,
            active_ms=self.active_ms + other.active_ms,
            window_ms=self.window_ms + other.window_ms,
        )


@dataclass(frozen=True)
class PlayerStatistics:
    """Per-player figures for the whole fight and each phase."""

    agent_id: int
    name: str
    account_name: Optional[str]
    profession: Profession
    elite_specialization: Optional[EliteSpecialization]
    subgroup: int
    damage: DamageData
    target_damage: DamageData
    phase_target_damage: Tuple[DamageData, ...] = ()
    downs: int = 0
    deaths: int = 0
    casts_started: int = 0
    casts_cancelled: int = 0
    weapon_swaps: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "name": self.name,
            "account_name": self.account_name,
            "profession": self.profession.name,
            "elite_specialization": self.elite_specialization.name if self.elite_specialization else None,
            "subgroup": self.subgroup,
            "damage": self.damage.to_dict(),
            "target_damage": self.target_damage.to_dict(),
            "phase_target_damage": [data.to_dict() for data in self.phase_target_damage],
            "downs": self.downs,
            "deaths": self.deaths,
            "casts_started": self.casts_started,
            "casts_cancelled": self.casts_cancelled,
            "weapon_swaps": self.weapon_swaps,
        }


@dataclass(frozen=True)
class GroupStatistics:
    """Aggregated figures of one squad subgroup."""

    subgroup: int
    player_ids: Tuple[int, ...]
    damage: DamageData
    target_damage: DamageData


@dataclass(frozen=True)
class PhaseStats:
    """Damage figures scoped to one phase."""

    phase: Phase
    squad_damage: SquadDamageData
    squad_target_damage: SquadDamageData
    target_damage: Tuple[TargetSquadDamageData, ...] = ()

    @property
    def duration_ms(self) -> int:
        return self.phase.duration


@dataclass(frozen=True)
class BuffData:
    """
    Buff uptimes keyed by agent_id (players) or subgroup, then buff id.

    Phase uptimes are ordered like the phases of the log.
    """

    buff_ids: Tuple[int, ...]
    player_uptimes: Dict[int, Dict[int, BuffUptime]] = field(default_factory=dict)
    group_uptimes: Dict[int, Dict[int, BuffUptime]] = field(default_factory=dict)
    phase_player_uptimes: Tuple[Dict[int, Dict[int, BuffUptime]], ...] = ()
    phase_group_uptimes: Tuple[Dict[int, Dict[int, BuffUptime]], ...] = ()


@dataclass(frozen=True)
class LogStatistics:
    """All statistics of one processed log."""

    fight_start: Optional[datetime]
    fight_time_ms: int
    log_author: Optional[str]
    encounter_name: str
    encounter_result: EncounterResult
    log_version: str
    player_data: Tuple[PlayerStatistics, ...]
    group_data: Tuple[GroupStatistics, ...]
    phase_stats: Tuple[PhaseStats, ...]
    full_fight_squad_damage: SquadDamageData
    full_fight_target_damage: Tuple[TargetSquadDamageData, ...]
    buff_data: BuffData
    event_counts: Dict[str, int]
    agents: Dict[int, str]
    skills: Dict[int, str]
    processing_flags: ProcessingFlags

    def get_player(self, agent_id: int) -> Optional[PlayerStatistics]:
        for player in self.player_data:
            if player.agent_id == agent_id:
                return player
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize into plain types for JSON output."""
        return {
            "fight_start": self.fight_start.isoformat() if self.fight_start else None,
            "fight_time_ms": self.fight_time_ms,
            "log_author": self.log_author,
            "encounter_name": self.encounter_name,
            "encounter_result": self.encounter_result.value,
            "log_version": self.log_version,
            "players": [player.to_dict() for player in self.player_data],
            "groups": [
                {
                    "subgroup": group.subgroup,
                    "player_ids": list(group.player_ids),
                    "damage": group.damage.to_dict(),
                    "target_damage": group.target_damage.to_dict(),
                }
                for group in self.group_data
            ],
            "phases": [
                {
                    "name": stats.phase.name,
                    "start_time": stats.phase.start_time,
                    "end_time": stats.phase.end_time,
                    "squad_damage": stats.squad_damage.damage.to_dict(),
                    "squad_target_damage": stats.squad_target_damage.damage.to_dict(),
                }
                for stats in self.phase_stats
            ],
            "squad_damage": self.full_fight_squad_damage.damage.to_dict(),
            "target_damage": [
                {
                    "target_id": target.target_id,
                    "target_name": target.target_name,
                    "damage": target.squad_damage.damage.to_dict(),
                }
                for target in self.full_fight_target_damage
            ],
            "buff_uptimes": {
                str(agent_id): {str(buff_id): round(uptime.uptime, 4) for buff_id, uptime in uptimes.items()}
                for agent_id, uptimes in self.buff_data.player_uptimes.items()
            },
            "event_counts": dict(self.event_counts),
            "processing_flags": self.processing_flags.to_dict(),
        }
