"""
Statistics aggregation over a processed log.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Set

from ..config.gw2_data import get_boon_name
from ..config.settings import ParserSettings
from ..encounters.registry import EncounterInfo
from ..models.agents import Agent
from ..models.log import Log
from ..models.phases import Phase
from ..parser.events import (
    AgentDeadEvent,
    AgentDownedEvent,
    AgentWeaponSwapEvent,
    BuffDamageEvent,
    DamageEvent,
    Event,
    PhysicalDamageEvent,
    SkillCastEndEvent,
    SkillCastEndType,
    SkillCastStartEvent,
)
from .buffs import BuffKey, Interval, collect_buff_intervals, overlap_length
from .models import (
    BuffData,
    BuffUptime,
    DamageData,
    GroupStatistics,
    LogStatistics,
    PhaseStats,
    PlayerStatistics,
    SquadDamageData,
    TargetSquadDamageData,
)

logger = logging.getLogger(__name__)


class DamageAccumulator:
    """Integer damage sums per player."""

    def __init__(self):
        self.physical: Dict[int, int] = defaultdict(int)
        self.condition: Dict[int, int] = defaultdict(int)

    def add(self, player_id: int, event: DamageEvent) -> None:
        if isinstance(event, PhysicalDamageEvent):
            self.physical[player_id] += event.damage
        else:
            self.condition[player_id] += event.damage

    def get(self, player_id: int, duration_ms: int) -> DamageData:
        return DamageData(
            duration_ms=duration_ms,
            physical_damage=self.physical.get(player_id, 0),
            condition_damage=self.condition.get(player_id, 0),
        )

    def squad(self, player_ids: Sequence[int], duration_ms: int) -> SquadDamageData:
        per_player = {player_id: self.get(player_id, duration_ms) for player_id in player_ids}
        total = DamageData(
            duration_ms=duration_ms,
            physical_damage=sum(data.physical_damage for data in per_player.values()),
            condition_damage=sum(data.condition_damage for data in per_player.values()),
        )
        return SquadDamageData(damage=total, player_damage=per_player)


class _PlayerCounters:
    __slots__ = ("downs", "deaths", "casts_started", "casts_cancelled", "weapon_swaps")

    def __init__(self):
        self.downs = 0
        self.deaths = 0
        self.casts_started = 0
        self.casts_cancelled = 0
        self.weapon_swaps = 0


class StatisticsCalculator:
    """
    Aggregates a log into statistics snapshots.

    One forward pass over the events computes full-fight and phase-scoped
    damage together; the phase of each event is found by advancing a
    pointer over the contiguous phases. Buff uptimes are computed from
    coalesced buff intervals afterwards.
    """

    def __init__(self, settings: Optional[ParserSettings] = None):
        self.settings = settings or ParserSettings()

    def calculate(self, log: Log, encounter: EncounterInfo) -> LogStatistics:
        """
        Calculate all statistics of a log.

        Args:
            log: Processed log
            encounter: Identified encounter with its phases and targets

        Returns:
            LogStatistics snapshot
        """
        phases = list(encounter.phases)
        fight_time = sum(phase.duration for phase in phases)
        players = log.players
        player_ids = [player.agent_id for player in players]
        player_id_set = set(player_ids)
        targets = list(encounter.targets)
        target_ids = {target.agent_id for target in targets}

        full_damage = DamageAccumulator()
        full_target_damage = DamageAccumulator()
        per_target_damage: Dict[int, DamageAccumulator] = defaultdict(DamageAccumulator)
        phase_damage = [DamageAccumulator() for _ in phases]
        phase_target_damage = [DamageAccumulator() for _ in phases]
        phase_per_target: List[Dict[int, DamageAccumulator]] = [defaultdict(DamageAccumulator) for _ in phases]
        counters: Dict[int, _PlayerCounters] = {player_id: _PlayerCounters() for player_id in player_ids}
        event_counts: Counter = Counter()

        phase_index = 0
        for event in log.events:
            event_counts[event.event_name] += 1

            while phase_index < len(phases) - 1 and event.time >= phases[phase_index].end_time:
                phase_index += 1
            in_phase = bool(phases) and phases[phase_index].contains(event.time)

            if isinstance(event, (PhysicalDamageEvent, BuffDamageEvent)):
                player_id = self._credited_player(event, player_id_set)
                if player_id is None:
                    continue
                full_damage.add(player_id, event)
                if in_phase:
                    phase_damage[phase_index].add(player_id, event)

                if event.target is not None and event.target.agent_id in target_ids:
                    full_target_damage.add(player_id, event)
                    per_target_damage[event.target.agent_id].add(player_id, event)
                    if in_phase:
                        phase_target_damage[phase_index].add(player_id, event)
                        phase_per_target[phase_index][event.target.agent_id].add(player_id, event)
            elif event.source is not None and event.source.agent_id in counters:
                self._count_player_event(counters[event.source.agent_id], event)

        player_data = tuple(
            PlayerStatistics(
                agent_id=player.agent_id,
                name=player.name,
                account_name=player.account_name,
                profession=player.profession,
                elite_specialization=player.elite_specialization,
                subgroup=player.subgroup,
                damage=full_damage.get(player.agent_id, fight_time),
                target_damage=full_target_damage.get(player.agent_id, fight_time),
                phase_target_damage=tuple(
                    phase_target_damage[i].get(player.agent_id, phase.duration) for i, phase in enumerate(phases)
                ),
                downs=counters[player.agent_id].downs,
                deaths=counters[player.agent_id].deaths,
                casts_started=counters[player.agent_id].casts_started,
                casts_cancelled=counters[player.agent_id].casts_cancelled,
                weapon_swaps=counters[player.agent_id].weapon_swaps,
            )
            for player in players
        )

        phase_stats = tuple(
            PhaseStats(
                phase=phase,
                squad_damage=phase_damage[i].squad(player_ids, phase.duration),
                squad_target_damage=phase_target_damage[i].squad(player_ids, phase.duration),
                target_damage=self._target_damage(targets, phase_per_target[i], player_ids, phase.duration),
            )
            for i, phase in enumerate(phases)
        )

        statistics = LogStatistics(
            fight_start=log.metadata.log_start,
            fight_time_ms=fight_time,
            log_author=log.author.name if log.author is not None else None,
            encounter_name=encounter.name,
            encounter_result=encounter.result,
            log_version=log.metadata.build_version,
            player_data=player_data,
            group_data=self._group_statistics(player_data, fight_time),
            phase_stats=phase_stats,
            full_fight_squad_damage=full_damage.squad(player_ids, fight_time),
            full_fight_target_damage=self._target_damage(targets, per_target_damage, player_ids, fight_time),
            buff_data=self._buff_data(log, players, phases),
            event_counts=dict(event_counts),
            agents={agent.agent_id: agent.name for agent in log.agents},
            skills={skill.skill_id: skill.display_name for skill in log.skills},
            processing_flags=log.flags,
        )

        logger.info(
            f"Calculated statistics for {len(player_data)} players over {len(phases)} phases, "
            f"squad dps {statistics.full_fight_squad_damage.damage.dps:.0f}"
        )
        return statistics

    @staticmethod
    def _credited_player(event: Event, player_ids: Set[int]) -> Optional[int]:
        """Get the player credited for damage, following minion masters."""
        if event.source is None:
            return None
        root = event.source.get_root_master()
        if root.agent_id in player_ids:
            return root.agent_id
        return None

    @staticmethod
    def _count_player_event(counters: _PlayerCounters, event: Event) -> None:
        if isinstance(event, AgentDownedEvent):
            counters.downs += 1
        elif isinstance(event, AgentDeadEvent):
            counters.deaths += 1
        elif isinstance(event, SkillCastStartEvent):
            counters.casts_started += 1
        elif isinstance(event, SkillCastEndEvent) and event.end_type == SkillCastEndType.CANCEL:
            counters.casts_cancelled += 1
        elif isinstance(event, AgentWeaponSwapEvent):
            counters.weapon_swaps += 1

    @staticmethod
    def _target_damage(targets: Sequence[Agent], accumulators: Dict[int, DamageAccumulator],
                       player_ids: Sequence[int], duration_ms: int) -> tuple:
        return tuple(
            TargetSquadDamageData(
                target_id=target.agent_id,
                target_name=target.name,
                squad_damage=accumulators.get(target.agent_id, DamageAccumulator()).squad(player_ids, duration_ms),
            )
            for target in targets
        )

    @staticmethod
    def _group_statistics(player_data: Sequence[PlayerStatistics], fight_time: int) -> tuple:
        groups: Dict[int, List[PlayerStatistics]] = defaultdict(list)
        for player in player_data:
            groups[player.subgroup].append(player)

        result = []
        for subgroup in sorted(groups):
            members = groups[subgroup]
            damage = DamageData(duration_ms=fight_time)
            target_damage = DamageData(duration_ms=fight_time)
            for member in members:
                damage = damage.combine(member.damage)
                target_damage = target_damage.combine(member.target_damage)
            result.append(
                GroupStatistics(
                    subgroup=subgroup,
                    player_ids=tuple(member.agent_id for member in members),
                    damage=damage,
                    target_damage=target_damage,
                )
            )
        return tuple(result)

    def _buff_data(self, log: Log, players: Sequence[Agent], phases: Sequence[Phase]) -> BuffData:
        buff_ids = tuple(sorted(self.settings.tracked_buff_ids))
        intervals = collect_buff_intervals(log.events, buff_ids, log.fight_end)

        windows = [(log.fight_start, log.fight_end)] + [(phase.start_time, phase.end_time) for phase in phases]
        per_window = [self._window_uptimes(intervals, players, buff_ids, start, end) for start, end in windows]

        return BuffData(
            buff_ids=buff_ids,
            player_uptimes=per_window[0][0],
            group_uptimes=per_window[0][1],
            phase_player_uptimes=tuple(player_uptimes for player_uptimes, _ in per_window[1:]),
            phase_group_uptimes=tuple(group_uptimes for _, group_uptimes in per_window[1:]),
        )

    @staticmethod
    def _window_uptimes(intervals: Dict[BuffKey, List[Interval]], players: Sequence[Agent],
                        buff_ids: Sequence[int], start: int, end: int):
        """Uptimes of every player and subgroup within one window."""
        window = end - start
        player_uptimes: Dict[int, Dict[int, BuffUptime]] = {}
        group_uptimes: Dict[int, Dict[int, BuffUptime]] = defaultdict(dict)

        for player in players:
            uptimes = {}
            for buff_id in buff_ids:
                active = overlap_length(intervals.get((player.agent_id, buff_id), []), start, end)
                uptimes[buff_id] = BuffUptime(buff_id, get_boon_name(buff_id), active, window)

                group = group_uptimes[player.subgroup]
                group[buff_id] = group[buff_id].combine(uptimes[buff_id]) if buff_id in group else uptimes[buff_id]
            player_uptimes[player.agent_id] = uptimes

        return player_uptimes, dict(group_uptimes)


def calculate_statistics(log: Log, encounter: EncounterInfo,
                         settings: Optional[ParserSettings] = None) -> LogStatistics:
    """Calculate the statistics of a log."""
    return StatisticsCalculator(settings).calculate(log, encounter)
