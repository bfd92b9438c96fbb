"""
Phase splitters.

Every splitter returns contiguous, non-overlapping phases that cover the
whole fight from its first to its last event, so phase durations always
add up to the fight duration.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from ..models.agents import Agent
from ..models.log import Log
from ..models.phases import Phase
from ..parser.events import AgentHealthUpdateEvent, AllStacksRemovedEvent, BuffApplyEvent


def build_phases(log: Log, boundaries: Iterable[int], names: Optional[Sequence[str]] = None) -> List[Phase]:
    """
    Split the fight at the given boundary times.

    names[0] names the opening phase and names[i + 1] the phase starting at
    the i-th boundary. Boundaries outside the fight or equal to an earlier
    one are dropped together with their name.

    Args:
        log: Log providing the fight range
        boundaries: Times at which a new phase starts
        names: Phase names, missing ones become "Phase N"

    Returns:
        Ordered list of phases covering the fight
    """
    start = log.fight_start
    end = log.fight_end
    names = list(names or [])

    def name_at(index: int) -> Optional[str]:
        return names[index] if index < len(names) else None

    cuts = {}
    for i, time in enumerate(boundaries):
        if start < time < end and time not in cuts:
            cuts[time] = name_at(i + 1)

    starts = [(start, name_at(0))] + sorted(cuts.items())
    phases = []
    for i, (phase_start, name) in enumerate(starts):
        is_last = i == len(starts) - 1
        phases.append(
            Phase(
                name=name or f"Phase {i + 1}",
                start_time=phase_start,
                end_time=end if is_last else starts[i + 1][0],
                is_last=is_last,
            )
        )
    return phases


class PhaseSplitter(ABC):
    """Splits a fight into phases."""

    @abstractmethod
    def split(self, log: Log) -> List[Phase]:
        pass


class SinglePhaseSplitter(PhaseSplitter):
    """One phase spanning the whole fight."""

    def __init__(self, name: str = "Full fight"):
        self.name = name

    def split(self, log: Log) -> List[Phase]:
        return build_phases(log, [], [self.name])


class HealthThresholdPhaseSplitter(PhaseSplitter):
    """
    Starts a new phase when the target first drops below each threshold.

    Thresholds are health fractions, checked from highest to lowest; a
    threshold that is never crossed ends the splitting.
    """

    def __init__(self, agent: Agent, thresholds: Sequence[float], phase_names: Optional[Sequence[str]] = None):
        self.agent = agent
        self.thresholds = sorted(thresholds, reverse=True)
        self.phase_names = phase_names

    def split(self, log: Log) -> List[Phase]:
        boundaries = []
        pending = list(self.thresholds)

        for event in log.events:
            if not pending:
                break
            if not isinstance(event, AgentHealthUpdateEvent) or event.source is not self.agent:
                continue
            while pending and event.health_fraction < pending[0]:
                boundaries.append(event.time)
                pending.pop(0)

        return build_phases(log, boundaries, self.phase_names)


class AgentSpawnPhaseSplitter(PhaseSplitter):
    """Starts a new phase at the first sighting of each given species."""

    def __init__(self, species_ids: Sequence[int], phase_names: Optional[Sequence[str]] = None):
        self.species_ids = list(species_ids)
        self.phase_names = phase_names

    def split(self, log: Log) -> List[Phase]:
        boundaries = []
        for species_id in self.species_ids:
            sightings = [
                agent.first_aware for agent in log.find_npcs(species_id) if agent.first_aware is not None
            ]
            if not sightings:
                break
            boundaries.append(min(sightings))

        return build_phases(log, boundaries, self.phase_names)


class BuffPhaseSplitter(PhaseSplitter):
    """
    Starts a new phase whenever the target gains or loses a buff.

    Used for bosses that turn invulnerable between phases.
    """

    def __init__(self, agent: Agent, buff_id: int, phase_names: Optional[Sequence[str]] = None):
        self.agent = agent
        self.buff_id = buff_id
        self.phase_names = phase_names

    def split(self, log: Log) -> List[Phase]:
        boundaries = []
        active = False

        for event in log.events:
            if event.target is not self.agent:
                continue
            skill = getattr(event, "skill", None)
            if skill is None or skill.skill_id != self.buff_id:
                continue

            if isinstance(event, BuffApplyEvent) and not active:
                active = True
                boundaries.append(event.time)
            elif isinstance(event, AllStacksRemovedEvent) and active:
                active = False
                boundaries.append(event.time)

        return build_phases(log, boundaries, self.phase_names)
