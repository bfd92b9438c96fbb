"""
Log aggregate produced by the model builder.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from .agents import Agent, AgentKind
from .skills import Skill

if TYPE_CHECKING:
    from ..parser.events import Event


@dataclass(frozen=True)
class LogMetadata:
    """Header and state change derived metadata of a log."""

    revision: int
    build_version: str
    encounter_species_id: int
    fight_start_time: int = 0
    fight_end_time: int = 0
    forward_compatible: bool = False
    log_start: Optional[datetime] = None
    log_end: Optional[datetime] = None
    author: Optional[Agent] = None
    language_id: Optional[int] = None
    game_build: Optional[int] = None
    map_id: Optional[int] = None
    shard_id: Optional[int] = None

    @property
    def fight_duration(self) -> int:
        return self.fight_end_time - self.fight_start_time


@dataclass(frozen=True)
class ProcessingFlags:
    """Counters of degraded conditions met while decoding and building."""

    uncertain_resolutions: int = 0
    placeholder_agents: int = 0
    placeholder_skills: int = 0
    clamped_timestamps: int = 0
    skipped_records: int = 0
    truncated_tail_bytes: int = 0

    @property
    def is_degraded(self) -> bool:
        return any(
            (
                self.uncertain_resolutions,
                self.placeholder_agents,
                self.placeholder_skills,
                self.clamped_timestamps,
                self.skipped_records,
                self.truncated_tail_bytes,
            )
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "uncertain_resolutions": self.uncertain_resolutions,
            "placeholder_agents": self.placeholder_agents,
            "placeholder_skills": self.placeholder_skills,
            "clamped_timestamps": self.clamped_timestamps,
            "skipped_records": self.skipped_records,
            "truncated_tail_bytes": self.truncated_tail_bytes,
        }


@dataclass(frozen=True)
class Log:
    """
    Root aggregate of a processed combat log.

    Events are in file order with non-decreasing times. Every agent and
    skill referenced by an event is present in the registries, placeholders
    included. A Log is never mutated after the builder returns it.
    """

    events: Tuple["Event", ...]
    agents: Tuple[Agent, ...]
    skills: Tuple[Skill, ...]
    metadata: LogMetadata
    flags: ProcessingFlags = ProcessingFlags()

    _skills_by_id: Dict[int, Skill] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_skills_by_id", {skill.skill_id: skill for skill in self.skills})

    @property
    def players(self) -> List[Agent]:
        return [agent for agent in self.agents if agent.kind == AgentKind.PLAYER]

    @property
    def npcs(self) -> List[Agent]:
        return [agent for agent in self.agents if agent.kind == AgentKind.NPC]

    @property
    def author(self) -> Optional[Agent]:
        return self.metadata.author

    @property
    def fight_start(self) -> int:
        return self.metadata.fight_start_time

    @property
    def fight_end(self) -> int:
        return self.metadata.fight_end_time

    def get_agent(self, agent_id: int) -> Optional[Agent]:
        """Get an agent by its synthetic id."""
        if 0 <= agent_id < len(self.agents):
            return self.agents[agent_id]
        return None

    def get_skill(self, skill_id: int) -> Optional[Skill]:
        """Get a skill by id."""
        return self._skills_by_id.get(skill_id)

    def find_npcs(self, species_id: int) -> List[Agent]:
        """Get all NPCs of a species."""
        return [agent for agent in self.npcs if agent.species_id == species_id]
