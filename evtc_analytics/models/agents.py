"""
Agent models: players, NPCs, gadgets and placeholders.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config.gw2_data import EliteSpecialization, Profession


class AgentKind(Enum):
    """Role of an agent in the log."""

    PLAYER = "player"
    NPC = "npc"
    GADGET = "gadget"
    UNKNOWN = "unknown"


@dataclass(eq=False)
class Agent:
    """
    Any tracked entity of a fight.

    Instance ids are reused by the game after an agent despawns, so an
    agent's identity is only meaningful within its awareness interval
    [first_aware, last_aware]. The agent_id is a synthetic identity that
    stays stable for the whole log.
    """

    agent_id: int
    address: int
    name: str
    kind: AgentKind
    instance_id: int = 0
    first_aware: Optional[int] = None
    last_aware: Optional[int] = None

    # Pets, minions and clones point at the agent controlling them
    master: Optional["Agent"] = field(default=None, repr=False)
    minions: List["Agent"] = field(default_factory=list, repr=False)

    # Player data
    account_name: Optional[str] = None
    profession: Profession = Profession.NONE
    elite_specialization: Optional[EliteSpecialization] = None
    subgroup: int = 0

    # NPC species id / gadget volatile id
    species_id: Optional[int] = None
    volatile_id: Optional[int] = None

    toughness: int = 0
    concentration: int = 0
    healing: int = 0
    condition: int = 0
    hitbox_width: int = 0
    hitbox_height: int = 0

    # Created only to resolve a reference that matched no table entry
    is_placeholder: bool = False

    @property
    def is_player(self) -> bool:
        return self.kind == AgentKind.PLAYER

    @property
    def is_npc(self) -> bool:
        return self.kind == AgentKind.NPC

    @property
    def is_gadget(self) -> bool:
        return self.kind == AgentKind.GADGET

    def is_aware_at(self, time: int) -> bool:
        """Check if a timestamp falls within this agent's lifetime interval."""
        if self.first_aware is None or self.last_aware is None:
            return False
        return self.first_aware <= time <= self.last_aware

    def get_root_master(self) -> "Agent":
        """Follow master links up to the controlling agent."""
        agent = self
        seen = {id(agent)}
        while agent.master is not None and id(agent.master) not in seen:
            agent = agent.master
            seen.add(id(agent))
        return agent

    def __repr__(self) -> str:
        return f"Agent({self.agent_id}, {self.kind.value}, {self.name!r}, instid={self.instance_id})"


def parse_player_name(raw_name: str) -> dict:
    """
    Parse a player agent name into components.

    Player names in the agent table are NUL separated:
    "character\\0:account.1234\\0subgroup".

    Args:
        raw_name: Name field from the agent table

    Returns:
        Dictionary with name, account_name and subgroup keys

    Examples:
        >>> parse_player_name("Felica\\x00:Felica.1234\\x003")
        {'name': 'Felica', 'account_name': 'Felica.1234', 'subgroup': 3}

        >>> parse_player_name("Felica")
        {'name': 'Felica', 'account_name': None, 'subgroup': 0}
    """
    parts = raw_name.split("\x00")

    name = parts[0]
    account_name = parts[1].lstrip(":") if len(parts) > 1 and parts[1] else None

    subgroup = 0
    if len(parts) > 2 and parts[2].strip():
        try:
            subgroup = int(parts[2].strip())
        except ValueError:
            subgroup = 0

    return {"name": name, "account_name": account_name, "subgroup": subgroup}
