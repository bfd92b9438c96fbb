"""
Rotation extraction: per-player sequences of skill casts and weapon swaps.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Tuple, Union

from ..config.gw2_data import WeaponSet
from ..models.agents import Agent
from ..models.log import Log
from ..parser.events import AgentWeaponSwapEvent, SkillCastEndEvent, SkillCastEndType, SkillCastStartEvent

logger = logging.getLogger(__name__)


class RotationItemType(IntEnum):
    """Discriminant of rotation items."""

    SKILL_CAST = 1
    WEAPON_SWAP = 2


class SkillCastOutcome(IntEnum):
    """How a cast in a rotation ended; INCOMPLETE casts were still running at log end."""

    INCOMPLETE = 0
    SUCCESS = 1
    CANCEL = 2
    RESET = 3


_END_OUTCOMES = {
    SkillCastEndType.FIRE: SkillCastOutcome.SUCCESS,
    SkillCastEndType.CANCEL: SkillCastOutcome.CANCEL,
    SkillCastEndType.RESET: SkillCastOutcome.RESET,
}


@dataclass(frozen=True)
class SkillCastItem:
    time: int
    duration: int
    skill_id: int
    outcome: SkillCastOutcome
    item_type: RotationItemType = field(default=RotationItemType.SKILL_CAST, init=False)

    @property
    def time_end(self) -> int:
        return self.time + self.duration


@dataclass(frozen=True)
class WeaponSwapItem:
    time: int
    new_weapon_set: WeaponSet
    item_type: RotationItemType = field(default=RotationItemType.WEAPON_SWAP, init=False)

    @property
    def duration(self) -> int:
        return 0

    @property
    def time_end(self) -> int:
        return self.time


RotationItem = Union[SkillCastItem, WeaponSwapItem]


@dataclass(frozen=True)
class PlayerRotation:
    """Rotation of one player, ordered by start time then event order."""

    player: Agent
    items: Tuple[RotationItem, ...]


class RotationExtractor:
    """
    Converts skill cast and weapon swap events into rotation items.

    Casts are paired by skill id. A start that is never ended is closed at
    the log end as INCOMPLETE, and a second start of the same skill closes
    the earlier one as INCOMPLETE. An end without a start produces a cast
    that started end.duration earlier, never before the fight start.
    """

    def extract(self, log: Log) -> List[PlayerRotation]:
        """
        Extract the rotation of every player.

        Args:
            log: Processed log

        Returns:
            One PlayerRotation per player, in agent registry order
        """
        # Each item is kept with the stream position of the event that placed it
        positioned: Dict[int, List[Tuple[int, int, RotationItem]]] = {player.agent_id: [] for player in log.players}
        open_casts: Dict[int, Dict[int, Tuple[int, SkillCastStartEvent]]] = {
            player_id: {} for player_id in positioned
        }

        for index, event in enumerate(log.events):
            if event.source is None or event.source.agent_id not in positioned:
                continue
            player_id = event.source.agent_id
            items = positioned[player_id]
            casts = open_casts[player_id]

            if isinstance(event, SkillCastStartEvent):
                skill_id = event.skill.skill_id
                if skill_id in casts:
                    start_index, start = casts.pop(skill_id)
                    items.append(
                        (start.time, start_index, SkillCastItem(start.time, event.time - start.time, skill_id,
                                                                SkillCastOutcome.INCOMPLETE))
                    )
                casts[skill_id] = (index, event)

            elif isinstance(event, SkillCastEndEvent):
                skill_id = event.skill.skill_id
                outcome = _END_OUTCOMES[event.end_type]
                if skill_id in casts:
                    start_index, start = casts.pop(skill_id)
                    items.append(
                        (start.time, start_index, SkillCastItem(start.time, event.time - start.time, skill_id, outcome))
                    )
                else:
                    start_time = max(log.fight_start, event.time - max(event.duration, 0))
                    logger.debug(f"Cast end of skill {skill_id} at {event.time} without a start")
                    items.append(
                        (start_time, index, SkillCastItem(start_time, event.time - start_time, skill_id, outcome))
                    )

            elif isinstance(event, AgentWeaponSwapEvent):
                items.append((event.time, index, WeaponSwapItem(event.time, event.new_weapon_set)))

        for player_id, casts in open_casts.items():
            for skill_id, (start_index, start) in casts.items():
                duration = max(log.fight_end - start.time, 0)
                positioned[player_id].append(
                    (start.time, start_index, SkillCastItem(start.time, duration, skill_id, SkillCastOutcome.INCOMPLETE))
                )

        rotations = []
        for player in log.players:
            ordered = sorted(positioned[player.agent_id], key=lambda entry: (entry[0], entry[1]))
            rotations.append(PlayerRotation(player=player, items=tuple(item for _, _, item in ordered)))
        return rotations


def extract_rotations(log: Log) -> List[PlayerRotation]:
    """Extract the rotations of all players of a log."""
    return RotationExtractor().extract(log)
