"""
Event classes and factory for EVTC combat log events.
"""

import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Type

from ..config.gw2_data import WeaponSet, get_weapon_set
from ..models.agents import Agent
from ..models.skills import Skill
from .decoder import RawEvent
from .schemas import Activation, BuffRemove, RawEventKind, StateChange


class SkillCastEndType(Enum):
    """How a skill cast ended."""

    FIRE = "fire"
    CANCEL = "cancel"
    RESET = "reset"


class HitResult(Enum):
    """Result of a physical hit (the result byte)."""

    NORMAL = 0
    CRITICAL = 1
    GLANCE = 2
    BLOCK = 3
    EVADE = 4
    INTERRUPT = 5
    ABSORB = 6
    BLIND = 7
    KILLING_BLOW = 8
    DOWNED = 9
    BREAKBAR = 10
    ACTIVATION = 11
    UNKNOWN = 255

    @classmethod
    def from_raw(cls, value: int) -> "HitResult":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


# Hits that deal no damage to health
IGNORED_HIT_RESULTS = frozenset(
    {
        HitResult.BLOCK,
        HitResult.EVADE,
        HitResult.ABSORB,
        HitResult.BLIND,
        HitResult.BREAKBAR,
        HitResult.ACTIVATION,
        HitResult.UNKNOWN,
    }
)


@dataclass(eq=False)
class Event:
    """Base class for all combat log events."""

    time: int
    source: Optional[Agent] = None
    target: Optional[Agent] = None

    # Degraded-data markers
    uncertain_resolution: bool = False
    time_clamped: bool = False

    raw: Optional[RawEvent] = field(default=None, repr=False)

    @property
    def event_name(self) -> str:
        return type(self).__name__


# State changes on a single agent


@dataclass(eq=False)
class AgentEvent(Event):
    """State change concerning the source agent."""


@dataclass(eq=False)
class EnterCombatEvent(AgentEvent):
    subgroup: int = 0


@dataclass(eq=False)
class ExitCombatEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentRevivedEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentDeadEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentDownedEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentSpawnEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentDespawnEvent(AgentEvent):
    pass


@dataclass(eq=False)
class AgentHealthUpdateEvent(AgentEvent):
    """Health of the agent as a fraction in [0, 1]."""

    health_fraction: float = 1.0


@dataclass(eq=False)
class AgentMaxHealthUpdateEvent(AgentEvent):
    max_health: int = 0


@dataclass(eq=False)
class AgentWeaponSwapEvent(AgentEvent):
    new_weapon_set: WeaponSet = WeaponSet.UNKNOWN


@dataclass(eq=False)
class TeamChangeEvent(AgentEvent):
    team_id: int = 0


@dataclass(eq=False)
class TargetableChangeEvent(AgentEvent):
    targetable: bool = False


@dataclass(eq=False)
class AttackTargetEvent(AgentEvent):
    """Links an attack target gadget (source) to its parent agent address."""

    parent_address: int = 0
    targetable: bool = False


@dataclass(eq=False)
class PositionChangeEvent(AgentEvent):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(eq=False)
class VelocityChangeEvent(AgentEvent):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(eq=False)
class FacingChangeEvent(AgentEvent):
    x: float = 0.0
    y: float = 0.0


@dataclass(eq=False)
class GuildEvent(AgentEvent):
    """Guild membership of a player, the guid is kept as raw bytes."""

    guild_guid: bytes = b""


@dataclass(eq=False)
class AgentTagEvent(AgentEvent):
    tag_id: int = 0


@dataclass(eq=False)
class BreakbarStateEvent(AgentEvent):
    state: int = 0


@dataclass(eq=False)
class BreakbarPercentEvent(AgentEvent):
    fraction: float = 0.0


@dataclass(eq=False)
class PointOfViewEvent(AgentEvent):
    """Identifies the agent that recorded the log."""


# Log level state changes


@dataclass(eq=False)
class LogStartEvent(Event):
    server_time: int = 0
    local_time: int = 0


@dataclass(eq=False)
class LogEndEvent(Event):
    server_time: int = 0
    local_time: int = 0


@dataclass(eq=False)
class LanguageEvent(Event):
    language_id: int = 0


@dataclass(eq=False)
class GameBuildEvent(Event):
    build: int = 0


@dataclass(eq=False)
class GameShardEvent(Event):
    shard_id: int = 0


@dataclass(eq=False)
class MapIdEvent(Event):
    map_id: int = 0


@dataclass(eq=False)
class RewardEvent(Event):
    """Reward chest granted to the recording player."""

    reward_id: int = 0
    reward_type: int = 0


@dataclass(eq=False)
class UnknownStateChangeEvent(Event):
    """A known state change id this model does not interpret."""

    state_change: int = 0


# Skill casts


@dataclass(eq=False)
class SkillCastEvent(Event):
    skill: Optional[Skill] = None


@dataclass(eq=False)
class SkillCastStartEvent(SkillCastEvent):
    expected_duration: int = 0
    quickness: bool = False


@dataclass(eq=False)
class SkillCastEndEvent(SkillCastEvent):
    end_type: SkillCastEndType = SkillCastEndType.FIRE
    duration: int = 0


# Buffs, the target is always the agent the buff is on


@dataclass(eq=False)
class BuffEvent(Event):
    skill: Optional[Skill] = None


@dataclass(eq=False)
class BuffApplyEvent(BuffEvent):
    duration: int = 0
    overstack: int = 0
    is_offcycle: bool = False


@dataclass(eq=False)
class InitialBuffEvent(BuffApplyEvent):
    """Buff that was already active when the log started."""


@dataclass(eq=False)
class BuffRemoveEvent(BuffEvent):
    remaining_duration: int = 0
    remaining_intensity: int = 0


@dataclass(eq=False)
class AllStacksRemovedEvent(BuffRemoveEvent):
    stacks_removed: int = 0


@dataclass(eq=False)
class SingleStackRemovedEvent(BuffRemoveEvent):
    pass


@dataclass(eq=False)
class ManualStackRemovedEvent(BuffRemoveEvent):
    pass


# Damage


@dataclass(eq=False)
class DamageEvent(Event):
    skill: Optional[Skill] = None
    damage: int = 0
    is_moving: bool = False
    is_flanking: bool = False
    source_above_ninety: bool = False
    target_below_fifty: bool = False


@dataclass(eq=False)
class PhysicalDamageEvent(DamageEvent):
    hit_result: HitResult = HitResult.NORMAL
    shield_damage: int = 0


@dataclass(eq=False)
class IgnoredPhysicalDamageEvent(DamageEvent):
    """A hit that was blocked, evaded, absorbed or otherwise negated."""

    hit_result: HitResult = HitResult.UNKNOWN


@dataclass(eq=False)
class BuffDamageEvent(DamageEvent):
    """Condition damage tick."""

    is_offcycle: bool = False


@dataclass(eq=False)
class IgnoredBuffDamageEvent(DamageEvent):
    """A condition tick negated by invulnerability or similar."""

    reason: int = 0


class EventFactory:
    """Factory for creating typed event objects from raw records."""

    # State changes whose src_agent field is an agent address
    _SOURCE_AGENT_STATE_CHANGES = frozenset(
        {
            StateChange.ENTER_COMBAT,
            StateChange.EXIT_COMBAT,
            StateChange.CHANGE_UP,
            StateChange.CHANGE_DEAD,
            StateChange.CHANGE_DOWN,
            StateChange.SPAWN,
            StateChange.DESPAWN,
            StateChange.HEALTH_UPDATE,
            StateChange.WEAPON_SWAP,
            StateChange.MAX_HEALTH_UPDATE,
            StateChange.POINT_OF_VIEW,
            StateChange.BUFF_INITIAL,
            StateChange.POSITION,
            StateChange.VELOCITY,
            StateChange.FACING,
            StateChange.TEAM_CHANGE,
            StateChange.ATTACK_TARGET,
            StateChange.TARGETABLE,
            StateChange.GUILD,
            StateChange.BREAKBAR_STATE,
            StateChange.BREAKBAR_PERCENT,
            StateChange.TAG,
        }
    )

    _AGENT_STATE_CHANGE_CLASSES: Dict[StateChange, Type[AgentEvent]] = {
        StateChange.EXIT_COMBAT: ExitCombatEvent,
        StateChange.CHANGE_UP: AgentRevivedEvent,
        StateChange.CHANGE_DEAD: AgentDeadEvent,
        StateChange.CHANGE_DOWN: AgentDownedEvent,
        StateChange.SPAWN: AgentSpawnEvent,
        StateChange.DESPAWN: AgentDespawnEvent,
        StateChange.POINT_OF_VIEW: PointOfViewEvent,
    }

    _BUFF_REMOVE_CLASSES: Dict[BuffRemove, Type[BuffRemoveEvent]] = {
        BuffRemove.ALL: AllStacksRemovedEvent,
        BuffRemove.SINGLE: SingleStackRemovedEvent,
        BuffRemove.MANUAL: ManualStackRemovedEvent,
    }

    @classmethod
    def references_source(cls, raw: RawEvent) -> bool:
        """Check if the src_agent/src_instid fields of a record name an agent."""
        if raw.kind == RawEventKind.STATE_CHANGE:
            return raw.is_statechange in cls._SOURCE_AGENT_STATE_CHANGES
        return True

    @staticmethod
    def references_target(raw: RawEvent) -> bool:
        """Check if the dst_agent/dst_instid fields of a record name an agent."""
        return raw.kind in (
            RawEventKind.BUFF_APPLY,
            RawEventKind.BUFF_REMOVE,
            RawEventKind.BUFF_DAMAGE,
            RawEventKind.PHYSICAL_DAMAGE,
        ) or (raw.kind == RawEventKind.STATE_CHANGE and raw.is_statechange == StateChange.BUFF_INITIAL)

    @staticmethod
    def references_skill(raw: RawEvent) -> bool:
        """Check if the skill_id field of a record names a skill."""
        if raw.kind == RawEventKind.STATE_CHANGE:
            return raw.is_statechange == StateChange.BUFF_INITIAL
        return True

    @classmethod
    def create_event(
        cls,
        raw: RawEvent,
        time: int,
        src: Optional[Agent],
        dst: Optional[Agent],
        skill: Optional[Skill],
        uncertain_resolution: bool = False,
        time_clamped: bool = False,
        keep_raw: bool = False,
    ) -> Event:
        """
        Create a typed event from a raw record and its resolved references.

        Args:
            raw: Decoded record
            time: Event time after clamping
            src: Agent resolved from the src fields
            dst: Agent resolved from the dst fields
            skill: Skill resolved from skill_id
            uncertain_resolution: Whether any agent came from a fallback
            time_clamped: Whether the time was raised to keep order
            keep_raw: Attach the raw record to the event

        Returns:
            Appropriate event object
        """
        common = {
            "time": time,
            "uncertain_resolution": uncertain_resolution,
            "time_clamped": time_clamped,
            "raw": raw if keep_raw else None,
        }

        if raw.kind == RawEventKind.STATE_CHANGE:
            return cls._create_state_change(raw, src, dst, skill, common)
        if raw.kind == RawEventKind.ACTIVATION:
            return cls._create_skill_cast(raw, src, skill, common)
        if raw.kind == RawEventKind.BUFF_REMOVE:
            return cls._create_buff_remove(raw, src, dst, skill, common)
        if raw.kind == RawEventKind.BUFF_APPLY:
            return BuffApplyEvent(
                source=src,
                target=dst,
                skill=skill,
                duration=raw.value,
                overstack=raw.overstack_value,
                is_offcycle=bool(raw.is_offcycle),
                **common,
            )
        if raw.kind == RawEventKind.BUFF_DAMAGE:
            return cls._create_buff_damage(raw, src, dst, skill, common)
        return cls._create_physical_damage(raw, src, dst, skill, common)

    @classmethod
    def _create_state_change(cls, raw, src, dst, skill, common) -> Event:
        """Create a state change event."""
        state_change = StateChange(raw.is_statechange)

        simple_class = cls._AGENT_STATE_CHANGE_CLASSES.get(state_change)
        if simple_class is not None:
            return simple_class(source=src, **common)

        if state_change == StateChange.ENTER_COMBAT:
            return EnterCombatEvent(source=src, subgroup=raw.dst_agent, **common)
        if state_change == StateChange.HEALTH_UPDATE:
            return AgentHealthUpdateEvent(source=src, health_fraction=raw.dst_agent / 10000.0, **common)
        if state_change == StateChange.MAX_HEALTH_UPDATE:
            return AgentMaxHealthUpdateEvent(source=src, max_health=raw.dst_agent, **common)
        if state_change == StateChange.WEAPON_SWAP:
            return AgentWeaponSwapEvent(source=src, new_weapon_set=get_weapon_set(raw.dst_agent), **common)
        if state_change == StateChange.TEAM_CHANGE:
            return TeamChangeEvent(source=src, team_id=raw.dst_agent, **common)
        if state_change == StateChange.TARGETABLE:
            return TargetableChangeEvent(source=src, targetable=raw.dst_agent != 0, **common)
        if state_change == StateChange.ATTACK_TARGET:
            return AttackTargetEvent(
                source=src, parent_address=raw.dst_agent, targetable=raw.value != 0, **common
            )
        if state_change in (StateChange.POSITION, StateChange.VELOCITY):
            x, y = cls._unpack_floats(raw.dst_agent)
            z = cls._int_to_float(raw.value)
            event_class = PositionChangeEvent if state_change == StateChange.POSITION else VelocityChangeEvent
            return event_class(source=src, x=x, y=y, z=z, **common)
        if state_change == StateChange.FACING:
            x, y = cls._unpack_floats(raw.dst_agent)
            return FacingChangeEvent(source=src, x=x, y=y, **common)
        if state_change == StateChange.GUILD:
            guid = struct.pack("<QQ", raw.dst_agent, (raw.value & 0xFFFFFFFF) | ((raw.buff_dmg & 0xFFFFFFFF) << 32))
            return GuildEvent(source=src, guild_guid=guid, **common)
        if state_change == StateChange.TAG:
            return AgentTagEvent(source=src, tag_id=raw.value, **common)
        if state_change == StateChange.BREAKBAR_STATE:
            return BreakbarStateEvent(source=src, state=raw.value, **common)
        if state_change == StateChange.BREAKBAR_PERCENT:
            return BreakbarPercentEvent(source=src, fraction=cls._int_to_float(raw.value), **common)
        if state_change == StateChange.BUFF_INITIAL:
            return InitialBuffEvent(
                source=src,
                target=dst,
                skill=skill,
                duration=raw.value,
                overstack=raw.overstack_value,
                **common,
            )

        # State changes whose src_agent carries a plain value
        if state_change == StateChange.LOG_START:
            return LogStartEvent(server_time=raw.value & 0xFFFFFFFF, local_time=raw.buff_dmg & 0xFFFFFFFF, **common)
        if state_change == StateChange.LOG_END:
            return LogEndEvent(server_time=raw.value & 0xFFFFFFFF, local_time=raw.buff_dmg & 0xFFFFFFFF, **common)
        if state_change == StateChange.LANGUAGE:
            return LanguageEvent(language_id=raw.src_agent, **common)
        if state_change == StateChange.GW_BUILD:
            return GameBuildEvent(build=raw.src_agent, **common)
        if state_change == StateChange.SHARD_ID:
            return GameShardEvent(shard_id=raw.src_agent, **common)
        if state_change == StateChange.MAP_ID:
            return MapIdEvent(map_id=raw.src_agent, **common)
        if state_change == StateChange.REWARD:
            return RewardEvent(reward_id=raw.dst_agent, reward_type=raw.value, **common)

        return UnknownStateChangeEvent(source=src, state_change=int(state_change), **common)

    @staticmethod
    def _create_skill_cast(raw, src, skill, common) -> SkillCastEvent:
        """Create a skill cast start or end event."""
        activation = Activation(raw.is_activation)
        if activation in (Activation.NORMAL, Activation.QUICKNESS):
            return SkillCastStartEvent(
                source=src,
                skill=skill,
                expected_duration=raw.value,
                quickness=activation == Activation.QUICKNESS,
                **common,
            )

        end_types = {
            Activation.CANCEL_FIRE: SkillCastEndType.FIRE,
            Activation.CANCEL_CANCEL: SkillCastEndType.CANCEL,
            Activation.RESET: SkillCastEndType.RESET,
        }
        return SkillCastEndEvent(source=src, skill=skill, end_type=end_types[activation], duration=raw.value, **common)

    @classmethod
    def _create_buff_remove(cls, raw, src, dst, skill, common) -> BuffRemoveEvent:
        """
        Create a buff removal event.

        In removal records the src fields name the agent losing the buff and
        the dst fields name the remover, so they are swapped here.
        """
        event_class = cls._BUFF_REMOVE_CLASSES[BuffRemove(raw.is_buffremove)]
        payload = {
            "source": dst,
            "target": src,
            "skill": skill,
            "remaining_duration": raw.value,
            "remaining_intensity": raw.buff_dmg,
        }
        if event_class is AllStacksRemovedEvent:
            payload["stacks_removed"] = raw.result
        return event_class(**payload, **common)

    @staticmethod
    def _create_buff_damage(raw, src, dst, skill, common) -> DamageEvent:
        """Create a condition damage event."""
        flags = {
            "is_moving": bool(raw.is_moving),
            "is_flanking": bool(raw.is_flanking),
            "source_above_ninety": bool(raw.is_ninety),
            "target_below_fifty": bool(raw.is_fifty),
        }
        if raw.result != 0:
            return IgnoredBuffDamageEvent(
                source=src, target=dst, skill=skill, damage=raw.buff_dmg, reason=raw.result, **flags, **common
            )
        return BuffDamageEvent(
            source=src,
            target=dst,
            skill=skill,
            damage=raw.buff_dmg,
            is_offcycle=bool(raw.is_offcycle),
            **flags,
            **common,
        )

    @staticmethod
    def _create_physical_damage(raw, src, dst, skill, common) -> DamageEvent:
        """Create a direct damage event."""
        hit_result = HitResult.from_raw(raw.result)
        flags = {
            "is_moving": bool(raw.is_moving),
            "is_flanking": bool(raw.is_flanking),
            "source_above_ninety": bool(raw.is_ninety),
            "target_below_fifty": bool(raw.is_fifty),
        }
        if hit_result in IGNORED_HIT_RESULTS:
            return IgnoredPhysicalDamageEvent(
                source=src, target=dst, skill=skill, damage=raw.value, hit_result=hit_result, **flags, **common
            )
        return PhysicalDamageEvent(
            source=src,
            target=dst,
            skill=skill,
            damage=raw.value,
            hit_result=hit_result,
            shield_damage=raw.overstack_value,
            **flags,
            **common,
        )

    @staticmethod
    def _unpack_floats(packed: int):
        """Reinterpret a 64-bit field as two little endian floats."""
        return struct.unpack("<ff", struct.pack("<Q", packed & 0xFFFFFFFFFFFFFFFF))

    @staticmethod
    def _int_to_float(value: int) -> float:
        """Reinterpret a 32-bit signed field as a float."""
        return struct.unpack("<f", struct.pack("<i", value))[0]
