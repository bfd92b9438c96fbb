"""
Binary record layouts of the EVTC format.
"""

import struct
from enum import IntEnum
from typing import Tuple


class StateChange(IntEnum):
    """State change ids (the is_statechange byte)."""

    NONE = 0
    ENTER_COMBAT = 1
    EXIT_COMBAT = 2
    CHANGE_UP = 3
    CHANGE_DEAD = 4
    CHANGE_DOWN = 5
    SPAWN = 6
    DESPAWN = 7
    HEALTH_UPDATE = 8
    LOG_START = 9
    LOG_END = 10
    WEAPON_SWAP = 11
    MAX_HEALTH_UPDATE = 12
    POINT_OF_VIEW = 13
    LANGUAGE = 14
    GW_BUILD = 15
    SHARD_ID = 16
    REWARD = 17
    BUFF_INITIAL = 18
    POSITION = 19
    VELOCITY = 20
    FACING = 21
    TEAM_CHANGE = 22
    ATTACK_TARGET = 23
    TARGETABLE = 24
    MAP_ID = 25
    REPL_INFO = 26
    STACK_ACTIVE = 27
    STACK_RESET = 28
    GUILD = 29
    BUFF_INFO = 30
    BUFF_FORMULA = 31
    SKILL_INFO = 32
    SKILL_TIMING = 33
    BREAKBAR_STATE = 34
    BREAKBAR_PERCENT = 35
    ERROR = 36
    TAG = 37


class Activation(IntEnum):
    """Skill activation ids (the is_activation byte)."""

    NONE = 0
    NORMAL = 1
    QUICKNESS = 2
    CANCEL_FIRE = 3
    CANCEL_CANCEL = 4
    RESET = 5


class BuffRemove(IntEnum):
    """Buff removal ids (the is_buffremove byte)."""

    NONE = 0
    ALL = 1
    SINGLE = 2
    MANUAL = 3


class RawEventKind(IntEnum):
    """Discriminant of a raw event record, derived from its flag bytes."""

    STATE_CHANGE = 1
    ACTIVATION = 2
    BUFF_REMOVE = 3
    BUFF_APPLY = 4
    BUFF_DAMAGE = 5
    PHYSICAL_DAMAGE = 6


class EVTCLayout:
    """
    Defines the fixed byte layouts of every EVTC record kind.

    All values are little endian. Events are 64 bytes in both revisions,
    only the field arrangement differs.
    """

    MAGIC = b"EVTC"

    # magic, build date, revision, encounter species id, padding
    HEADER = struct.Struct("<4s8sBHx")

    COUNT = struct.Struct("<I")

    # address, profession, is_elite, toughness, concentration, healing,
    # hitbox width, condition, hitbox height, name
    AGENT = struct.Struct("<QIIhhhHhH64s4x")

    # id, name
    SKILL = struct.Struct("<i64s")

    # time, src_agent, dst_agent, value, buff_dmg, overstack_value, skill_id,
    # src_instid, dst_instid, src_master_instid, 9 bytes of unused offsets,
    # iff, buff, result, is_activation, is_buffremove, is_ninety, is_fifty,
    # is_moving, is_statechange, is_flanking, is_shields, is_offcycle, pad
    EVENT_REVISION_0 = struct.Struct("<QQQiiHHHHH9xBBBBBBBBBBBBx")

    # time, src_agent, dst_agent, value, buff_dmg, overstack_value, skill_id,
    # src_instid, dst_instid, src_master_instid, dst_master_instid, iff, buff,
    # result, is_activation, is_buffremove, is_ninety, is_fifty, is_moving,
    # is_statechange, is_flanking, is_shields, is_offcycle, pad
    EVENT_REVISION_1 = struct.Struct("<QQQiiIIHHHHBBBBBBBBBBBBI")

    EVENT_SIZE = 64

    # Revisions this decoder knows the layout of
    KNOWN_REVISIONS: Tuple[int, ...] = (0, 1)

    @classmethod
    def event_struct(cls, revision: int) -> struct.Struct:
        """Get the event layout for a revision, newer revisions use the latest layout."""
        if revision == 0:
            return cls.EVENT_REVISION_0
        return cls.EVENT_REVISION_1

    @staticmethod
    def classify(is_statechange: int, is_activation: int, is_buffremove: int,
                 buff: int, value: int) -> RawEventKind:
        """
        Derive the record kind from the flag bytes.

        Args:
            is_statechange: State change byte
            is_activation: Activation byte
            is_buffremove: Buff removal byte
            buff: Buff flag byte
            value: Value field, distinguishes buff application from buff damage

        Returns:
            RawEventKind of the record
        """
        if is_statechange != StateChange.NONE:
            return RawEventKind.STATE_CHANGE
        if is_activation != Activation.NONE:
            return RawEventKind.ACTIVATION
        if is_buffremove != BuffRemove.NONE:
            return RawEventKind.BUFF_REMOVE
        if buff:
            return RawEventKind.BUFF_APPLY if value != 0 else RawEventKind.BUFF_DAMAGE
        return RawEventKind.PHYSICAL_DAMAGE

    @staticmethod
    def is_known_opcode(kind: RawEventKind, is_statechange: int, is_activation: int,
                        is_buffremove: int) -> bool:
        """Check whether the record's discriminant values are interpretable."""
        if kind == RawEventKind.STATE_CHANGE:
            return is_statechange <= max(StateChange)
        if kind == RawEventKind.ACTIVATION:
            return is_activation <= max(Activation)
        if kind == RawEventKind.BUFF_REMOVE:
            return is_buffremove <= max(BuffRemove)
        return True
