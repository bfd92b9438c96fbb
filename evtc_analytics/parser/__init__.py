"""
EVTC log parsing: binary decoding, typed events and model building.
"""

from .decoder import EVTCDecoder, RawAgent, RawEvent, RawHeader, RawLog, RawSkill
from .schemas import Activation, BuffRemove, EVTCLayout, RawEventKind, StateChange
from .events import Event, EventFactory, HitResult, SkillCastEndType
from .agent_resolution import AgentResolver, LastHolderAgentResolver, StrictAgentResolver
from .parser import LogProcessor

__all__ = [
    "EVTCDecoder",
    "RawAgent",
    "RawEvent",
    "RawHeader",
    "RawLog",
    "RawSkill",
    "Activation",
    "BuffRemove",
    "EVTCLayout",
    "RawEventKind",
    "StateChange",
    "Event",
    "EventFactory",
    "HitResult",
    "SkillCastEndType",
    "AgentResolver",
    "LastHolderAgentResolver",
    "StrictAgentResolver",
    "LogProcessor",
]
