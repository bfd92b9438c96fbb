"""
Encounter identification, result determination and phase splitting.
"""

from .results import (
    EncounterResult,
    ResultDeterminer,
    ConstantResultDeterminer,
    EventPresenceDeterminer,
    AgentDeadDeterminer,
    AgentKilledDeterminer,
    AgentExitCombatDeterminer,
    AgentBuffGainedDeterminer,
    RewardDeterminer,
    HealthThresholdDeterminer,
    AnyCombinedResultDeterminer,
    AllCombinedResultDeterminer,
    FirstApplicableResultDeterminer,
)
from .names import EncounterNameProvider, ConstantEncounterNameProvider, AgentEncounterNameProvider
from .phases import (
    PhaseSplitter,
    SinglePhaseSplitter,
    HealthThresholdPhaseSplitter,
    AgentSpawnPhaseSplitter,
    BuffPhaseSplitter,
    build_phases,
)
from .registry import (
    DEFAULT_ENCOUNTERS,
    UNKNOWN_ENCOUNTER_NAME,
    EncounterInfo,
    EncounterSignature,
    determine_encounter,
    identify_encounter,
)

__all__ = [
    "EncounterResult",
    "ResultDeterminer",
    "ConstantResultDeterminer",
    "EventPresenceDeterminer",
    "AgentDeadDeterminer",
    "AgentKilledDeterminer",
    "AgentExitCombatDeterminer",
    "AgentBuffGainedDeterminer",
    "RewardDeterminer",
    "HealthThresholdDeterminer",
    "AnyCombinedResultDeterminer",
    "AllCombinedResultDeterminer",
    "FirstApplicableResultDeterminer",
    "EncounterNameProvider",
    "ConstantEncounterNameProvider",
    "AgentEncounterNameProvider",
    "PhaseSplitter",
    "SinglePhaseSplitter",
    "HealthThresholdPhaseSplitter",
    "AgentSpawnPhaseSplitter",
    "BuffPhaseSplitter",
    "build_phases",
    "DEFAULT_ENCOUNTERS",
    "UNKNOWN_ENCOUNTER_NAME",
    "EncounterInfo",
    "EncounterSignature",
    "determine_encounter",
    "identify_encounter",
]
