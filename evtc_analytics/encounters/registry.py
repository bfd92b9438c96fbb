"""
Encounter signatures and identification.

Identification matches the NPCs present in a log against known encounter
signatures. It never fails: logs matching no signature are classified as
an unknown encounter named after their primary target.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..config.gw2_data import DETERMINED_BUFF_ID, SpeciesId
from ..config.settings import ParserSettings
from ..models.agents import Agent
from ..models.log import Log
from ..models.phases import Phase
from .names import AgentEncounterNameProvider, ConstantEncounterNameProvider, EncounterNameProvider
from .phases import (
    AgentSpawnPhaseSplitter,
    BuffPhaseSplitter,
    HealthThresholdPhaseSplitter,
    PhaseSplitter,
    SinglePhaseSplitter,
)
from .results import (
    AgentDeadDeterminer,
    AgentKilledDeterminer,
    AllCombinedResultDeterminer,
    AnyCombinedResultDeterminer,
    ConstantResultDeterminer,
    EncounterResult,
    FirstApplicableResultDeterminer,
    HealthThresholdDeterminer,
    ResultDeterminer,
    RewardDeterminer,
)

logger = logging.getLogger(__name__)

UNKNOWN_ENCOUNTER_NAME = "Unknown encounter"

# Factories receive the log and the matched targets in signature order
DeterminerFactory = Callable[[Log, List[Agent]], ResultDeterminer]
PhaseSplitterFactory = Callable[[Log, List[Agent]], PhaseSplitter]


def _killed_or_rewarded(log: Log, targets: List[Agent]) -> ResultDeterminer:
    return AnyCombinedResultDeterminer(RewardDeterminer(), *(AgentKilledDeterminer(t) for t in targets))


def _single_phase(log: Log, targets: List[Agent]) -> PhaseSplitter:
    return SinglePhaseSplitter()


def _health_phases(*thresholds: float, names: Optional[Sequence[str]] = None) -> PhaseSplitterFactory:
    def factory(log: Log, targets: List[Agent]) -> PhaseSplitter:
        return HealthThresholdPhaseSplitter(targets[0], thresholds, names)

    return factory


@dataclass(frozen=True)
class EncounterSignature:
    """Known encounter, recognized by the species of its targets."""

    name: str
    target_species: Tuple[int, ...]
    header_species: Tuple[int, ...] = ()
    determiner_factory: DeterminerFactory = _killed_or_rewarded
    phase_splitter_factory: PhaseSplitterFactory = _single_phase

    def find_targets(self, log: Log) -> Optional[List[Agent]]:
        """Get the first NPC of every target species, None if any is missing."""
        targets = []
        for species_id in self.target_species:
            candidates = log.find_npcs(species_id)
            if not candidates:
                return None
            targets.append(candidates[0])
        return targets

    def matches_header(self, species_id: int) -> bool:
        return species_id in (self.header_species or self.target_species)


@dataclass(frozen=True)
class EncounterInfo:
    """Identified encounter with its result and phases."""

    name: str
    result: EncounterResult
    phases: Tuple[Phase, ...]
    targets: Tuple[Agent, ...] = ()
    signature: Optional[EncounterSignature] = field(default=None, repr=False)

    @property
    def is_known(self) -> bool:
        return self.signature is not None

    @property
    def fight_time_ms(self) -> int:
        return sum(phase.duration for phase in self.phases)


def _xera_determiner(log: Log, targets: List[Agent]) -> ResultDeterminer:
    second_phase = log.find_npcs(SpeciesId.XERA_SECOND_PHASE)
    if second_phase:
        return AnyCombinedResultDeterminer(RewardDeterminer(), AgentKilledDeterminer(second_phase[0]))
    return RewardDeterminer()


def _deimos_determiner(log: Log, targets: List[Agent]) -> ResultDeterminer:
    # Deimos despawns at 10% whether or not the fight is won
    return FirstApplicableResultDeterminer(
        RewardDeterminer(absent=EncounterResult.UNKNOWN),
        HealthThresholdDeterminer(targets[0], 0.1),
    )


def _twin_largos_determiner(log: Log, targets: List[Agent]) -> ResultDeterminer:
    return AnyCombinedResultDeterminer(
        RewardDeterminer(),
        AllCombinedResultDeterminer(*(AgentDeadDeterminer(t) for t in targets)),
    )


def _golem_determiner(log: Log, targets: List[Agent]) -> ResultDeterminer:
    return AnyCombinedResultDeterminer(
        AgentDeadDeterminer(targets[0]),
        HealthThresholdDeterminer(targets[0], 0.01, above=EncounterResult.FAILURE),
    )


def _samarog_phases(log: Log, targets: List[Agent]) -> PhaseSplitter:
    return BuffPhaseSplitter(
        targets[0], DETERMINED_BUFF_ID, ["Phase 1", "Split 1", "Phase 2", "Split 2", "Phase 3"]
    )


def _xera_phases(log: Log, targets: List[Agent]) -> PhaseSplitter:
    return AgentSpawnPhaseSplitter([SpeciesId.XERA_SECOND_PHASE], ["Phase 1", "Phase 2"])


DEFAULT_ENCOUNTERS: Tuple[EncounterSignature, ...] = (
    # Spirit Vale
    EncounterSignature(
        "Vale Guardian",
        (SpeciesId.VALE_GUARDIAN,),
        phase_splitter_factory=_health_phases(0.66, 0.33),
    ),
    EncounterSignature(
        "Gorseval the Multifarious",
        (SpeciesId.GORSEVAL,),
        phase_splitter_factory=_health_phases(0.66, 0.33),
    ),
    EncounterSignature(
        "Sabetha the Saboteur",
        (SpeciesId.SABETHA,),
        phase_splitter_factory=_health_phases(0.75, 0.5, 0.25),
    ),
    # Salvation Pass
    EncounterSignature(
        "Slothasor",
        (SpeciesId.SLOTHASOR,),
        phase_splitter_factory=_health_phases(0.8, 0.6, 0.4, 0.2, 0.1),
    ),
    EncounterSignature(
        "Matthias Gabrel",
        (SpeciesId.MATTHIAS,),
        phase_splitter_factory=_health_phases(0.8, 0.6),
    ),
    # Stronghold of the Faithful
    EncounterSignature(
        "Keep Construct",
        (SpeciesId.KEEP_CONSTRUCT,),
        phase_splitter_factory=_health_phases(0.66, 0.33),
    ),
    EncounterSignature(
        "Xera",
        (SpeciesId.XERA,),
        header_species=(SpeciesId.XERA, SpeciesId.XERA_SECOND_PHASE),
        determiner_factory=_xera_determiner,
        phase_splitter_factory=_xera_phases,
    ),
    # Bastion of the Penitent
    EncounterSignature("Cairn the Indomitable", (SpeciesId.CAIRN,)),
    EncounterSignature(
        "Mursaat Overseer",
        (SpeciesId.MURSAAT_OVERSEER,),
        phase_splitter_factory=_health_phases(0.75, 0.5, 0.25),
    ),
    EncounterSignature("Samarog", (SpeciesId.SAMAROG,), phase_splitter_factory=_samarog_phases),
    EncounterSignature(
        "Deimos",
        (SpeciesId.DEIMOS,),
        determiner_factory=_deimos_determiner,
        phase_splitter_factory=_health_phases(0.1, names=["Main fight", "Last 10%"]),
    ),
    # Hall of Chains
    EncounterSignature("Soulless Horror", (SpeciesId.SOULLESS_HORROR,)),
    EncounterSignature(
        "Dhuum",
        (SpeciesId.DHUUM,),
        phase_splitter_factory=_health_phases(0.1, names=["Main fight", "Ritual"]),
    ),
    # Mythwright Gambit
    EncounterSignature(
        "Conjured Amalgamate",
        (SpeciesId.CONJURED_AMALGAMATE,),
        determiner_factory=lambda log, targets: RewardDeterminer(),
    ),
    EncounterSignature(
        "Twin Largos",
        (SpeciesId.NIKARE, SpeciesId.KENUT),
        determiner_factory=_twin_largos_determiner,
    ),
    EncounterSignature(
        "Qadim",
        (SpeciesId.QADIM,),
        phase_splitter_factory=_health_phases(0.66, 0.33),
    ),
    # Special Forces Training Area
    EncounterSignature("Standard Kitty Golem", (SpeciesId.STANDARD_KITTY_GOLEM,), determiner_factory=_golem_determiner),
    EncounterSignature("Medium Kitty Golem", (SpeciesId.MEDIUM_KITTY_GOLEM,), determiner_factory=_golem_determiner),
    EncounterSignature("Large Kitty Golem", (SpeciesId.LARGE_KITTY_GOLEM,), determiner_factory=_golem_determiner),
)


def identify_encounter(
    log: Log, encounters: Sequence[EncounterSignature] = DEFAULT_ENCOUNTERS
) -> Tuple[Optional[EncounterSignature], List[Agent]]:
    """
    Find the signature matching a log.

    Signatures whose header species matches the log header are preferred,
    then any signature whose targets are all present.

    Returns:
        Tuple of (signature or None, matched targets)
    """
    species_hint = log.metadata.encounter_species_id
    matches = []
    for signature in encounters:
        targets = signature.find_targets(log)
        if targets is not None:
            matches.append((signature, targets))

    for signature, targets in matches:
        if signature.matches_header(species_hint):
            return signature, targets
    if matches:
        return matches[0]
    return None, []


def find_primary_target(log: Log) -> Optional[Agent]:
    """Get the NPC matching the header species hint, else the first NPC."""
    npcs = log.npcs
    for npc in npcs:
        if npc.species_id == log.metadata.encounter_species_id:
            return npc
    return npcs[0] if npcs else None


def determine_encounter(
    log: Log,
    settings: Optional[ParserSettings] = None,
    encounters: Sequence[EncounterSignature] = DEFAULT_ENCOUNTERS,
) -> EncounterInfo:
    """
    Identify the encounter of a log and determine its result and phases.

    Args:
        log: Processed log
        settings: Settings providing encounter name overrides
        encounters: Known encounter signatures

    Returns:
        EncounterInfo, an unknown encounter with one phase if nothing matches
    """
    settings = settings or ParserSettings()
    signature, targets = identify_encounter(log, encounters)

    if signature is None:
        primary = find_primary_target(log)
        name_provider: EncounterNameProvider = (
            AgentEncounterNameProvider(primary) if primary is not None
            else ConstantEncounterNameProvider(UNKNOWN_ENCOUNTER_NAME)
        )
        name = name_provider.get_encounter_name(log) or UNKNOWN_ENCOUNTER_NAME
        if primary is not None and primary.species_id in settings.encounter_name_overrides:
            name = settings.encounter_name_overrides[primary.species_id]
        logger.info(f"No encounter signature matched, using '{name}'")
        return EncounterInfo(
            name=name,
            result=ConstantResultDeterminer(EncounterResult.UNKNOWN).evaluate(log.events),
            phases=tuple(SinglePhaseSplitter().split(log)),
            targets=(primary,) if primary is not None else (),
        )

    name = ConstantEncounterNameProvider(signature.name).get_encounter_name(log)
    override = settings.encounter_name_overrides.get(signature.target_species[0])
    if override:
        name = override

    result = signature.determiner_factory(log, targets).evaluate(log.events)
    phases = signature.phase_splitter_factory(log, targets).split(log)
    logger.info(f"Identified encounter '{name}': {result.value}, {len(phases)} phases")

    return EncounterInfo(
        name=name,
        result=result,
        phases=tuple(phases),
        targets=tuple(targets),
        signature=signature,
    )
