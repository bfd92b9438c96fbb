"""
Encounter result determiners.

A determiner is a pure function of the event sequence. Combinators hold
child determiners and merge their results; they never hold state across
evaluations, so one instance may be evaluated concurrently.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Collection, Optional, Sequence

from ..config.gw2_data import RAID_REWARD_TYPES
from ..exceptions import DeterminerConfigurationError
from ..models.agents import Agent
from ..parser.events import (
    AgentDeadEvent,
    AgentDespawnEvent,
    AgentHealthUpdateEvent,
    BuffApplyEvent,
    Event,
    ExitCombatEvent,
    RewardEvent,
)


class EncounterResult(Enum):
    """Outcome of an encounter."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


class ResultDeterminer(ABC):
    """Classifies the outcome of a fight from its events."""

    @abstractmethod
    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        """
        Determine the encounter result.

        Args:
            events: Events of the log in order

        Returns:
            EncounterResult, UNKNOWN when undecidable
        """


class ConstantResultDeterminer(ResultDeterminer):
    """Always returns the same result."""

    def __init__(self, result: EncounterResult):
        self.result = result

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        return self.result


class EventPresenceDeterminer(ResultDeterminer):
    """Returns one result if any event matches a predicate, another otherwise."""

    def __init__(
        self,
        predicate: Callable[[Event], bool],
        present: EncounterResult = EncounterResult.SUCCESS,
        absent: EncounterResult = EncounterResult.FAILURE,
    ):
        self.predicate = predicate
        self.present = present
        self.absent = absent

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        if any(self.predicate(event) for event in events):
            return self.present
        return self.absent


class AgentDeadDeterminer(EventPresenceDeterminer):
    """Success if the agent died."""

    def __init__(self, agent: Agent):
        self.agent = agent
        super().__init__(lambda event: isinstance(event, AgentDeadEvent) and event.source is agent)


class AgentKilledDeterminer(EventPresenceDeterminer):
    """Success if the agent died or despawned."""

    def __init__(self, agent: Agent):
        self.agent = agent
        super().__init__(
            lambda event: isinstance(event, (AgentDeadEvent, AgentDespawnEvent)) and event.source is agent
        )


class AgentExitCombatDeterminer(EventPresenceDeterminer):
    """
    Checks for the agent leaving combat.

    Some bosses leave combat when defeated, others only when the fight
    resets, so both results are configurable.
    """

    def __init__(
        self,
        agent: Agent,
        on_exit: EncounterResult = EncounterResult.SUCCESS,
        otherwise: EncounterResult = EncounterResult.FAILURE,
    ):
        self.agent = agent
        super().__init__(
            lambda event: isinstance(event, ExitCombatEvent) and event.source is agent,
            present=on_exit,
            absent=otherwise,
        )


class AgentBuffGainedDeterminer(EventPresenceDeterminer):
    """Success if the agent gained a specific buff."""

    def __init__(self, agent: Agent, buff_id: int):
        self.agent = agent
        self.buff_id = buff_id
        super().__init__(
            lambda event: isinstance(event, BuffApplyEvent)
            and event.target is agent
            and event.skill is not None
            and event.skill.skill_id == buff_id
        )


class RewardDeterminer(EventPresenceDeterminer):
    """Success if a reward of one of the given types was granted."""

    def __init__(
        self,
        reward_types: Collection[int] = RAID_REWARD_TYPES,
        absent: EncounterResult = EncounterResult.FAILURE,
    ):
        self.reward_types = frozenset(reward_types)
        super().__init__(
            lambda event: isinstance(event, RewardEvent) and event.reward_type in self.reward_types,
            absent=absent,
        )


class HealthThresholdDeterminer(ResultDeterminer):
    """
    Compares the last recorded health fraction of an agent to a cutoff.

    Returns UNKNOWN if the agent never had a health update.
    """

    def __init__(
        self,
        agent: Agent,
        threshold: float,
        below: EncounterResult = EncounterResult.SUCCESS,
        above: EncounterResult = EncounterResult.FAILURE,
    ):
        self.agent = agent
        self.threshold = threshold
        self.below = below
        self.above = above

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        last_fraction: Optional[float] = None
        for event in events:
            if isinstance(event, AgentHealthUpdateEvent) and event.source is self.agent:
                last_fraction = event.health_fraction

        if last_fraction is None:
            return EncounterResult.UNKNOWN
        return self.below if last_fraction < self.threshold else self.above


class _CombinedResultDeterminer(ResultDeterminer):
    """Base of determiners that merge the results of child determiners."""

    def __init__(self, *determiners: ResultDeterminer):
        if not determiners:
            raise DeterminerConfigurationError(f"{type(self).__name__} requires at least one determiner")
        self.determiners = tuple(determiners)


class AnyCombinedResultDeterminer(_CombinedResultDeterminer):
    """
    Success if any child succeeds.

    Otherwise UNKNOWN if any child is undecided, FAILURE only when every
    child failed.
    """

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        results = [determiner.evaluate(events) for determiner in self.determiners]
        if EncounterResult.SUCCESS in results:
            return EncounterResult.SUCCESS
        if EncounterResult.UNKNOWN in results:
            return EncounterResult.UNKNOWN
        return EncounterResult.FAILURE


class AllCombinedResultDeterminer(_CombinedResultDeterminer):
    """
    Success only if every child succeeds.

    FAILURE if any child failed, otherwise UNKNOWN.
    """

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        results = [determiner.evaluate(events) for determiner in self.determiners]
        if EncounterResult.FAILURE in results:
            return EncounterResult.FAILURE
        if all(result == EncounterResult.SUCCESS for result in results):
            return EncounterResult.SUCCESS
        return EncounterResult.UNKNOWN


class FirstApplicableResultDeterminer(_CombinedResultDeterminer):
    """Returns the first child result that is not UNKNOWN."""

    def evaluate(self, events: Sequence[Event]) -> EncounterResult:
        for determiner in self.determiners:
            result = determiner.evaluate(events)
            if result != EncounterResult.UNKNOWN:
                return result
        return EncounterResult.UNKNOWN
