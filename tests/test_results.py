"""
Tests for encounter result determiners and their combinators.
"""

import pytest

from evtc_analytics.encounters.results import (
    AgentBuffGainedDeterminer,
    AgentDeadDeterminer,
    AgentExitCombatDeterminer,
    AgentKilledDeterminer,
    AllCombinedResultDeterminer,
    AnyCombinedResultDeterminer,
    ConstantResultDeterminer,
    EncounterResult,
    FirstApplicableResultDeterminer,
    HealthThresholdDeterminer,
    RewardDeterminer,
)
from evtc_analytics.exceptions import DeterminerConfigurationError
from evtc_analytics.models.agents import Agent, AgentKind
from evtc_analytics.models.skills import Skill
from evtc_analytics.parser.events import (
    AgentDeadEvent,
    AgentDespawnEvent,
    AgentHealthUpdateEvent,
    BuffApplyEvent,
    ExitCombatEvent,
    RewardEvent,
)

S = EncounterResult.SUCCESS
F = EncounterResult.FAILURE
U = EncounterResult.UNKNOWN


def _constants(*results):
    return [ConstantResultDeterminer(result) for result in results]


@pytest.fixture
def boss():
    return Agent(agent_id=0, address=0x2001, name="Vale Guardian", kind=AgentKind.NPC, species_id=15438)


@pytest.fixture
def other():
    return Agent(agent_id=1, address=0x2002, name="Red Guardian", kind=AgentKind.NPC, species_id=15433)


class TestCombinators:
    """Truth tables of the combining determiners."""

    @pytest.mark.parametrize(
        "results, expected",
        [
            ((S,), S),
            ((F,), F),
            ((U,), U),
            ((F, S), S),
            ((U, S), S),
            ((F, U), U),
            ((F, F), F),
            ((U, U), U),
        ],
    )
    def test_any(self, results, expected):
        assert AnyCombinedResultDeterminer(*_constants(*results)).evaluate([]) == expected

    @pytest.mark.parametrize(
        "results, expected",
        [
            ((S,), S),
            ((F,), F),
            ((U,), U),
            ((S, S), S),
            ((S, F), F),
            ((U, F), F),
            ((S, U), U),
            ((U, U), U),
        ],
    )
    def test_all(self, results, expected):
        assert AllCombinedResultDeterminer(*_constants(*results)).evaluate([]) == expected

    @pytest.mark.parametrize(
        "results, expected",
        [
            ((S,), S),
            ((U, F, S), F),
            ((U, S, F), S),
            ((U, U), U),
        ],
    )
    def test_first_applicable(self, results, expected):
        assert FirstApplicableResultDeterminer(*_constants(*results)).evaluate([]) == expected

    @pytest.mark.parametrize(
        "combinator",
        [AnyCombinedResultDeterminer, AllCombinedResultDeterminer, FirstApplicableResultDeterminer],
    )
    def test_requires_children(self, combinator):
        with pytest.raises(DeterminerConfigurationError):
            combinator()

    def test_nested(self):
        determiner = AnyCombinedResultDeterminer(
            ConstantResultDeterminer(F),
            AllCombinedResultDeterminer(*_constants(S, S)),
        )
        assert determiner.evaluate([]) == S


class TestEventDeterminers:
    """Determiners looking at the event sequence."""

    def test_agent_dead(self, boss, other):
        events = [AgentDeadEvent(time=100, source=other)]
        assert AgentDeadDeterminer(boss).evaluate(events) == F
        assert AgentDeadDeterminer(other).evaluate(events) == S

    def test_agent_killed_includes_despawn(self, boss):
        events = [AgentDespawnEvent(time=100, source=boss)]
        assert AgentDeadDeterminer(boss).evaluate(events) == F
        assert AgentKilledDeterminer(boss).evaluate(events) == S

    def test_exit_combat(self, boss):
        events = [ExitCombatEvent(time=100, source=boss)]
        assert AgentExitCombatDeterminer(boss).evaluate(events) == S
        assert AgentExitCombatDeterminer(boss, on_exit=F, otherwise=U).evaluate(events) == F
        assert AgentExitCombatDeterminer(boss, on_exit=F, otherwise=U).evaluate([]) == U

    def test_buff_gained(self, boss):
        skill = Skill(skill_id=762, name="Determined")
        events = [BuffApplyEvent(time=100, target=boss, skill=skill, duration=1000)]
        assert AgentBuffGainedDeterminer(boss, 762).evaluate(events) == S
        assert AgentBuffGainedDeterminer(boss, 740).evaluate(events) == F

    def test_reward(self):
        events = [RewardEvent(time=100, reward_id=1, reward_type=55821)]
        assert RewardDeterminer().evaluate(events) == S
        assert RewardDeterminer().evaluate([]) == F
        assert RewardDeterminer(absent=U).evaluate([]) == U
        assert RewardDeterminer(reward_types=[1]).evaluate(events) == F

    def test_health_threshold(self, boss, other):
        events = [
            AgentHealthUpdateEvent(time=100, source=boss, health_fraction=0.5),
            AgentHealthUpdateEvent(time=200, source=other, health_fraction=0.01),
            AgentHealthUpdateEvent(time=300, source=boss, health_fraction=0.08),
        ]
        assert HealthThresholdDeterminer(boss, 0.1).evaluate(events) == S
        assert HealthThresholdDeterminer(boss, 0.05).evaluate(events) == F
        assert HealthThresholdDeterminer(boss, 0.1).evaluate([]) == U

    def test_evaluation_is_repeatable(self, boss):
        determiner = AnyCombinedResultDeterminer(RewardDeterminer(), AgentKilledDeterminer(boss))
        events = [AgentDeadEvent(time=100, source=boss)]
        assert determiner.evaluate(events) == determiner.evaluate(events) == S
