"""
Tests for buff interval reconstruction.
"""

import pytest

from evtc_analytics.models.agents import Agent, AgentKind
from evtc_analytics.models.skills import Skill, SkillCategory
from evtc_analytics.parser.events import (
    AllStacksRemovedEvent,
    BuffApplyEvent,
    ManualStackRemovedEvent,
    SingleStackRemovedEvent,
)
from evtc_analytics.statistics.buffs import coalesce, collect_buff_intervals, overlap_length

MIGHT = Skill(skill_id=740, name="Might", category=SkillCategory.BUFF)
FURY = Skill(skill_id=725, name="Fury", category=SkillCategory.BUFF)


@pytest.fixture
def player():
    return Agent(agent_id=0, address=0x1001, name="Aria", kind=AgentKind.PLAYER)


def _apply(time, target, duration, skill=MIGHT):
    return BuffApplyEvent(time=time, target=target, skill=skill, duration=duration)


class TestCoalesce:
    """Merging of intervals."""

    def test_overlapping(self):
        assert coalesce([(50, 150), (0, 100)]) == [(0, 150)]

    def test_touching(self):
        assert coalesce([(0, 100), (100, 200)]) == [(0, 200)]

    def test_disjoint(self):
        assert coalesce([(300, 400), (0, 100)]) == [(0, 100), (300, 400)]

    def test_empty_intervals_dropped(self):
        assert coalesce([(100, 100), (200, 150)]) == []

    def test_overlap_length(self):
        intervals = [(0, 100), (300, 400)]
        assert overlap_length(intervals, 0, 1000) == 200
        assert overlap_length(intervals, 50, 350) == 100
        assert overlap_length(intervals, 100, 300) == 0


class TestBuffIntervals:
    """Intervals built from buff events."""

    def test_overlapping_applications_counted_once(self, player):
        events = [_apply(0, player, 100), _apply(50, player, 100)]
        intervals = collect_buff_intervals(events, {740}, log_end=1000)

        assert intervals == {(0, 740): [(0, 150)]}
        assert overlap_length(intervals[(0, 740)], 0, 1000) == 150

    def test_remove_all(self, player):
        events = [
            _apply(0, player, 100),
            _apply(50, player, 100),
            AllStacksRemovedEvent(time=80, target=player, skill=MIGHT),
        ]
        assert collect_buff_intervals(events, {740}, 1000) == {(0, 740): [(0, 80)]}

    def test_single_removal_ends_first_expiring_stack(self, player):
        events = [
            _apply(0, player, 100),
            _apply(0, player, 300),
            SingleStackRemovedEvent(time=50, target=player, skill=MIGHT),
        ]
        assert collect_buff_intervals(events, {740}, 1000) == {(0, 740): [(0, 300)]}

    def test_manual_removal(self, player):
        events = [
            _apply(0, player, 100),
            ManualStackRemovedEvent(time=40, target=player, skill=MIGHT),
        ]
        assert collect_buff_intervals(events, {740}, 1000) == {(0, 740): [(0, 40)]}

    def test_clipped_to_log_end(self, player):
        events = [_apply(900, player, 500)]
        assert collect_buff_intervals(events, {740}, 1000) == {(0, 740): [(900, 1000)]}

    def test_untracked_buffs_ignored(self, player):
        events = [_apply(0, player, 100, skill=FURY)]
        assert collect_buff_intervals(events, {740}, 1000) == {}

    def test_zero_duration_ignored(self, player):
        events = [_apply(0, player, 0)]
        assert collect_buff_intervals(events, {740}, 1000) == {}

    def test_buffs_kept_per_agent(self, player):
        other = Agent(agent_id=1, address=0x1002, name="Bruno", kind=AgentKind.PLAYER)
        events = [_apply(0, player, 100), _apply(200, other, 100)]

        intervals = collect_buff_intervals(events, {740}, 1000)
        assert intervals[(0, 740)] == [(0, 100)]
        assert intervals[(1, 740)] == [(200, 300)]
