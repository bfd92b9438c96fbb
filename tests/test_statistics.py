"""
Tests for statistics aggregation.
"""

import json

import pytest

from evtc_analytics.config.settings import ParserSettings
from evtc_analytics.encounters.registry import determine_encounter
from evtc_analytics.parser.parser import LogProcessor
from evtc_analytics.statistics.aggregator import calculate_statistics
from evtc_analytics.statistics.models import BuffUptime, DamageData
from tests.evtc_builder import ARIA, ARIA_INSTID, MIGHT, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, EVTCBuilder


def _statistics(data, settings=None):
    log = LogProcessor(settings).process_bytes(data)
    return calculate_statistics(log, determine_encounter(log, settings), settings)


@pytest.fixture
def statistics(raid_log_bytes):
    return _statistics(raid_log_bytes)


class TestDamageData:
    """Derived damage rates."""

    def test_rates(self):
        data = DamageData(duration_ms=8000, physical_damage=3000, condition_damage=1000)
        assert data.total_damage == 4000
        assert data.dps == 500.0
        assert data.physical_dps == 375.0
        assert data.condition_dps == 125.0

    def test_zero_duration(self):
        assert DamageData(duration_ms=0, physical_damage=100).dps == 0.0

    def test_buff_uptime(self):
        uptime = BuffUptime(740, "Might", 2000, 8000).combine(BuffUptime(740, "Might", 0, 8000))
        assert uptime.uptime == 0.125


class TestFullFight:
    """Whole fight figures."""

    def test_summary(self, statistics):
        assert statistics.encounter_name == "Vale Guardian"
        assert statistics.fight_time_ms == 8000
        assert statistics.log_author == "Aria"
        assert statistics.log_version == "20240101"
        assert [player.name for player in statistics.player_data] == ["Aria", "Bruno"]

    def test_player_damage(self, statistics):
        aria = statistics.get_player(0)
        bruno = statistics.get_player(1)

        assert aria.damage.physical_damage == 3500
        assert aria.damage.condition_damage == 0
        assert bruno.damage.physical_damage == 700
        assert bruno.damage.condition_damage == 300

    def test_pet_damage_credited_to_master(self, statistics):
        # 500 of Aria's damage comes from her Spirit Wolf
        assert statistics.get_player(0).target_damage.total_damage == 3500
        assert 3 not in statistics.full_fight_squad_damage.player_damage

    def test_ignored_hits_not_counted(self, statistics):
        assert statistics.full_fight_squad_damage.damage.total_damage == 4500
        assert statistics.event_counts["IgnoredPhysicalDamageEvent"] == 1
        assert statistics.event_counts["PhysicalDamageEvent"] == 4

    def test_squad_dps(self, statistics):
        squad = statistics.full_fight_squad_damage
        assert squad.damage.dps == 562.5
        assert sum(data.total_damage for data in squad.player_damage.values()) == squad.damage.total_damage

    def test_target_damage(self, statistics):
        (target,) = statistics.full_fight_target_damage
        assert target.target_name == "Vale Guardian"
        assert target.squad_damage.damage.total_damage == 4500

    def test_counters(self, statistics):
        aria = statistics.get_player(0)
        assert aria.casts_started == 1
        assert aria.casts_cancelled == 0
        assert aria.downs == 0
        assert aria.deaths == 0

    def test_groups(self, statistics):
        groups = {group.subgroup: group for group in statistics.group_data}
        assert groups[1].player_ids == (0,)
        assert groups[1].damage.total_damage == 3500
        assert groups[2].damage.total_damage == 1000

    def test_damage_to_players_not_counted(self):
        b = EVTCBuilder()
        b.add_player(ARIA, "Aria", "Aria.1234")
        b.add_npc(VALE_GUARDIAN, 15438, "Vale Guardian")
        b.damage(1000, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 100)
        b.damage(2000, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, ARIA, ARIA_INSTID, 1001, 5000)

        statistics = _statistics(b.build())
        assert statistics.full_fight_squad_damage.damage.total_damage == 100


class TestPhaseStatistics:
    """Phase scoped figures."""

    def test_phase_squad_damage(self, statistics):
        totals = [stats.squad_target_damage.damage.total_damage for stats in statistics.phase_stats]
        assert totals == [1800, 2000, 700]
        assert sum(totals) == statistics.full_fight_squad_damage.damage.total_damage

    def test_phase_durations(self, statistics):
        durations = [stats.duration_ms for stats in statistics.phase_stats]
        assert durations == [3000, 2000, 3000]
        assert sum(durations) == statistics.fight_time_ms

    def test_player_phase_damage(self, statistics):
        aria = statistics.get_player(0)
        bruno = statistics.get_player(1)
        assert [data.total_damage for data in aria.phase_target_damage] == [1500, 2000, 0]
        assert [data.total_damage for data in bruno.phase_target_damage] == [300, 0, 700]

    def test_event_at_fight_end_in_last_phase(self):
        b = EVTCBuilder()
        b.add_player(ARIA, "Aria", "Aria.1234")
        b.add_npc(VALE_GUARDIAN, 4242, "Training Dummy")
        b.damage(1000, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 100)
        b.damage(3000, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 200)

        statistics = _statistics(b.build())
        (phase,) = statistics.phase_stats
        assert phase.squad_target_damage.damage.total_damage == 300


class TestBuffUptimes:
    """Boon uptimes."""

    def test_player_uptime(self, statistics):
        assert statistics.buff_data.player_uptimes[1][MIGHT].uptime == 0.25
        assert statistics.buff_data.player_uptimes[0][MIGHT].uptime == 0.0

    def test_phase_uptime(self, statistics):
        phase_uptimes = [uptimes[1][MIGHT].uptime for uptimes in statistics.buff_data.phase_player_uptimes]
        assert phase_uptimes == [pytest.approx(1 / 3), 0.5, 0.0]

    def test_group_uptime(self, statistics):
        assert statistics.buff_data.group_uptimes[2][MIGHT].uptime == 0.25

    def test_tracked_buffs_from_settings(self, raid_log_bytes):
        statistics = _statistics(raid_log_bytes, ParserSettings(tracked_buff_ids=frozenset({725})))
        assert statistics.buff_data.buff_ids == (725,)
        assert MIGHT not in statistics.buff_data.player_uptimes[1]


class TestSerialization:
    """Plain data output."""

    def test_to_dict_is_json_serializable(self, statistics):
        data = json.loads(json.dumps(statistics.to_dict()))

        assert data["encounter_name"] == "Vale Guardian"
        assert data["encounter_result"] == "success"
        assert data["squad_damage"]["total_damage"] == 4500
        assert len(data["phases"]) == 3
        assert data["players"][0]["elite_specialization"] == "FIREBRAND"
        assert data["buff_uptimes"]["1"][str(MIGHT)] == 0.25
