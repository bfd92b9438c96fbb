"""
Tests for the binary EVTC decoder.
"""

import io

import pytest

from evtc_analytics.exceptions import DecodeError
from evtc_analytics.parser.decoder import EVTCDecoder
from evtc_analytics.parser.schemas import EVTCLayout, RawEventKind, StateChange
from tests.evtc_builder import (
    ARIA,
    ARIA_INSTID,
    COUNT,
    HEADER,
    SKILL,
    VALE_GUARDIAN,
    VALE_GUARDIAN_INSTID,
    EVTCBuilder,
)


def _minimal_builder(revision=1):
    b = EVTCBuilder(revision=revision, species_id=15438)
    b.add_player(ARIA, "Aria", "Aria.1234")
    b.add_npc(VALE_GUARDIAN, 15438, "Vale Guardian")
    b.add_skill(1001, "Sword Strike")
    return b


class TestLayouts:
    """Record sizes of the binary format."""

    def test_record_sizes(self):
        assert EVTCLayout.HEADER.size == 16
        assert EVTCLayout.AGENT.size == 96
        assert EVTCLayout.SKILL.size == 68
        assert EVTCLayout.EVENT_REVISION_0.size == EVTCLayout.EVENT_SIZE
        assert EVTCLayout.EVENT_REVISION_1.size == EVTCLayout.EVENT_SIZE

    def test_classify(self):
        assert EVTCLayout.classify(4, 0, 0, 0, 0) == RawEventKind.STATE_CHANGE
        assert EVTCLayout.classify(0, 1, 0, 0, 0) == RawEventKind.ACTIVATION
        assert EVTCLayout.classify(0, 0, 1, 1, 0) == RawEventKind.BUFF_REMOVE
        assert EVTCLayout.classify(0, 0, 0, 1, 500) == RawEventKind.BUFF_APPLY
        assert EVTCLayout.classify(0, 0, 0, 1, 0) == RawEventKind.BUFF_DAMAGE
        assert EVTCLayout.classify(0, 0, 0, 0, 1200) == RawEventKind.PHYSICAL_DAMAGE


class TestEVTCDecoder:
    """Decoding of complete buffers."""

    def test_decode_raid_log(self, raid_log_bytes):
        raw_log = EVTCDecoder().decode(raid_log_bytes)

        assert raw_log.header.build_version == "20240101"
        assert raw_log.header.revision == 1
        assert raw_log.header.encounter_species_id == 15438
        assert not raw_log.header.forward_compatible

        assert len(raw_log.agents) == 4
        assert len(raw_log.skills) == 3
        assert len(raw_log.events) == 19
        assert raw_log.skipped_records == 0
        assert raw_log.truncated_tail_bytes == 0

    def test_agent_fields(self, raid_log_bytes):
        raw_log = EVTCDecoder().decode(raid_log_bytes)

        player = raw_log.agents[0]
        assert player.address == ARIA
        assert player.profession == 1
        assert player.is_elite == 62
        assert player.name == "Aria\x00:Aria.1234\x001"

        npc = raw_log.agents[2]
        assert npc.is_elite == 0xFFFFFFFF
        assert npc.profession == 15438
        assert npc.name == "Vale Guardian"

    def test_event_kinds(self, raid_log_bytes):
        events = EVTCDecoder().decode(raid_log_bytes).events

        assert events[0].kind == RawEventKind.STATE_CHANGE
        assert events[0].is_statechange == StateChange.LOG_START
        assert events[5].kind == RawEventKind.ACTIVATION
        assert events[7].kind == RawEventKind.PHYSICAL_DAMAGE
        assert events[7].value == 1000
        assert events[9].kind == RawEventKind.BUFF_DAMAGE
        assert events[9].buff_dmg == 300
        assert events[10].kind == RawEventKind.BUFF_APPLY
        assert events[10].value == 2000

    def test_events_keep_file_order(self, raid_log_bytes):
        events = EVTCDecoder().decode(raid_log_bytes).events
        assert [event.index for event in events] == list(range(len(events)))

    def test_decode_stream(self, raid_log_bytes):
        raw_log = EVTCDecoder().decode(io.BytesIO(raid_log_bytes))
        assert len(raw_log.events) == 19

    def test_revision_zero(self):
        b = _minimal_builder(revision=0)
        b.damage(100, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 250, src_master_instid=7)

        raw_log = EVTCDecoder().decode(b.build())

        assert raw_log.header.revision == 0
        event = raw_log.events[0]
        assert event.time == 100
        assert event.value == 250
        assert event.src_master_instid == 7
        assert event.dst_master_instid == 0

    def test_unknown_revision_is_forward_compatible(self):
        b = _minimal_builder(revision=7)
        b.damage(100, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 250)

        raw_log = EVTCDecoder().decode(b.build())

        assert raw_log.header.forward_compatible
        assert raw_log.events[0].value == 250

    def test_skill_name_ends_at_nul(self):
        data = bytearray(_minimal_builder().build())
        # Replace the only skill entry, which directly follows the skill count
        skill_offset = len(data) - SKILL.size
        data[skill_offset:] = SKILL.pack(1001, b"Sword Strike\x00garbage")

        raw_log = EVTCDecoder().decode(bytes(data))
        assert raw_log.skills[0].name == "Sword Strike"


class TestDecoderErrors:
    """Fatal and degraded decoding conditions."""

    def test_truncated_tail_is_fatal_by_default(self, raid_log_bytes):
        with pytest.raises(DecodeError) as exc_info:
            EVTCDecoder().decode(raid_log_bytes + b"\x00" * 10)
        assert "truncated" in exc_info.value.reason

    def test_truncated_tail_allowed(self, raid_log_bytes):
        raw_log = EVTCDecoder(allow_truncated_tail=True).decode(raid_log_bytes + b"\x00" * 10)

        assert len(raw_log.events) == 19
        assert raw_log.truncated_tail_bytes == 10

    def test_exact_record_boundary(self, raid_log_bytes):
        raw_log = EVTCDecoder().decode(raid_log_bytes)
        assert raw_log.truncated_tail_bytes == 0

    def test_unknown_state_change_skipped(self):
        b = _minimal_builder()
        b.damage(100, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 250)
        b.add_event(150, is_statechange=200)
        b.damage(200, ARIA, ARIA_INSTID, VALE_GUARDIAN, VALE_GUARDIAN_INSTID, 1001, 300)

        raw_log = EVTCDecoder().decode(b.build())

        assert raw_log.skipped_records == 1
        assert [event.time for event in raw_log.events] == [100, 200]
        assert [event.index for event in raw_log.events] == [0, 2]

    def test_decoder_stats(self, raid_log_bytes):
        decoder = EVTCDecoder(allow_truncated_tail=True)
        decoder.decode(raid_log_bytes)
        decoder.decode(raid_log_bytes + b"\x00" * 5)

        assert decoder.get_stats() == {
            "records_decoded": 38,
            "records_skipped": 0,
            "truncated_tail_bytes": 5,
        }

    def test_unknown_activation_skipped(self):
        b = _minimal_builder()
        b.add_event(100, src_agent=ARIA, src_instid=ARIA_INSTID, skill_id=1001, is_activation=9)

        raw_log = EVTCDecoder().decode(b.build())

        assert raw_log.events == ()
        assert raw_log.skipped_records == 1

    def test_invalid_magic(self, raid_log_bytes):
        with pytest.raises(DecodeError):
            EVTCDecoder().decode(b"ABCD" + raid_log_bytes[4:])

    def test_buffer_too_short(self):
        with pytest.raises(DecodeError):
            EVTCDecoder().decode(b"EVTC")

    def test_invalid_build_version(self):
        data = HEADER.pack(b"EVTC", b"2024ABCD", 1, 0) + COUNT.pack(0) + COUNT.pack(0)
        with pytest.raises(DecodeError):
            EVTCDecoder().decode(data)

    def test_agent_table_overflow(self):
        data = HEADER.pack(b"EVTC", b"20240101", 1, 0) + COUNT.pack(5) + b"\x00" * 96
        with pytest.raises(DecodeError) as exc_info:
            EVTCDecoder().decode(data)
        assert "Agent table" in exc_info.value.reason

    def test_missing_skill_count(self):
        data = HEADER.pack(b"EVTC", b"20240101", 1, 0) + COUNT.pack(0)
        with pytest.raises(DecodeError):
            EVTCDecoder().decode(data)
