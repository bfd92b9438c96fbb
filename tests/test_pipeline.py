"""
Tests for the single-log and batch pipelines.
"""

import threading

import pytest

from evtc_analytics import ParserSettings, process_log
from evtc_analytics.encounters.results import EncounterResult
from evtc_analytics.exceptions import DecodeError, LogProcessingError
from evtc_analytics.processing.batch import BatchProcessor
from evtc_analytics.statistics.rotation_json import RotationJsonWriter, RotationSource
from tests.evtc_builder import EVTCBuilder, build_raid_log


def _rotation_json(processed):
    source = RotationSource(
        log=processed.log,
        rotations=processed.rotations,
        log_name="raid.evtc",
        encounter_name=processed.encounter_name,
    )
    return RotationJsonWriter().write([source])


@pytest.mark.integration
class TestProcessLog:
    """The full pipeline on one log."""

    def test_process_log(self, raid_log_bytes):
        processed = process_log(raid_log_bytes)

        assert processed.encounter_name == "Vale Guardian"
        assert processed.encounter_result == EncounterResult.SUCCESS
        assert len(processed.phases) == 3
        assert len(processed.rotations) == 2
        assert processed.statistics.fight_time_ms == 8000

    def test_deterministic(self, raid_log_bytes):
        first = process_log(raid_log_bytes)
        second = process_log(raid_log_bytes)

        assert first.statistics.to_dict() == second.statistics.to_dict()
        assert _rotation_json(first) == _rotation_json(second)

    def test_settings_applied(self, raid_log_bytes):
        truncated = raid_log_bytes + b"\x01\x02\x03"

        with pytest.raises(DecodeError):
            process_log(truncated)

        processed = process_log(truncated, ParserSettings(allow_truncated_tail=True))
        assert processed.log.flags.truncated_tail_bytes == 3
        assert processed.log.flags.is_degraded

    def test_invalid_bytes(self):
        with pytest.raises(DecodeError):
            process_log(b"not a log")

    def test_empty_agent_table(self):
        with pytest.raises(LogProcessingError):
            process_log(EVTCBuilder().build())


class TestBatchProcessor:
    """Many logs on a worker pool."""

    def test_all_logs_processed(self):
        logs = {"a.evtc": build_raid_log(), "b.evtc": build_raid_log(killed=False)}
        result = BatchProcessor(max_workers=2).process(list(logs), logs.__getitem__)

        assert set(result.processed) == {"a.evtc", "b.evtc"}
        assert result.processed["a.evtc"].encounter_result == EncounterResult.SUCCESS
        assert result.processed["b.evtc"].encounter_result == EncounterResult.FAILURE
        assert result.failures == []
        assert result.total == 2

    def test_failure_does_not_stop_batch(self):
        logs = {"good.evtc": build_raid_log(), "bad.evtc": b"garbage", "empty.evtc": EVTCBuilder().build()}
        result = BatchProcessor(max_workers=2).process(list(logs), logs.__getitem__)

        assert set(result.processed) == {"good.evtc"}
        assert {failure.file_identity for failure in result.failures} == {"bad.evtc", "empty.evtc"}
        assert all(failure.reason for failure in result.failures)

    def test_loader_errors_reported(self):
        def loader(identity):
            raise FileNotFoundError(identity)

        result = BatchProcessor(max_workers=1).process(["missing.evtc"], loader)

        assert result.processed == {}
        assert result.failures[0].file_identity == "missing.evtc"

    def test_progress_callback(self):
        logs = {"good.evtc": build_raid_log(), "bad.evtc": b"garbage"}
        calls = []
        lock = threading.Lock()

        def on_progress(identity, succeeded):
            with lock:
                calls.append((identity, succeeded))

        BatchProcessor(max_workers=2).process(list(logs), logs.__getitem__, progress_callback=on_progress)
        assert sorted(calls) == [("bad.evtc", False), ("good.evtc", True)]

    def test_cancelled_before_start(self):
        logs = {"a.evtc": build_raid_log(), "b.evtc": build_raid_log()}
        processor = BatchProcessor(max_workers=2)
        processor.cancel()

        result = processor.process(list(logs), logs.__getitem__)

        assert result.processed == {}
        assert sorted(result.cancelled) == ["a.evtc", "b.evtc"]

    def test_cancel_during_batch(self):
        identities = [f"{i}.evtc" for i in range(6)]
        processor = BatchProcessor(max_workers=1)

        def loader(identity):
            if identity == "0.evtc":
                processor.cancel()
            return build_raid_log()

        result = processor.process(identities, loader)

        assert "0.evtc" in result.processed
        assert len(result.processed) + len(result.cancelled) == 6
        assert result.failures == []

    def test_interrupt_cancels_queued_logs(self):
        identities = [f"{i}.evtc" for i in range(8)]
        loaded = []
        lock = threading.Lock()
        processor = BatchProcessor(max_workers=1)

        def loader(identity):
            with lock:
                loaded.append(identity)
            return build_raid_log()

        def on_progress(identity, succeeded):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            processor.process(identities, loader, progress_callback=on_progress)

        # The finished log plus at most the one the worker had already picked up
        assert len(loaded) <= 2
        assert processor.cancel_event.is_set()

    def test_worker_count_from_settings(self):
        assert BatchProcessor(ParserSettings(max_workers=3)).max_workers == 3
        assert BatchProcessor(ParserSettings(max_workers=3), max_workers=5).max_workers == 5
