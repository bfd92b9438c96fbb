"""
Single-log processing pipeline.

Decoder -> log processor -> encounter determination -> statistics and
rotations. A run is synchronous and a pure function of its input bytes
and settings.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..config.settings import ParserSettings
from ..encounters.registry import EncounterInfo, determine_encounter
from ..encounters.results import EncounterResult
from ..models.log import Log
from ..models.phases import Phase
from ..parser.decoder import ByteSource, EVTCDecoder
from ..parser.parser import LogProcessor
from ..statistics.aggregator import StatisticsCalculator
from ..statistics.models import LogStatistics
from ..statistics.rotation import PlayerRotation, RotationExtractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedLog:
    """Everything derived from one log."""

    log: Log
    encounter: EncounterInfo
    statistics: LogStatistics
    rotations: Tuple[PlayerRotation, ...]

    @property
    def encounter_name(self) -> str:
        return self.encounter.name

    @property
    def encounter_result(self) -> EncounterResult:
        return self.encounter.result

    @property
    def phases(self) -> List[Phase]:
        return list(self.encounter.phases)


def process_log(data: ByteSource, settings: Optional[ParserSettings] = None) -> ProcessedLog:
    """
    Run the full pipeline on one log.

    Args:
        data: EVTC bytes, already unwrapped from any archive
        settings: Parser settings, defaults when omitted

    Returns:
        ProcessedLog with the model, encounter, statistics and rotations

    Raises:
        DecodeError: If the bytes are not a decodable log
        LogProcessingError: If the decoded records cannot form a log
    """
    settings = settings or ParserSettings()

    raw_log = EVTCDecoder(allow_truncated_tail=settings.allow_truncated_tail).decode(data)
    log = LogProcessor(settings).process(raw_log)
    encounter = determine_encounter(log, settings)
    statistics = StatisticsCalculator(settings).calculate(log, encounter)
    rotations = tuple(RotationExtractor().extract(log))

    logger.info(
        f"Processed {encounter.name}: {encounter.result.value}, "
        f"{statistics.fight_time_ms / 1000:.1f}s, {len(log.players)} players"
    )
    return ProcessedLog(log=log, encounter=encounter, statistics=statistics, rotations=rotations)
