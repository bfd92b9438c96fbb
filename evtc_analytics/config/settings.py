"""
Configuration settings for the EVTC processing pipeline.

Settings are an explicit value passed into the pipeline entry point; the
processing core never reads environment variables or module globals on its
own. Use ParserSettings.from_env() or the YAML loader to build one.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from ..exceptions import ConfigurationError
from .gw2_data import DEFAULT_TRACKED_BUFFS

logger = logging.getLogger(__name__)

AGENT_RESOLUTION_STRATEGIES = ("last_holder", "strict")


@dataclass(frozen=True)
class ParserSettings:
    """Settings threaded through decoding, building and aggregation."""

    # Treat a partial record at the end of the buffer as end-of-stream
    allow_truncated_tail: bool = False

    # How events with an instance id that has no live agent are resolved
    agent_resolution: str = "last_holder"

    # Attach the raw wire record to every built event (debug output)
    keep_raw_records: bool = False

    # Buff ids for which uptime is calculated
    tracked_buff_ids: FrozenSet[int] = DEFAULT_TRACKED_BUFFS

    # Species id -> display name, overriding encounter names
    encounter_name_overrides: Dict[int, str] = field(default_factory=dict)

    # Worker threads for batch processing, None means CPU count
    max_workers: Optional[int] = None

    def __post_init__(self):
        if self.agent_resolution not in AGENT_RESOLUTION_STRATEGIES:
            raise ConfigurationError(
                f"Unknown agent resolution strategy '{self.agent_resolution}', "
                f"expected one of {', '.join(AGENT_RESOLUTION_STRATEGIES)}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")

    @classmethod
    def from_env(cls) -> "ParserSettings":
        """Load settings from environment variables."""
        tracked = os.getenv("EVTC_TRACKED_BUFFS")
        max_workers = os.getenv("EVTC_MAX_WORKERS")

        return cls(
            allow_truncated_tail=os.getenv("EVTC_ALLOW_TRUNCATED_TAIL", "false").lower() == "true",
            agent_resolution=os.getenv("EVTC_AGENT_RESOLUTION", "last_holder").lower(),
            keep_raw_records=os.getenv("EVTC_KEEP_RAW_RECORDS", "false").lower() == "true",
            tracked_buff_ids=_parse_id_list(tracked) if tracked else DEFAULT_TRACKED_BUFFS,
            max_workers=int(max_workers) if max_workers else None,
        )


def _parse_id_list(value: str) -> FrozenSet[int]:
    """Parse a comma separated list of ids."""
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid id list '{value}': {e}") from e
