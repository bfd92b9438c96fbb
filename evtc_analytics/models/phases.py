"""
Fight phase model.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Phase:
    """
    A named, contiguous sub-range of a fight in log time.

    The range is half-open [start_time, end_time) except for the last phase
    of a fight, which also contains the fight end itself.
    """

    name: str
    start_time: int
    end_time: int
    is_last: bool = False

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def contains(self, time: int) -> bool:
        """Check if a timestamp belongs to this phase."""
        if self.is_last:
            return self.start_time <= time <= self.end_time
        return self.start_time <= time < self.end_time

    def offset_range(self, fight_start: int) -> Tuple[int, int]:
        """Get the phase bounds relative to the fight start."""
        return self.start_time - fight_start, self.end_time - fight_start
