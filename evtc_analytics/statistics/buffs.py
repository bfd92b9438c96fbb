"""
Buff interval reconstruction.

Applications open stacks of known duration, removals shorten them. The
stacks of a buff on an agent are then coalesced into non-overlapping
intervals so that overlapping applications are never counted twice.
"""

from collections import defaultdict
from typing import Collection, Dict, Iterable, List, Sequence, Tuple

from ..parser.events import (
    AllStacksRemovedEvent,
    BuffApplyEvent,
    BuffRemoveEvent,
    Event,
)

Interval = Tuple[int, int]

# (agent_id, buff_id)
BuffKey = Tuple[int, int]


def coalesce(intervals: Iterable[Interval]) -> List[Interval]:
    """
    Merge overlapping or touching intervals.

    Args:
        intervals: Half-open [start, end) intervals in any order

    Returns:
        Sorted, non-overlapping intervals
    """
    merged: List[List[int]] = []
    for start, end in sorted(intervals):
        if end <= start:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(start, end) for start, end in merged]


def overlap_length(intervals: Sequence[Interval], window_start: int, window_end: int) -> int:
    """Total length of coalesced intervals inside [window_start, window_end)."""
    total = 0
    for start, end in intervals:
        lower = max(start, window_start)
        upper = min(end, window_end)
        if upper > lower:
            total += upper - lower
    return total


def collect_buff_intervals(
    events: Iterable[Event], buff_ids: Collection[int], log_end: int
) -> Dict[BuffKey, List[Interval]]:
    """
    Reconstruct when tracked buffs were active on each agent.

    Args:
        events: Events in time order
        buff_ids: Buff ids to track
        log_end: Time at which still active stacks are cut off

    Returns:
        Coalesced intervals keyed by (agent_id, buff_id)
    """
    stacks: Dict[BuffKey, List[List[int]]] = defaultdict(list)

    for event in events:
        if not isinstance(event, (BuffApplyEvent, BuffRemoveEvent)):
            continue
        if event.target is None or event.skill is None or event.skill.skill_id not in buff_ids:
            continue

        key = (event.target.agent_id, event.skill.skill_id)
        time = event.time

        if isinstance(event, BuffApplyEvent):
            if event.duration > 0:
                stacks[key].append([time, time + event.duration])
        elif isinstance(event, AllStacksRemovedEvent):
            for stack in stacks[key]:
                if stack[1] > time:
                    stack[1] = max(stack[0], time)
        else:
            # Single and manual removals end the stack that would expire first
            active = [stack for stack in stacks[key] if stack[0] <= time < stack[1]]
            if active:
                stack = min(active, key=lambda s: s[1])
                stack[1] = time

    return {
        key: coalesce((start, min(end, log_end)) for start, end in key_stacks)
        for key, key_stacks in stacks.items()
    }
