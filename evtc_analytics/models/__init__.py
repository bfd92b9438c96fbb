"""
Domain models for processed EVTC logs.
"""

from .agents import Agent, AgentKind, parse_player_name
from .skills import Skill, SkillCategory, categorize_skill
from .log import Log, LogMetadata, ProcessingFlags
from .phases import Phase

__all__ = [
    "Agent",
    "AgentKind",
    "parse_player_name",
    "Skill",
    "SkillCategory",
    "categorize_skill",
    "Log",
    "LogMetadata",
    "ProcessingFlags",
    "Phase",
]
