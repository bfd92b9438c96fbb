"""
Encounter name providers.
"""

from abc import ABC, abstractmethod

from ..models.agents import Agent
from ..models.log import Log


class EncounterNameProvider(ABC):
    """Provides the display name of an encounter."""

    @abstractmethod
    def get_encounter_name(self, log: Log) -> str:
        pass


class ConstantEncounterNameProvider(EncounterNameProvider):
    """Returns a fixed name."""

    def __init__(self, name: str):
        self.name = name

    def get_encounter_name(self, log: Log) -> str:
        return self.name


class AgentEncounterNameProvider(EncounterNameProvider):
    """Uses the name of an agent, typically the main target."""

    def __init__(self, agent: Agent):
        self.agent = agent

    def get_encounter_name(self, log: Log) -> str:
        return self.agent.name
