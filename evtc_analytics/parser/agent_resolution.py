"""
Agent resolution strategies for the model builder.

The game reuses small instance ids once an agent despawns, so a raw
(address, instance id) pair only identifies an agent together with the
time it was seen. Resolvers keep the live instance id mapping during the
single build walk and decide what to do with references that match
nothing.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..config.settings import ParserSettings
from ..models.agents import Agent

logger = logging.getLogger(__name__)

# Builds a placeholder agent for a dangling address or instance id
PlaceholderFactory = Callable[[int, int], Agent]


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one agent reference."""

    agent: Optional[Agent]
    uncertain: bool = False


class AgentResolver(ABC):
    """
    Tracks which agent currently holds each instance id.

    Subclasses only decide how an instance id without a live holder is
    resolved.
    """

    def __init__(self, agents_by_address: Dict[int, Agent], placeholder_factory: PlaceholderFactory):
        """
        Initialize the resolver.

        Args:
            agents_by_address: Agent registry keyed by table address
            placeholder_factory: Called with (address, instance id) to register a placeholder
        """
        self.agents_by_address = agents_by_address
        self.placeholder_factory = placeholder_factory

        self._live: Dict[int, Agent] = {}
        self._last_holder: Dict[int, Agent] = {}
        self._placeholders_by_address: Dict[int, Agent] = {}
        self._placeholders_by_instid: Dict[int, Agent] = {}

    def resolve(self, address: int, instance_id: int, time: int) -> Resolution:
        """
        Resolve an agent reference at a point in time.

        Args:
            address: Raw agent address, 0 when absent
            instance_id: Raw instance id, 0 when absent
            time: Event time

        Returns:
            Resolution with the agent and whether a fallback was used
        """
        agent = self.agents_by_address.get(address) if address else None
        if agent is not None:
            if instance_id:
                self.bind(instance_id, agent)
            self._touch(agent, time)
            return Resolution(agent)

        if instance_id:
            live = self._live.get(instance_id)
            if live is not None:
                self._touch(live, time)
                return Resolution(live)
            fallback = self._resolve_unbound(instance_id, time)
            self._touch(fallback, time)
            return Resolution(fallback, uncertain=True)

        if address:
            placeholder = self._placeholders_by_address.get(address)
            if placeholder is None:
                placeholder = self.placeholder_factory(address, 0)
                self._placeholders_by_address[address] = placeholder
            self._touch(placeholder, time)
            return Resolution(placeholder, uncertain=True)

        return Resolution(None)

    def resolve_master(self, instance_id: int, time: int) -> Optional[Agent]:
        """Get the agent holding a master instance id, without fallbacks."""
        if not instance_id:
            return None
        return self._live.get(instance_id)

    def bind(self, instance_id: int, agent: Agent) -> None:
        """Make an agent the live holder of an instance id."""
        current = self._live.get(instance_id)
        if current is agent:
            return
        if current is not None:
            # Id reused without a despawn in between
            self._last_holder[instance_id] = current
        self._live[instance_id] = agent
        agent.instance_id = instance_id

    def release(self, agent: Agent) -> None:
        """Remove the live binding of a despawned agent, keeping it as last holder."""
        instance_id = agent.instance_id
        if instance_id and self._live.get(instance_id) is agent:
            del self._live[instance_id]
            self._last_holder[instance_id] = agent

    def _placeholder_for_instance(self, instance_id: int) -> Agent:
        placeholder = self._placeholders_by_instid.get(instance_id)
        if placeholder is None:
            placeholder = self.placeholder_factory(0, instance_id)
            self._placeholders_by_instid[instance_id] = placeholder
            logger.debug(f"Created placeholder agent for instance id {instance_id}")
        return placeholder

    @staticmethod
    def _touch(agent: Agent, time: int) -> None:
        """Extend the agent's lifetime interval to include time."""
        if agent.first_aware is None or time < agent.first_aware:
            agent.first_aware = time
        if agent.last_aware is None or time > agent.last_aware:
            agent.last_aware = time

    @abstractmethod
    def _resolve_unbound(self, instance_id: int, time: int) -> Agent:
        """Resolve an instance id that no agent currently holds."""


class LastHolderAgentResolver(AgentResolver):
    """Attributes unbound instance ids to the agent that last held them."""

    def _resolve_unbound(self, instance_id: int, time: int) -> Agent:
        holder = self._last_holder.get(instance_id)
        if holder is not None:
            return holder
        return self._placeholder_for_instance(instance_id)


class StrictAgentResolver(AgentResolver):
    """Never guesses, unbound instance ids always resolve to placeholders."""

    def _resolve_unbound(self, instance_id: int, time: int) -> Agent:
        return self._placeholder_for_instance(instance_id)


RESOLVERS = {
    "last_holder": LastHolderAgentResolver,
    "strict": StrictAgentResolver,
}


def create_resolver(settings: ParserSettings, agents_by_address: Dict[int, Agent],
                    placeholder_factory: PlaceholderFactory) -> AgentResolver:
    """Create the resolver selected by the settings."""
    return RESOLVERS[settings.agent_resolution](agents_by_address, placeholder_factory)
