"""
Log processor that turns decoded records into the Log domain model.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..config.gw2_data import get_elite_specialization, get_profession
from ..config.settings import ParserSettings
from ..exceptions import LogProcessingError
from ..models.agents import Agent, AgentKind, parse_player_name
from ..models.log import Log, LogMetadata, ProcessingFlags
from ..models.skills import Skill, categorize_skill
from .agent_resolution import AgentResolver, create_resolver
from .decoder import ByteSource, EVTCDecoder, RawAgent, RawLog
from .events import (
    AgentDespawnEvent,
    Event,
    EventFactory,
    GameBuildEvent,
    GameShardEvent,
    LanguageEvent,
    LogEndEvent,
    LogStartEvent,
    MapIdEvent,
    PointOfViewEvent,
)

logger = logging.getLogger(__name__)

# is_elite value marking a non-player agent
NON_PLAYER_ELITE = 0xFFFFFFFF

# Upper half of profession for gadgets
GADGET_PROFESSION_MARKER = 0xFFFF


class LogProcessor:
    """
    Builds a Log from a RawLog in a single walk over the event records.

    Agent identities are resolved with the AgentResolver selected by the
    settings. Dangling agent and skill references become placeholders and
    decreasing timestamps are clamped, both counted in ProcessingFlags.
    """

    def __init__(self, settings: Optional[ParserSettings] = None):
        """
        Initialize the log processor.

        Args:
            settings: Parser settings, defaults when omitted
        """
        self.settings = settings or ParserSettings()

    def process_bytes(self, source: ByteSource) -> Log:
        """Decode and process a log buffer."""
        decoder = EVTCDecoder(allow_truncated_tail=self.settings.allow_truncated_tail)
        raw_log = decoder.decode(source)
        logger.debug(f"Decoder stats: {decoder.get_stats()}")
        return self.process(raw_log)

    def process(self, raw_log: RawLog) -> Log:
        """
        Build the domain model of a decoded log.

        Args:
            raw_log: Decoder output

        Returns:
            Immutable Log

        Raises:
            LogProcessingError: If the agent table cannot form a registry
        """
        build = _LogBuild(raw_log, self.settings)
        log = build.run()

        logger.info(
            f"Built log: {len(log.agents)} agents, {len(log.skills)} skills, "
            f"{len(log.events)} events"
        )
        if log.flags.is_degraded:
            logger.warning(f"Log processed with degraded data: {log.flags.to_dict()}")
        return log


class _LogBuild:
    """State of one build walk."""

    def __init__(self, raw_log: RawLog, settings: ParserSettings):
        self.raw_log = raw_log
        self.settings = settings

        self.agents: List[Agent] = []
        self.agents_by_address: Dict[int, Agent] = {}
        self.skills: Dict[int, Skill] = {}

        self.placeholder_agents = 0
        self.placeholder_skills = 0
        self.uncertain_resolutions = 0
        self.clamped_timestamps = 0

        self.metadata: Dict[str, object] = {}

    def run(self) -> Log:
        self._build_agents()
        self._build_skills()

        resolver = create_resolver(self.settings, self.agents_by_address, self._create_placeholder_agent)
        events = self._build_events(resolver)

        header = self.raw_log.header
        fight_start = events[0].time if events else 0
        fight_end = events[-1].time if events else 0

        metadata = LogMetadata(
            revision=header.revision,
            build_version=header.build_version,
            encounter_species_id=header.encounter_species_id,
            fight_start_time=fight_start,
            fight_end_time=fight_end,
            forward_compatible=header.forward_compatible,
            **self.metadata,
        )
        flags = ProcessingFlags(
            uncertain_resolutions=self.uncertain_resolutions,
            placeholder_agents=self.placeholder_agents,
            placeholder_skills=self.placeholder_skills,
            clamped_timestamps=self.clamped_timestamps,
            skipped_records=self.raw_log.skipped_records,
            truncated_tail_bytes=self.raw_log.truncated_tail_bytes,
        )

        return Log(
            events=tuple(events),
            agents=tuple(self.agents),
            skills=tuple(self.skills.values()),
            metadata=metadata,
            flags=flags,
        )

    def _build_agents(self) -> None:
        if not self.raw_log.agents:
            raise LogProcessingError("Agent table is empty")

        for raw_agent in self.raw_log.agents:
            agent = self._create_agent(len(self.agents), raw_agent)
            if agent.address in self.agents_by_address:
                raise LogProcessingError(f"Duplicate agent address {agent.address:#x} in agent table")
            self.agents.append(agent)
            self.agents_by_address[agent.address] = agent

    @staticmethod
    def _create_agent(agent_id: int, raw: RawAgent) -> Agent:
        """Create an agent from its table entry."""
        attributes = {
            "toughness": raw.toughness,
            "concentration": raw.concentration,
            "healing": raw.healing,
            "condition": raw.condition,
            "hitbox_width": raw.hitbox_width,
            "hitbox_height": raw.hitbox_height,
        }

        if raw.is_elite == NON_PLAYER_ELITE:
            name = raw.name.split("\x00", 1)[0]
            if (raw.profession >> 16) != GADGET_PROFESSION_MARKER:
                return Agent(
                    agent_id=agent_id,
                    address=raw.address,
                    name=name,
                    kind=AgentKind.NPC,
                    species_id=raw.profession & 0xFFFF,
                    **attributes,
                )
            return Agent(
                agent_id=agent_id,
                address=raw.address,
                name=name,
                kind=AgentKind.GADGET,
                volatile_id=raw.profession & 0xFFFF,
                **attributes,
            )

        parsed = parse_player_name(raw.name)
        profession = get_profession(raw.profession)
        return Agent(
            agent_id=agent_id,
            address=raw.address,
            name=parsed["name"],
            kind=AgentKind.PLAYER,
            account_name=parsed["account_name"],
            subgroup=parsed["subgroup"],
            profession=profession,
            elite_specialization=get_elite_specialization(profession, raw.is_elite),
            **attributes,
        )

    def _build_skills(self) -> None:
        for raw_skill in self.raw_log.skills:
            if raw_skill.skill_id in self.skills:
                logger.debug(f"Ignoring duplicate skill table entry {raw_skill.skill_id}")
                continue
            self.skills[raw_skill.skill_id] = Skill(
                skill_id=raw_skill.skill_id,
                name=raw_skill.name,
                category=categorize_skill(raw_skill.skill_id),
            )

    def _create_placeholder_agent(self, address: int, instance_id: int) -> Agent:
        """Register an agent for a reference that matches no table entry."""
        label = f"instance {instance_id}" if instance_id else f"address {address:#x}"
        agent = Agent(
            agent_id=len(self.agents),
            address=address,
            name=f"Unknown agent ({label})",
            kind=AgentKind.UNKNOWN,
            instance_id=instance_id,
            is_placeholder=True,
        )
        self.agents.append(agent)
        self.placeholder_agents += 1
        return agent

    def _get_skill(self, skill_id: int) -> Skill:
        skill = self.skills.get(skill_id)
        if skill is None:
            skill = Skill(skill_id=skill_id, name=None, category=categorize_skill(skill_id), is_placeholder=True)
            self.skills[skill_id] = skill
            self.placeholder_skills += 1
            logger.debug(f"Created placeholder skill {skill_id}")
        return skill

    def _build_events(self, resolver: AgentResolver) -> List[Event]:
        events: List[Event] = []
        running_max: Optional[int] = None

        for raw in self.raw_log.events:
            time = raw.time
            clamped = running_max is not None and time < running_max
            if clamped:
                logger.debug(f"Record {raw.index} time {time} is before {running_max}, clamping")
                time = running_max
                self.clamped_timestamps += 1
            running_max = time

            src = dst = None
            uncertain = False
            if EventFactory.references_source(raw):
                resolution = resolver.resolve(raw.src_agent, raw.src_instid, time)
                src, uncertain = resolution.agent, resolution.uncertain
                self._link_master(resolver, src, raw.src_master_instid, time)
            if EventFactory.references_target(raw):
                resolution = resolver.resolve(raw.dst_agent, raw.dst_instid, time)
                dst, uncertain = resolution.agent, uncertain or resolution.uncertain
                self._link_master(resolver, dst, raw.dst_master_instid, time)
            if uncertain:
                self.uncertain_resolutions += 1

            skill = self._get_skill(raw.skill_id) if EventFactory.references_skill(raw) else None

            event = EventFactory.create_event(
                raw,
                time,
                src,
                dst,
                skill,
                uncertain_resolution=uncertain,
                time_clamped=clamped,
                keep_raw=self.settings.keep_raw_records,
            )
            events.append(event)

            if isinstance(event, AgentDespawnEvent) and event.source is not None:
                resolver.release(event.source)
            self._update_metadata(event)

        return events

    @staticmethod
    def _link_master(resolver: AgentResolver, agent: Optional[Agent], master_instid: int, time: int) -> None:
        """Attach a minion to the agent holding its master instance id."""
        if agent is None or agent.master is not None or not master_instid:
            return
        master = resolver.resolve_master(master_instid, time)
        if master is None or master is agent:
            return
        agent.master = master
        master.minions.append(agent)

    def _update_metadata(self, event: Event) -> None:
        if isinstance(event, PointOfViewEvent):
            self.metadata.setdefault("author", event.source)
        elif isinstance(event, LogStartEvent):
            self.metadata["log_start"] = datetime.fromtimestamp(event.server_time, tz=timezone.utc)
        elif isinstance(event, LogEndEvent):
            self.metadata["log_end"] = datetime.fromtimestamp(event.server_time, tz=timezone.utc)
        elif isinstance(event, LanguageEvent):
            self.metadata["language_id"] = event.language_id
        elif isinstance(event, GameBuildEvent):
            self.metadata["game_build"] = event.build
        elif isinstance(event, MapIdEvent):
            self.metadata["map_id"] = event.map_id
        elif isinstance(event, GameShardEvent):
            self.metadata["shard_id"] = event.shard_id
