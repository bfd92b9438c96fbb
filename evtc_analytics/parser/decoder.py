"""
Binary decoder for EVTC combat log buffers.

Turns raw bytes into untyped records without any semantic interpretation:
raw numeric ids are passed through unresolved.
"""

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, List, Optional, Tuple, TypeVar, Union

from ..exceptions import DecodeError
from .schemas import EVTCLayout, RawEventKind

logger = logging.getLogger(__name__)

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]

T = TypeVar("T")


@dataclass(frozen=True)
class RawHeader:
    """Decoded file header."""

    build_version: str
    revision: int
    encounter_species_id: int
    forward_compatible: bool = False


@dataclass(frozen=True)
class RawAgent:
    """Agent table entry exactly as laid out on the wire."""

    address: int
    profession: int
    is_elite: int
    toughness: int
    concentration: int
    healing: int
    hitbox_width: int
    condition: int
    hitbox_height: int
    name: str


@dataclass(frozen=True)
class RawSkill:
    """Skill table entry."""

    skill_id: int
    name: str


@dataclass(frozen=True)
class RawEvent:
    """Event record with its fields as raw integers."""

    index: int
    kind: RawEventKind
    time: int
    src_agent: int
    dst_agent: int
    value: int
    buff_dmg: int
    overstack_value: int
    skill_id: int
    src_instid: int
    dst_instid: int
    src_master_instid: int
    dst_master_instid: int
    iff: int
    buff: int
    result: int
    is_activation: int
    is_buffremove: int
    is_ninety: int
    is_fifty: int
    is_moving: int
    is_statechange: int
    is_flanking: int
    is_shields: int
    is_offcycle: int


@dataclass(frozen=True)
class RawLog:
    """All records of one log in file order."""

    header: RawHeader
    agents: Tuple[RawAgent, ...]
    skills: Tuple[RawSkill, ...]
    events: Tuple[RawEvent, ...]
    skipped_records: int = 0
    truncated_tail_bytes: int = 0


class EVTCDecoder:
    """
    Decodes EVTC byte buffers into RawLog records.

    Unrecognized event discriminants are skipped since every event record
    has the same fixed size. A partial record at the end of the buffer is
    fatal unless allow_truncated_tail is set.
    """

    def __init__(self, allow_truncated_tail: bool = False):
        """
        Initialize the decoder.

        Args:
            allow_truncated_tail: Treat a partial final record as end-of-stream
        """
        self.allow_truncated_tail = allow_truncated_tail
        self.records_decoded = 0
        self.records_skipped = 0
        self.truncated_tail_bytes = 0

    def decode(self, source: ByteSource) -> RawLog:
        """
        Decode a complete log.

        Args:
            source: Byte buffer or readable binary stream

        Returns:
            RawLog with header, agent table, skill table and events

        Raises:
            DecodeError: If the header is unrecognized or a record is truncated
        """
        view = memoryview(self._read_source(source))

        header = self._decode_header(view)
        offset = EVTCLayout.HEADER.size

        agents, offset = self._decode_table(view, offset, EVTCLayout.AGENT, "agent", self._make_agent)
        skills, offset = self._decode_table(view, offset, EVTCLayout.SKILL, "skill", self._make_skill)

        skipped_before = self.records_skipped
        events = list(self.iter_events(view, offset, header.revision))
        skipped = self.records_skipped - skipped_before
        logger.info(
            f"Decoded EVTC {header.build_version} rev {header.revision}: "
            f"{len(agents)} agents, {len(skills)} skills, {len(events)} events, {skipped} skipped"
        )

        return RawLog(
            header=header,
            agents=tuple(agents),
            skills=tuple(skills),
            events=tuple(events),
            skipped_records=skipped,
            truncated_tail_bytes=self.truncated_tail_bytes,
        )

    def iter_events(self, view: memoryview, offset: int, revision: int) -> Iterator[RawEvent]:
        """
        Decode event records one at a time.

        Args:
            view: Whole log buffer
            offset: Offset of the first event record
            revision: Header revision selecting the record layout

        Yields:
            RawEvent objects in file order
        """
        layout = EVTCLayout.event_struct(revision)
        size = EVTCLayout.EVENT_SIZE
        total = len(view)
        index = 0
        self.truncated_tail_bytes = 0

        while offset < total:
            remaining = total - offset
            if remaining < size:
                if self.allow_truncated_tail:
                    logger.warning(f"Ignoring {remaining} trailing bytes of a partial event record")
                    self.truncated_tail_bytes = remaining
                    return
                raise DecodeError(
                    f"Event record truncated: {remaining} of {size} bytes available", offset
                )

            fields = layout.unpack_from(view, offset)
            offset += size

            event = self._make_event(index, fields, revision)
            index += 1
            if event is None:
                self.records_skipped += 1
                continue

            self.records_decoded += 1
            yield event

    def _read_source(self, source: ByteSource) -> bytes:
        """Get the full byte content of the source."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        if hasattr(source, "read"):
            return source.read()
        raise TypeError(f"Unsupported byte source: {type(source).__name__}")

    def _decode_header(self, view: memoryview) -> RawHeader:
        """Decode and validate the fixed header."""
        if len(view) < EVTCLayout.HEADER.size:
            raise DecodeError(f"Buffer too short for header: {len(view)} bytes")

        magic, build, revision, species_id = EVTCLayout.HEADER.unpack_from(view, 0)
        if magic != EVTCLayout.MAGIC:
            raise DecodeError(f"Invalid EVTC magic: {magic!r}")

        try:
            build_version = build.decode("ascii")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Unrecognized build version: {build!r}", 4) from e
        if not build_version.isdigit():
            raise DecodeError(f"Unrecognized build version: {build_version!r}", 4)

        forward_compatible = revision not in EVTCLayout.KNOWN_REVISIONS
        if forward_compatible:
            logger.warning(f"Unknown revision {revision}, decoding with the latest known layout")

        return RawHeader(
            build_version=build_version,
            revision=revision,
            encounter_species_id=species_id,
            forward_compatible=forward_compatible,
        )

    def _decode_table(self, view: memoryview, offset: int, layout: struct.Struct,
                      table_name: str, factory: Callable[[tuple], T]) -> Tuple[List[T], int]:
        """
        Decode a count-prefixed table of fixed-size entries.

        Returns:
            Tuple of (entries, offset after the table)
        """
        if len(view) - offset < EVTCLayout.COUNT.size:
            raise DecodeError(f"Missing {table_name} count", offset)
        (count,) = EVTCLayout.COUNT.unpack_from(view, offset)
        offset += EVTCLayout.COUNT.size

        needed = count * layout.size
        available = len(view) - offset
        if needed > available:
            raise DecodeError(
                f"{table_name.capitalize()} table declares {count} entries "
                f"({needed} bytes) but only {available} bytes remain",
                offset,
            )

        entries = []
        for _ in range(count):
            entries.append(factory(layout.unpack_from(view, offset)))
            offset += layout.size

        return entries, offset

    @staticmethod
    def _decode_name(raw: bytes) -> str:
        """Decode a fixed-size, NUL padded name field."""
        return raw.decode("utf-8", errors="replace").rstrip("\x00")

    def _make_agent(self, fields: tuple) -> RawAgent:
        (address, profession, is_elite, toughness, concentration, healing,
         hitbox_width, condition, hitbox_height, name) = fields
        return RawAgent(
            address=address,
            profession=profession,
            is_elite=is_elite,
            toughness=toughness,
            concentration=concentration,
            healing=healing,
            hitbox_width=hitbox_width,
            condition=condition,
            hitbox_height=hitbox_height,
            name=self._decode_name(name),
        )

    def _make_skill(self, fields: tuple) -> RawSkill:
        skill_id, name = fields
        # Skill names end at the first NUL, the rest of the field is garbage
        return RawSkill(skill_id=skill_id, name=self._decode_name(name.split(b"\x00", 1)[0]))

    def _make_event(self, index: int, fields: tuple, revision: int) -> Optional[RawEvent]:
        """Build a RawEvent, or None if its discriminant is not recognized."""
        if revision == 0:
            (time, src_agent, dst_agent, value, buff_dmg, overstack_value, skill_id,
             src_instid, dst_instid, src_master_instid, iff, buff, result, is_activation,
             is_buffremove, is_ninety, is_fifty, is_moving, is_statechange, is_flanking,
             is_shields, is_offcycle) = fields
            dst_master_instid = 0
        else:
            (time, src_agent, dst_agent, value, buff_dmg, overstack_value, skill_id,
             src_instid, dst_instid, src_master_instid, dst_master_instid, iff, buff, result,
             is_activation, is_buffremove, is_ninety, is_fifty, is_moving, is_statechange,
             is_flanking, is_shields, is_offcycle, _pad) = fields

        kind = EVTCLayout.classify(is_statechange, is_activation, is_buffremove, buff, value)
        if not EVTCLayout.is_known_opcode(kind, is_statechange, is_activation, is_buffremove):
            logger.debug(
                f"Skipping record {index} with unknown discriminant "
                f"(statechange={is_statechange}, activation={is_activation}, "
                f"buffremove={is_buffremove})"
            )
            return None

        return RawEvent(
            index=index,
            kind=kind,
            time=time,
            src_agent=src_agent,
            dst_agent=dst_agent,
            value=value,
            buff_dmg=buff_dmg,
            overstack_value=overstack_value,
            skill_id=skill_id,
            src_instid=src_instid,
            dst_instid=dst_instid,
            src_master_instid=src_master_instid,
            dst_master_instid=dst_master_instid,
            iff=iff,
            buff=buff,
            result=result,
            is_activation=is_activation,
            is_buffremove=is_buffremove,
            is_ninety=is_ninety,
            is_fifty=is_fifty,
            is_moving=is_moving,
            is_statechange=is_statechange,
            is_flanking=is_flanking,
            is_shields=is_shields,
            is_offcycle=is_offcycle,
        )

    def get_stats(self) -> dict:
        """
        Get decoding statistics.

        Counts accumulate over every decode done with this decoder.

        Returns:
            Dictionary with decoded and skipped record counts and the last tail size
        """
        return {
            "records_decoded": self.records_decoded,
            "records_skipped": self.records_skipped,
            "truncated_tail_bytes": self.truncated_tail_bytes,
        }
