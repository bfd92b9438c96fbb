"""
Guild Wars 2 data mappings used when interpreting EVTC logs.

This module contains static game data: professions, elite specializations,
boon ids, encounter species ids and the icon urls used by rotation output.
Nothing in here is mutated at runtime; user overrides go through
ParserSettings instead.
"""

from enum import IntEnum
from typing import Dict, FrozenSet, Optional


class Profession(IntEnum):
    """Profession ids as written in the agent table."""

    NONE = 0
    GUARDIAN = 1
    WARRIOR = 2
    ENGINEER = 3
    RANGER = 4
    THIEF = 5
    ELEMENTALIST = 6
    MESMER = 7
    NECROMANCER = 8
    REVENANT = 9


class EliteSpecialization(IntEnum):
    """Elite specialization ids as written in the agent table."""

    NONE = 0
    # Heart of Thorns
    DRUID = 5
    DAREDEVIL = 7
    BERSERKER = 18
    DRAGONHUNTER = 27
    REAPER = 34
    CHRONOMANCER = 40
    SCRAPPER = 43
    TEMPEST = 48
    HERALD = 52
    # Path of Fire
    SOULBEAST = 55
    WEAVER = 56
    HOLOSMITH = 57
    DEADEYE = 58
    MIRAGE = 59
    SCOURGE = 60
    SPELLBREAKER = 61
    FIREBRAND = 62
    RENEGADE = 63
    # End of Dragons
    HARBINGER = 64
    WILLBENDER = 65
    VIRTUOSO = 66
    CATALYST = 67
    BLADESWORN = 68
    VINDICATOR = 69
    MECHANIST = 70
    SPECTER = 71
    UNTAMED = 72


class WeaponSet(IntEnum):
    """Weapon set ids carried by weapon swap state changes."""

    WATER1 = 0
    WATER2 = 1
    LAND1 = 4
    LAND2 = 5
    UNKNOWN = -1


# Older revisions only flag "has an elite spec" with 1, in which case the
# Heart of Thorns specialization of the profession is implied.
LEGACY_ELITE_FLAG = 1

HEART_OF_THORNS_SPECS: Dict[Profession, EliteSpecialization] = {
    Profession.GUARDIAN: EliteSpecialization.DRAGONHUNTER,
    Profession.WARRIOR: EliteSpecialization.BERSERKER,
    Profession.ENGINEER: EliteSpecialization.SCRAPPER,
    Profession.RANGER: EliteSpecialization.DRUID,
    Profession.THIEF: EliteSpecialization.DAREDEVIL,
    Profession.ELEMENTALIST: EliteSpecialization.TEMPEST,
    Profession.MESMER: EliteSpecialization.CHRONOMANCER,
    Profession.NECROMANCER: EliteSpecialization.REAPER,
    Profession.REVENANT: EliteSpecialization.HERALD,
}

# Boons tracked for uptime unless ParserSettings says otherwise
BOON_NAMES: Dict[int, str] = {
    740: "Might",
    725: "Fury",
    1187: "Quickness",
    30328: "Alacrity",
    717: "Protection",
    718: "Regeneration",
    726: "Vigor",
    743: "Aegis",
    1122: "Stability",
    719: "Swiftness",
    26980: "Resistance",
    873: "Resolution",
}

DEFAULT_TRACKED_BUFFS: FrozenSet[int] = frozenset(BOON_NAMES)

# Buff applied to bosses during invulnerable transitions
DETERMINED_BUFF_ID = 762

# Reward types that are only granted for a successful raid encounter
RAID_REWARD_TYPES: FrozenSet[int] = frozenset({55821, 60685})


class SpeciesId(IntEnum):
    """NPC species ids of encounter targets and notable adds."""

    # Spirit Vale
    VALE_GUARDIAN = 15438
    RED_GUARDIAN = 15433
    BLUE_GUARDIAN = 15431
    GREEN_GUARDIAN = 15420
    GORSEVAL = 15429
    CHARGED_SOUL = 15434
    SABETHA = 15375
    # Salvation Pass
    SLOTHASOR = 16123
    MATTHIAS = 16115
    # Stronghold of the Faithful
    KEEP_CONSTRUCT = 16235
    XERA = 16246
    XERA_SECOND_PHASE = 16286
    # Bastion of the Penitent
    CAIRN = 17194
    MURSAAT_OVERSEER = 17172
    SAMAROG = 17188
    DEIMOS = 17154
    # Hall of Chains
    SOULLESS_HORROR = 19767
    DHUUM = 19450
    # Mythwright Gambit
    CONJURED_AMALGAMATE = 43974
    NIKARE = 21105
    KENUT = 21089
    QADIM = 20934
    # Special Forces Training Area
    STANDARD_KITTY_GOLEM = 16199
    MEDIUM_KITTY_GOLEM = 19645
    LARGE_KITTY_GOLEM = 19676


PROFESSION_ICON_URLS: Dict[Profession, str] = {
    Profession.WARRIOR: "https://wiki.guildwars2.com/images/4/43/Warrior_tango_icon_20px.png",
    Profession.GUARDIAN: "https://wiki.guildwars2.com/images/8/8c/Guardian_tango_icon_20px.png",
    Profession.REVENANT: "https://wiki.guildwars2.com/images/b/b5/Revenant_tango_icon_20px.png",
    Profession.RANGER: "https://wiki.guildwars2.com/images/4/43/Ranger_tango_icon_20px.png",
    Profession.THIEF: "https://wiki.guildwars2.com/images/7/7a/Thief_tango_icon_20px.png",
    Profession.ENGINEER: "https://wiki.guildwars2.com/images/2/27/Engineer_tango_icon_20px.png",
    Profession.NECROMANCER: "https://wiki.guildwars2.com/images/4/43/Necromancer_tango_icon_20px.png",
    Profession.ELEMENTALIST: "https://wiki.guildwars2.com/images/a/aa/Elementalist_tango_icon_20px.png",
    Profession.MESMER: "https://wiki.guildwars2.com/images/6/60/Mesmer_tango_icon_20px.png",
}

ELITE_SPECIALIZATION_ICON_URLS: Dict[EliteSpecialization, str] = {
    EliteSpecialization.BERSERKER: "https://wiki.guildwars2.com/images/d/da/Berserker_tango_icon_20px.png",
    EliteSpecialization.SPELLBREAKER: "https://wiki.guildwars2.com/images/e/ed/Spellbreaker_tango_icon_20px.png",
    EliteSpecialization.DRAGONHUNTER: "https://wiki.guildwars2.com/images/c/c9/Dragonhunter_tango_icon_20px.png",
    EliteSpecialization.FIREBRAND: "https://wiki.guildwars2.com/images/0/02/Firebrand_tango_icon_20px.png",
    EliteSpecialization.HERALD: "https://wiki.guildwars2.com/images/6/67/Herald_tango_icon_20px.png",
    EliteSpecialization.RENEGADE: "https://wiki.guildwars2.com/images/7/7c/Renegade_tango_icon_20px.png",
    EliteSpecialization.DRUID: "https://wiki.guildwars2.com/images/d/d2/Druid_tango_icon_20px.png",
    EliteSpecialization.SOULBEAST: "https://wiki.guildwars2.com/images/7/7c/Soulbeast_tango_icon_20px.png",
    EliteSpecialization.DAREDEVIL: "https://wiki.guildwars2.com/images/e/e1/Daredevil_tango_icon_20px.png",
    EliteSpecialization.DEADEYE: "https://wiki.guildwars2.com/images/c/c9/Deadeye_tango_icon_20px.png",
    EliteSpecialization.SCRAPPER: "https://wiki.guildwars2.com/images/b/be/Scrapper_tango_icon_20px.png",
    EliteSpecialization.HOLOSMITH: "https://wiki.guildwars2.com/images/2/28/Holosmith_tango_icon_20px.png",
    EliteSpecialization.REAPER: "https://wiki.guildwars2.com/images/1/11/Reaper_tango_icon_20px.png",
    EliteSpecialization.SCOURGE: "https://wiki.guildwars2.com/images/0/06/Scourge_tango_icon_20px.png",
    EliteSpecialization.TEMPEST: "https://wiki.guildwars2.com/images/4/4a/Tempest_tango_icon_20px.png",
    EliteSpecialization.WEAVER: "https://wiki.guildwars2.com/images/f/fc/Weaver_tango_icon_20px.png",
    EliteSpecialization.CHRONOMANCER: "https://wiki.guildwars2.com/images/f/f4/Chronomancer_tango_icon_20px.png",
    EliteSpecialization.MIRAGE: "https://wiki.guildwars2.com/images/d/df/Mirage_tango_icon_20px.png",
}


def get_profession(profession_id: int) -> Profession:
    """Map a raw profession id to a Profession, NONE when unknown."""
    try:
        return Profession(profession_id)
    except ValueError:
        return Profession.NONE


def get_elite_specialization(profession: Profession, elite_id: int) -> Optional[EliteSpecialization]:
    """
    Resolve the elite specialization of a player.

    Args:
        profession: Already resolved profession
        elite_id: Raw is_elite value from the agent table

    Returns:
        EliteSpecialization, or None if the id is not known
    """
    if elite_id == LEGACY_ELITE_FLAG:
        return HEART_OF_THORNS_SPECS.get(profession)
    try:
        return EliteSpecialization(elite_id)
    except ValueError:
        return None


def get_weapon_set(raw_value: int) -> WeaponSet:
    """Map the raw weapon set id of a weapon swap to a WeaponSet."""
    try:
        return WeaponSet(raw_value)
    except ValueError:
        return WeaponSet.UNKNOWN


def get_boon_name(buff_id: int) -> str:
    """Get the display name of a boon."""
    return BOON_NAMES.get(buff_id, f"Buff {buff_id}")


def get_tiny_profession_icon_url(profession: Profession,
                                 elite: Optional[EliteSpecialization]) -> Optional[str]:
    """Get the 20px profession icon url used next to player names."""
    if elite is None or elite == EliteSpecialization.NONE:
        return PROFESSION_ICON_URLS.get(profession)
    return ELITE_SPECIALIZATION_ICON_URLS.get(elite, PROFESSION_ICON_URLS.get(profession))
