"""
Roundscope - Constants

Game constants, side encodings and event names shared by the statistics
and replay paths.
"""

from enum import Enum, StrEnum


class Side(int, Enum):
    """CS2 team numbers for the two playing sides."""

    T = 2
    CT = 3

    @property
    def label(self) -> str:
        return "CT" if self is Side.CT else "T"

    @property
    def opposite(self) -> "Side":
        return Side.T if self is Side.CT else Side.CT


class EventKind(StrEnum):
    """Canonical event kinds produced by the event normalizer."""

    TEAM_ASSIGN = "team_assign"
    DEATH = "death"
    DAMAGE = "damage"
    ROUND_END = "round_end"
    ROUND_START = "round_start"
    GRENADE_THROWN = "grenade_thrown"
    GRENADE_DETONATED = "grenade_detonated"
    WEAPON_FIRED = "weapon_fired"
    PLAYER_BLINDED = "player_blinded"
    BOMB_PICKUP = "bomb_pickup"
    BOMB_DROPPED = "bomb_dropped"
    BOMB_PLANTED = "bomb_planted"
    BOMB_DEFUSED = "bomb_defused"
    BOMB_EXPLODED = "bomb_exploded"
    UNKNOWN = "unknown"


class GrenadeCategory(StrEnum):
    """Detonation/ignition categories, named as the replay frontend expects."""

    SMOKE = "smoke"
    FIRE = "fire"
    HE = "he"
    FLASH = "flash"


BOMB_EVENT_KINDS = frozenset(
    {
        EventKind.BOMB_PICKUP,
        EventKind.BOMB_DROPPED,
        EventKind.BOMB_PLANTED,
        EventKind.BOMB_DEFUSED,
        EventKind.BOMB_EXPLODED,
    }
)

# Raw game event name -> canonical kind
RAW_EVENT_KINDS = {
    "player_team": EventKind.TEAM_ASSIGN,
    "player_death": EventKind.DEATH,
    "player_hurt": EventKind.DAMAGE,
    "round_end": EventKind.ROUND_END,
    "round_freeze_end": EventKind.ROUND_START,
    "grenade_thrown": EventKind.GRENADE_THROWN,
    "smokegrenade_detonate": EventKind.GRENADE_DETONATED,
    "hegrenade_detonate": EventKind.GRENADE_DETONATED,
    "flashbang_detonate": EventKind.GRENADE_DETONATED,
    "inferno_startburn": EventKind.GRENADE_DETONATED,
    "weapon_fire": EventKind.WEAPON_FIRED,
    "player_blind": EventKind.PLAYER_BLINDED,
    "bomb_pickup": EventKind.BOMB_PICKUP,
    "bomb_dropped": EventKind.BOMB_DROPPED,
    "bomb_planted": EventKind.BOMB_PLANTED,
    "bomb_defused": EventKind.BOMB_DEFUSED,
    "bomb_exploded": EventKind.BOMB_EXPLODED,
}

# Raw detonation event name -> grenade category
DETONATION_CATEGORIES = {
    "smokegrenade_detonate": GrenadeCategory.SMOKE,
    "hegrenade_detonate": GrenadeCategory.HE,
    "flashbang_detonate": GrenadeCategory.FLASH,
    "inferno_startburn": GrenadeCategory.FIRE,
}

# Weapon name substrings a throw must contain to cause an effect of the category
GRENADE_WEAPON_PATTERNS = {
    GrenadeCategory.SMOKE: ("smokegrenade",),
    GrenadeCategory.HE: ("hegrenade",),
    GrenadeCategory.FLASH: ("flashbang",),
    GrenadeCategory.FIRE: ("molotov", "incgrenade"),
}

# How long each effect stays on the radar after detonation (seconds)
GRENADE_EFFECT_SECONDS = {
    GrenadeCategory.SMOKE: 20.0,
    GrenadeCategory.FIRE: 7.0,
    GrenadeCategory.HE: 2.0,
    GrenadeCategory.FLASH: 0.5,
}

# Events requested from the decoder for each query
STATS_EVENTS = [
    "player_death",
    "round_end",
    "player_team",
    "player_hurt",
    "round_freeze_end",
]

REPLAY_EVENTS = [
    "player_death",
    "weapon_fire",
    "player_blind",
    "grenade_thrown",
    "smokegrenade_detonate",
    "hegrenade_detonate",
    "flashbang_detonate",
    "inferno_startburn",
    "bomb_pickup",
    "bomb_dropped",
    "bomb_planted",
    "bomb_defused",
    "bomb_exploded",
]

# Snapshot props requested from the decoder
SNAPSHOT_FIELDS = [
    "X",
    "Y",
    "Z",
    "yaw",
    "team_num",
    "health",
    "armor_value",
    "has_helmet",
    "has_defuser",
    "active_weapon_name",
    "inventory",
]

# CS2 uses 64 tick universally with the subtick system
CS2_TICK_RATE = 64

# Seconds from plant to explosion
BOMB_FUSE_SECONDS = 40.0

# MR12 regulation half and MR3 overtime half
REGULATION_HALF_ROUNDS = 12
OVERTIME_HALF_ROUNDS = 3

# Round end reason codes -> display text
ROUND_END_REASONS = {
    "target_bombed": "Bomb Exploded",
    "bomb_defused": "Bomb Defused",
    "t_killed": "Terrorists Eliminated",
    "ct_killed": "CTs Eliminated",
    "time_ran_out": "Time Expired",
    "ct_surrender": "CT Surrender",
    "t_surrender": "T Surrender",
}
