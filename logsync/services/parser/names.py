"""Display-name helpers for actors and vehicles."""
from typing import Optional

UNKNOWN_NAME = "Unknown"
UNKNOWN_FLAGGED = "🤷 Unknown"
NPC_NAME = "🤖 NPC"
UNKNOWN_SHIP = "Unknown Ship"

# Substrings that mark an AI-controlled actor
NPC_MARKERS = ("PU_", "NPC_")

# Friendly ship types, matched as case-insensitive substrings of the entity name
SHIP_TYPES = [
    '325a',
    'c1',
    'a2',
    'warlock',
    'eclipse',
    'inferno',
    '85x',
    'mantis',
    'hornet',
    'fury',
    'gladius',
    'arrow',
    'carrack',
    'cutlass',
    'freelancer',
    'avenger',
    'nomad',
]


def is_npc(name: Optional[str]) -> bool:
    return bool(name) and any(marker in name for marker in NPC_MARKERS)


def prettify_name(name: Optional[str]) -> str:
    if not name:
        return UNKNOWN_NAME
    if 'unknown' in name.lower():
        return UNKNOWN_FLAGGED
    if is_npc(name):
        return NPC_NAME
    return name


def ship_type(vehicle_name: Optional[str]) -> str:
    if not vehicle_name:
        return UNKNOWN_SHIP
    lowered = vehicle_name.lower()
    for candidate in SHIP_TYPES:
        if candidate in lowered:
            return candidate
    return vehicle_name
