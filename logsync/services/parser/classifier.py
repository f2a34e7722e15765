"""
Game.log line classifier.

Matches one raw log line against a fixed, ordered set of patterns and
produces at most one Event. The first matching pattern wins.

SCOPE:
- Timestamp extraction and normalization
- Field extraction for the recognized event shapes
- Session tracking (current player name / id) via ClassifierSession

DOES NOT:
- Deduplicate or store events (see events.store)
- Talk to the network (side effects are carried out by the timeline service)
"""
import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from logsync.services.events.model import (
    Event,
    KIND_ACTOR_DEATH,
    KIND_DESTRUCTION,
    KIND_INVENTORY,
    KIND_LOGIN,
    KIND_SHIP_DESTRUCTION,
    KIND_SYSTEM_QUIT,
    KIND_VEHICLE_CONTROL_FLOW,
    make_event_id,
)
from logsync.services.parser.names import prettify_name, ship_type
from logsync.services.parser.timestamps import (
    extract_line_timestamp,
    normalize_timestamp,
    timestamp_sort_key,
)

# Login: "AccountLoginCharacterStatus_Character - name TestPlayer EntityId[1234567890]"
LOGIN_MARKER = 'AccountLoginCharacterStatus_Character'
LOGIN_NAME = re.compile(r'- name (\S+)')
LOGIN_ENTITY_ID = re.compile(r'EntityId\[(.*?)\]')

# Inventory: "<RequestLocationInventory> Player[TestPlayer] Location[Port_Olisar]"
INVENTORY_MARKER = '<RequestLocationInventory>'
INVENTORY_PLAYER = re.compile(r'Player\[([^\]]+)\]')
INVENTORY_LOCATION = re.compile(r'Location\[([^\]]+)\]')

# Actor death, all eleven groups required
ACTOR_DEATH_MARKER = '<Actor Death>'
ACTOR_DEATH = re.compile(
    r"'([^']+)' \[(\d+)\] in zone '([^']+)' "
    r"killed by '([^']+)' \[(\d+)\] "
    r"using '([^']+)' \[Class ([^\]]+)\] "
    r"with damage type '([^']+)' "
    r"from direction x: ([\d.\-]+), y: ([\d.\-]+), z: ([\d.\-]+)"
)

# Vehicle destruction
VEHICLE_DESTRUCTION_MARKER = '<Vehicle Destruction>'
VEHICLE_NAME = re.compile(r"Vehicle '(.*?)' \[(.*?)\]")
VEHICLE_CAUSE = re.compile(r"caused by '(.*?)' \[.*?\]")
VEHICLE_DESTROY_LEVEL = re.compile(r"destroyLevel from '(.*?)' to '(.*?)'")

SHIP_DESTRUCTION_MARKER = '<Ship Destruction>'
SYSTEM_QUIT_MARKER = '<SystemQuit>'

# Boarding: "... 'AEGS_Gladius_1' [12345]"
VEHICLE_CONTROL_MARKER = '<Vehicle Control Flow>'
BOARDED_SHIP = re.compile(r"'([A-Za-z0-9_]+)_\d+'")
BOARDED_SHIP_ID = re.compile(r"'[A-Za-z0-9_]+_\d+'\s*\[(\d+)\]")


@dataclass(frozen=True)
class ClassifierSession:
    """Who is playing, as learned from login lines."""
    player_name: Optional[str] = None
    player_id: Optional[str] = None


@dataclass(frozen=True)
class ClassifyResult:
    event: Optional[Event]
    session: ClassifierSession
    identity_changed: bool = False


@dataclass(frozen=True)
class _LineContext:
    line: str
    timestamp: str
    owner_id: str
    session: ClassifierSession


def _event(ctx: _LineContext, emoji: str, text: str, kind: str, metadata=None) -> Event:
    return Event(
        id=make_event_id(ctx.timestamp, ctx.line),
        owner_id=ctx.owner_id,
        timestamp=ctx.timestamp,
        display_text=text,
        source_line=ctx.line,
        kind=kind,
        metadata=metadata,
        emoji=emoji,
        player=ctx.session.player_name,
    )


def _match_login(ctx: _LineContext) -> Optional[Tuple[Optional[Event], ClassifierSession]]:
    if LOGIN_MARKER not in ctx.line:
        return None
    name_match = LOGIN_NAME.search(ctx.line)
    if not name_match:
        return None
    name = name_match.group(1)
    id_match = LOGIN_ENTITY_ID.search(ctx.line)
    if id_match and id_match.group(1):
        player_id = id_match.group(1)
    elif name == ctx.session.player_name:
        player_id = ctx.session.player_id
    else:
        player_id = None
    session = replace(ctx.session, player_name=name, player_id=player_id)
    event = _event(replace(ctx, session=session), '🛜', f"{name} connected", KIND_LOGIN,
                   {"playerName": name, "playerId": player_id})
    return event, session


def _match_inventory(ctx: _LineContext) -> Optional[Event]:
    if INVENTORY_MARKER not in ctx.line:
        return None
    player_match = INVENTORY_PLAYER.search(ctx.line)
    if not player_match or not ctx.session.player_name:
        return None
    if player_match.group(1) != ctx.session.player_name:
        return None
    location_match = INVENTORY_LOCATION.search(ctx.line)
    location = location_match.group(1) if location_match else 'unknown location'
    return _event(ctx, '📦', f"{ctx.session.player_name} requested inventory at {location}",
                  KIND_INVENTORY, {"location": location})


def _death_metadata(match) -> dict:
    (victim_name, victim_id, zone, killer_name, killer_id, weapon_instance,
     weapon_class, damage_type, x, y, z) = match.groups()
    return {
        "victimName": victim_name,
        "victimId": victim_id,
        "zone": zone,
        "killerName": killer_name,
        "killerId": killer_id,
        "weaponInstance": weapon_instance,
        "weaponClass": weapon_class,
        "damageType": damage_type,
        "direction": {"x": x, "y": y, "z": z},
    }


def _match_self_death(ctx: _LineContext) -> Optional[Event]:
    player = ctx.session.player_name
    if ACTOR_DEATH_MARKER not in ctx.line or not player:
        return None
    if f"CActor::Kill: '{player}'" not in ctx.line:
        return None
    match = ACTOR_DEATH.search(ctx.line)
    if not match or match.group(1) != player:
        return None
    meta = _death_metadata(match)
    killer = prettify_name(meta["killerName"])
    if meta["killerName"] == player:
        text = f"{player} died ({meta['damageType']}) in {meta['zone']}"
    else:
        text = f"{player} was killed by {killer} using {meta['weaponClass']} in {meta['zone']}"
    return _event(ctx, '💀', text, KIND_ACTOR_DEATH, meta)


def _match_other_death(ctx: _LineContext) -> Optional[Event]:
    if ACTOR_DEATH_MARKER not in ctx.line:
        return None
    match = ACTOR_DEATH.search(ctx.line)
    if not match:
        return None
    meta = _death_metadata(match)
    victim = prettify_name(meta["victimName"])
    killer = prettify_name(meta["killerName"])
    text = f"{killer} killed {victim} using {meta['weaponClass']} ({meta['damageType']})"
    return _event(ctx, '🗡️', text, KIND_ACTOR_DEATH, meta)


def _match_vehicle_destruction(ctx: _LineContext) -> Optional[Event]:
    if VEHICLE_DESTRUCTION_MARKER not in ctx.line:
        return None
    vehicle_match = VEHICLE_NAME.search(ctx.line)
    cause_match = VEHICLE_CAUSE.search(ctx.line)
    level_match = VEHICLE_DESTROY_LEVEL.search(ctx.line)
    if not (vehicle_match and cause_match and level_match):
        return None
    vehicle_name, vehicle_id = vehicle_match.groups()
    destroyer = prettify_name(cause_match.group(1))
    level_from, level_to = level_match.groups()
    kind_label = ship_type(vehicle_name)
    meta = {
        "vehicleName": vehicle_name,
        "vehicleId": vehicle_id,
        "shipType": kind_label,
        "destroyerName": destroyer,
        "destroyLevelFrom": level_from,
        "destroyLevelTo": level_to,
    }
    text = f"{kind_label} destroyed by {destroyer} ({level_from} -> {level_to})"
    return _event(ctx, '💥', text, KIND_DESTRUCTION, meta)


def _match_ship_destruction(ctx: _LineContext) -> Optional[Event]:
    if SHIP_DESTRUCTION_MARKER not in ctx.line:
        return None
    body = ctx.line.split(SHIP_DESTRUCTION_MARKER, 1)[1].strip()
    return _event(ctx, '🔥', f"Ship destruction: {body}" if body else "Ship destruction",
                  KIND_SHIP_DESTRUCTION)


def _match_system_quit(ctx: _LineContext) -> Optional[Event]:
    if SYSTEM_QUIT_MARKER not in ctx.line:
        return None
    who = ctx.session.player_name or 'Player'
    return _event(ctx, '👋', f"{who} quit the game", KIND_SYSTEM_QUIT)


def _match_boarding(ctx: _LineContext) -> Optional[Event]:
    if VEHICLE_CONTROL_MARKER not in ctx.line:
        return None
    ship_match = BOARDED_SHIP.search(ctx.line)
    if not ship_match:
        return None
    vehicle_name = ship_match.group(1)
    id_match = BOARDED_SHIP_ID.search(ctx.line)
    vehicle_id = id_match.group(1) if id_match else None
    kind_label = ship_type(vehicle_name)
    who = ctx.session.player_name or 'Player'
    meta = {"vehicleName": vehicle_name, "vehicleId": vehicle_id, "shipType": kind_label}
    return _event(ctx, '🚀', f"{who} boarded {kind_label}", KIND_VEHICLE_CONTROL_FLOW, meta)


# Priority order matters: the first matcher that returns an event wins.
_EVENT_MATCHERS: List[Callable[[_LineContext], Optional[Event]]] = [
    _match_inventory,
    _match_self_death,
    _match_other_death,
    _match_vehicle_destruction,
    _match_ship_destruction,
    _match_system_quit,
    _match_boarding,
]


def classify_line(
    line: str,
    session: ClassifierSession,
    owner_id: str,
    cutoff: Optional[str] = None,
) -> ClassifyResult:
    """Classify one log line.

    Returns the (possibly updated) session alongside the event so callers
    thread session state explicitly. Events older than ``cutoff`` are
    discarded, but login lines still update the session.
    """
    line = line.rstrip('\r\n')
    if not line.strip():
        return ClassifyResult(None, session)

    ctx = _LineContext(
        line=line,
        timestamp=normalize_timestamp(extract_line_timestamp(line)),
        owner_id=owner_id,
        session=session,
    )

    event = None
    new_session = session
    login = _match_login(ctx)
    if login is not None:
        event, new_session = login
    else:
        for matcher in _EVENT_MATCHERS:
            event = matcher(ctx)
            if event is not None:
                break

    identity_changed = new_session.player_name != session.player_name
    if event is not None and cutoff and timestamp_sort_key(event.timestamp) < timestamp_sort_key(cutoff):
        event = None
    return ClassifyResult(event, new_session, identity_changed)


def classify_lines(
    lines: List[str],
    session: ClassifierSession,
    owner_id: str,
    cutoff: Optional[str] = None,
) -> Tuple[List[Event], ClassifierSession, bool]:
    """Classify a batch; returns (events, final session, identity changed)."""
    events: List[Event] = []
    changed = False
    for line in lines:
        result = classify_line(line, session, owner_id, cutoff)
        session = result.session
        changed = changed or result.identity_changed
        if result.event is not None:
            events.append(result.event)
    return events, session, changed
