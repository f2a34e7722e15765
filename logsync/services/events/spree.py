"""
Killing spree aggregation.

Folds consecutive kills by the same killer into one synthetic
``killing_spree`` event. Pure: derived from the flat store on demand and
never persisted.
"""
from collections import OrderedDict
from typing import Dict, List, Optional, Set

from logsync.config import SPREE_MIN_KILLS, SPREE_WINDOW_S
from logsync.services.events.model import Event, KIND_ACTOR_DEATH, KIND_KILLING_SPREE
from logsync.services.parser.names import prettify_name
from logsync.services.parser.timestamps import timestamp_sort_key

SPREE_ID_SUFFIX = "-spree"

# Deaths caused by ships rather than by a hand on a trigger
VEHICLE_DAMAGE_TYPES = {"vehicledestruction", "crash", "selfdestruct"}

_TRIVIAL_KILLERS = {"", "unknown", "0"}


def _killer_key(meta: Dict) -> Optional[str]:
    killer_id = str(meta.get("killerId") or "").strip()
    killer_name = str(meta.get("killerName") or "").strip()
    if killer_name.lower() in _TRIVIAL_KILLERS or 'unknown' in killer_name.lower():
        return None
    if killer_id and killer_id not in _TRIVIAL_KILLERS:
        return f"id:{killer_id}"
    return f"name:{killer_name}"


def _qualifies(event: Event) -> bool:
    if event.kind != KIND_ACTOR_DEATH or not event.metadata:
        return False
    meta = event.metadata
    if _killer_key(meta) is None:
        return False
    if meta.get("killerName") == meta.get("victimName"):
        return False
    if meta.get("killerId") and meta.get("killerId") == meta.get("victimId"):
        return False
    damage_type = str(meta.get("damageType") or "").lower()
    return damage_type not in VEHICLE_DAMAGE_TYPES


def _build_spree(kills: List[Event]) -> Event:
    first, last = kills[0], kills[-1]
    meta = first.metadata or {}
    killer = prettify_name(meta.get("killerName"))
    return Event(
        id=f"{first.id}{SPREE_ID_SUFFIX}",
        owner_id=first.owner_id,
        timestamp=first.timestamp,
        display_text=f"{killer} is on a killing spree ({len(kills)} kills)",
        source_line="",
        kind=KIND_KILLING_SPREE,
        metadata={
            "killerName": meta.get("killerName"),
            "killerId": meta.get("killerId"),
            "killCount": len(kills),
            "startedAt": first.timestamp,
            "endedAt": last.timestamp,
        },
        emoji='🔥',
        player=first.player,
        children=list(kills),
    )


def aggregate_sprees(
    events: List[Event],
    window_s: float = SPREE_WINDOW_S,
    min_kills: int = SPREE_MIN_KILLS,
) -> List[Event]:
    """Return the display projection of a time-ordered, deduplicated list.

    A kill joins the current run while the gap to the previous kill in that
    run is strictly below ``window_s``. Runs of at least ``min_kills`` kills
    become aggregates; their kills are removed from the flat output.
    Existing aggregates and their children are left alone, so feeding the
    output back in changes nothing.
    """
    already_folded: Set[str] = set()
    for event in events:
        if event.kind == KIND_KILLING_SPREE:
            already_folded.update(child.id for child in event.children)

    by_killer: "OrderedDict[str, List[Event]]" = OrderedDict()
    for event in events:
        if event.id in already_folded or not _qualifies(event):
            continue
        by_killer.setdefault(_killer_key(event.metadata), []).append(event)

    folded: Set[str] = set()
    sprees: List[Event] = []
    for kills in by_killer.values():
        kills = sorted(kills, key=lambda e: timestamp_sort_key(e.timestamp))
        run: List[Event] = []
        for kill in kills:
            if run and timestamp_sort_key(kill.timestamp) - timestamp_sort_key(run[-1].timestamp) >= window_s:
                if len(run) >= min_kills:
                    sprees.append(_build_spree(run))
                    folded.update(k.id for k in run)
                run = []
            run.append(kill)
        if len(run) >= min_kills:
            sprees.append(_build_spree(run))
            folded.update(k.id for k in run)

    if not sprees:
        return [e for e in events if e.id not in already_folded]

    output = [e for e in events if e.id not in folded and e.id not in already_folded]
    output.extend(sprees)
    return sorted(output, key=lambda e: timestamp_sort_key(e.timestamp))
