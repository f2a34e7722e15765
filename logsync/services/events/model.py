import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from logsync.services.parser.timestamps import SOURCE_TS_PATTERN, normalize_timestamp

KIND_LOGIN = "login"
KIND_INVENTORY = "inventory"
KIND_ACTOR_DEATH = "actor_death"
KIND_DESTRUCTION = "destruction"
KIND_SHIP_DESTRUCTION = "ship_destruction"
KIND_SYSTEM_QUIT = "system_quit"
KIND_VEHICLE_CONTROL_FLOW = "vehicle_control_flow"
KIND_KILLING_SPREE = "killing_spree"


def make_event_id(timestamp: str, line: str) -> str:
    """Content-derived id: re-parsing the same line always yields the same id."""
    digest = hashlib.sha1(f"{timestamp}|{line}".encode("utf-8")).hexdigest()
    return digest[:20]


@dataclass
class Event:
    id: str
    owner_id: str
    timestamp: str
    display_text: str
    source_line: str = ""
    kind: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    emoji: str = ""
    player: Optional[str] = None
    children: List["Event"] = field(default_factory=list)
    open: bool = False  # UI-only expanded flag

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "ownerId": self.owner_id,
            "timestamp": self.timestamp,
            "displayText": self.display_text,
            "sourceLine": self.source_line,
            "emoji": self.emoji,
            "player": self.player,
            "open": self.open,
        }
        if self.kind:
            data["kind"] = self.kind
        if self.metadata is not None:
            data["metadata"] = self.metadata
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Event"]:
        """Build an Event from a wire/disk record, or None if it is unusable."""
        if not isinstance(data, dict):
            return None
        event_id = data.get("id")
        timestamp = data.get("timestamp")
        if not isinstance(event_id, str) or not event_id:
            return None
        if not isinstance(timestamp, str) or not timestamp:
            return None
        if SOURCE_TS_PATTERN.search(timestamp):
            # Game-format text from an older peer
            timestamp = normalize_timestamp(timestamp)
        metadata = data.get("metadata")
        children = []
        for raw_child in data.get("children") or []:
            child = cls.from_dict(raw_child)
            if child is not None:
                children.append(child)
        return cls(
            id=event_id,
            owner_id=str(data.get("ownerId") or data.get("userId") or ""),
            timestamp=timestamp,
            display_text=str(data.get("displayText") or data.get("line") or ""),
            source_line=str(data.get("sourceLine") or data.get("original") or ""),
            kind=data.get("kind") or data.get("eventType") or None,
            metadata=metadata if isinstance(metadata, dict) else None,
            emoji=str(data.get("emoji") or ""),
            player=data.get("player") if isinstance(data.get("player"), str) else None,
            children=children,
            open=bool(data.get("open", False)),
        )

    def __repr__(self):
        return f"<Event {self.kind or 'text'} {self.timestamp} {self.id}>"
