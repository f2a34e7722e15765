"""
Ordered, deduplicated event store.

merge() is the single choke point for local parses, remote single-event
pushes and remote bulk resyncs: union by id (first occurrence wins), then a
stable sort by timestamp. Persistence rewrites the whole JSON array.
"""
import json
import os
import tempfile
import threading
from typing import Any, Dict, Iterable, List, Optional

from logsync.errors import StoreError
from logsync.services.events.model import Event
from logsync.services.parser.timestamps import timestamp_sort_key
from logsync.services.shared.observability import _logger


def dedupe_and_sort(events: Iterable[Event]) -> List[Event]:
    seen = set()
    deduped: List[Event] = []
    for event in events:
        if event.id in seen:
            continue
        seen.add(event.id)
        deduped.append(event)
    # sorted() is stable: equal timestamps keep arrival order
    return sorted(deduped, key=lambda e: timestamp_sort_key(e.timestamp))


def _salvage_records(text: str) -> List[Dict[str, Any]]:
    """Recover whatever top-level objects still decode from a damaged file."""
    decoder = json.JSONDecoder()
    records: List[Dict[str, Any]] = []
    idx = text.find('{')
    while idx != -1:
        try:
            obj, end = decoder.raw_decode(text, idx)
        except ValueError:
            idx = text.find('{', idx + 1)
            continue
        if isinstance(obj, dict):
            records.append(obj)
        idx = text.find('{', end)
    return records


class EventStore:
    """Thread-safe event timeline backed by a JSON file."""

    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._events: List[Event] = []
        self._lock = threading.Lock()

    @property
    def path(self) -> Optional[str]:
        return self._path

    def merge(self, batch: Iterable[Event]) -> int:
        """Merge a batch in; returns how many events were new."""
        batch = list(batch)
        if not batch:
            return 0
        with self._lock:
            before = len(self._events)
            self._events = dedupe_and_sort(self._events + batch)
            return len(self._events) - before

    def events(self) -> List[Event]:
        with self._lock:
            return list(self._events)

    def events_for_owner(self, owner_id: str) -> List[Event]:
        with self._lock:
            return [e for e in self._events if e.owner_id == owner_id]

    def __len__(self):
        with self._lock:
            return len(self._events)

    def toggle_open(self, event_id: str) -> Optional[bool]:
        with self._lock:
            for event in self._events:
                if event.id == event_id:
                    event.open = not event.open
                    return event.open
        return None

    def reset(self) -> None:
        """Drop the in-memory timeline without touching disk."""
        with self._lock:
            self._events = []

    def clear(self) -> None:
        with self._lock:
            self._events = []
        self.persist()

    def persist(self) -> None:
        if not self._path:
            return
        with self._lock:
            payload = [e.to_dict() for e in self._events]
        directory = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.events-', suffix='.json')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StoreError(f"Failed to write {self._path}: {e}") from e

    def load(self) -> List[Event]:
        """Load from disk, re-running dedup/sort. Never raises on bad content."""
        events: List[Event] = []
        if self._path and os.path.exists(self._path):
            try:
                with open(self._path, 'r', encoding='utf-8', errors='replace') as f:
                    text = f.read()
            except OSError as e:
                _logger.warning(f"Could not read event store {self._path}: {e}")
                text = ""
            events = self._decode(text)
        with self._lock:
            self._events = dedupe_and_sort(events)
            return list(self._events)

    def _decode(self, text: str) -> List[Event]:
        if not text.strip():
            return []
        try:
            records = json.loads(text)
        except ValueError:
            records = _salvage_records(text)
            _logger.warning(f"Event store {self._path} is damaged, recovered {len(records)} records")
        if not isinstance(records, list):
            records = [records] if isinstance(records, dict) else []
        events = []
        for record in records:
            event = Event.from_dict(record)
            if event is not None:
                events.append(event)
        return events
