"""
Timeline service: wires the tail reader, classifier, event store and sync
handler together.

Both the file watcher and the watchdog call process_tick(); inbound remote
events reach the same store through the sync handler. The display projection
is the spree-aggregated view of the store, cached until the next merge.
"""
import threading
from typing import Any, Dict, List, Optional, Set

from logsync.config import (
    AUTH_TOKEN,
    API_BASE_URL,
    EVENTS_STORE_PATH,
    GAME_LOG_PATH,
    LOCAL_USER_ID,
    RECONNECT_DELAY,
    SPREE_MIN_KILLS,
    SPREE_WINDOW_S,
    SYNC_SERVER_URL,
    USER_TIMEZONE,
)
from logsync.core.app_state import add_app_log, get_counters, record_lines_processed
from logsync.errors import NotSignedInError, StoreError
from logsync.services.events.model import Event, KIND_KILLING_SPREE
from logsync.services.events.spree import aggregate_sprees
from logsync.services.events.store import EventStore
from logsync.services.parser.classifier import ClassifierSession, classify_lines
from logsync.services.parser.timestamps import now_canonical
from logsync.services.shared.observability import _logger, instrument_service
from logsync.services.sync.api_client import ApiClient
from logsync.services.sync.connection import ConnectionManager
from logsync.services.sync.handler import SyncProtocolHandler
from logsync.services.tail.reader import Cursor, TailReader


class TimelineService:
    def __init__(
        self,
        store: EventStore,
        reader: TailReader,
        connection: ConnectionManager,
        handler: SyncProtocolHandler,
        authenticated: bool = False,
        window_s: float = SPREE_WINDOW_S,
        min_kills: int = SPREE_MIN_KILLS,
    ):
        self.store = store
        self.reader = reader
        self.connection = connection
        self.handler = handler
        self._authenticated = authenticated
        self._window_s = window_s
        self._min_kills = min_kills
        self._session = ClassifierSession()
        self._tick_lock = threading.Lock()
        self._projection_lock = threading.Lock()
        self._projection: Optional[List[Event]] = None
        self._open_sprees: Set[str] = set()
        handler.add_listener(self._on_remote_events)

    @property
    def session(self) -> ClassifierSession:
        return self._session

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    # ----- lifecycle -----
    def start(self) -> None:
        """Load persisted events and open the realtime connection if signed in."""
        loaded = self.store.load()
        add_app_log(f"Loaded {len(loaded)} events from {self.store.path}", "INFO")
        self._invalidate()
        try:
            self._require_sign_in()
        except NotSignedInError as e:
            self.connection.set_error(str(e))
            add_app_log(str(e), "WARN")
            return
        self.connection.connect()

    def _require_sign_in(self) -> None:
        if not self._authenticated or not self.handler.local_user_id:
            raise NotSignedInError("Not signed in")

    def shutdown(self) -> None:
        self.connection.close()
        if self._authenticated:
            self._persist()

    # ----- tail pipeline -----
    @instrument_service("TimelineService.process_tick")
    def process_tick(self) -> List[Event]:
        """Read newly appended lines and fold the resulting events into the store."""
        with self._tick_lock:
            batch = self.reader.read_new()
            if batch.truncated:
                self.store.reset()
                self._invalidate()
                add_app_log("Game log was truncated, rebuilding timeline", "INFO")
            if not batch.lines:
                if batch.truncated:
                    record_lines_processed(0, 0, truncated=True)
                return []

            events, session, identity_changed = classify_lines(
                batch.lines,
                self._session,
                self.handler.local_user_id,
                self.reader.cursor.active_cutoff,
            )
            self._session = session
            if events:
                self.store.merge(events)
                self._invalidate()

        if events:
            if self.connection.is_connected:
                for event in events:
                    self.handler.publish_event(event)
            if self._authenticated:
                self._persist()
        if identity_changed:
            _logger.info(f"Player identity is now {session.player_name} ({session.player_id})")
            self.handler.send_update_my_details(session.player_name, session.player_id)

        record_lines_processed(len(batch.lines), len(events), truncated=batch.truncated)
        return events

    def clear_logs(self) -> None:
        """Drop the whole timeline; lines already in the file stay suppressed."""
        with self._tick_lock:
            self.reader.reset(cutoff=now_canonical())
            try:
                self.store.clear()
            except StoreError as e:
                _logger.error(str(e))
            self._open_sprees.clear()
            self._invalidate()
        add_app_log("Timeline cleared", "INFO")

    def _persist(self) -> None:
        try:
            self.store.persist()
        except StoreError as e:
            _logger.error(str(e))

    # ----- projection -----
    def _invalidate(self) -> None:
        with self._projection_lock:
            self._projection = None

    def _on_remote_events(self, events: List[Event]) -> None:
        self._invalidate()

    def projection(self) -> List[Event]:
        with self._projection_lock:
            if self._projection is None:
                self._projection = aggregate_sprees(self.store.events(), self._window_s, self._min_kills)
            for event in self._projection:
                if event.kind == KIND_KILLING_SPREE:
                    event.open = event.id in self._open_sprees
            return list(self._projection)

    def toggle(self, event_id: str) -> Optional[bool]:
        """Flip the expanded flag of a stored event or a derived spree."""
        state = self.store.toggle_open(event_id)
        if state is not None:
            self._invalidate()
            return state
        with self._projection_lock:
            spree_ids = {e.id for e in self._projection or [] if e.kind == KIND_KILLING_SPREE}
            if event_id not in spree_ids:
                return None
            if event_id in self._open_sprees:
                self._open_sprees.discard(event_id)
                return False
            self._open_sprees.add(event_id)
            return True

    def stats(self) -> Dict[str, Any]:
        counters = get_counters()
        counters.update({
            "stored_events": len(self.store),
            "cursor": self.reader.cursor.to_dict(),
            "player_name": self._session.player_name,
            "player_id": self._session.player_id,
        })
        return counters


# ==================== Singleton ====================
_service: Optional[TimelineService] = None
_service_lock = threading.Lock()


def build_timeline_service(transport_factory=None) -> TimelineService:
    """Assemble a service from configuration."""
    if transport_factory is None:
        from logsync.services.sync.transport import websocket_transport_factory
        transport_factory = websocket_transport_factory
    store = EventStore(EVENTS_STORE_PATH)
    reader = TailReader(Cursor(GAME_LOG_PATH))
    connection = ConnectionManager(SYNC_SERVER_URL, transport_factory,
                                   user_id=LOCAL_USER_ID, reconnect_delay=RECONNECT_DELAY)
    api_client = ApiClient(API_BASE_URL, token=AUTH_TOKEN or None)
    handler = SyncProtocolHandler(store, connection, LOCAL_USER_ID, api_client, USER_TIMEZONE)
    connection.set_message_handler(handler.handle_message)
    return TimelineService(store, reader, connection, handler, authenticated=bool(AUTH_TOKEN))


def get_timeline_service() -> TimelineService:
    global _service
    with _service_lock:
        if _service is None:
            _service = build_timeline_service()
        return _service


def set_timeline_service(service: Optional[TimelineService]) -> None:
    global _service
    with _service_lock:
        _service = service
