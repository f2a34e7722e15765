"""
Inbound message dispatch and outbound publishing for the realtime connection.

SCOPE:
- Route each inbound message by ``type`` through a handler table
- Accept remote events only from the local user or confirmed friends
- Track peer presence and push the local timeline to peers coming online

DOES NOT:
- Own the transport (see connection.py)
- Parse game log lines (see parser/)
"""
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from logsync.config import USER_TIMEZONE
from logsync.errors import StoreError
from logsync.services.events.model import Event
from logsync.services.events.store import EventStore
from logsync.services.shared.observability import _logger
from logsync.services.sync.api_client import ApiClient
from logsync.services.sync.connection import ConnectionManager
from logsync.services.sync.messages import (
    MSG_BATCH_LOGS,
    MSG_ERROR,
    MSG_LOG,
    MSG_REGISTERED,
    MSG_SYNC_LOGS,
    MSG_USER_OFFLINE,
    MSG_USER_ONLINE,
    events_from_message,
    log_message,
    parse_message,
    sync_logs_message,
    update_my_details_message,
)

FRIEND_CONFIRMED_STATUSES = ("confirmed", "accepted")

EventListener = Callable[[List[Event]], None]


class SyncProtocolHandler:
    def __init__(
        self,
        store: EventStore,
        connection: ConnectionManager,
        local_user_id: str,
        api_client: Optional[ApiClient] = None,
        timezone: str = USER_TIMEZONE,
    ):
        self._store = store
        self._connection = connection
        self._local_user_id = local_user_id
        self._api = api_client
        self._timezone = timezone
        self._lock = threading.Lock()
        self._profile: Optional[Dict[str, Any]] = None
        self._friends: Dict[str, Dict[str, Any]] = {}
        self._friend_requests: List[Dict[str, Any]] = []
        self._presence: Dict[str, Dict[str, Any]] = {}
        self._listeners: List[EventListener] = []
        self._handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            MSG_REGISTERED: self._on_registered,
            MSG_LOG: self._on_log,
            MSG_SYNC_LOGS: self._on_sync_logs,
            MSG_BATCH_LOGS: self._on_sync_logs,
            MSG_USER_ONLINE: self._on_user_online,
            MSG_USER_OFFLINE: self._on_user_offline,
            MSG_ERROR: self._on_error,
        }

    @property
    def local_user_id(self) -> str:
        return self._local_user_id

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    # ----- friends / presence -----
    def set_friends(self, friends: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._friends = {
                str(f["id"]): f for f in friends
                if isinstance(f, dict) and f.get("id")
            }

    def confirmed_friend_ids(self) -> List[str]:
        with self._lock:
            return [
                fid for fid, f in self._friends.items()
                if f.get("status") in FRIEND_CONFIRMED_STATUSES
            ]

    def accepts_owner(self, owner_id: str) -> bool:
        if not owner_id:
            return False
        if owner_id == self._local_user_id:
            return True
        with self._lock:
            friend = self._friends.get(owner_id)
        return bool(friend) and friend.get("status") in FRIEND_CONFIRMED_STATUSES

    def get_presence(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {peer: dict(info) for peer, info in self._presence.items()}

    def get_profile(self) -> Optional[Dict[str, Any]]:
        return self._profile

    def get_friend_requests(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._friend_requests)

    def refresh_remote_data(self) -> None:
        """Pull profile, friends and pending requests from the web API."""
        if self._api is None or not self._api.is_authenticated:
            return
        profile = self._api.fetch_profile()
        friends = self._api.fetch_friends()
        requests_ = self._api.fetch_friend_requests()
        if profile is not None:
            self._profile = profile
        self.set_friends(friends)
        with self._lock:
            self._friend_requests = requests_
        _logger.info(f"Refreshed remote data: {len(friends)} friends, {len(requests_)} pending requests")

    # ----- inbound -----
    def handle_message(self, raw: Any) -> bool:
        """Dispatch one inbound frame. Returns False for unknown or malformed input."""
        message = parse_message(raw)
        if message is None:
            return False
        handler = self._handlers.get(message["type"])
        if handler is None:
            _logger.debug(f"Ignoring message type {message['type']!r}")
            return False
        handler(message)
        return True

    def _on_registered(self, message: Dict[str, Any]) -> None:
        self.refresh_remote_data()

    def _on_log(self, message: Dict[str, Any]) -> None:
        event = Event.from_dict(message.get("log"))
        if event is None:
            return
        if not self.accepts_owner(event.owner_id):
            _logger.debug(f"Rejected event {event.id} from non-friend {event.owner_id}")
            return
        self._ingest([event])

    def _on_sync_logs(self, message: Dict[str, Any]) -> None:
        events = events_from_message(message)
        accepted = [e for e in events if self.accepts_owner(e.owner_id)]
        if len(accepted) != len(events):
            _logger.debug(f"Dropped {len(events) - len(accepted)} events from non-friends")
        self._ingest(accepted)

    def _on_user_online(self, message: Dict[str, Any]) -> None:
        peer_id = message.get("userId")
        if not isinstance(peer_id, str) or not peer_id:
            return
        self._set_presence(peer_id, True)
        stored = self._store.events()
        if stored:
            self._connection.send_json(sync_logs_message(stored, target_user_id=peer_id))

    def _on_user_offline(self, message: Dict[str, Any]) -> None:
        peer_id = message.get("userId")
        if isinstance(peer_id, str) and peer_id:
            self._set_presence(peer_id, False)

    def _on_error(self, message: Dict[str, Any]) -> None:
        error = message.get("message") or "Unknown server error"
        _logger.warning(f"Server error: {error}")
        self._connection.set_error(str(error))

    def _set_presence(self, peer_id: str, online: bool) -> None:
        with self._lock:
            self._presence[peer_id] = {"online": online, "since": time.time()}
            friend = self._friends.get(peer_id)
            if friend is not None:
                friend["isOnline"] = online

    def _ingest(self, events: List[Event]) -> None:
        if not events:
            return
        added = self._store.merge(events)
        if added == 0:
            return
        try:
            self._store.persist()
        except StoreError as e:
            _logger.error(str(e))
        for listener in list(self._listeners):
            listener(events)

    # ----- outbound -----
    def publish_event(self, event: Event) -> bool:
        return self._connection.send_json(log_message(event))

    def send_update_my_details(self, player_name: Optional[str], player_id: Optional[str]) -> bool:
        return self._connection.send_json(
            update_my_details_message(self._local_user_id, player_name, player_id, self._timezone)
        )
