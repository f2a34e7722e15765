"""
Realtime connection state machine.

disconnected -> connecting -> connected, falling back to disconnected on any
connect/send failure. Reconnects are gated by a single timer which is always
cancelled before a new one is armed.

The physical transport is injected: ``transport_factory(url, on_message,
on_close)`` returns an object with ``send(text)`` and ``close()``.
"""
import json
import threading
from typing import Any, Callable, Dict, Optional, Protocol

from logsync.config import RECONNECT_DELAY
from logsync.core.app_state import _shutdown_event, add_app_log
from logsync.services.sync.messages import register_message

STATUS_DISCONNECTED = "disconnected"
STATUS_CONNECTING = "connecting"
STATUS_CONNECTED = "connected"


class Transport(Protocol):
    def send(self, data: str) -> None: ...

    def close(self) -> None: ...


TransportFactory = Callable[[str, Callable[[Any], None], Callable[[Optional[int]], None]], Transport]


class ConnectionManager:
    def __init__(
        self,
        url: str,
        transport_factory: Optional[TransportFactory],
        user_id: str = "",
        reconnect_delay: float = RECONNECT_DELAY,
        on_message: Optional[Callable[[Any], None]] = None,
    ):
        self._url = url
        self._factory = transport_factory
        self._user_id = user_id
        self._reconnect_delay = reconnect_delay
        self._on_message = on_message
        self._transport: Optional[Transport] = None
        self._status = STATUS_DISCONNECTED
        self._last_error: Optional[str] = None
        self._reconnect_timer: Optional[threading.Timer] = None
        self._reconnect_attempts = 0
        self._attempt = 0
        self._early_close: Optional[str] = None
        self._closed = False
        self._lock = threading.RLock()

    # ----- state -----
    @property
    def status(self) -> str:
        return self._status

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_connected(self) -> bool:
        return self._status == STATUS_CONNECTED

    def set_message_handler(self, on_message: Callable[[Any], None]) -> None:
        self._on_message = on_message

    def set_error(self, message: Optional[str]) -> None:
        self._last_error = message

    def get_status(self) -> Dict[str, Any]:
        return {
            "status": self._status,
            "last_error": self._last_error,
            "reconnect_attempts": self._reconnect_attempts,
            "reconnect_pending": self._reconnect_timer is not None,
        }

    # ----- lifecycle -----
    def connect(self) -> bool:
        with self._lock:
            if self._closed or _shutdown_event.is_set():
                return False
            if self._status != STATUS_DISCONNECTED:
                return self._status == STATUS_CONNECTED
            if self._factory is None:
                self._last_error = "No transport configured"
                return False
            self._cancel_reconnect()
            self._status = STATUS_CONNECTING
            self._attempt += 1
            attempt = self._attempt
            self._early_close = None

        def on_close(code=None):
            self._handle_close(code, attempt)

        transport = None
        try:
            transport = self._factory(self._url, self._dispatch, on_close)
            transport.send(json.dumps(register_message(self._user_id)))
        except Exception as e:
            if transport is not None:
                self._close_transport(transport)
            self._fail(f"Can't connect to server: {e}")
            return False

        with self._lock:
            # Closed by the peer (or by us) before the handshake finished
            failure = self._early_close
            if failure is None and self._closed:
                failure = "Connection closed"
            if failure is None:
                self._transport = transport
                self._status = STATUS_CONNECTED
                self._last_error = None
                self._reconnect_attempts = 0
        if failure is not None:
            self._close_transport(transport)
            self._fail(failure)
            return False
        add_app_log(f"Connected to {self._url}", "INFO")
        return True

    def close(self) -> None:
        """Stop for good: cancel any pending reconnect and drop the transport."""
        with self._lock:
            self._closed = True
            self._cancel_reconnect()
            transport = self._transport
            self._transport = None
            self._status = STATUS_DISCONNECTED
        if transport is not None:
            self._close_transport(transport)

    def _close_transport(self, transport: Transport) -> None:
        try:
            transport.close()
        except Exception as e:
            add_app_log(f"Error closing transport: {e}", "WARN")

    # ----- I/O -----
    def send_json(self, payload: Dict[str, Any]) -> bool:
        """Fire-and-forget send. Failures tear the connection down."""
        with self._lock:
            transport = self._transport if self._status == STATUS_CONNECTED else None
        if transport is None:
            return False
        try:
            transport.send(json.dumps(payload))
            return True
        except Exception as e:
            self._fail(f"Send failed: {e}")
            return False

    def _dispatch(self, raw: Any) -> None:
        if self._on_message is None:
            return
        try:
            self._on_message(raw)
        except Exception as e:
            self._fail(f"Receive failed: {e}")

    def _handle_close(self, code: Optional[int] = None, attempt: Optional[int] = None) -> None:
        message = f"Connection closed (code {code})" if code is not None else "Connection closed"
        with self._lock:
            if attempt is not None and attempt != self._attempt:
                return
            if self._status == STATUS_CONNECTING:
                self._early_close = message
                return
            if self._transport is None:
                return
        self._fail(message)

    def _fail(self, message: str) -> None:
        with self._lock:
            transport = self._transport
            self._transport = None
            self._status = STATUS_DISCONNECTED
            self._last_error = message
        if transport is not None:
            self._close_transport(transport)
        add_app_log(f"{message}. Retrying in {self._reconnect_delay:.0f}s", "WARN")
        self.schedule_reconnect()

    # ----- reconnect -----
    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def schedule_reconnect(self) -> None:
        with self._lock:
            if self._closed or _shutdown_event.is_set():
                return
            self._cancel_reconnect()
            self._reconnect_attempts += 1
            timer = threading.Timer(self._reconnect_delay, self._reconnect)
            timer.daemon = True
            self._reconnect_timer = timer
            timer.start()

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_timer = None
        self.connect()

