"""WebSocket transport for ConnectionManager, on the synchronous websockets client."""
import threading
from typing import Any, Callable, Optional

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect

from logsync.config import AUTH_TOKEN, SEND_TIMEOUT
from logsync.errors import TransportError
from logsync.services.shared.observability import _logger


class WebSocketTransport:
    """One live socket plus the daemon thread that drains it."""

    def __init__(self, url: str, on_message: Callable[[Any], None],
                 on_close: Callable[[Optional[int]], None],
                 token: str = AUTH_TOKEN, open_timeout: float = SEND_TIMEOUT):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            self._ws = connect(url, additional_headers=headers, open_timeout=open_timeout)
        except (OSError, WebSocketException) as e:
            raise TransportError(str(e)) from e
        self._on_message = on_message
        self._on_close = on_close
        self._closing = False
        self._reader = threading.Thread(target=self._run, daemon=True, name='SyncReaderThread')
        self._reader.start()

    def _run(self):
        code = None
        try:
            for message in self._ws:
                self._on_message(message)
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
        if not self._closing:
            _logger.debug(f"WebSocket reader stopped (code {code})")
            self._on_close(code)

    def send(self, data: str) -> None:
        try:
            self._ws.send(data)
        except (ConnectionClosed, OSError) as e:
            raise TransportError(str(e)) from e

    def close(self) -> None:
        self._closing = True
        self._ws.close()


def websocket_transport_factory(url, on_message, on_close) -> WebSocketTransport:
    return WebSocketTransport(url, on_message, on_close)
