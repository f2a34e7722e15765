import json
import unittest
from unittest.mock import patch

from logsync.core.app_state import get_app_logs
from logsync.services.sync import connection as conn_module
from logsync.services.sync.connection import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    ConnectionManager,
)


class FakeTransport:
    def __init__(self, url, on_message, on_close, fail_send=False):
        self.url = url
        self.on_message = on_message
        self.on_close = on_close
        self.fail_send = fail_send
        self.sent = []
        self.closed = False

    def send(self, data):
        if self.fail_send:
            raise OSError("broken pipe")
        self.sent.append(json.loads(data))

    def close(self):
        self.closed = True


class TestConnectionManager(unittest.TestCase):
    def setUp(self):
        self.transports = []
        self.received = []

    def _factory(self, url, on_message, on_close):
        transport = FakeTransport(url, on_message, on_close)
        self.transports.append(transport)
        return transport

    def _manager(self, factory=None):
        return ConnectionManager("ws://test", factory or self._factory, user_id="me",
                                 reconnect_delay=3600, on_message=self.received.append)

    def test_connect_registers(self):
        manager = self._manager()
        self.assertTrue(manager.connect())
        self.assertEqual(manager.status, STATUS_CONNECTED)
        self.assertEqual(self.transports[0].sent, [{"type": "register", "userId": "me"}])
        manager.close()

    def test_inbound_messages_are_dispatched(self):
        manager = self._manager()
        manager.connect()
        self.transports[0].on_message('{"type": "registered"}')
        self.assertEqual(self.received, ['{"type": "registered"}'])
        manager.close()

    def test_connect_failure_schedules_reconnect(self):
        def failing_factory(url, on_message, on_close):
            raise OSError("refused")

        manager = self._manager(failing_factory)
        self.assertFalse(manager.connect())
        self.assertEqual(manager.status, STATUS_DISCONNECTED)
        self.assertIn("refused", manager.last_error)
        self.assertTrue(manager.get_status()["reconnect_pending"])
        self.assertTrue(any("Retrying" in line for line in get_app_logs()))
        manager.close()
        self.assertFalse(manager.get_status()["reconnect_pending"])

    def test_send_failure_disconnects(self):
        manager = self._manager()
        manager.connect()
        self.transports[0].fail_send = True
        self.assertFalse(manager.send_json({"type": "log"}))
        self.assertEqual(manager.status, STATUS_DISCONNECTED)
        self.assertTrue(self.transports[0].closed)
        self.assertIn("Send failed", manager.last_error)
        manager.close()

    def test_failed_register_closes_transport(self):
        def factory(url, on_message, on_close):
            transport = FakeTransport(url, on_message, on_close, fail_send=True)
            self.transports.append(transport)
            return transport

        manager = self._manager(factory)
        self.assertFalse(manager.connect())
        self.assertTrue(self.transports[0].closed)
        self.assertEqual(manager.status, STATUS_DISCONNECTED)
        manager.close()

    def test_close_during_handshake_disconnects(self):
        class ClosingTransport(FakeTransport):
            def send(self, data):
                super().send(data)
                self.on_close(1006)

        def factory(url, on_message, on_close):
            transport = ClosingTransport(url, on_message, on_close)
            self.transports.append(transport)
            return transport

        manager = self._manager(factory)
        self.assertFalse(manager.connect())
        self.assertEqual(manager.get_status()["status"], STATUS_DISCONNECTED)
        self.assertIn("1006", manager.last_error)
        self.assertTrue(self.transports[0].closed)
        self.assertTrue(manager.get_status()["reconnect_pending"])
        manager.close()

    def test_stale_close_from_previous_transport_is_ignored(self):
        manager = self._manager()
        manager.connect()
        self.transports[0].fail_send = True
        manager.send_json({"type": "log"})
        self.assertTrue(manager.connect())

        self.transports[0].on_close(1000)
        self.assertEqual(manager.status, STATUS_CONNECTED)
        self.transports[1].on_close(1000)
        self.assertEqual(manager.status, STATUS_DISCONNECTED)
        manager.close()

    def test_close_error_is_logged_on_failure(self):
        manager = self._manager()
        manager.connect()
        transport = self.transports[0]
        transport.fail_send = True

        def broken_close():
            raise OSError("already gone")

        transport.close = broken_close
        manager.send_json({"type": "log"})
        self.assertTrue(any("Error closing transport: already gone" in line for line in get_app_logs()))
        manager.close()

    def test_send_while_disconnected_is_dropped(self):
        manager = self._manager()
        self.assertFalse(manager.send_json({"type": "log"}))

    def test_remote_close_disconnects(self):
        manager = self._manager()
        manager.connect()
        self.transports[0].on_close(1006)
        self.assertEqual(manager.status, STATUS_DISCONNECTED)
        self.assertIn("1006", manager.last_error)
        manager.close()

    def test_reconnect_timer_is_cancelled_before_rearming(self):
        manager = self._manager()
        timers = []
        real_timer = conn_module.threading.Timer

        def tracking_timer(*args, **kwargs):
            timer = real_timer(*args, **kwargs)
            timers.append(timer)
            return timer

        with patch.object(conn_module.threading, "Timer", side_effect=tracking_timer):
            manager.schedule_reconnect()
            manager.schedule_reconnect()

        self.assertEqual(len(timers), 2)
        self.assertTrue(timers[0].finished.is_set())
        self.assertFalse(timers[1].finished.is_set())
        self.assertEqual(manager.get_status()["reconnect_attempts"], 2)
        manager.close()
        self.assertTrue(timers[1].finished.is_set())

    def test_closed_manager_does_not_reconnect(self):
        manager = self._manager()
        manager.close()
        self.assertFalse(manager.connect())
        manager.schedule_reconnect()
        self.assertFalse(manager.get_status()["reconnect_pending"])

    def test_missing_transport(self):
        manager = ConnectionManager("ws://test", None)
        self.assertFalse(manager.connect())
        self.assertEqual(manager.last_error, "No transport configured")


if __name__ == '__main__':
    unittest.main()
