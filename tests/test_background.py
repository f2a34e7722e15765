import threading
from unittest.mock import MagicMock

from logsync.core import background
from logsync.core.app_state import get_thread_health


def test_change_handler_matches_only_tracked_file(tmp_path):
    changed = threading.Event()
    handler = background._LogChangeHandler(str(tmp_path / "Game.log"), changed)

    other = MagicMock(src_path=str(tmp_path / "other.log"), dest_path=None)
    handler.on_any_event(other)
    assert not changed.is_set()

    tracked = MagicMock(src_path=str(tmp_path / "Game.log"), dest_path=None)
    handler.on_any_event(tracked)
    assert changed.is_set()


def test_run_tick_records_health():
    service = MagicMock()
    background._run_tick('TailWatchdogThread', service)
    service.process_tick.assert_called_once()
    assert get_thread_health()['TailWatchdogThread']['status'] == 'healthy'


def test_run_tick_survives_errors():
    service = MagicMock()
    service.process_tick.side_effect = RuntimeError("boom")
    background._run_tick('FileWatchThread', service)
    health = get_thread_health()['FileWatchThread']
    assert health['status'] == 'errored'
    assert health['last_error_msg'] == "boom"


def test_file_signature(tmp_path):
    path = tmp_path / "Game.log"
    assert background._file_signature(str(path)) is None
    path.write_text("abc")
    assert background._file_signature(str(path))[0] == 3
