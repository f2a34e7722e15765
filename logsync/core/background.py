"""Background thread management for LOGSYNC application.

Two threads drive the tail pipeline:
- FileWatchThread: filesystem notifications (watchdog) with a size/mtime
  polling fallback, ticking as soon as the game log changes.
- TailWatchdogThread: unconditional periodic tick, the safety net for
  missed notifications.
Both call the same TimelineService.process_tick(), which is safe to run
back-to-back.
"""
import os
import threading
import time

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

import logsync.core.app_state as state
from logsync.config import FILE_POLL_INTERVAL, WATCHDOG_INTERVAL
from logsync.core.app_state import _shutdown_event, add_app_log, update_thread_health


class _LogChangeHandler(FileSystemEventHandler):
    """Flags changes to one file inside a watched directory."""

    def __init__(self, file_path, changed_event):
        super().__init__()
        self._file_path = os.path.abspath(file_path)
        self._changed = changed_event

    def on_any_event(self, event):
        paths = [getattr(event, 'src_path', None), getattr(event, 'dest_path', None)]
        if any(p and os.path.abspath(os.fsdecode(p)) == self._file_path for p in paths):
            self._changed.set()


def _file_signature(path):
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_size, st.st_mtime)


def _start_observer(file_path, changed_event):
    directory = os.path.dirname(os.path.abspath(file_path))
    if not os.path.isdir(directory):
        add_app_log(f"Cannot watch {file_path}: directory does not exist, polling only", "WARN")
        return None
    observer = Observer()
    observer.schedule(_LogChangeHandler(file_path, changed_event), directory, recursive=False)
    observer.daemon = True
    observer.start()
    return observer


def _run_tick(thread_name, service):
    start_time = time.time()
    try:
        service.process_tick()
        exec_time_ms = (time.time() - start_time) * 1000
        update_thread_health(thread_name, success=True, execution_time_ms=exec_time_ms)
    except Exception as e:
        exec_time_ms = (time.time() - start_time) * 1000
        add_app_log(f"{thread_name} tick failed: {e}", "ERROR")
        update_thread_health(thread_name, success=False, execution_time_ms=exec_time_ms, error_msg=str(e))


def start_file_watch_thread(service):
    """Start the change-driven tail thread."""
    if state._file_watch_thread_started:
        return
    state._file_watch_thread_started = True

    def loop():
        changed = threading.Event()
        file_path = service.reader.cursor.file_path
        observer = _start_observer(file_path, changed)
        last_signature = None
        try:
            while not _shutdown_event.is_set():
                notified = changed.wait(timeout=FILE_POLL_INTERVAL)
                if _shutdown_event.is_set():
                    break
                changed.clear()
                signature = _file_signature(file_path)
                if notified or signature != last_signature:
                    last_signature = signature
                    _run_tick('FileWatchThread', service)
        finally:
            if observer is not None:
                observer.stop()
                observer.join()

    t = threading.Thread(target=loop, daemon=True, name='FileWatchThread')
    t.start()
    state._background_threads.append(t)


def start_tail_watchdog_thread(service):
    """Start the periodic safety-net tail thread."""
    if state._watchdog_thread_started:
        return
    state._watchdog_thread_started = True

    def loop():
        while not _shutdown_event.is_set():
            _run_tick('TailWatchdogThread', service)
            # Use wait instead of sleep for faster shutdown
            _shutdown_event.wait(timeout=WATCHDOG_INTERVAL)

    t = threading.Thread(target=loop, daemon=True, name='TailWatchdogThread')
    t.start()
    state._background_threads.append(t)


def stop_background_threads(timeout=2.0):
    """Signal shutdown and wait briefly for the tail threads to exit."""
    _shutdown_event.set()
    for t in list(state._background_threads):
        t.join(timeout=timeout)
    state._background_threads.clear()
    state._file_watch_thread_started = False
    state._watchdog_thread_started = False
