"""Centralized state management for LOGSYNC application.

Holds the process-wide primitives shared by the background threads and the
HTTP layer: the shutdown event, the user-visible application log buffer,
background thread health and the processed-line counters.

Note: Some state lives in specialized modules:
- Event timeline -> logsync.services.events.store
- Connection status -> logsync.services.sync.connection
- Peer presence -> logsync.services.sync.handler
"""
import threading
import time
from collections import deque
from datetime import datetime

from logsync.config import APP_LOG_BUFFER_SIZE, FILE_POLL_INTERVAL, WATCHDOG_INTERVAL
from logsync.services.shared.observability import _logger

# ==================== Threading Primitives ====================
# Graceful shutdown event
_shutdown_event = threading.Event()

# ==================== Application Log Buffer ====================
# In-memory buffer of user-visible messages (connection retries, clears, errors)
_app_log_buffer = deque(maxlen=APP_LOG_BUFFER_SIZE)
_app_log_buffer_lock = threading.Lock()

_LEVELS = {
    'DEBUG': 10,
    'INFO': 20,
    'WARN': 30,
    'WARNING': 30,
    'ERROR': 40,
}


def add_app_log(message, level='INFO'):
    """Add a log message to the in-memory buffer and the process logger."""
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    log_entry = f"[{timestamp}] [{level}] {message}"
    with _app_log_buffer_lock:
        _app_log_buffer.append(log_entry)
    _logger.log(_LEVELS.get(level.upper(), 20), message)


def get_app_logs(limit=100):
    """Return the most recent app log lines, oldest first."""
    with _app_log_buffer_lock:
        entries = list(_app_log_buffer)
    return entries[-limit:] if limit else entries


# ==================== Background Thread Health ====================
_thread_health = {
    'FileWatchThread': {
        'last_success': None,
        'last_error': None,
        'last_error_msg': None,
        'error_count': 0,
        'execution_count': 0,
        'execution_times_ms': deque(maxlen=20),
        'expected_interval_sec': FILE_POLL_INTERVAL,
        'status': 'unknown'
    },
    'TailWatchdogThread': {
        'last_success': None,
        'last_error': None,
        'last_error_msg': None,
        'error_count': 0,
        'execution_count': 0,
        'execution_times_ms': deque(maxlen=20),
        'expected_interval_sec': WATCHDOG_INTERVAL,
        'status': 'unknown'
    },
}
_thread_health_lock = threading.Lock()


def update_thread_health(thread_name, success=True, execution_time_ms=None, error_msg=None):
    """Update thread health metrics after execution."""
    with _thread_health_lock:
        if thread_name not in _thread_health:
            return
        th = _thread_health[thread_name]
        now = time.time()
        th['execution_count'] += 1
        if execution_time_ms is not None:
            th['execution_times_ms'].append(execution_time_ms)
        if success:
            th['last_success'] = now
            th['status'] = 'healthy'
        else:
            th['last_error'] = now
            th['last_error_msg'] = error_msg
            th['error_count'] += 1
            th['status'] = 'errored'


def get_thread_health():
    """Get health status for all threads."""
    now = time.time()
    result = {}
    with _thread_health_lock:
        for name, th in _thread_health.items():
            status = th['status']
            # Lagging if it hasn't run in 3x the expected interval
            if th['last_success'] and th['expected_interval_sec'] > 0:
                if now - th['last_success'] > th['expected_interval_sec'] * 3:
                    status = 'lagging'
            exec_times = list(th['execution_times_ms'])
            avg_exec_ms = round(sum(exec_times) / len(exec_times), 1) if exec_times else None
            result[name] = {
                'status': status,
                'last_success': th['last_success'],
                'last_error': th['last_error'],
                'last_error_msg': th['last_error_msg'],
                'error_count': th['error_count'],
                'execution_count': th['execution_count'],
                'avg_execution_ms': avg_exec_ms,
            }
    return result


# ==================== Processed-line Counters ====================
_counters = {"lines_processed": 0, "events_parsed": 0, "truncations": 0, "last_tick": None}
_counters_lock = threading.Lock()


def record_lines_processed(lines, events, truncated=False):
    with _counters_lock:
        _counters["lines_processed"] += lines
        _counters["events_parsed"] += events
        if truncated:
            _counters["truncations"] += 1
        _counters["last_tick"] = time.time()


def get_counters():
    with _counters_lock:
        return dict(_counters)


def reset_counters():
    with _counters_lock:
        _counters.update({"lines_processed": 0, "events_parsed": 0, "truncations": 0, "last_tick": None})


# ==================== Thread Start Flags ====================
_file_watch_thread_started = False
_watchdog_thread_started = False
_background_threads = []
