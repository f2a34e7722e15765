"""Core modules for LOGSYNC application."""
from .app_state import (
    _shutdown_event,
    _app_log_buffer, _app_log_buffer_lock, add_app_log, get_app_logs,
    update_thread_health, get_thread_health,
    record_lines_processed, get_counters, reset_counters,
)

__all__ = [
    '_shutdown_event',
    '_app_log_buffer', '_app_log_buffer_lock', 'add_app_log', 'get_app_logs',
    'update_thread_health', 'get_thread_health',
    'record_lines_processed', 'get_counters', 'reset_counters',
]
