"""Main entry point for LOGSYNC application.

This module builds the timeline service, starts background threads and runs
the Flask application.
"""

import atexit
import signal
import sys

from logsync import create_app
from logsync.config import APP_NAME, APP_VERSION, DEBUG_MODE, FLASK_HOST, FLASK_PORT, GAME_LOG_PATH
from logsync.core.app_state import add_app_log
from logsync.core.background import (
    start_file_watch_thread,
    start_tail_watchdog_thread,
    stop_background_threads,
)
from logsync.services.timeline import get_timeline_service


def main():
    startup_msg = f"{APP_NAME} {APP_VERSION}"
    print(startup_msg)
    add_app_log(startup_msg, "INFO")

    service = get_timeline_service()
    service.start()

    shutdown_state = {"done": False}

    # Graceful shutdown handler
    def shutdown_handler(signum=None, frame=None):
        if shutdown_state["done"]:
            return
        shutdown_state["done"] = True
        add_app_log("[Shutdown] Stopping background services...", "INFO")
        stop_background_threads()
        service.shutdown()
        add_app_log("[Shutdown] Complete.", "INFO")
        if signum is not None:
            sys.exit(0)

    # Register shutdown handlers
    atexit.register(shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    start_file_watch_thread(service)
    add_app_log(f"File watch thread started ({GAME_LOG_PATH})", "INFO")
    start_tail_watchdog_thread(service)
    add_app_log("Tail watchdog thread started", "INFO")

    app = create_app()
    server_msg = f"Starting server on {FLASK_HOST}:{FLASK_PORT} (debug={DEBUG_MODE})"
    print(server_msg)
    add_app_log(server_msg, "INFO")
    app.run(host=FLASK_HOST, port=FLASK_PORT, threaded=True, debug=DEBUG_MODE, use_reloader=False)


if __name__ == "__main__":
    main()
