"""Configuration module for LOGSYNC application."""
import os

# Application Metadata (Single Source of Truth)
APP_NAME = "LOGSYNC"
APP_VERSION = "v1.0.0"
DEBUG_MODE = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Paths
GAME_LOG_PATH = os.getenv("GAME_LOG_PATH", "Game.log")
EVENTS_STORE_PATH = os.getenv("EVENTS_STORE_PATH", "logsync-events.json")

# Identity / auth (provided by the login flow)
AUTH_TOKEN = os.getenv("AUTH_TOKEN", "")
LOCAL_USER_ID = os.getenv("LOCAL_USER_ID", "")
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "UTC")

# Remote services
SYNC_SERVER_URL = os.getenv("SYNC_SERVER_URL", "wss://localhost:8787/ws")
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5173")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "10"))
SEND_TIMEOUT = float(os.getenv("SEND_TIMEOUT", "5"))

# Tail triggers
FILE_POLL_INTERVAL = float(os.getenv("FILE_POLL_INTERVAL", "1"))   # change watcher
WATCHDOG_INTERVAL = float(os.getenv("WATCHDOG_INTERVAL", "30"))    # missed-notification safety net

# Reconnect
RECONNECT_DELAY = float(os.getenv("RECONNECT_DELAY", "5"))

# Killing spree aggregation
SPREE_WINDOW_S = float(os.getenv("SPREE_WINDOW_S", "120"))
SPREE_MIN_KILLS = int(os.getenv("SPREE_MIN_KILLS", "2"))

# Batch compression thresholds (must match the server side)
COMPRESSION_THRESHOLD_LOGS = int(os.getenv("COMPRESSION_THRESHOLD_LOGS", "10"))
COMPRESSION_THRESHOLD_BYTES = int(os.getenv("COMPRESSION_THRESHOLD_BYTES", str(5 * 1024)))

# In-memory buffers
APP_LOG_BUFFER_SIZE = int(os.getenv("APP_LOG_BUFFER_SIZE", "500"))

# HTTP
FLASK_HOST = os.environ.get("FLASK_HOST", "127.0.0.1")
FLASK_PORT = int(os.environ.get("FLASK_PORT", 8080))
MAX_RESULTS = 500

# Observability
OBS_ROUTE_SLOW_MS = float(os.getenv("OBS_ROUTE_SLOW_MS", "500"))
