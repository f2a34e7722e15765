from flask import jsonify, request

from . import bp
from logsync.config import APP_NAME, APP_VERSION
from logsync.core.app_state import get_app_logs, get_thread_health
from logsync.services.timeline import get_timeline_service


@bp.route("/api/status")
def api_status():
    service = get_timeline_service()
    connection = service.connection.get_status()
    return jsonify(
        {
            "app": APP_NAME,
            "version": APP_VERSION,
            "authenticated": service.authenticated,
            "user_id": service.handler.local_user_id,
            "connection": connection,
            "last_error": connection["last_error"],
            "counters": service.stats(),
            "presence": service.handler.get_presence(),
            "friends_online": [
                peer for peer, info in service.handler.get_presence().items() if info.get("online")
            ],
            "threads": get_thread_health(),
        }
    )


@bp.route("/api/logs")
def api_logs():
    try:
        limit = min(int(request.args.get("limit", 100)), 500)
    except (TypeError, ValueError):
        limit = 100
    logs = get_app_logs(limit)
    return jsonify({"logs": logs, "count": len(logs)})
