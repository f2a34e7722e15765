from flask import jsonify, request

from . import bp
from logsync.config import MAX_RESULTS
from logsync.services.timeline import get_timeline_service


def _parse_limit():
    try:
        return max(0, min(int(request.args.get("limit", MAX_RESULTS)), MAX_RESULTS))
    except (TypeError, ValueError):
        return MAX_RESULTS


@bp.route("/api/timeline")
def api_timeline():
    """Spree-aggregated display projection, newest last."""
    limit = _parse_limit()
    events = get_timeline_service().projection()
    if limit:
        events = events[-limit:]
    return jsonify(
        {
            "events": [e.to_dict() for e in events],
            "count": len(events),
            "limit": limit,
        }
    )


@bp.route("/api/timeline/raw")
def api_timeline_raw():
    limit = _parse_limit()
    service = get_timeline_service()
    owner = request.args.get("owner")
    events = service.store.events_for_owner(owner) if owner else service.store.events()
    if limit:
        events = events[-limit:]
    return jsonify({"events": [e.to_dict() for e in events], "count": len(events)})


@bp.route("/api/timeline/clear", methods=["POST"])
def api_timeline_clear():
    get_timeline_service().clear_logs()
    return jsonify({"status": "cleared"})


@bp.route("/api/timeline/<event_id>/toggle", methods=["POST"])
def api_timeline_toggle(event_id):
    state = get_timeline_service().toggle(event_id)
    if state is None:
        return jsonify({"error": "Not found"}), 404
    return jsonify({"id": event_id, "open": state})
