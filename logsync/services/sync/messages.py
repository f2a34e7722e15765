"""
Wire message contract for the realtime connection.

Every message is a JSON object with a ``type`` discriminant. Builders return
plain dicts; parse_message() turns raw text into a dict or None.
"""
import base64
import gzip
import json
from typing import Any, Dict, List, Optional

from logsync.config import COMPRESSION_THRESHOLD_BYTES, COMPRESSION_THRESHOLD_LOGS
from logsync.services.events.model import Event
from logsync.services.shared.observability import _logger

MSG_REGISTER = "register"
MSG_REGISTERED = "registered"
MSG_LOG = "log"
MSG_SYNC_LOGS = "sync_logs"
MSG_BATCH_LOGS = "batch_logs"
MSG_UPDATE_MY_DETAILS = "update_my_details"
MSG_USER_ONLINE = "user_online"
MSG_USER_OFFLINE = "user_offline"
MSG_ERROR = "error"

MAX_BATCH_EVENTS = 5000


def compress_records(records: List[Dict[str, Any]]) -> str:
    """gzip + base64 a list of event records for transmission."""
    raw = json.dumps(records, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


def decompress_records(data: str) -> List[Dict[str, Any]]:
    raw = gzip.decompress(base64.b64decode(data))
    records = json.loads(raw.decode("utf-8"))
    return records if isinstance(records, list) else []


def should_compress(records: List[Dict[str, Any]]) -> bool:
    if len(records) > COMPRESSION_THRESHOLD_LOGS:
        return True
    return len(json.dumps(records)) > COMPRESSION_THRESHOLD_BYTES


def register_message(user_id: str) -> Dict[str, Any]:
    return {"type": MSG_REGISTER, "userId": user_id}


def log_message(event: Event) -> Dict[str, Any]:
    return {"type": MSG_LOG, "log": event.to_dict()}


def sync_logs_message(events: List[Event], target_user_id: Optional[str] = None,
                      allow_compression: bool = True) -> Dict[str, Any]:
    records = [e.to_dict() for e in events]
    message: Dict[str, Any] = {"type": MSG_SYNC_LOGS}
    if target_user_id:
        message["targetUserId"] = target_user_id
    if allow_compression and should_compress(records):
        message["compressed"] = True
        message["compressedData"] = compress_records(records)
    else:
        message["logs"] = records
    return message


def update_my_details_message(user_id: str, player_name: Optional[str],
                              player_id: Optional[str], timezone: str) -> Dict[str, Any]:
    return {
        "type": MSG_UPDATE_MY_DETAILS,
        "userId": user_id,
        "playerName": player_name,
        "playerId": player_id,
        "timezone": timezone,
    }


def parse_message(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode an inbound frame. Non-JSON or type-less frames yield None."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            _logger.warning(f"Dropping non-JSON message: {e}")
            return None
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        return None
    return raw


def events_from_message(message: Dict[str, Any]) -> List[Event]:
    """Extract the event batch of a sync_logs/batch_logs message."""
    records: Any = message.get("logs") or []
    if message.get("compressed") and message.get("compressedData"):
        try:
            records = decompress_records(message["compressedData"])
        except (ValueError, OSError, EOFError) as e:
            _logger.warning(f"Dropping undecodable compressed batch: {e}")
            return []
    if not isinstance(records, list):
        return []
    events = []
    for record in records[:MAX_BATCH_EVENTS]:
        event = Event.from_dict(record)
        if event is not None:
            events.append(event)
    return events
