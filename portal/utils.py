from datetime import datetime, timezone
from typing import Any, Dict


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def drop_none(fields: Dict[str, Any]) -> Dict[str, Any]:
    # Firestore rejects undefined values; None plays that role here
    return {key: value for key, value in fields.items() if value is not None}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
