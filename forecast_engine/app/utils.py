"""
Small utilities: timestamps and JSON-safe conversion.

Rationale:
- Mongo documents carry ObjectId/datetime values, pandas aggregates carry numpy scalars;
  convert both to native Python types before they reach a prompt or a JSON response.
"""

import json
from datetime import date, datetime, timezone

import numpy as np
from bson import ObjectId


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z, e.g. 2024-05-01T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def safe_json(obj):
    """
    Convert driver/pandas/numpy types to Python native types.
    Rationale: ensure documents are JSON serializable for prompts and API responses.
    """
    def convert(o):
        if isinstance(o, (int, float, str, bool)) or o is None:
            return o
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, datetime):
            if o.tzinfo is None:
                o = o.replace(tzinfo=timezone.utc)
            return o.isoformat()
        if isinstance(o, date):
            return o.isoformat()
        if isinstance(o, (np.integer, np.floating, np.bool_)):
            return o.item()
        if isinstance(o, dict):
            return {str(convert(k)): convert(v) for k, v in o.items()}
        if isinstance(o, (list, tuple, set)):
            return [convert(x) for x in o]
        try:
            return json.loads(json.dumps(o))
        except (TypeError, ValueError):
            return str(o)
    return convert(obj)
