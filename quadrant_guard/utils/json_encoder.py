"""JSON encoding for report payloads"""
import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum


class DateTimeEncoder(json.JSONEncoder):
    """Encodes datetimes as ISO strings, enums by value and dataclasses as dicts"""

    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        return super().default(obj)
