"""Custom JSON encoding utilities"""
import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

class HypeStreamEncoder(json.JSONEncoder):
    """JSON encoder for datetimes, enums, dataclasses and pydantic models"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, BaseModel):
            return obj.model_dump()
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        return super().default(obj)

def json_dumps(obj, **kwargs):
    """Helper function to dump JSON with the encoder above"""
    return json.dumps(obj, cls=HypeStreamEncoder, **kwargs)
