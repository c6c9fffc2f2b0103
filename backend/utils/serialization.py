from enum import Enum
from datetime import datetime, date
from sqlalchemy.inspection import inspect

def to_dict(model_instance, fields=None):
    """Serialize a model's columns, optionally restricted to ``fields``."""
    output = {}
    mapper = inspect(model_instance.__class__)

    for column in mapper.columns:
        key = column.key
        if fields is not None and key not in fields:
            continue
        if key == "password_hash":
            continue

        value = getattr(model_instance, key)
        if isinstance(value, Enum):
            output[key] = value.value
        elif isinstance(value, (datetime, date)):
            output[key] = value.isoformat()
        else:
            output[key] = value

    return output
