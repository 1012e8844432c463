import json
from functools import partial
from typing import Any

from psycopg.types.json import Jsonb

# Back-end payloads may carry datetimes (e.g. response metadata headers).
_dumps = partial(json.dumps, default=str)


def jsonb(value: Any) -> Jsonb | None:
    """Wrap a JSON-serializable value for a JSONB column; None stays NULL."""
    if value is None:
        return None
    return Jsonb(value, dumps=_dumps)
