from datetime import datetime, timezone
from typing import Any, Optional

import pandas as pd


def parse_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion to an aware UTC datetime; None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            if not value.strip():
                return None
            ts = pd.to_datetime(value.strip(), utc=True, errors="coerce")
        else:
            # numeric values are epoch milliseconds
            ts = pd.to_datetime(value, unit="ms", utc=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def pick(record: dict, *names: str, default: Any = None) -> Any:
    """First non-empty value among `names` (snake_case listed first)."""
    for name in names:
        value = record.get(name)
        if value is not None and value != "":
            return value
    return default


def split_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(t).strip() for t in value if str(t).strip()]
    return [t.strip() for t in str(value).split(",") if t.strip()]
