from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp; columns are stored without tzinfo on every backend."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
