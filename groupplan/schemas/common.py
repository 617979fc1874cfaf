from pydantic import BaseModel
from typing import Optional
from groupplan.models.trips.trip_model import TripStatus


class AdvisoryUpdate(BaseModel):
    """Outcome of a best-effort trip status change.

    Returned next to the primary result so callers can tell whether the
    status moved without the primary operation depending on it.
    """

    applied: bool
    target: TripStatus
    previous: Optional[TripStatus] = None
    reason: Optional[str] = None

    @classmethod
    def skipped(cls, target: TripStatus, previous: Optional[TripStatus], reason: str) -> "AdvisoryUpdate":
        return cls(applied=False, target=target, previous=previous, reason=reason)
