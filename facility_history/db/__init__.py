from facility_history.db.models import (
    Base,
    FacilityRow,
    HistoryEntryRow,
    OperatorRow,
    TimeStampMixin,
)

__all__ = [
    "Base",
    "FacilityRow",
    "HistoryEntryRow",
    "OperatorRow",
    "TimeStampMixin",
]
