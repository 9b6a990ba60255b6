from facility_history.facade.core import FacilityHistory
from facility_history.facade.types import (
    ExportSettings,
    InspectedEntry,
    InspectionResult,
    PhotoResult,
    PhotoSet,
    TodaySummary,
)

__all__ = [
    "ExportSettings",
    "FacilityHistory",
    "InspectedEntry",
    "InspectionResult",
    "PhotoResult",
    "PhotoSet",
    "TodaySummary",
]
