from facility_history.core.exceptions import (
    ArtifactNotFoundError,
    CapExceededError,
    FacilityHistoryError,
    FormattingError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from facility_history.core.types import ExportRequest, ExportResult, ExportWindow
from facility_history.facade import (
    ExportSettings,
    FacilityHistory,
    InspectionResult,
    PhotoResult,
    TodaySummary,
)

__all__ = [
    "ArtifactNotFoundError",
    "CapExceededError",
    "ExportRequest",
    "ExportResult",
    "ExportSettings",
    "ExportWindow",
    "FacilityHistory",
    "FacilityHistoryError",
    "FormattingError",
    "InspectionResult",
    "NotFoundError",
    "PhotoResult",
    "StorageError",
    "TodaySummary",
    "ValidationError",
]
