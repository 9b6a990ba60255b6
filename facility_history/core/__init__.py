from facility_history.core.exceptions import (
    ArtifactNotFoundError,
    CapExceededError,
    FacilityHistoryError,
    FormattingError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from facility_history.core.types import (
    ArtifactLocator,
    ExportRequest,
    ExportResult,
    ExportWindow,
    HistoryCursor,
    HistoryPage,
    WindowPolicy,
)

__all__ = [
    "ArtifactLocator",
    "ArtifactNotFoundError",
    "CapExceededError",
    "ExportRequest",
    "ExportResult",
    "ExportWindow",
    "FacilityHistoryError",
    "FormattingError",
    "HistoryCursor",
    "HistoryPage",
    "InvalidTransitionError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "WindowPolicy",
]
