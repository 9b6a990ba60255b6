from facility_history.models.facility import (
    AreaType,
    Facility,
    FacilityMatch,
    HistoryEntry,
)
from facility_history.models.job import TERMINAL_STATUSES, ExportJob, JobStatus
from facility_history.models.utils import generate_id, unique_file_name

__all__ = [
    "AreaType",
    "ExportJob",
    "Facility",
    "FacilityMatch",
    "HistoryEntry",
    "JobStatus",
    "TERMINAL_STATUSES",
    "generate_id",
    "unique_file_name",
]
