from facility_history.export.formatting import COLUMNS, HEADERS, RecordFormatter
from facility_history.export.matching import MatchResolver
from facility_history.export.pipeline import ExportPipeline
from facility_history.export.streaming import HistoryStreamer, StreamedPage
from facility_history.export.window import TimeWindowPlanner
from facility_history.export.writer import SpreadsheetWriter

__all__ = [
    "COLUMNS",
    "ExportPipeline",
    "HEADERS",
    "HistoryStreamer",
    "MatchResolver",
    "RecordFormatter",
    "SpreadsheetWriter",
    "StreamedPage",
    "TimeWindowPlanner",
]
