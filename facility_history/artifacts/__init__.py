from facility_history.artifacts.scheduler import (
    AsyncioScheduler,
    ScheduledTask,
    TaskScheduler,
)
from facility_history.artifacts.store import (
    Artifact,
    ArtifactState,
    EphemeralArtifactStore,
    LocatorMode,
)

__all__ = [
    "Artifact",
    "ArtifactState",
    "AsyncioScheduler",
    "EphemeralArtifactStore",
    "LocatorMode",
    "ScheduledTask",
    "TaskScheduler",
]
