from __future__ import annotations

import pytest

from facility_history.core.exceptions import InvalidTransitionError
from facility_history.models import ExportJob, JobStatus

_HAPPY_PATH = (
    JobStatus.VALIDATING,
    JobStatus.MATCHING,
    JobStatus.STREAMING,
    JobStatus.WRITING,
    JobStatus.FINALIZED,
)


def _job_at(status: JobStatus) -> ExportJob:
    job = ExportJob(record_cap=10)
    for step in _HAPPY_PATH:
        if job.status is status:
            break
        job.advance(step)
    return job


class TestExportJob:
    def test_happy_path(self):
        job = ExportJob(record_cap=10)
        assert job.status is JobStatus.CREATED
        for step in _HAPPY_PATH:
            job.advance(step)
        assert job.status is JobStatus.FINALIZED
        assert job.is_terminal
        assert job.finished_at is not None

    def test_ids_are_unique(self):
        assert ExportJob(record_cap=1).id != ExportJob(record_cap=1).id

    @pytest.mark.parametrize(
        "status",
        [
            JobStatus.CREATED,
            JobStatus.VALIDATING,
            JobStatus.MATCHING,
            JobStatus.STREAMING,
            JobStatus.WRITING,
        ],
    )
    def test_fail_from_any_live_state(self, status: JobStatus):
        job = _job_at(status)
        job.fail("boom")
        assert job.status is JobStatus.FAILED
        assert job.error_message == "boom"

    def test_abort_only_while_streaming(self):
        job = _job_at(JobStatus.STREAMING)
        job.abort("cap")
        assert job.status is JobStatus.ABORTED

        with pytest.raises(InvalidTransitionError):
            _job_at(JobStatus.MATCHING).abort("cap")

    def test_cannot_skip_states(self):
        job = ExportJob(record_cap=10)
        with pytest.raises(InvalidTransitionError):
            job.advance(JobStatus.STREAMING)

    @pytest.mark.parametrize(
        "finish", [lambda j: j.fail("x"), lambda j: j.advance(JobStatus.FINALIZED)]
    )
    def test_terminal_states_are_final(self, finish):
        job = _job_at(JobStatus.WRITING)
        finish(job)
        with pytest.raises(InvalidTransitionError):
            job.advance(JobStatus.VALIDATING)
        with pytest.raises(InvalidTransitionError):
            job.fail("again")

    def test_would_exceed_cap(self):
        job = ExportJob(record_cap=10)
        job.processed_count = 8
        assert not job.would_exceed_cap(2)
        assert job.would_exceed_cap(3)
