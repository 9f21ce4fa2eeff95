"""
Job Store Tests.

- Creation stamps principal and time once
- Enabled flag edges produce ENABLE / DISABLE notifications
- update_job overlays fields and replaces parameters
- remove_job leaves logs and watchers in place
"""

import pytest

from src.scheduler import (
    InvalidOperationError,
    JobDefinition,
    JobNotFoundError,
    JobParameterDefinition,
    JobStatus,
    JobStore,
    PersistenceAdapter,
    WatcherRegistry,
)
from src.scheduler.entities import JOB_GROUP_DEFINED


class TestCreateJob:

    def test_create_job_stamps_principal_and_time(self, job_store: JobStore, mock_clock):
        job = job_store.create_job(
            "nightly-report",
            JOB_GROUP_DEFINED,
            None,
            "jobs/nightly.js",
            "javascript",
            "Nightly report",
            "0 0 2 * * ?",
        )

        assert job.created_by == "alice"
        assert job.created_at == mock_clock.now_iso()
        assert job_store.exists_job("nightly-report")

    def test_create_job_with_parameters(self, job_store: JobStore):
        job = job_store.create_job(
            "nightly-report",
            JOB_GROUP_DEFINED,
            None,
            "jobs/nightly.js",
            "javascript",
            None,
            "0 0 2 * * ?",
            parameters=[JobParameterDefinition(name="limit", default_value="10")],
        )

        assert [(p.job_name, p.name) for p in job.parameters] == [("nightly-report", "limit")]

    def test_empty_name_rejected(self, job_store: JobStore):
        with pytest.raises(InvalidOperationError):
            job_store.create_or_update_job(JobDefinition(name="  "))

    def test_creation_fields_survive_updates(self, job_store: JobStore, create_job, mock_clock):
        original = create_job()
        mock_clock.tick(3600)
        job_store.principal_provider = lambda: "bob"

        updated = job_store.create_or_update_job(
            JobDefinition(name="nightly-report", description="edited")
        )

        assert updated.created_at == original.created_at
        assert updated.created_by == "alice"
        assert updated.description == "edited"

    def test_create_sends_no_notification(self, create_job, mail_transport):
        create_job(enabled=False)
        create_job(name="other", enabled=True)

        assert mail_transport.sent == []


class TestEnabledEdges:

    def test_disable_sends_disable(self, job_store: JobStore, create_job, mail_transport):
        job = create_job(enabled=True)
        job.enabled = False

        job_store.create_or_update_job(job)

        assert mail_transport.subjects == ["Job execution has been disabled: [nightly-report]"]

    def test_enable_sends_enable(self, job_store: JobStore, create_job, mail_transport):
        job = create_job(enabled=False)
        job.enabled = True

        job_store.create_or_update_job(job)

        assert mail_transport.subjects == ["Job execution has been enabled: [nightly-report]"]

    def test_unchanged_flag_is_silent(self, job_store: JobStore, create_job, mail_transport):
        job = create_job(enabled=True)
        job.description = "still enabled"

        job_store.create_or_update_job(job)
        job_store.create_or_update_job(job)

        assert mail_transport.sent == []


class TestUpdateJob:

    def test_missing_job_raises(self, job_store: JobStore):
        with pytest.raises(JobNotFoundError) as exc_info:
            job_store.update_job("ghost", JOB_GROUP_DEFINED, None, None, None, None, None)

        assert "ghost" in str(exc_info.value)

    def test_replaces_fields_and_parameters(self, job_store: JobStore, create_job):
        create_job(parameters=[("a", "1"), ("b", "2")])

        updated = job_store.update_job(
            "nightly-report",
            JOB_GROUP_DEFINED,
            "com.example.Report",
            "jobs/report-v2.js",
            "javascript",
            "v2",
            "0 0 3 * * ?",
            singleton=True,
            parameters=[JobParameterDefinition(name="c", default_value="3")],
        )

        assert updated.schedule_expression == "0 0 3 * * ?"
        assert updated.singleton is True
        assert [p.name for p in job_store.get_job_parameters("nightly-report")] == ["c"]

    def test_enabled_none_keeps_stored_flag(self, job_store: JobStore, create_job, mail_transport):
        create_job(enabled=False)

        updated = job_store.update_job(
            "nightly-report", JOB_GROUP_DEFINED, None, "jobs/x.js", None, None, None
        )

        assert updated.enabled is False
        assert mail_transport.sent == []

    def test_enabled_flip_through_update(self, job_store: JobStore, create_job, mail_transport):
        create_job(enabled=True)

        job_store.update_job(
            "nightly-report", JOB_GROUP_DEFINED, None, "jobs/x.js", None, None, None, enabled=False
        )

        assert len(mail_transport.sent) == 1
        assert "disabled" in mail_transport.sent[0]["subject"]

    def test_update_keeps_rollup_status(self, job_store: JobStore, create_job, recorder):
        create_job()
        trigger = recorder.job_triggered("nightly-report", "jobs/nightly-report.js")
        recorder.job_failed("nightly-report", trigger.handler, trigger.id, trigger.triggered_at, "boom")

        updated = job_store.update_job(
            "nightly-report", JOB_GROUP_DEFINED, None, "jobs/x.js", None, None, None
        )

        assert updated.status == JobStatus.FAILED
        assert updated.message == "boom"

    def test_update_does_not_revert_concurrent_outcome(
        self, job_store: JobStore, create_job, recorder, mail_transport, monkeypatch
    ):
        create_job()
        trigger = recorder.job_triggered("nightly-report", "jobs/nightly-report.js")
        recorder.job_finished("nightly-report", trigger.handler, trigger.id, trigger.triggered_at)
        mail_transport.sent.clear()
        load_job = job_store.get_job

        def load_then_fail(name):
            job = load_job(name)
            recorder.job_failed(name, trigger.handler, None, trigger.triggered_at, "disk full")
            return job

        monkeypatch.setattr(job_store, "get_job", load_then_fail)
        updated = job_store.update_job(
            "nightly-report", JOB_GROUP_DEFINED, None, "jobs/x.js", None, None, None
        )
        monkeypatch.undo()

        assert updated.status == JobStatus.FAILED
        assert job_store.get_job("nightly-report").message == "disk full"

        recorder.job_failed("nightly-report", trigger.handler, None, trigger.triggered_at, "again")
        assert len(mail_transport.sent) == 1


class TestRemoveJob:

    def test_remove_keeps_logs_and_watchers(
        self,
        job_store: JobStore,
        create_job,
        recorder,
        watchers: WatcherRegistry,
        persistence: PersistenceAdapter,
    ):
        create_job(parameters=[("limit", "10")])
        recorder.job_logged("nightly-report", "jobs/nightly-report.js", "hello")
        watchers.add_job_email("nightly-report", "dev@example.com")

        assert job_store.remove_job("nightly-report") is True

        assert job_store.get_job("nightly-report") is None
        assert persistence.get_job_parameters("nightly-report") == []
        assert len(recorder.get_job_logs("nightly-report")) == 1
        assert len(watchers.get_job_emails("nightly-report")) == 1

    def test_remove_unknown_returns_false(self, job_store: JobStore):
        assert job_store.remove_job("ghost") is False

    def test_get_jobs(self, job_store: JobStore, create_job):
        create_job("b")
        create_job("a")

        assert [job.name for job in job_store.get_jobs()] == ["a", "b"]
