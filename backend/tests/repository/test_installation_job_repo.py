"""Installation job + sync log repositories."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from aisummary.core.errors import JobStateError
from aisummary.db.model.installation_job import JOB_PENDING, JOB_PROCESSING, JOB_FAILED
from aisummary.repository import installation_job_repo, sync_log_repo


SHOP = "demo-store.myshopify.com"


def test_latest_job_is_the_most_recently_created(db, monkeypatch):
    base = datetime(2025, 5, 1, 9, 0, 0)
    for i, job_id in enumerate(("job-a", "job-b", "job-c")):
        monkeypatch.setattr(installation_job_repo, "now_utc", lambda i=i: base + timedelta(minutes=i))
        installation_job_repo.create(db, job_id, SHOP, JOB_PENDING)

    assert installation_job_repo.get_latest_for_shop(db, SHOP).job_id == "job-c"
    assert installation_job_repo.get_latest_for_shop(db, "nobody.myshopify.com") is None


def test_conditional_update_only_applies_from_allowed_states(db):
    installation_job_repo.create(db, "job-1", SHOP, JOB_PENDING)

    assert installation_job_repo.update_fields(db, "job-1", [JOB_PROCESSING], status=JOB_FAILED) == 0
    assert installation_job_repo.update_fields(db, "job-1", [JOB_PENDING], status=JOB_PROCESSING) == 1
    assert installation_job_repo.get(db, "job-1").status == JOB_PROCESSING
    assert installation_job_repo.update_fields(db, "missing", [JOB_PENDING], status=JOB_FAILED) == 0


def test_recreating_a_terminal_job_is_refused(db):
    installation_job_repo.create(db, "job-1", SHOP, JOB_PENDING)
    installation_job_repo.update_fields(db, "job-1", [JOB_PENDING], status=JOB_FAILED, error_message="boom")

    with pytest.raises(JobStateError):
        installation_job_repo.create(db, "job-1", SHOP, JOB_PENDING)
    assert installation_job_repo.get(db, "job-1").error_message == "boom"


def test_active_jobs_and_delete_for_shop(db):
    installation_job_repo.create(db, "job-1", SHOP, JOB_PENDING)
    installation_job_repo.create(db, "job-2", SHOP, JOB_PROCESSING)
    installation_job_repo.create(db, "job-3", SHOP, JOB_PENDING)
    installation_job_repo.update_fields(db, "job-3", [JOB_PENDING], status=JOB_FAILED)

    assert sorted(j.job_id for j in installation_job_repo.list_active_for_shop(db, SHOP)) == ["job-1", "job-2"]
    assert installation_job_repo.delete_for_shop(db, SHOP) == 3


def test_sync_log_is_append_only_and_newest_first(db):
    sync_log_repo.log_sync(db, SHOP, sync_log_repo.SYNC_SUCCESS, 3, 120, job_id="job-1")
    sync_log_repo.log_sync(db, SHOP, sync_log_repo.SYNC_FAILED, 1, 80, error_message="boom", job_id="job-2")

    logs = sync_log_repo.list_sync_logs(db, SHOP)
    assert [l.job_id for l in logs] == ["job-2", "job-1"]
    assert logs[0].error_message == "boom"

    with pytest.raises(ValueError):
        sync_log_repo.log_sync(db, SHOP, "partial", 0, 0)
