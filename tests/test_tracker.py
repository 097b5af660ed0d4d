from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from conftest import FakeClock, make_job

from job_discovery.core.errors import ApplicationNotFoundError, ValidationError
from job_discovery.core.models import ApplicationStatus
from job_discovery.tracker import ApplicationTracker
from job_discovery.utils.storage import MemoryStore


def make_tracker(clock: FakeClock, store: MemoryStore = None) -> ApplicationTracker:
    return ApplicationTracker(store if store is not None else MemoryStore(), clock=clock)


def test_track_then_update_appends_history(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.track_application("job-1", platform="Greenhouse", notes="referral")
        clock.advance(days=2)
        return await tracker.update_application_status("job-1", "under_review", notes="recruiter replied")

    application = asyncio.run(scenario())

    assert application.status == ApplicationStatus.UNDER_REVIEW
    assert [e.status for e in application.status_history] == [
        ApplicationStatus.APPLIED,
        ApplicationStatus.UNDER_REVIEW,
    ]
    assert application.status_history[1].notes == "recruiter replied"
    assert application.last_updated == clock.now


def test_invalid_status_is_rejected(clock: FakeClock) -> None:
    tracker = make_tracker(clock)
    asyncio.run(tracker.track_application("job-1"))

    with pytest.raises(ValidationError):
        asyncio.run(tracker.update_application_status("job-1", "hired_immediately"))

    with pytest.raises(ValueError):
        asyncio.run(tracker.update_application_status("job-1", "nope"))

    assert len(tracker.get_application_for_job("job-1").status_history) == 1


def test_unknown_application_raises_not_found(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    with pytest.raises(ApplicationNotFoundError) as excinfo:
        asyncio.run(tracker.update_application_status("ghost-job", "under_review"))

    assert excinfo.value.job_id == "ghost-job"


def test_terminal_status_cannot_transition(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.track_application("job-1")
        await tracker.update_application_status("job-1", "rejected", reason="position_filled")
        await tracker.update_application_status("job-1", ApplicationStatus.UNDER_REVIEW)

    with pytest.raises(ValidationError):
        asyncio.run(scenario())

    assert tracker.rejections["job-1"].reason == "position_filled"
    assert tracker.rejections["job-1"].stage == "applied"
    assert tracker.stats["total_rejections"] == 1


def test_cannot_move_back_to_saved(clock: FakeClock) -> None:
    tracker = make_tracker(clock)
    asyncio.run(tracker.track_application("job-1"))

    with pytest.raises(ValidationError):
        asyncio.run(tracker.update_application_status("job-1", "saved"))


def test_interview_and_offer_side_effects(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.track_application("job-1")
        await tracker.update_application_status(
            "job-1",
            "interview_scheduled",
            interview_date="2026-03-10T15:00:00",
            interviewers=["Lead Designer"],
        )
        await tracker.update_application_status("job-1", "offer_received", salary="$110,000")

    asyncio.run(scenario())

    interviews = tracker.get_upcoming_interviews()
    assert [i.job_id for i in interviews] == ["job-1"]
    assert interviews[0].interview_date == datetime(2026, 3, 10, 15, 0)
    assert interviews[0].interviewers == ["Lead Designer"]

    offers = tracker.get_pending_offers()
    assert [o.salary for o in offers] == ["$110,000"]
    assert tracker.stats["success_rate"] == 100.0

    asyncio.run(tracker.update_application_status("job-1", "offer_accepted"))

    assert tracker.get_pending_offers() == []
    assert tracker.offers["job-1"].status == "accepted"


def test_saving_and_applying(clock: FakeClock) -> None:
    tracker = make_tracker(clock)
    job = make_job("job-1", title="Tools Programmer", company="Bungie")

    async def scenario():
        assert await tracker.save_job("job-1", job) is True
        assert tracker.is_job_saved("job-1")
        application = await tracker.track_application("job-1")
        again = await tracker.track_application("job-1")
        saved_after_apply = await tracker.save_job("job-1")
        return application, again, saved_after_apply

    application, again, saved_after_apply = asyncio.run(scenario())

    assert application is again
    assert application.job.title == "Tools Programmer"
    assert not tracker.is_job_saved("job-1")
    assert saved_after_apply is False
    assert tracker.stats["total_applications"] == 1


def test_empty_job_id_is_rejected(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    with pytest.raises(ValidationError):
        asyncio.run(tracker.track_application(""))


def test_state_survives_reload(clock: FakeClock) -> None:
    store = MemoryStore()
    tracker = make_tracker(clock, store)

    async def scenario():
        await tracker.track_application("job-1", job=make_job("job-1"))
        await tracker.update_application_status("job-1", "interview_scheduled", interview_date="2026-03-05T10:00:00")
        await tracker.save_job("job-2")

        reloaded = make_tracker(clock, store)
        await reloaded.load()
        return reloaded

    reloaded = asyncio.run(scenario())

    application = reloaded.get_application_for_job("job-1")
    assert application.status == ApplicationStatus.INTERVIEW_SCHEDULED
    assert len(application.status_history) == 2
    assert application.job.id == "job-1"
    assert reloaded.is_job_saved("job-2")
    assert "job-1" in reloaded.interviews
    assert reloaded.stats["total_interviews"] == 1


def test_statistics(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.track_application("job-1")
        await tracker.track_application("job-2")
        clock.advance(days=2)
        await tracker.update_application_status("job-1", "under_review")
        clock.advance(days=1)
        await tracker.update_application_status("job-1", "interview_scheduled")
        await tracker.save_job("job-3")

    asyncio.run(scenario())

    stats = tracker.get_statistics()
    assert stats["total"] == 2
    assert stats["saved_jobs"] == 1
    assert stats["by_status"] == {"interview_scheduled": 1, "applied": 1}
    assert stats["response_rate"] == 50.0
    assert stats["interview_rate"] == 50.0
    assert stats["average_response_time"] == 2.0
    assert stats["total_interviews"] == 1


def test_applied_jobs_filter_by_status(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.track_application("job-1")
        clock.advance(hours=1)
        await tracker.track_application("job-2")
        await tracker.update_application_status("job-2", "withdrawn")

    asyncio.run(scenario())

    assert [a.job_id for a in tracker.get_applied_jobs()] == ["job-2", "job-1"]
    assert [a.job_id for a in tracker.get_applied_jobs("withdrawn")] == ["job-2"]


def test_unsave_and_applied_lookups(clock: FakeClock) -> None:
    tracker = make_tracker(clock)

    async def scenario():
        await tracker.save_job("job-1")
        removed = await tracker.unsave_job("job-1")
        removed_again = await tracker.unsave_job("job-1")
        await tracker.track_application("job-2")
        return removed, removed_again

    removed, removed_again = asyncio.run(scenario())

    assert (removed, removed_again) == (True, False)
    assert not tracker.is_job_saved("job-1")
    assert tracker.has_applied_to_job("job-2")
    assert not tracker.has_applied_to_job("job-1")


def test_unreadable_dates_become_none(clock: FakeClock) -> None:
    store = MemoryStore()
    tracker = make_tracker(clock, store)

    async def scenario():
        await tracker.track_application("job-1")
        await tracker.update_application_status("job-1", "interview_scheduled", interview_date="next tuesday")
        await tracker.track_application("job-2")
        await tracker.update_application_status("job-2", "offer_received", salary=90000, start_date="soon")

        reloaded = make_tracker(clock, store)
        await reloaded.load()
        return reloaded

    reloaded = asyncio.run(scenario())

    application = tracker.get_application_for_job("job-1")
    assert application.status == ApplicationStatus.INTERVIEW_SCHEDULED
    assert tracker.interviews["job-1"].interview_date is None
    assert tracker.offers["job-2"].start_date is None
    assert tracker.offers["job-2"].salary == 90000
    assert reloaded.get_application_for_job("job-1").status == ApplicationStatus.INTERVIEW_SCHEDULED
    assert "job-1" in reloaded.interviews
    assert "job-2" in reloaded.offers
