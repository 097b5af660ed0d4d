"""
Application Tracker - Manages the job application lifecycle and status tracking.
"""

from datetime import datetime
from typing import Callable, Optional, Union
import logging

from job_discovery.core.errors import ApplicationNotFoundError, ValidationError
from job_discovery.core.models import (
    Application,
    ApplicationStatus,
    Interview,
    Job,
    Offer,
    Rejection,
    StatusEntry,
)
from job_discovery.utils.storage import KeyValueStore


def _to_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class ApplicationTracker:
    """Tracks saved jobs and applications through their status lifecycle."""

    DATE_FIELDS = ("interview_date", "start_date", "response_deadline")

    SAVED_KEY = "saved_jobs"
    APPLICATIONS_KEY = "applications"
    INTERVIEWS_KEY = "interviews"
    OFFERS_KEY = "offers"
    REJECTIONS_KEY = "rejections"
    STATS_KEY = "application_stats"

    def __init__(self, store: KeyValueStore, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the application tracker.

        Args:
            store: Key-value store used to persist tracking data
            clock: Callable returning the current time
        """
        self.store = store
        self._now = clock or datetime.now

        self.saved_jobs: dict[str, dict] = {}
        self.applications: dict[str, Application] = {}
        self.interviews: dict[str, Interview] = {}
        self.offers: dict[str, Offer] = {}
        self.rejections: dict[str, Rejection] = {}
        self.stats = {
            "total_applications": 0,
            "total_interviews": 0,
            "total_offers": 0,
            "total_rejections": 0,
            "success_rate": 0.0,
        }
        self.logger = logging.getLogger(self.__class__.__name__)

    async def load(self) -> None:
        """Load persisted tracking data."""
        self.saved_jobs = await self.store.get(self.SAVED_KEY, {}) or {}

        raw = await self.store.get(self.APPLICATIONS_KEY, {}) or {}
        self.applications = {job_id: Application.from_dict(data) for job_id, data in raw.items()}

        raw = await self.store.get(self.INTERVIEWS_KEY, {}) or {}
        self.interviews = {job_id: Interview.from_dict(data) for job_id, data in raw.items()}

        raw = await self.store.get(self.OFFERS_KEY, {}) or {}
        self.offers = {job_id: Offer.from_dict(data) for job_id, data in raw.items()}

        raw = await self.store.get(self.REJECTIONS_KEY, {}) or {}
        self.rejections = {job_id: Rejection.from_dict(data) for job_id, data in raw.items()}

        self.stats.update(await self.store.get(self.STATS_KEY, {}) or {})

        self.logger.info(f"Loaded {len(self.applications)} applications and {len(self.saved_jobs)} saved jobs")

    async def _persist(self, *keys: str) -> None:
        records = {
            self.SAVED_KEY: lambda: self.saved_jobs,
            self.APPLICATIONS_KEY: lambda: {k: v.to_dict() for k, v in self.applications.items()},
            self.INTERVIEWS_KEY: lambda: {k: v.to_dict() for k, v in self.interviews.items()},
            self.OFFERS_KEY: lambda: {k: v.to_dict() for k, v in self.offers.items()},
            self.REJECTIONS_KEY: lambda: {k: v.to_dict() for k, v in self.rejections.items()},
            self.STATS_KEY: lambda: self.stats,
        }
        for key in keys:
            await self.store.set(key, records[key]())

    # ------------------------------------------------------------------
    # Saved jobs
    # ------------------------------------------------------------------

    async def save_job(self, job_id: str, job: Optional[Job] = None) -> bool:
        """
        Bookmark a job.

        Returns:
            False if the job has already been applied to (nothing saved)
        """
        if not job_id:
            raise ValidationError("job_id is required")
        if job_id in self.applications:
            return False

        self.saved_jobs[job_id] = {
            "job_id": job_id,
            "job": job.to_dict() if job else None,
            "saved_at": self._now().isoformat(),
        }
        await self._persist(self.SAVED_KEY)
        return True

    async def unsave_job(self, job_id: str) -> bool:
        if job_id not in self.saved_jobs:
            return False
        del self.saved_jobs[job_id]
        await self._persist(self.SAVED_KEY)
        return True

    def is_job_saved(self, job_id: str) -> bool:
        return job_id in self.saved_jobs

    def get_saved_jobs(self) -> list[dict]:
        return sorted(self.saved_jobs.values(), key=lambda s: s["saved_at"], reverse=True)

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    async def track_application(
        self,
        job_id: str,
        platform: str = "unknown",
        notes: str = "",
        job: Optional[Job] = None,
    ) -> Application:
        """
        Record that the user applied to a job.

        Args:
            job_id: Job identifier
            platform: Where the application was submitted
            notes: Free-text notes
            job: Optional job snapshot (defaults to the saved copy, if any)

        Returns:
            The new Application, or the existing one if already tracked
        """
        if not job_id:
            raise ValidationError("job_id is required")

        if job_id in self.applications:
            return self.applications[job_id]

        if job is None and self.saved_jobs.get(job_id, {}).get("job"):
            job = Job.from_dict(self.saved_jobs[job_id]["job"])

        now = self._now()
        application = Application(
            job_id=job_id,
            status=ApplicationStatus.APPLIED,
            applied_at=now,
            status_history=[StatusEntry(ApplicationStatus.APPLIED, now, notes)],
            platform=platform or "unknown",
            notes=notes,
            job=job,
            last_updated=now,
        )

        self.applications[job_id] = application
        self.saved_jobs.pop(job_id, None)
        self.stats["total_applications"] += 1
        self._update_success_rate()

        await self._persist(self.APPLICATIONS_KEY, self.SAVED_KEY, self.STATS_KEY)
        title = f"{job.title} at {job.company}" if job else job_id
        self.logger.info(f"Tracking application: {title}")

        return application

    def _validate_status(self, status: Union[str, ApplicationStatus]) -> ApplicationStatus:
        if isinstance(status, ApplicationStatus):
            return status
        try:
            return ApplicationStatus(str(status).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in ApplicationStatus)
            raise ValidationError(f"Invalid status '{status}'. Valid statuses: {valid}") from None

    async def update_application_status(
        self,
        job_id: str,
        status: Union[str, ApplicationStatus],
        notes: str = "",
        **data,
    ) -> Application:
        """
        Move an application to a new status.

        Args:
            job_id: Job identifier of a tracked application
            status: New status (enum or its string value)
            notes: Notes stored on the history entry
            **data: Extra fields for side-effect records, e.g. interview_date,
                interview_type, interviewers, salary, benefits, reason, feedback

        Returns:
            Updated Application

        Raises:
            ValidationError: unknown status, or leaving a terminal status
            ApplicationNotFoundError: no application tracked for job_id
        """
        new_status = self._validate_status(status)

        application = self.applications.get(job_id)
        if application is None:
            raise ApplicationNotFoundError(job_id)

        if new_status == ApplicationStatus.SAVED:
            raise ValidationError("An application cannot move back to 'saved'")
        if application.status.is_terminal and new_status != application.status:
            raise ValidationError(
                f"Application for {job_id} is {application.status.value}; cannot move to {new_status.value}"
            )

        data = self._normalize_dates(data)

        now = self._now()
        old_status = application.status
        application.status = new_status
        application.status_history.append(StatusEntry(new_status, now, notes))
        application.last_updated = now

        changed = [self.APPLICATIONS_KEY, self.STATS_KEY]

        if new_status == ApplicationStatus.INTERVIEW_SCHEDULED:
            self._schedule_interview(job_id, notes, data)
            changed.append(self.INTERVIEWS_KEY)
        elif new_status == ApplicationStatus.OFFER_RECEIVED:
            self._track_offer(job_id, now, data)
            changed.append(self.OFFERS_KEY)
        elif new_status in (ApplicationStatus.REJECTED, ApplicationStatus.GHOSTED):
            self._track_rejection(job_id, old_status, now, data)
            changed.append(self.REJECTIONS_KEY)
        elif new_status in (ApplicationStatus.OFFER_ACCEPTED, ApplicationStatus.OFFER_DECLINED):
            if job_id in self.offers:
                self.offers[job_id].status = "accepted" if new_status == ApplicationStatus.OFFER_ACCEPTED else "declined"
                changed.append(self.OFFERS_KEY)

        self._update_success_rate()
        await self._persist(*changed)
        self.logger.info(f"Updated {job_id}: {old_status.value} -> {new_status.value}")

        return application

    def _normalize_dates(self, data: dict) -> dict:
        """Parse optional date fields; unreadable values become None."""
        normalized = dict(data)
        for key in self.DATE_FIELDS:
            if key not in normalized:
                continue
            try:
                normalized[key] = _to_datetime(normalized[key])
            except (TypeError, ValueError):
                self.logger.warning(f"Ignoring unreadable {key}: {normalized[key]!r}")
                normalized[key] = None
        return normalized

    def _schedule_interview(self, job_id: str, notes: str, data: dict) -> None:
        interview = self.interviews.get(job_id)
        if interview is None:
            interview = Interview(job_id=job_id)
        interview.interview_date = data.get("interview_date") or interview.interview_date
        interview.interview_type = data.get("interview_type", interview.interview_type)
        interview.interviewers = list(data.get("interviewers", interview.interviewers))
        interview.location = data.get("location", interview.location)
        interview.notes = notes or interview.notes
        interview.completed = False

        self.interviews[job_id] = interview
        self.stats["total_interviews"] += 1

    def _track_offer(self, job_id: str, now: datetime, data: dict) -> None:
        self.offers[job_id] = Offer(
            job_id=job_id,
            salary=data.get("salary"),
            benefits=list(data.get("benefits", [])),
            start_date=data.get("start_date"),
            response_deadline=data.get("response_deadline"),
            negotiable=data.get("negotiable", True),
            status="pending",
            received_at=now,
        )
        self.stats["total_offers"] += 1

    def _track_rejection(self, job_id: str, stage: ApplicationStatus, now: datetime, data: dict) -> None:
        self.rejections[job_id] = Rejection(
            job_id=job_id,
            reason=data.get("reason", "not_provided"),
            feedback=data.get("feedback", ""),
            stage=data.get("stage", stage.value),
            follow_up_allowed=data.get("follow_up_allowed", False),
            rejected_at=now,
        )
        self.stats["total_rejections"] += 1

    def _update_success_rate(self) -> None:
        total = self.stats["total_applications"]
        self.stats["success_rate"] = round(self.stats["total_offers"] / total * 100, 1) if total else 0.0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_applied_to_job(self, job_id: str) -> bool:
        return job_id in self.applications

    def get_application_for_job(self, job_id: str) -> Optional[Application]:
        return self.applications.get(job_id)

    def get_applied_jobs(self, status: Union[str, ApplicationStatus, None] = None) -> list[Application]:
        """Applications, newest first, optionally filtered by status."""
        applications = list(self.applications.values())
        if status is not None:
            wanted = self._validate_status(status)
            applications = [a for a in applications if a.status == wanted]
        return sorted(applications, key=lambda a: a.applied_at, reverse=True)

    def get_upcoming_interviews(self) -> list[Interview]:
        now = self._now()
        upcoming = [
            i for i in self.interviews.values()
            if not i.completed and i.interview_date and i.interview_date >= now
        ]
        return sorted(upcoming, key=lambda i: i.interview_date)

    def get_pending_offers(self) -> list[Offer]:
        return [o for o in self.offers.values() if o.status == "pending"]

    def get_statistics(self) -> dict:
        """
        Derived application statistics.

        Returns:
            Counters plus response rate, interview rate (percentages) and
            average response time in days
        """
        applications = list(self.applications.values())
        total = len(applications)

        responded = 0
        interviewed = 0
        response_days = []
        by_status: dict[str, int] = {}

        for app in applications:
            by_status[app.status.value] = by_status.get(app.status.value, 0) + 1

            statuses = [entry.status for entry in app.status_history]
            if any(s != ApplicationStatus.APPLIED for s in statuses):
                responded += 1
            if any(s.is_interview for s in statuses):
                interviewed += 1

            first_response = next(
                (e for e in app.status_history if e.status != ApplicationStatus.APPLIED), None
            )
            if first_response is not None:
                delta = first_response.timestamp - app.applied_at
                response_days.append(delta.total_seconds() / 86400)

        return {
            **self.stats,
            "total": total,
            "saved_jobs": len(self.saved_jobs),
            "by_status": by_status,
            "response_rate": round(responded / total * 100, 1) if total else 0.0,
            "interview_rate": round(interviewed / total * 100, 1) if total else 0.0,
            "average_response_time": round(sum(response_days) / len(response_days), 1) if response_days else 0.0,
        }
