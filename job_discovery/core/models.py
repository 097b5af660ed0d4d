"""
Core data models for the job discovery engine.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional
import copy
import json

from job_discovery.utils.config import deep_merge


class JobType(Enum):
    """Type of employment."""
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"


class ExperienceLevel(Enum):
    """Seniority ladder, lowest first."""
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    EXECUTIVE = "executive"

    @property
    def rank(self) -> int:
        return list(ExperienceLevel).index(self)


class SortMode(Enum):
    """Ordering applied to search results."""
    RELEVANCE = "relevance"
    DATE = "date"
    SALARY = "salary"
    QUALITY = "quality"
    COMPANY = "company"
    COMPETITION = "competition"


class ApplicationStatus(Enum):
    """Status of a job application."""
    SAVED = "saved"
    APPLIED = "applied"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEWED = "interviewed"
    SECOND_INTERVIEW = "second_interview"
    FINAL_INTERVIEW = "final_interview"
    REFERENCE_CHECK = "reference_check"
    OFFER_RECEIVED = "offer_received"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_DECLINED = "offer_declined"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    GHOSTED = "ghosted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_interview(self) -> bool:
        return self in INTERVIEW_STATUSES


TERMINAL_STATUSES = frozenset({
    ApplicationStatus.OFFER_ACCEPTED,
    ApplicationStatus.OFFER_DECLINED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
    ApplicationStatus.GHOSTED,
})

INTERVIEW_STATUSES = frozenset({
    ApplicationStatus.INTERVIEW_SCHEDULED,
    ApplicationStatus.INTERVIEWED,
    ApplicationStatus.SECOND_INTERVIEW,
    ApplicationStatus.FINAL_INTERVIEW,
})


class AlertFrequency(Enum):
    """How often an alert is re-run."""
    INSTANT = "instant"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class NotificationType(Enum):
    JOB_ALERT = "job_alert"
    ERROR = "error"


class NotificationPriority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


@dataclass
class ParsedLocation:
    """Structured view of a free-text location."""
    city: str = ""
    state: str = ""
    country: str = "US"
    remote: bool = False
    hybrid: bool = False

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "remote": self.remote,
            "hybrid": self.hybrid,
        }


@dataclass
class ParsedSalary:
    """Structured view of a free-text salary."""
    min: Optional[int] = None
    max: Optional[int] = None
    currency: str = "USD"
    period: str = "yearly"  # yearly, monthly, hourly
    equity: bool = False

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "currency": self.currency,
            "period": self.period,
            "equity": self.equity,
        }


@dataclass
class MatchFactor:
    """One weighted component of a match score."""
    category: str
    score: float
    weight: float
    details: str = ""

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "score": round(self.score, 2),
            "weight": self.weight,
            "details": self.details,
        }


@dataclass
class MatchResult:
    """Personalized match breakdown for a job."""
    total_score: float = 0.0  # 0-100
    factors: list[MatchFactor] = field(default_factory=list)
    recommendation: str = ""
    confidence_level: str = "Low"

    def factor(self, category: str) -> Optional[MatchFactor]:
        for factor in self.factors:
            if factor.category == category:
                return factor
        return None

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "factors": [f.to_dict() for f in self.factors],
            "recommendation": self.recommendation,
            "confidence_level": self.confidence_level,
        }


@dataclass
class Job:
    """Canonical job listing, independent of the source it came from."""
    id: str = ""
    title: str = ""
    company: str = ""
    location: str = ""
    parsed_location: ParsedLocation = field(default_factory=ParsedLocation)
    job_type: JobType = JobType.FULL_TIME
    description: str = ""
    salary: Optional[str] = None
    parsed_salary: Optional[ParsedSalary] = None
    apply_url: Optional[str] = None
    posted_at: str = "Recently"
    source: str = ""
    requirements: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    relevance_score: float = 0.0  # 0-100
    quality_score: float = 0.0  # 0-100
    verified: bool = False
    remote: bool = False
    industry: str = ""
    estimated_applicants: Optional[int] = None
    competition_level: Optional[str] = None
    match: Optional[MatchResult] = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.title.strip().lower(), self.company.strip().lower())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "parsed_location": self.parsed_location.to_dict(),
            "job_type": self.job_type.value,
            "description": self.description,
            "salary": self.salary,
            "parsed_salary": self.parsed_salary.to_dict() if self.parsed_salary else None,
            "apply_url": self.apply_url,
            "posted_at": self.posted_at,
            "source": self.source,
            "requirements": self.requirements,
            "tags": self.tags,
            "keywords": self.keywords,
            "relevance_score": self.relevance_score,
            "quality_score": self.quality_score,
            "verified": self.verified,
            "remote": self.remote,
            "industry": self.industry,
            "estimated_applicants": self.estimated_applicants,
            "competition_level": self.competition_level,
            "match": self.match.to_dict() if self.match else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        salary_data = data.get("parsed_salary")
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            company=data.get("company", ""),
            location=data.get("location", ""),
            parsed_location=ParsedLocation(**data.get("parsed_location", {})),
            job_type=JobType(data.get("job_type", JobType.FULL_TIME.value)),
            description=data.get("description", ""),
            salary=data.get("salary"),
            parsed_salary=ParsedSalary(**salary_data) if salary_data else None,
            apply_url=data.get("apply_url"),
            posted_at=data.get("posted_at", "Recently"),
            source=data.get("source", ""),
            requirements=list(data.get("requirements", [])),
            tags=list(data.get("tags", [])),
            keywords=list(data.get("keywords", [])),
            relevance_score=data.get("relevance_score", 0.0),
            quality_score=data.get("quality_score", 0.0),
            verified=data.get("verified", False),
            remote=data.get("remote", False),
            industry=data.get("industry", ""),
            estimated_applicants=data.get("estimated_applicants"),
            competition_level=data.get("competition_level"),
        )


@dataclass(frozen=True)
class SearchCriteria:
    """Parameters of one search invocation; also the persisted body of an alert."""
    query: str = ""
    location: str = ""
    remote: bool = False
    salary_min: int = 0
    salary_max: int = 200000
    experience_level: Optional[str] = None  # entry, mid, senior, executive
    job_type: Optional[str] = None
    industry: str = ""
    sources: Optional[tuple[str, ...]] = None
    max_results: int = 50
    sort_by: SortMode = SortMode.RELEVANCE
    gaming_relevance_min: float = 0
    quality_min: float = 0

    def with_query(self, query: str) -> "SearchCriteria":
        return replace(self, query=query)

    def cache_key(self) -> str:
        """Key identifying the candidate pool this search draws from."""
        return json.dumps({
            "query": self.query.strip().lower(),
            "location": self.location.strip().lower(),
            "remote": self.remote,
            "industry": self.industry.strip().lower(),
            "sources": sorted(self.sources) if self.sources else [],
        }, sort_keys=True)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "location": self.location,
            "remote": self.remote,
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "experience_level": self.experience_level,
            "job_type": self.job_type,
            "industry": self.industry,
            "sources": list(self.sources) if self.sources else None,
            "max_results": self.max_results,
            "sort_by": self.sort_by.value,
            "gaming_relevance_min": self.gaming_relevance_min,
            "quality_min": self.quality_min,
        }


@dataclass
class ExperienceInfo:
    years: float = 0
    level: str = "entry"
    industries: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)


@dataclass
class Preferences:
    salary_min: int = 0
    salary_max: int = 200000
    locations: list[str] = field(default_factory=lambda: ["Remote"])
    job_types: list[str] = field(default_factory=lambda: ["Full-time"])
    remote_work: bool = True
    gaming_focus: bool = True


@dataclass
class EducationInfo:
    degree: str = ""
    field_of_study: str = ""
    certifications: list[str] = field(default_factory=list)


def _education_fields(data: dict) -> dict:
    # Older profiles stored the field of study under "field"
    data = dict(data)
    if "field" in data:
        data.setdefault("field_of_study", data.pop("field"))
    return data


@dataclass
class Portfolio:
    github: str = ""
    website: str = ""
    projects: list[str] = field(default_factory=list)


@dataclass
class CareerGoals:
    target_roles: list[str] = field(default_factory=list)
    skills_to_learn: list[str] = field(default_factory=list)
    timeframe: str = "6months"


@dataclass
class UserProfile:
    """Job seeker profile used for personalized matching."""
    skills: set[str] = field(default_factory=set)
    experience: ExperienceInfo = field(default_factory=ExperienceInfo)
    preferences: Preferences = field(default_factory=Preferences)
    education: EducationInfo = field(default_factory=EducationInfo)
    portfolio: Portfolio = field(default_factory=Portfolio)
    career_goals: CareerGoals = field(default_factory=CareerGoals)

    def __post_init__(self):
        self.skills = {s.strip().lower() for s in self.skills if s and s.strip()}

    def to_dict(self) -> dict:
        return {
            "skills": sorted(self.skills),
            "experience": copy.deepcopy(vars(self.experience)),
            "preferences": copy.deepcopy(vars(self.preferences)),
            "education": copy.deepcopy(vars(self.education)),
            "portfolio": copy.deepcopy(vars(self.portfolio)),
            "career_goals": copy.deepcopy(vars(self.career_goals)),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        return cls(
            skills=set(data.get("skills", [])),
            experience=ExperienceInfo(**data.get("experience", {})),
            preferences=Preferences(**data.get("preferences", {})),
            education=EducationInfo(**_education_fields(data.get("education") or {})),
            portfolio=Portfolio(**data.get("portfolio", {})),
            career_goals=CareerGoals(**data.get("career_goals", {})),
        )

    def updated(self, changes: dict) -> "UserProfile":
        """
        Return a copy of this profile with ``changes`` deep-merged in.

        Args:
            changes: Partial profile dict, e.g. {"preferences": {"salary_min": 90000}}

        Returns:
            New UserProfile
        """
        return UserProfile.from_dict(deep_merge(self.to_dict(), changes))


@dataclass
class StatusEntry:
    status: ApplicationStatus
    timestamp: datetime
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatusEntry":
        return cls(
            status=ApplicationStatus(data["status"]),
            timestamp=_parse_dt(data["timestamp"]),
            notes=data.get("notes", ""),
        )


@dataclass
class Application:
    """A tracked application; one per job id."""
    job_id: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    applied_at: datetime = field(default_factory=datetime.now)
    status_history: list[StatusEntry] = field(default_factory=list)
    platform: str = "unknown"
    notes: str = ""
    job: Optional[Job] = None
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "applied_at": self.applied_at.isoformat(),
            "status_history": [entry.to_dict() for entry in self.status_history],
            "platform": self.platform,
            "notes": self.notes,
            "job": self.job.to_dict() if self.job else None,
            "last_updated": _iso(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Application":
        return cls(
            job_id=data["job_id"],
            status=ApplicationStatus(data.get("status", "applied")),
            applied_at=_parse_dt(data.get("applied_at")) or datetime.now(),
            status_history=[StatusEntry.from_dict(e) for e in data.get("status_history", [])],
            platform=data.get("platform", "unknown"),
            notes=data.get("notes", ""),
            job=Job.from_dict(data["job"]) if data.get("job") else None,
            last_updated=_parse_dt(data.get("last_updated")),
        )


@dataclass
class Interview:
    job_id: str
    interview_date: Optional[datetime] = None
    interview_type: str = "video"
    interviewers: list[str] = field(default_factory=list)
    location: str = ""
    notes: str = ""
    completed: bool = False

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "interview_date": _iso(self.interview_date),
            "interview_type": self.interview_type,
            "interviewers": self.interviewers,
            "location": self.location,
            "notes": self.notes,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Interview":
        return cls(
            job_id=data["job_id"],
            interview_date=_parse_dt(data.get("interview_date")),
            interview_type=data.get("interview_type", "video"),
            interviewers=list(data.get("interviewers", [])),
            location=data.get("location", ""),
            notes=data.get("notes", ""),
            completed=data.get("completed", False),
        )


@dataclass
class Offer:
    job_id: str
    salary: Optional[str] = None
    benefits: list[str] = field(default_factory=list)
    start_date: Optional[datetime] = None
    response_deadline: Optional[datetime] = None
    negotiable: bool = True
    status: str = "pending"
    received_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "salary": self.salary,
            "benefits": self.benefits,
            "start_date": _iso(self.start_date),
            "response_deadline": _iso(self.response_deadline),
            "negotiable": self.negotiable,
            "status": self.status,
            "received_at": _iso(self.received_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Offer":
        return cls(
            job_id=data["job_id"],
            salary=data.get("salary"),
            benefits=list(data.get("benefits", [])),
            start_date=_parse_dt(data.get("start_date")),
            response_deadline=_parse_dt(data.get("response_deadline")),
            negotiable=data.get("negotiable", True),
            status=data.get("status", "pending"),
            received_at=_parse_dt(data.get("received_at")),
        )


@dataclass
class Rejection:
    job_id: str
    reason: str = "not_provided"
    feedback: str = ""
    stage: str = ""
    follow_up_allowed: bool = False
    rejected_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "reason": self.reason,
            "feedback": self.feedback,
            "stage": self.stage,
            "follow_up_allowed": self.follow_up_allowed,
            "rejected_at": _iso(self.rejected_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Rejection":
        return cls(
            job_id=data["job_id"],
            reason=data.get("reason", "not_provided"),
            feedback=data.get("feedback", ""),
            stage=data.get("stage", ""),
            follow_up_allowed=data.get("follow_up_allowed", False),
            rejected_at=_parse_dt(data.get("rejected_at")),
        )


@dataclass
class AlertFilters:
    """Post-filters applied to an alert's search results."""
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    experience_level: Optional[str] = None
    job_type: Optional[str] = None
    remote: Optional[bool] = None
    gaming_relevance: float = 0
    companies: list[str] = field(default_factory=list)
    excluded_companies: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    excluded_keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return copy.deepcopy(vars(self))

    @classmethod
    def from_dict(cls, data: dict) -> "AlertFilters":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Alert:
    """A saved, scheduled search."""
    id: str
    name: str = "New Job Alert"
    query: str = ""
    location: str = ""
    filters: AlertFilters = field(default_factory=AlertFilters)
    frequency: AlertFrequency = AlertFrequency.DAILY
    is_active: bool = True
    created: datetime = field(default_factory=datetime.now)
    last_triggered: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    total_matches: int = 0
    successful_notifications: int = 0

    def to_criteria(self, max_results: int = 50) -> SearchCriteria:
        """Build the search this alert re-runs on each check."""
        kwargs = {
            "query": self.query,
            "location": self.location,
            "remote": bool(self.filters.remote),
            "experience_level": self.filters.experience_level,
            "job_type": self.filters.job_type,
            "max_results": max_results,
            "gaming_relevance_min": self.filters.gaming_relevance or 0,
        }
        if self.filters.salary_min is not None:
            kwargs["salary_min"] = self.filters.salary_min
        if self.filters.salary_max is not None:
            kwargs["salary_max"] = self.filters.salary_max
        return SearchCriteria(**kwargs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "query": self.query,
            "location": self.location,
            "filters": self.filters.to_dict(),
            "frequency": self.frequency.value,
            "is_active": self.is_active,
            "created": self.created.isoformat(),
            "last_triggered": _iso(self.last_triggered),
            "last_modified": _iso(self.last_modified),
            "total_matches": self.total_matches,
            "successful_notifications": self.successful_notifications,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alert":
        return cls(
            id=data["id"],
            name=data.get("name", "New Job Alert"),
            query=data.get("query", ""),
            location=data.get("location", ""),
            filters=AlertFilters.from_dict(data.get("filters", {})),
            frequency=AlertFrequency(data.get("frequency", "daily")),
            is_active=data.get("is_active", True),
            created=_parse_dt(data.get("created")) or datetime.now(),
            last_triggered=_parse_dt(data.get("last_triggered")),
            last_modified=_parse_dt(data.get("last_modified")),
            total_matches=data.get("total_matches", 0),
            successful_notifications=data.get("successful_notifications", 0),
        )


@dataclass
class Notification:
    """A message produced by an alert check."""
    id: str
    type: NotificationType = NotificationType.JOB_ALERT
    title: str = ""
    message: str = ""
    alert_id: Optional[str] = None
    jobs: list[Job] = field(default_factory=list)
    total_jobs_found: int = 0
    priority: NotificationPriority = NotificationPriority.LOW
    created: datetime = field(default_factory=datetime.now)
    read: bool = False
    actions: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "alert_id": self.alert_id,
            "jobs": [job.to_dict() for job in self.jobs],
            "total_jobs_found": self.total_jobs_found,
            "priority": self.priority.value,
            "created": self.created.isoformat(),
            "read": self.read,
            "actions": self.actions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        return cls(
            id=data["id"],
            type=NotificationType(data.get("type", "job_alert")),
            title=data.get("title", ""),
            message=data.get("message", ""),
            alert_id=data.get("alert_id"),
            jobs=[Job.from_dict(j) for j in data.get("jobs", [])],
            total_jobs_found=data.get("total_jobs_found", 0),
            priority=NotificationPriority(data.get("priority", "low")),
            created=_parse_dt(data.get("created")) or datetime.now(),
            read=data.get("read", False),
            actions=list(data.get("actions", [])),
        )
