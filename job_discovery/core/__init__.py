"""Core models, scoring and normalization for job discovery."""

from .models import (
    Alert,
    AlertFilters,
    AlertFrequency,
    Application,
    ApplicationStatus,
    ExperienceLevel,
    Interview,
    Job,
    JobType,
    MatchFactor,
    MatchResult,
    Notification,
    NotificationPriority,
    NotificationType,
    Offer,
    ParsedLocation,
    ParsedSalary,
    Rejection,
    SearchCriteria,
    SortMode,
    StatusEntry,
    UserProfile,
)
from .errors import (
    AlertCheckError,
    AlertNotFoundError,
    AllSourcesFailedError,
    ApplicationNotFoundError,
    JobDiscoveryError,
    SourceFetchError,
    ValidationError,
)
from .scorer import Scorer
from .filters import apply_filters

__all__ = [
    "Alert",
    "AlertFilters",
    "AlertFrequency",
    "Application",
    "ApplicationStatus",
    "ExperienceLevel",
    "Interview",
    "Job",
    "JobType",
    "MatchFactor",
    "MatchResult",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Offer",
    "ParsedLocation",
    "ParsedSalary",
    "Rejection",
    "SearchCriteria",
    "SortMode",
    "StatusEntry",
    "UserProfile",
    "AlertCheckError",
    "AlertNotFoundError",
    "AllSourcesFailedError",
    "ApplicationNotFoundError",
    "JobDiscoveryError",
    "SourceFetchError",
    "ValidationError",
    "Scorer",
    "apply_filters",
]
