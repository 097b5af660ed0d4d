"""
Exception types raised by the job discovery engine.
"""

from typing import Optional


class JobDiscoveryError(Exception):
    """Base class for engine errors."""


class SourceFetchError(JobDiscoveryError):
    """A single source adapter failed to fetch listings."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class AllSourcesFailedError(JobDiscoveryError):
    """Every source adapter failed or returned nothing for a search."""

    def __init__(self, failures: Optional[dict] = None):
        self.failures = failures or {}
        names = ", ".join(sorted(self.failures)) or "no sources"
        super().__init__(f"All sources failed ({names})")


class ValidationError(JobDiscoveryError, ValueError):
    """Input rejected at an engine boundary."""


class ApplicationNotFoundError(JobDiscoveryError):
    """Status update for a job that has no tracked application."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"No application tracked for job {job_id}")


class AlertNotFoundError(JobDiscoveryError):
    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


class AlertCheckError(JobDiscoveryError):
    """Checking one alert failed; reported as an error notification."""

    def __init__(self, alert_id: str, message: str):
        self.alert_id = alert_id
        super().__init__(message)
