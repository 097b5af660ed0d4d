"""
Job source integrations and the search aggregator.
"""

from .base import SourceAdapter, SourceRequest, standardize_job
from .arbeitnow import ArbeitnowAdapter
from .remoteok import RemoteOKAdapter
from .greenhouse import GreenhouseAdapter
from .lever import LeverAdapter
from .fallback import get_fallback_jobs
from .aggregator import JobAggregator

__all__ = [
    "SourceAdapter",
    "SourceRequest",
    "standardize_job",
    "ArbeitnowAdapter",
    "RemoteOKAdapter",
    "GreenhouseAdapter",
    "LeverAdapter",
    "get_fallback_jobs",
    "JobAggregator",
]
