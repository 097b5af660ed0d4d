from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta
from typing import Optional

import pytest

from job_discovery.core.models import Job, SearchCriteria
from job_discovery.core.normalizer import parse_location, parse_salary
from job_discovery.integrations.aggregator import JobAggregator
from job_discovery.integrations.base import SourceAdapter, SourceRequest
from job_discovery.utils.cache import SearchCache
from job_discovery.utils.throttle import HostThrottle


class FakeClock:
    """Settable wall clock."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeAdapter(SourceAdapter):
    """Adapter returning canned jobs (or raising) without any HTTP."""

    def __init__(
        self,
        key: str,
        jobs: Optional[list[Job]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(throttle=HostThrottle(min_interval=0))
        self._key = key
        self.jobs = list(jobs or [])
        self.error = error
        self.delay = delay
        self.calls = 0
        self.queries: list[str] = []

    @property
    def name(self) -> str:
        return self._key.title()

    @property
    def key(self) -> str:
        return self._key

    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        return []

    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        return []

    async def fetch(self, query: str, location: str = "") -> list[Job]:
        self.calls += 1
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [copy.deepcopy(job) for job in self.jobs]


def make_job(
    job_id: str,
    title: str = "Game Developer",
    company: str = "Acme Games",
    relevance: float = 50.0,
    quality: float = 50.0,
    salary: Optional[str] = None,
    location: str = "Remote",
    remote: Optional[bool] = None,
    posted_at: str = "Recently",
    description: str = "",
    source: str = "Fake",
) -> Job:
    parsed_location = parse_location(location)
    return Job(
        id=job_id,
        title=title,
        company=company,
        location=location,
        parsed_location=parsed_location,
        description=description,
        salary=salary,
        parsed_salary=parse_salary(salary),
        posted_at=posted_at,
        source=source,
        relevance_score=relevance,
        quality_score=quality,
        remote=parsed_location.remote if remote is None else remote,
    )


def make_aggregator(adapters: list[SourceAdapter], **kwargs) -> JobAggregator:
    kwargs.setdefault("cache", SearchCache(ttl_seconds=300, clock=FakeMonotonic()))
    return JobAggregator(adapters=adapters, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def criteria() -> SearchCriteria:
    return SearchCriteria()
