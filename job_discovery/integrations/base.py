"""
Base class for job source adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlparse
import asyncio
import logging

import requests

from job_discovery.core.errors import SourceFetchError
from job_discovery.core.models import Job, JobType
from job_discovery.core.normalizer import (
    MAX_DESCRIPTION_LENGTH,
    MAX_REQUIREMENTS,
    MAX_TAGS,
    bucket_posted_date,
    clamp_score,
    estimate_salary,
    extract_keywords,
    generate_requirements,
    parse_job_type,
    parse_location,
    parse_salary,
    sanitize_text,
    strip_html,
    validate_url,
)
from job_discovery.core.scorer import Scorer
from job_discovery.utils.throttle import HostThrottle


GAMING_TERMS = ["game", "gaming", "esports", "unity", "unreal", "player", "stream"]

CURRENCY_MARKERS = ("$", "€", "£")

USER_AGENT = "job-discovery/1.0 (+https://github.com/job-discovery)"


def is_gaming_relevant(text: str) -> bool:
    text = text.lower()
    return any(term in text for term in GAMING_TERMS)


def standardize_job(job: Job, scorer: Scorer, query: str = "") -> Job:
    """
    Normalize an adapter-built job in place and compute its derived scores.

    Args:
        job: Job mapped from a source payload
        scorer: Scorer used for relevance, quality and competition
        query: Search query the job was fetched for

    Returns:
        The same Job, normalized
    """
    job.title = sanitize_text(job.title) or "Untitled Position"
    job.company = sanitize_text(job.company) or "Unknown Company"
    job.location = sanitize_text(job.location)
    job.description = strip_html(job.description)[:MAX_DESCRIPTION_LENGTH]
    job.industry = sanitize_text(job.industry)

    if not isinstance(job.job_type, JobType):
        job.job_type = parse_job_type(job.job_type)

    if not job.salary:
        job.salary = estimate_salary(job.title, job.location, job.industry)
    salary = sanitize_text(job.salary)
    job.salary = salary if any(mark in salary for mark in CURRENCY_MARKERS) else None
    job.parsed_salary = parse_salary(job.salary) if job.salary else None

    job.apply_url = validate_url(job.apply_url)

    requirements = [sanitize_text(r) for r in job.requirements if r]
    job.requirements = requirements[:MAX_REQUIREMENTS] or generate_requirements(job.title)
    job.tags = [sanitize_text(t) for t in job.tags if t][:MAX_TAGS]

    job.parsed_location = parse_location(job.location)
    job.remote = bool(job.remote or job.parsed_location.remote)
    if job.remote:
        job.parsed_location.remote = True

    job.keywords = extract_keywords(f"{job.title} {job.description}")

    job.relevance_score = clamp_score(job.relevance_score or scorer.score(job, query))
    job.quality_score = clamp_score(scorer.quality(job))

    job.estimated_applicants = scorer.estimate_applicants(job)
    job.competition_level = scorer.competition_level(job.estimated_applicants)

    return job


@dataclass
class SourceRequest:
    """One outbound GET an adapter needs for a fetch."""
    url: str
    params: dict = field(default_factory=dict)
    context: dict = field(default_factory=dict)

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc


class SourceAdapter(ABC):
    """Abstract base class for job sources."""

    # Maximum jobs one fetch returns after query filtering
    MAX_RESULTS = 25

    def __init__(
        self,
        api_key: Optional[str] = None,
        throttle: Optional[HostThrottle] = None,
        scorer: Optional[Scorer] = None,
        timeout: float = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.api_key = api_key
        self.throttle = throttle if throttle is not None else HostThrottle()
        self.scorer = scorer if scorer is not None else Scorer()
        self.timeout = timeout
        self._now = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name."""
        pass

    @property
    @abstractmethod
    def key(self) -> str:
        """Identifier used in search source allow-lists and job id prefixes."""
        pass

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_available(self) -> bool:
        """Check if the adapter is properly configured."""
        if self.requires_api_key and not self.api_key:
            return False
        return True

    @abstractmethod
    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        """Requests needed to answer a search."""
        pass

    @abstractmethod
    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        """
        Map one decoded response onto canonical jobs.

        Raise KeyError/TypeError/ValueError on an unexpected shape; the
        response is then skipped as malformed.
        """
        pass

    async def fetch(self, query: str, location: str = "") -> list[Job]:
        """
        Fetch, normalize and filter listings for a search.

        Args:
            query: Search query
            location: Location filter (remote jobs always pass)

        Returns:
            Standardized jobs; empty if every response was malformed

        Raises:
            SourceFetchError: if every request failed at the transport level
        """
        source_requests = self._build_requests(query, location)
        jobs: list[Job] = []
        failures: list[str] = []

        for request in source_requests:
            await self.throttle.wait(request.host)

            try:
                payload = await asyncio.to_thread(self._get_json, request)
            except requests.exceptions.JSONDecodeError as e:
                self.logger.warning(f"{self.name}: malformed response from {request.url}: {e}")
                continue
            except requests.RequestException as e:
                self.logger.debug(f"{self.name}: request to {request.url} failed: {e}")
                failures.append(str(e))
                continue

            try:
                jobs.extend(self._parse_payload(payload, request, query))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self.logger.warning(f"{self.name}: unexpected payload shape from {request.url}: {e}")

        if source_requests and len(failures) == len(source_requests):
            raise SourceFetchError(self.name, failures[0])

        standardized = [standardize_job(job, self.scorer, query) for job in jobs]
        return self._filter_jobs(standardized, query, location)[:self.MAX_RESULTS]

    def _get_json(self, request: SourceRequest):
        """Blocking GET returning decoded JSON; runs in a worker thread."""
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = requests.get(request.url, params=request.params or None, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _filter_jobs(self, jobs: list[Job], query: str, location: str) -> list[Job]:
        """Keep jobs matching the query (or gaming-relevant) and the location."""
        filtered = []
        query_lower = (query or "").strip().lower()
        location_lower = (location or "").strip().lower()

        for job in jobs:
            text = f"{job.title} {job.description} {job.company}".lower()

            if query_lower:
                tag_match = any(query_lower in tag.lower() for tag in job.tags)
                if query_lower not in text and not tag_match and not is_gaming_relevant(text):
                    continue

            if location_lower and location_lower not in job.location.lower() and not job.remote:
                continue

            filtered.append(job)

        return filtered

    def _posted(self, value) -> str:
        return bucket_posted_date(value, self._now())
