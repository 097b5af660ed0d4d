"""
Job Aggregator - Fans searches out across job sources and ranks the results.
"""

from collections import Counter
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, Optional
import asyncio
import dataclasses
import logging

from .base import SourceAdapter, standardize_job
from .arbeitnow import ArbeitnowAdapter
from .remoteok import RemoteOKAdapter
from .greenhouse import GreenhouseAdapter
from .lever import LeverAdapter
from .fallback import get_fallback_jobs
from job_discovery.core.errors import AllSourcesFailedError
from job_discovery.core.filters import apply_filters
from job_discovery.core.models import Job, MatchResult, SearchCriteria, SortMode, UserProfile
from job_discovery.core.normalizer import parse_posted_date, salary_value
from job_discovery.core.scorer import Scorer
from job_discovery.utils.cache import SearchCache
from job_discovery.utils.throttle import HostThrottle


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


class JobAggregator:
    """Runs source adapters with bounded concurrency and ranks merged results."""

    RECOMMENDATION_QUERIES = [
        "software developer",
        "community manager",
        "qa tester",
        "project manager",
        "data analyst",
    ]

    SALARY_INSIGHTS = {
        "software developer": {"min": 60000, "max": 140000, "median": 95000},
        "community manager": {"min": 40000, "max": 75000, "median": 55000},
        "qa tester": {"min": 45000, "max": 80000, "median": 62000},
        "project manager": {"min": 70000, "max": 130000, "median": 100000},
        "data analyst": {"min": 55000, "max": 105000, "median": 78000},
        "game developer": {"min": 60000, "max": 130000, "median": 85000},
    }

    def __init__(
        self,
        adapters: Optional[list[SourceAdapter]] = None,
        scorer: Optional[Scorer] = None,
        cache: Optional[SearchCache] = None,
        max_concurrency: int = 3,
        request_timeout: float = 15.0,
        history_limit: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            adapters: Source adapters to search (default: all built-in sources
                sharing one host throttle)
            scorer: Scorer used for ranking and match scores
            cache: Search cache (default: 5 minute TTL)
            max_concurrency: Maximum simultaneous adapter fetches
            request_timeout: Per-adapter timeout in seconds
            history_limit: Number of searches kept in the history
            clock: Callable returning the current time
        """
        self.scorer = scorer if scorer is not None else Scorer()
        self.cache = cache if cache is not None else SearchCache()
        self.max_concurrency = max_concurrency
        self.request_timeout = request_timeout
        self.history_limit = history_limit
        self._now = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

        if adapters is None:
            throttle = HostThrottle()
            adapters = [
                ArbeitnowAdapter(throttle=throttle, scorer=self.scorer),
                RemoteOKAdapter(throttle=throttle, scorer=self.scorer),
                GreenhouseAdapter(throttle=throttle, scorer=self.scorer),
                LeverAdapter(throttle=throttle, scorer=self.scorer),
            ]
        self.adapters: list[SourceAdapter] = list(adapters)

        self.search_history: list[dict] = []
        self._search_counter = 0
        self.analytics = {
            "searches_performed": 0,
            "total_jobs_found": 0,
            "average_relevance_score": 0.0,
            "cache_hits": 0,
            "fallbacks_served": 0,
            "source_performance": {},
            "popular_search_terms": Counter(),
        }

    def add_adapter(self, adapter: SourceAdapter) -> None:
        """Add a custom source adapter."""
        self.adapters.append(adapter)

    def remove_adapter(self, key: str) -> bool:
        """Remove an adapter by key or name."""
        for i, adapter in enumerate(self.adapters):
            if key.lower() in (adapter.key.lower(), adapter.name.lower()):
                self.adapters.pop(i)
                return True
        return False

    def get_enabled_sources(self) -> list[str]:
        """Keys of adapters that are configured and available."""
        return [a.key for a in self.adapters if a.is_available()]

    async def search(self, query: str, criteria: Optional[SearchCriteria] = None) -> list[Job]:
        """
        Search all (or the selected) sources.

        Never raises for source outages: if every source fails, a small
        deterministic fallback list is returned instead.

        Args:
            query: Search query
            criteria: Remaining search parameters (query field is overridden)

        Returns:
            Filtered, sorted jobs, at most ``criteria.max_results``
        """
        criteria = (criteria if criteria is not None else SearchCriteria()).with_query(query or "")
        cache_key = criteria.cache_key()

        candidates = self.cache.get(cache_key)
        from_cache = candidates is not None
        used_fallback = False

        if from_cache:
            self.logger.debug(f"Cache hit for '{criteria.query}'")
        else:
            adapters = self._select_adapters(criteria.sources)
            try:
                candidates = await self._fetch_all(adapters, criteria)
                self.cache.set(cache_key, candidates)
            except AllSourcesFailedError as e:
                self.logger.warning(f"{e}; serving fallback jobs")
                candidates = self._get_fallback_jobs(criteria)
                used_fallback = True

        results = self._rank(candidates, criteria)
        if used_fallback and not results:
            results = self._sort(candidates, criteria.sort_by)[:criteria.max_results]

        self._record_search(criteria, results, from_cache, used_fallback)
        return results

    def _select_adapters(self, sources: Optional[tuple[str, ...]]) -> list[SourceAdapter]:
        available = [a for a in self.adapters if a.is_available()]
        if not sources:
            return available

        wanted = {s.lower() for s in sources}
        return [a for a in available if a.key.lower() in wanted or a.name.lower() in wanted]

    async def _fetch_all(self, adapters: list[SourceAdapter], criteria: SearchCriteria) -> list[Job]:
        """Fetch from every adapter; one failure never aborts the others."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(adapter: SourceAdapter) -> list[Job]:
            async with semaphore:
                return await asyncio.wait_for(
                    adapter.fetch(criteria.query, criteria.location),
                    timeout=self.request_timeout,
                )

        results = await asyncio.gather(*(run(a) for a in adapters), return_exceptions=True)

        merged: list[Job] = []
        failures: dict[str, str] = {}

        for adapter, result in zip(adapters, results):
            stats = self._source_stats(adapter.key)
            stats["searches"] += 1

            if isinstance(result, BaseException):
                if isinstance(result, asyncio.TimeoutError):
                    reason = f"timed out after {self.request_timeout}s"
                else:
                    reason = str(result) or result.__class__.__name__
                failures[adapter.key] = reason
                stats["failures"] += 1
                self.logger.error(f"{adapter.name} search failed: {reason}")
                continue

            stats["successes"] += 1
            stats["jobs"] += len(result)
            self.logger.debug(f"{adapter.name}: Found {len(result)} jobs")
            merged.extend(result)

        if not merged:
            raise AllSourcesFailedError(failures)

        unique_jobs = self._deduplicate(merged)
        self.logger.info(f"Found {len(unique_jobs)} unique jobs from {len(adapters)} sources")
        return unique_jobs

    def _deduplicate(self, jobs: list[Job]) -> list[Job]:
        """Drop repeated title+company pairs (first wins) and keep ids unique."""
        seen_keys = set()
        seen_ids = set()
        unique_jobs = []

        for job in jobs:
            if job.dedup_key in seen_keys:
                continue
            seen_keys.add(job.dedup_key)

            if job.id in seen_ids:
                suffix = 2
                while f"{job.id}-{suffix}" in seen_ids:
                    suffix += 1
                job.id = f"{job.id}-{suffix}"
            seen_ids.add(job.id)

            unique_jobs.append(job)

        return unique_jobs

    def _get_fallback_jobs(self, criteria: SearchCriteria) -> list[Job]:
        jobs = get_fallback_jobs(criteria.query, criteria.location)
        return [standardize_job(job, self.scorer, criteria.query) for job in jobs]

    def _rank(self, candidates: list[Job], criteria: SearchCriteria) -> list[Job]:
        filtered = apply_filters(candidates, criteria)
        return self._sort(filtered, criteria.sort_by)[:criteria.max_results]

    def _sort(self, jobs: list[Job], sort_by: SortMode) -> list[Job]:
        """Stable sort; ties keep insertion order."""
        now = self._now()

        def posted_key(job: Job) -> float:
            posted = parse_posted_date(job.posted_at, now)
            return (posted - now).total_seconds() if posted else float("-inf")

        sort_keys = {
            SortMode.RELEVANCE: (lambda j: j.relevance_score, True),
            SortMode.DATE: (posted_key, True),
            SortMode.SALARY: (lambda j: salary_value(j.parsed_salary), True),
            SortMode.QUALITY: (lambda j: j.quality_score, True),
            SortMode.COMPANY: (lambda j: j.company.lower(), False),
            SortMode.COMPETITION: (self.scorer.competition_score, False),
        }

        key_func, reverse = sort_keys.get(sort_by, sort_keys[SortMode.RELEVANCE])
        return sorted(jobs, key=key_func, reverse=reverse)

    def _source_stats(self, key: str) -> dict:
        return self.analytics["source_performance"].setdefault(
            key, {"searches": 0, "successes": 0, "failures": 0, "jobs": 0}
        )

    def _record_search(
        self,
        criteria: SearchCriteria,
        results: list[Job],
        from_cache: bool,
        used_fallback: bool,
    ) -> None:
        """Update observability counters; never feeds back into scoring."""
        self._search_counter += 1
        analytics = self.analytics
        analytics["searches_performed"] += 1
        analytics["total_jobs_found"] += len(results)
        if from_cache:
            analytics["cache_hits"] += 1
        if used_fallback:
            analytics["fallbacks_served"] += 1

        if results:
            average = sum(j.relevance_score for j in results) / len(results)
            n = analytics["searches_performed"]
            analytics["average_relevance_score"] = (
                analytics["average_relevance_score"] * (n - 1) + average
            ) / n

        for term in criteria.query.lower().split():
            if len(term) > 2:
                analytics["popular_search_terms"][term] += 1

        self.search_history.append({
            "id": f"search_{self._search_counter}",
            "query": criteria.query,
            "criteria": criteria.to_dict(),
            "timestamp": self._now().isoformat(),
            "results": len(results),
            "from_cache": from_cache,
            "fallback": used_fallback,
        })
        if len(self.search_history) > self.history_limit:
            del self.search_history[:-self.history_limit]

    def get_analytics(self) -> dict:
        """Search analytics with derived per-source rates."""
        sources = {}
        for key, stats in self.analytics["source_performance"].items():
            searches = stats["searches"] or 1
            sources[key] = {
                **stats,
                "success_rate": round(stats["successes"] / searches * 100, 1),
                "avg_jobs": round(stats["jobs"] / (stats["successes"] or 1), 1),
            }

        return {
            "searches_performed": self.analytics["searches_performed"],
            "total_jobs_found": self.analytics["total_jobs_found"],
            "average_relevance_score": round(self.analytics["average_relevance_score"], 1),
            "cache_hits": self.analytics["cache_hits"],
            "fallbacks_served": self.analytics["fallbacks_served"],
            "source_performance": sources,
            "popular_search_terms": self.analytics["popular_search_terms"].most_common(10),
        }

    def get_search_history(self) -> list[dict]:
        return list(self.search_history)

    def calculate_job_match_score(self, job: Job, profile: UserProfile) -> MatchResult:
        """Personalized match of one job against a profile."""
        return self.scorer.match_score(job, profile)

    async def get_recommendations(self, profile: Optional[UserProfile] = None) -> list[Job]:
        """
        Broad remote recommendations across common games-industry role families.

        Args:
            profile: Optional profile; when given, each job carries its match result

        Returns:
            Up to six jobs, highest gaming relevance first
        """
        collected: list[Job] = []
        for query in self.RECOMMENDATION_QUERIES:
            jobs = await self.search(query, SearchCriteria(remote=True))
            collected.extend(jobs[:2])

        recommendations = sorted(
            self._deduplicate_copies(collected),
            key=lambda j: j.relevance_score,
            reverse=True,
        )[:6]

        if profile is not None:
            recommendations = [
                dataclasses.replace(job, match=self.scorer.match_score(job, profile))
                for job in recommendations
            ]
        return recommendations

    async def get_personalized_recommendations(self, profile: UserProfile, limit: int = 10) -> list[Job]:
        """
        Recommendations ranked by match score for a profile.

        Queries come from the profile's target roles, then its past roles,
        then the generic role families.
        """
        queries = (
            profile.career_goals.target_roles
            or profile.experience.roles
            or self.RECOMMENDATION_QUERIES[:3]
        )

        collected: list[Job] = []
        for query in queries[:5]:
            collected.extend(await self.search(query))

        scored = [
            dataclasses.replace(job, match=self.scorer.match_score(job, profile))
            for job in self._deduplicate_copies(collected)
        ]

        gaming_focus = profile.preferences.gaming_focus

        def compare(a: Job, b: Job) -> int:
            match_diff = b.match.total_score - a.match.total_score
            if abs(match_diff) > 5:
                return _sign(match_diff)
            if gaming_focus:
                relevance_diff = b.relevance_score - a.relevance_score
                if abs(relevance_diff) > 10:
                    return _sign(relevance_diff)
            return _sign(b.quality_score - a.quality_score)

        return sorted(scored, key=cmp_to_key(compare))[:limit]

    def _deduplicate_copies(self, jobs: list[Job]) -> list[Job]:
        seen = set()
        unique_jobs = []
        for job in jobs:
            if job.dedup_key not in seen:
                seen.add(job.dedup_key)
                unique_jobs.append(job)
        return unique_jobs

    def get_salary_insights(self, role: str, location: Optional[str] = None) -> dict:
        """Salary band for a role adjusted for location."""
        data = self.SALARY_INSIGHTS.get(role.lower(), self.SALARY_INSIGHTS["software developer"])

        location_lower = (location or "").lower()
        if "san francisco" in location_lower or location_lower == "sf":
            multiplier = 1.4
        elif "new york" in location_lower or "seattle" in location_lower:
            multiplier = 1.3
        elif "remote" in location_lower:
            multiplier = 0.95
        else:
            multiplier = 1.0

        return {
            "min": int(data["min"] * multiplier),
            "max": int(data["max"] * multiplier),
            "median": int(data["median"] * multiplier),
            "location": location or "National Average",
            "currency": "USD",
        }

    def get_stats(self) -> dict:
        """Get statistics about configured sources."""
        return {
            "total_sources": len(self.adapters),
            "available_sources": len(self.get_enabled_sources()),
            "sources": {
                a.key: {
                    "name": a.name,
                    "available": a.is_available(),
                    "requires_api_key": a.requires_api_key,
                }
                for a in self.adapters
            },
        }
