"""
Arbeitnow job board integration.

Arbeitnow publishes a free, keyless JSON feed of listings (mostly Europe,
many remote). The feed is not searchable server-side, so results are
filtered locally by query.
"""

from job_discovery.core.models import Job
from .base import SourceAdapter, SourceRequest


class ArbeitnowAdapter(SourceAdapter):
    """Arbeitnow public job board."""

    API_URL = "https://www.arbeitnow.com/api/job-board-api"

    MAX_RESULTS = 15

    @property
    def name(self) -> str:
        return "Arbeitnow"

    @property
    def key(self) -> str:
        return "arbeitnow"

    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        return [SourceRequest(self.API_URL)]

    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        listings = payload["data"]
        if not isinstance(listings, list):
            raise TypeError(f"expected list of listings, got {type(listings).__name__}")

        return [self._parse_job(data) for data in listings if isinstance(data, dict)]

    def _parse_job(self, data: dict) -> Job:
        remote = bool(data.get("remote"))
        tags = [str(t) for t in data.get("tags") or []]

        return Job(
            id=f"arbeitnow-{data['slug']}",
            title=data.get("title", ""),
            company=data.get("company_name", ""),
            location="Remote" if remote else (data.get("location") or "Europe"),
            job_type=data.get("job_types") or "",
            description=data.get("description", ""),
            apply_url=data.get("url"),
            posted_at=self._posted(data.get("created_at")),
            source=self.name,
            remote=remote,
            requirements=list(tags),
            tags=tags,
            verified=True,
        )
