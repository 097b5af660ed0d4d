"""
RemoteOK integration.

RemoteOK's public API returns a JSON array whose first element is a legal
notice rather than a listing. Every listing is remote.
"""

from job_discovery.core.models import Job
from .base import SourceAdapter, SourceRequest


class RemoteOKAdapter(SourceAdapter):
    """RemoteOK remote-only job board."""

    API_URL = "https://remoteok.com/api"

    DEFAULT_TAGS = ["gaming", "dev"]

    @property
    def name(self) -> str:
        return "RemoteOK"

    @property
    def key(self) -> str:
        return "remoteok"

    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        tags = [word for word in (query or "").lower().split() if len(word) > 2]
        return [SourceRequest(self.API_URL, params={"tags": ",".join(tags or self.DEFAULT_TAGS)})]

    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")

        listings = [item for item in payload[1:] if isinstance(item, dict) and item.get("id")]
        return [self._parse_job(data) for data in listings]

    def _parse_job(self, data: dict) -> Job:
        salary = None
        low = data.get("salary_min")
        high = data.get("salary_max")
        if low and high:
            salary = f"${int(low):,} - ${int(high):,}"
        elif low or high:
            salary = f"${int(low or high):,}"

        tags = [str(t) for t in data.get("tags") or []]

        return Job(
            id=f"remoteok-{data['id']}",
            title=data.get("position", ""),
            company=data.get("company", ""),
            location=data.get("location") or "Remote",
            job_type="full-time",
            description=data.get("description", ""),
            salary=salary,
            apply_url=data.get("apply_url") or data.get("url"),
            posted_at=self._posted(data.get("epoch") or data.get("date")),
            source=self.name,
            remote=True,
            requirements=list(tags),
            tags=tags,
            verified=True,
        )
