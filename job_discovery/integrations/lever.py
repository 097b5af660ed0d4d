"""
Lever ATS integration.

Lever is another popular Applicant Tracking System with a public postings API.
"""

from typing import Optional

from job_discovery.core.models import Job
from job_discovery.core.normalizer import strip_html
from .base import SourceAdapter, SourceRequest


class LeverAdapter(SourceAdapter):
    """Lever postings of game companies."""

    API_URL = "https://api.lever.co/v0/postings"

    DEFAULT_COMPANIES = [
        "twitch",
        "kabam",
        "jagex",
        "scopely",
    ]

    def __init__(self, companies: Optional[list[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.companies = list(companies or self.DEFAULT_COMPANIES)

    @property
    def name(self) -> str:
        return "Lever"

    @property
    def key(self) -> str:
        return "lever"

    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        return [
            SourceRequest(
                f"{self.API_URL}/{company}",
                params={"mode": "json"},
                context={"company": company},
            )
            for company in self.companies
        ]

    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")

        company = request.context["company"]
        return [self._parse_job(data, company) for data in payload]

    def _parse_job(self, data: dict, company: str) -> Job:
        categories = data.get("categories") or {}
        location = categories.get("location", "")
        commitment = categories.get("commitment", "")
        workplace = (data.get("workplaceType") or "").lower()

        requirements = []
        for section in data.get("lists", []):
            if "require" in section.get("text", "").lower():
                requirements.extend(
                    strip_html(item) for item in section.get("content", "").split("</li>") if strip_html(item)
                )

        return Job(
            id=f"lever-{company}-{data['id']}",
            title=data.get("text", ""),
            company=company.replace("-", " ").title(),
            location=location,
            job_type=commitment,
            description=data.get("descriptionPlain") or data.get("description", ""),
            apply_url=data.get("applyUrl") or data.get("hostedUrl"),
            posted_at=self._posted(data.get("createdAt")),
            source=self.name,
            remote=workplace == "remote" or "remote" in location.lower(),
            industry=categories.get("team", ""),
            requirements=requirements,
            tags=[t for t in (categories.get("team"), categories.get("department")) if t],
            verified=True,
        )

    def add_company(self, company: str) -> None:
        """Add a company to track."""
        if company not in self.companies:
            self.companies.append(company)
