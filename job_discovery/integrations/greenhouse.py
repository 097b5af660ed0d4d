"""
Greenhouse ATS integration.

Greenhouse is a popular Applicant Tracking System used by many game studios.
Their job board API is public and doesn't require authentication for reading jobs.
"""

from typing import Optional

from job_discovery.core.models import Job
from .base import SourceAdapter, SourceRequest


class GreenhouseAdapter(SourceAdapter):
    """Greenhouse job boards of game studios."""

    API_URL = "https://boards-api.greenhouse.io/v1/boards"

    # Studios with public Greenhouse boards
    DEFAULT_BOARDS = [
        "riotgames",
        "epicgames",
        "bungie",
        "roblox",
        "discord",
    ]

    def __init__(self, boards: Optional[list[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.boards = list(boards or self.DEFAULT_BOARDS)

    @property
    def name(self) -> str:
        return "Greenhouse"

    @property
    def key(self) -> str:
        return "greenhouse"

    def _build_requests(self, query: str, location: str) -> list[SourceRequest]:
        return [
            SourceRequest(
                f"{self.API_URL}/{board}/jobs",
                params={"content": "true"},
                context={"board": board},
            )
            for board in self.boards
        ]

    def _parse_payload(self, payload, request: SourceRequest, query: str) -> list[Job]:
        board = request.context["board"]
        return [self._parse_job(data, board) for data in payload["jobs"]]

    def _parse_job(self, data: dict, board: str) -> Job:
        location_data = data.get("location", {})
        location = location_data.get("name", "") if isinstance(location_data, dict) else str(location_data)

        departments = [d.get("name", "") for d in data.get("departments", [])]

        return Job(
            id=f"greenhouse-{board}-{data['id']}",
            title=data.get("title", ""),
            company=board.replace("-", " ").title(),
            location=location,
            description=data.get("content", ""),
            apply_url=data.get("absolute_url"),
            posted_at=self._posted(data.get("updated_at")),
            source=self.name,
            remote="remote" in location.lower(),
            industry=departments[0] if departments else "",
            tags=departments,
            verified=True,
        )

    def add_board(self, board: str) -> None:
        """Add a studio board to search."""
        if board not in self.boards:
            self.boards.append(board)
