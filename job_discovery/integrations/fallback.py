"""
Hand-authored sample jobs served when every source is unavailable.
"""

from typing import Optional

from job_discovery.core.models import Job, JobType
from job_discovery.core.normalizer import estimate_salary, generate_requirements


def get_fallback_jobs(query: Optional[str] = None, location: Optional[str] = None) -> list[Job]:
    """
    Deterministic sample listings shaped around the search.

    Args:
        query: Search query; used as the role in the first listing
        location: Location applied to every listing (default "Remote")

    Returns:
        Five jobs, not yet standardized
    """
    role = (query or "").strip() or "Game"
    base_location = (location or "").strip() or "Remote"

    return [
        Job(
            id="fallback-1",
            title=f"{role} Developer",
            company="TechStartup Inc",
            location=base_location,
            job_type=JobType.FULL_TIME,
            description=(
                f"We're looking for a talented {role} developer to join our growing team "
                "building player-first experiences."
            ),
            salary=estimate_salary(role, base_location),
            apply_url="mailto:jobs@techstartup.com",
            posted_at="2 days ago",
            source="Direct",
            remote=True,
            requirements=generate_requirements(role),
            relevance_score=78,
        ),
        Job(
            id="fallback-2",
            title="Community Manager",
            company="Indie Studio",
            location=base_location,
            job_type=JobType.FULL_TIME,
            description="Engage and grow our player community across Discord, Twitch, and social platforms.",
            salary=estimate_salary("manager", base_location, "tech"),
            apply_url="mailto:careers@indiestudio.dev",
            posted_at="3 days ago",
            source="Direct",
            remote=True,
            requirements=["Discord", "Social Media", "Content", "Analytics"],
            relevance_score=82,
        ),
        Job(
            id="fallback-3",
            title="QA Tester (Games)",
            company="QA Works",
            location=base_location,
            job_type=JobType.CONTRACT,
            description="Test gameplay, systems, and liveops features. Report defects and verify fixes.",
            salary=estimate_salary("qa tester", base_location),
            apply_url="mailto:apply@qaworks.io",
            posted_at="5 days ago",
            source="Direct",
            remote=True,
            requirements=["Test Plans", "Bug Reports", "Consoles", "PC"],
            relevance_score=74,
        ),
        Job(
            id="fallback-4",
            title="Level Designer",
            company="PixelForge",
            location=base_location,
            job_type=JobType.FULL_TIME,
            description="Design and prototype levels, encounters, and pacing for action-adventure experiences.",
            salary=estimate_salary("designer", base_location, "tech"),
            apply_url="mailto:hire@pixelforge.gg",
            posted_at="1 week ago",
            source="Direct",
            remote=True,
            requirements=["Unity", "Blockouts", "Scripting", "Playtests"],
            relevance_score=80,
        ),
        Job(
            id="fallback-5",
            title="Esports Coordinator",
            company="ArenaOne",
            location=base_location,
            job_type=JobType.PART_TIME,
            description="Coordinate tournaments, manage player communications, and support broadcast production.",
            salary=estimate_salary("coordinator", base_location),
            apply_url="mailto:talent@arena.one",
            posted_at="1 week ago",
            source="Direct",
            remote=True,
            requirements=["Tournament Ops", "Discord", "Scheduling", "Broadcast"],
            relevance_score=77,
        ),
    ]
