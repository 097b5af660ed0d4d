"""
Hard filters applied to aggregated jobs before ranking.
"""

from typing import Optional

from .models import Job, JobType, SearchCriteria
from .normalizer import annual_salary_range, parse_job_type


def matches_experience_level(job: Job, level: Optional[str]) -> bool:
    """Heuristic seniority check from title and description keywords."""
    if not level:
        return True

    title = job.title.lower()
    description = job.description.lower()
    level = level.lower()

    if level == "entry":
        return (
            any(k in title for k in ("entry", "junior", "intern", "graduate"))
            or "entry level" in description
            or "no experience" in description
        )
    if level == "mid":
        seniority = ("senior", "lead", "principal", "junior", "entry", "intern", "director", "head of")
        return (
            "mid" in title
            or "intermediate" in title
            or not any(k in title for k in seniority)
        )
    if level == "senior":
        return any(k in title for k in ("senior", "lead", "principal", "staff"))
    if level == "executive":
        return any(k in title for k in ("director", "head", "vp", "chief"))

    return True


def matches_salary(job: Job, salary_min: Optional[int], salary_max: Optional[int]) -> bool:
    """Jobs without a parsed salary always pass; otherwise yearly ranges must overlap."""
    annual = annual_salary_range(job.parsed_salary)
    if annual is None:
        return True

    low, high = annual
    if salary_min and high < salary_min:
        return False
    if salary_max and low > salary_max:
        return False
    return True


def matches_industry(job: Job, industry: str) -> bool:
    if not industry:
        return True
    industry = industry.lower()
    haystack = " ".join([job.industry, job.title, job.description, " ".join(job.tags)]).lower()
    return industry in haystack


def matches_job_type(job: Job, job_type: Optional[str]) -> bool:
    if not job_type:
        return True
    try:
        wanted = JobType(job_type.lower())
    except ValueError:
        wanted = parse_job_type(job_type)
    return job.job_type == wanted


def apply_filters(jobs: list[Job], criteria: SearchCriteria) -> list[Job]:
    """
    Apply the hard filters of a search.

    Args:
        jobs: Candidate jobs, already scored
        criteria: Search parameters

    Returns:
        Jobs passing every filter, in their original order
    """
    filtered = []

    for job in jobs:
        if not matches_salary(job, criteria.salary_min, criteria.salary_max):
            continue
        if criteria.remote and not (job.remote or job.parsed_location.remote):
            continue
        if not matches_experience_level(job, criteria.experience_level):
            continue
        if not matches_job_type(job, criteria.job_type):
            continue
        if not matches_industry(job, criteria.industry):
            continue
        if job.relevance_score < criteria.gaming_relevance_min:
            continue
        if job.quality_score < criteria.quality_min:
            continue

        filtered.append(job)

    return filtered
