"""
Scorer - Relevance and personalized match scoring for job listings.

Calculates:
- Gaming relevance: how closely a listing relates to the games industry
- Quality: how complete the listing is
- Match score: weighted fit of a listing against a user profile
- Competition: estimated applicant volume for a listing

All scoring is a pure function of its inputs. Pass a seeded
``random.Random`` to add a small relevance jitter for tie-breaking.
"""

from typing import Optional
import random
import re

from .models import (
    ExperienceLevel,
    Job,
    MatchFactor,
    MatchResult,
    UserProfile,
)
from .normalizer import STATE_CODES, annual_salary_range, clamp_score, salary_value


def _mentions(text: str, term: str) -> int:
    """Count occurrences of ``term`` that start on a word boundary."""
    return len(re.findall(r'(?<![a-z0-9])' + re.escape(term), text))


def _mentions_word(text: str, term: str) -> int:
    """Count whole-word occurrences of ``term``."""
    return len(re.findall(r'(?<![a-z0-9])' + re.escape(term) + r'(?![a-z0-9])', text))


class Scorer:
    """Computes relevance, quality and personalized match scores."""

    WEIGHTS = {
        "skills": 0.30,
        "experience": 0.25,
        "salary": 0.20,
        "location": 0.15,
        "gaming": 0.10,
    }

    KEYWORD_WEIGHTS = {
        "game developer": 25,
        "unity developer": 25,
        "unreal developer": 25,
        "community manager": 20,
        "esports": 20,
        "gamedev": 20,
        "gaming": 15,
        "game": 15,
        "unity": 15,
        "unreal": 15,
        "stream": 10,
        "twitch": 10,
        "discord": 10,
        "multiplayer": 10,
        "tournament": 8,
        "competitive": 8,
        "player": 8,
    }

    # (company names, boost)
    COMPANY_BOOSTS = [
        (["riot", "blizzard", "epic", "valve", "nintendo", "sony", "microsoft", "activision", "ubisoft"], 30),
        (["discord", "twitch", "steam", "roblox", "unity"], 25),
        (["king", "supercell", "niantic", "zynga"], 20),
        (["devolver", "annapurna", "team17"], 20),
    ]

    TECH_TERMS = ["unity", "unreal", "c#", "c++", "opengl", "directx", "vulkan", "webgl"]
    TECH_BOOST = 12

    # (title keywords, boost); first matching group wins
    ROLE_BOOSTS = [
        (["developer", "engineer", "programmer"], 15),
        (["designer", "artist", "animator"], 12),
        (["manager", "producer"], 10),
        (["coordinator", "tester", "qa"], 8),
        (["analyst"], 6),
    ]

    QUERY_TITLE_BONUS = 10

    CORE_TECH_SKILLS = {"javascript", "python", "react", "vue", "unity", "unreal", "c++", "c#", "java"}

    LEVEL_KEYWORDS = {
        ExperienceLevel.EXECUTIVE: ["director", "head", "vp", "chief", "executive"],
        ExperienceLevel.SENIOR: ["senior", "sr.", "lead", "principal", "staff"],
        ExperienceLevel.ENTRY: ["entry", "junior", "jr.", "intern", "graduate", "trainee"],
        ExperienceLevel.MID: ["mid", "intermediate", "associate"],
    }

    COMMON_SKILLS = [
        "javascript", "typescript", "python", "java", "c#", "c++", "unity",
        "unreal", "react", "node", "sql", "git", "aws", "docker", "blender",
        "maya", "photoshop", "figma", "jira", "excel", "lua", "godot",
    ]

    POPULAR_EMPLOYERS = ["google", "apple", "meta", "microsoft", "riot", "blizzard"]

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    # ------------------------------------------------------------------
    # Bare relevance
    # ------------------------------------------------------------------

    def score(self, job: Job, query: str = "") -> float:
        """
        Gaming relevance of a listing (0-100).

        Args:
            job: Listing to score
            query: Search query; a full match in the title earns a bonus

        Returns:
            Clamped relevance score
        """
        text = " ".join([job.title, job.description, job.company, " ".join(job.tags)]).lower()
        title = job.title.lower()
        company = job.company.lower()

        relevance = 0.0

        for term, weight in self.KEYWORD_WEIGHTS.items():
            if _mentions(text, term):
                relevance += weight

        for names, boost in self.COMPANY_BOOSTS:
            if any(_mentions(company, name) for name in names):
                relevance += boost

        for term in self.TECH_TERMS:
            if _mentions(text, term):
                relevance += self.TECH_BOOST

        for keywords, boost in self.ROLE_BOOSTS:
            if any(_mentions(title, keyword) for keyword in keywords):
                relevance += boost
                break

        query_lower = (query or "").strip().lower()
        if query_lower and query_lower in title:
            relevance += self.QUERY_TITLE_BONUS

        if self.rng is not None:
            relevance += self.rng.uniform(0, 5)

        return round(clamp_score(relevance), 1)

    def quality(self, job: Job) -> float:
        """Completeness score of a listing (0-100)."""
        score = 0
        if job.salary:
            score += 20
        if len(job.description) > 100:
            score += 20
        if job.requirements:
            score += 15
        if len(job.company) > 3:
            score += 15
        if job.apply_url:
            score += 10
        if job.location:
            score += 10
        if job.job_type:
            score += 5
        if job.posted_at and job.posted_at != "Recently":
            score += 5
        return float(min(100, score))

    # ------------------------------------------------------------------
    # Personalized match
    # ------------------------------------------------------------------

    def match_score(self, job: Job, profile: UserProfile) -> MatchResult:
        """
        Weighted multi-factor match of a job against a profile.

        Args:
            job: Listing to evaluate
            profile: Job seeker profile

        Returns:
            MatchResult with per-factor breakdown
        """
        skill_score, skill_details = self._calculate_skill_match(job, profile)
        experience_score, experience_details = self._calculate_experience_match(job, profile)
        salary_score, salary_details = self._calculate_salary_match(job, profile)
        location_score, location_details = self._calculate_location_match(job, profile)
        gaming_score, gaming_details = self._calculate_gaming_match(job, profile)

        factors = [
            MatchFactor("Skills", skill_score, self.WEIGHTS["skills"], skill_details),
            MatchFactor("Experience Level", experience_score, self.WEIGHTS["experience"], experience_details),
            MatchFactor("Salary", salary_score, self.WEIGHTS["salary"], salary_details),
            MatchFactor("Location", location_score, self.WEIGHTS["location"], location_details),
            MatchFactor("Gaming Focus", gaming_score, self.WEIGHTS["gaming"], gaming_details),
        ]

        total = sum(f.score * f.weight for f in factors)
        total = round(clamp_score(total), 1)

        return MatchResult(
            total_score=total,
            factors=factors,
            recommendation=self._get_recommendation(total),
            confidence_level=self._get_confidence_level(factors),
        )

    def _calculate_skill_match(self, job: Job, profile: UserProfile) -> tuple[float, str]:
        """Coverage of user skills in the job text plus importance and breadth bonuses."""
        if not profile.skills:
            return 50.0, "No skills on profile"

        text = " ".join([job.title, job.description, " ".join(job.requirements)]).lower()

        matched = []
        importance = 0
        for skill in sorted(profile.skills):
            occurrences = _mentions_word(text, skill)
            if not occurrences:
                continue

            matched.append(skill)
            if occurrences > 3:
                importance += 15
            elif occurrences > 1:
                importance += 10
            elif skill in self.CORE_TECH_SKILLS:
                importance += 8
            else:
                importance += 5

        if not matched:
            return 0.0, f"None of your {len(profile.skills)} skills are mentioned"

        coverage = len(matched) / len(profile.skills) * 70

        breadth = 0
        if len(matched) >= 3:
            breadth += 10
        if len(matched) >= 6:
            breadth += 10

        score = min(100.0, coverage + importance + breadth)
        details = f"Matched {len(matched)} of {len(profile.skills)} skills: {', '.join(matched)}"
        return score, details

    def infer_job_level(self, job: Job) -> ExperienceLevel:
        """Infer seniority from title keywords; defaults to mid."""
        title = job.title.lower()
        for level, keywords in self.LEVEL_KEYWORDS.items():
            if any(_mentions(title, keyword) for keyword in keywords):
                return level
        return ExperienceLevel.MID

    def _extract_required_years(self, job: Job) -> Optional[int]:
        text = f"{job.description} {' '.join(job.requirements)}"
        match = re.search(r'(\d+)\+?\s*years?', text, re.IGNORECASE)
        if match:
            return int(match.group(1))
        return None

    def _calculate_experience_match(self, job: Job, profile: UserProfile) -> tuple[float, str]:
        """Level ladder comparison adjusted by required years."""
        job_level = self.infer_job_level(job)
        try:
            user_level = ExperienceLevel(str(profile.experience.level or "").strip().lower())
        except ValueError:
            user_level = ExperienceLevel.ENTRY

        step = job_level.rank - user_level.rank
        if step == 0:
            score = 95
        elif step == 1:
            score = 85  # growth opportunity
        elif step == -1:
            score = 60  # overqualified
        else:
            score = 30

        details = f"Job level {job_level.value}, your level {user_level.value}"

        required_years = self._extract_required_years(job)
        if required_years is not None:
            user_years = profile.experience.years or 0
            if user_years >= required_years:
                score += 10
            elif user_years >= required_years * 0.8:
                score += 5
            else:
                score -= 15
            details += f"; {required_years}+ years required, you have {user_years:g}"

        return clamp_score(score), details

    def _annual_salary(self, job: Job) -> Optional[float]:
        annual = annual_salary_range(job.parsed_salary)
        if annual is None:
            return None
        return sum(annual) / 2

    def _calculate_salary_match(self, job: Job, profile: UserProfile) -> tuple[float, str]:
        """Perfect inside the user's band, graceful below, no penalty above."""
        value = self._annual_salary(job)
        if value is None:
            return 70.0, "Salary not listed"

        user_min = profile.preferences.salary_min or 0
        user_max = profile.preferences.salary_max or float("inf")

        if user_min <= value <= user_max:
            return 100.0, f"${value:,.0f} is within your range"
        if value > user_max:
            return 90.0, f"${value:,.0f} exceeds your range"
        if value >= user_min * 0.9:
            return 85.0, f"${value:,.0f} is just below your minimum"

        gap_percent = (user_min - value) / user_min * 100
        return max(20.0, 70 - gap_percent), f"${value:,.0f} is {gap_percent:.0f}% below your minimum"

    def _calculate_location_match(self, job: Job, profile: UserProfile) -> tuple[float, str]:
        """Remote preference, then preferred cities, then same state, then hybrid."""
        prefs = profile.preferences
        job_location = job.location.lower()
        job_remote = job.remote or job.parsed_location.remote

        if prefs.remote_work and job_remote:
            return 100.0, "Remote role matches your preference"

        preferred = [loc.lower() for loc in prefs.locations if loc and loc.lower() != "remote"]

        for loc in preferred:
            if loc in job_location:
                return 95.0, f"In your preferred location ({loc})"

        job_tokens = set(re.split(r'[\s,]+', job_location))
        for loc in preferred:
            shared = set(re.split(r'[\s,]+', loc)) & job_tokens & set(STATE_CODES)
            if shared:
                return 75.0, f"Same region ({', '.join(sorted(shared)).upper()})"

        if job.parsed_location.hybrid or "hybrid" in job_location:
            return (80.0 if prefs.remote_work else 70.0), "Hybrid role"

        return 30.0, "Relocation likely required"

    def _calculate_gaming_match(self, job: Job, profile: UserProfile) -> tuple[float, str]:
        if not profile.preferences.gaming_focus:
            return 70.0, "Gaming focus not requested"

        relevance = job.relevance_score or self.score(job)
        if relevance > 80:
            score = 100.0
        elif relevance > 50:
            score = 75.0
        elif relevance > 20:
            score = 50.0
        else:
            score = 25.0
        return score, f"Gaming relevance {relevance:.0f}"

    def _get_recommendation(self, total: float) -> str:
        if total >= 85:
            return "Excellent Match - Apply immediately!"
        if total >= 70:
            return "Very Good Match - Strong candidate"
        if total >= 55:
            return "Good Match - Worth considering"
        if total >= 40:
            return "Fair Match - Review carefully"
        return "Poor Match - Consider skill development"

    def _get_confidence_level(self, factors: list[MatchFactor]) -> str:
        high = len([f for f in factors if f.score > 70])
        ratio = high / len(factors) if factors else 0
        if ratio >= 0.8:
            return "High"
        if ratio >= 0.6:
            return "Medium"
        return "Low"

    # ------------------------------------------------------------------
    # Competition and career helpers
    # ------------------------------------------------------------------

    def estimate_applicants(self, job: Job) -> int:
        """Rough applicant volume from source, location and seniority."""
        estimate = 50.0
        source = job.source.lower()
        location = job.location.lower()
        title = job.title.lower()

        if "linkedin" in source:
            estimate *= 3
        elif "remoteok" in source:
            estimate *= 0.7
        elif "arbeitnow" in source:
            estimate *= 0.5

        if "remote" in location or job.remote:
            estimate *= 2
        elif "san francisco" in location:
            estimate *= 1.5

        if "senior" in title:
            estimate *= 0.7
        elif "junior" in title or "entry" in title:
            estimate *= 1.5

        return int(round(estimate))

    @staticmethod
    def competition_level(applicants: int) -> str:
        if applicants < 20:
            return "low"
        if applicants < 100:
            return "medium"
        if applicants < 250:
            return "high"
        return "very-high"

    def competition_score(self, job: Job) -> float:
        """Higher means more contested; used by the competition sort."""
        score = 50.0
        company = job.company.lower()

        if any(name in company for name in self.POPULAR_EMPLOYERS):
            score += 30
        if job.remote:
            score += 15

        salary = salary_value(job.parsed_salary)
        if salary > 150000:
            score += 20
        elif salary > 100000:
            score += 10

        return score

    def extract_job_skills(self, job: Job) -> list[str]:
        text = " ".join([job.title, job.description, " ".join(job.requirements)]).lower()
        return [skill for skill in self.COMMON_SKILLS if _mentions_word(text, skill)]

    def analyze_skill_gaps(self, job: Job, profile: UserProfile) -> dict:
        """
        Compare the skills a job mentions with the profile's skills.

        Returns:
            Dict with required, matched and missing skills plus coverage percent
        """
        required = self.extract_job_skills(job)
        matched = [s for s in required if s in profile.skills]
        missing = [s for s in required if s not in profile.skills]
        coverage = (len(matched) / len(required) * 100) if required else 100.0

        return {
            "required": required,
            "matched": matched,
            "missing": missing,
            "coverage": round(coverage, 1),
        }

    def application_priority(self, job: Job, match: MatchResult) -> str:
        if match.total_score > 85 and job.competition_level != "very-high":
            return "High"
        if match.total_score > 70:
            return "Medium"
        return "Low"
