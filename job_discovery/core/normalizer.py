"""
Text and field normalization for job records from heterogeneous sources.

Adapters map source payloads onto ``Job`` and then pass them through
these helpers so the rest of the engine only ever sees canonical values.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from urllib.parse import urlparse
import math
import re

from bs4 import BeautifulSoup

from .models import JobType, ParsedLocation, ParsedSalary


MAX_TEXT_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_REQUIREMENTS = 6
MAX_TAGS = 8

# Role keyword -> base salary band (USD, yearly); first match in this order wins
BASE_SALARIES = {
    "developer": (70000, 120000),
    "engineer": (75000, 130000),
    "manager": (90000, 150000),
    "designer": (60000, 100000),
    "analyst": (55000, 95000),
    "coordinator": (45000, 75000),
}

HIGH_COST_LOCATIONS = ["san francisco", "new york", "seattle"]

ROLE_REQUIREMENTS = {
    "developer": ["Programming", "Problem Solving", "Git", "Agile", "Testing"],
    "engineer": ["Software Engineering", "System Design", "APIs", "Databases", "DevOps"],
    "manager": ["Leadership", "Project Management", "Communication", "Strategy", "Team Building"],
    "designer": ["UI/UX Design", "Prototyping", "User Research", "Design Tools", "Creative Thinking"],
    "analyst": ["Data Analysis", "SQL", "Excel", "Statistics", "Reporting"],
    "coordinator": ["Organization", "Communication", "Multitasking", "Attention to Detail", "Customer Service"],
}

STOPWORDS = {
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "is", "are", "was", "were", "be", "been", "have", "has", "had",
    "do", "does", "did", "will", "would", "should", "could", "can", "may",
    "might", "must", "shall", "you", "our", "your", "who", "this", "that",
}

STATE_CODES = ["ca", "ny", "tx", "wa", "fl", "il", "pa", "oh", "ga", "nc"]


def normalize_whitespace(text: str) -> str:
    return re.sub(r'\s+', ' ', text or '').strip()


def sanitize_text(value, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Trim, collapse whitespace and cut to ``max_length`` characters."""
    if value is None:
        return ""
    return normalize_whitespace(str(value))[:max_length]


def strip_html(html: Optional[str]) -> str:
    """Convert an HTML fragment to plain text."""
    if not html:
        return ""
    if "<" not in html and "&" not in html:
        return normalize_whitespace(html)

    soup = BeautifulSoup(html, "html.parser")
    return normalize_whitespace(soup.get_text(" "))


def parse_job_type(raw: Union[str, list, None]) -> JobType:
    """Map a source job-type string (or list of them) onto JobType."""
    if isinstance(raw, (list, tuple)):
        raw = " ".join(str(r) for r in raw)
    if isinstance(raw, JobType):
        return raw

    text = (raw or "").lower()

    if "part" in text or "teilzeit" in text:
        return JobType.PART_TIME
    if "freelance" in text:
        return JobType.FREELANCE
    if "contract" in text:
        return JobType.CONTRACT
    if "intern" in text or "student" in text or "praktikum" in text:
        return JobType.INTERNSHIP

    return JobType.FULL_TIME


def validate_url(url: Optional[str]) -> Optional[str]:
    """Return the URL if it is a usable http(s)/mailto link, else None."""
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    parsed = urlparse(url)

    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url
    if parsed.scheme == "mailto" and "@" in parsed.path:
        return url

    return None


def parse_location(text: Optional[str]) -> ParsedLocation:
    """Split a free-text location into city/state/country."""
    if not text:
        return ParsedLocation(country="")

    lower = text.lower().strip()

    if "remote" in lower or "anywhere" in lower or "worldwide" in lower:
        return ParsedLocation(country="", remote=True, hybrid="hybrid" in lower)

    parts = [p.strip() for p in text.split(',')]

    return ParsedLocation(
        city=parts[0] if parts else "",
        state=parts[1] if len(parts) > 1 else "",
        country=parts[2] if len(parts) > 2 else "US",
        remote=False,
        hybrid="hybrid" in lower,
    )


def parse_salary(text: Optional[str]) -> Optional[ParsedSalary]:
    """
    Parse a salary string such as "$80k - $120k" or "£40,000 per year".

    Returns:
        ParsedSalary, or None if no amount could be read
    """
    if not text:
        return None

    lower = text.lower()
    amounts = []

    for number, suffix in re.findall(r'(\d[\d,]*(?:\.\d+)?)\s*(k\b)?', lower):
        value = float(number.replace(',', ''))
        if suffix:
            value *= 1000
        amounts.append(int(value))

    if not amounts:
        return None

    if "€" in text or "eur" in lower:
        currency = "EUR"
    elif "£" in text or "gbp" in lower:
        currency = "GBP"
    else:
        currency = "USD"

    if "hour" in lower or "/hr" in lower:
        period = "hourly"
    elif "month" in lower:
        period = "monthly"
    else:
        period = "yearly"

    return ParsedSalary(
        min=amounts[0],
        max=amounts[1] if len(amounts) > 1 else amounts[0],
        currency=currency,
        period=period,
        equity="equity" in lower or "stock" in lower,
    )


# Pay period -> multiplier to a yearly figure (40h weeks, 52 weeks)
ANNUAL_MULTIPLIERS = {"hourly": 2080, "monthly": 12, "yearly": 1}


def annual_salary_range(salary: Optional[ParsedSalary]) -> Optional[tuple[float, float]]:
    """Yearly (low, high) for a parsed salary, or None when it has no amount."""
    if not salary or not (salary.min or salary.max):
        return None

    factor = ANNUAL_MULTIPLIERS.get(salary.period, 1)
    low = salary.min or salary.max
    high = salary.max or salary.min
    return low * factor, high * factor


def salary_value(salary: Optional[ParsedSalary]) -> int:
    """Single comparable yearly number for a parsed salary (0 if unknown)."""
    annual = annual_salary_range(salary)
    return int(annual[1]) if annual else 0


def _as_datetime(value, now: datetime) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # Epoch seconds or milliseconds
        seconds = value / 1000 if value > 1e11 else value
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is not None and now.tzinfo is None:
        dt = dt.astimezone().replace(tzinfo=None)
    elif dt.tzinfo is None and now.tzinfo is not None:
        dt = dt.replace(tzinfo=now.tzinfo)
    return dt


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def bucket_posted_date(value, now: Optional[datetime] = None) -> str:
    """
    Normalize a posting timestamp into a relative-age bucket.

    Args:
        value: datetime, ISO string, or epoch seconds/milliseconds
        now: Reference time (defaults to datetime.now())

    Returns:
        "1 day ago", "N days ago", "N weeks ago", "N months ago", or
        "Recently" if the date is missing or unreadable
    """
    now = now or datetime.now()
    posted = _as_datetime(value, now)
    if posted is None:
        return "Recently"

    days = math.ceil(abs((now - posted).total_seconds()) / 86400)
    days = max(days, 1)

    if days < 7:
        return _plural(days, "day")
    if days < 30:
        return _plural(days // 7, "week")
    return _plural(days // 30, "month")


def parse_posted_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Turn a relative-age bucket (or ISO date) back into a datetime."""
    now = now or datetime.now()
    if not text:
        return None

    lower = text.lower().strip()
    if lower in ("today", "just now", "recently", "new"):
        return now

    match = re.search(r'(\d+)\s*(hour|day|week|month)s?', lower)
    if match:
        amount = int(match.group(1))
        unit = match.group(2)
        deltas = {
            "hour": timedelta(hours=amount),
            "day": timedelta(days=amount),
            "week": timedelta(weeks=amount),
            "month": timedelta(days=30 * amount),
        }
        return now - deltas[unit]

    return _as_datetime(text, now)


def _role_key(title: str, table: dict, default: str) -> str:
    title_lower = (title or "").lower()
    for role in table:
        if role in title_lower:
            return role
    return default


def estimate_salary(title: str, location: str = "", industry: str = "") -> str:
    """
    Estimate a salary range for a listing that omits one.

    Args:
        title: Job title or search query used to pick the base band
        location: Location text; high-cost cities scale the band by 1.3
        industry: "tech" scales the band by 1.2

    Returns:
        Formatted range, e.g. "$70,000 - $120,000"
    """
    low, high = BASE_SALARIES[_role_key(title, BASE_SALARIES, "developer")]

    location_lower = (location or "").lower()
    location_multiplier = 1.3 if any(city in location_lower for city in HIGH_COST_LOCATIONS) else 1.0
    industry_multiplier = 1.2 if (industry or "").lower() == "tech" else 1.0

    low = int(low * location_multiplier * industry_multiplier)
    high = int(high * location_multiplier * industry_multiplier)

    return f"${low:,} - ${high:,}"


def generate_requirements(title: str) -> list[str]:
    """Generic requirements for a role when a source provides none."""
    return ROLE_REQUIREMENTS[_role_key(title, ROLE_REQUIREMENTS, "developer")][:4]


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    """Most frequent non-stopword terms, ties in order of first appearance."""
    words = re.sub(r'[^\w\s#+]', ' ', (text or "").lower()).split()
    counts = Counter(w for w in words if len(w) > 2 and w not in STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]


def clamp_score(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))
