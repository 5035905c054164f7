"""Pure business rules shared by the use cases.

Nothing here touches the database; every function is deterministic given its
inputs (code generators take an optional ``rng``/``now`` for tests).
"""
import hashlib
import math
import re
import secrets
import string
import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

BASE36 = string.digits + string.ascii_uppercase
VERIFICATION_ALPHABET = string.ascii_uppercase + string.digits
VERIFICATION_CODE_LENGTH = 16

YOUTUBE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
_YOUTUBE_URL_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/embed/([^&\n?#]+)"),
    re.compile(r"youtube\.com/v/([^&\n?#]+)"),
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float, ndigits: int = 0) -> float:
    # Python's round() is banker's rounding; 12.5 must become 13
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def percentage(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(done / total * 100))


def as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything stored is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def study_day(value: datetime, tz: str = "UTC") -> date:
    return as_utc(value).astimezone(ZoneInfo(tz)).date()


def day_bounds(day: date, tz: str = "UTC") -> tuple[datetime, datetime]:
    """UTC [start, end) of a calendar day in ``tz``."""
    zone = ZoneInfo(tz)
    start = datetime.combine(day, datetime.min.time(), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def compute_streaks(days, today: date) -> tuple[int, int]:
    """Return ``(current_streak, longest_streak)`` for a collection of study days.

    A run breaks whenever two consecutive distinct days are not exactly one day
    apart. The trailing run only counts as current when it ends today or
    yesterday.
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0, 0

    longest = 0
    run = 0
    prev = None
    for day in ordered:
        if prev is not None and (day - prev).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        prev = day

    last = ordered[-1]
    current = run if last in (today, today - timedelta(days=1)) else 0
    return current, longest


def current_streak_from(days, today: date) -> int:
    """Consecutive days ending exactly today, walking backwards."""
    present = set(days)
    streak = 0
    cursor = today
    while cursor in present:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def generate_certificate_number(now_ms: int | None = None, rng=secrets) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(rng.choice(BASE36) for _ in range(6))
    return f"CERT-{str(now_ms)[-8:]}-{suffix}"


def generate_verification_code(rng=secrets) -> str:
    return "".join(rng.choice(VERIFICATION_ALPHABET) for _ in range(VERIFICATION_CODE_LENGTH))


def anonymized_label(user_id: str, email: str | None = None) -> str:
    """Public name on a certificate; never the raw email."""
    if email and "@" in email:
        local = email.split("@", 1)[0]
        if local:
            return f"{local[:2]}***"
    digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:8]
    return f"Learner-{digest}"


def extract_youtube_video_id(value: str) -> str:
    if not value:
        return ""
    value = value.strip()
    if YOUTUBE_ID_RE.match(value):
        return value
    for pattern in _YOUTUBE_URL_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)
    return value
