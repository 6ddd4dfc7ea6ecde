"""
Fixed four-bucket review scheduler.

Card states per user: 'new' (no progress stored) -> 'reviewed' (any rating).
Only a progress reset moves a card back to 'new'.

Ratings: 'again' (0), 'hard' (1), 'good' (2), 'easy' (3)

Due dates are always whole days: the next review is midnight of the review
day plus the rating's interval, and due-ness compares days, not times.
"""

from datetime import datetime, timedelta

# Rating constants
AGAIN = 0
HARD = 1
GOOD = 2
EASY = 3

RATINGS = (AGAIN, HARD, GOOD, EASY)
RATING_LABELS = {AGAIN: 'Again', HARD: 'Hard', GOOD: 'Good', EASY: 'Easy'}

# Interval in days, indexed by rating
INTERVALS = [1, 3, 7, 14]

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def calculate_interval(rating: int) -> int:
    """Days until the next review. Out-of-range ratings clamp to the nearest end."""
    index = max(0, min(int(rating), len(INTERVALS) - 1))
    return INTERVALS[index]


def normalized_day(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def compute_next_due(now: datetime, rating: int) -> datetime:
    return normalized_day(now) + timedelta(days=calculate_interval(rating))


def is_due(now: datetime, next_due: datetime | None) -> bool:
    if next_due is None:
        return True
    return normalized_day(next_due) <= normalized_day(now)


# ── Stored form ───────────────────────────────────────────────

def format_timestamp(ts: datetime | None) -> str | None:
    return ts.strftime(TIMESTAMP_FORMAT) if ts is not None else None


def parse_timestamp(value) -> datetime | None:
    """Read a stored timestamp. Anything unreadable counts as never set."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_local(value)
    text = str(value).strip()
    if not text:
        return None
    # fromisoformat only learned the trailing Z in 3.11
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        return _naive_local(datetime.fromisoformat(text))
    except (ValueError, OverflowError, OSError):
        return None


def _naive_local(ts: datetime) -> datetime:
    # The clock is naive local time; aware values (ISO strings with an offset) are converted to it
    if ts.tzinfo is None:
        return ts
    return ts.astimezone().replace(tzinfo=None)


def parse_rating(value) -> int:
    """Stored rating cell -> int. Blank or garbage reads as 0."""
    if value is None or str(value).strip() == '':
        return AGAIN
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return AGAIN


# ── Labels ────────────────────────────────────────────────────

def format_interval(days: int) -> str:
    if days < 7:
        return f"{days}d"
    if days % 7 == 0 and days < 30:
        return f"{days // 7}w"
    if days < 30:
        return f"{days}d"
    return f"{round(days / 30)}mo"


def interval_label(rating: int) -> str:
    """Human-readable label for what happens if user picks this rating."""
    return format_interval(calculate_interval(rating))
