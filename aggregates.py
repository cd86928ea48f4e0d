"""
Pure computations behind the listing and analytics routes: average review
ratings, pagination parameters and daily application counts.
"""
import math
from collections import Counter
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def average_rating(scholarship_id, reviews: Iterable[Dict[str, Any]]) -> Optional[float]:
    """Mean rating of the reviews pointing at ``scholarship_id``, one decimal.

    Returns None when no review matches, so an unrated scholarship is not
    confused with a poorly rated one.
    """
    key = str(scholarship_id)
    ratings = []
    for review in reviews:
        if review.get("scholarshipId") != key:
            continue
        try:
            value = float(review.get("rating"))
        except (TypeError, ValueError):
            continue
        if not math.isfinite(value):
            continue
        ratings.append(Decimal(str(value)))
    if not ratings:
        return None
    mean = sum(ratings) / len(ratings)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def with_ratings(scholarships: List[Dict[str, Any]], reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**s, "averageRating": average_rating(s["_id"], reviews)} for s in scholarships]


def _positive_int(value, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def page_params(page, limit) -> Dict[str, int]:
    page = _positive_int(page, DEFAULT_PAGE)
    limit = _positive_int(limit, DEFAULT_LIMIT)
    return {"page": page, "limit": limit, "skip": (page - 1) * limit}


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def _utc_day(value: datetime) -> str:
    # naive datetimes are already UTC (BSON dates)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d")


def _day(value) -> Optional[str]:
    if isinstance(value, datetime):
        return _utc_day(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str) and value:
        try:
            return _utc_day(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def daily_counts(values: Iterable[Any]) -> List[Dict[str, Any]]:
    counts = Counter(d for d in (_day(v) for v in values) if d)
    return [{"date": d, "count": counts[d]} for d in sorted(counts)]
