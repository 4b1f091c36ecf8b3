from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta

from config.constants import ORDER_STATUSES, TREND_PERIOD_DAYS
from config.env import DEFAULT_TREND_PERIOD
from utils.errors import InvalidInput

# ======================================================
# TREND AGGREGATION
# ======================================================
# Pure functions over already fetched rows. Days are the calendar date of
# the stored (naive UTC) timestamp.


def parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value.strip()[:10])
    except (ValueError, AttributeError):
        raise InvalidInput(f"Invalid {name}, expected YYYY-MM-DD")


def resolve_range(
    *,
    period: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    now: datetime | None = None,
) -> tuple[datetime, datetime, str]:
    """
    (start, end, period) for an explicit inclusive date range or a named
    period. A period of N days covers N calendar days ending today.
    Unknown periods fall back to the default one.
    """
    if bool(start_date) != bool(end_date):
        raise InvalidInput("start_date and end_date must be given together")

    if start_date and end_date:
        start_day = parse_day(start_date, "start_date")
        end_day = parse_day(end_date, "end_date")
        if end_day < start_day:
            raise InvalidInput("end_date must not be before start_date")
        return (
            datetime.combine(start_day, time.min),
            datetime.combine(end_day, time.max),
            "custom",
        )

    if period not in TREND_PERIOD_DAYS:
        period = DEFAULT_TREND_PERIOD if DEFAULT_TREND_PERIOD in TREND_PERIOD_DAYS else "30d"

    now = now or datetime.utcnow()
    start_day = now.date() - timedelta(days=TREND_PERIOD_DAYS[period] - 1)
    return datetime.combine(start_day, time.min), now, period


def days_in_range(start: datetime, end: datetime) -> list[date]:
    day, last = start.date(), end.date()
    days = []
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days


def empty_status_counts() -> dict:
    return {status: 0 for status in ORDER_STATUSES}


def build_status_series(orders, start: datetime, end: datetime) -> list[dict]:
    """
    Dense per-day status counts. Every day in range appears exactly once,
    zero-filled where there are no orders.
    """
    grouped = Counter(
        (o["created_at"].date(), o["status"])
        for o in orders
        if start <= o["created_at"] <= end
    )

    by_day: dict[date, dict] = defaultdict(empty_status_counts)
    for (day, status), count in grouped.items():
        if status in ORDER_STATUSES:
            by_day[day][status] = count

    return [
        {"date": day.isoformat(), **by_day.get(day, empty_status_counts())}
        for day in days_in_range(start, end)
    ]


def build_earnings_series(orders, start: datetime, end: datetime) -> dict:
    earnings: dict[date, float] = defaultdict(float)
    counts: Counter = Counter()

    for o in orders:
        completed_at = o.get("completed_at")
        if not completed_at or not start <= completed_at <= end:
            continue
        day = completed_at.date()
        earnings[day] += float(o.get("price") or 0)
        counts[day] += 1

    data = [
        {"date": day.isoformat(), "earnings": round(earnings.get(day, 0.0), 2), "count": counts.get(day, 0)}
        for day in days_in_range(start, end)
    ]

    return {
        "data": data,
        "total_earnings": round(sum(d["earnings"] for d in data), 2),
        "total_count": sum(d["count"] for d in data),
    }


def format_status_totals(rows: list[dict]) -> dict:
    stats = {**empty_status_counts(), "total_revenue": 0}
    for row in rows:
        if row["_id"] in ORDER_STATUSES:
            stats[row["_id"]] = row["count"]
        if row["_id"] == "completed":
            stats["total_revenue"] = row.get("revenue", 0)
    return stats
