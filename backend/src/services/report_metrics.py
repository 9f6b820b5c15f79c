"""Pure statistics for employee report snapshots.

Nothing here touches the database; callers pass in already-fetched Task and
TaskWorkLog rows (or anything with the same attributes). All rounding is
half-up so figures match what the dashboard has always shown.
"""

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from src.models.enums import TaskPriority, TaskStatus

# Working days assumed in a reporting period when averaging hours.
WORKDAYS_PER_PERIOD = 5

# Upper bound on trend entries, guards against malformed date ranges.
MAX_TREND_DAYS = 365


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties away from zero for non-negative values (2.5 -> 3)."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class SnapshotMetrics:
    """Computed figures for one user in one report window."""

    total_tasks: int
    completed_tasks: int
    todo_tasks: int
    working_tasks: int
    done_tasks: int
    completion_rate: int
    total_hours: int
    avg_daily_hours: float
    productivity_score: float

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def pending_tasks(self) -> int:
        return self.total_tasks - self.completed_tasks


@dataclass(frozen=True)
class TrendPoint:
    date: str
    count: int


@dataclass(frozen=True)
class TeamMetrics:
    members: int
    total_tasks: int
    completed_tasks: int
    total_hours: int
    avg_productivity: int

    def to_dict(self) -> dict:
        return asdict(self)


def closed_minutes(work_logs: Iterable) -> float:
    """Sum of minutes over closed intervals. Running logs contribute nothing."""
    total = 0.0
    for log in work_logs:
        if log.end_time is None:
            continue
        total += (log.end_time - log.start_time).total_seconds() / 60
    return total


def completion_rate(completed: int, total: int) -> int:
    if total == 0:
        return 0
    return int(round_half_up(completed / total * 100))


def productivity_score(rate: int, avg_daily_hours: float) -> float:
    """Completion rate plus up to 30 points for logged hours, capped at 100."""
    return round(min(100, rate + min(30, avg_daily_hours * 5)), 2)


def compute_snapshot_metrics(tasks: Sequence, work_logs: Iterable) -> SnapshotMetrics:
    """Compute snapshot metrics from a user's tasks and work logs."""
    statuses = [t.status for t in tasks]
    total = len(statuses)
    completed = statuses.count(TaskStatus.DONE.value)
    todo = statuses.count(TaskStatus.TODO.value)
    working = statuses.count(TaskStatus.WORKING.value)

    total_hours = int(round_half_up(closed_minutes(work_logs) / 60))
    avg_daily = round(total_hours / WORKDAYS_PER_PERIOD, 2)
    rate = completion_rate(completed, total)

    return SnapshotMetrics(
        total_tasks=total,
        completed_tasks=completed,
        todo_tasks=todo,
        working_tasks=working,
        done_tasks=completed,
        completion_rate=rate,
        total_hours=total_hours,
        avg_daily_hours=avg_daily,
        productivity_score=productivity_score(rate, avg_daily),
    )


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def build_daily_trend(
    completed_at: Iterable[Optional[datetime]],
    from_date,
    to_date,
    max_days: int = MAX_TREND_DAYS,
) -> list[TrendPoint]:
    """Completed-task counts for every calendar day in [from_date, to_date].

    Days without completions get a zero entry. At most ``max_days`` entries
    are produced; an inverted range yields an empty list.
    """
    counts: dict[str, int] = defaultdict(int)
    for ts in completed_at:
        if ts is None:
            continue
        counts[_as_date(ts).isoformat()] += 1

    current = _as_date(from_date)
    end = _as_date(to_date)
    trend: list[TrendPoint] = []
    while current <= end and len(trend) < max_days:
        key = current.isoformat()
        trend.append(TrendPoint(date=key, count=counts.get(key, 0)))
        current += timedelta(days=1)
    return trend


def hours_by_day(work_logs: Iterable) -> list[dict]:
    """Closed hours grouped by the start date of each log, in date order."""
    grouped: dict[str, float] = defaultdict(float)
    for log in work_logs:
        if log.end_time is None:
            continue
        day = _as_date(log.start_time).isoformat()
        grouped[day] += (log.end_time - log.start_time).total_seconds() / 3600
    return [{"date": day, "hours": round(hours, 2)} for day, hours in sorted(grouped.items())]


def priority_distribution(tasks: Iterable) -> dict[str, int]:
    result = {p.value: 0 for p in TaskPriority}
    for task in tasks:
        if task.priority in result:
            result[task.priority] += 1
    return result


def aggregate_team(snapshots: Sequence) -> TeamMetrics:
    """Sum task and hour counts across snapshots; mean productivity, rounded."""
    if not snapshots:
        return TeamMetrics(0, 0, 0, 0, 0)
    return TeamMetrics(
        members=len(snapshots),
        total_tasks=sum(s.total_tasks for s in snapshots),
        completed_tasks=sum(s.completed_tasks for s in snapshots),
        total_hours=sum(s.total_hours for s in snapshots),
        avg_productivity=int(
            round_half_up(sum(s.productivity_score for s in snapshots) / len(snapshots))
        ),
    )


def efficiency_profile(snapshot) -> dict[str, float]:
    """Radar-chart dimensions derived from a snapshot."""
    return {
        "speed": min(100, snapshot.avg_daily_hours * 10),
        "quality": snapshot.completion_rate,
        "consistency": min(100, snapshot.total_tasks * 5),
        "time_management": max(40, 100 - snapshot.avg_daily_hours * 8),
        "activity": min(100, snapshot.total_hours * 2),
    }


def generate_insights(snapshot) -> list[str]:
    insights = []
    if snapshot.completion_rate > 80:
        insights.append("High task completion rate")
    if snapshot.avg_daily_hours > 9:
        insights.append("Potential overworking detected")
    if snapshot.productivity_score < 60:
        insights.append("Productivity improvement required")
    if not insights:
        insights.append("Performance is stable")
    return insights


def productivity_trend(score: float) -> list[dict]:
    # TODO: replace with per-week snapshots once reports store weekly buckets.
    return [
        {"week": "W1", "score": max(40, score - 20)},
        {"week": "W2", "score": max(50, score - 10)},
        {"week": "W3", "score": score},
    ]


# Labels used by the workbook and the PDF figure table, in display order.
METRIC_LABELS = [
    ("Total Tasks", "total_tasks"),
    ("Completed Tasks", "completed_tasks"),
    ("Completion Rate", "completion_rate"),
    ("Total Hours", "total_hours"),
    ("Avg Daily Hours", "avg_daily_hours"),
    ("Productivity Score", "productivity_score"),
]
