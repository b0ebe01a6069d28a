"""Aggregates over a task snapshot for dashboards, schedules and charts."""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

STATUSES = ("todo", "in-progress", "done")
PRIORITIES = ("high", "medium", "low")
UNSCHEDULED = "unscheduled"

Task = dict[str, Any]


@dataclass(frozen=True)
class BoardStats:
    total: int
    done: int
    pending: int
    percentage: int


@dataclass(frozen=True)
class DayCount:
    day: date
    count: int

    @property
    def weekday(self) -> str:
        return self.day.strftime("%A")


def parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def board_stats(tasks: list[Task]) -> BoardStats:
    total = len(tasks)
    done = sum(1 for t in tasks if t.get("status") == "done")
    percentage = round(done / total * 100) if total else 0
    return BoardStats(total=total, done=done, pending=total - done, percentage=percentage)


def status_breakdown(tasks: list[Task]) -> dict[str, int]:
    counts = Counter(t.get("status") for t in tasks)
    return {status: counts.get(status, 0) for status in STATUSES}


def weekly_completions(tasks: list[Task], today: date | None = None) -> list[DayCount]:
    """Completed tasks per day for the last seven days, oldest first.

    Uses completedAt, falling back to updatedAt for tasks finished before
    completion times were recorded.
    """
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    counts: Counter[date] = Counter()
    for task in tasks:
        if task.get("status") != "done":
            continue
        finished = parse_timestamp(task.get("completedAt") or task.get("updatedAt"))
        if finished is not None:
            counts[finished.date()] += 1
    return [DayCount(day=day, count=counts.get(day, 0)) for day in days]


def peak_days(days: list[DayCount]) -> tuple[list[DayCount], int] | None:
    """Days sharing the highest completion count, or None when nothing was completed."""
    best = max((d.count for d in days), default=0)
    if best == 0:
        return None
    return [d for d in days if d.count == best], best


def filter_by_title(tasks: list[Task], term: str) -> list[Task]:
    needle = term.strip().lower()
    if not needle:
        return list(tasks)
    return [t for t in tasks if needle in str(t.get("title", "")).lower()]


def group_by_deadline(tasks: list[Task], search: str = "") -> dict[str, list[Task]]:
    """Group tasks by ISO deadline date (sorted), with undated tasks under ``unscheduled``."""
    groups: dict[str, list[Task]] = {}
    unscheduled: list[Task] = []
    for task in filter_by_title(tasks, search):
        deadline = parse_timestamp(task.get("deadline"))
        if deadline is None:
            unscheduled.append(task)
            continue
        groups.setdefault(deadline.date().isoformat(), []).append(task)

    ordered = {key: groups[key] for key in sorted(groups)}
    ordered[UNSCHEDULED] = unscheduled
    return ordered


def pending_by_priority(tasks: list[Task]) -> dict[str, int]:
    counts = Counter(t.get("priority") for t in tasks if t.get("status") != "done")
    return {priority: counts.get(priority, 0) for priority in PRIORITIES}
