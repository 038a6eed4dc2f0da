"""
Recurring booking pattern expansion.

Turns a start date and a RecurringPattern into the concrete dates a
recurring booking occupies.

Policies:
  • Days of week use 0=Sunday … 6=Saturday.
  • Exception dates are skipped and do not use up an occurrence; with an
    `occurrences` bound the series runs on until that many dates have
    been produced.
  • Biweekly eligibility is decided by ISO weeks (Monday-based) counted
    from the start date's week: even offsets are "on" weeks.
  • Monthly dates keep the start date's day of month, clamped to the last
    day of shorter months, and are always computed from the start date
    (Jan 31 → Feb 29 → Mar 31).
  • Every calendar step (one day, or one month for monthly patterns)
    counts against `max_iterations`, whatever bounds the pattern sets.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterator
from datetime import date, timedelta

from courtbook.config import RECURRENCE_MAX_ITERATIONS
from courtbook.errors import InvalidPatternError
from courtbook.models import (
    BiweeklyPattern,
    MonthlyPattern,
    OccurrencePreview,
    RecurringPattern,
    WeeklyPattern,
)

logger = logging.getLogger(__name__)


def day_of_week(day: date) -> int:
    """Day of week with 0=Sunday, 6=Saturday."""
    return day.isoweekday() % 7


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def walk_limit(start_date: date, pattern: RecurringPattern) -> int:
    """
    Calendar steps needed to reach the bound `pattern` sets.

    Unbounded patterns fall back to RECURRENCE_MAX_ITERATIONS.
    """
    if pattern.end_date is not None:
        if pattern.end_date < start_date:
            return 0
        if isinstance(pattern, MonthlyPattern):
            return (
                (pattern.end_date.year - start_date.year) * 12
                + pattern.end_date.month - start_date.month + 1
            )
        return (pattern.end_date - start_date).days + 1

    if pattern.occurrences is not None:
        # Skipped exception dates push the series further out
        needed = pattern.occurrences + len(pattern.exceptions)
        if isinstance(pattern, (WeeklyPattern, BiweeklyPattern)):
            days_per_cycle = max(1, len(set(pattern.days_of_week)))
            cycle = 14 if isinstance(pattern, BiweeklyPattern) else 7
            return (-(-needed // days_per_cycle) + 1) * cycle
        return needed

    return RECURRENCE_MAX_ITERATIONS


def validate_pattern(pattern: RecurringPattern, require_bound: bool = False) -> None:
    """
    Reject patterns that cannot be expanded sensibly.

    With `require_bound`, exactly one of end_date / occurrences must be set.
    """
    if isinstance(pattern, (WeeklyPattern, BiweeklyPattern)) and not pattern.days_of_week:
        raise InvalidPatternError(
            f"A {pattern.frequency} pattern needs at least one day of the week",
            details={"frequency": pattern.frequency},
        )
    if pattern.end_date is not None and pattern.occurrences is not None:
        raise InvalidPatternError(
            "Set either an end date or a number of occurrences, not both",
        )
    if require_bound and pattern.end_date is None and pattern.occurrences is None:
        raise InvalidPatternError(
            "Set an end date or a number of occurrences",
        )


class Occurrences:
    """
    Lazy, finite sequence of occurrence dates.

    Each iteration walks the calendar afresh from the start date, so the
    same object can be iterated any number of times with the same result.
    """

    def __init__(self, start_date: date, pattern: RecurringPattern, max_iterations: int) -> None:
        self.start_date = start_date
        self.pattern = pattern
        self.max_iterations = max_iterations

    def __iter__(self) -> Iterator[date]:
        pattern = self.pattern
        emitted = 0

        for step in range(self.max_iterations):
            current = self._step_date(step)

            if pattern.end_date is not None and current > pattern.end_date:
                return
            if not self._is_candidate(current):
                continue
            if current in pattern.exceptions:
                continue

            yield current
            emitted += 1
            if pattern.occurrences is not None and emitted >= pattern.occurrences:
                return

    def __repr__(self) -> str:
        return (
            f"Occurrences(start_date={self.start_date}, "
            f"frequency={self.pattern.frequency}, max_iterations={self.max_iterations})"
        )

    def _step_date(self, step: int) -> date:
        if isinstance(self.pattern, MonthlyPattern):
            return _add_months(self.start_date, step)
        return self.start_date + timedelta(days=step)

    def _is_candidate(self, day: date) -> bool:
        pattern = self.pattern
        if isinstance(pattern, WeeklyPattern):
            return day_of_week(day) in pattern.days_of_week
        if isinstance(pattern, BiweeklyPattern):
            if day_of_week(day) not in pattern.days_of_week:
                return False
            weeks_from_start = (_week_start(day) - _week_start(self.start_date)).days // 7
            return weeks_from_start % 2 == 0
        return True


def expand(
    start_date: date,
    pattern: RecurringPattern,
    max_iterations: int = RECURRENCE_MAX_ITERATIONS,
) -> Occurrences:
    """
    Expand `pattern` from `start_date` into its occurrence dates.

    The pattern is validated here, before any date is produced. The result
    is lazy; `max_iterations` caps the calendar walk so expansion always
    terminates even when the pattern has no bound of its own.
    """
    if max_iterations < 0:
        raise InvalidPatternError(
            f"max_iterations must not be negative, got {max_iterations}",
        )
    validate_pattern(pattern)
    return Occurrences(start_date, pattern, max_iterations)


def preview(
    start_date: date,
    pattern: RecurringPattern,
    limit: int = 5,
    max_iterations: int | None = None,
) -> OccurrencePreview:
    """
    The first `limit` occurrences plus the total a pattern expands to.

    Without `max_iterations` the walk runs as far as the pattern's own bound.
    """
    if max_iterations is None:
        max_iterations = walk_limit(start_date, pattern)
    dates = list(expand(start_date, pattern, max_iterations))
    logger.debug("Pattern %s from %s expands to %d dates", pattern.frequency, start_date, len(dates))
    return OccurrencePreview(
        dates=dates[:limit],
        total=len(dates),
        truncated=len(dates) > limit,
    )
