"""
Data model shared by the parser, forecast engine and reconciler.

Dates are ``datetime.date`` everywhere inside the package; ISO strings only
appear in the persisted/JSON form produced by ``to_dict`` methods.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import InvalidAllocationError


META_KEY = 'meta'


def coerce_hours(value: Any) -> float:
    """Coerce a stored hours value to a non-negative float (0 when unusable)."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        return 0.0
    return hours


class PlanMode(str, Enum):
    MONTHLY = 'monthly'
    WEEKLY = 'weekly'


class ViewMode(str, Enum):
    MONTHLY = 'monthly'
    WEEKLY = 'weekly'


class ForecastStatus(str, Enum):
    NO_DATA = 'no_data'
    UNPLANNED = 'unplanned'
    ON_TRACK = 'on_track'
    OVER = 'over'
    UNDER = 'under'
    RAN_OUT = 'ran_out'
    OVER_WEEKLY_LIMIT = 'over_weekly_limit'
    UNDER_WEEKLY_LIMIT = 'under_weekly_limit'


class PlanHealth(str, Enum):
    ON_TRACK = 'on_track'
    OVER_PLAN = 'over_plan'
    UNDER_PLAN = 'under_plan'


@dataclass(frozen=True)
class WeekAllocation:
    """Planned hours for one week, inclusive on both ends"""

    start: date
    end: date
    hours: float

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'hours': self.hours,
        }


@dataclass
class PlannedAllocation:
    """
    Planned hours for a single project.

    For monthly plans ``total`` is authoritative. For weekly plans it is
    derived and always equals the sum of ``weeks``, which are kept sorted by
    start date.
    """

    mode: PlanMode = PlanMode.MONTHLY
    total: float = 0.0
    weeks: List[WeekAllocation] = field(default_factory=list)

    def __post_init__(self):
        self.mode = PlanMode(self.mode)
        self.total = coerce_hours(self.total)
        self.weeks = sorted(self.weeks, key=lambda week: week.start)
        if self.mode is PlanMode.WEEKLY:
            self._recompute_total()

    @classmethod
    def monthly(cls, hours: Any) -> 'PlannedAllocation':
        return cls(mode=PlanMode.MONTHLY, total=coerce_hours(hours))

    @classmethod
    def weekly(cls, weeks: List[WeekAllocation]) -> 'PlannedAllocation':
        return cls(mode=PlanMode.WEEKLY, weeks=list(weeks))

    def _recompute_total(self):
        self.total = sum(week.hours for week in self.weeks)

    def set_monthly_total(self, hours: Any):
        if self.mode is not PlanMode.MONTHLY:
            raise InvalidAllocationError('Monthly hours can only be edited on a monthly plan')
        self.total = coerce_hours(hours)

    def switch_mode(self, mode: PlanMode):
        """Switch between monthly and weekly planning, keeping any weeks."""
        self.mode = PlanMode(mode)
        if self.mode is PlanMode.WEEKLY:
            self._recompute_total()

    def add_week(self, start: date, end: date, hours: Any):
        if self.mode is not PlanMode.WEEKLY:
            raise InvalidAllocationError('Weeks can only be added to a weekly plan')
        if end < start:
            raise InvalidAllocationError(f'Week end {end} is before its start {start}')
        self.weeks.append(WeekAllocation(start=start, end=end, hours=coerce_hours(hours)))
        self.weeks.sort(key=lambda week: week.start)
        self._recompute_total()

    def remove_week(self, start: date) -> bool:
        """Remove the week starting on ``start``; returns False if none matched."""
        remaining = [week for week in self.weeks if week.start != start]
        if len(remaining) == len(self.weeks):
            return False
        self.weeks = remaining
        self._recompute_total()
        return True

    def planned_for_week_of(self, day: date) -> float:
        if self.mode is not PlanMode.WEEKLY:
            return 0.0
        for week in self.weeks:
            if week.contains(day):
                return week.hours
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode.value,
            'total': self.total,
            'weeks': [week.to_dict() for week in self.weeks],
        }


@dataclass(frozen=True)
class ReportDateRange:
    """Inclusive date range covered by an export"""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {'startDate': self.start.isoformat(), 'endDate': self.end.isoformat()}


@dataclass
class ActualRecord:
    """
    Actual hours for one project.

    ``daily_hours`` is None for totals scraped from the live page; for parsed
    exports ``total_hours`` equals the sum of the daily values.
    """

    total_hours: float = 0.0
    daily_hours: Optional[Dict[date, float]] = None

    @classmethod
    def from_daily(cls, daily_hours: Dict[date, float]) -> 'ActualRecord':
        daily = dict(sorted(daily_hours.items()))
        return cls(total_hours=sum(daily.values()), daily_hours=daily)

    def hours_between(self, start: date, end: date) -> float:
        if not self.daily_hours:
            return 0.0
        return sum(hours for day, hours in self.daily_hours.items() if start <= day <= end)

    def to_dict(self) -> Any:
        if self.daily_hours is None:
            return self.total_hours
        return {
            'dailyHours': {day.isoformat(): hours for day, hours in self.daily_hours.items()},
            'totalHours': self.total_hours,
        }


@dataclass
class ActualsSnapshot:
    """All actual records from one upload or scrape"""

    records: Dict[str, ActualRecord] = field(default_factory=dict)
    date_range: Optional[ReportDateRange] = None

    def __bool__(self) -> bool:
        return bool(self.records)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {name: record.to_dict() for name, record in self.records.items()}
        if self.date_range is not None:
            payload[META_KEY] = self.date_range.to_dict()
        return payload


class ParsedReport(ActualsSnapshot):
    """Snapshot produced by the spreadsheet parser; ``date_range`` is None when parsing failed"""


@dataclass(frozen=True)
class ForecastResult:
    status: ForecastStatus
    projected_remaining_hours: float = 0.0
    exhaustion_date: Optional[date] = None
    daily_increase: Optional[float] = None
    overage_hours: Optional[float] = None
    shortfall_hours: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'projected_remaining_hours': self.projected_remaining_hours,
            'exhaustion_date': self.exhaustion_date.isoformat() if self.exhaustion_date else None,
            'daily_increase': self.daily_increase,
            'overage_hours': self.overage_hours,
            'shortfall_hours': self.shortfall_hours,
        }


@dataclass(frozen=True)
class ProjectLine:
    project: str
    actual: float
    planned: float
    diff: float
    forecast: ForecastResult


@dataclass(frozen=True)
class ReconciliationTotals:
    total_actual: float
    total_planned: float
    total_diff: float
    total_actual_on_planned: float
    unplanned_work: float
    plan_health: PlanHealth


@dataclass(frozen=True)
class Reconciliation:
    view: ViewMode
    today: date
    lines: List[ProjectLine]
    totals: ReconciliationTotals
