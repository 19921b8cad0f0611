"""
Forecast Engine Module
Projects a project's month-end position from partial-month daily actuals
"""

import os
from datetime import date, timedelta
from typing import Mapping, Optional

from .business_calendar import (
    is_working_day,
    last_day_of_month,
    remaining_working_days,
    working_days_between,
)
from .models import ForecastResult, ForecastStatus

DEFAULT_BUFFER_HOURS = 2.0


class ForecastEngine:
    """Classifies a project's consumption against its planned monthly hours"""

    def __init__(self, buffer_hours: Optional[float] = None):
        """
        Initialize forecast engine

        Args:
            buffer_hours: Tolerance band around zero projected remaining
                hours that still counts as on track (default 2.0)
        """
        if buffer_hours is None:
            buffer_hours = float(os.getenv('FORECAST_BUFFER_HOURS', DEFAULT_BUFFER_HOURS))
        self.buffer_hours = buffer_hours

    @staticmethod
    def _month_to_date(daily_hours: Mapping[date, float], today: date) -> dict:
        return {
            day: hours for day, hours in daily_hours.items()
            if day.year == today.year and day.month == today.month and day <= today
        }

    def daily_consumption_rate(self, daily_hours: Mapping[date, float], today: date) -> float:
        """
        Average hours per working day with logged time this month

        Args:
            daily_hours: Hours keyed by date
            today: Reference date; later entries are ignored

        Returns:
            Mean hours over the month's working days that have entries, 0 if none
        """
        working = [
            hours for day, hours in self._month_to_date(daily_hours, today).items()
            if is_working_day(day)
        ]
        if not working:
            return 0.0
        return sum(working) / len(working)

    def forecast(self,
                 daily_hours: Mapping[date, float],
                 planned_hours: float,
                 today: date) -> ForecastResult:
        """
        Forecast the project's status for the current month

        Args:
            daily_hours: Actual hours keyed by date
            planned_hours: Planned hours for the month
            today: Reference date

        Returns:
            ForecastResult; never raises
        """
        month_to_date = self._month_to_date(daily_hours, today)
        return self._classify(
            month_to_date,
            current_actual=sum(month_to_date.values()),
            daily_rate=self.daily_consumption_rate(month_to_date, today),
            planned_hours=planned_hours,
            today=today,
        )

    def _classify(self,
                  month_to_date: Mapping[date, float],
                  current_actual: float,
                  daily_rate: float,
                  planned_hours: float,
                  today: date,
                  dated: bool = True) -> ForecastResult:
        if daily_rate == 0 and current_actual == 0:
            return ForecastResult(status=ForecastStatus.NO_DATA)

        if planned_hours == 0:
            return ForecastResult(status=ForecastStatus.UNPLANNED)

        days_left = remaining_working_days(today.year, today.month, today)
        projected_remaining = planned_hours - current_actual - daily_rate * days_left

        if current_actual > planned_hours and daily_rate > 0:
            ran_out_on = self._historical_exhaustion(month_to_date, planned_hours, today) if dated else None
            if ran_out_on is not None:
                return ForecastResult(
                    status=ForecastStatus.RAN_OUT,
                    projected_remaining_hours=projected_remaining,
                    exhaustion_date=ran_out_on,
                )
            # Overage came from weekend entries, or there is no real daily series to walk
            return ForecastResult(
                status=ForecastStatus.RAN_OUT,
                projected_remaining_hours=projected_remaining,
                overage_hours=current_actual - planned_hours,
            )

        if projected_remaining > self.buffer_hours:
            return ForecastResult(
                status=ForecastStatus.OVER,
                projected_remaining_hours=projected_remaining,
                daily_increase=projected_remaining / days_left if days_left > 0 else None,
            )

        if projected_remaining < -self.buffer_hours:
            runs_out_on = self._projected_exhaustion(
                planned_hours - current_actual, daily_rate, today
            )
            return ForecastResult(
                status=ForecastStatus.UNDER,
                projected_remaining_hours=projected_remaining,
                exhaustion_date=runs_out_on,
                shortfall_hours=abs(projected_remaining) if runs_out_on is None else None,
            )

        return ForecastResult(
            status=ForecastStatus.ON_TRACK,
            projected_remaining_hours=projected_remaining,
        )

    def forecast_total(self, actual_hours: float, planned_hours: float, today: date) -> ForecastResult:
        """
        Forecast from a bare month-to-date total with no daily breakdown

        The total is spread evenly over the working days elapsed so far this
        month (or booked on ``today`` when none have elapsed) to get a rate,
        and classified through the same rules as a daily series. A total past
        the plan is reported as ``ran_out`` with its overage but no date, since
        the day the plan was used up is unknown.
        """
        if actual_hours <= 0:
            return self.forecast({}, planned_hours, today)
        elapsed = working_days_between(today.replace(day=1), today)
        if not elapsed:
            return self.forecast({today: actual_hours}, planned_hours, today)
        share = actual_hours / len(elapsed)
        # Keep the exact total; summing the shares back can drift past the plan
        return self._classify(
            {day: share for day in elapsed},
            current_actual=actual_hours,
            daily_rate=share,
            planned_hours=planned_hours,
            today=today,
            dated=False,
        )

    def compare_weekly(self, actual_hours: float, planned_hours: float) -> ForecastResult:
        """Weekly view comparison; no exhaustion projection"""
        if actual_hours > planned_hours:
            status = ForecastStatus.OVER_WEEKLY_LIMIT
        elif actual_hours < planned_hours:
            status = ForecastStatus.UNDER_WEEKLY_LIMIT
        else:
            status = ForecastStatus.ON_TRACK
        return ForecastResult(status=status, projected_remaining_hours=planned_hours - actual_hours)

    @staticmethod
    def _historical_exhaustion(month_to_date: Mapping[date, float],
                               planned_hours: float,
                               today: date) -> Optional[date]:
        consumed = 0.0
        for day in working_days_between(today.replace(day=1), today):
            consumed += month_to_date.get(day, 0.0)
            if consumed >= planned_hours:
                return day
        return None

    @staticmethod
    def _projected_exhaustion(hours_left: float, daily_rate: float, today: date) -> Optional[date]:
        if daily_rate <= 0:
            return None
        month_end = last_day_of_month(today.year, today.month)
        for day in working_days_between(today + timedelta(days=1), month_end):
            hours_left -= daily_rate
            if hours_left <= 0:
                return day
        return None
