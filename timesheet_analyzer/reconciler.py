"""
Reconciler Module
Merges planned and actual hours for the monthly or weekly dashboard view
"""

import logging
from datetime import date
from typing import List, Mapping, Optional

from .business_calendar import week_bounds
from .forecast import ForecastEngine
from .models import (
    META_KEY,
    ActualRecord,
    ActualsSnapshot,
    PlanHealth,
    PlannedAllocation,
    ProjectLine,
    Reconciliation,
    ReconciliationTotals,
    ViewMode,
)


logger = logging.getLogger(__name__)

# Tolerance when comparing actual hours on planned projects with the plan
HEALTH_TOLERANCE = {
    ViewMode.MONTHLY: 5.0,
    ViewMode.WEEKLY: 2.0,
}


def classify_plan_health(actual_on_planned: float, total_planned: float, view: ViewMode) -> PlanHealth:
    tolerance = HEALTH_TOLERANCE[view]
    difference = actual_on_planned - total_planned
    if difference > tolerance:
        return PlanHealth.OVER_PLAN
    if difference < -tolerance:
        return PlanHealth.UNDER_PLAN
    return PlanHealth.ON_TRACK


class Reconciler:
    """Builds per-project and aggregate comparisons of planned vs actual hours"""

    def __init__(self, engine: Optional[ForecastEngine] = None):
        self.engine = engine or ForecastEngine()

    def reconcile(self,
                  view: ViewMode,
                  planned: Mapping[str, PlannedAllocation],
                  actuals: ActualsSnapshot,
                  today: date) -> Reconciliation:
        """
        Reconcile planned allocations with actual records

        Args:
            view: Monthly or weekly view
            planned: Planned allocations keyed by canonical project name
            actuals: Actual records keyed by canonical project name
            today: Reference date for the current week/month

        Returns:
            Reconciliation with lines ordered by project name
        """
        view = ViewMode(view)
        projects = sorted((set(planned) | set(actuals.records)) - {META_KEY})

        lines: List[ProjectLine] = []
        total_actual = 0.0
        total_planned = 0.0
        actual_on_planned = 0.0
        unplanned_work = 0.0

        for project in projects:
            record = actuals.records.get(project)
            allocation = planned.get(project)

            if view is ViewMode.WEEKLY:
                actual = self._weekly_actual(record, today)
                planned_hours = allocation.planned_for_week_of(today) if allocation else 0.0
                forecast = self.engine.compare_weekly(actual, planned_hours)
            else:
                actual = record.total_hours if record else 0.0
                planned_hours = allocation.total if allocation else 0.0
                if record is not None and record.daily_hours is not None:
                    forecast = self.engine.forecast(record.daily_hours, planned_hours, today)
                else:
                    forecast = self.engine.forecast_total(actual, planned_hours, today)

            total_actual += actual
            total_planned += planned_hours
            if actual > 0 and planned_hours > 0:
                actual_on_planned += actual
            if planned_hours == 0 and actual > 0:
                unplanned_work += actual

            lines.append(ProjectLine(
                project=project,
                actual=actual,
                planned=planned_hours,
                diff=actual - planned_hours,
                forecast=forecast,
            ))

        totals = ReconciliationTotals(
            total_actual=total_actual,
            total_planned=total_planned,
            total_diff=total_actual - total_planned,
            total_actual_on_planned=actual_on_planned,
            unplanned_work=unplanned_work,
            plan_health=classify_plan_health(actual_on_planned, total_planned, view),
        )
        logger.debug("Reconciled %d projects (%s view, %s)", len(lines), view.value, today)
        return Reconciliation(view=view, today=today, lines=lines, totals=totals)

    @staticmethod
    def _weekly_actual(record: Optional[ActualRecord], today: date) -> float:
        if record is None or record.daily_hours is None:
            return 0.0
        monday, sunday = week_bounds(today)
        return record.hours_between(monday, sunday)
