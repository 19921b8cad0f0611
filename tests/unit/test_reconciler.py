"""
Test Suite: planned vs actual reconciliation
"""

import pytest
from datetime import date

from timesheet_analyzer.forecast import ForecastEngine
from timesheet_analyzer.models import (
    ActualRecord,
    ActualsSnapshot,
    ForecastStatus,
    PlanHealth,
    PlannedAllocation,
    ViewMode,
    WeekAllocation,
)
from timesheet_analyzer.reconciler import Reconciler, classify_plan_health
from timesheet_analyzer.report_parser import TimesheetReportParser


def scraped(**totals):
    return ActualsSnapshot(records={
        name.replace('_', ' '): ActualRecord(total_hours=hours) for name, hours in totals.items()
    })


class TestMonthlyReconciliation:
    """Monthly view"""

    @pytest.fixture
    def reconciler(self):
        return Reconciler(ForecastEngine(buffer_hours=2.0))

    def test_plan_met_exactly(self, reconciler):
        result = reconciler.reconcile(
            ViewMode.MONTHLY, {"Acme": PlannedAllocation.monthly(40)}, scraped(Acme=40), date(2025, 9, 30)
        )

        assert len(result.lines) == 1
        line = result.lines[0]
        assert (line.project, line.actual, line.planned, line.diff) == ("Acme", 40, 40, 0)
        assert line.forecast.status == ForecastStatus.ON_TRACK
        assert result.totals.plan_health == PlanHealth.ON_TRACK

    def test_overspent_project_is_not_on_track(self, reconciler):
        result = reconciler.reconcile(
            ViewMode.MONTHLY, {"Acme": PlannedAllocation.monthly(40)}, scraped(Acme=55), date(2025, 9, 12)
        )
        line = result.lines[0]
        assert line.diff == 15
        assert line.forecast.status == ForecastStatus.RAN_OUT
        assert result.totals.plan_health == PlanHealth.OVER_PLAN

    def test_union_defaults_missing_side_to_zero(self, reconciler):
        planned = {
            "Acme": PlannedAllocation.monthly(40),
            "Beta": PlannedAllocation.monthly(20),
        }
        result = reconciler.reconcile(ViewMode.MONTHLY, planned, scraped(Acme=30, Gamma=10), date(2025, 9, 30))

        rows = {line.project: line for line in result.lines}
        assert [line.project for line in result.lines] == ["Acme", "Beta", "Gamma"]
        assert (rows["Beta"].actual, rows["Beta"].planned, rows["Beta"].diff) == (0, 20, -20)
        assert (rows["Gamma"].actual, rows["Gamma"].planned, rows["Gamma"].diff) == (10, 0, 10)
        assert rows["Beta"].forecast.status == ForecastStatus.NO_DATA
        assert rows["Gamma"].forecast.status == ForecastStatus.UNPLANNED

        totals = result.totals
        assert totals.total_actual == 40
        assert totals.total_planned == 60
        assert totals.total_diff == -20
        assert totals.total_actual_on_planned == 30
        assert totals.unplanned_work == 10
        assert totals.plan_health == PlanHealth.UNDER_PLAN

    def test_daily_series_drives_forecast(self, reconciler, normalizer, export_rows):
        report = TimesheetReportParser(normalizer).parse(export_rows)
        planned = {"Acme Platform": PlannedAllocation.monthly(30)}

        result = reconciler.reconcile(ViewMode.MONTHLY, planned, report, date(2025, 9, 10))
        rows = {line.project: line for line in result.lines}

        assert rows["Acme Platform"].actual == 29.5
        # 5.9 hrs/day over the 14 remaining days overshoots a 30 hr plan
        assert rows["Acme Platform"].forecast.status == ForecastStatus.UNDER
        assert rows["Mobile Warehouse Operations"].forecast.status == ForecastStatus.UNPLANNED

    def test_meta_key_is_never_a_project(self, reconciler):
        planned = {"meta": PlannedAllocation.monthly(5), "Acme": PlannedAllocation.monthly(10)}
        result = reconciler.reconcile(ViewMode.MONTHLY, planned, ActualsSnapshot(), date(2025, 9, 10))
        assert [line.project for line in result.lines] == ["Acme"]

    def test_empty_inputs(self, reconciler):
        result = reconciler.reconcile(ViewMode.MONTHLY, {}, ActualsSnapshot(), date(2025, 9, 10))
        assert result.lines == []
        assert result.totals.total_actual == 0
        assert result.totals.plan_health == PlanHealth.ON_TRACK


class TestWeeklyReconciliation:
    """Weekly view for Wednesday 10 September 2025 (week of 8-14 September)"""

    @pytest.fixture
    def report(self, normalizer, export_rows):
        return TimesheetReportParser(normalizer).parse(export_rows)

    @pytest.fixture
    def planned(self):
        return {
            "Acme Platform": PlannedAllocation.weekly([
                WeekAllocation(date(2025, 9, 8), date(2025, 9, 14), 8),
                WeekAllocation(date(2025, 9, 1), date(2025, 9, 7), 30),
            ]),
            "Mobile Warehouse Operations": PlannedAllocation.monthly(50),
        }

    def test_current_week_only(self, report, planned):
        result = Reconciler().reconcile(ViewMode.WEEKLY, planned, report, date(2025, 9, 10))
        rows = {line.project: line for line in result.lines}

        acme = rows["Acme Platform"]
        assert (acme.actual, acme.planned, acme.diff) == (6, 8, -2)
        assert acme.forecast.status == ForecastStatus.UNDER_WEEKLY_LIMIT

        mwo = rows["Mobile Warehouse Operations"]
        # monthly plans contribute nothing to a weekly view
        assert (mwo.actual, mwo.planned) == (9, 0)
        assert mwo.forecast.status == ForecastStatus.OVER_WEEKLY_LIMIT

    def test_weekly_totals_and_health(self, report, planned):
        totals = Reconciler().reconcile(ViewMode.WEEKLY, planned, report, date(2025, 9, 10)).totals

        assert totals.total_actual == 15
        assert totals.total_planned == 8
        assert totals.total_actual_on_planned == 6
        assert totals.unplanned_work == 9
        assert totals.plan_health == PlanHealth.ON_TRACK

    def test_scraped_totals_have_no_weekly_actuals(self, planned):
        result = Reconciler().reconcile(
            ViewMode.WEEKLY, planned, scraped(Acme_Platform=50), date(2025, 9, 10)
        )
        rows = {line.project: line for line in result.lines}
        assert rows["Acme Platform"].actual == 0
        assert rows["Acme Platform"].planned == 8


class TestPlanHealth:
    """Tolerance bands: 5 hrs monthly, 2 hrs weekly"""

    def test_monthly_band(self):
        assert classify_plan_health(105, 100, ViewMode.MONTHLY) == PlanHealth.ON_TRACK
        assert classify_plan_health(95, 100, ViewMode.MONTHLY) == PlanHealth.ON_TRACK
        assert classify_plan_health(105.5, 100, ViewMode.MONTHLY) == PlanHealth.OVER_PLAN
        assert classify_plan_health(94.5, 100, ViewMode.MONTHLY) == PlanHealth.UNDER_PLAN

    def test_weekly_band(self):
        assert classify_plan_health(42, 40, ViewMode.WEEKLY) == PlanHealth.ON_TRACK
        assert classify_plan_health(42.5, 40, ViewMode.WEEKLY) == PlanHealth.OVER_PLAN
        assert classify_plan_health(37.5, 40, ViewMode.WEEKLY) == PlanHealth.UNDER_PLAN


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
