"""
Display helpers for hours, dates and forecast labels
"""

import math
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from .models import ForecastResult, ForecastStatus, Reconciliation


TWO_PLACES = Decimal('0.01')


def format_hours(value: float) -> str:
    """Format hours to two decimal places, rounding halves away from zero"""
    if not math.isfinite(value):
        return str(value)
    # str() first so 1.005 rounds as written rather than as its binary value
    rounded = Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:.2f}"


def format_signed_hours(value: float) -> str:
    text = format_hours(value)
    return f"+{text}" if value > 0 and text != '0.00' else text


def ordinal_suffix(day: int) -> str:
    if day in (1, 21, 31):
        return 'st'
    if day in (2, 22):
        return 'nd'
    if day in (3, 23):
        return 'rd'
    return 'th'


def format_day(day: date) -> str:
    """Short weekday plus ordinal day, e.g. 'Tue 12th'"""
    return f"{day.strftime('%a')} {day.day}{ordinal_suffix(day.day)}"


def describe_forecast(result: ForecastResult) -> str:
    """Human readable label for a forecast result"""
    status = result.status

    if status is ForecastStatus.NO_DATA:
        return 'No data yet'
    if status is ForecastStatus.UNPLANNED:
        return 'Unplanned'
    if status is ForecastStatus.RAN_OUT:
        if result.exhaustion_date is not None:
            return f"Ran out on {format_day(result.exhaustion_date)}"
        return f"Over budget by {format_hours(result.overage_hours or 0.0)}"
    if status is ForecastStatus.OVER:
        if result.daily_increase is not None:
            return f"Increase consumption by {format_hours(result.daily_increase)} hrs/day"
        return f"{format_hours(result.projected_remaining_hours)} hrs unused"
    if status is ForecastStatus.UNDER:
        if result.exhaustion_date is not None:
            return f"Run out by {format_day(result.exhaustion_date)}"
        return f"Will run out by {format_hours(result.shortfall_hours or 0.0)}"
    if status is ForecastStatus.OVER_WEEKLY_LIMIT:
        return 'Over weekly limit'
    if status is ForecastStatus.UNDER_WEEKLY_LIMIT:
        return 'Under weekly limit'
    return 'On track'


def reconciliation_to_dict(reconciliation: Reconciliation) -> Dict[str, Any]:
    """JSON-ready view of a reconciliation, numbers kept alongside display strings"""
    totals = reconciliation.totals
    return {
        'view': reconciliation.view.value,
        'today': reconciliation.today.isoformat(),
        'projects': [
            {
                'project': line.project,
                'actual': line.actual,
                'planned': line.planned,
                'diff': line.diff,
                'display': {
                    'actual': format_hours(line.actual),
                    'planned': format_hours(line.planned),
                    'diff': format_signed_hours(line.diff),
                },
                'forecast': {
                    **line.forecast.to_dict(),
                    'label': describe_forecast(line.forecast),
                },
            }
            for line in reconciliation.lines
        ],
        'totals': {
            'total_actual': totals.total_actual,
            'total_planned': totals.total_planned,
            'total_diff': totals.total_diff,
            'total_actual_on_planned': totals.total_actual_on_planned,
            'unplanned_work': totals.unplanned_work,
            'plan_health': totals.plan_health.value,
            'display': {
                'total_actual': format_hours(totals.total_actual),
                'total_planned': format_hours(totals.total_planned),
                'total_diff': format_signed_hours(totals.total_diff),
                'unplanned_work': format_hours(totals.unplanned_work),
            },
        },
    }
