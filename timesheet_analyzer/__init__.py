"""
Timesheet Analyzer - Core Modules
"""

from .forecast import ForecastEngine
from .models import (
    ActualRecord,
    ActualsSnapshot,
    ForecastResult,
    ForecastStatus,
    PlanMode,
    PlannedAllocation,
    ViewMode,
)
from .normalizer import ProjectNameNormalizer
from .reconciler import Reconciler
from .report_parser import TimesheetReportParser

__all__ = [
    'ActualRecord',
    'ActualsSnapshot',
    'ForecastEngine',
    'ForecastResult',
    'ForecastStatus',
    'PlanMode',
    'PlannedAllocation',
    'ProjectNameNormalizer',
    'Reconciler',
    'TimesheetReportParser',
    'ViewMode',
]

__version__ = '0.1.0'
