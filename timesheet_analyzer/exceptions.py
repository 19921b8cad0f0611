"""
Exception hierarchy for the timesheet analyzer
"""


class TimesheetAnalyzerError(Exception):
    """Base class for all analyzer errors"""


class MissingDateRangeError(TimesheetAnalyzerError):
    """The export has no usable 'Report Date From: ... to ...' row"""


class WorkbookReadError(TimesheetAnalyzerError):
    """An uploaded file could not be opened as a workbook"""


class InvalidAllocationError(TimesheetAnalyzerError, ValueError):
    """A planned allocation edit was rejected"""
