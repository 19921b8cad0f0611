"""
Timesheet Report Parser Module

Turns the rows of a timesheet export (first sheet, flattened to a list of
lists) into per-project daily hours. The export is a sequence of weekly
blocks; each block starts with a "Project Name" / "Work Code" header row
whose remaining cells hold the dates of that week, followed by one row per
project.
"""

import logging
import math
import re
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Sequence

from .exceptions import MissingDateRangeError
from .models import ActualRecord, ParsedReport, ReportDateRange
from .normalizer import ProjectNameNormalizer


logger = logging.getLogger(__name__)

DATE_RANGE_MARKER = 'Report Date From:'
HEADER_CELLS = ('Project Name', 'Work Code')
FIRST_DATE_COLUMN = 2

# Spreadsheet date serials count days from this anchor
SERIAL_EPOCH = date(1899, 12, 30)

EXCLUDED_PREFIXES = (
    'Project Name',
    'Total Hours',
    'Report Date From:',
    'Date & Time Exported:',
    'Staff Name:',
    'Employee Number:',
)
EXCLUDED_PREFIXES_CASELESS = ('signature',)

_DATE_RANGE_RE = re.compile(
    r'(\d{1,2}/\d{1,2}/\d{4})\s+to\s+(\d{1,2}/\d{1,2}/\d{4})',
    re.IGNORECASE,
)
_LEADING_NUMBER_RE = re.compile(r'^\s*[-+]?(\d+(\.\d*)?|\.\d+)')


def parse_dmy(text: str) -> Optional[date]:
    """Parse a DD/MM/YYYY string (anything after the first space is ignored)"""
    parts = text.strip().split(' ')[0].split('/')
    if len(parts) != 3:
        return None
    try:
        day, month, year = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def coerce_column_date(value: Any) -> Optional[date]:
    """
    Resolve a header cell to a date

    Accepts native date/datetime values, spreadsheet serial numbers and
    DD/MM/YYYY-prefixed strings. Returns None for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value <= 1:
            return None
        try:
            return SERIAL_EPOCH + timedelta(days=int(value))
        except (ValueError, OverflowError):
            return None
    if isinstance(value, str):
        return parse_dmy(value)
    return None


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def coerce_hours_cell(value: Any) -> Optional[float]:
    """Parse an hours cell; None for blanks, non-numeric text and values too large for a float"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _finite(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        if match:
            return _finite(match.group(0))
    return None


def is_data_label(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    if value.startswith(EXCLUDED_PREFIXES):
        return False
    return not value.lower().startswith(EXCLUDED_PREFIXES_CASELESS)


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def find_date_range(rows: Sequence[Sequence[Any]]) -> ReportDateRange:
    """
    Locate the report's covered date range

    Args:
        rows: Raw sheet rows

    Returns:
        The inclusive range from the first "Report Date From:" row

    Raises:
        MissingDateRangeError: no marker row, unparseable dates, or start > end
    """
    for row in rows:
        first = _cell(row, 0) if row else None
        if not isinstance(first, str) or not first.startswith(DATE_RANGE_MARKER):
            continue

        match = _DATE_RANGE_RE.search(first[len(DATE_RANGE_MARKER):])
        start = parse_dmy(match.group(1)) if match else None
        end = parse_dmy(match.group(2)) if match else None
        if start is None or end is None:
            raise MissingDateRangeError(f"Could not parse report date range: {first!r}")
        if start > end:
            raise MissingDateRangeError(f"Report date range is reversed: {first!r}")
        return ReportDateRange(start=start, end=end)

    raise MissingDateRangeError("Could not find 'Report Date From' row in the sheet")


class TimesheetReportParser:
    """Parses timesheet exports into per-project daily hours"""

    def __init__(self, normalizer: Optional[ProjectNameNormalizer] = None):
        self.normalizer = normalizer or ProjectNameNormalizer.from_environment()

    def parse(self, rows: Sequence[Sequence[Any]]) -> ParsedReport:
        """
        Parse raw sheet rows

        Args:
            rows: Rows of the first sheet, header row included, as lists of cells

        Returns:
            ParsedReport keyed by canonical project name, with a record
            (possibly of zero hours) for every project row under a header.
            Without a report date range the result is empty and has no
            ``date_range``.
        """
        try:
            date_range = find_date_range(rows)
        except MissingDateRangeError as e:
            logger.error("Cannot parse timesheet export: %s", e)
            return ParsedReport()

        daily: Dict[str, Dict[date, float]] = defaultdict(lambda: defaultdict(float))
        active_columns: Optional[Dict[int, date]] = None

        for row in rows:
            if not row:
                continue

            if tuple(row[:2]) == HEADER_CELLS:
                active_columns = self._date_columns(row, date_range)
                continue

            label = row[0]
            if active_columns is None or not is_data_label(label):
                continue

            project = self.normalizer.normalize(label)
            if not project:
                continue
            hours_by_day = daily[project]
            for column, day in active_columns.items():
                hours = coerce_hours_cell(_cell(row, column))
                if hours is not None and hours > 0:
                    hours_by_day[day] += hours

        records = {
            project: ActualRecord.from_daily(dict(hours_by_day))
            for project, hours_by_day in daily.items()
        }
        logger.info("Parsed %d projects for %s to %s",
                    len(records), date_range.start, date_range.end)
        return ParsedReport(records=records, date_range=date_range)

    def _date_columns(self, header: Sequence[Any], date_range: ReportDateRange) -> Dict[int, date]:
        columns = {}
        for column in range(FIRST_DATE_COLUMN, len(header)):
            value = header[column]
            if value is None or value == '':
                continue
            day = coerce_column_date(value)
            if day is not None and date_range.contains(day):
                columns[column] = day
        return columns
