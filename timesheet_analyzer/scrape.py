"""
Scrape boundary: shapes the live timesheet page's output into actual totals.

Walking the page itself happens in the browser; this module only deals with
what comes back from it, either the collaborator's response message or the
cell texts of the table it found.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import ActualRecord, ActualsSnapshot
from .normalizer import ProjectNameNormalizer
from .report_parser import coerce_hours_cell


logger = logging.getLogger(__name__)

WRONG_PAGE_DASHBOARD = 'WRONG_PAGE_DASHBOARD'

_WHITESPACE_RE = re.compile(r'\s+')


@dataclass
class ScrapeOutcome:
    """Result of one scrape; ``wrong_page`` is set when the dashboard was open instead"""

    totals: Dict[str, float] = field(default_factory=dict)
    wrong_page: bool = False

    def to_snapshot(self) -> ActualsSnapshot:
        return ActualsSnapshot(records={
            project: ActualRecord(total_hours=hours)
            for project, hours in self.totals.items()
        })


def interpret_scrape_response(payload: Any) -> ScrapeOutcome:
    """
    Turn the page collaborator's reply into a ScrapeOutcome

    Accepts ``{"success": true, "data": {project: hours}}``, a bare
    ``{project: hours}`` map, or ``{"success": false, "error": ...}``.
    Anything unusable yields an empty outcome; this never raises.
    """
    if not isinstance(payload, dict):
        logger.warning("Scrape returned no usable payload: %r", type(payload).__name__)
        return ScrapeOutcome()

    if payload.get('error') == WRONG_PAGE_DASHBOARD:
        logger.info("Scrape ran on the dashboard page instead of the timesheet")
        return ScrapeOutcome(wrong_page=True)

    if 'success' in payload:
        if not payload.get('success'):
            logger.warning("Scrape failed: %s", payload.get('error', 'unknown error'))
            return ScrapeOutcome()
        data = payload.get('data')
    else:
        data = payload

    if not isinstance(data, dict):
        return ScrapeOutcome()

    totals = {}
    for project, value in data.items():
        hours = coerce_hours_cell(value)
        if not isinstance(project, str) or not project.strip() or hours is None or hours <= 0:
            continue
        totals[project] = totals.get(project, 0.0) + hours
    return ScrapeOutcome(totals=totals)


def _clean_text(value: Any) -> str:
    return _WHITESPACE_RE.sub(' ', str(value or '')).strip()


def totals_from_table(rows: Sequence[Sequence[Any]],
                      normalizer: ProjectNameNormalizer) -> Dict[str, float]:
    """
    Sum hours per project from the cell texts of the timesheet table

    Args:
        rows: Table rows as lists of cell texts, header row included
        normalizer: Used to canonicalize the project column

    Returns:
        Positive totals keyed by canonical project name; empty when no
        "project name" header cell is found
    """
    header_index: Optional[int] = None
    name_column: Optional[int] = None
    for index, row in enumerate(rows):
        for column, cell in enumerate(row):
            if 'project name' in _clean_text(cell).lower():
                header_index, name_column = index, column
                break
        if header_index is not None:
            break

    if header_index is None:
        logger.error("Could not find timesheet table header")
        return {}

    hour_columns: List[int] = []
    header = rows[header_index]
    for column in range(name_column + 1, len(header)):
        text = _clean_text(header[column]).lower()
        if not text or 'comment' in text or 'total' in text:
            continue
        hour_columns.append(column)

    totals: Dict[str, float] = {}
    for row in rows[header_index + 1:]:
        if len(row) <= name_column:
            continue
        raw_name = _clean_text(row[name_column])
        if not raw_name or raw_name.startswith('Total') or raw_name.startswith('Report Date'):
            continue

        row_total = 0.0
        for column in hour_columns:
            if column < len(row):
                hours = coerce_hours_cell(_clean_text(row[column]))
                if hours is not None and hours > 0:
                    row_total += hours

        if row_total > 0:
            project = normalizer.normalize(raw_name)
            totals[project] = totals.get(project, 0.0) + row_total
    return totals
