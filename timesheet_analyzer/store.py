"""
Settings store for planned allocations and the latest actuals.

Persists a single JSON document. Older document shapes are migrated
explicitly on load so the rest of the package only ever sees the current
models. Without a configured path the store keeps everything in memory.
"""

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import InvalidAllocationError
from .models import (
    META_KEY,
    ActualRecord,
    ActualsSnapshot,
    PlanMode,
    PlannedAllocation,
    ReportDateRange,
    WeekAllocation,
    coerce_hours,
)


logger = logging.getLogger(__name__)

# 0: browser storage layout {"plannedHours": {...}, "actualHours": {...}}
# 1: {"schema_version": 1, "planned": {...}, "actuals": {...}}
CURRENT_SCHEMA_VERSION = 1


def _parse_iso(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _migrate_week(raw: Any) -> Optional[WeekAllocation]:
    if not isinstance(raw, dict):
        return None
    start = _parse_iso(raw.get('start'))
    end = _parse_iso(raw.get('end'))
    if start is None or end is None or end < start:
        return None
    return WeekAllocation(start=start, end=end, hours=coerce_hours(raw.get('hours')))


def migrate_planned_entry(raw: Any) -> PlannedAllocation:
    """Bare numbers are monthly totals; dicts carry mode/total/weeks"""
    if not isinstance(raw, dict):
        return PlannedAllocation.monthly(raw)

    try:
        mode = PlanMode(raw.get('mode', PlanMode.MONTHLY.value))
    except ValueError:
        mode = PlanMode.MONTHLY

    weeks = [week for week in map(_migrate_week, raw.get('weeks') or []) if week]
    if mode is PlanMode.WEEKLY:
        return PlannedAllocation.weekly(weeks)
    return PlannedAllocation(mode=PlanMode.MONTHLY, total=raw.get('total'), weeks=weeks)


def migrate_planned(raw: Any) -> Dict[str, PlannedAllocation]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(name).strip(): migrate_planned_entry(entry)
        for name, entry in raw.items()
        if str(name).strip()
    }


def migrate_actual_entry(raw: Any) -> Optional[ActualRecord]:
    """
    Migrate one stored actual record

    Oldest shape first: a bare number (scraped total), then ``{"total"}``,
    then ``{"totalHours", "dailyHours"}``. A daily breakdown always wins
    and the total is recomputed from it.
    """
    if not isinstance(raw, dict):
        return ActualRecord(total_hours=coerce_hours(raw))

    daily_raw = raw.get('dailyHours')
    if isinstance(daily_raw, dict):
        daily = {}
        for key, hours in daily_raw.items():
            day = _parse_iso(key)
            value = coerce_hours(hours)
            if day is not None and value > 0:
                daily[day] = daily.get(day, 0.0) + value
        return ActualRecord.from_daily(daily)

    if 'total' in raw:
        return ActualRecord(total_hours=coerce_hours(raw.get('total')))
    if 'totalHours' in raw:
        return ActualRecord(total_hours=coerce_hours(raw.get('totalHours')))
    return None


def migrate_actuals(raw: Any) -> ActualsSnapshot:
    if not isinstance(raw, dict):
        return ActualsSnapshot()

    date_range = None
    meta = raw.get(META_KEY)
    if isinstance(meta, dict):
        start = _parse_iso(meta.get('startDate'))
        end = _parse_iso(meta.get('endDate'))
        if start and end and start <= end:
            date_range = ReportDateRange(start=start, end=end)

    records = {}
    for name, entry in raw.items():
        if name == META_KEY or not str(name).strip():
            continue
        record = migrate_actual_entry(entry)
        if record is not None:
            records[str(name).strip()] = record
    return ActualsSnapshot(records=records, date_range=date_range)


def migrate_document(raw: Any) -> Dict[str, Any]:
    """Bring a stored document of any known version to the current layout"""
    if not isinstance(raw, dict):
        return {'schema_version': CURRENT_SCHEMA_VERSION, 'planned': {}, 'actuals': {}}

    version = raw.get('schema_version', 0)
    if version == 0:
        logger.info("Migrating settings document from schema version 0")
        raw = {
            'schema_version': 1,
            'planned': raw.get('plannedHours') or {},
            'actuals': raw.get('actualHours') or {},
        }
        version = 1
    if version != CURRENT_SCHEMA_VERSION:
        logger.warning("Unknown settings schema version %r, loading best effort", version)

    return {
        'schema_version': CURRENT_SCHEMA_VERSION,
        'planned': raw.get('planned') or {},
        'actuals': raw.get('actuals') or {},
    }


class SettingsStore:
    """JSON-file persistence for planned allocations and actuals"""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._planned: Dict[str, PlannedAllocation] = {}
        self._actuals = ActualsSnapshot()
        self._load()

    @classmethod
    def from_environment(cls) -> 'SettingsStore':
        return cls(os.getenv('TIMESHEET_STORE_PATH') or None)

    def _load(self):
        if self.path is None:
            logger.warning("TIMESHEET_STORE_PATH not set, keeping settings in memory")
            return
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r') as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read settings from {self.path}: {e}")
            return

        document = migrate_document(raw)
        self._planned = migrate_planned(document['planned'])
        self._actuals = migrate_actuals(document['actuals'])
        logger.info("Loaded %d planned projects and %d actual records from %s",
                    len(self._planned), len(self._actuals.records), self.path)

    def _save(self):
        if self.path is None:
            return
        document = {
            'schema_version': CURRENT_SCHEMA_VERSION,
            'planned': {name: plan.to_dict() for name, plan in self._planned.items()},
            'actuals': self._actuals.to_dict(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # Planned allocations

    def load_planned(self) -> Dict[str, PlannedAllocation]:
        return {name: migrate_planned_entry(plan.to_dict()) for name, plan in self._planned.items()}

    def save_planned(self, planned: Dict[str, PlannedAllocation]):
        self._planned = {name: migrate_planned_entry(plan.to_dict()) for name, plan in planned.items()}
        self._save()

    def upsert_project(self, name: str, mode: PlanMode = PlanMode.MONTHLY, hours: Any = 0) -> PlannedAllocation:
        """Create a project or update its monthly hours / planning mode"""
        name = (name or '').strip()
        if not name:
            raise InvalidAllocationError("Project name is required")

        plan = self._planned.get(name)
        if plan is None:
            plan = PlannedAllocation(mode=mode)
            self._planned[name] = plan
        elif plan.mode is not PlanMode(mode):
            plan.switch_mode(mode)

        if plan.mode is PlanMode.MONTHLY:
            plan.set_monthly_total(hours)
        self._save()
        return plan

    def remove_project(self, name: str) -> bool:
        removed = self._planned.pop(name, None) is not None
        if removed:
            self._save()
        return removed

    def add_week(self, name: str, start: date, end: date, hours: Any) -> PlannedAllocation:
        plan = self._planned.get(name)
        if plan is None:
            raise InvalidAllocationError(f"Unknown project: {name}")
        plan.add_week(start, end, hours)
        self._save()
        return plan

    def remove_week(self, name: str, start: date) -> bool:
        plan = self._planned.get(name)
        if plan is None or not plan.remove_week(start):
            return False
        self._save()
        return True

    # Actuals

    def load_actuals(self) -> ActualsSnapshot:
        return migrate_actuals(self._actuals.to_dict())

    def replace_actuals(self, snapshot: ActualsSnapshot):
        self._actuals = migrate_actuals(snapshot.to_dict())
        self._save()

    def clear_actuals(self):
        self._actuals = ActualsSnapshot()
        self._save()
