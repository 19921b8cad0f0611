"""Dashboard HTTP service.

Serves the reconciled planned-vs-actual view and accepts new actuals, either
as an uploaded timesheet export or as the reply of the page scraper. Planned
allocations are edited through the ``/api/planned`` routes. All state lives
in the :class:`SettingsStore`; the handlers only translate between HTTP and
the core modules.

Endpoints:

* ``GET /health``
* ``GET /api/dashboard?view=monthly|weekly&today=YYYY-MM-DD``
* ``POST /api/actuals/upload`` with the raw workbook as body
* ``POST /api/actuals/scrape`` with the scraper's JSON reply, either project
  totals or a ``table`` of cell texts
* ``DELETE /api/actuals``
* ``GET /api/planned``
* ``PUT|DELETE /api/planned/{project}``
* ``POST /api/planned/{project}/weeks``
* ``DELETE /api/planned/{project}/weeks/{start}``
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date
from typing import Any, Dict, Optional

from aiohttp import web

from .exceptions import InvalidAllocationError, WorkbookReadError
from .formatting import reconciliation_to_dict
from .models import ParsedReport, PlanMode, ViewMode
from .normalizer import ProjectNameNormalizer
from .reconciler import Reconciler
from .report_parser import TimesheetReportParser
from .scrape import WRONG_PAGE_DASHBOARD, interpret_scrape_response, totals_from_table
from .store import SettingsStore
from .workbook import read_first_sheet

LOGGER = logging.getLogger("timesheet_analyzer.api")

MAX_UPLOAD_BYTES = 20 * 1024 * 1024


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


def _parse_date(value: Optional[str], field_name: str) -> date:
    if not value:
        raise ValueError(f"Missing {field_name}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {field_name}: {value!r}") from exc


class DashboardApplication:
    """Encapsulates the aiohttp application and dashboard handlers."""

    def __init__(
        self,
        *,
        store: Optional[SettingsStore] = None,
        normalizer: Optional[ProjectNameNormalizer] = None,
        reconciler: Optional[Reconciler] = None,
    ) -> None:
        self.store = store or SettingsStore.from_environment()
        self.normalizer = normalizer or ProjectNameNormalizer.from_environment()
        self.parser = TimesheetReportParser(self.normalizer)
        self.reconciler = reconciler or Reconciler()

        self.app = web.Application(client_max_size=MAX_UPLOAD_BYTES)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/api/dashboard", self.handle_dashboard)
        self.app.router.add_post("/api/actuals/upload", self.handle_upload)
        self.app.router.add_post("/api/actuals/scrape", self.handle_scrape)
        self.app.router.add_delete("/api/actuals", self.handle_clear_actuals)
        self.app.router.add_get("/api/planned", self.handle_list_planned)
        self.app.router.add_put("/api/planned/{project}", self.handle_upsert_project)
        self.app.router.add_delete("/api/planned/{project}", self.handle_remove_project)
        self.app.router.add_post("/api/planned/{project}/weeks", self.handle_add_week)
        self.app.router.add_delete("/api/planned/{project}/weeks/{start}", self.handle_remove_week)

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def handle_dashboard(self, request: web.Request) -> web.Response:
        try:
            view = ViewMode(request.query.get("view", ViewMode.MONTHLY.value))
        except ValueError:
            return _bad_request("view must be 'monthly' or 'weekly'")
        try:
            today = _parse_date(request.query.get("today"), "today") if "today" in request.query else date.today()
        except ValueError as exc:
            return _bad_request(str(exc))

        actuals = self.store.load_actuals()
        reconciliation = self.reconciler.reconcile(view, self.store.load_planned(), actuals, today)
        payload = reconciliation_to_dict(reconciliation)
        payload["report_range"] = actuals.date_range.to_dict() if actuals.date_range else None
        return web.json_response(payload)

    def parse_upload(self, data: bytes) -> ParsedReport:
        """Read and parse an uploaded workbook; blocking, so handlers run it in an executor"""
        return self.parser.parse(read_first_sheet(data))

    async def handle_upload(self, request: web.Request) -> web.Response:
        data = await request.read()
        loop = asyncio.get_running_loop()
        try:
            report = await loop.run_in_executor(None, self.parse_upload, data)
        except WorkbookReadError as exc:
            LOGGER.warning("Rejected upload: %s", exc)
            return web.json_response({"error": "could not parse file"}, status=422)

        if report.date_range is None:
            return web.json_response({"error": "could not parse file"}, status=422)

        self.store.replace_actuals(report)
        LOGGER.info("Stored %d projects from uploaded export", len(report.records))
        return web.json_response({
            "projects": len(report.records),
            "report_range": report.date_range.to_dict(),
        })

    async def handle_scrape(self, request: web.Request) -> web.Response:
        try:
            payload: Any = await request.json()
        except ValueError:
            return _bad_request("Body must be JSON")

        outcome = interpret_scrape_response(payload)
        if outcome.wrong_page:
            return web.json_response({"error": WRONG_PAGE_DASHBOARD}, status=409)

        table = payload.get("table") if isinstance(payload, dict) and payload.get("success", True) else None
        if isinstance(table, list):
            rows = [row for row in table if isinstance(row, list)]
            totals = totals_from_table(rows, self.normalizer)
        else:
            totals = {}
            for name, hours in outcome.totals.items():
                project = self.normalizer.normalize(name)
                totals[project] = totals.get(project, 0.0) + hours
        outcome.totals = totals

        self.store.replace_actuals(outcome.to_snapshot())
        return web.json_response({"projects": len(totals)})

    async def handle_clear_actuals(self, request: web.Request) -> web.Response:
        self.store.clear_actuals()
        return web.json_response({"status": "cleared"})

    async def handle_list_planned(self, request: web.Request) -> web.Response:
        planned = self.store.load_planned()
        return web.json_response({name: plan.to_dict() for name, plan in sorted(planned.items())})

    async def handle_upsert_project(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        if body is None:
            return _bad_request("Body must be a JSON object")
        try:
            mode = PlanMode(body.get("mode", PlanMode.MONTHLY.value))
            plan = self.store.upsert_project(request.match_info["project"], mode, body.get("hours", 0))
        except (ValueError, InvalidAllocationError) as exc:
            return _bad_request(str(exc))
        return web.json_response(plan.to_dict())

    async def handle_remove_project(self, request: web.Request) -> web.Response:
        if not self.store.remove_project(request.match_info["project"]):
            return web.json_response({"error": "Unknown project"}, status=404)
        return web.json_response({"status": "removed"})

    async def handle_add_week(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        if body is None:
            return _bad_request("Body must be a JSON object")
        try:
            start = _parse_date(body.get("start"), "start")
            end = _parse_date(body.get("end"), "end")
            plan = self.store.add_week(request.match_info["project"], start, end, body.get("hours", 0))
        except (ValueError, InvalidAllocationError) as exc:
            return _bad_request(str(exc))
        return web.json_response(plan.to_dict(), status=201)

    async def handle_remove_week(self, request: web.Request) -> web.Response:
        try:
            start = _parse_date(request.match_info["start"], "start")
        except ValueError as exc:
            return _bad_request(str(exc))
        if not self.store.remove_week(request.match_info["project"], start):
            return web.json_response({"error": "Unknown week"}, status=404)
        return web.json_response({"status": "removed"})

    @staticmethod
    async def _json_body(request: web.Request) -> Optional[Dict[str, Any]]:
        try:
            body = await request.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None


def configure_logging() -> None:
    """Console logging plus a file handler in LOG_DIR when it is writable."""
    handlers = [logging.StreamHandler()]
    log_dir = os.getenv("LOG_DIR")
    file_logging_status = "console only"
    if log_dir:
        log_file = os.path.join(log_dir, "timesheet-dashboard.log")
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode="a"))
            file_logging_status = f"logging to {log_file}"
        except OSError as e:
            file_logging_status = f"file logging disabled for {log_dir}: {e}"

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    LOGGER.info("Logging configured: %s", file_logging_status)


def create_app(store: Optional[SettingsStore] = None) -> web.Application:
    configure_logging()
    server = DashboardApplication(store=store)
    return server.app


def main() -> None:
    app = create_app()
    host = os.getenv("DASHBOARD_HOST", "127.0.0.1")
    port = int(os.getenv("DASHBOARD_PORT", "8085"))
    web.run_app(app, host=host, port=port)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
