"""Shared pytest configuration for the project test suite."""
from __future__ import annotations

import asyncio
import sys
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Generator, List

import pytest
from aiohttp import web


# Ensure the repository root (which contains the ``timesheet_analyzer`` package) is importable.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timesheet_analyzer.normalizer import ProjectNameNormalizer  # noqa: E402


def serial(day: date) -> int:
    """Spreadsheet serial number for a date."""
    return (day - date(1899, 12, 30)).days


@pytest.fixture
def normalizer() -> ProjectNameNormalizer:
    """Normalizer loaded with the bundled rule file."""
    return ProjectNameNormalizer.from_file(ROOT / "timesheet_analyzer" / "data" / "name_rules.yaml")


@pytest.fixture
def export_rows() -> List[List[Any]]:
    """Two weekly blocks of a September 2025 timesheet export.

    Expected result:
      Acme Platform               01/09: 10, 02/09: 6, 03/09: 7.5, 08/09: 4, 10/09: 2  (29.5)
      Mobile Warehouse Operations 08/09: 3, 09/09: 3, 10/09: 3                         (9)
    """
    return [
        ["Staff Name: Jane Doe"],
        ["Employee Number: 000451"],
        ["Report Date From: 01/09/2025 to 30/09/2025"],
        ["Date & Time Exported: 30/09/2025 17:02"],
        [],
        [
            "Project Name", "Work Code",
            datetime(2025, 8, 29),          # before the report range
            datetime(2025, 9, 1),
            serial(date(2025, 9, 2)),
            "03/09/2025",
            "04/09/2025 00:00:00",
            "garbage",
            "Total",
        ],
        ["000123-Acme Platform", "DEV", 9, 8, 6, "7.5", None, 5, 21.5],
        ["Acme Platform", "QA", 0, 2, -1, "", "n/a"],
        ["Glencore Mobile Tracking Phase 2", "OPS", 0, 0, 0, 0, 0],
        ["Total Hours", "", 9, 10, 5, 7.5, 0, 0, 31.5],
        [None, None],
        [
            "Project Name", "Work Code",
            datetime(2025, 9, 8),
            date(2025, 9, 9),
            "10/09/2025",
            datetime(2025, 10, 1),          # after the report range
        ],
        ["999999-Glencore mobile tracking", "OPS", 3, 3, 3, 3],
        ["000123-Acme Platform", "DEV", 4, None, 2],
        ["Total Hours", "", 7, 3, 5, 3],
        ["Signature: ____________"],
        ["signature of line manager"],
    ]


@pytest.fixture
def dashboard_url(tmp_path: Path, monkeypatch) -> Generator[str, None, None]:
    """Spin up the dashboard service on an ephemeral port with a scratch store.

    The service runs on its own event loop in a background thread so tests
    can talk to it over real HTTP.
    """
    monkeypatch.delenv("NAME_RULES_PATH", raising=False)
    monkeypatch.delenv("LOG_DIR", raising=False)

    from timesheet_analyzer.api_server import create_app
    from timesheet_analyzer.store import SettingsStore

    store = SettingsStore(str(tmp_path / "settings.json"))
    loop = asyncio.new_event_loop()
    ready = threading.Event()
    state = {}

    def _run() -> None:
        asyncio.set_event_loop(loop)
        app = create_app(store=store)
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, host="127.0.0.1", port=0)
        loop.run_until_complete(site.start())
        sockets = site._server.sockets  # type: ignore[attr-defined]
        assert sockets, "aiohttp site did not expose any sockets"
        state["base_url"] = f"http://127.0.0.1:{sockets[0].getsockname()[1]}"
        ready.set()
        try:
            loop.run_forever()
        finally:
            loop.run_until_complete(runner.cleanup())
            loop.close()

    thread = threading.Thread(target=_run, name="dashboard-test-server", daemon=True)
    thread.start()
    if not ready.wait(timeout=10):
        raise RuntimeError("Timed out starting dashboard test server")

    try:
        yield state["base_url"]
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=5)
