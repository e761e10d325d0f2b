"""Pytest fixtures and fakes (no browser, network or LLM access in tests)."""

import asyncio
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from src.overuse.config import OveruseSettings
from src.overuse.sessions.orchestrator import SessionOrchestrator
from src.clients.reconciliation.schemas import BillRecord, Property, ServiceType
from src.overuse.utils.date_utils import parse_date

# Project root (parent of tests/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def make_bill(service: str, start: Optional[str], end: Optional[str], total: str) -> BillRecord:
    """Bill from dashboard-style cells: make_bill("Electricity", "01/07/2024", "31/07/2024", "60,50 €")."""
    return BillRecord(
        service=ServiceType(service),
        initial_date=parse_date(start),
        final_date=parse_date(end),
        total_amount=Decimal(total.replace("€", "").replace(".", "").replace(",", ".").strip()),
        source_columns={"Service": service, "Initial date": start or "", "Final date": end or "", "Total": total},
    )


class FakeSessionFactory:
    """SessionFactory that hands out string handles and records every call."""

    def __init__(
        self,
        fail_login: bool = False,
        open_error: Optional[Exception] = None,
        fail_login_on: tuple[int, ...] = (),
    ):
        self.fail_login = fail_login
        self.fail_login_on = fail_login_on
        self.login_attempts = 0
        self.open_error = open_error
        self.opened: list[str] = []
        self.logins: list[str] = []
        self.closed: list[str] = []

    async def open(self) -> str:
        if self.open_error is not None:
            raise self.open_error
        handle = f"session-{len(self.opened) + 1}"
        self.opened.append(handle)
        return handle

    async def login(self, handle: str) -> None:
        self.login_attempts += 1
        if self.fail_login or self.login_attempts in self.fail_login_on:
            raise RuntimeError("login failed")
        self.logins.append(handle)

    async def close(self, handle: str) -> None:
        self.closed.append(handle)


class FakeExtractor:
    """BillExtractor returning scripted responses per property name.

    Each script entry is a list of BillRecords, an Exception to raise, or a
    callable taking the call number. The last entry repeats once exhausted.
    """

    def __init__(self, scripts: dict[str, list[Any]], on_fetch: Optional[Callable[[Property], None]] = None):
        self.scripts = scripts
        self.on_fetch = on_fetch
        self.calls: list[tuple[Any, str]] = []

    async def fetch_raw_bills(self, session: Any, prop: Property) -> list[BillRecord]:
        self.calls.append((session, prop.name))
        if self.on_fetch:
            self.on_fetch(prop)
        script = self.scripts.get(prop.name, [[]])
        n = sum(1 for _, name in self.calls if name == prop.name)
        entry = script[min(n, len(script)) - 1]
        if isinstance(entry, Exception):
            raise entry
        return list(entry)


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def bill() -> Callable[..., BillRecord]:
    return make_bill


@pytest.fixture
def settings() -> OveruseSettings:
    """Settings with dashboard access configured (never reads .env)."""
    return OveruseSettings(
        _env_file=None,
        DASHBOARD_EMAIL="ops@example.com",
        DASHBOARD_PASSWORD="secret",
        FORCE_LOCAL_CHROMIUM=True,
        ENABLE_LLM_FALLBACK=False,
        INTER_ITEM_DELAY_SECONDS=0,
        BATCH_COOLDOWN_SECONDS=0,
    )


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def orchestrator(session_factory: FakeSessionFactory) -> SessionOrchestrator:
    return SessionOrchestrator(session_factory, ceiling=1, wait_timeout=5.0)


@pytest.fixture
def fake_extractor_cls():
    return FakeExtractor


@pytest.fixture
def fake_factory_cls():
    return FakeSessionFactory


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def july_august_bills() -> list[BillRecord]:
    """Jul-Aug cycle: one matching water bill, two matching electricity bills, plus noise."""
    return [
        make_bill("Water", "01/04/2024", "30/06/2024", "41,00 €"),
        make_bill("Electricity", "01/08/2024", "31/08/2024", "70,25 €"),
        make_bill("Gas", "01/07/2024", "31/08/2024", "33,10 €"),
        make_bill("Electricity", "01/06/2024", "30/06/2024", "55,00 €"),
        make_bill("Electricity", "01/07/2024", "31/07/2024", "60,50 €"),
        make_bill("Water", "01/07/2024", "31/08/2024", "45,00 €"),
    ]
