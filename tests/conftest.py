import asyncio
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from backend.main import app
from backend.services.panel_session import PanelSession, get_panel_session
from backend.services.sheets import LoadError


class FakeSheetClient:
    """In-memory stand-in for the remote record store."""

    def __init__(self, sheets: dict[str, list], failing: set[str] | None = None):
        self.sheets = sheets
        self.failing = failing or set()
        self.calls: list[tuple[str, dict | None]] = []

    def fetch_all(self, sheet: str) -> list[dict]:
        self.calls.append((sheet, None))
        if sheet in self.failing:
            raise LoadError(sheet)
        return list(self.sheets.get(sheet, []))

    def search(self, sheet: str, filters: dict[str, str]) -> list[dict]:
        self.calls.append((sheet, filters))
        if sheet in self.failing:
            raise LoadError(sheet)
        return list(self.sheets.get(sheet, []))


@pytest.fixture()
def sheet_rows() -> dict[str, list]:
    return {
        "Tests": [
            {"code": "BAI", "label": "Beck Anxiety", "order": "2", "source": "Psicóloga", "form_url": "https://forms.example.com/bai"},
            {"code": "SRS", "label": "Social Responsiveness", "order": "1", "source": "Profissional", "form_url": ""},
            {"code": "CBCL", "label": "Child Behavior", "order": "3", "source": "Responsável", "form_url": "https://forms.example.com/cbcl"},
            {"code": "", "label": "Blank row"},
        ],
        "Patients": [
            {"nome": "Maria Souza", "cpf": "123.456.789-01", "BAI": "SIM", "SRS": "sim", "CBCL": "sim"},
            {"nome": "ana Lima", "cpf": "987.654.321-00", "BAI": "sim", "BAI_FEITO": "Sim"},
            {"nome": "Carlos Dias", "cpf": "111.222.333-44", "SRS": "Sim"},
        ],
        "LinkTokens": [
            {"cpf": "123.456.789-01", "token": "old-token"},
            {"cpf": "12345678901", "token": "tok en/1"},
            {"cpf": "", "token": "orphan"},
        ],
    }


@pytest.fixture()
def fake_client_cls() -> type[FakeSheetClient]:
    return FakeSheetClient


@pytest.fixture()
def fake_client(sheet_rows) -> FakeSheetClient:
    return FakeSheetClient(sheet_rows)


@pytest.fixture()
def panel_session(fake_client) -> PanelSession:
    session = PanelSession(client=fake_client, timeout=5)
    asyncio.run(session.reload())
    return session


@pytest.fixture()
def client(panel_session) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_panel_session] = lambda: panel_session

    # Tests use an in-memory session via dependency override; skip the startup load.
    original_startup = list(app.router.on_startup)
    app.router.on_startup.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.router.on_startup[:] = original_startup
    app.dependency_overrides.clear()
