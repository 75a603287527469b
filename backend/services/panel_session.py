import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from backend.config import settings
from backend.schemas.panel import PatientRecord, TestDefinition
from backend.services.cpf import only_digits
from backend.services.loaders import load_patients, load_tests, load_tokens
from backend.services.pending import patients_with_pending, pending_tests_for_rows
from backend.services.sheets import LoadError, SheetClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PanelSnapshot:
    """Catalog, roster and token map from a single successful load pass."""

    tests: tuple[TestDefinition, ...] = ()
    patients: tuple[PatientRecord, ...] = ()
    tokens: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    discarded: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    loaded_at: datetime | None = None

    @classmethod
    def empty(cls) -> "PanelSnapshot":
        return cls()

    def find_patients(self, cpf) -> list[PatientRecord]:
        """Every roster row for a CPF; the roster may repeat a patient."""
        key = only_digits(cpf)
        if not key:
            return []
        return [p for p in self.patients if p.cpf == key]

    def pending_for(self, rows: list[PatientRecord]) -> list[TestDefinition]:
        return pending_tests_for_rows(rows, self.tests)

    def pending_for_panel(self) -> list[tuple[PatientRecord, list[TestDefinition]]]:
        return patients_with_pending(self.patients, self.tests)


class PanelSession:
    """Holds the current snapshot and serializes reload passes.

    A reload requested while another one is running joins the running pass
    instead of starting a second one.
    """

    def __init__(self, client: SheetClient | None = None, timeout: float | None = None):
        self.client = client or SheetClient()
        self.timeout = timeout if timeout is not None else settings.sheet_request_timeout_seconds
        self._snapshot = PanelSnapshot.empty()
        self._inflight: asyncio.Future | None = None

    @property
    def snapshot(self) -> PanelSnapshot:
        return self._snapshot

    async def reload(self) -> PanelSnapshot:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._reload())
        return await asyncio.shield(self._inflight)

    async def _load(self, record_set: str, loader, discarded: Counter):
        try:
            return await asyncio.wait_for(asyncio.to_thread(loader, self.client, discarded), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise LoadError(record_set, f"Timed out loading record set '{record_set}'") from exc

    async def _reload(self) -> PanelSnapshot:
        logger.info("Reloading panel data")
        test_discards, patient_discards, token_discards = Counter(), Counter(), Counter()
        try:
            tests, patients, tokens = await asyncio.gather(
                self._load(settings.tests_sheet, load_tests, test_discards),
                self._load(settings.patients_sheet, load_patients, patient_discards),
                self._load(settings.tokens_sheet, load_tokens, token_discards),
            )
        except LoadError as exc:
            logger.error("Reload failed on record set %s: %s", exc.record_set, exc)
            raise

        snapshot = PanelSnapshot(
            tests=tuple(tests),
            patients=tuple(patients),
            tokens=MappingProxyType(dict(tokens)),
            discarded=MappingProxyType(
                {
                    settings.tests_sheet: sum(test_discards.values()),
                    settings.patients_sheet: sum(patient_discards.values()),
                    settings.tokens_sheet: sum(token_discards.values()),
                }
            ),
            loaded_at=datetime.now(timezone.utc),
        )
        self._snapshot = snapshot
        logger.info(
            "Reload complete: %d tests, %d patients, %d tokens",
            len(snapshot.tests),
            len(snapshot.patients),
            len(snapshot.tokens),
        )
        return snapshot


panel_session = PanelSession()


def get_panel_session() -> PanelSession:
    return panel_session
