from collections.abc import Iterable, Sequence

from backend.config import settings
from backend.schemas.panel import PatientRecord, TestDefinition
from backend.services.columns import completed_column, released_column
from backend.services.source_classifier import is_professional
from backend.services.text import fold


def get_flag(record: PatientRecord, column: str) -> bool:
    value = record.columns.get(column)
    if value is None:
        return False
    return value.lower() == settings.affirmative_token.lower()


def pending_tests_for(patient: PatientRecord, catalog: Iterable[TestDefinition]) -> list[TestDefinition]:
    """Released, not completed, professional-owned tests for one patient, in catalog order."""
    pending = []
    for test in catalog:
        if not is_professional(test.source):
            continue
        released = get_flag(patient, released_column(test))
        completed = get_flag(patient, completed_column(test))
        if released and not completed:
            pending.append(test)
    return pending


def patients_with_pending(
    patients: Iterable[PatientRecord], catalog: Sequence[TestDefinition]
) -> list[tuple[PatientRecord, list[TestDefinition]]]:
    ordered = sorted(patients, key=lambda p: (not p.name, fold(p.name), p.name))
    output = []
    for patient in ordered:
        pending = pending_tests_for(patient, catalog)
        if pending:
            output.append((patient, pending))
    return output


def pending_tests_for_rows(
    rows: Sequence[PatientRecord], catalog: Iterable[TestDefinition]
) -> list[TestDefinition]:
    """Pending tests across every roster row of one patient, in catalog order, without repeats."""
    pending = []
    for test in catalog:
        if any(pending_tests_for(row, [test]) for row in rows):
            pending.append(test)
    return pending
