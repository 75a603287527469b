import logging
from collections import Counter

from backend.config import settings
from backend.schemas.panel import PatientRecord, TestDefinition
from backend.services.cpf import only_digits
from backend.services.sheets import SheetClient

logger = logging.getLogger(__name__)

DEFAULT_ORDER = 9999
DEFAULT_SOURCE = "profissional"


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_order(value) -> int:
    raw = _text(value)
    if not raw:
        return DEFAULT_ORDER
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return DEFAULT_ORDER


def _log_discards(record_set: str, discarded: Counter) -> None:
    for reason, count in discarded.items():
        logger.info("Discarded %d %s row(s): %s", count, record_set, reason)


def parse_test_rows(rows, discarded: Counter | None = None) -> list[TestDefinition]:
    discarded = discarded if discarded is not None else Counter()
    tests: list[TestDefinition] = []
    for row in rows or []:
        if not isinstance(row, dict):
            discarded["not a record"] += 1
            continue
        code = _text(row.get("code"))
        if not code:
            discarded["empty code"] += 1
            continue
        tests.append(
            TestDefinition(
                code=code,
                label=_text(row.get("label")) or code,
                order=_to_order(row.get("order")),
                source=_text(row.get("source")) or DEFAULT_SOURCE,
                form_url=_text(row.get("form_url")),
            )
        )
    tests.sort(key=lambda t: (t.order, t.label))
    _log_discards("test", discarded)
    return tests


def parse_patient_rows(rows, discarded: Counter | None = None) -> list[PatientRecord]:
    discarded = discarded if discarded is not None else Counter()
    patients: list[PatientRecord] = []
    for row in rows or []:
        if not isinstance(row, dict):
            discarded["not a record"] += 1
            continue
        columns = {str(key): "" if value is None else str(value) for key, value in row.items()}
        patients.append(
            PatientRecord(
                name=_text(row.get("name")) or _text(row.get("nome")),
                cpf=only_digits(row.get("cpf")),
                columns=columns,
            )
        )
    _log_discards("patient", discarded)
    return patients


def build_token_map(rows, discarded: Counter | None = None) -> dict[str, str]:
    """Build the cpf -> token map; a later row for the same CPF replaces an earlier one."""
    discarded = discarded if discarded is not None else Counter()
    tokens: dict[str, str] = {}
    for row in rows or []:
        if not isinstance(row, dict):
            discarded["not a record"] += 1
            continue
        cpf = only_digits(row.get("cpf"))
        token = _text(row.get("token"))
        if not cpf:
            discarded["empty cpf"] += 1
            continue
        if not token:
            discarded["empty token"] += 1
            continue
        tokens[cpf] = token
    _log_discards("token", discarded)
    return tokens


def load_tests(client: SheetClient, discarded: Counter | None = None) -> list[TestDefinition]:
    rows = client.search(settings.tests_sheet, {"active": settings.affirmative_token})
    return parse_test_rows(rows, discarded)


def load_patients(client: SheetClient, discarded: Counter | None = None) -> list[PatientRecord]:
    rows = client.fetch_all(settings.patients_sheet)
    return parse_patient_rows(rows, discarded)


def load_tokens(client: SheetClient, discarded: Counter | None = None) -> dict[str, str]:
    rows = client.fetch_all(settings.tokens_sheet)
    return build_token_map(rows, discarded)
