from fastapi import APIRouter, Depends, HTTPException

from backend.schemas.panel import (
    CatalogItem,
    ConfigurationGap,
    FormLink,
    PendingPatientItem,
    PendingTestItem,
    ReloadSummary,
    TestDefinition,
)
from backend.services.cpf import mask_cpf
from backend.services.form_links import missing_token, resolve_form_link, token_for
from backend.services.panel_session import PanelSession, PanelSnapshot, get_panel_session
from backend.services.source_classifier import classify

router = APIRouter(prefix="/api/panel", tags=["panel"])


class FormLinkUnavailable(Exception):
    """A form link was requested but the sheets lack a token or form URL for it."""

    def __init__(self, gap: ConfigurationGap):
        self.gap = gap
        super().__init__(gap.message)


def _pending_item(test: TestDefinition) -> PendingTestItem:
    return PendingTestItem(code=test.code, label=test.label, order=test.order, has_form_url=bool(test.form_url))


def _summary(snapshot: PanelSnapshot) -> ReloadSummary:
    return ReloadSummary(
        loaded_at=snapshot.loaded_at.isoformat() if snapshot.loaded_at else None,
        tests=len(snapshot.tests),
        patients=len(snapshot.patients),
        tokens=len(snapshot.tokens),
        discarded=dict(snapshot.discarded),
    )


@router.get("/pending", response_model=list[PendingPatientItem])
def pending(session: PanelSession = Depends(get_panel_session)):
    snapshot = session.snapshot
    return [
        PendingPatientItem(
            name=patient.name,
            cpf=patient.cpf,
            masked_cpf=mask_cpf(patient.cpf),
            pending_count=len(tests),
            pending_tests=[_pending_item(t) for t in tests],
            link_gap=None if token_for(snapshot.tokens, patient.cpf) else missing_token(),
        )
        for patient, tests in snapshot.pending_for_panel()
    ]


@router.get("/patients/{cpf}/pending", response_model=list[PendingTestItem])
def patient_pending(cpf: str, session: PanelSession = Depends(get_panel_session)):
    snapshot = session.snapshot
    rows = snapshot.find_patients(cpf)
    if not rows:
        raise HTTPException(status_code=404, detail="Patient not found")
    return [_pending_item(t) for t in snapshot.pending_for(rows)]


@router.get("/patients/{cpf}/tests/{code}/form-link", response_model=FormLink)
def form_link(cpf: str, code: str, session: PanelSession = Depends(get_panel_session)):
    snapshot = session.snapshot
    rows = snapshot.find_patients(cpf)
    if not rows:
        raise HTTPException(status_code=404, detail="Patient not found")
    test = next((t for t in snapshot.pending_for(rows) if t.code == code), None)
    if not test:
        raise HTTPException(status_code=404, detail=f"Test {code} is not pending for this patient")

    result = resolve_form_link(snapshot.tokens, rows[0].cpf, test)
    if isinstance(result, ConfigurationGap):
        raise FormLinkUnavailable(result)
    return result


@router.get("/catalog", response_model=list[CatalogItem])
def catalog(session: PanelSession = Depends(get_panel_session)):
    output = []
    for test in session.snapshot.tests:
        owner = classify(test.source)
        output.append(
            CatalogItem(
                code=test.code,
                label=test.label,
                order=test.order,
                source=test.source,
                category=owner.category,
                owner_label=owner.display_label,
                form_url=test.form_url,
            )
        )
    return output


@router.post("/reload", response_model=ReloadSummary)
async def reload(session: PanelSession = Depends(get_panel_session)):
    return _summary(await session.reload())


@router.get("/status", response_model=ReloadSummary)
def status(session: PanelSession = Depends(get_panel_session)):
    return _summary(session.snapshot)
