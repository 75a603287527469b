from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TestDefinition(BaseModel):
    """One active assessment instrument from the tests catalog."""
    __test__ = False
    model_config = ConfigDict(frozen=True)

    code: str = Field(description="Unique test code, also the released column name")
    label: str = Field(description="Display name, defaults to the code")
    order: int = Field(default=9999, description="Sort priority")
    source: str = Field(default="profissional", description="Raw owner label")
    form_url: str = Field(default="", description="External form base URL")


class PatientRecord(BaseModel):
    """Read-only snapshot of a roster row with its dynamic flag columns."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    cpf: str = Field(default="", description="Digits-only CPF")
    columns: dict[str, str] = Field(default_factory=dict)


class SourceClassification(BaseModel):
    category: Literal["professional", "other"]
    display_label: str


class ConfigurationGap(BaseModel):
    kind: Literal["missing_token", "missing_form_url"]
    message: str
    test_code: str | None = None


class FormLink(BaseModel):
    url: str


class CatalogItem(BaseModel):
    code: str
    label: str
    order: int
    source: str
    category: str
    owner_label: str
    form_url: str


class PendingTestItem(BaseModel):
    code: str
    label: str
    order: int
    has_form_url: bool


class PendingPatientItem(BaseModel):
    name: str
    cpf: str
    masked_cpf: str
    pending_count: int
    pending_tests: list[PendingTestItem]
    link_gap: ConfigurationGap | None = None


class ReloadSummary(BaseModel):
    loaded_at: str | None
    tests: int
    patients: int
    tokens: int
    discarded: dict[str, int]
