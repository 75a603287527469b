import re

from backend.schemas.panel import SourceClassification
from backend.services.text import fold

PROFESSIONAL = "professional"
OTHER = "other"

_PROFESSIONAL_PATTERN = re.compile(
    r"\b(profiss(ional)?|avaliador(a)?|psico(logo|loga)?|neuropsico(logo|loga)?|terapeuta)\b"
)


def classify(raw_label) -> SourceClassification:
    """Map a free-text owner label onto the professional/other categories.

    Matching ignores case and diacritics, so "PSICÓLOGA" and "psicologa" are
    the same label. Anything unrecognized lands in "other" and keeps its raw
    text as the display label.
    """
    raw = "" if raw_label is None else str(raw_label)
    if _PROFESSIONAL_PATTERN.search(fold(raw)):
        return SourceClassification(category=PROFESSIONAL, display_label="Professional")
    return SourceClassification(category=OTHER, display_label=raw or "Other")


def is_professional(raw_label) -> bool:
    return classify(raw_label).category == PROFESSIONAL
