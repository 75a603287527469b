from backend.config import settings
from backend.schemas.panel import TestDefinition


def released_column(test: TestDefinition) -> str:
    prefix = settings.test_column_prefix
    return f"{prefix}{test.code}" if prefix else test.code


def completed_column(test: TestDefinition) -> str:
    return released_column(test) + settings.completed_column_suffix
