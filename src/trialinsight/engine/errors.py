# src/trialinsight/engine/errors.py
from __future__ import annotations


class TrialInsightError(Exception):
    code = "TRIALINSIGHT_ERROR"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message or code or self.code)
        if code:
            self.code = code


class DatasetError(TrialInsightError):
    """Reference dataset or scoring table failed validation at load time."""

    code = "DATASET_INVALID"


class InvariantViolation(TrialInsightError, AssertionError):
    """A caller broke the store's contract (duplicated item, unknown bucket)."""

    code = "INVARIANT_VIOLATION"


class DemographicError(TrialInsightError):
    """A demographic update carried a value the record cannot hold."""

    code = "DEMOGRAPHIC_INVALID"
