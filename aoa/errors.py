from __future__ import annotations


class AOAError(ValueError):
    """Base class for failures of an area-of-applicability run."""


class SchemaMismatch(AOAError):
    """Query and training predictor columns disagree."""

    def __init__(self, missing: list[str], where: str = "query data"):
        self.missing = list(missing)
        super().__init__(f"Missing predictor columns in {where} (first 30): {self.missing[:30]}")


class InvalidWeight(AOAError):
    """A retained predictor has a missing, negative or non-finite weight."""


class InsufficientTrainingDiversity(AOAError):
    """No training row has an eligible neighbour after fold exclusion."""


class ConfigurationConflict(AOAError):
    """Ambiguous or missing source of training data, weights or thresholds."""
