from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .errors import SchemaMismatch
from .logging import get_logger
from .schema import PredictorSchema

logger = get_logger(__name__)


def dummy_name(column: str, level) -> str:
    return f"{column}={level}"


class PredictorEncoder:
    """
    One-hot encoder with a level vocabulary fixed on the training table.

    Numeric columns pass through unchanged. A categorical column expands to one
    indicator per training level, in order of first appearance; levels seen
    only in query data encode as all-zero indicators.
    """

    def __init__(self, schema: PredictorSchema, response: str | None = None):
        self.variables = [v for v in schema.variables if v != response]
        self.categorical = set(schema.categorical)
        self.vocabulary: dict[str, list] = {}
        self.columns: list[str] = []
        # encoded column -> source predictor
        self.source: dict[str, str] = {}

    def fit(self, train: pd.DataFrame) -> "PredictorEncoder":
        _check_columns(train, self.variables, "training data")
        self.vocabulary = {}
        self.columns = []
        self.source = {}
        for var in self.variables:
            if var in self.categorical:
                levels = list(pd.unique(train[var].dropna()))
                self.vocabulary[var] = levels
                for lev in levels:
                    name = dummy_name(var, lev)
                    self.columns.append(name)
                    self.source[name] = var
            else:
                self.columns.append(var)
                self.source[var] = var
        logger.debug(
            "encoder_fitted",
            n_predictors=len(self.variables),
            n_columns=len(self.columns),
            categorical=sorted(self.vocabulary),
        )
        return self

    def transform(self, df: pd.DataFrame) -> np.ndarray:
        _check_columns(df, self.variables, "query data")
        blocks = []
        for var in self.variables:
            col = df[var]
            if var in self.vocabulary:
                missing = col.isna().to_numpy()
                present = col.to_numpy(dtype=object)[~missing]
                for lev in self.vocabulary[var]:
                    ind = np.full(len(col), np.nan)
                    ind[~missing] = present == lev
                    blocks.append(ind)
            else:
                numeric = pd.to_numeric(col, errors="coerce")
                blocks.append(numeric.to_numpy(dtype=float, na_value=np.nan))
        if not blocks:
            return np.empty((len(df), 0), dtype=float)
        return np.column_stack(blocks)

    def fit_transform(self, train: pd.DataFrame) -> np.ndarray:
        return self.fit(train).transform(train)

    def expand(self, per_variable: dict[str, float]) -> dict[str, float]:
        """Repeat a per-predictor value across that predictor's encoded columns."""
        return {c: per_variable[self.source[c]] for c in self.columns if self.source[c] in per_variable}


def _check_columns(df: pd.DataFrame, variables: Sequence[str], where: str) -> None:
    missing = [c for c in variables if c not in df.columns]
    if missing:
        raise SchemaMismatch(missing, where)
