from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.preprocessing import StandardScaler

from .logging import get_logger

logger = get_logger(__name__)


class ZeroVarianceScaler:
    """
    StandardScaler fitted on training rows only, after dropping columns whose
    training values are all identical. The same drop applies to query data.
    """

    def __init__(self):
        self.scaler = StandardScaler()
        self.keep: np.ndarray | None = None
        self.columns: list[str] = []
        self.dropped: list[str] = []

    def fit(self, Xtrain: np.ndarray, columns: Sequence[str]) -> "ZeroVarianceScaler":
        Xtrain = np.asarray(Xtrain, dtype=float)
        if len(Xtrain):
            lo = np.nanmin(Xtrain, axis=0)
            hi = np.nanmax(Xtrain, axis=0)
            self.keep = ~(lo == hi)
        else:
            self.keep = np.zeros(Xtrain.shape[1], dtype=bool)
        self.columns = [c for c, k in zip(columns, self.keep) if k]
        self.dropped = [c for c, k in zip(columns, self.keep) if not k]
        if self.dropped:
            logger.debug("zero_variance_columns_dropped", columns=self.dropped)
        if self.columns:
            self.scaler.fit(Xtrain[:, self.keep])
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)[:, self.keep]
        if not self.columns:
            return X
        return self.scaler.transform(X)

    def fit_transform(self, Xtrain: np.ndarray, columns: Sequence[str]) -> np.ndarray:
        return self.fit(Xtrain, columns).transform(Xtrain)
