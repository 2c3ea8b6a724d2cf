from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .distance import DistanceEngine
from .logging import get_logger
from .threshold import TrainDI

logger = get_logger(__name__)


@dataclass(frozen=True)
class AOAResult:
    """
    DI and AOA flags aligned with the query rows.

    ``aoa`` has one column per threshold (1 = inside). Rows with a missing
    predictor value get DI = NaN and AOA = 0.
    """

    di: np.ndarray
    aoa: np.ndarray
    train_di: TrainDI
    lpd: Optional[np.ndarray] = None
    index: Optional[pd.Index] = None

    @property
    def thresholds(self) -> np.ndarray:
        return self.train_di.thresholds

    @property
    def inside(self) -> np.ndarray:
        """AOA flags for the first threshold."""
        return self.aoa[:, 0]

    def to_frame(self) -> pd.DataFrame:
        out = pd.DataFrame({"DI": self.di}, index=self.index)
        labels = self.train_di.labels
        for k, label in enumerate(labels):
            name = "AOA" if len(labels) == 1 else f"AOA_{label}"
            out[name] = self.aoa[:, k]
        if self.lpd is not None:
            out["LPD"] = self.lpd
        return out


def score_query(
    Xquery: np.ndarray,
    Xtrain: np.ndarray,
    engine: DistanceEngine,
    train_di: TrainDI,
    lpd: bool = False,
    index: Optional[pd.Index] = None,
) -> AOAResult:
    """Nearest training distance of every query row, normalised and thresholded."""
    Xquery = np.asarray(Xquery, dtype=float)
    n = len(Xquery)
    complete = ~np.isnan(Xquery).any(axis=1)

    di = np.full(n, np.nan)
    aoa = np.zeros((n, len(train_di.thresholds)), dtype=np.int8)
    density = np.zeros(n, dtype=np.int64) if lpd else None

    dmin, counts = engine.nearest(
        Xquery[complete],
        Xtrain,
        radius=train_di.threshold if lpd else None,
        scale=train_di.mean_distance,
    )
    di[complete] = dmin / train_di.mean_distance
    aoa[complete] = (di[complete][:, None] <= train_di.thresholds[None, :]).astype(np.int8)
    if lpd:
        density[complete] = counts

    logger.info(
        "query_scored",
        n_query=n,
        n_incomplete=int((~complete).sum()),
        share_inside=float(aoa[complete, 0].mean()) if complete.any() else None,
    )
    return AOAResult(di=di, aoa=aoa, train_di=train_di, lpd=density, index=index)
