from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import AOASettings, get_settings
from .distance import DistanceEngine
from .encoder import PredictorEncoder
from .errors import ConfigurationConflict, InsufficientTrainingDiversity
from .logging import get_logger
from .scaler import ZeroVarianceScaler
from .schema import FoldAssignment, PredictorSchema
from .scorer import AOAResult, score_query
from .threshold import estimate_threshold
from .weights import resolve_weights

logger = get_logger(__name__)

FoldsLike = Union[FoldAssignment, Sequence, np.ndarray, pd.Series, None]


class AOAEvaluator:
    """
    Area of Applicability in weighted, standardized predictor space.

    Fitting encodes and standardizes the training table, resolves the column
    weights and derives the threshold from leave-fold-out nearest-neighbour
    distances. ``evaluate`` then scores any number of query tables against it.
    Default threshold: 0.95 quantile of the training DI.
    """

    def __init__(
        self,
        train: pd.DataFrame,
        variables: Optional[Sequence[str]] = None,
        weights: Optional[Mapping[str, float]] = None,
        importance: Optional[Mapping[str, float]] = None,
        folds: FoldsLike = None,
        probabilities: Optional[Sequence[float]] = None,
        method: Optional[str] = None,
        response: Optional[str] = None,
        chunk_size: Optional[int] = None,
        executor=None,
        settings: Optional[AOASettings] = None,
    ):
        settings = settings or get_settings()
        self.probabilities = list(probabilities) if probabilities is not None else list(settings.probabilities)
        self.method = method or settings.threshold_method

        self.schema = PredictorSchema.from_frame(train, variables)
        self.encoder = PredictorEncoder(self.schema, response=response).fit(train)
        Xenc = self.encoder.transform(train)

        fold_assignment = _as_folds(folds, len(train))
        complete = ~np.isnan(Xenc).any(axis=1)
        if not complete.all():
            logger.warning("incomplete_training_rows_dropped", n_dropped=int((~complete).sum()))
            Xenc = Xenc[complete]
            if fold_assignment is not None:
                fold_assignment = fold_assignment.subset(complete)
        if len(Xenc) < 2:
            raise InsufficientTrainingDiversity(f"Need at least 2 complete training rows, got {len(Xenc)}")

        self.scaler = ZeroVarianceScaler()
        self.Xtrain = self.scaler.fit_transform(Xenc, self.encoder.columns)
        self.columns = self.scaler.columns
        if not self.columns:
            raise InsufficientTrainingDiversity("Every predictor has zero variance in the training data")

        self.weights = resolve_weights(self.encoder, self.columns, weights=weights, importance=importance)
        self.engine = DistanceEngine(
            self.weights.as_array(self.columns),
            chunk_size=chunk_size or settings.chunk_size,
            executor=executor,
        )
        self.folds = fold_assignment
        self.train_di = estimate_threshold(
            self.Xtrain, self.engine, self.folds, self.probabilities, self.method
        )

    @property
    def thresholds(self) -> np.ndarray:
        return self.train_di.thresholds

    def transform(self, new: pd.DataFrame) -> np.ndarray:
        """Encoded and scaled query matrix over the retained columns."""
        return self.scaler.transform(self.encoder.transform(new))

    def evaluate(self, new: pd.DataFrame, lpd: bool = False) -> AOAResult:
        Xs = self.transform(new)
        return score_query(Xs, self.Xtrain, self.engine, self.train_di, lpd=lpd, index=new.index)


def _as_folds(folds: FoldsLike, n_rows: int) -> Optional[FoldAssignment]:
    if folds is None:
        return None
    if not isinstance(folds, FoldAssignment):
        folds = FoldAssignment.from_labels(folds)
    if len(folds) != n_rows:
        raise ConfigurationConflict(f"Fold assignment has {len(folds)} rows, training data has {n_rows}")
    return folds
