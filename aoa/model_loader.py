from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import joblib
import pandas as pd

from .errors import SchemaMismatch
from .schema import FoldAssignment
from .weights import model_importance


@dataclass
class ModelBundle:
    name: str
    model: object
    prep: dict

    @property
    def train(self) -> pd.DataFrame:
        return _get_training_frame(self.prep)

    @property
    def variables(self) -> list[str]:
        """Predictors the model was fitted on; the training columns otherwise."""
        names = getattr(self.model, "feature_names_in_", None)
        if names is None:
            return list(self.train.columns)
        names = [str(n) for n in names]
        missing = [c for c in names if c not in self.train.columns]
        if missing:
            raise SchemaMismatch(missing, "bundle training data")
        return names

    def importance(self) -> dict[str, float]:
        return model_importance(self.model, self.variables)

    def folds(self) -> Optional[FoldAssignment]:
        """
        Fold of every training row, from prep["folds"] (labels) or
        prep["cv_splits"] ((train_idx, test_idx) pairs); None if neither.
        """
        if self.prep.get("folds") is not None:
            return FoldAssignment.from_labels(self.prep["folds"])
        if self.prep.get("cv_splits") is not None:
            return FoldAssignment.from_splits(self.prep["cv_splits"], len(self.train))
        return None


def _get_training_frame(prep: dict) -> pd.DataFrame:
    """
    Expect prep_data contains key 'Xtrain' as pandas DataFrame.
    """
    if isinstance(prep, dict) and "Xtrain" in prep:
        Xtrain = prep["Xtrain"]
        if hasattr(Xtrain, "columns"):
            return Xtrain
    raise ValueError("prep_data.joblib must contain key 'Xtrain' as a pandas DataFrame.")


def load_bundle(directory: str | Path, model_name: str) -> ModelBundle:
    """
    Required files in ``directory``:
      <model_name>_model.joblib      fitted estimator
      <model_name>_prep_data.joblib  dict with 'Xtrain' and optionally 'folds' or 'cv_splits'
    """
    directory = Path(directory)
    model_fp = directory / f"{model_name}_model.joblib"
    prep_fp = directory / f"{model_name}_prep_data.joblib"

    if not model_fp.exists():
        raise FileNotFoundError(f"Missing model file: {model_fp}")
    if not prep_fp.exists():
        raise FileNotFoundError(f"Missing prep_data file: {prep_fp}")

    model = joblib.load(model_fp)
    prep = joblib.load(prep_fp)
    _get_training_frame(prep)

    return ModelBundle(name=model_name, model=model, prep=prep)
