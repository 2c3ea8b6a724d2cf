"""
Shared fixtures for the DI/AOA test suite.
"""

import numpy as np
import pandas as pd
import pytest

from aoa.config import AOASettings


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return AOASettings(_env_file=None, probabilities=[0.95], chunk_size=16)


@pytest.fixture
def train_frame(rng):
    n = 40
    return pd.DataFrame(
        {
            "temp": rng.normal(15.0, 5.0, n),
            "precip": rng.gamma(2.0, 300.0, n),
            "landcover": rng.choice(["forest", "urban", "water"], n),
        }
    )


@pytest.fixture
def query_frame(rng):
    n = 25
    return pd.DataFrame(
        {
            "temp": rng.normal(18.0, 9.0, n),
            "precip": rng.gamma(2.0, 400.0, n),
            "landcover": rng.choice(["forest", "urban", "water", "glacier"], n),
        }
    )


@pytest.fixture
def block_folds():
    """Four spatial blocks of ten consecutive training rows."""
    return np.repeat(np.arange(4), 10)
