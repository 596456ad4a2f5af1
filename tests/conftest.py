import numpy as np
import pandas as pd
import pytest

from data_generator import generate_synthetic_data, generate_point_configuration


@pytest.fixture
def survey_df():
    """Three-factor item table without missing values."""
    return generate_synthetic_data(n_samples=300, n_factors=3, items_per_factor=4, seed=0)


@pytest.fixture
def survey_missing_df():
    """Same structure with roughly 10% of cells removed."""
    return generate_synthetic_data(n_samples=300, n_factors=3, items_per_factor=4,
                                   missing_rate=0.1, seed=0)


@pytest.fixture
def independent_df():
    """Uncorrelated normal variables."""
    rng = np.random.default_rng(1)
    return pd.DataFrame(rng.normal(size=(200, 6)), columns=[f"x{i}" for i in range(6)])


@pytest.fixture
def points_df():
    return generate_point_configuration(n_points=15, n_dims=2, n_groups=3, seed=0)
