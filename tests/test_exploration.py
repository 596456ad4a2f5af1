"""
Tests for the exploration engine.
"""

import numpy as np
import pandas as pd
import pytest

from exploration import ExplorationEngine, numeric_frame, complete_frame


class TestFrames:
    """Tests for the numeric input helpers."""

    def test_numeric_frame_drops_text(self):
        df = pd.DataFrame({'a': [1, 2, 3], 'label': ['x', 'y', 'z']})
        X = numeric_frame(df)
        assert list(X.columns) == ['a']
        assert X['a'].dtype == float

    def test_numeric_frame_rejects_empty(self):
        with pytest.raises(ValueError):
            numeric_frame(pd.DataFrame({'label': ['x', 'y']}))

    def test_complete_frame_rejects_missing(self):
        with pytest.raises(ValueError):
            complete_frame(pd.DataFrame({'a': [1.0, np.nan, 3.0]}))


class TestDescribe:
    """Tests for the per-variable summary."""

    def test_columns(self, survey_df):
        summary = ExplorationEngine().describe(survey_df)
        assert list(summary.index) == list(survey_df.columns)
        for col in ['mean', 'std', 'median', 'skewness', 'kurtosis', 'p_missing', 'outlier_fraction']:
            assert col in summary.columns

    def test_values(self):
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0, 4.0, np.nan]})
        row = ExplorationEngine().describe(df).loc['a']
        assert np.isclose(row['mean'], 2.5)
        assert np.isclose(row['median'], 2.5)
        assert np.isclose(row['std'], np.std([1, 2, 3, 4], ddof=1))
        assert row['n_missing'] == 1
        assert np.isclose(row['p_missing'], 0.2)
        assert row['n_unique'] == 4

    def test_outlier_fraction(self):
        values = np.zeros(100)
        values[:50] = 1.0
        values[0] = 100.0
        row = ExplorationEngine().describe(pd.DataFrame({'a': values})).loc['a']
        assert np.isclose(row['outlier_fraction'], 0.01)

    def test_constant_variable(self):
        row = ExplorationEngine().describe(pd.DataFrame({'a': [5.0] * 10})).loc['a']
        assert row['std'] == 0
        assert row['skewness'] == 0
        assert row['outlier_fraction'] == 0


class TestCorrelation:
    """Tests for correlation summaries."""

    def test_matrix_is_symmetric(self, survey_df):
        corr = ExplorationEngine().correlation_matrix(survey_df)
        assert np.allclose(corr.values, corr.values.T)
        assert np.allclose(np.diag(corr.values), 1.0)

    def test_unknown_method(self, survey_df):
        with pytest.raises(ValueError):
            ExplorationEngine().correlation_matrix(survey_df, method='cosine')

    def test_high_pairs_are_within_factor(self, survey_df):
        pairs = ExplorationEngine().high_correlation_pairs(survey_df, threshold=0.4)
        assert len(pairs) > 0
        same_factor = pairs['var1'].str[:2] == pairs['var2'].str[:2]
        assert same_factor.all()
        # Sorted strongest first
        assert pairs['abs_r'].is_monotonic_decreasing

    def test_no_pairs_for_independent_data(self, independent_df):
        pairs = ExplorationEngine().high_correlation_pairs(independent_df, threshold=0.5)
        assert pairs.empty

    def test_standardize(self, survey_missing_df):
        Z = ExplorationEngine().standardize(survey_missing_df)
        assert np.allclose(Z.mean(), 0, atol=1e-10)
        # Gaps stay where they were
        assert (Z.isna() == survey_missing_df.isna()).all().all()
