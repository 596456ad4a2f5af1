"""
Tests for the imputation engine.
"""

import numpy as np
import pandas as pd
import pytest

from imputation import ImputationEngine


@pytest.fixture
def small_df():
    return pd.DataFrame({
        'a': [1.0, 2.0, np.nan, 4.0, 5.0],
        'b': [2.0, np.nan, 6.0, 8.0, 10.0],
        'c': [1.0, 1.0, 1.0, np.nan, 2.0],
    })


class TestDiagnostics:
    """Tests for missing-data summaries."""

    def test_missing_summary(self, small_df):
        summary = ImputationEngine().missing_summary(small_df)
        assert summary.loc['a', 'n_missing'] == 1
        assert np.isclose(summary.loc['b', 'p_missing'], 0.2)

    def test_missing_patterns(self, small_df):
        patterns = ImputationEngine().missing_patterns(small_df)
        # Complete rows (2) plus three single-gap patterns
        assert patterns['n_rows'].sum() == len(small_df)
        assert len(patterns) == 4
        top = patterns.iloc[0]
        assert top['n_rows'] == 2
        assert top['n_missing_vars'] == 0


class TestImpute:
    """Tests for each imputation method."""

    @pytest.mark.parametrize('method', ['mean', 'median', 'regression', 'iterative', 'knn'])
    def test_fills_everything_and_keeps_observed(self, survey_missing_df, method):
        result = ImputationEngine().impute(survey_missing_df, method=method)
        assert not result.isna().any().any()
        assert list(result.columns) == list(survey_missing_df.columns)
        assert result.index.equals(survey_missing_df.index)

        observed = survey_missing_df.notna()
        assert np.allclose(result.values[observed.values], survey_missing_df.values[observed.values])

    def test_mean(self, small_df):
        result = ImputationEngine().impute(small_df, method='mean')
        assert np.isclose(result.loc[2, 'a'], 3.0)
        assert np.isclose(result.loc[1, 'b'], 6.5)

    def test_median(self, small_df):
        result = ImputationEngine().impute(small_df, method='median')
        assert np.isclose(result.loc[3, 'c'], 1.0)

    def test_listwise(self, small_df):
        result = ImputationEngine().impute(small_df, method='listwise')
        assert list(result.index) == [0, 4]

    def test_listwise_removes_everything(self):
        df = pd.DataFrame({'a': [1.0, np.nan], 'b': [np.nan, 2.0]})
        with pytest.raises(ValueError):
            ImputationEngine().impute(df, method='listwise')

    def test_regression_recovers_linear_relation(self):
        x = np.arange(20, dtype=float)
        df = pd.DataFrame({'x': x, 'y': 3 * x + 1})
        df.loc[5, 'y'] = np.nan
        df.loc[12, 'y'] = np.nan
        engine = ImputationEngine(method='regression')
        result = engine.impute(df)
        assert np.isclose(result.loc[5, 'y'], 16.0)
        assert np.isclose(result.loc[12, 'y'], 37.0)
        assert 'y' in engine.models

    def test_stochastic_regression_adds_noise(self, survey_missing_df):
        plain = ImputationEngine(method='regression').impute(survey_missing_df)
        noisy = ImputationEngine(method='regression', stochastic=True).impute(survey_missing_df)
        missing = survey_missing_df.isna().values
        assert not np.allclose(plain.values[missing], noisy.values[missing])

    def test_regression_beats_mean(self, survey_df):
        rng = np.random.default_rng(5)
        holes = survey_df.mask(rng.random(survey_df.shape) < 0.1)
        missing = holes.isna().values

        def error(method):
            result = ImputationEngine().impute(holes, method=method)
            return np.mean((result.values[missing] - survey_df.values[missing]) ** 2)

        assert error('regression') < error('mean')

    def test_no_missing_returns_copy(self, survey_df):
        result = ImputationEngine().impute(survey_df)
        assert result.equals(survey_df)
        assert result is not survey_df

    def test_fully_missing_variable(self):
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [np.nan] * 3})
        with pytest.raises(ValueError):
            ImputationEngine().impute(df, method='mean')

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            ImputationEngine(method='hot_deck')
        with pytest.raises(ValueError):
            ImputationEngine().impute(pd.DataFrame({'a': [1.0]}), method='hot_deck')


class TestDropSparse:
    """Tests for removing mostly-missing variables."""

    def test_drops_only_sparse_columns(self, survey_df):
        df = survey_df.copy()
        df['sparse'] = df['F1_item1'].where(np.arange(len(df)) % 10 >= 7)
        kept, dropped = ImputationEngine().drop_sparse_variables(df)
        assert dropped == ['sparse']
        assert list(kept.columns) == list(survey_df.columns)
        assert 'sparse' in df.columns

    def test_threshold_is_exclusive(self, small_df):
        # Every column of small_df misses exactly 20%
        kept, dropped = ImputationEngine().drop_sparse_variables(small_df, threshold=0.2)
        assert dropped == []
        assert kept.equals(small_df)
