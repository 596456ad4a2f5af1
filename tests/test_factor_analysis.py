"""
Tests for sampling adequacy, rotations and factor extraction.
"""

import numpy as np
import pandas as pd
import pytest

from factor_analysis import (
    AdequacyTester, FactorAnalysisEngine, suggest_n_factors, varimax, promax
)


class TestAdequacy:
    """Tests for KMO and Bartlett's test."""

    def test_kmo_range(self, survey_df):
        overall, msa = AdequacyTester().kmo(survey_df)
        assert 0 <= overall <= 1
        assert np.all((msa >= 0) & (msa <= 1))
        assert list(msa.index) == list(survey_df.columns)

    def test_kmo_higher_for_factor_data(self, survey_df, independent_df):
        tester = AdequacyTester()
        structured, _ = tester.kmo(survey_df)
        random, _ = tester.kmo(independent_df)
        assert structured > 0.6
        assert structured > random

    def test_kmo_two_variables(self):
        # With two variables the partial correlation equals the raw correlation
        rng = np.random.default_rng(0)
        x = rng.normal(size=100)
        df = pd.DataFrame({'a': x, 'b': x + rng.normal(size=100)})
        overall, _ = AdequacyTester().kmo(df)
        assert np.isclose(overall, 0.5)

    @pytest.mark.parametrize('value,label', [
        (0.95, 'marvelous'), (0.85, 'meritorious'), (0.75, 'middling'),
        (0.65, 'mediocre'), (0.55, 'miserable'), (0.3, 'unacceptable'),
    ])
    def test_interpret_kmo(self, value, label):
        assert AdequacyTester.interpret_kmo(value) == label

    def test_bartlett_detects_structure(self, survey_df):
        result = AdequacyTester().bartlett_sphericity(survey_df)
        assert result['dof'] == 66
        assert result['chi_square'] > 0
        assert result['p_value'] < 1e-10

    def test_bartlett_on_independent_data(self, independent_df):
        result = AdequacyTester().bartlett_sphericity(independent_df)
        assert result['p_value'] > 0.01

    def test_bartlett_singular(self):
        x = np.arange(10, dtype=float)
        df = pd.DataFrame({'a': x, 'b': 2 * x, 'c': np.sin(x)})
        with pytest.raises(np.linalg.LinAlgError):
            AdequacyTester().bartlett_sphericity(df)

    def test_summary(self, survey_df):
        summary = AdequacyTester().summary(survey_df)
        assert summary['factorable']
        assert summary['weakest_variable'] in survey_df.columns


class TestNumberOfFactors:
    """Tests for factor retention rules."""

    def test_parallel_analysis(self, survey_df):
        assert suggest_n_factors(survey_df, method='parallel', n_iter=30) == 3

    def test_kaiser(self, survey_df):
        assert suggest_n_factors(survey_df, method='kaiser') == 3

    def test_unknown_method(self, survey_df):
        with pytest.raises(ValueError):
            suggest_n_factors(survey_df, method='scree')


class TestRotations:
    """Tests for varimax and promax."""

    @pytest.fixture
    def loadings(self):
        return np.array([
            [0.7, 0.4],
            [0.6, 0.5],
            [0.5, -0.5],
            [0.6, -0.4],
        ])

    def test_varimax_is_orthogonal(self, loadings):
        rotated, R = varimax(loadings)
        assert np.allclose(R.T @ R, np.eye(2))
        # Communalities are invariant under orthogonal rotation
        assert np.allclose((rotated ** 2).sum(axis=1), (loadings ** 2).sum(axis=1))

    def test_varimax_increases_simplicity(self, loadings):
        rotated, _ = varimax(loadings, normalize=False)

        def criterion(L):
            return np.sum(np.var(L ** 2, axis=0))

        assert criterion(rotated) >= criterion(loadings)

    def test_varimax_single_factor(self):
        L = np.array([[0.5], [0.6]])
        rotated, R = varimax(L)
        assert np.allclose(rotated, L)
        assert R.shape == (1, 1)

    def test_promax_factor_correlation(self, loadings):
        pattern, U, phi = promax(loadings)
        assert pattern.shape == loadings.shape
        assert np.allclose(np.diag(phi), 1.0)
        assert np.allclose(phi, phi.T)


class TestFactorAnalysisEngine:
    """Tests for extraction."""

    def test_principal_axis_recovers_structure(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3).fit(survey_df)
        L = engine.loadings_
        assert L.shape == (12, 3)
        # Each item loads mainly on one factor, and items of a block share it
        main = L.abs().idxmax(axis=1)
        for block in ['F1', 'F2', 'F3']:
            items = [c for c in survey_df.columns if c.startswith(block)]
            assert main[items].nunique() == 1
        assert main.nunique() == 3

    def test_communalities(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3).fit(survey_df)
        h2 = engine.communalities_
        assert np.all((h2 > 0) & (h2 <= 1 + 1e-9))
        assert np.allclose(h2 + engine.uniquenesses_, 1.0)
        # Orthogonal rotation: communality is the row sum of squared loadings
        assert np.allclose(h2.values, (engine.loadings_ ** 2).sum(axis=1).values)

    def test_factor_variance_table(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3).fit(survey_df)
        table = engine.factor_variance_
        assert list(table.columns) == ['ss_loadings', 'proportion', 'cumulative']
        assert np.isclose(table['cumulative'].iloc[-1], table['proportion'].sum())
        assert np.isclose(table['ss_loadings'].sum(), engine.communalities_.sum())

    def test_maximum_likelihood(self, survey_df):
        pa = FactorAnalysisEngine(n_factors=3, method='principal').fit(survey_df)
        ml = FactorAnalysisEngine(n_factors=3, method='ml').fit(survey_df)
        assert np.allclose(pa.communalities_.values, ml.communalities_.values, atol=0.1)

    def test_promax_engine(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3, rotation='promax').fit(survey_df)
        phi = engine.factor_correlation_.values
        assert np.allclose(np.diag(phi), 1.0)
        # Independent latent factors stay nearly uncorrelated
        assert np.all(np.abs(phi[~np.eye(3, dtype=bool)]) < 0.3)
        assert np.allclose(engine.structure_.values, engine.loadings_.values @ phi)

    def test_unrotated(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=2, rotation=None).fit(survey_df)
        assert np.allclose(engine.factor_correlation_.values, np.eye(2))

    def test_loadings_oriented_positive(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3).fit(survey_df)
        assert np.all(engine.loadings_.sum(axis=0) > 0)

    def test_default_factor_count(self, survey_df):
        engine = FactorAnalysisEngine().fit(survey_df)
        assert engine.n_factors_ == 3

    def test_scores(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3)
        scores = engine.fit_transform(survey_df)
        assert scores.shape == (len(survey_df), 3)
        assert np.allclose(scores.mean().values, 0, atol=1e-10)
        # Each factor score tracks its own block of items
        block_mean = survey_df[[c for c in survey_df.columns if c.startswith('F1')]].mean(axis=1)
        corr = [abs(np.corrcoef(scores[f], block_mean)[0, 1]) for f in scores.columns]
        assert max(corr) > 0.9

    def test_invalid_arguments(self, survey_df):
        with pytest.raises(ValueError):
            FactorAnalysisEngine(method='minres')
        with pytest.raises(ValueError):
            FactorAnalysisEngine(rotation='oblimin')
        with pytest.raises(ValueError):
            FactorAnalysisEngine(n_factors=12).fit(survey_df)

    def test_transform_before_fit(self, survey_df):
        with pytest.raises(ValueError):
            FactorAnalysisEngine().transform(survey_df)

    @pytest.mark.parametrize('method', ['principal', 'ml'])
    def test_collinear_variables_raise(self, survey_df, method):
        df = survey_df.copy()
        df['dup'] = 2 * df['F1_item1']
        with pytest.raises(np.linalg.LinAlgError):
            FactorAnalysisEngine(n_factors=3, method=method).fit(df)

    def test_heywood_case_is_capped(self):
        rng = np.random.default_rng(3)
        f = rng.normal(size=400)
        df = pd.DataFrame({
            'a': f + 0.05 * rng.normal(size=400),
            'b': f + 0.05 * rng.normal(size=400),
            'c': 0.5 * f + rng.normal(size=400),
            'd': rng.normal(size=400),
        })
        engine = FactorAnalysisEngine(n_factors=2, rotation=None).fit(df)
        assert np.all(engine.communalities_ <= 1 + 1e-9)
        assert np.all(engine.uniquenesses_ >= -1e-9)
        assert set(engine.heywood_) <= set(df.columns)

    def test_cap_communalities(self):
        L = np.array([[0.9, 0.6], [0.5, 0.2], [0.0, 0.3]])
        capped, rows = FactorAnalysisEngine._cap_communalities(L)
        assert rows == [0]
        assert np.isclose((capped[0] ** 2).sum(), 1.0)
        # Direction of the capped row is kept, other rows are untouched
        assert np.isclose(capped[0, 0] / capped[0, 1], 1.5)
        assert np.allclose(capped[1:], L[1:])

    def test_refit_clears_heywood_list(self, survey_df):
        engine = FactorAnalysisEngine(n_factors=3)
        engine.fit(survey_df)
        engine.heywood_ = ['F1_item1']
        engine.method = 'ml'
        engine.fit(survey_df)
        assert engine.heywood_ == []
