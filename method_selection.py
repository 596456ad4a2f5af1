"""
Method Advisor
==============
Decision guidance between the multivariate techniques, driven by the
numeric characteristics of the data rather than a fixed checklist.

Techniques scored:
    - PCA: summarise total variance of correlated variables into fewer components
    - FA:  explain shared variance through latent factors (needs adequate KMO,
           significant Bartlett test and enough observations per variable)
    - MDS: embed objects from their pairwise dissimilarities

Each table receives:
    - Recommended_Method: the technique with the strongest evidence
    - Confidence: winning evidence relative to the runner-up (0-1)
"""

import numpy as np
import pandas as pd
import warnings

import config
from exploration import numeric_frame
from factor_analysis import AdequacyTester

warnings.filterwarnings("ignore")


class MethodAdvisor:
    """
    Weighted evidence scoring across the data profile to pick the most
    suitable technique, with the same smooth thresholds for every rule.
    """

    def __init__(self):
        # Each technique has (profile_key, score_fn, weight) tuples.
        # score_fn takes the raw profile value and returns a score 0-1.
        self.method_rules = self._build_rules()

    # -----------------------------------------------------------------
    # Rule Definitions
    # -----------------------------------------------------------------
    def _build_rules(self):
        rules = {}

        # --- PCA ---
        rules['PCA'] = [
            ('mean_abs_corr',        lambda v: self._sigmoid(v, center=0.25, steepness=15), 3.0),
            ('first_eigen_share',    lambda v: self._sigmoid(v, center=0.3,  steepness=10), 2.0),
            ('sample_ratio',         lambda v: self._sigmoid(v, center=2.0,  steepness=2),  1.0),
            ('is_dissimilarity',     lambda v: 1 - v,                                       3.0),
        ]

        # --- FA (stricter data requirements than PCA) ---
        rules['FA'] = [
            ('kmo',                  lambda v: self._sigmoid(v, center=0.6,  steepness=15), 3.0),
            ('bartlett_p_value',     lambda v: 1 - self._sigmoid(v, center=config.BARTLETT_ALPHA, steepness=100), 2.0),
            ('sample_ratio',         lambda v: self._sigmoid(v, center=config.MIN_SAMPLE_RATIO, steepness=1), 2.0),
            ('mean_abs_corr',        lambda v: self._sigmoid(v, center=0.2,  steepness=15), 1.0),
            ('is_dissimilarity',     lambda v: 1 - v,                                       3.0),
        ]

        # --- MDS ---
        rules['MDS'] = [
            ('is_dissimilarity',     lambda v: v,                                           5.0),
            ('sample_ratio',         lambda v: 1 - self._sigmoid(v, center=1.0,  steepness=3), 1.0),
            ('mean_abs_corr',        lambda v: 1 - self._sigmoid(v, center=0.2,  steepness=15), 1.0),
        ]

        return rules

    @staticmethod
    def _sigmoid(x, center=0.0, steepness=1.0):
        """
        Smooth sigmoid activation: returns ~0 when x << center, ~1 when x >> center.
        """
        z = steepness * (x - center)
        z = np.clip(z, -20, 20)  # Avoid overflow
        return 1.0 / (1.0 + np.exp(-z))

    # -----------------------------------------------------------------
    # Data Profile
    # -----------------------------------------------------------------
    @staticmethod
    def is_dissimilarity_matrix(df, atol=1e-8):
        M = np.asarray(df, dtype=float)
        if M.ndim != 2 or M.shape[0] != M.shape[1] or M.shape[0] < 3:
            return False
        if not np.all(np.isfinite(M)):
            return False
        return bool(np.allclose(M, M.T, atol=atol) and np.all(M >= 0)
                    and np.allclose(np.diag(M), 0, atol=atol))

    def profile(self, df):
        """Numeric characteristics the rules are evaluated on."""
        X = numeric_frame(df)
        n, p = X.shape

        profile = {
            'n_samples': n,
            'n_variables': p,
            'sample_ratio': n / p,
            'p_missing': float(X.isna().values.mean()),
            'is_dissimilarity': float(self.is_dissimilarity_matrix(X)),
            'mean_abs_corr': 0.0,
            'first_eigen_share': 1.0 / p,
            'kmo': 0.0,
            'bartlett_p_value': 1.0,
        }

        complete = X.dropna()
        if p < 2 or len(complete) < 3 or profile['is_dissimilarity']:
            return profile

        R = complete.corr().values
        if not np.all(np.isfinite(R)):
            return profile

        off = ~np.eye(p, dtype=bool)
        profile['mean_abs_corr'] = float(np.abs(R[off]).mean())
        eigvals = np.clip(np.linalg.eigvalsh(R), 0, None)
        profile['first_eigen_share'] = float(eigvals.max() / eigvals.sum())

        tester = AdequacyTester()
        try:
            profile['kmo'], _ = tester.kmo(complete)
            profile['bartlett_p_value'] = tester.bartlett_sphericity(complete)['p_value']
        except np.linalg.LinAlgError:
            print("Correlation matrix is singular; skipping KMO and Bartlett.")

        return profile

    # -----------------------------------------------------------------
    # Main Recommendation
    # -----------------------------------------------------------------
    def recommend(self, df):
        """
        Main entry point.
        Input:  numeric table (observations x variables) or dissimilarity matrix
        Output: dict with 'Recommended_Method', 'Confidence', 'Scores' and 'Profile'
        """
        profile = self.profile(df)

        scores = {}
        for method, rules in self.method_rules.items():
            total_weight = sum(w for _, _, w in rules)
            score = 0.0
            for key, score_fn, weight in rules:
                score += float(score_fn(profile[key])) * (weight / total_weight)
            scores[method] = score

        ranked = sorted(scores, key=scores.get, reverse=True)
        best, runner_up = ranked[0], ranked[1]

        # Confidence: margin of the winner over the runner-up, relative to the winner
        confidence = (scores[best] - scores[runner_up]) / scores[best] if scores[best] > 0 else 0.0

        print("\n--- Method Recommendation ---")
        print(pd.Series(scores).round(3).to_string())
        print(f"Recommended: {best} (confidence {confidence:.2f})")

        return {
            'Recommended_Method': best,
            'Confidence': confidence,
            'Scores': pd.Series(scores, name='score'),
            'Profile': profile,
            'Imputation': self.recommend_imputation(profile['p_missing']),
        }

    @staticmethod
    def recommend_imputation(p_missing):
        """Missing-data strategy by proportion of missing cells."""
        if p_missing == 0:
            return 'none'
        if p_missing < config.LISTWISE_MAX_MISSING:
            return 'listwise'
        if p_missing < config.SIMPLE_FILL_MAX_MISSING:
            return 'mean'
        if p_missing < config.REGRESSION_MAX_MISSING:
            return 'regression'
        if p_missing < config.DROP_VARIABLE_MISSING:
            return 'iterative'
        return 'drop'


if __name__ == "__main__":
    try:
        from data_generator import generate_synthetic_data, generate_point_configuration
        from mds import ScalingEngine

        advisor = MethodAdvisor()
        df = generate_synthetic_data(missing_rate=0.03)
        result = advisor.recommend(df)
        print(f"Imputation strategy: {result['Imputation']}")

        points = generate_point_configuration()
        D = ScalingEngine().distance_matrix(points.drop(columns=['Group']))
        advisor.recommend(D)
    except Exception as e:
        print(f"Test failed: {e}")
