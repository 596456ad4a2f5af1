"""
Missing Data Imputation Engine
==============================
Fills (or removes) missing cells of a numeric table before any
decomposition is run.

Methods:
    - listwise:   drop every observation with at least one missing value
    - mean:       replace missing cells with the variable mean
    - median:     replace missing cells with the variable median (robust to outliers)
    - regression: predict each incomplete variable from the others with OLS;
                  the stochastic variant adds residual noise to keep the variance
    - iterative:  chained equations, each variable modelled on all others in turn
    - knn:        average of the k nearest complete neighbours

Observed values are never modified.
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.experimental import enable_iterative_imputer  # noqa: F401
from sklearn.impute import IterativeImputer, KNNImputer
import warnings

import config
from exploration import numeric_frame

warnings.filterwarnings("ignore")


class ImputationEngine:
    METHODS = ('listwise', 'mean', 'median', 'regression', 'iterative', 'knn')

    def __init__(self, method='regression', stochastic=False, n_neighbors=5,
                 max_iter=10, random_state=config.RANDOM_STATE):
        if method not in self.METHODS:
            raise ValueError(f"Unknown imputation method: {method}. Choose from {self.METHODS}")
        self.method = method
        self.stochastic = stochastic
        self.n_neighbors = n_neighbors
        self.max_iter = max_iter
        self.random_state = random_state
        self.models = {}

    # -----------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------
    def missing_summary(self, df):
        """Count and proportion of missing values per variable, worst first."""
        n_missing = df.isna().sum()
        summary = pd.DataFrame({
            'n_missing': n_missing,
            'p_missing': n_missing / len(df) if len(df) else 0.0,
        })
        summary.index.name = 'variable'
        return summary.sort_values('n_missing', ascending=False)

    def drop_sparse_variables(self, df, threshold=config.DROP_VARIABLE_MISSING):
        """
        Removes variables missing more than `threshold` of their values.
        Returns (remaining DataFrame, list of dropped column names).
        """
        p_missing = df.isna().mean() if len(df) else pd.Series(0.0, index=df.columns)
        dropped = [c for c in df.columns if p_missing[c] > threshold]
        if dropped:
            print(f"Dropping {len(dropped)} variables with more than {threshold:.0%} missing: {dropped}")
        return df.drop(columns=dropped), dropped

    def missing_patterns(self, df):
        """
        Distinct missingness patterns (True = missing) with how many rows
        follow each one, most frequent first.
        """
        mask = df.isna()
        patterns = mask.value_counts().reset_index()
        patterns.columns = list(mask.columns) + ['n_rows']
        patterns['n_missing_vars'] = patterns[list(mask.columns)].sum(axis=1)
        return patterns.sort_values('n_rows', ascending=False).reset_index(drop=True)

    # -----------------------------------------------------------------
    # Main Imputation
    # -----------------------------------------------------------------
    def impute(self, df, method=None):
        """
        Main entry point.
        Input:  numeric DataFrame with NaNs
        Output: DataFrame with the same columns (and index, except for listwise)
                and no missing values
        """
        method = method or self.method
        if method not in self.METHODS:
            raise ValueError(f"Unknown imputation method: {method}. Choose from {self.METHODS}")

        X = numeric_frame(df)
        n_missing = int(X.isna().sum().sum())
        print(f"Imputing {n_missing} missing cells with '{method}'...")

        if n_missing == 0:
            return X.copy()

        if method == 'listwise':
            return self._listwise(X)

        empty_cols = [c for c in X.columns if X[c].isna().all()]
        if empty_cols:
            raise ValueError(f"Variables with no observed values cannot be imputed: {empty_cols}")

        if method == 'mean':
            result = X.fillna(X.mean())
        elif method == 'median':
            result = X.fillna(X.median())
        elif method == 'regression':
            result = self._regression(X)
        elif method == 'iterative':
            imputer = IterativeImputer(max_iter=self.max_iter, random_state=self.random_state,
                                       sample_posterior=self.stochastic)
            result = pd.DataFrame(imputer.fit_transform(X.values), index=X.index, columns=X.columns)
        else:  # knn
            imputer = KNNImputer(n_neighbors=self.n_neighbors)
            result = pd.DataFrame(imputer.fit_transform(X.values), index=X.index, columns=X.columns)

        # Observed cells stay exactly as they were
        return result.where(X.isna(), X)

    def _listwise(self, X):
        result = X.dropna()
        if result.empty:
            raise ValueError("Listwise deletion removed every observation")
        print(f"Listwise deletion kept {len(result)} of {len(X)} observations.")
        return result

    def _regression(self, X):
        """
        One OLS model per incomplete variable. Predictors are the other
        variables with their own gaps mean-filled; the model is fitted on
        the rows where the target is observed.
        """
        rng = np.random.default_rng(self.random_state)
        filled = X.fillna(X.mean())
        result = X.copy()
        self.models = {}

        for target in X.columns:
            missing = X[target].isna()
            if not missing.any():
                continue

            predictors = [c for c in X.columns if c != target]
            if not predictors:
                # Single variable: nothing to regress on
                result.loc[missing, target] = X[target].mean()
                continue

            exog = sm.add_constant(filled[predictors], has_constant='add')
            model = sm.OLS(X.loc[~missing, target], exog.loc[~missing]).fit()
            self.models[target] = model

            preds = model.predict(exog.loc[missing])
            if self.stochastic:
                resid_sd = np.sqrt(model.scale)
                preds = preds + rng.normal(0, resid_sd, len(preds))

            result.loc[missing, target] = preds.values

        return result


if __name__ == "__main__":
    try:
        from data_generator import generate_synthetic_data

        df = generate_synthetic_data(missing_rate=0.1)
        engine = ImputationEngine()

        print("\nMissing Summary:\n", engine.missing_summary(df).head())
        print("\nTop Missingness Patterns:\n", engine.missing_patterns(df).head())

        for method in ImputationEngine.METHODS:
            result = engine.impute(df, method=method)
            print(f"{method:>10}: {result.shape}, remaining NaNs = {int(result.isna().sum().sum())}")
    except Exception as e:
        print(f"Test failed: {e}")
