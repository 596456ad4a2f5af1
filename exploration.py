import numpy as np
import pandas as pd
from scipy.stats import skew, kurtosis
from sklearn.preprocessing import StandardScaler
import warnings

import config

# Suppress runtime warnings from constant columns
warnings.filterwarnings("ignore")


def numeric_frame(df):
    """
    Returns the numeric columns of df as float. Non-numeric columns are
    dropped with a notice; a table without numeric columns is rejected.
    """
    if not isinstance(df, pd.DataFrame):
        df = pd.DataFrame(df)

    numeric = df.select_dtypes(include=[np.number])
    dropped = [c for c in df.columns if c not in numeric.columns]
    if dropped:
        print(f"Ignoring non-numeric columns: {dropped}")

    if numeric.shape[1] == 0 or numeric.shape[0] == 0:
        raise ValueError("Input has no numeric data")

    return numeric.astype(float)


def complete_frame(df):
    """Numeric columns of df, rejecting missing values."""
    X = numeric_frame(df)
    if X.isna().any().any():
        raise ValueError("Input contains missing values; impute them first")
    return X


class ExplorationEngine:
    def __init__(self, outlier_z=config.OUTLIER_Z, correlation_threshold=config.CORRELATION_THRESHOLD):
        self.outlier_z = outlier_z
        self.correlation_threshold = correlation_threshold

    def describe(self, df):
        """
        Main entry point.
        Returns one row per numeric variable with location, spread, shape
        and data-quality statistics. Statistics use observed values only.
        """
        X = numeric_frame(df)
        print(f"Describing {X.shape[1]} variables over {X.shape[0]} observations...")

        rows = []
        for col in X.columns:
            rows.append(self._describe_variable(col, X[col]))

        return pd.DataFrame(rows).set_index('variable')

    def _describe_variable(self, name, series):
        y = series.dropna().values
        n_missing = int(series.isna().sum())

        # --- 1. Basic Stats ---
        if len(y) > 0:
            mean = np.mean(y)
            std = np.std(y, ddof=1) if len(y) > 1 else 0.0
            median = np.median(y)
            vmin, vmax = np.min(y), np.max(y)
        else:
            mean = std = median = vmin = vmax = np.nan

        # --- 2. Shape ---
        if len(y) > 2 and std > 0:
            skewness_val = skew(y)
            kurtosis_val = kurtosis(y)
        else:
            skewness_val = 0.0
            kurtosis_val = 0.0

        # --- 3. Outliers (fraction of points beyond outlier_z std from mean) ---
        if len(y) > 0 and std > 0:
            z = np.abs((y - mean) / std)
            outlier_fraction = np.sum(z > self.outlier_z) / len(y)
        else:
            outlier_fraction = 0.0

        return {
            'variable': name,
            'mean': mean,
            'std': std,
            'median': median,
            'min': vmin,
            'max': vmax,
            'skewness': skewness_val,
            'kurtosis': kurtosis_val,
            'n_missing': n_missing,
            'p_missing': n_missing / len(series),
            'n_unique': len(np.unique(y)),
            'outlier_fraction': outlier_fraction,
        }

    def correlation_matrix(self, df, method='pearson'):
        """Pairwise-complete correlation matrix."""
        if method not in ('pearson', 'spearman', 'kendall'):
            raise ValueError(f"Unknown correlation method: {method}")
        X = numeric_frame(df)
        return X.corr(method=method)

    def high_correlation_pairs(self, df, threshold=None, method='pearson'):
        """
        Variable pairs whose absolute correlation reaches the threshold,
        strongest first. PCA and FA need at least some of these.
        """
        if threshold is None:
            threshold = self.correlation_threshold

        corr = self.correlation_matrix(df, method=method)
        cols = corr.columns

        pairs = []
        for i in range(len(cols)):
            for j in range(i + 1, len(cols)):
                r = corr.iloc[i, j]
                if np.isfinite(r) and abs(r) >= threshold:
                    pairs.append({'var1': cols[i], 'var2': cols[j], 'r': r, 'abs_r': abs(r)})

        pairs_df = pd.DataFrame(pairs, columns=['var1', 'var2', 'r', 'abs_r'])
        return pairs_df.sort_values('abs_r', ascending=False).reset_index(drop=True)

    def standardize(self, df):
        """
        Z-scores every numeric variable. StandardScaler ignores NaNs when
        fitting and keeps them in place.
        """
        X = numeric_frame(df)
        scaled = StandardScaler().fit_transform(X.values)
        return pd.DataFrame(scaled, index=X.index, columns=X.columns)


if __name__ == "__main__":
    try:
        from data_generator import generate_synthetic_data

        df = generate_synthetic_data(missing_rate=0.05)
        engine = ExplorationEngine()

        summary = engine.describe(df)
        print("\nVariable Summary:\n", summary.round(3))

        pairs = engine.high_correlation_pairs(df)
        print(f"\n{len(pairs)} pairs with |r| >= {engine.correlation_threshold}:")
        print(pairs.head(10))
    except Exception as e:
        print(f"Test failed: {e}")
