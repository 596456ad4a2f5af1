import numpy as np
import pandas as pd

import config
from exploration import complete_frame


class PCAEngine:
    """
    Principal Component Analysis by eigendecomposition of the covariance or
    correlation matrix, or by SVD of the centred (and scaled) data matrix.
    Both solvers yield the same eigenvalues and, after sign alignment, the
    same components.
    """

    def __init__(self, n_components=None, use_correlation=True, solver='eigen',
                 variance_threshold=config.VARIANCE_THRESHOLD):
        if solver not in ('eigen', 'svd'):
            raise ValueError(f"Unknown solver: {solver}")
        if not 0 < variance_threshold <= 1:
            raise ValueError("variance_threshold must be in (0, 1]")
        self.n_components = n_components
        self.use_correlation = use_correlation
        self.solver = solver
        self.variance_threshold = variance_threshold

        self.columns_ = None
        self.mean_ = None
        self.scale_ = None
        self.eigenvalues_ = None
        self.components_ = None
        self.loadings_ = None
        self.explained_variance_ratio_ = None
        self.cumulative_variance_ = None
        self.n_components_ = None

    def fit(self, df):
        X = complete_frame(df)
        n, p = X.shape
        if n < 2:
            raise ValueError("PCA needs at least two observations")

        self.columns_ = list(X.columns)
        Z = self._prepare(X, fit=True)

        if self.solver == 'eigen':
            # Covariance (or correlation, on scaled data) matrix
            C = (Z.T @ Z) / (n - 1)
            eigvals, eigvecs = np.linalg.eigh(C)
            order = np.argsort(eigvals)[::-1]
            eigvals, eigvecs = eigvals[order], eigvecs[:, order]
        else:
            _, s, vt = np.linalg.svd(Z, full_matrices=False)
            eigvals = s ** 2 / (n - 1)
            eigvecs = vt.T
            if len(eigvals) < p:
                # More variables than observations: remaining eigenvalues are zero
                pad = p - len(eigvals)
                eigvals = np.concatenate([eigvals, np.zeros(pad)])
                eigvecs = np.hstack([eigvecs, self._complete_basis(eigvecs, pad)])

        # PSD matrix: negative eigenvalues are round-off
        eigvals = np.clip(eigvals, 0, None)
        eigvecs = self._align_signs(eigvecs)

        total = eigvals.sum()
        ratio = eigvals / total if total > 0 else np.zeros_like(eigvals)

        names = [f"PC{i + 1}" for i in range(p)]
        self.eigenvalues_ = pd.Series(eigvals, index=names)
        self.components_ = pd.DataFrame(eigvecs, index=self.columns_, columns=names)
        self.loadings_ = self.components_ * np.sqrt(eigvals)
        self.explained_variance_ratio_ = pd.Series(ratio, index=names)
        self.cumulative_variance_ = self.explained_variance_ratio_.cumsum()
        self.n_components_ = self._select_n_components(p)

        print(f"PCA ({'correlation' if self.use_correlation else 'covariance'}, {self.solver}): "
              f"keeping {self.n_components_} of {p} components "
              f"({self.cumulative_variance_.iloc[self.n_components_ - 1]:.1%} variance)")
        return self

    def fit_transform(self, df):
        return self.fit(df).transform(df)

    def transform(self, df):
        """Component scores for the retained components."""
        self._check_fitted()
        X = complete_frame(df)
        missing = [c for c in self.columns_ if c not in X.columns]
        if missing:
            raise ValueError(f"Columns missing from input: {missing}")
        Z = self._prepare(X[self.columns_])
        V = self.components_.iloc[:, :self.n_components_]
        return pd.DataFrame(Z @ V.values, index=X.index, columns=V.columns)

    def inverse_transform(self, scores):
        """Maps component scores back to the original units."""
        self._check_fitted()
        S = np.asarray(scores, dtype=float)
        k = S.shape[1]
        V = self.components_.values[:, :k]
        Z = S @ V.T
        X = Z * self.scale_ + self.mean_
        index = scores.index if isinstance(scores, pd.DataFrame) else None
        return pd.DataFrame(X, index=index, columns=self.columns_)

    def reconstruction_error(self, df):
        """Mean squared error of the data rebuilt from the retained components."""
        self._check_fitted()
        X = complete_frame(df)[self.columns_]
        rebuilt = self.inverse_transform(self.transform(X))
        return float(np.mean((X.values - rebuilt.values) ** 2))

    def kaiser_components(self, cutoff=config.KAISER_EIGENVALUE):
        """Number of eigenvalues above the cutoff (meaningful on correlation PCA)."""
        self._check_fitted()
        return int((self.eigenvalues_ > cutoff).sum())

    def components_for_variance(self, threshold):
        """Smallest number of components whose cumulative variance reaches threshold."""
        self._check_fitted()
        reached = np.flatnonzero(self.cumulative_variance_.values >= threshold - 1e-12)
        return int(reached[0]) + 1 if len(reached) else len(self.cumulative_variance_)

    def scree_table(self):
        """Plot-ready eigenvalue table (one row per component)."""
        self._check_fitted()
        return pd.DataFrame({
            'eigenvalue': self.eigenvalues_,
            'proportion': self.explained_variance_ratio_,
            'cumulative': self.cumulative_variance_,
            'retained': [i < self.n_components_ for i in range(len(self.eigenvalues_))],
        })

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------
    def _prepare(self, X, fit=False):
        values = X.values
        if fit:
            self.mean_ = values.mean(axis=0)
            if self.use_correlation:
                scale = values.std(axis=0, ddof=1)
                if np.any(scale == 0):
                    const = [c for c, s in zip(X.columns, scale) if s == 0]
                    raise ValueError(f"Constant variables have no correlation structure: {const}")
                self.scale_ = scale
            else:
                self.scale_ = np.ones(values.shape[1])
        return (values - self.mean_) / self.scale_

    def _select_n_components(self, p):
        if self.n_components is not None:
            if not 1 <= self.n_components <= p:
                raise ValueError(f"n_components must be between 1 and {p}")
            return int(self.n_components)
        return self.components_for_variance(self.variance_threshold)

    @staticmethod
    def _align_signs(vectors):
        # Largest-magnitude loading of each component is positive
        idx = np.argmax(np.abs(vectors), axis=0)
        signs = np.sign(vectors[idx, np.arange(vectors.shape[1])])
        signs[signs == 0] = 1
        return vectors * signs

    @staticmethod
    def _complete_basis(vectors, n_extra):
        # Orthonormal directions spanning the null space of the data
        q, _ = np.linalg.qr(np.hstack([vectors, np.eye(vectors.shape[0])]))
        return q[:, vectors.shape[1]:vectors.shape[1] + n_extra]

    def _check_fitted(self):
        if self.eigenvalues_ is None:
            raise ValueError("PCAEngine is not fitted yet; call fit() first")


if __name__ == "__main__":
    try:
        from data_generator import generate_synthetic_data

        df = generate_synthetic_data()
        engine = PCAEngine()
        scores = engine.fit_transform(df)

        print("\nScree Table:\n", engine.scree_table().round(3))
        print(f"\nKaiser criterion: {engine.kaiser_components()} components")
        print("\nLoadings:\n", engine.loadings_.iloc[:, :engine.n_components_].round(2))
        print(f"\nReconstruction MSE: {engine.reconstruction_error(df):.4f}")
    except Exception as e:
        print(f"Test failed: {e}")
