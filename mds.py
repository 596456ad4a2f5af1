import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform
from sklearn.isotonic import IsotonicRegression
from sklearn.manifold import MDS
import warnings

import config
from exploration import complete_frame

# Suppress SMACOF convergence warnings
warnings.filterwarnings("ignore")


class ScalingEngine:
    """
    Multidimensional Scaling of a dissimilarity matrix into a low-dimensional
    configuration.

    - classical:  Torgerson scaling (eigendecomposition of the double-centred
                  squared distances); exact for Euclidean input
    - metric:     SMACOF stress minimization on the dissimilarities themselves
    - nonmetric:  SMACOF on a monotone transform of the dissimilarities
                  (only their rank order matters)
    """

    def __init__(self, n_components=2, n_init=config.MDS_N_INIT, max_iter=config.MDS_MAX_ITER,
                 random_state=config.RANDOM_STATE):
        self.n_components = n_components
        self.n_init = n_init
        self.max_iter = max_iter
        self.random_state = random_state
        self.eigenvalues_ = None
        self.results_summary = {}

    # -----------------------------------------------------------------
    # Input
    # -----------------------------------------------------------------
    def distance_matrix(self, df, metric='euclidean', standardize=False):
        """Pairwise distances between the rows of a numeric table."""
        X = complete_frame(df)
        values = X.values
        if standardize:
            std = values.std(axis=0, ddof=1)
            std[std == 0] = 1.0
            values = (values - values.mean(axis=0)) / std
        D = squareform(pdist(values, metric=metric))
        return pd.DataFrame(D, index=X.index, columns=X.index)

    @staticmethod
    def validate_dissimilarity(D, atol=1e-8):
        """
        Returns D as a float array after checking it is a proper
        dissimilarity matrix: square, finite, symmetric, non-negative,
        zero diagonal.
        """
        M = np.asarray(D, dtype=float)
        if M.ndim != 2 or M.shape[0] != M.shape[1]:
            raise ValueError(f"Dissimilarity matrix must be square, got shape {M.shape}")
        if M.shape[0] < 3:
            raise ValueError("Scaling needs at least three objects")
        if not np.all(np.isfinite(M)):
            raise ValueError("Dissimilarity matrix contains missing or infinite values")
        if not np.allclose(M, M.T, atol=atol):
            raise ValueError("Dissimilarity matrix must be symmetric")
        if np.any(M < 0):
            raise ValueError("Dissimilarities must be non-negative")
        if not np.allclose(np.diag(M), 0, atol=atol):
            raise ValueError("Dissimilarity matrix must have a zero diagonal")
        return (M + M.T) / 2

    # -----------------------------------------------------------------
    # Solvers
    # -----------------------------------------------------------------
    def classical(self, D, n_components=None):
        """
        Torgerson scaling. B = -1/2 J D^2 J; coordinates are the leading
        eigenvectors of B scaled by the square root of their eigenvalues.
        Negative eigenvalues mean the input is not Euclidean; they are
        reported and left out of the configuration.
        """
        M = self.validate_dissimilarity(D)
        n = M.shape[0]
        k = self._n_components(n_components, n)

        J = np.eye(n) - np.ones((n, n)) / n
        B = -0.5 * J @ (M ** 2) @ J

        eigvals, eigvecs = np.linalg.eigh(B)
        order = np.argsort(eigvals)[::-1]
        eigvals, eigvecs = eigvals[order], eigvecs[:, order]
        self.eigenvalues_ = eigvals

        tol = 1e-10 * max(1.0, np.abs(eigvals).max())
        negative = eigvals < -tol
        if negative.any():
            print(f"Input is not Euclidean: {negative.sum()} negative eigenvalues "
                  f"(largest {eigvals[negative].min():.3g})")

        positive = np.clip(eigvals[:k], 0, None)
        X = eigvecs[:, :k] * np.sqrt(positive)

        # Signs are arbitrary; fix them so the largest coordinate is positive
        idx = np.argmax(np.abs(X), axis=0)
        signs = np.sign(X[idx, np.arange(k)])
        signs[signs == 0] = 1
        X = X * signs

        abs_total = np.abs(eigvals).sum()
        pos_total = np.clip(eigvals, 0, None).sum()
        self.results_summary['classical'] = {
            'stress': self.kruskal_stress(M, X),
            'gof_abs': positive.sum() / abs_total if abs_total > 0 else 0.0,
            'gof_pos': positive.sum() / pos_total if pos_total > 0 else 0.0,
            'n_negative_eigenvalues': int(negative.sum()),
        }
        return self._frame(X, D)

    def metric(self, D, n_components=None):
        """Metric MDS: distances in the embedding approximate D itself."""
        return self._smacof(D, n_components, metric=True)

    def nonmetric(self, D, n_components=None):
        """Non-metric (ordinal) MDS: only the rank order of D is preserved."""
        return self._smacof(D, n_components, metric=False)

    def _smacof(self, D, n_components, metric):
        M = self.validate_dissimilarity(D)
        k = self._n_components(n_components, M.shape[0])
        name = 'metric' if metric else 'nonmetric'

        model = MDS(
            n_components=k,
            metric=metric,
            n_init=self.n_init,
            max_iter=self.max_iter,
            random_state=self.random_state,
            dissimilarity='precomputed',
        )
        X = model.fit_transform(M)

        stress = self.kruskal_stress(M, X, nonmetric=not metric)
        self.results_summary[name] = {
            'stress': stress,
            'raw_stress': float(model.stress_),
            'n_iter': int(model.n_iter_),
        }
        print(f"{name.capitalize()} MDS: Kruskal stress = {stress:.4f} ({self.interpret_stress(stress)})")
        return self._frame(X, D)

    # -----------------------------------------------------------------
    # Fit diagnostics
    # -----------------------------------------------------------------
    @staticmethod
    def embedded_distances(X):
        return squareform(pdist(np.asarray(X, dtype=float)))

    def kruskal_stress(self, D, X, nonmetric=False):
        """
        Kruskal's Stress-1: sqrt(sum (d_ij - t_ij)^2 / sum d_ij^2) over pairs,
        where d are embedded distances and t the targets. Targets are the
        dissimilarities themselves (metric) or their isotonic regression on
        the distances (non-metric disparities).
        """
        M = np.asarray(D, dtype=float)
        iu = np.triu_indices(M.shape[0], k=1)
        delta = M[iu]
        d = self.embedded_distances(X)[iu]

        if nonmetric:
            target = IsotonicRegression().fit_transform(delta, d)
            denom = np.sum(d ** 2)
        else:
            target = delta
            denom = np.sum(delta ** 2)

        if denom == 0:
            return 0.0
        return float(np.sqrt(np.sum((d - target) ** 2) / denom))

    @staticmethod
    def interpret_stress(value):
        for cutoff, label in config.STRESS_LABELS:
            if value <= cutoff:
                return label
        return 'poor'

    def shepard_table(self, D, X):
        """
        Plot-ready Shepard diagram data: one row per object pair with the
        input dissimilarity, the embedded distance and the monotone disparity.
        """
        M = np.asarray(D, dtype=float)
        iu = np.triu_indices(M.shape[0], k=1)
        labels = list(D.index) if isinstance(D, pd.DataFrame) else list(range(M.shape[0]))
        d = self.embedded_distances(X)[iu]
        delta = M[iu]

        table = pd.DataFrame({
            'object1': [labels[i] for i in iu[0]],
            'object2': [labels[j] for j in iu[1]],
            'dissimilarity': delta,
            'distance': d,
            'disparity': IsotonicRegression().fit_transform(delta, d),
        })
        return table.sort_values('dissimilarity').reset_index(drop=True)

    def compare(self, D):
        """Runs all three solvers and returns their stress side by side."""
        self.classical(D)
        self.metric(D)
        self.nonmetric(D)
        rows = []
        for name, res in self.results_summary.items():
            rows.append({'method': name, 'stress': res['stress'], 'fit': self.interpret_stress(res['stress'])})
        return pd.DataFrame(rows)

    def _n_components(self, n_components, n):
        k = self.n_components if n_components is None else n_components
        if not 1 <= k <= n:
            raise ValueError(f"n_components must be between 1 and {n} (number of objects), got {k}")
        return int(k)

    def _frame(self, X, D):
        index = D.index if isinstance(D, pd.DataFrame) else None
        return pd.DataFrame(X, index=index, columns=[f"Dim{i + 1}" for i in range(X.shape[1])])


if __name__ == "__main__":
    try:
        from data_generator import generate_point_configuration

        points = generate_point_configuration()
        engine = ScalingEngine()
        D = engine.distance_matrix(points.drop(columns=['Group']))

        coords = engine.classical(D)
        print("Classical MDS coordinates:\n", coords.head())
        print("\nStress comparison:\n", engine.compare(D))
    except Exception as e:
        print(f"Test failed: {e}")
