"""
Factor Analysis Engine
======================
Latent-variable modelling of the correlations between observed variables.

Steps:
    - Sampling adequacy: Kaiser-Meyer-Olkin (KMO) measure and Bartlett's
      test of sphericity decide whether factoring makes sense at all
    - Number of factors: Kaiser criterion or Horn's parallel analysis
    - Extraction: iterated principal axis factoring, or maximum likelihood
    - Rotation: varimax (orthogonal) or promax (oblique)
    - Scores: regression (Thurstone) factor scores

Unlike PCA, only the shared variance (communality) of each variable is
modelled; the rest is its uniqueness.
"""

import numpy as np
import pandas as pd
from scipy.stats import chi2
from sklearn.decomposition import FactorAnalysis
from sklearn.preprocessing import StandardScaler
import warnings

import config
from exploration import complete_frame

warnings.filterwarnings("ignore")


# -----------------------------------------------------------------
# Rotations
# -----------------------------------------------------------------
def varimax(loadings, normalize=True, max_iter=config.ROTATION_MAX_ITER, tol=config.ROTATION_TOL):
    """
    Orthogonal varimax rotation.
    Returns (rotated_loadings, rotation_matrix). With normalize=True rows are
    Kaiser-normalized (divided by the square root of their communality)
    before rotating and rescaled afterwards.
    """
    L = np.asarray(loadings, dtype=float)
    p, k = L.shape
    if k < 2:
        return L.copy(), np.eye(k)

    if normalize:
        h = np.sqrt((L ** 2).sum(axis=1))
        h[h == 0] = 1.0
        L = L / h[:, None]

    R = np.eye(k)
    d = 0.0
    for _ in range(max_iter):
        d_old = d
        rotated = L @ R
        target = rotated ** 3 - rotated @ np.diag((rotated ** 2).sum(axis=0)) / p
        u, s, vt = np.linalg.svd(L.T @ target)
        R = u @ vt
        d = s.sum()
        if d_old != 0 and d / d_old < 1 + tol:
            break

    rotated = L @ R
    if normalize:
        rotated = rotated * h[:, None]
    return rotated, R


def promax(loadings, power=config.PROMAX_POWER, normalize=True):
    """
    Oblique promax rotation built on varimax.
    Returns (pattern_loadings, transform_matrix, factor_correlation).
    """
    L = np.asarray(loadings, dtype=float)
    k = L.shape[1]
    if k < 2:
        return L.copy(), np.eye(k), np.eye(k)

    X, _ = varimax(L, normalize=normalize)

    # Target matrix: loadings raised to a power keep their sign and shrink small values
    Y = X * np.abs(X) ** (power - 1)

    U, *_ = np.linalg.lstsq(X, Y, rcond=None)
    d = np.diag(np.linalg.inv(U.T @ U))
    U = U @ np.diag(np.sqrt(d))

    pattern = X @ U
    phi = np.linalg.inv(U.T @ U)
    return pattern, U, phi


class AdequacyTester:
    """Checks whether a correlation matrix is worth factoring."""

    @staticmethod
    def _correlation(df):
        X = complete_frame(df)
        if X.shape[1] < 2:
            raise ValueError("Adequacy tests need at least two variables")
        R = np.corrcoef(X.values, rowvar=False)
        # Perfectly collinear variables leave R (numerically) singular
        if not np.all(np.isfinite(R)) or np.linalg.cond(R) > 1e12:
            raise np.linalg.LinAlgError("Correlation matrix is singular")
        return X, R

    def kmo(self, df):
        """
        Kaiser-Meyer-Olkin measure of sampling adequacy.
        Returns (overall_kmo, per_variable_msa Series). Values near 1 mean the
        partial correlations are small compared with the raw correlations.
        """
        X, R = self._correlation(df)
        R_inv = np.linalg.inv(R)

        # Anti-image (partial) correlations
        d = np.sqrt(np.diag(R_inv))
        partial = -R_inv / np.outer(d, d)

        off = ~np.eye(R.shape[0], dtype=bool)
        r2 = np.where(off, R ** 2, 0.0)
        q2 = np.where(off, partial ** 2, 0.0)

        msa = r2.sum(axis=0) / (r2.sum(axis=0) + q2.sum(axis=0))
        overall = r2.sum() / (r2.sum() + q2.sum())

        return float(overall), pd.Series(msa, index=X.columns, name='MSA')

    @staticmethod
    def interpret_kmo(value):
        for cutoff, label in config.KMO_LABELS:
            if value >= cutoff:
                return label
        return 'unacceptable'

    def bartlett_sphericity(self, df):
        """
        Bartlett's test that the correlation matrix is an identity matrix.
        Returns dict with chi_square, dof and p_value; a small p-value means
        there is correlation structure to factor.
        """
        X, R = self._correlation(df)
        n, p = X.shape

        _, logdet = np.linalg.slogdet(R)
        statistic = -(n - 1 - (2 * p + 5) / 6.0) * logdet
        dof = p * (p - 1) / 2.0
        p_value = chi2.sf(statistic, dof)

        return {'chi_square': float(statistic), 'dof': int(dof), 'p_value': float(p_value)}

    def summary(self, df):
        """Adequacy report row used by the pipeline and the method advisor."""
        overall, msa = self.kmo(df)
        bartlett = self.bartlett_sphericity(df)
        return {
            'kmo': overall,
            'kmo_label': self.interpret_kmo(overall),
            'min_msa': float(msa.min()),
            'weakest_variable': msa.idxmin(),
            'bartlett_chi_square': bartlett['chi_square'],
            'bartlett_dof': bartlett['dof'],
            'bartlett_p_value': bartlett['p_value'],
            'factorable': overall >= config.KMO_MINIMUM and bartlett['p_value'] < config.BARTLETT_ALPHA,
        }


def suggest_n_factors(df, method='parallel', n_iter=config.PARALLEL_ITERATIONS,
                      percentile=config.PARALLEL_PERCENTILE, random_state=config.RANDOM_STATE):
    """
    Number of factors to extract.
    - kaiser:   eigenvalues of the correlation matrix above 1
    - parallel: eigenvalues above the chosen percentile of eigenvalues from
                random normal data of the same shape (Horn, 1965)
    """
    X = complete_frame(df)
    eigvals = np.sort(np.linalg.eigvalsh(np.corrcoef(X.values, rowvar=False)))[::-1]

    if method == 'kaiser':
        return max(1, int(np.sum(eigvals > config.KAISER_EIGENVALUE)))
    if method != 'parallel':
        raise ValueError(f"Unknown method: {method}")

    rng = np.random.default_rng(random_state)
    n, p = X.shape
    random_eigs = np.empty((n_iter, p))
    for i in range(n_iter):
        sample = rng.normal(size=(n, p))
        random_eigs[i] = np.sort(np.linalg.eigvalsh(np.corrcoef(sample, rowvar=False)))[::-1]
    threshold = np.percentile(random_eigs, percentile, axis=0)

    # Count leading eigenvalues that beat chance
    above = eigvals > threshold
    n_factors = int(np.argmin(above)) if not above.all() else p
    return max(1, n_factors)


class FactorAnalysisEngine:
    def __init__(self, n_factors=None, method='principal', rotation='varimax',
                 max_iter=config.PAF_MAX_ITER, tol=config.PAF_TOL, random_state=config.RANDOM_STATE):
        if method not in ('principal', 'ml'):
            raise ValueError(f"Unknown extraction method: {method}")
        if rotation not in ('varimax', 'promax', None):
            raise ValueError(f"Unknown rotation: {rotation}")
        self.n_factors = n_factors
        self.method = method
        self.rotation = rotation
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

        self.columns_ = None
        self.n_factors_ = None
        self.loadings_ = None
        self.structure_ = None
        self.communalities_ = None
        self.uniquenesses_ = None
        self.factor_variance_ = None
        self.factor_correlation_ = None
        self.scaler_ = None
        self.correlation_ = None
        self.heywood_ = []
        self.n_iter_ = 0

    def fit(self, df):
        """
        Main entry point.
        Input:  complete numeric DataFrame (observations x variables)
        Output: self, with loadings and variance tables filled in
        """
        self.heywood_ = []
        self.n_iter_ = 0

        # Collinear variables have no inverse correlation matrix to factor
        X, R = AdequacyTester._correlation(df)
        p = X.shape[1]
        self.columns_ = list(X.columns)
        self.scaler_ = StandardScaler().fit(X.values)
        self.correlation_ = R

        if self.n_factors is None:
            k = min(suggest_n_factors(X, random_state=self.random_state), p - 1)
        else:
            k = self.n_factors
        if not 1 <= k < p:
            raise ValueError(f"n_factors must be between 1 and {p - 1}")
        self.n_factors_ = k

        print(f"Extracting {k} factors from {p} variables ({self.method}, rotation={self.rotation})...")

        if self.method == 'principal':
            L = self._principal_axis(R, k)
        else:
            L = self._maximum_likelihood(X, k)
        L, capped = self._cap_communalities(L)
        self.heywood_ = [self.columns_[j] for j in capped]

        phi = np.eye(k)
        if self.rotation == 'varimax':
            L, _ = varimax(L)
        elif self.rotation == 'promax':
            L, _, phi = promax(L)

        # Each factor is oriented so its loadings sum to a positive value;
        # flips are mirrored in the factor correlations
        signs = np.sign(L.sum(axis=0))
        signs[signs == 0] = 1
        L = L * signs
        phi = phi * np.outer(signs, signs)

        names = [f"Factor{i + 1}" for i in range(k)]
        self.loadings_ = pd.DataFrame(L, index=self.columns_, columns=names)
        self.factor_correlation_ = pd.DataFrame(phi, index=names, columns=names)
        self.structure_ = pd.DataFrame(L @ phi, index=self.columns_, columns=names)

        # Communality: variance a variable shares with the factors
        h2 = np.sum(L * (L @ phi), axis=1)
        self.communalities_ = pd.Series(h2, index=self.columns_, name='communality')
        self.uniquenesses_ = pd.Series(1 - h2, index=self.columns_, name='uniqueness')

        ss = (L ** 2).sum(axis=0)
        self.factor_variance_ = pd.DataFrame({
            'ss_loadings': ss,
            'proportion': ss / p,
            'cumulative': np.cumsum(ss / p),
        }, index=names)

        if self.heywood_:
            print(f"Heywood case: communality capped at 1 for {self.heywood_}")

        return self

    def fit_transform(self, df):
        return self.fit(df).transform(df)

    def transform(self, df):
        """Regression (Thurstone) factor scores: Z R^-1 S, S = structure matrix."""
        if self.loadings_ is None:
            raise ValueError("FactorAnalysisEngine is not fitted yet; call fit() first")
        X = complete_frame(df)[self.columns_]
        Z = self.scaler_.transform(X.values)
        weights = np.linalg.solve(self.correlation_, self.structure_.values)
        return pd.DataFrame(Z @ weights, index=X.index, columns=self.loadings_.columns)

    # -----------------------------------------------------------------
    # Extraction
    # -----------------------------------------------------------------
    def _principal_axis(self, R, k):
        """
        Iterated principal axis factoring. Starts from squared multiple
        correlations and re-estimates communalities until they settle.
        """
        h2 = 1 - 1 / np.diag(np.linalg.inv(R))

        for i in range(self.max_iter):
            reduced = R.copy()
            np.fill_diagonal(reduced, h2)

            eigvals, eigvecs = np.linalg.eigh(reduced)
            order = np.argsort(eigvals)[::-1][:k]
            eigvals = np.clip(eigvals[order], 0, None)
            L = eigvecs[:, order] * np.sqrt(eigvals)

            new_h2 = np.minimum((L ** 2).sum(axis=1), 1.0)

            delta = np.max(np.abs(new_h2 - h2))
            h2 = new_h2
            if delta < self.tol:
                break

        self.n_iter_ = i + 1
        return L

    @staticmethod
    def _cap_communalities(L):
        """
        Heywood cases: rows whose squared loadings sum past 1 are rescaled to
        unit length, so no communality exceeds 1 and no uniqueness is negative.
        Returns (capped loadings, positions of the capped rows).
        """
        L = np.array(L, dtype=float)
        norms = np.sqrt((L ** 2).sum(axis=1))
        over = np.flatnonzero(norms > 1)
        L[over] = L[over] / norms[over, None]
        return L, list(over)

    def _maximum_likelihood(self, X, k):
        Z = self.scaler_.transform(X.values)
        fa = FactorAnalysis(n_components=k, random_state=self.random_state)
        fa.fit(Z)
        self.n_iter_ = fa.n_iter_
        return fa.components_.T


if __name__ == "__main__":
    try:
        from data_generator import generate_synthetic_data

        df = generate_synthetic_data()

        tester = AdequacyTester()
        adequacy = tester.summary(df)
        print(f"KMO = {adequacy['kmo']:.3f} ({adequacy['kmo_label']}), "
              f"Bartlett p = {adequacy['bartlett_p_value']:.2e}")

        print(f"Parallel analysis suggests {suggest_n_factors(df)} factors")

        engine = FactorAnalysisEngine()
        engine.fit(df)
        print("\nRotated Loadings:\n", engine.loadings_.round(2))
        print("\nCommunalities:\n", engine.communalities_.round(2))
        print("\nVariance Explained:\n", engine.factor_variance_.round(3))
    except Exception as e:
        print(f"Test failed: {e}")
