class MethodologyDocumentation:
    def print_report(self):
        report = """
================================================================================
MULTIVARIATE EXPLORATION TOOLKIT: METHODOLOGY REPORT
================================================================================

1. EXPLORE BEFORE YOU REDUCE
--------------------------------------------------------------------------------
Every analysis starts with a per-variable profile and the correlation matrix.

- Location & Spread: Mean, Median, Std, Min/Max (are scales comparable?)
- Shape: Skewness, Kurtosis (is a correlation a fair summary?)
- Outliers: Fraction beyond 3 sigma (they pull components and factors)
- Correlations: Pairs with |r| >= 0.3; without them there is nothing to reduce

2. MISSING DATA
--------------------------------------------------------------------------------
Decompositions need a complete table. Pick the imputation by how much is missing:

- < 5% missing:   Listwise deletion is acceptable (if the data is MCAR)
- 5-10% missing:  Mean / Median fill (shrinks variances and correlations)
- 10-20% missing: Regression imputation (OLS on the other variables;
                  add residual noise to keep the variance)
- 20-50% missing: Iterative (chained equations) or KNN imputation
- > 50% missing:  Drop the variable

Observed values are never changed by any method.

3. PRINCIPAL COMPONENT ANALYSIS (PCA)
--------------------------------------------------------------------------------
Use PCA when the goal is to summarise ALL the variance of correlated variables
in fewer uncorrelated components (data compression, noise removal, inputs for
later models).

- Correlation vs Covariance: Use the correlation matrix when variables are on
  different scales; covariance only when the units are shared.
- Solvers: Eigendecomposition of the correlation/covariance matrix and SVD of
  the centred data give the same eigenvalues.
- How many components: Kaiser criterion (eigenvalue > 1), cumulative variance
  (e.g. 90%), or the elbow of the scree table.
- Loadings: Eigenvectors scaled by sqrt(eigenvalue) = correlation of each
  variable with the component.

4. FACTOR ANALYSIS (FA)
--------------------------------------------------------------------------------
Use FA when the goal is to EXPLAIN the correlations through latent constructs
(e.g. questionnaire items measuring a few traits). FA models only the shared
variance (communality); the rest is unique variance.

- Adequacy first:
    KMO >= 0.9 marvelous, 0.8 meritorious, 0.7 middling, 0.6 mediocre,
    0.5 miserable, below 0.5 unacceptable.
    Bartlett's test of sphericity must reject the identity matrix (p < 0.05).
    At least 5 observations per variable.
- Number of factors: Parallel analysis (eigenvalues above random data)
  is more reliable than the Kaiser criterion.
- Extraction: Principal axis factoring (no distributional assumption) or
  Maximum likelihood (normal data, allows fit testing).
- Rotation: Varimax when factors are expected to be independent,
  Promax when they may correlate.

5. MULTIDIMENSIONAL SCALING (MDS)
--------------------------------------------------------------------------------
Use MDS when the input is a set of pairwise DISSIMILARITIES between objects
rather than variables measured on them, and the goal is a map of the objects.

- Classical (Torgerson): Eigendecomposition of the double-centred squared
  distances. Exact for Euclidean distances; equivalent to PCA scores.
- Metric: Stress minimization (SMACOF) on the dissimilarity values.
- Non-metric: Only the rank order of dissimilarities matters (ratings,
  rankings, perceived similarity).
- Fit (Kruskal Stress-1): <= 0.025 excellent, 0.05 good, 0.10 fair,
  above 0.20 poor. Check the Shepard table for systematic misfit.

6. CHOOSING THE TECHNIQUE
--------------------------------------------------------------------------------
[PCA]  Correlated variables, goal = compression, no latent model needed.
[FA]   Adequate KMO, significant Bartlett test, enough observations,
       goal = latent constructs.
[MDS]  Input is a dissimilarity matrix, goal = spatial map of objects.

================================================================================
"""
        print(report)


if __name__ == "__main__":
    docs = MethodologyDocumentation()
    docs.print_report()
