# ─────────────────────────────────────────────
# SHARED THRESHOLDS
# ─────────────────────────────────────────────

RANDOM_STATE             = 42

# Exploration
CORRELATION_THRESHOLD    = 0.3    # |r| above this -> variables share enough variance for PCA/FA
OUTLIER_Z                = 3.0    # observations beyond 3 sigma count as outliers

# PCA
VARIANCE_THRESHOLD       = 0.90   # keep components until 90% of variance is explained
KAISER_EIGENVALUE        = 1.0    # eigenvalue cutoff on a correlation matrix

# Factor analysis
KMO_MINIMUM              = 0.5    # below this the data is unacceptable for FA
BARTLETT_ALPHA           = 0.05
PAF_MAX_ITER             = 100
PAF_TOL                  = 1e-4
ROTATION_MAX_ITER        = 500
ROTATION_TOL             = 1e-6
PROMAX_POWER             = 4
PARALLEL_ITERATIONS      = 100
PARALLEL_PERCENTILE      = 95

KMO_LABELS = [
    (0.9, 'marvelous'),
    (0.8, 'meritorious'),
    (0.7, 'middling'),
    (0.6, 'mediocre'),
    (0.5, 'miserable'),
    (0.0, 'unacceptable'),
]

# MDS (Kruskal, 1964)
MDS_N_INIT               = 4
MDS_MAX_ITER             = 300

STRESS_LABELS = [
    (0.025, 'excellent'),
    (0.05, 'good'),
    (0.10, 'fair'),
    (0.20, 'poor'),
]

# Missing data
LISTWISE_MAX_MISSING     = 0.05   # listwise deletion is acceptable below 5% missing
SIMPLE_FILL_MAX_MISSING  = 0.10
REGRESSION_MAX_MISSING   = 0.20
DROP_VARIABLE_MISSING    = 0.50   # variables missing more than half their values are dropped

# Sample size
MIN_SAMPLE_RATIO         = 5      # observations per variable recommended for FA
