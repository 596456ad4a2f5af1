import numpy as np
import pandas as pd

import config


def generate_synthetic_data(n_samples=300, n_factors=3, items_per_factor=4,
                            noise=0.5, missing_rate=0.0, seed=config.RANDOM_STATE):
    """
    Generates a synthetic questionnaire-style table driven by latent factors.

    Structure:
    1. n_factors independent standard-normal latent factors
    2. items_per_factor observed items per factor, each loading on exactly one factor
    3. Gaussian measurement noise on every item
    4. Optional MCAR missingness (missing_rate of the cells, never a whole row)
    """
    rng = np.random.default_rng(seed)

    latent = rng.normal(0, 1, size=(n_samples, n_factors))

    columns = {}
    for f in range(n_factors):
        for i in range(items_per_factor):
            loading = rng.uniform(0.6, 0.9)
            # Items sit on different scales like raw survey scores
            location = rng.uniform(2, 10)
            scale = rng.uniform(0.5, 3)
            item = loading * latent[:, f] + rng.normal(0, noise, n_samples)
            columns[f"F{f + 1}_item{i + 1}"] = location + scale * item

    df = pd.DataFrame(columns)

    if missing_rate > 0:
        mask = rng.random(df.shape) < missing_rate
        # Keep at least one observed value per row
        full_rows = mask.all(axis=1)
        mask[full_rows, rng.integers(0, df.shape[1], full_rows.sum())] = False
        df = df.mask(mask)

    return df


def generate_point_configuration(n_points=20, n_dims=2, n_groups=3, seed=config.RANDOM_STATE):
    """
    Generates a labelled point cloud with n_groups well separated groups.
    Pairwise distances between the points are the MDS example input.
    """
    rng = np.random.default_rng(seed)

    centres = rng.uniform(-10, 10, size=(n_groups, n_dims))
    groups = np.arange(n_points) % n_groups
    coords = centres[groups] + rng.normal(0, 1, size=(n_points, n_dims))

    df = pd.DataFrame(coords, columns=[f"dim{d + 1}" for d in range(n_dims)])
    df.index = [f"P{i + 1:02d}" for i in range(n_points)]
    df['Group'] = [f"G{g + 1}" for g in groups]
    return df


if __name__ == "__main__":
    print("Generating synthetic data...")
    df = generate_synthetic_data(missing_rate=0.05)
    print(f"Generated {len(df)} rows for {df.shape[1]} items.")
    print("Sample:\n", df.head())

    print("\nMissing values per item:")
    print(df.isna().sum())

    points = generate_point_configuration()
    print("\nPoint configuration:\n", points.head())
