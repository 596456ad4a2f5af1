import os
import time

# Import modules
from data_generator import generate_synthetic_data, generate_point_configuration
from exploration import ExplorationEngine
from imputation import ImputationEngine
from pca import PCAEngine
from factor_analysis import AdequacyTester, FactorAnalysisEngine, suggest_n_factors
from mds import ScalingEngine
from method_selection import MethodAdvisor
from methodology import MethodologyDocumentation


def run_pipeline(n_samples=300, missing_rate=0.05, output_dir=None, print_methodology=True, df=None):
    print("================================================================================")
    print("STARTING MULTIVARIATE EXPLORATION PIPELINE")
    print("================================================================================")
    start_time = time.time()
    results = {}

    # 1. Data Generation (latent-factor items with MCAR gaps), unless a table is given
    print("\n[STEP 1] Generating Data...")
    if df is None:
        df = generate_synthetic_data(n_samples=n_samples, missing_rate=missing_rate)
    print(f"Using {len(df)} rows for {df.shape[1]} variables.")

    # 2. Exploration
    print("\n[STEP 2] Exploring Variables...")
    explorer = ExplorationEngine()
    results['summary'] = explorer.describe(df)
    results['correlated_pairs'] = explorer.high_correlation_pairs(df)
    print(f"{len(results['correlated_pairs'])} variable pairs with |r| >= {explorer.correlation_threshold}")

    # 3. Missing Data
    print("\n[STEP 3] Handling Missing Data...")
    advisor = MethodAdvisor()
    imputer = ImputationEngine(method='regression')
    results['missing'] = imputer.missing_summary(df)
    df, results['dropped'] = imputer.drop_sparse_variables(df)

    p_missing = float(df.isna().values.mean())
    strategy = advisor.recommend_imputation(p_missing)
    print(f"{p_missing:.1%} of remaining cells missing -> strategy '{strategy}'")

    if strategy in ImputationEngine.METHODS:
        complete_df = imputer.impute(df, method=strategy)
    else:
        # Nothing missing, or too much to trust a simple fill: regression
        complete_df = imputer.impute(df)
    results['imputed'] = complete_df

    # 4. Sampling Adequacy
    print("\n[STEP 4] Testing Sampling Adequacy...")
    adequacy = AdequacyTester().summary(complete_df)
    results['adequacy'] = adequacy
    print(f"KMO = {adequacy['kmo']:.3f} ({adequacy['kmo_label']}), "
          f"Bartlett chi2 = {adequacy['bartlett_chi_square']:.1f}, p = {adequacy['bartlett_p_value']:.2e}")

    # 5. PCA
    print("\n[STEP 5] Principal Component Analysis...")
    pca_engine = PCAEngine()
    results['pca_scores'] = pca_engine.fit_transform(complete_df)
    results['scree'] = pca_engine.scree_table()
    print(f"Kaiser criterion keeps {pca_engine.kaiser_components()} components.")

    # 6. Factor Analysis
    print("\n[STEP 6] Factor Analysis...")
    n_factors = suggest_n_factors(complete_df)
    print(f"Parallel analysis suggests {n_factors} factors.")
    fa_engine = FactorAnalysisEngine(n_factors=n_factors, rotation='varimax')
    fa_engine.fit(complete_df)
    results['loadings'] = fa_engine.loadings_
    results['factor_variance'] = fa_engine.factor_variance_
    results['factor_scores'] = fa_engine.transform(complete_df)

    # 7. MDS
    print("\n[STEP 7] Multidimensional Scaling...")
    points = generate_point_configuration()
    scaler = ScalingEngine()
    D = scaler.distance_matrix(points.drop(columns=['Group']))
    results['mds_coordinates'] = scaler.classical(D)
    results['mds_stress'] = scaler.compare(D)
    results['shepard'] = scaler.shepard_table(D, results['mds_coordinates'])
    print(results['mds_stress'].to_string(index=False))

    # 8. Method Advice
    print("\n[STEP 8] Recommending Techniques...")
    results['advice_table'] = advisor.recommend(complete_df)
    results['advice_dissimilarity'] = advisor.recommend(D)

    # 9. Methodology & Documentation
    if print_methodology:
        print("\n[STEP 9] Methodology Report...")
        MethodologyDocumentation().print_report()

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        for name in ('summary', 'imputed', 'scree', 'loadings', 'factor_variance', 'mds_coordinates', 'mds_stress'):
            results[name].to_csv(os.path.join(output_dir, f"{name}.csv"))

    elapsed = time.time() - start_time
    print("\n================================================================================")
    print(f"PIPELINE COMPLETE in {elapsed:.2f} seconds.")
    if output_dir:
        print(f"Tables saved to {output_dir}/")
    print("================================================================================")

    return results


if __name__ == "__main__":
    run_pipeline(output_dir="outputs")
