#!/usr/bin/env python
# scripts/01_local_gradient_ordination.py

"""
Ordinate microbiome samples on local gradient distances.

This script:
1. Loads an abundance table (taxa as rows, samples as columns)
2. Filters and transforms the abundance data
3. Calculates a beta diversity distance matrix
4. Replaces it with local gradient distances over a k-nearest-neighbor graph
5. Ordinates both the raw and the local gradient distances
6. Runs PERMANOVA on both matrices when metadata is available

Usage:
    python scripts/01_local_gradient_ordination.py --abundance-file FILE [--config CONFIG_FILE]
"""

import argparse
import copy
import os
import sys

import pandas as pd
import yaml

from ordination_tools import (
    OrdinationError,
    calculate_beta_diversity,
    filter_low_abundance,
    local_gradient_distance,
    log_print,
    ordinate,
    perform_permanova,
    preprocess_abundance_data,
    setup_logger,
    smallest_connected_k
)

DEFAULT_CONFIG = {
    'metadata': {
        'filename': None,
        'sample_id_column': 'SampleID',
        'group_variables': []
    },
    'preprocessing': {
        'normalize': True,
        'transform': 'hellinger',
        'min_prevalence': 0.1,
        'min_abundance': 0.01
    },
    'diversity': {
        'beta_metric': 'braycurtis'
    },
    'local_gradient': {
        'k': None,
        'tolerance': 1e-8
    },
    'ordination': {
        'method': 'PCoA',
        'n_components': 2,
        'random_state': 42
    },
    'permanova': {
        'permutations': 999
    }
}


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Ordinate samples on local gradient distances")

    parser.add_argument(
        "--config",
        default="config/analysis_parameters.yml",
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "--abundance-file",
        required=True,
        help="Path to abundance CSV file (taxa as rows, samples as columns)"
    )

    parser.add_argument(
        "--metadata",
        default=None,
        help="Path to metadata CSV file (default: from config file)"
    )

    parser.add_argument(
        "--output-dir",
        default="results/local_gradient",
        help="Directory for output files (default: results/local_gradient)"
    )

    parser.add_argument(
        "--k",
        type=int,
        default=None,
        help="Neighborhood size (default: from config, else smallest connected k)"
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to log file (default: log to console only)"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def load_config(config_path):
    """Load the YAML config and fill in any missing values from DEFAULT_CONFIG."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if not config_path or not os.path.exists(config_path):
        log_print(f"Config file not found at {config_path}, using default parameters", level="warning")
        return config

    with open(config_path, 'r') as f:
        user_config = yaml.safe_load(f) or {}

    for section, values in user_config.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values

    return config


def load_metadata(metadata_file, sample_id_column):
    metadata_df = pd.read_csv(metadata_file)
    if sample_id_column in metadata_df.columns:
        metadata_df = metadata_df.set_index(sample_id_column)
    else:
        log_print(f"Warning: No {sample_id_column} column found in metadata, "
                  "using first column as index", level="warning")
        metadata_df = metadata_df.set_index(metadata_df.columns[0])

    metadata_df.index = metadata_df.index.astype(str)
    if metadata_df.index.duplicated().any():
        log_print(f"Found {metadata_df.index.duplicated().sum()} duplicate sample IDs in metadata",
                  level="warning")
        metadata_df = metadata_df[~metadata_df.index.duplicated(keep='first')]

    return metadata_df


def run_permanova(distance_matrices, metadata_df, group_vars, permutations):
    """Run PERMANOVA for every group variable on every named distance matrix."""
    rows = []
    for name, dm in distance_matrices.items():
        for var in group_vars:
            log_print(f"Performing PERMANOVA for {var} on {name} distances", level="info")
            result = perform_permanova(dm, metadata_df, var, permutations=permutations)
            rows.append({'distances': name, 'variable': var, **result})
    return pd.DataFrame(rows)


def main(argv=None):
    args = parse_arguments(argv)
    setup_logger(log_file=args.log_file, log_level=args.log_level)

    config = load_config(args.config)
    os.makedirs(args.output_dir, exist_ok=True)

    # Load abundance data
    if not os.path.exists(args.abundance_file):
        log_print(f"Abundance file not found: {args.abundance_file}", level="error")
        return 1

    abundance_df = pd.read_csv(args.abundance_file, index_col=0)
    abundance_df.columns = abundance_df.columns.astype(str)
    log_print(f"Loaded abundance data: {abundance_df.shape[0]} taxa, {abundance_df.shape[1]} samples",
              level="info")

    preprocessing = config['preprocessing']
    try:
        abundance_df = preprocess_abundance_data(abundance_df, normalize=preprocessing['normalize'])
        abundance_df = filter_low_abundance(
            abundance_df,
            min_prevalence=preprocessing['min_prevalence'],
            min_abundance=preprocessing['min_abundance']
        )
        abundance_df = preprocess_abundance_data(
            abundance_df, normalize=False, transform=preprocessing['transform']
        )

        beta_dm = calculate_beta_diversity(
            abundance_df, metric=config['diversity']['beta_metric'], normalize=False
        )

        tolerance = config['local_gradient']['tolerance']
        k = args.k if args.k is not None else config['local_gradient']['k']
        if k is None:
            k = smallest_connected_k(beta_dm, tolerance=tolerance)
            log_print(f"Using smallest connected neighborhood size k={k}", level="info")

        gradient_dm = local_gradient_distance(beta_dm, k, tolerance=tolerance)
        log_print(f"Computed local gradient distances with k={k}", level="info")

        ordination = config['ordination']
        distance_matrices = {'raw': beta_dm, 'local_gradient': gradient_dm}
        for name, dm in distance_matrices.items():
            coordinates, proportion_explained = ordinate(
                dm,
                method=ordination['method'],
                n_components=ordination['n_components'],
                random_state=ordination['random_state']
            )
            coordinates.to_csv(os.path.join(args.output_dir, f"ordination_{name}.tsv"), sep='\t')
            dm.to_data_frame().to_csv(
                os.path.join(args.output_dir, f"distance_matrix_{name}.tsv"), sep='\t'
            )
            if proportion_explained is not None:
                explained = ', '.join(f"{axis}: {value * 100:.2f}%"
                                      for axis, value in proportion_explained.items())
                log_print(f"{name} variance explained - {explained}", level="info")
    except OrdinationError as e:
        log_print(f"Local gradient ordination failed: {e}", level="error")
        return 1

    # PERMANOVA needs metadata and at least one grouping variable
    metadata_file = args.metadata or config['metadata']['filename']
    group_vars = config['metadata']['group_variables'] or []
    if metadata_file and os.path.exists(metadata_file) and group_vars:
        metadata_df = load_metadata(metadata_file, config['metadata']['sample_id_column'])
        permanova_df = run_permanova(
            distance_matrices, metadata_df, group_vars, config['permanova']['permutations']
        )
        permanova_file = os.path.join(args.output_dir, 'permanova_results.csv')
        permanova_df.to_csv(permanova_file, index=False)
        log_print(f"PERMANOVA results saved to {permanova_file}", level="info")
    elif metadata_file:
        log_print("Skipping PERMANOVA: metadata file or group variables not available", level="warning")

    log_print(f"Local gradient ordination complete. Results in {args.output_dir}", level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
