"""
Significance module for food web analysis.
Scores real-graph motif counts against the null-model distribution.
"""

import numpy as np
import pandas as pd
from scipy import stats

CHAIN_KEYS = ['apex_filter', 'role', 'taxon']


def one_tailed_p_value(z):
    """Lower tail for negative z, upper tail otherwise"""
    return float(stats.norm.cdf(z)) if z < 0 else float(stats.norm.sf(z))


def zscore_table(observed, null):
    """
    Z-scores of observed counts against null-model counts.

    Args:
        observed: Series of real-graph counts indexed by category
        null: DataFrame with one row per null-model trial and one column per
            category (columns must share observed's index structure)

    Returns:
        pd.DataFrame: One row per category with columns ['observed',
            'null_mean', 'null_std', 'z_score', 'p_value']. Categories
            whose z-score is undefined (no null samples or zero spread)
            are left out.
    """
    null = null.reindex(columns=observed.index)
    table = pd.DataFrame({
        'observed': observed.astype(float),
        'null_mean': null.mean(),
        'null_std': null.std(ddof=1),
    })
    table['z_score'] = (table['observed'] - table['null_mean']) / table['null_std']
    table['z_score'] = table['z_score'].replace([np.inf, -np.inf], np.nan)
    table = table.dropna(subset=['z_score']).copy()
    table['p_value'] = [one_tailed_p_value(z) for z in table['z_score']]
    return table.reset_index()


def apparent_competition_zscores(observed_counts, trials_df):
    """
    Z-scores per apparent competition category.

    Args:
        observed_counts: Output of count_apparent_competition() on the real graph
        trials_df: Concatenated per-trial corrected counts (one row per trial)
    """
    observed = observed_counts['corrected_number'].copy()
    observed.index.name = 'category'
    null = trials_df.drop(columns=['trial'], errors='ignore')
    return zscore_table(observed, null)


def trophic_cascade_zscores(observed_df, trials_df, trials):
    """
    Z-scores per (apex filter, role, taxon) of the tri-trophic cascade.

    A combination missing from a trial's records was not observed in that
    trial and counts as zero.

    Args:
        observed_df: aggregate_chain_rows() output for the real graph
        trials_df: Concatenated per-trial aggregates
        trials: Every trial index that completed (including trials without
            any chain)
    """
    observed = observed_df.groupby(CHAIN_KEYS)['count'].sum()

    if len(trials_df) > 0:
        null = trials_df.pivot_table(
            index='trial', columns=CHAIN_KEYS, values='count',
            aggfunc='sum', fill_value=0
        )
    else:
        null = pd.DataFrame(index=pd.Index([], name='trial'))

    combos = observed.index.union(null.columns) if len(null.columns) else observed.index
    observed = observed.reindex(combos, fill_value=0)
    null = null.reindex(index=list(trials), columns=combos, fill_value=0)

    return zscore_table(observed, null)
