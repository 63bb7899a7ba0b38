"""
Experiments module for food web analysis.
Handles the extinction cascade sweep: drawing random extinction orders,
running and persisting every simulation, and aggregating the runs.
"""

from pathlib import Path

import numpy as np
import pandas as pd
from tqdm import tqdm

from config import CONFIG
from data_loader import build_node_index, subgroup_indices
from network_analysis import simulate_extinctions
from results_handler import write_record

DEFAULT_SUBGROUP = 'Normal'


def run_file_name(label, threshold, iteration):
    return f"cascade_{label}_t{threshold:.2f}_i{iteration:03d}.csv"


def unit_rng(seed, threshold_idx, iteration, subgroup_idx):
    """Independent generator for one (threshold, iteration, subgroup) unit"""
    return np.random.default_rng([seed, threshold_idx, iteration, subgroup_idx])


def draw_extinction_orders(index, groups, rngs):
    """
    Draw one random extinction order per subgroup.

    Args:
        index: NodeIndex of the food web
        groups: Output of subgroup_indices()
        rngs: Dict label -> numpy Generator (one independent draw per subgroup)

    Returns:
        dict: label -> list of node names in removal order
    """
    orders = {}
    for label, (_, _, indices) in groups.items():
        orders[label] = index.names_for(rngs[label].permutation(indices))
    return orders


def tag_run(run_df, taxon, subgroup, threshold, iteration):
    """Attach the sweep coordinates to a single simulation result"""
    tagged = run_df[['primary_extinctions', 'secondary_extinctions']].copy()
    tagged['taxon'] = taxon
    tagged['threshold'] = threshold
    tagged['iteration'] = iteration
    # Only the bird splits carry a subgroup column; the rest are filled on reload
    if subgroup is not None:
        tagged['subgroup'] = subgroup
    return tagged


def run_cascade_sweep(G, output_dir, thresholds=None, iterations=None, seed=None, resume=None):
    """
    Run the extinction cascade sweep and persist every run to its own file.

    For every threshold and iteration, an independent random extinction order
    is drawn for each subgroup (mammals, reptiles, birds, resident birds,
    non-resident birds) and simulated. Each result is written immediately so
    that no more than one run is held in memory.

    Args:
        G: Weighted food web
        output_dir: Directory for per-run CSV files
        thresholds: Interaction strength thresholds (default: CONFIG)
        iterations: Repetitions per threshold (default: CONFIG)
        seed: Base seed (default: CONFIG)
        resume: Skip runs whose file already exists (default: CONFIG)

    Returns:
        dict: Sweep report with 'written', 'skipped' and 'failed' entries
    """
    print("\n" + "=" * 80)
    print("PHASE 4: EXTINCTION CASCADE SWEEP")
    print("=" * 80)

    thresholds = CONFIG['thresholds'] if thresholds is None else thresholds
    iterations = CONFIG['cascade_iterations'] if iterations is None else iterations
    seed = CONFIG['seed'] if seed is None else seed
    resume = CONFIG['resume'] if resume is None else resume

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    index = build_node_index(G)
    groups = subgroup_indices(G, index)
    labels = list(groups)

    print(f"\nThresholds: {thresholds}")
    print(f"Iterations per threshold: {iterations}")
    for label, (_, _, indices) in groups.items():
        print(f"  - {label}: {len(indices):,} species")
        if len(indices) == 0:
            print(f"    ⚠ Subgroup '{label}' is empty, its runs will have no steps")

    report = {'written': 0, 'skipped': 0, 'failed': []}

    for t_idx, threshold in enumerate(thresholds):
        for iteration in tqdm(range(iterations), desc=f"  Threshold {threshold}"):
            rngs = {
                label: unit_rng(seed, t_idx, iteration, s_idx)
                for s_idx, label in enumerate(labels)
            }
            orders = draw_extinction_orders(index, groups, rngs)

            for label in labels:
                taxon, subgroup, _ = groups[label]
                run_file = output_dir / run_file_name(label, threshold, iteration)
                if resume and run_file.exists():
                    report['skipped'] += 1
                    continue

                try:
                    run_df = simulate_extinctions(G, orders[label], threshold)
                    write_record(tag_run(run_df, taxon, subgroup, threshold, iteration), run_file)
                    report['written'] += 1
                except Exception as e:
                    print(f"\n  ⚠ Run {label} (threshold={threshold}, iteration={iteration}) failed: {e}")
                    report['failed'].append((label, threshold, iteration))

    print(f"\n✓ Sweep complete: {report['written']:,} runs written, {report['skipped']:,} skipped")
    if report['failed']:
        print(f"  ⚠ {len(report['failed'])} runs failed; re-run to recompute only the missing files")

    return report


def load_cascade_runs(output_dir, thresholds=None, iterations=None):
    """
    Reload and concatenate the persisted cascade runs of a sweep.

    Records without a subgroup column (the undivided taxa) are labelled
    with the default 'Normal' subgroup.

    Args:
        output_dir: Directory of per-run CSV files
        thresholds: Keep only runs at these thresholds (default: all found)
        iterations: Keep only iterations below this count (default: all found)
    """
    output_dir = Path(output_dir)
    run_files = sorted(output_dir.glob("cascade_*.csv"))
    if not run_files:
        raise FileNotFoundError(f"No cascade runs found in {output_dir}")

    runs = pd.concat((pd.read_csv(f) for f in run_files), ignore_index=True, sort=False)

    # Files from earlier sweeps over a wider grid stay on disk
    if thresholds is not None:
        wanted = [round(t, 2) for t in thresholds]
        runs = runs[runs['threshold'].round(2).isin(wanted)]
    if iterations is not None:
        runs = runs[runs['iteration'] < iterations]
    if runs.empty:
        raise FileNotFoundError(f"No cascade runs for the requested grid in {output_dir}")

    runs = runs.reset_index(drop=True)
    if 'subgroup' not in runs.columns:
        runs['subgroup'] = DEFAULT_SUBGROUP
    runs['subgroup'] = runs['subgroup'].fillna(DEFAULT_SUBGROUP)

    return runs


def group_label(taxon, subgroup):
    if subgroup == DEFAULT_SUBGROUP:
        return taxon
    return f"{taxon} ({subgroup})"


def summarize_cascades(runs):
    """
    Aggregate cascade runs into mean and standard error per group.

    Args:
        runs: Concatenated runs from load_cascade_runs()

    Returns:
        pd.DataFrame: Columns ['taxon', 'subgroup', 'group', 'threshold',
            'primary_extinctions', 'mean', 'sem', 'n']
    """
    keys = ['taxon', 'subgroup', 'threshold', 'primary_extinctions']
    summary = (
        runs.groupby(keys)['secondary_extinctions']
        .agg(mean='mean', sem='sem', n='count')
        .reset_index()
    )
    summary.insert(
        2, 'group',
        [group_label(t, s) for t, s in zip(summary['taxon'], summary['subgroup'])]
    )
    return summary
