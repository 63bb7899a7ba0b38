"""
Results handling module for food web analysis.
Handles reloading of per-trial records, result analysis, summary
generation, and file saving.
"""

import re
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd

from config import CONFIG, SUMMARY_FILE_NAME


def write_record(table, path):
    """
    Write one per-unit CSV so that it only appears once complete.

    The table goes to a .tmp sibling first and is then moved into place, so
    an interrupted write never leaves a file that a resumed run would skip.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        table.to_csv(tmp_path, index=False)
        tmp_path.replace(path)
    finally:
        tmp_path.unlink(missing_ok=True)


def load_trial_records(directory, prefix, trials=None):
    """
    Reload and concatenate every per-trial CSV named <prefix>_trial_<n>.csv.

    Records may differ in their columns; absent columns are filled with NaN.
    Trials whose file holds no rows are still reported in the trial list.

    Args:
        directory: Directory holding the per-trial files
        prefix: Motif name the files start with
        trials: Trial indices to keep (default: every file found). Files
            left over from earlier runs with other trial ranges are ignored.

    Returns:
        tuple: (pd.DataFrame of all rows, sorted list of trial indices)
    """
    directory = Path(directory)
    trial_pattern = re.compile(rf"^{re.escape(prefix)}_trial_(\d+)\.csv$")
    wanted = None if trials is None else set(trials)

    frames = []
    found = []
    for path in sorted(directory.glob(f"{prefix}_trial_*.csv")):
        match = trial_pattern.match(path.name)
        if not match:
            continue
        trial = int(match.group(1))
        if wanted is not None and trial not in wanted:
            continue
        found.append(trial)
        try:
            frames.append(pd.read_csv(path))
        except pd.errors.EmptyDataError:
            print(f"  ⚠ {path.name} is empty, skipping...")

    frames = [f for f in frames if len(f) > 0]
    if frames:
        records = pd.concat(frames, ignore_index=True, sort=False)
    else:
        records = pd.DataFrame()

    return records, sorted(found)


def _print_zscores(title, scores, key_columns):
    print(f"\n{title}")
    if scores is None or len(scores) == 0:
        print("   (no categories with a defined z-score)")
        return
    print("   " + "-" * 96)
    key_width = 44
    print(f"   {'Category':<{key_width}} {'Observed':>10} {'Null mean':>10} {'Null SD':>10} {'Z':>8} {'p':>10}")
    print("   " + "-" * 96)
    for _, row in scores.iterrows():
        key = " / ".join(str(row[c]) for c in key_columns)
        print(f"   {key:<{key_width}} {row['observed']:>10.1f} {row['null_mean']:>10.2f} "
              f"{row['null_std']:>10.2f} {row['z_score']:>8.2f} {row['p_value']:>10.4f}")


def analyze_results(cascade_summary, homophily, ac_scores=None, tc_scores=None):
    """Analyze and display key results"""
    print("\n" + "=" * 80)
    print("PHASE 7: ANALYZING RESULTS")
    print("=" * 80)

    print(f"\n1. Taxon homophily index: {homophily:.4f}")

    print("\n2. Final secondary extinctions (mean ± SE at the last primary extinction):")
    if cascade_summary is not None and len(cascade_summary) > 0:
        print("   " + "-" * 70)
        print(f"   {'Group':<28} {'Threshold':<10} {'Primary':<10} {'Secondary':<20}")
        print("   " + "-" * 70)
        last = cascade_summary.sort_values('primary_extinctions').groupby(['group', 'threshold']).tail(1)
        for _, row in last.sort_values(['group', 'threshold']).iterrows():
            print(f"   {row['group']:<28} {row['threshold']:<10.2f} {row['primary_extinctions']:<10} "
                  f"{row['mean']:.2f} ± {row['sem']:.2f}")
    else:
        print("   (no cascade runs)")

    _print_zscores("3. Apparent competition motif (corrected numbers):", ac_scores, ['category'])
    _print_zscores("4. Tri-trophic cascade motif (role counts):", tc_scores, ['apex_filter', 'role', 'taxon'])


def save_results(results_dir, cascade_summary, homophily, ac_observed=None, ac_scores=None,
                 tc_observed=None, tc_scores=None, sweep_report=None, records_used=None):
    """Save all result tables and the summary report"""
    print("\n" + "=" * 80)
    print("PHASE 9: SAVING RESULTS")
    print("=" * 80)

    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    outputs = []

    tables = [
        ('cascade_summary.csv', cascade_summary, False),
        ('apparent_competition_observed.csv', ac_observed, True),
        ('apparent_competition_zscores.csv', ac_scores, False),
        ('trophic_cascade_observed.csv', tc_observed, False),
        ('trophic_cascade_zscores.csv', tc_scores, False),
    ]
    for file_name, table, keep_index in tables:
        if table is None:
            continue
        path = results_dir / file_name
        table.to_csv(path, index=keep_index)
        outputs.append(path)
        print(f"   ✓ Saved {path}")

    summary_file = results_dir / SUMMARY_FILE_NAME
    with open(summary_file, 'w') as f:
        f.write("=" * 80 + "\n")
        f.write("FOOD WEB EXTINCTION CASCADES AND MOTIF SIGNIFICANCE\n")
        f.write("=" * 80 + "\n")
        f.write(f"\nAnalysis Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

        f.write("\n" + "-" * 80 + "\n")
        f.write("METHODOLOGY\n")
        f.write("-" * 80 + "\n")
        f.write("\nExtinction cascades:\n")
        f.write(f"- Interaction strength thresholds: {CONFIG['thresholds']}\n")
        f.write(f"- Random extinction orders per threshold: {CONFIG['cascade_iterations']}\n")
        f.write("- Subgroups: mammals, reptiles, birds, resident birds, non-resident birds\n")
        f.write("- A consumer goes extinct once its remaining diet falls to (1 - threshold)\n")
        f.write("  of its original weighted in-strength\n")
        f.write("\nMotifs:\n")
        f.write(f"- Apparent competition: {CONFIG['apparent_competition_trials']} random null models\n")
        f.write(f"- Tri-trophic cascade: trials {CONFIG['trophic_cascade_start_trial']}"
                f"-{CONFIG['trophic_cascade_trials'] - 1}\n")
        f.write("- Null models: random directed graphs with the real node and edge count\n")
        f.write("- p-values: lower tail for negative z, upper tail otherwise\n")

        f.write("\n" + "-" * 80 + "\n")
        f.write("RESULTS\n")
        f.write("-" * 80 + "\n")
        if homophily is None or np.isnan(homophily):
            f.write("\nTaxon homophily index: undefined\n")
        else:
            f.write(f"\nTaxon homophily index: {homophily:.4f}\n")

        if sweep_report is not None:
            f.write(f"\nCascade runs written: {sweep_report['written']:,}, "
                    f"skipped: {sweep_report['skipped']:,}, failed: {len(sweep_report['failed']):,}\n")

        if records_used:
            f.write("\nRecords aggregated:\n")
            for name, count in records_used.items():
                f.write(f"- {name}: {count:,}\n")

        for title, scores in [("Apparent competition", ac_scores), ("Tri-trophic cascade", tc_scores)]:
            if scores is None:
                continue
            significant = scores[scores['p_value'] < 0.05]
            f.write(f"\n{title}: {len(scores)} scored categories, {len(significant)} with p < 0.05\n")
            for _, row in significant.iterrows():
                key_columns = [c for c in ('category', 'apex_filter', 'role', 'taxon') if c in scores.columns]
                key = " / ".join(str(row[c]) for c in key_columns)
                direction = "over" if row['z_score'] > 0 else "under"
                f.write(f"  - {key}: z = {row['z_score']:.2f} ({direction}-represented, p = {row['p_value']:.4f})\n")

        f.write("\n" + "-" * 80 + "\n")
        f.write("OUTPUT FILES\n")
        f.write("-" * 80 + "\n")
        for i, path in enumerate(outputs, start=1):
            f.write(f"\n{i}. {path.name}\n")

        f.write("\n" + "=" * 80 + "\n")
        f.write("END OF SUMMARY\n")
        f.write("=" * 80 + "\n")

    print(f"   ✓ Summary report saved to {summary_file}")
    return summary_file
