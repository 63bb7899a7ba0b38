"""
Food Web Extinction Cascades and Motif Significance

This script runs the full analysis of a weighted predator-prey food web:
- Builds the weighted food web (prey -> predator) and the taxon-annotated
  trophic graph (predator -> prey)
- Computes the taxon homophily index of the trophic graph
- Sweeps extinction cascade simulations over interaction strength thresholds,
  random extinction orders and species subgroups, persisting every run
- Aggregates the runs into mean ± standard error secondary extinctions
- Counts apparent competition and tri-trophic cascade motifs in the real
  graphs and in random null models, persisting every trial
- Scores motif over/under-representation with z-scores and p-values
"""

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path

from config import CONFIG, DATA_DIR, RESULTS_DIR, ensure_output_dirs
from data_loader import load_food_web, load_trophic_graph
from experiments import run_cascade_sweep, load_cascade_runs, summarize_cascades
from motifs import (
    APPARENT_COMPETITION,
    TROPHIC_CASCADE,
    count_apparent_competition,
    trophic_cascade_rows,
    aggregate_chain_rows,
    run_apparent_competition_trials,
    run_trophic_cascade_trials,
)
from network_analysis import compute_homophily
from results_handler import load_trial_records, analyze_results, save_results
from significance import apparent_competition_zscores, trophic_cascade_zscores
from visualization import create_visualizations


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extinction cascades and motif significance in a predator-prey food web."
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DATA_DIR,
        help="Directory containing the input tables (default: data)",
    )
    parser.add_argument(
        "--results-dir",
        type=Path,
        default=RESULTS_DIR,
        help="Directory to write per-run records, tables and figures (default: results)",
    )
    parser.add_argument("--iterations", type=int, default=CONFIG['cascade_iterations'],
                        help="Random extinction orders per threshold")
    parser.add_argument("--ac-trials", type=int, default=CONFIG['apparent_competition_trials'],
                        help="Null-model trials for the apparent competition motif")
    parser.add_argument("--tc-trials", type=int, default=CONFIG['trophic_cascade_trials'],
                        help="Null-model trials for the tri-trophic cascade motif")
    parser.add_argument("--tc-start", type=int, default=CONFIG['trophic_cascade_start_trial'],
                        help="First tri-trophic cascade trial index")
    parser.add_argument("--seed", type=int, default=CONFIG['seed'])
    parser.add_argument("--no-resume", action="store_true",
                        help="Recompute runs and trials even if their files exist")
    parser.add_argument("--skip-cascades", action="store_true", help="Skip the extinction cascade sweep")
    parser.add_argument("--skip-motifs", action="store_true", help="Skip the motif analysis")
    parser.add_argument("--no-plots", action="store_true", help="Do not create figures")
    return parser.parse_args(argv)


def run_motif_analysis(food_web, trophic_graph, dirs, args):
    """Count motifs in the real graphs and null models, then score them"""
    print("\n" + "=" * 80)
    print("PHASE 6: MOTIF ENUMERATION AND SIGNIFICANCE")
    print("=" * 80)

    resume = not args.no_resume

    print("\nCounting motifs in the real graphs...")
    ac_observed = count_apparent_competition(food_web)
    tc_observed = aggregate_chain_rows(trophic_cascade_rows(trophic_graph), trial=-1)
    print(f"  ✓ Apparent competition: {ac_observed['corrected_number'].sum():,.0f} category tallies")
    print(f"  ✓ Tri-trophic cascade: {len(tc_observed):,} (role, taxon) counts")

    run_apparent_competition_trials(
        food_web, dirs['apparent_competition'], trials=args.ac_trials, seed=args.seed, resume=resume
    )
    run_trophic_cascade_trials(
        trophic_graph, dirs['trophic_cascade'], trials=args.tc_trials, start=args.tc_start,
        seed=args.seed, resume=resume
    )

    # Only the trials requested by this run, not leftovers of earlier ones
    ac_trials, ac_trial_ids = load_trial_records(
        dirs['apparent_competition'], APPARENT_COMPETITION, trials=range(args.ac_trials)
    )
    tc_trials, tc_trial_ids = load_trial_records(
        dirs['trophic_cascade'], TROPHIC_CASCADE, trials=range(args.tc_start, args.tc_trials)
    )
    records_used = {
        'Apparent competition null models': len(ac_trial_ids),
        'Tri-trophic cascade null models': len(tc_trial_ids),
    }

    ac_scores = apparent_competition_zscores(ac_observed, ac_trials)
    tc_scores = trophic_cascade_zscores(tc_observed, tc_trials, tc_trial_ids)
    print(f"\n✓ Scored {len(ac_scores)} apparent competition categories "
          f"and {len(tc_scores)} tri-trophic cascade combinations")

    return ac_observed, ac_scores, tc_observed, tc_scores, records_used


def main(argv=None):
    """Main execution function"""
    args = parse_args(argv)

    print("\n" + "=" * 80)
    print("FOOD WEB EXTINCTION CASCADES AND MOTIF SIGNIFICANCE")
    print("=" * 80)
    print(f"\nExecution started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

    start_time = time.time()
    CONFIG['cascade_iterations'] = args.iterations
    CONFIG['apparent_competition_trials'] = args.ac_trials
    CONFIG['trophic_cascade_trials'] = args.tc_trials
    CONFIG['trophic_cascade_start_trial'] = args.tc_start
    CONFIG['seed'] = args.seed
    CONFIG['resume'] = not args.no_resume

    # Phases 1-2: Load graphs (fatal on missing or malformed input)
    try:
        food_web, attributes = load_food_web(args.data_dir)
        trophic_graph = load_trophic_graph(args.data_dir, attributes)
    except (FileNotFoundError, ValueError) as e:
        print(f"\n[ERROR] {e}")
        return 1

    dirs = ensure_output_dirs(args.results_dir)

    # Phase 3: Homophily
    print("\n" + "=" * 80)
    print("PHASE 3: TAXON HOMOPHILY")
    print("=" * 80)
    homophily = compute_homophily(trophic_graph, 'taxon')
    print(f"\n✓ Homophily index: {homophily:.4f}")

    # Phases 4-5: Extinction cascades
    sweep_report = None
    cascade_summary = None
    records_used = {}
    if not args.skip_cascades:
        sweep_report = run_cascade_sweep(
            food_web, dirs['cascades'], iterations=args.iterations, seed=args.seed,
            resume=not args.no_resume
        )

        print("\n" + "=" * 80)
        print("PHASE 5: AGGREGATING CASCADE RUNS")
        print("=" * 80)
        runs = load_cascade_runs(dirs['cascades'], thresholds=CONFIG['thresholds'], iterations=args.iterations)
        records_used['Cascade runs'] = len(runs[['taxon', 'subgroup', 'threshold', 'iteration']].drop_duplicates())
        cascade_summary = summarize_cascades(runs)
        print(f"\n✓ Aggregated {len(runs):,} rows into {len(cascade_summary):,} summary points")

    # Phase 6: Motifs
    ac_observed = ac_scores = tc_observed = tc_scores = None
    if not args.skip_motifs:
        ac_observed, ac_scores, tc_observed, tc_scores, motif_records = run_motif_analysis(
            food_web, trophic_graph, dirs, args
        )
        records_used.update(motif_records)

    # Phase 7: Analyze
    analyze_results(cascade_summary, homophily, ac_scores, tc_scores)

    # Phase 8: Visualizations
    if not args.no_plots:
        create_visualizations(dirs['plots'], cascade_summary, ac_scores, tc_scores)

    # Phase 9: Save
    save_results(
        dirs['results'], cascade_summary, homophily,
        ac_observed=ac_observed, ac_scores=ac_scores,
        tc_observed=tc_observed, tc_scores=tc_scores,
        sweep_report=sweep_report, records_used=records_used
    )

    elapsed = time.time() - start_time
    print("\n" + "=" * 80)
    print("FOOD WEB ANALYSIS COMPLETE")
    print("=" * 80)
    print(f"\nTotal execution time: {elapsed:.1f} seconds ({elapsed/60:.1f} minutes)")
    print(f"✓ Results saved to: {dirs['results']}/")
    print("\n" + "=" * 80 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
