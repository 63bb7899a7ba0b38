"""
Visualization module for food web analysis.
Handles creation of plots and charts.
"""

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns


def create_visualizations(plots_dir, cascade_summary=None, ac_scores=None, tc_scores=None):
    """
    Create cascade and motif significance plots.

    Args:
        plots_dir: Output directory for PNG files
        cascade_summary: Output of summarize_cascades()
        ac_scores: Apparent competition z-score table
        tc_scores: Tri-trophic cascade z-score table

    Returns:
        list: Paths of the saved figures
    """
    print("\n" + "=" * 80)
    print("PHASE 8: CREATING VISUALIZATIONS")
    print("=" * 80)

    plots_dir = Path(plots_dir)
    plots_dir.mkdir(parents=True, exist_ok=True)
    saved = []

    try:
        if cascade_summary is not None and len(cascade_summary) > 0:
            print("  - Creating extinction cascade plot...")
            saved.append(create_cascade_plot(cascade_summary, plots_dir / "extinction_cascades.png"))

        if ac_scores is not None and len(ac_scores) > 0:
            print("  - Creating apparent competition z-score plot...")
            saved.append(create_zscore_plot(
                ac_scores, 'category', None,
                "Apparent Competition Motif vs Random Null Models",
                plots_dir / "apparent_competition_zscores.png"
            ))

        if tc_scores is not None and len(tc_scores) > 0:
            print("  - Creating tri-trophic cascade z-score plot...")
            scores = tc_scores.assign(label=tc_scores['role'] + " / " + tc_scores['taxon'])
            saved.append(create_zscore_plot(
                scores, 'label', 'apex_filter',
                "Tri-trophic Cascade Roles vs Random Null Models",
                plots_dir / "trophic_cascade_zscores.png"
            ))
    except Exception as e:
        print(f"\n⚠ Could not create visualizations: {e}")
        import traceback
        traceback.print_exc()

    return saved


def create_cascade_plot(cascade_summary, plot_file):
    """
    Mean secondary extinctions (± SE) against primary extinctions,
    one panel per interaction strength threshold.
    """
    thresholds = sorted(cascade_summary['threshold'].unique())
    fig, axes = plt.subplots(
        1, len(thresholds), figsize=(5 * len(thresholds), 5), sharey=True, squeeze=False
    )

    groups = sorted(cascade_summary['group'].unique())
    palette = dict(zip(groups, sns.color_palette("colorblind", len(groups))))

    for ax, threshold in zip(axes[0], thresholds):
        panel = cascade_summary[cascade_summary['threshold'] == threshold]
        for group in groups:
            series = panel[panel['group'] == group].sort_values('primary_extinctions')
            if len(series) == 0:
                continue
            x = series['primary_extinctions'].values
            y = series['mean'].values
            se = np.nan_to_num(series['sem'].values)
            ax.plot(x, y, linewidth=2, label=group, color=palette[group])
            ax.fill_between(x, y - se, y + se, alpha=0.25, color=palette[group])

        ax.set_title(f"Threshold = {threshold:.1f}", fontsize=12)
        ax.set_xlabel("Primary extinctions", fontsize=11)
        ax.grid(True, alpha=0.3)

    axes[0][0].set_ylabel("Accumulated secondary extinctions", fontsize=11)
    axes[0][-1].legend(fontsize=9)
    fig.suptitle("Extinction Cascades by Taxon", fontsize=14)
    fig.tight_layout()

    fig.savefig(plot_file, dpi=300, bbox_inches='tight')
    print(f"    ✓ Saved extinction cascade plot to {plot_file}")
    plt.close(fig)
    return plot_file


def create_zscore_plot(scores, label_column, hue_column, title, plot_file):
    """Horizontal bar chart of z-scores with ±1.96 reference lines"""
    height = max(4, 0.35 * len(scores))
    fig, ax = plt.subplots(figsize=(9, height))

    sns.barplot(data=scores, x='z_score', y=label_column, hue=hue_column, ax=ax, orient='h')

    # Two-sided 5% significance band
    ax.axvline(1.96, linestyle="--", linewidth=1, color='gray')
    ax.axvline(-1.96, linestyle="--", linewidth=1, color='gray')
    ax.axvline(0, linewidth=1, color='black')

    ax.set_xlabel("Z-score (observed vs null model)", fontsize=12)
    ax.set_ylabel("")
    ax.set_title(title, fontsize=14)
    ax.grid(True, axis='x', alpha=0.3)
    fig.tight_layout()

    fig.savefig(plot_file, dpi=300, bbox_inches='tight')
    print(f"    ✓ Saved z-score plot to {plot_file}")
    plt.close(fig)
    return plot_file
