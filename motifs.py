"""
Motif enumeration module for food web analysis.

Counts two three-node motifs in the real graphs and in random null models:

- Apparent competition (shared prey): two prey feeding one common predator,
  searched in the weighted food web (edge prey -> predator).
- Tri-trophic cascade (linear chain): apex -> meso -> prey, searched in the
  trophic graph (edge predator -> prey).

Each null-model trial writes its own CSV so that no more than one trial is
held in memory.
"""

from pathlib import Path

import networkx as nx
import numpy as np
import pandas as pd
from networkx.algorithms.isomorphism import DiGraphMatcher
from tqdm import tqdm

from config import CONFIG
from data_loader import random_null_graph
from results_handler import write_record

# Pattern node 2 is the shared predator of pattern nodes 0 and 1
SHARED_PREY_PATTERN = nx.DiGraph([(0, 2), (1, 2)])
# Pattern 0 -> 1 -> 2
CHAIN_PATTERN = nx.DiGraph([(0, 1), (1, 2)])

# (in-degree, total degree) inside the induced chain subgraph
CHAIN_ROLE_SIGNATURES = {
    (0, 1): 'apex',
    (1, 2): 'meso',
    (1, 1): 'prey',
}

APPARENT_COMPETITION = 'apparent_competition'
TROPHIC_CASCADE = 'trophic_cascade'


def shared_prey_categories(taxa=None):
    """
    (category, structure, taxa) for every apparent competition category.

    Order: all-same taxon, both prey of one taxon, then the pairwise mixed
    categories mammal+reptile, mammal+bird, reptile+bird.
    """
    taxa = CONFIG['taxa'] if taxa is None else taxa
    categories = [(f"all_{t}", 'all', (t,)) for t in taxa]
    categories += [(f"prey_{t}", 'prey', (t,)) for t in taxa]
    for pair in [('mammal', 'reptile'), ('mammal', 'bird'), ('reptile', 'bird')]:
        categories.append((f"mixed_{pair[0]}_{pair[1]}", 'mixed', pair))
    return categories


def find_occurrences(G, pattern):
    """
    Yield every occurrence of pattern in G as a dict pattern node -> G node.

    Occurrences are subgraph monomorphisms: extra edges among the matched
    nodes are allowed.
    """
    matcher = DiGraphMatcher(G, pattern)
    for mapping in matcher.subgraph_monomorphisms_iter():
        yield {p: g for g, p in mapping.items()}


# ---------------------------------------------------------------------------
# Apparent competition (shared prey)
# ---------------------------------------------------------------------------

def classify_match(G, sources, sink, taxa, structure):
    """
    Test one shared-prey occurrence against a single category.

    Args:
        G: Graph with 'taxon' node attributes
        sources: The two prey nodes
        sink: The shared predator
        taxa: One taxon ('all', 'prey') or a pair of taxa ('mixed')
        structure: 'all' - all three nodes share the taxon
                   'prey' - both prey share the taxon and have no incoming
                            edge within the matched subgraph
                   'mixed' - one prey of each of the two taxa

    Returns:
        tuple or None: (category, edge weights) if the occurrence matches
    """
    source_taxa = [G.nodes[s].get('taxon') for s in sources]

    if structure == 'all':
        matched = all(t == taxa[0] for t in source_taxa + [G.nodes[sink].get('taxon')])
    elif structure == 'prey':
        sub = G.subgraph(list(sources) + [sink])
        matched = (
            all(t == taxa[0] for t in source_taxa)
            and all(sub.in_degree(s) == 0 for s in sources)
        )
    elif structure == 'mixed':
        matched = sorted(source_taxa) == sorted(taxa) and taxa[0] != taxa[1]
    else:
        raise ValueError(f"Unknown motif structure: {structure}")

    if not matched:
        return None

    category = f"{structure}_{'_'.join(taxa)}"
    weights = [G.edges[s, sink].get('weight', np.nan) for s in sources]
    return category, weights


def count_apparent_competition(G, categories=None):
    """
    Count apparent competition occurrences per taxon category.

    The pattern is symmetric in its two prey, so the isomorphism search
    reports every occurrence twice; the corrected number halves the raw count.
    An occurrence may be tallied in several categories.

    Returns:
        pd.DataFrame: Indexed by category with columns
            ['raw_count', 'corrected_number', 'mean_weight']
    """
    categories = shared_prey_categories() if categories is None else categories
    raw = {name: 0 for name, _, _ in categories}
    weights = {name: [] for name, _, _ in categories}

    for occurrence in find_occurrences(G, SHARED_PREY_PATTERN):
        sources = (occurrence[0], occurrence[1])
        sink = occurrence[2]
        for _, structure, taxa in categories:
            match = classify_match(G, sources, sink, taxa, structure)
            if match is None:
                continue
            category, matched_weights = match
            raw[category] += 1
            weights[category].extend(matched_weights)

    rows = []
    for name, _, _ in categories:
        w = [x for x in weights[name] if not np.isnan(x)]
        rows.append({
            'category': name,
            'raw_count': raw[name],
            'corrected_number': raw[name] / 2,
            'mean_weight': float(np.mean(w)) if w else np.nan,
        })

    return pd.DataFrame(rows).set_index('category')


def run_apparent_competition_trials(G, output_dir, trials=None, seed=None, resume=None):
    """
    Count apparent competition in random null models of G.

    Each trial writes one row of corrected counts per category to
    apparent_competition_trial_<n>.csv.

    Returns:
        dict: Trial report with 'written', 'skipped' and 'failed' entries
    """
    trials = CONFIG['apparent_competition_trials'] if trials is None else trials
    seed = CONFIG['seed'] if seed is None else seed
    resume = CONFIG['resume'] if resume is None else resume

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    categories = shared_prey_categories()

    print(f"\nApparent competition: {trials} null-model trials "
          f"({G.number_of_nodes():,} nodes, {G.number_of_edges():,} edges)")

    report = {'written': 0, 'skipped': 0, 'failed': []}
    for trial in tqdm(range(trials), desc="  Apparent competition"):
        trial_file = output_dir / f"{APPARENT_COMPETITION}_trial_{trial:04d}.csv"
        if resume and trial_file.exists():
            report['skipped'] += 1
            continue

        try:
            rng = np.random.default_rng([seed, 1, trial])
            G_random = random_null_graph(G, rng)
            counts = count_apparent_competition(G_random, categories)['corrected_number']
            row = counts.to_frame().T.reset_index(drop=True)
            row.insert(0, 'trial', trial)
            write_record(row, trial_file)
            report['written'] += 1
        except Exception as e:
            print(f"\n  ⚠ Apparent competition trial {trial} failed: {e}")
            report['failed'].append(trial)

    print(f"✓ {report['written']:,} trials written, {report['skipped']:,} skipped")
    return report


# ---------------------------------------------------------------------------
# Tri-trophic cascade (linear chain)
# ---------------------------------------------------------------------------

def chain_roles(G, nodes):
    """
    Assign chain roles to three matched nodes.

    Returns None when the induced subgraph does not have exactly two edges
    (the matched nodes carry extra links and do not form a clean chain).

    Returns:
        dict or None: role -> node
    """
    sub = G.subgraph(nodes)
    if sub.number_of_edges() != 2:
        return None

    roles = {}
    for node in nodes:
        signature = (sub.in_degree(node), sub.degree(node))
        role = CHAIN_ROLE_SIGNATURES.get(signature)
        if role is None or role in roles:
            return None
        roles[role] = node
    return roles


def trophic_cascade_rows(G):
    """
    One row per role of every valid chain occurrence in G.

    Returns:
        list: Dicts with keys chain, role, taxon, trophic_level, apex_taxon
    """
    rows = []
    chain_id = 0
    for occurrence in find_occurrences(G, CHAIN_PATTERN):
        roles = chain_roles(G, list(occurrence.values()))
        if roles is None:
            continue
        apex_taxon = G.nodes[roles['apex']].get('taxon')
        for role in ('apex', 'meso', 'prey'):
            node = roles[role]
            rows.append({
                'chain': chain_id,
                'role': role,
                'taxon': G.nodes[node].get('taxon'),
                'trophic_level': G.nodes[node].get('trophic_level', np.nan),
                'apex_taxon': apex_taxon,
            })
        chain_id += 1
    return rows


def aggregate_chain_rows(rows, trial, taxa=None):
    """
    Count chain roles per (role, taxon), overall and per apex taxon, with
    the mean trophic level of the species filling each role.

    Returns:
        pd.DataFrame: Columns ['role', 'taxon', 'count', 'mean_trophic_level',
            'motif', 'apex_filter', 'trial']
    """
    taxa = CONFIG['taxa'] if taxa is None else taxa
    columns = ['role', 'taxon', 'count', 'mean_trophic_level', 'motif', 'apex_filter', 'trial']
    occurrences = pd.DataFrame(rows, columns=['chain', 'role', 'taxon', 'trophic_level', 'apex_taxon'])
    occurrences['trophic_level'] = pd.to_numeric(occurrences['trophic_level'], errors='coerce')

    frames = []
    for apex_filter in ['all'] + list(taxa):
        subset = occurrences if apex_filter == 'all' else occurrences[occurrences['apex_taxon'] == apex_filter]
        if subset.empty:
            continue
        counts = (
            subset.groupby(['role', 'taxon'])
            .agg(count=('chain', 'size'), mean_trophic_level=('trophic_level', 'mean'))
            .reset_index()
        )
        counts['motif'] = TROPHIC_CASCADE
        counts['apex_filter'] = apex_filter
        counts['trial'] = trial
        frames.append(counts)

    if not frames:
        return pd.DataFrame(columns=columns)
    return pd.concat(frames, ignore_index=True)[columns]


def run_trophic_cascade_trials(G, output_dir, trials=None, start=None, seed=None, resume=None):
    """
    Count tri-trophic cascade roles in random null models of G.

    Occurrence rows of a trial are kept only until the trial's aggregate has
    been written to trophic_cascade_trial_<n>.csv.

    Returns:
        dict: Trial report with 'written', 'skipped' and 'failed' entries
    """
    trials = CONFIG['trophic_cascade_trials'] if trials is None else trials
    start = CONFIG['trophic_cascade_start_trial'] if start is None else start
    seed = CONFIG['seed'] if seed is None else seed
    resume = CONFIG['resume'] if resume is None else resume

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print(f"\nTri-trophic cascade: trials {start}-{trials - 1} "
          f"({G.number_of_nodes():,} nodes, {G.number_of_edges():,} edges)")

    report = {'written': 0, 'skipped': 0, 'failed': []}
    for trial in tqdm(range(start, trials), desc="  Trophic cascade"):
        trial_file = output_dir / f"{TROPHIC_CASCADE}_trial_{trial:04d}.csv"
        if resume and trial_file.exists():
            report['skipped'] += 1
            continue

        rows = []
        try:
            rng = np.random.default_rng([seed, 2, trial])
            G_random = random_null_graph(G, rng)
            rows = trophic_cascade_rows(G_random)
            write_record(aggregate_chain_rows(rows, trial), trial_file)
            report['written'] += 1
        except Exception as e:
            print(f"\n  ⚠ Trophic cascade trial {trial} failed: {e}")
            report['failed'].append(trial)
        finally:
            rows.clear()

    print(f"✓ {report['written']:,} trials written, {report['skipped']:,} skipped")
    return report
