"""
Network analysis module for food web analysis.
Handles extinction cascade simulation and the taxon homophily index.
"""

import networkx as nx
import numpy as np
import pandas as pd

# Absorbs floating point error in (1 - threshold)
TOLERANCE = 1e-9


def in_strength(G, node, alive=None):
    """Total weight of incoming edges to node, optionally only from alive nodes"""
    total = 0.0
    for prey, _, weight in G.in_edges(node, data='weight', default=1.0):
        if alive is None or prey in alive:
            total += weight
    return total


def find_secondary_extinctions(G, alive, original_strength, threshold):
    """
    Find all nodes that go secondarily extinct given the surviving set.

    A consumer goes extinct when the interaction strength it still receives
    from surviving prey, relative to its original in-strength, falls at or
    below (1 - threshold). Extinctions can starve further consumers, so the
    search repeats until no new node is lost.

    Args:
        G: Weighted food web where edge (prey, predator) carries diet weight
        alive: Set of surviving nodes (not modified)
        original_strength: Dict node -> original weighted in-strength
        threshold: Fraction of lost interaction strength that is tolerated

    Returns:
        set: Newly extinct nodes
    """
    survivors = set(alive)
    extinct = set()
    limit = 1.0 - threshold + TOLERANCE

    changed = True
    while changed:
        changed = False
        for node in list(survivors):
            total = original_strength[node]
            # Basal nodes never starve
            if total <= 0:
                continue
            if in_strength(G, node, survivors) / total <= limit:
                survivors.discard(node)
                extinct.add(node)
                changed = True

    return extinct


def simulate_extinctions(G, removal_order, threshold):
    """
    Simulate an extinction cascade for an ordered sequence of primary removals.

    Removals are cumulative: a node that is removed or goes secondarily
    extinct never returns. A node of the removal order that is already
    extinct is skipped, its step is recorded with unchanged counts.

    Args:
        G: Weighted food web (edge prey -> predator)
        removal_order: Node names in removal sequence
        threshold: Interaction strength threshold in (0, 1]

    Returns:
        pd.DataFrame: One row per step with columns
            ['primary_extinctions', 'secondary_extinctions', 'removed']
    """
    if not 0 < threshold <= 1:
        raise ValueError(f"threshold must lie in (0, 1], got {threshold}")

    unknown = [n for n in removal_order if n not in G]
    if unknown:
        raise ValueError(f"Removal order contains nodes not in the graph: {unknown[:5]}")

    original_strength = {node: in_strength(G, node) for node in G.nodes()}
    alive = set(G.nodes())
    secondary = set()

    rows = []
    for step, node in enumerate(removal_order, start=1):
        if node in alive:
            alive.discard(node)
            newly_extinct = find_secondary_extinctions(G, alive, original_strength, threshold)
            alive -= newly_extinct
            secondary |= newly_extinct

        rows.append({
            'primary_extinctions': step,
            'secondary_extinctions': len(secondary),
            'removed': node,
        })

    return pd.DataFrame(rows, columns=['primary_extinctions', 'secondary_extinctions', 'removed'])


def compute_homophily(G, attribute='taxon'):
    """
    Taxon homophily index of an unweighted graph.

    The graph must follow the predator -> prey edge convention. Returns
    NaN when the index is undefined (e.g. a single attribute class).
    """
    if G.number_of_edges() == 0:
        return np.nan

    with np.errstate(divide='ignore', invalid='ignore'):
        value = nx.attribute_assortativity_coefficient(G, attribute)

    return float(value)
