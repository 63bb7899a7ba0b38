"""
Data loading module for food web analysis.
Handles loading of the weighted food web, node attribute tables,
the unweighted trophic graph, and generation of null-model graphs.
"""

from pathlib import Path

import networkx as nx
import numpy as np
import pandas as pd

from config import (
    ADJACENCY_MATRIX_FILE,
    SPECIES_ORDERS_FILE,
    VERTEX_ATTRIBUTES_FILE,
    RESIDENTS_FILE,
    TROPHIC_NODES_FILE,
    TROPHIC_EDGES_FILE,
    CONFIG
)

KNOWN_TAXA = tuple(CONFIG['taxa'])

TAXON_ALIASES = {
    'aves': 'bird',
    'birds': 'bird',
    'mammalia': 'mammal',
    'mammals': 'mammal',
    'reptilia': 'reptile',
    'reptiles': 'reptile',
}

# (label, taxon, subgroup) for every extinction subgroup of the sweep
SUBGROUPS = [
    ('mammal', 'mammal', None),
    ('reptile', 'reptile', None),
    ('bird', 'bird', None),
    ('bird_resident', 'bird', 'resident'),
    ('bird_non_resident', 'bird', 'non-resident'),
]


def _require_file(path, description):
    if not Path(path).exists():
        raise FileNotFoundError(f"{description} not found at {path}")


def _require_columns(df, columns, description):
    missing = set(columns) - set(df.columns)
    if missing:
        raise ValueError(f"{description} must have {sorted(columns)} columns (missing {sorted(missing)})")


def normalize_taxon(value):
    """Map a raw taxonomic class label onto bird / mammal / reptile / other"""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return 'other'
    label = str(value).strip().lower()
    label = TAXON_ALIASES.get(label, label)
    return label if label in KNOWN_TAXA else 'other'


def species_code(name):
    """
    Six-letter species code: first three letters of the genus followed by
    the first three letters of the specific epithet, upper case.

    >>> species_code("Buteo jamaicensis")
    'BUTJAM'
    """
    parts = str(name).replace('_', ' ').split()
    if not parts:
        return ''
    genus = parts[0][:3]
    epithet = parts[1][:3] if len(parts) > 1 else ''
    return (genus + epithet).upper()


# ---------------------------------------------------------------------------
# Input tables
# ---------------------------------------------------------------------------

def load_adjacency_matrix(path):
    """
    Load the weighted adjacency matrix (rows = prey, columns = predators).

    Returns:
        pd.DataFrame: Square float matrix whose columns follow the row order
    """
    _require_file(path, "Adjacency matrix")
    matrix = pd.read_csv(path, index_col=0)
    matrix.index = matrix.index.astype(str).str.strip()
    matrix.columns = matrix.columns.astype(str).str.strip()

    if matrix.index.has_duplicates or matrix.columns.has_duplicates:
        raise ValueError(f"Adjacency matrix at {path} has duplicated species names")
    if set(matrix.index) != set(matrix.columns):
        raise ValueError(f"Adjacency matrix at {path} must be square with matching row and column names")

    matrix = matrix.loc[:, list(matrix.index)].fillna(0)
    try:
        matrix = matrix.apply(pd.to_numeric)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Adjacency matrix at {path} contains non-numeric weights") from e

    if (matrix.to_numpy() < 0).any():
        raise ValueError(f"Adjacency matrix at {path} contains negative weights")

    return matrix.astype(float)


def load_species_orders(path):
    """Load the species -> taxonomic order table"""
    _require_file(path, "Species order table")
    orders = pd.read_csv(path)
    _require_columns(orders, {'species', 'order'}, "Species order table")
    orders['species'] = orders['species'].astype(str).str.strip()
    return orders.drop_duplicates('species').set_index('species')['order']


def load_vertex_attributes(path):
    """Load the vertex attribute table (taxonomic class, trophic level)"""
    _require_file(path, "Vertex attribute table")
    attributes = pd.read_csv(path)
    _require_columns(attributes, {'name', 'class', 'trophic_level'}, "Vertex attribute table")
    attributes['name'] = attributes['name'].astype(str).str.strip()
    attributes['taxon'] = attributes['class'].map(normalize_taxon)
    attributes['trophic_level'] = pd.to_numeric(attributes['trophic_level'], errors='coerce')
    return attributes.drop_duplicates('name').set_index('name')


def load_resident_codes(path):
    """Load the six-letter codes of year-round resident species"""
    _require_file(path, "Resident species list")
    codes = set()
    with open(path, 'r') as f:
        for line in f:
            line = line.split('#', 1)[0].strip()
            if line:
                codes.add(line.upper())
    return codes


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_food_web(matrix, attributes, orders=None, resident_codes=None):
    """
    Build the weighted food web from an adjacency matrix.

    Edge (prey, predator) carries the relative dietary importance of the prey
    as its weight. Every node receives exactly one taxon; birds additionally
    receive a residency flag (absence from the resident list means
    non-resident).

    Args:
        matrix: Square DataFrame, rows = prey, columns = predators
        attributes: Vertex attribute DataFrame indexed by name
        orders: Optional Series mapping species name to taxonomic order
        resident_codes: Set of six-letter resident species codes

    Returns:
        nx.DiGraph: Weighted food web
    """
    resident_codes = resident_codes or set()
    names = list(matrix.index)
    values = matrix.to_numpy(dtype=float)

    G = nx.DiGraph()
    G.add_nodes_from(names)
    rows, cols = np.nonzero(values)
    G.add_weighted_edges_from(
        (names[i], names[j], values[i, j]) for i, j in zip(rows, cols)
    )

    for node in names:
        if node in attributes.index:
            taxon = attributes.at[node, 'taxon']
            trophic_level = attributes.at[node, 'trophic_level']
        else:
            taxon = 'other'
            trophic_level = np.nan

        G.nodes[node]['taxon'] = taxon
        G.nodes[node]['trophic_level'] = float(trophic_level)
        G.nodes[node]['order'] = orders.get(node) if orders is not None else None
        G.nodes[node]['resident'] = (species_code(node) in resident_codes) if taxon == 'bird' else None

    return G


def load_food_web(data_dir):
    """Load all input tables and build the weighted food web"""
    print("=" * 80)
    print("PHASE 1: LOADING FOOD WEB")
    print("=" * 80)

    data_dir = Path(data_dir)
    print(f"\nLoading adjacency matrix from {data_dir / ADJACENCY_MATRIX_FILE}...")
    matrix = load_adjacency_matrix(data_dir / ADJACENCY_MATRIX_FILE)
    orders = load_species_orders(data_dir / SPECIES_ORDERS_FILE)
    attributes = load_vertex_attributes(data_dir / VERTEX_ATTRIBUTES_FILE)
    resident_codes = load_resident_codes(data_dir / RESIDENTS_FILE)

    G = build_food_web(matrix, attributes, orders, resident_codes)

    taxa = pd.Series(dict(G.nodes(data='taxon'))).value_counts()
    residents = sum(1 for _, r in G.nodes(data='resident') if r)
    print(f"✓ Food web loaded:")
    print(f"  - Nodes: {G.number_of_nodes():,}")
    print(f"  - Edges: {G.number_of_edges():,}")
    print(f"  - Density: {nx.density(G):.6f}")
    for taxon, count in taxa.items():
        print(f"  - {taxon}: {count:,} nodes")
    print(f"  - Resident birds: {residents:,}")

    missing = [n for n in G.nodes() if n not in attributes.index]
    if missing:
        print(f"  ⚠ {len(missing)} nodes have no vertex attributes (classified as 'other')")

    return G, attributes


def load_trophic_graph(data_dir, attributes=None):
    """
    Load the unweighted trophic graph (edge predator -> prey, plant node split).

    Args:
        data_dir: Directory containing the node and edge lists
        attributes: Optional vertex attribute DataFrame for trophic levels

    Returns:
        nx.DiGraph: Trophic graph with 'taxon' and 'trophic_level' node attributes
    """
    print("\n" + "=" * 80)
    print("PHASE 2: LOADING TROPHIC GRAPH")
    print("=" * 80)

    data_dir = Path(data_dir)
    nodes_path = data_dir / TROPHIC_NODES_FILE
    edges_path = data_dir / TROPHIC_EDGES_FILE
    _require_file(nodes_path, "Trophic node list")
    _require_file(edges_path, "Trophic edge list")

    print(f"\nLoading nodes from {nodes_path}...")
    df_nodes = pd.read_csv(nodes_path)
    _require_columns(df_nodes, {'name', 'taxon'}, "Trophic node list")

    print(f"Loading edges from {edges_path}...")
    df_edges = pd.read_csv(edges_path)
    _require_columns(df_edges, {'source', 'target'}, "Trophic edge list")

    G = nx.DiGraph()
    for _, row in df_nodes.iterrows():
        G.add_node(str(row['name']).strip(), taxon=normalize_taxon(row['taxon']))

    unknown = 0
    for _, row in df_edges.iterrows():
        src, dst = str(row['source']).strip(), str(row['target']).strip()
        if src not in G or dst not in G:
            unknown += 1
        G.add_edge(src, dst)

    for node, data in G.nodes(data=True):
        data.setdefault('taxon', 'other')
        if attributes is not None and node in attributes.index:
            data['trophic_level'] = float(attributes.at[node, 'trophic_level'])
        else:
            data['trophic_level'] = np.nan

    print(f"✓ Trophic graph loaded: {G.number_of_nodes():,} nodes, {G.number_of_edges():,} edges")
    if unknown:
        print(f"  ⚠ {unknown} edges reference nodes missing from the node list")

    return G


# ---------------------------------------------------------------------------
# Node indexing and null models
# ---------------------------------------------------------------------------

class NodeIndex:
    """Stable node name <-> integer index mapping for one graph"""

    def __init__(self, nodes):
        self.names = list(nodes)
        self.positions = {name: i for i, name in enumerate(self.names)}

    def __len__(self):
        return len(self.names)

    def indices_where(self, G, predicate):
        """Index array of nodes whose attribute dict satisfies predicate"""
        return np.array(
            [self.positions[n] for n in self.names if predicate(G.nodes[n])],
            dtype=int
        )

    def names_for(self, indices):
        return [self.names[i] for i in indices]


def build_node_index(G):
    return NodeIndex(G.nodes())


def subgroup_indices(G, index):
    """
    Index arrays for the extinction subgroups of the sweep.

    Returns:
        dict: label -> (taxon, subgroup or None, index array)
    """
    groups = {}
    for label, taxon, subgroup in SUBGROUPS:
        if subgroup is None:
            predicate = lambda d, t=taxon: d.get('taxon') == t
        else:
            want_resident = subgroup == 'resident'
            predicate = lambda d, t=taxon, r=want_resident: (
                d.get('taxon') == t and bool(d.get('resident')) == r
            )
        groups[label] = (taxon, subgroup, index.indices_where(G, predicate))
    return groups


def random_null_graph(reference, rng):
    """
    Random directed graph with the same node and edge count as reference.

    Nodes are relabelled in the reference vertex order and carry the
    reference node attributes; edges carry no weight.
    """
    n = reference.number_of_nodes()
    m = reference.number_of_edges()
    seed = int(rng.integers(0, 2**32 - 1))

    G_random = nx.gnm_random_graph(n, m, seed=seed, directed=True)
    mapping = dict(enumerate(reference.nodes()))
    G_random = nx.relabel_nodes(G_random, mapping)
    for node, data in reference.nodes(data=True):
        G_random.nodes[node].update(data)

    return G_random
