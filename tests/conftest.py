"""Shared test fixtures for the food web analysis test suite.

Provides a small six-species food web written to a temporary data
directory in the same layout as the real inputs:

    Plants -> Grasshopper, Peromyscus maniculatus
    Grasshopper -> Peromyscus maniculatus, Sceloporus occidentalis,
                   Troglodytes aedon
    Peromyscus / Sceloporus / Troglodytes -> Buteo jamaicensis

Troglodytes aedon (TROAED) is the only resident bird.
"""

import matplotlib

matplotlib.use("Agg")

import networkx as nx
import pandas as pd
import pytest

from config import CONFIG
from data_loader import load_food_web, load_trophic_graph

SPECIES = [
    "Plants",
    "Grasshopper",
    "Peromyscus maniculatus",
    "Sceloporus occidentalis",
    "Troglodytes aedon",
    "Buteo jamaicensis",
]

# (prey, predator, weight)
DIET = [
    ("Plants", "Grasshopper", 1.0),
    ("Plants", "Peromyscus maniculatus", 0.5),
    ("Grasshopper", "Peromyscus maniculatus", 0.5),
    ("Grasshopper", "Sceloporus occidentalis", 1.0),
    ("Grasshopper", "Troglodytes aedon", 1.0),
    ("Peromyscus maniculatus", "Buteo jamaicensis", 0.6),
    ("Sceloporus occidentalis", "Buteo jamaicensis", 0.2),
    ("Troglodytes aedon", "Buteo jamaicensis", 0.2),
]

ATTRIBUTES = [
    ("Plants", "Plant", 1.0),
    ("Grasshopper", "Insecta", 2.0),
    ("Peromyscus maniculatus", "Mammalia", 2.5),
    ("Sceloporus occidentalis", "Reptilia", 3.0),
    ("Troglodytes aedon", "Aves", 3.0),
    ("Buteo jamaicensis", "Aves", 4.0),
]

# Predator -> prey, plants split into grass and shrub
TROPHIC_EDGES = [
    ("Buteo jamaicensis", "Peromyscus maniculatus"),
    ("Buteo jamaicensis", "Sceloporus occidentalis"),
    ("Buteo jamaicensis", "Troglodytes aedon"),
    ("Peromyscus maniculatus", "Grasshopper"),
    ("Peromyscus maniculatus", "Grass"),
    ("Sceloporus occidentalis", "Grasshopper"),
    ("Troglodytes aedon", "Grasshopper"),
    ("Grasshopper", "Grass"),
    ("Grasshopper", "Shrub"),
]


def write_inputs(data_dir):
    """Write the toy food web input tables to data_dir"""
    data_dir.mkdir(parents=True, exist_ok=True)

    matrix = pd.DataFrame(0.0, index=SPECIES, columns=SPECIES)
    for prey, predator, weight in DIET:
        matrix.at[prey, predator] = weight
    matrix.to_csv(data_dir / "adjacency_matrix.csv")

    pd.DataFrame(ATTRIBUTES, columns=["name", "class", "trophic_level"]).to_csv(
        data_dir / "vertex_attributes.csv", index=False
    )
    pd.DataFrame(
        [
            ("Peromyscus maniculatus", "Rodentia"),
            ("Sceloporus occidentalis", "Squamata"),
            ("Troglodytes aedon", "Passeriformes"),
            ("Buteo jamaicensis", "Accipitriformes"),
        ],
        columns=["species", "order"],
    ).to_csv(data_dir / "species_orders.csv", index=False)

    (data_dir / "residents.txt").write_text("# year-round residents\nTROAED\n\n")

    taxa = {name: cls for name, cls, _ in ATTRIBUTES}
    nodes = [(name, taxa[name]) for name in SPECIES if name != "Plants"]
    nodes += [("Grass", "Plant"), ("Shrub", "Plant")]
    pd.DataFrame(nodes, columns=["name", "taxon"]).to_csv(data_dir / "trophic_nodes.csv", index=False)
    pd.DataFrame(TROPHIC_EDGES, columns=["source", "target"]).to_csv(
        data_dir / "trophic_edges.csv", index=False
    )
    return data_dir


@pytest.fixture
def data_dir(tmp_path_factory):
    return write_inputs(tmp_path_factory.mktemp("data"))


@pytest.fixture
def food_web(data_dir):
    G, _ = load_food_web(data_dir)
    return G


@pytest.fixture
def trophic_graph(data_dir):
    _, attributes = load_food_web(data_dir)
    return load_trophic_graph(data_dir, attributes)


@pytest.fixture
def shared_prey_graph():
    """A -> C, B -> C with every node a bird"""
    G = nx.DiGraph()
    G.add_nodes_from(["A", "B", "C"], taxon="bird")
    G.add_edge("A", "C", weight=0.25)
    G.add_edge("B", "C", weight=0.75)
    return G


@pytest.fixture
def chain_graph():
    """A -> B -> C"""
    G = nx.DiGraph()
    G.add_node("A", taxon="bird", trophic_level=3.0)
    G.add_node("B", taxon="mammal", trophic_level=2.0)
    G.add_node("C", taxon="reptile", trophic_level=1.0)
    G.add_edges_from([("A", "B"), ("B", "C")])
    return G


@pytest.fixture
def restore_config():
    """Undo CONFIG changes made by the command line entry point"""
    saved = dict(CONFIG)
    yield CONFIG
    CONFIG.clear()
    CONFIG.update(saved)
