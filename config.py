"""
Configuration module for food web analysis.
Contains all paths, directories, and configuration parameters.
"""

from pathlib import Path

# Input data (prepared externally)
DATA_DIR = Path("data")
ADJACENCY_MATRIX_FILE = "adjacency_matrix.csv"
SPECIES_ORDERS_FILE = "species_orders.csv"
VERTEX_ATTRIBUTES_FILE = "vertex_attributes.csv"
RESIDENTS_FILE = "residents.txt"
TROPHIC_NODES_FILE = "trophic_nodes.csv"
TROPHIC_EDGES_FILE = "trophic_edges.csv"

# Output files - per-run records go to their own subdirectories of results/
RESULTS_DIR = Path("results")
CASCADE_DIR_NAME = "cascades"
APPARENT_COMPETITION_DIR_NAME = "apparent_competition"
TROPHIC_CASCADE_DIR_NAME = "trophic_cascade"
SUMMARY_FILE_NAME = "food_web_summary.txt"

# Configuration
CONFIG = {
    'thresholds': [0.6, 0.7, 0.8, 0.9],  # Interaction strength thresholds for the sweep
    'cascade_iterations': 100,  # Random extinction orders per threshold
    'apparent_competition_trials': 500,  # Null models for the shared-prey motif
    'trophic_cascade_trials': 200,  # Null models for the chain motif
    'trophic_cascade_start_trial': 0,  # First chain trial index (resume offset)
    'taxa': ['bird', 'mammal', 'reptile'],
    'plant_node': 'Plants',
    'seed': 42,
    'resume': True,  # Skip units whose output file already exists
}


def output_dirs(results_dir=RESULTS_DIR):
    """Return the output directory layout rooted at results_dir"""
    results_dir = Path(results_dir)
    return {
        'results': results_dir,
        'cascades': results_dir / CASCADE_DIR_NAME,
        'apparent_competition': results_dir / APPARENT_COMPETITION_DIR_NAME,
        'trophic_cascade': results_dir / TROPHIC_CASCADE_DIR_NAME,
        'plots': results_dir,
    }


def ensure_output_dirs(results_dir=RESULTS_DIR):
    """Create the output directory tree and return it"""
    dirs = output_dirs(results_dir)
    for path in dirs.values():
        path.mkdir(parents=True, exist_ok=True)
    return dirs
