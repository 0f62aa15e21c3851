"""
Pedigree and marker data toolkit

Main API:
    Pedigree - Pedigree members, parent links and internal ordering
    create_marker - Build a marker for the members of a pedigree
    validate_marker - Check the consistency of a marker
    set_markers, add_markers, select_markers, remove_markers,
    get_markers, transfer_markers - Bulk marker operations
    to_table - Tabular export
    render_input - Labels and structure arrays for a pedigree renderer
    load_config - Configuration loading helper
"""

from .models import (
    Sex, Pedigree, AlleleTable, Marker, create_marker, validate_marker,
    MarkerSet, set_markers, add_markers, select_markers, remove_markers,
    get_markers, transfer_markers,
)
from .mutation import check_mutation_matrix, DefaultMutationService
from .export import to_table, render_input
from .config import load_config, PedkitConfig, DEFAULT_CONFIG

__all__ = [
    'Sex', 'Pedigree', 'AlleleTable', 'Marker', 'create_marker', 'validate_marker',
    'MarkerSet', 'set_markers', 'add_markers', 'select_markers', 'remove_markers',
    'get_markers', 'transfer_markers',
    'check_mutation_matrix', 'DefaultMutationService',
    'to_table', 'render_input',
    'load_config', 'PedkitConfig', 'DEFAULT_CONFIG',
]
__version__ = '0.1.0'
