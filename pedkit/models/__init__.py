"""Domain models for pedkit."""

from .sex import Sex
from .alleles import AlleleTable
from .marker import Marker, create_marker, validate_marker, parse_genotype
from .markerset import (
    MarkerSet, set_markers, add_markers, select_markers, remove_markers,
    get_markers, transfer_markers,
)
from .pedigree import Pedigree

__all__ = [
    'Sex',
    'AlleleTable',
    'Marker', 'create_marker', 'validate_marker', 'parse_genotype',
    'MarkerSet', 'set_markers', 'add_markers', 'select_markers', 'remove_markers',
    'get_markers', 'transfer_markers',
    'Pedigree',
]
