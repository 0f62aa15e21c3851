"""Marker collections attached to pedigrees, and bulk marker operations."""

from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union, TYPE_CHECKING

from ..exceptions import CountMismatchError, InvalidArgumentError, ShapeMismatchError
from .marker import Marker

if TYPE_CHECKING:
    from .pedigree import Pedigree

MarkerRef = Union[int, str, Marker]


class MarkerSet:
    """Immutable ordered collection of markers sharing the same members."""

    def __init__(self, markers: Union[Marker, Iterable[Marker], None] = None):
        if markers is None:
            markers = ()
        elif isinstance(markers, Marker):
            markers = (markers,)
        self._markers = tuple(markers)
        for m in self._markers:
            if not isinstance(m, Marker):
                raise InvalidArgumentError(f"Not a marker: {m!r}")
        nrows = {m.nrows for m in self._markers}
        if len(nrows) > 1:
            raise CountMismatchError(f"Markers have different numbers of rows: {sorted(nrows)}")

    def __len__(self) -> int:
        return len(self._markers)

    def __iter__(self) -> Iterator[Marker]:
        return iter(self._markers)

    def __getitem__(self, i):
        if isinstance(i, slice):
            return MarkerSet(self._markers[i])
        return self._markers[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, MarkerSet):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None

    def __repr__(self) -> str:
        return f"MarkerSet({list(self._markers)})"

    @property
    def names(self) -> List[Optional[str]]:
        return [m.name for m in self._markers]

    def check_consistency(self, pedigree: 'Pedigree') -> None:
        """
        Check that every marker fits the members of `pedigree`.

        Raises:
            CountMismatchError: If a marker's row count differs from the pedigree size
            ShapeMismatchError: If a marker's member labels differ from the pedigree's
        """
        for i, m in enumerate(self._markers):
            label = m.name if m.name is not None else f"#{i + 1}"
            if m.nrows != pedigree.pedsize:
                raise CountMismatchError(
                    f"Marker {label} has {m.nrows} rows, but the pedigree has {pedigree.pedsize} members"
                )
            if m.pedmembers != pedigree.labels:
                raise ShapeMismatchError(f"Marker {label} belongs to a pedigree with different ID labels")

    def index_of(self, markers: Union[MarkerRef, Sequence[MarkerRef]]) -> List[int]:
        """
        Resolve marker references (indices, names or Marker objects) to indices.

        Raises:
            InvalidArgumentError: If an index is out of range or a name/marker is unknown
        """
        if isinstance(markers, (int, str, Marker)):
            markers = [markers]

        names = self.names
        result = []
        for ref in markers:
            if isinstance(ref, Marker):
                hits = [i for i, m in enumerate(self._markers) if m is ref]
                if not hits:
                    raise InvalidArgumentError(f"Marker not attached: {ref!r}")
                result.append(hits[0])
            elif isinstance(ref, str):
                if ref not in names:
                    raise InvalidArgumentError(f"Unknown marker name: {ref}")
                result.append(names.index(ref))
            elif isinstance(ref, int) and not isinstance(ref, bool):
                if not 0 <= ref < len(self._markers):
                    raise InvalidArgumentError(
                        f"Marker index out of range: {ref} (there are {len(self._markers)} markers)"
                    )
                result.append(ref)
            else:
                raise InvalidArgumentError(f"Invalid marker reference: {ref!r}")
        return result

    def filter(self, chroms: Optional[Sequence[Any]] = None, from_pos: Optional[float] = None,
               to_pos: Optional[float] = None) -> List[int]:
        """
        Indices of markers on the given chromosomes and within [from_pos, to_pos] Mb.

        Markers without a position are excluded when a position bound is given.
        """
        chrom_set = None if chroms is None else {str(c) for c in chroms}
        result = []
        for i, m in enumerate(self._markers):
            if chrom_set is not None and m.chrom not in chrom_set:
                continue
            if from_pos is not None or to_pos is not None:
                if m.pos_mb is None:
                    continue
                if from_pos is not None and m.pos_mb < from_pos:
                    continue
                if to_pos is not None and m.pos_mb > to_pos:
                    continue
            result.append(i)
        return result

    def select(self, indices: Sequence[int]) -> 'MarkerSet':
        return MarkerSet(self._markers[i] for i in indices)

    def permuted(self, order: Sequence[int], pedmembers: Sequence[str], sex: Sequence[int]) -> 'MarkerSet':
        return MarkerSet(m.permuted(order, pedmembers, sex) for m in self._markers)

    def relabeled(self, pedmembers: Sequence[str]) -> 'MarkerSet':
        return MarkerSet(m.relabeled(pedmembers) for m in self._markers)


def set_markers(pedigree: 'Pedigree', markers: Union[Marker, Iterable[Marker], None]) -> 'Pedigree':
    """Attach `markers` to a copy of `pedigree`, replacing any existing markers."""
    return pedigree.with_markers(MarkerSet(markers))


def add_markers(pedigree: 'Pedigree', markers: Union[Marker, Iterable[Marker]]) -> 'Pedigree':
    """Append `markers` to those already attached to `pedigree`."""
    new = MarkerSet(markers)
    return pedigree.with_markers(MarkerSet(list(pedigree.markers) + list(new)))


def select_markers(pedigree: 'Pedigree', markers: Union[MarkerRef, Sequence[MarkerRef]]) -> 'Pedigree':
    """Keep only the given markers (in the given order)."""
    idx = pedigree.markers.index_of(markers)
    return pedigree.with_markers(pedigree.markers.select(idx))


def remove_markers(pedigree: 'Pedigree', markers: Union[MarkerRef, Sequence[MarkerRef]]) -> 'Pedigree':
    """Drop the given markers."""
    drop = set(pedigree.markers.index_of(markers))
    keep = [i for i in range(len(pedigree.markers)) if i not in drop]
    return pedigree.with_markers(pedigree.markers.select(keep))


def get_markers(
    pedigree: 'Pedigree',
    markers: Union[MarkerRef, Sequence[MarkerRef], None] = None,
    chroms: Optional[Sequence[Any]] = None,
    from_pos: Optional[float] = None,
    to_pos: Optional[float] = None
) -> MarkerSet:
    """
    Get markers attached to `pedigree`.

    Args:
        pedigree: Pedigree with attached markers
        markers: Indices, names or Marker objects. Default: all
        chroms: Keep only markers on these chromosomes
        from_pos: Keep only markers at or after this position (Mb)
        to_pos: Keep only markers at or before this position (Mb)

    Returns:
        MarkerSet, in the order given by `markers` (else attachment order)
    """
    ms = pedigree.markers
    idx = list(range(len(ms))) if markers is None else ms.index_of(markers)
    if chroms is not None or from_pos is not None or to_pos is not None:
        allowed = set(ms.filter(chroms, from_pos, to_pos))
        idx = [i for i in idx if i in allowed]
    return ms.select(idx)


def transfer_markers(
    source: 'Pedigree',
    target: 'Pedigree',
    ids: Optional[Sequence[Any]] = None,
    erase: bool = True
) -> 'Pedigree':
    """
    Copy the markers of `source` onto the members of `target`.

    Genotypes are transferred for members with the same ID label in both
    pedigrees (restricted to `ids` if given); all other members of `target`
    get missing genotypes. Allele tables and locus attributes are copied.

    Args:
        source: Pedigree with markers
        target: Pedigree receiving the markers
        ids: ID labels whose genotypes should be transferred. Default: all shared
        erase: If True, existing markers of `target` are replaced; otherwise
            the transferred markers are appended

    Returns:
        Copy of `target` with the markers attached
    """
    if ids is not None:
        source.internal_id(ids)
    moved = [m.transferred(target.labels, target.sex, ids) for m in source.markers]
    if erase:
        return set_markers(target, moved)
    return add_markers(target, moved)
