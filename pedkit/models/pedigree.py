"""Pedigree model: members, parent links and internal ordering."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import numpy as np

from ..exceptions import (
    CountMismatchError, InvalidArgumentError, StructuralError, UnknownMemberError
)
from .markerset import MarkerSet
from .sex import Sex

logger = logging.getLogger(__name__)

# Parent entries meaning "no parent"
_NO_PARENT = (None, "", "0", 0)


class Pedigree:
    """
    A pedigree: an ordered list of members with father/mother links.

    Parent links are stored as internal (0-based) indices into the member
    list, with None for founders. A Pedigree is immutable; every operation
    that changes it returns a new Pedigree.
    """

    def __init__(
        self,
        ids: Sequence[Any],
        fid: Optional[Sequence[Any]] = None,
        mid: Optional[Sequence[Any]] = None,
        sex: Optional[Sequence[Any]] = None,
        loop_breakers: Optional[Iterable[Tuple[int, int]]] = None,
        reorder: bool = True
    ):
        """
        Initialize a pedigree.

        Args:
            ids: Member ID labels (coerced to strings)
            fid: Father labels; None, "" or "0" for founders. Default: all founders
            mid: Mother labels, as for `fid`
            sex: Sex codes (0/1/2, Sex members or 'male'/'female'). Default: all unknown
            loop_breakers: Pairs (duplicate_index, original_index) of internal indices
            reorder: If True, members are sorted so that parents precede children

        Raises:
            StructuralError: If the member list violates pedigree invariants
            CountMismatchError: If the input vectors have different lengths
        """
        labels = tuple(str(i) for i in ids)
        n = len(labels)
        fid = [None] * n if fid is None else list(fid)
        mid = [None] * n if mid is None else list(mid)
        sex = [Sex.UNKNOWN] * n if sex is None else list(sex)

        for argname, vec in (('fid', fid), ('mid', mid), ('sex', sex)):
            if len(vec) != n:
                raise CountMismatchError(f"`{argname}` must have length {n}, not {len(vec)}")

        self._labels: Tuple[str, ...] = labels
        self._sex: Tuple[Sex, ...] = tuple(Sex.coerce(s) for s in sex)
        self._father, self._mother = self._resolve_parents(fid, mid)
        self._loop_breakers: Tuple[Tuple[int, int], ...] = tuple(
            (int(a), int(b)) for a, b in (loop_breakers or ())
        )
        self._markers = MarkerSet()

        self._validate()

        if reorder and not self.has_parents_before_children():
            self._apply_order(self._parents_first_order())

    def _resolve_parents(self, fid: List[Any], mid: List[Any]):
        labels = self._labels
        if len(labels) == 0:
            raise StructuralError("A pedigree must have at least one member")

        index = {}
        for i, lab in enumerate(labels):
            if lab in index:
                raise StructuralError(f"Duplicated ID label: {lab}")
            if lab in ("", "0"):
                raise StructuralError(f"Invalid ID label: {lab!r}")
            index[lab] = i

        father: List[Optional[int]] = []
        mother: List[Optional[int]] = []
        for lab, f, m in zip(labels, fid, mid):
            f_missing = f in _NO_PARENT
            m_missing = m in _NO_PARENT
            if f_missing != m_missing:
                raise StructuralError(f"Individual {lab} has exactly one parent; need 0 or 2")
            if f_missing:
                father.append(None)
                mother.append(None)
                continue
            unknown = [str(p) for p in (f, m) if str(p) not in index]
            if unknown:
                raise StructuralError(f"Parent of {lab} not found in pedigree: {', '.join(unknown)}")
            father.append(index[str(f)])
            mother.append(index[str(m)])

        return tuple(father), tuple(mother)

    def _validate(self) -> None:
        n = len(self._labels)

        for i in range(n):
            fa, mo = self._father[i], self._mother[i]
            if fa is None:
                continue
            lab = self._labels[i]
            if fa == i or mo == i:
                raise StructuralError(f"Individual {lab} is their own parent")
            if fa == mo:
                raise StructuralError(f"Individual {lab} has the same father and mother")
            if self._sex[fa] == Sex.FEMALE:
                raise StructuralError(f"Individual {self._labels[fa]} is father of {lab}, but is female")
            if self._sex[mo] == Sex.MALE:
                raise StructuralError(f"Individual {self._labels[mo]} is mother of {lab}, but is male")

        # Kahn's algorithm: members left unprocessed lie on or below a cycle
        parents_left = [0] * n
        kids: List[List[int]] = [[] for _ in range(n)]
        for i in range(n):
            if self._father[i] is not None:
                parents_left[i] = 2
                kids[self._father[i]].append(i)
                kids[self._mother[i]].append(i)
        queue = [i for i in range(n) if parents_left[i] == 0]
        seen = 0
        while queue:
            i = queue.pop()
            seen += 1
            for k in kids[i]:
                parents_left[k] -= 1
                if parents_left[k] == 0:
                    queue.append(k)
        if seen < n:
            stuck = [self._labels[i] for i in range(n) if parents_left[i] > 0]
            raise StructuralError(f"Pedigree is not acyclic; check ancestry of: {', '.join(stuck)}")

        for pair in self._loop_breakers:
            if any(not 0 <= j < n for j in pair):
                raise StructuralError(f"Loop breaker index out of range: {pair}")

    @classmethod
    def _blank(cls) -> 'Pedigree':
        return cls.__new__(cls)

    def _copy(self) -> 'Pedigree':
        new = self._blank()
        new.__dict__.update(self.__dict__)
        return new

    def _apply_order(self, order: Sequence[int]) -> None:
        """Permute this (not yet shared) instance in place; order[k] = old index of new member k."""
        inverse = [0] * len(order)
        for new_pos, old_pos in enumerate(order):
            inverse[old_pos] = new_pos

        def remap(idx):
            return None if idx is None else inverse[idx]

        self._labels = tuple(self._labels[i] for i in order)
        self._sex = tuple(self._sex[i] for i in order)
        self._father = tuple(remap(self._father[i]) for i in order)
        self._mother = tuple(remap(self._mother[i]) for i in order)
        self._loop_breakers = tuple((inverse[a], inverse[b]) for a, b in self._loop_breakers)
        self._markers = self._markers.permuted(order, self._labels, self._sex)

    # Basic accessors

    @property
    def labels(self) -> Tuple[str, ...]:
        return self._labels

    @property
    def father(self) -> Tuple[Optional[int], ...]:
        """Internal index of each member's father (None for founders)."""
        return self._father

    @property
    def mother(self) -> Tuple[Optional[int], ...]:
        """Internal index of each member's mother (None for founders)."""
        return self._mother

    @property
    def sex(self) -> Tuple[Sex, ...]:
        return self._sex

    @property
    def loop_breakers(self) -> Tuple[Tuple[int, int], ...]:
        return self._loop_breakers

    @property
    def markers(self) -> MarkerSet:
        return self._markers

    @property
    def marker_names(self) -> List[Optional[str]]:
        return self._markers.names

    @property
    def pedsize(self) -> int:
        return len(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    @property
    def is_singleton(self) -> bool:
        return len(self._labels) == 1

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pedigree):
            return NotImplemented
        return (self._labels == other._labels and self._father == other._father
                and self._mother == other._mother and self._sex == other._sex
                and self._loop_breakers == other._loop_breakers
                and self._markers == other._markers)

    __hash__ = None

    def __repr__(self) -> str:
        rows = []
        for i, lab in enumerate(self._labels):
            fa = "0" if self._father[i] is None else self._labels[self._father[i]]
            mo = "0" if self._mother[i] is None else self._labels[self._mother[i]]
            rows.append(f"{lab}:{fa}+{mo}:{int(self._sex[i])}")
        return f"Pedigree([{', '.join(rows)}], markers={len(self._markers)})"

    # Lookups

    def internal_id(self, ids: Any, error_if_unknown: bool = True):
        """
        Convert ID labels to internal (0-based) indices.

        Args:
            ids: A single label or a sequence of labels (coerced to strings)
            error_if_unknown: If True, unknown labels raise UnknownMemberError;
                otherwise they map to None

        Returns:
            An index (or None) for a single label, else a list of them
        """
        index = {lab: i for i, lab in enumerate(self._labels)}
        single = isinstance(ids, (str, int, np.integer))
        id_list = [ids] if single else list(ids)
        result = [index.get(str(i)) for i in id_list]
        if error_if_unknown:
            unknown = [str(i) for i, r in zip(id_list, result) if r is None]
            if unknown:
                raise UnknownMemberError(unknown)
        return result[0] if single else result

    def founders(self) -> List[str]:
        return [lab for lab, fa in zip(self._labels, self._father) if fa is None]

    def nonfounders(self) -> List[str]:
        return [lab for lab, fa in zip(self._labels, self._father) if fa is not None]

    def parents(self, id_: Any) -> Optional[Tuple[str, str]]:
        """Return (father, mother) labels of a member, or None for a founder."""
        i = self.internal_id(id_)
        if self._father[i] is None:
            return None
        return self._labels[self._father[i]], self._labels[self._mother[i]]

    def children(self, id_: Any) -> List[str]:
        i = self.internal_id(id_)
        return [self._labels[k] for k in range(len(self._labels))
                if self._father[k] == i or self._mother[k] == i]

    # Ordering

    def has_parents_before_children(self) -> bool:
        """True if every parent is stored before each of its children."""
        for i, (fa, mo) in enumerate(zip(self._father, self._mother)):
            if fa is not None and (fa >= i or mo >= i):
                return False
        return True

    def reorder(self, new_order: Optional[Sequence[Union[str, int]]] = None) -> 'Pedigree':
        """
        Return a pedigree with members stored in a new order.

        Args:
            new_order: A permutation of all ID labels (strings), or of the
                internal positions 0..N-1 (integers). Entry k names the member
                that ends up at position k. Default: the ID labels in sorted order

        Returns:
            The reordered pedigree; `self` if the order is unchanged or the
            pedigree is a singleton

        Raises:
            InvalidArgumentError: If `new_order` is not such a permutation
        """
        if self.is_singleton:
            return self

        n = len(self._labels)
        new_order = sorted(self._labels) if new_order is None else list(new_order)
        if len(new_order) != n:
            raise InvalidArgumentError(f"`new_order` must have length {n}, not {len(new_order)}")

        if all(isinstance(x, str) for x in new_order):
            if set(new_order) != set(self._labels):
                raise InvalidArgumentError(
                    f"`new_order` must be a permutation of the ID labels: {new_order}"
                )
            order = self.internal_id(new_order)
        elif all(isinstance(x, (int, np.integer)) and not isinstance(x, bool) for x in new_order):
            order = [int(x) for x in new_order]
            if sorted(order) != list(range(n)):
                raise InvalidArgumentError(
                    f"`new_order` must be a permutation of positions 0..{n - 1}: {new_order}"
                )
        else:
            raise InvalidArgumentError(
                f"`new_order` must contain either ID labels or positions, not a mix: {new_order}"
            )

        if order == list(range(n)):
            return self

        logger.debug("Reordering pedigree of size %d: %s", n, order)
        new = self._copy()
        new._apply_order(order)
        return new

    def _parents_first_order(self) -> List[int]:
        """Permutation placing each member after its parents, disturbing the order minimally."""
        n = len(self._labels)
        order = list(range(n))
        i = 0
        while i < n - 1:
            current = order[i]
            parents = [p for p in (self._father[current], self._mother[current]) if p is not None]
            maxpar = max((order.index(p) for p in parents), default=-1)
            if maxpar > i:
                # Move current member to just below its latest parent
                order[i:maxpar + 1] = order[i + 1:maxpar + 1] + [current]
            else:
                i += 1
        return order

    def parents_before_children(self) -> 'Pedigree':
        """
        Return a pedigree in which parents precede their children.

        Already sorted pedigrees (and singletons) are returned as is.
        """
        if self.is_singleton or self.has_parents_before_children():
            return self
        return self.reorder(self._parents_first_order())

    # Modifications

    def relabel(self, new_labels: Union[Sequence[Any], Dict[Any, Any]]) -> 'Pedigree':
        """
        Return a pedigree with new ID labels.

        Args:
            new_labels: Either a sequence with one new label per member, or a
                mapping {old label: new label} for a subset of members

        Raises:
            UnknownMemberError: If a mapping key is not a member
            StructuralError: If the new labels are not unique or not valid
        """
        if isinstance(new_labels, dict):
            idx = self.internal_id(list(new_labels.keys()))
            labels = list(self._labels)
            for i, new in zip(idx, new_labels.values()):
                labels[i] = str(new)
        else:
            labels = [str(x) for x in new_labels]
            if len(labels) != len(self._labels):
                raise CountMismatchError(
                    f"Expected {len(self._labels)} new labels, got {len(labels)}"
                )

        if len(set(labels)) != len(labels):
            dups = sorted({x for x in labels if labels.count(x) > 1})
            raise StructuralError(f"Duplicated ID label: {', '.join(dups)}")
        bad = [x for x in labels if x in ("", "0")]
        if bad:
            raise StructuralError(f"Invalid ID label: {bad[0]!r}")

        new = self._copy()
        new._labels = tuple(labels)
        new._markers = self._markers.relabeled(new._labels)
        return new

    def with_markers(self, markers: MarkerSet) -> 'Pedigree':
        """Return a pedigree with `markers` attached in place of the current ones."""
        markers = MarkerSet(markers)
        markers.check_consistency(self)
        new = self._copy()
        new._markers = markers
        return new
