"""Allele labels, frequencies and label/code mapping."""

import math
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np

from ..exceptions import AlleleFrequencyError, InvalidAlleleError

# Frequencies must sum to exactly 1 after rounding to this many decimals
FREQ_DECIMALS = 3


def _as_number(label: str) -> Optional[float]:
    """Finite numeric value of `label`, or None if it is not a plain number."""
    # float() also accepts digit separators ("1_0")
    if "_" in str(label):
        return None
    try:
        value = float(label)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def canonical_order(alleles: Sequence[str]) -> List[int]:
    """
    Return the permutation that sorts `alleles` canonically.

    Numeric sorting is used if every label parses as a finite number,
    otherwise plain lexicographic sorting. Numerically equal labels
    ("1", "1.0") are ordered by label.

    Args:
        alleles: Allele labels

    Returns:
        List of indices into `alleles`
    """
    numbers = [_as_number(a) for a in alleles]
    if all(n is not None for n in numbers):
        return sorted(range(len(alleles)), key=lambda i: (numbers[i], alleles[i]))
    return sorted(range(len(alleles)), key=lambda i: alleles[i])


def freq_sum_ok(afreq) -> bool:
    """True if the frequencies sum to 1 after rounding to 3 decimals."""
    return round(float(np.sum(afreq)), FREQ_DECIMALS) == 1


class AlleleTable:
    """
    Canonically ordered allele labels with their population frequencies.

    Genotypes refer to alleles through integer codes: code `k` (1-based)
    is `alleles[k - 1]`, and code 0 means missing.
    """

    def __init__(self, alleles: Sequence[str], afreq: Optional[Sequence[float]] = None):
        """
        Initialize an allele table.

        The input is sorted into canonical order; frequencies follow their alleles.

        Args:
            alleles: Distinct allele labels (coerced to strings)
            afreq: Frequencies parallel to `alleles`; uniform if None

        Raises:
            InvalidAlleleError: If labels are duplicated
            AlleleFrequencyError: If the frequency vector has the wrong length
        """
        labels = [str(a) for a in alleles]
        if len(set(labels)) != len(labels):
            dups = sorted({a for a in labels if labels.count(a) > 1})
            raise InvalidAlleleError(f"Duplicated alleles: {', '.join(dups)}")

        if afreq is None:
            n = len(labels)
            freqs = np.full(n, 1.0 / n) if n > 0 else np.zeros(0)
        else:
            freqs = np.asarray(afreq, dtype=float)
            if freqs.ndim != 1 or len(freqs) != len(labels):
                raise AlleleFrequencyError("Frequency vector doesn't match the number of alleles")

        ord_ = canonical_order(labels)
        self._alleles: Tuple[str, ...] = tuple(labels[i] for i in ord_)
        self._afreq = freqs[np.asarray(ord_, dtype=int)]
        self._afreq.setflags(write=False)
        self._index: Dict[str, int] = {a: i + 1 for i, a in enumerate(self._alleles)}

    @property
    def alleles(self) -> Tuple[str, ...]:
        return self._alleles

    @property
    def afreq(self) -> np.ndarray:
        return self._afreq

    def __len__(self) -> int:
        return len(self._alleles)

    def __contains__(self, label) -> bool:
        return str(label) in self._index

    def __eq__(self, other) -> bool:
        if not isinstance(other, AlleleTable):
            return NotImplemented
        return self._alleles == other._alleles and np.array_equal(self._afreq, other._afreq)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{a}={f:.3g}" for a, f in zip(self._alleles, self._afreq))
        return f"AlleleTable({pairs})"

    def code(self, label) -> int:
        """Integer code of `label`, or 0 if it is not an allele of this table."""
        if label is None:
            return 0
        return self._index.get(str(label), 0)

    def label(self, code: int) -> Optional[str]:
        """Allele label for `code`, or None for code 0."""
        if code == 0:
            return None
        if not 0 < code <= len(self._alleles):
            raise InvalidAlleleError(f"Allele code out of range: {code}")
        return self._alleles[code - 1]

    def freq_dict(self) -> Dict[str, float]:
        return {a: float(f) for a, f in zip(self._alleles, self._afreq)}

    def with_afreq(self, afreq) -> 'AlleleTable':
        """
        Return a new table with the same alleles and new frequencies.

        Args:
            afreq: Either a mapping {allele: frequency} covering exactly the
                alleles of this table, or a sequence in canonical allele order

        Raises:
            AlleleFrequencyError: If names or length don't match
        """
        if isinstance(afreq, dict):
            keys = [str(k) for k in afreq]
            if sorted(keys) != sorted(self._alleles) or len(keys) != len(self._alleles):
                raise AlleleFrequencyError(
                    f"Frequency names ({', '.join(keys)}) don't match the alleles ({', '.join(self._alleles)})"
                )
            lookup = {str(k): v for k, v in afreq.items()}
            return AlleleTable(self._alleles, [lookup[a] for a in self._alleles])
        return AlleleTable(self._alleles, afreq)
