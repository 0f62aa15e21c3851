"""Marker model: genotypes of pedigree members at one locus."""

import logging
import math
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING
import numpy as np

from ..config import DEFAULT_CONFIG, PedkitConfig
from ..exceptions import (
    AlleleFrequencyError, CountMismatchError, InvalidAlleleError, InvalidArgumentError,
    InvalidGenotypeError, MutationModelError, NameFormatError, ShapeMismatchError,
    UnknownMemberError
)
from ..mutation import DEFAULT_MUTATION_SERVICE, MutationModelService
from .alleles import AlleleTable, freq_sum_ok
from .sex import Sex

if TYPE_CHECKING:
    from .pedigree import Pedigree

logger = logging.getLogger(__name__)

# Allele labels that are never valid, whatever the configured missing strings
_INVALID_ALLELES = ("", "0")


class Marker:
    """
    Genotypes of all pedigree members at a single locus.

    Genotypes are stored as an (N, 2) integer array of allele codes, where
    code k refers to `alleles[k - 1]` and 0 means missing. The member labels
    and sexes are a snapshot of the pedigree the marker was created for.

    Markers are normally created with `create_marker()`. Apart from
    `set_genotype()` and `set_afreq()`, which change the marker in place,
    all operations return new markers.
    """

    def __init__(
        self,
        genotypes: np.ndarray,
        allele_table: AlleleTable,
        pedmembers: Sequence[str],
        sex: Sequence[int],
        name: Optional[str] = None,
        chrom: Optional[str] = None,
        pos_mb: Optional[float] = None,
        pos_cm: Optional[float] = None,
        mutation_model: Any = None,
        mutation_service: Optional[MutationModelService] = None
    ):
        """
        Initialize a marker from already coded parts (no validation beyond types).

        Args:
            genotypes: Integer array with two columns and one row per member
            allele_table: Alleles and frequencies
            pedmembers: Member labels, one per row
            sex: Member sex codes, one per row
            name: Marker name
            chrom: Chromosome label
            pos_mb: Physical position in megabases
            pos_cm: Genetic position in centiMorgan
            mutation_model: Opaque mutation model
            mutation_service: Service that built `mutation_model`
        """
        genotypes = np.asarray(genotypes)
        if genotypes.ndim != 2 or genotypes.shape[1] != 2:
            raise ShapeMismatchError(f"Genotype table must have 2 columns, got shape {genotypes.shape}")
        if genotypes.size and not np.issubdtype(genotypes.dtype, np.integer):
            raise ShapeMismatchError(f"Genotype table must contain integer codes, not {genotypes.dtype}")

        self._genotypes = genotypes.astype(int)
        self.allele_table = allele_table
        self.pedmembers: Tuple[str, ...] = tuple(str(p) for p in pedmembers)
        self.sex: Tuple[Sex, ...] = tuple(Sex.coerce(s) for s in sex)
        self.name = name
        self.chrom = chrom
        self.pos_mb = pos_mb
        self.pos_cm = pos_cm
        self.mutation_model = mutation_model
        self.mutation_service = mutation_service

    @property
    def genotypes(self) -> np.ndarray:
        """Read-only view of the allele code table."""
        view = self._genotypes.view()
        view.setflags(write=False)
        return view

    @property
    def alleles(self) -> Tuple[str, ...]:
        return self.allele_table.alleles

    @property
    def afreq(self) -> np.ndarray:
        return self.allele_table.afreq

    @property
    def nalleles(self) -> int:
        return len(self.allele_table)

    @property
    def nrows(self) -> int:
        return self._genotypes.shape[0]

    def is_x_linked(self, config: Optional[PedkitConfig] = None) -> bool:
        return (config or DEFAULT_CONFIG).is_x_chromosome(self.chrom)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Marker):
            return NotImplemented
        return (np.array_equal(self._genotypes, other._genotypes)
                and self.allele_table == other.allele_table
                and self.pedmembers == other.pedmembers and self.sex == other.sex
                and self.name == other.name and self.chrom == other.chrom
                and self.pos_mb == other.pos_mb and self.pos_cm == other.pos_cm
                and self.mutation_model is other.mutation_model)

    __hash__ = None

    def __repr__(self) -> str:
        name = self.name if self.name is not None else "<NA>"
        chrom = self.chrom if self.chrom is not None else "NA"
        return (f"Marker(name={name}, chrom={chrom}, alleles={list(self.alleles)}, "
                f"members={self.nrows}, typed={int(np.sum(self._genotypes.any(axis=1)))})")

    def _row(self, member: Any) -> int:
        try:
            return self.pedmembers.index(str(member))
        except ValueError:
            raise UnknownMemberError([member]) from None

    def genotype(self, member: Any) -> Tuple[Optional[str], Optional[str]]:
        """
        Genotype of a member as a pair of allele labels.

        Args:
            member: ID label

        Returns:
            Tuple of two allele labels, None for missing alleles
        """
        a, b = self._genotypes[self._row(member)]
        return self.allele_table.label(int(a)), self.allele_table.label(int(b))

    def set_genotype(self, member: Any, genotype: Any, config: Optional[PedkitConfig] = None) -> None:
        """
        Set the genotype of one member. Modifies the marker in place.

        Args:
            member: ID label
            genotype: Same formats as accepted by `create_marker()`
            config: Conventions for missing values and allele separator

        Raises:
            UnknownMemberError: If `member` is not in the marker
            InvalidGenotypeError: If `genotype` is malformed
            InvalidAlleleError: If an allele is not in the allele table
        """
        config = config or DEFAULT_CONFIG
        row = self._row(member)
        pair = parse_genotype(genotype, config)
        unknown = [a for a in pair if a is not None and a not in self.allele_table]
        if unknown:
            raise InvalidAlleleError(f"Invalid allele for {_marker_text(self.name)}{', '.join(unknown)}")
        self._genotypes[row] = [self.allele_table.code(a) for a in pair]

    def set_afreq(self, afreq: Any) -> None:
        """
        Replace the allele frequencies. Modifies the marker in place.

        Args:
            afreq: Mapping {allele: frequency}, or a sequence in allele order

        Raises:
            AlleleFrequencyError: If the frequencies are invalid
        """
        table = self.allele_table.with_afreq(afreq)
        _check_afreq(table)
        self.allele_table = table
        if self.mutation_model is not None:
            logger.warning("Allele frequencies of %s changed; its mutation model was not rebuilt",
                           _marker_text(self.name).rstrip(": "))

    def format(self, sep: Optional[str] = None, missing: Optional[str] = None,
               config: Optional[PedkitConfig] = None) -> List[str]:
        """
        Genotypes as display strings, one per member.

        Missing alleles are shown as `missing`. On X-linked markers, males
        are shown with a single allele.
        """
        config = config or DEFAULT_CONFIG
        sep = config.genotype_sep if sep is None else sep
        missing = config.missing_symbol if missing is None else missing
        x_linked = self.is_x_linked(config)

        out = []
        for (a, b), sex in zip(self._genotypes, self.sex):
            al1 = self.allele_table.label(int(a))
            al1 = missing if al1 is None else al1
            if x_linked and sex == Sex.MALE:
                out.append(al1)
                continue
            al2 = self.allele_table.label(int(b))
            al2 = missing if al2 is None else al2
            out.append(f"{al1}{sep}{al2}")
        return out

    def copy(self) -> 'Marker':
        return self._replace()

    def _replace(self, genotypes=None, pedmembers=None, sex=None) -> 'Marker':
        return Marker(
            genotypes=self._genotypes.copy() if genotypes is None else genotypes,
            allele_table=self.allele_table,
            pedmembers=self.pedmembers if pedmembers is None else pedmembers,
            sex=self.sex if sex is None else sex,
            name=self.name, chrom=self.chrom, pos_mb=self.pos_mb, pos_cm=self.pos_cm,
            mutation_model=self.mutation_model, mutation_service=self.mutation_service,
        )

    def permuted(self, order: Sequence[int], pedmembers: Sequence[str], sex: Sequence[int]) -> 'Marker':
        """New marker with rows taken in `order` and the given member snapshot."""
        return self._replace(genotypes=self._genotypes[list(order)], pedmembers=pedmembers, sex=sex)

    def relabeled(self, pedmembers: Sequence[str]) -> 'Marker':
        return self._replace(pedmembers=pedmembers)

    def transferred(self, pedmembers: Sequence[str], sex: Sequence[int],
                    ids: Optional[Sequence[str]] = None) -> 'Marker':
        """
        Copy this marker onto another set of members.

        Genotypes are copied for labels present in both member lists (and in
        `ids`, if given); everyone else is missing.
        """
        pedmembers = tuple(pedmembers)
        keep = set(self.pedmembers) if ids is None else {str(i) for i in ids}
        genotypes = np.zeros((len(pedmembers), 2), dtype=int)
        source_row = {lab: i for i, lab in enumerate(self.pedmembers)}
        for i, lab in enumerate(pedmembers):
            if lab in source_row and lab in keep:
                genotypes[i] = self._genotypes[source_row[lab]]
        return self._replace(genotypes=genotypes, pedmembers=pedmembers, sex=sex)


def _marker_text(name: Optional[str]) -> str:
    return "this marker: " if name is None else f"marker `{name}`: "


def _allele_label(value: Any, config: PedkitConfig) -> Optional[str]:
    """Allele value as a string label, or None if it denotes a missing allele."""
    if config.is_missing(value):
        return None
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        value = int(value)
    return str(value)


def parse_genotype(genotype: Any, config: Optional[PedkitConfig] = None) -> Tuple[Optional[str], Optional[str]]:
    """
    Normalize a genotype to a pair of allele labels (None for missing).

    Accepted formats: a pair such as ("a", "b") or [1, 2]; a compound
    string such as "a/b"; a single allele, which is read as homozygous.

    Raises:
        InvalidGenotypeError: If the genotype doesn't have 1 or 2 alleles
    """
    config = config or DEFAULT_CONFIG
    if genotype is None or isinstance(genotype, (str, int, float, np.generic)):
        g = [genotype]
    elif isinstance(genotype, (list, tuple, np.ndarray)):
        g = list(genotype)
    else:
        raise InvalidGenotypeError(f"Genotype must be a vector of length 1 or 2: {genotype!r}")

    if len(g) not in (1, 2):
        raise InvalidGenotypeError(f"Genotype must be a vector of length 1 or 2: {genotype!r}")

    if len(g) == 1 and isinstance(g[0], str) and config.genotype_sep in g[0]:
        g = g[0].split(config.genotype_sep)
        if len(g) != 2:
            raise InvalidGenotypeError(f"Genotype must be a vector of length 1 or 2: {genotype!r}")

    if len(g) == 1:
        g = [g[0], g[0]]

    return _allele_label(g[0], config), _allele_label(g[1], config)


def _check_afreq(table: AlleleTable) -> None:
    afreq = table.afreq
    if len(afreq) != len(table.alleles):
        raise AlleleFrequencyError("Frequency vector doesn't match the number of alleles")
    if np.any(afreq < 0) or np.any(np.isnan(afreq)):
        raise AlleleFrequencyError(f"Allele frequencies must be non-negative: {afreq.tolist()}")
    if not freq_sum_ok(afreq):
        raise AlleleFrequencyError(
            f"Allele frequencies do not sum to 1 (after rounding to 3 decimal places): {afreq.tolist()}"
        )


def _is_empty(genotypes: Any) -> bool:
    if genotypes is None:
        return True
    if isinstance(genotypes, (Mapping, list, tuple, np.ndarray)):
        return len(genotypes) == 0
    return False


def _raw_table(pedigree: 'Pedigree', genotypes: Any, allele_matrix: Any,
               config: PedkitConfig) -> List[List[Optional[str]]]:
    """Genotypes in label space, one [allele1, allele2] row per member."""
    n = pedigree.pedsize

    if allele_matrix is not None:
        if not _is_empty(genotypes):
            raise InvalidArgumentError("Genotype assignments cannot be combined with `allele_matrix`")
        rows = [list(row) for row in allele_matrix]
        if len(rows) != n or any(len(row) != 2 for row in rows):
            shape = np.shape(allele_matrix)
            raise ShapeMismatchError(f"`allele_matrix` must have {n} rows and 2 columns, got {shape}")
        return [[_allele_label(a, config) for a in row] for row in rows]

    table: List[List[Optional[str]]] = [[None, None] for _ in range(n)]
    if _is_empty(genotypes):
        return table

    if isinstance(genotypes, Mapping):
        assignments = list(genotypes.items())
        if len(assignments) > n:
            raise CountMismatchError("Too many genotype assignments")
        rows = pedigree.internal_id([member for member, _ in assignments])
        values = [g for _, g in assignments]
    elif isinstance(genotypes, (list, tuple, np.ndarray)):
        if len(genotypes) > n:
            raise CountMismatchError("Too many genotype assignments")
        rows = list(range(len(genotypes)))
        values = list(genotypes)
    else:
        raise InvalidArgumentError(
            f"Genotype assignments must be a mapping or a sequence, not {type(genotypes).__name__}"
        )

    for row, g in zip(rows, values):
        table[row] = list(parse_genotype(g, config))
    return table


def _observed_alleles(table: List[List[Optional[str]]]) -> List[str]:
    """Distinct non-missing alleles, first column before second."""
    seen: Dict[str, None] = {}
    for col in (0, 1):
        for row in table:
            if row[col] is not None:
                seen.setdefault(row[col])
    return list(seen)


def create_marker(
    pedigree: 'Pedigree',
    genotypes: Any = None,
    allele_matrix: Any = None,
    alleles: Optional[Sequence[Any]] = None,
    afreq: Any = None,
    chrom: Any = None,
    pos_mb: Optional[float] = None,
    pos_cm: Optional[float] = None,
    name: Optional[str] = None,
    na_strings: Optional[Sequence[str]] = None,
    mutation_model: Any = None,
    rate: Any = None,
    mutation_service: Optional[MutationModelService] = None,
    validate: bool = True,
    config: Optional[PedkitConfig] = None
) -> Marker:
    """
    Create a marker for the members of `pedigree`.

    Args:
        pedigree: Pedigree the marker belongs to
        genotypes: Either a mapping {ID label: genotype} or a sequence of
            genotypes assigned to the first members in order. A genotype is a
            pair of alleles, a compound string like "a/b", or a single allele
            (homozygous)
        allele_matrix: Alternative to `genotypes`: one [allele1, allele2]
            row per member
        alleles: Allele labels. Default: keys of `afreq` if it is a mapping,
            otherwise the alleles observed in the genotypes, otherwise
            `config.default_alleles`
        afreq: Allele frequencies, as a mapping {allele: frequency} or a
            sequence parallel to `alleles`. Default: uniform
        chrom: Chromosome label
        pos_mb: Physical position in megabases
        pos_cm: Genetic position in centiMorgan
        name: Marker name (must not consist only of digits)
        na_strings: Strings read as missing alleles. Default: `config.na_strings`
        mutation_model: Mutation model name (or per-sex names) for `mutation_service`
        rate: Mutation rate passed to `mutation_service`
        mutation_service: Builds and validates the mutation model.
            Default: DEFAULT_MUTATION_SERVICE
        validate: If True, run `validate_marker()` on the result
        config: Conventions for missing values and separators

    Returns:
        New Marker

    Raises:
        InvalidArgumentError, InvalidGenotypeError, UnknownMemberError,
        CountMismatchError, ShapeMismatchError, InvalidAlleleError,
        AlleleFrequencyError, MutationModelError, NameFormatError
    """
    config = config or DEFAULT_CONFIG
    if na_strings is not None:
        config = PedkitConfig(
            na_strings=[str(s) for s in na_strings],
            genotype_sep=config.genotype_sep,
            missing_symbol=config.missing_symbol,
            default_alleles=config.default_alleles,
            x_chromosomes=config.x_chromosomes,
        )

    name = None if name is None or name == "" else str(name)
    chrom = None if chrom is None or chrom == "" else str(chrom)
    pos_mb = None if pos_mb is None else float(pos_mb)
    pos_cm = None if pos_cm is None else float(pos_cm)

    raw = _raw_table(pedigree, genotypes, allele_matrix, config)
    observed = _observed_alleles(raw)

    # Alleles
    if isinstance(alleles, (str, int, float, np.generic)):
        alleles = [alleles]
    if alleles is not None:
        bad = [a for a in alleles if config.is_missing(a)]
        if bad:
            raise InvalidAlleleError(f"Invalid entry in `alleles`: {', '.join(map(str, bad))}")
        allele_labels = [_allele_label(a, config) for a in alleles]
    elif isinstance(afreq, Mapping):
        allele_labels = [_allele_label(a, config) for a in afreq.keys()]
    else:
        allele_labels = observed or list(config.default_alleles)

    invalid = [a for a in observed if a not in allele_labels]
    if invalid:
        raise InvalidAlleleError(f"Invalid allele for {_marker_text(name)}{', '.join(invalid)}")

    # Frequencies
    if afreq is None:
        freqs = None
    elif isinstance(afreq, Mapping):
        freq_by_allele = {_allele_label(k, config): v for k, v in afreq.items()}
        if alleles is not None and (set(freq_by_allele) != set(allele_labels)
                                    or len(freq_by_allele) != len(allele_labels)):
            raise AlleleFrequencyError(
                f"Names of `afreq` ({', '.join(freq_by_allele)}) don't match `alleles` ({', '.join(allele_labels)})"
            )
        freqs = [freq_by_allele[a] for a in allele_labels]
    else:
        freqs = list(afreq)

    allele_table = AlleleTable(allele_labels, freqs)

    # Mutation model
    model = None
    service = None
    if mutation_model is not None:
        service = mutation_service or DEFAULT_MUTATION_SERVICE
        try:
            model = service.build_model(mutation_model, allele_table.alleles, allele_table.afreq, rate)
        except MutationModelError:
            raise
        except Exception as e:
            raise MutationModelError(f"Failed to build mutation model for {_marker_text(name)}{e}") from e

    codes = np.array([[allele_table.code(a) for a in row] for row in raw], dtype=int).reshape(-1, 2)

    marker = Marker(
        genotypes=codes,
        allele_table=allele_table,
        pedmembers=pedigree.labels,
        sex=pedigree.sex,
        name=name,
        chrom=chrom,
        pos_mb=pos_mb,
        pos_cm=pos_cm,
        mutation_model=model,
        mutation_service=service,
    )
    logger.debug("Created %r", marker)

    if validate:
        validate_marker(marker, config)
    elif not freq_sum_ok(allele_table.afreq):
        logger.warning(
            "Allele frequencies of %s do not sum to 1 (after rounding to 3 decimal places): %s",
            _marker_text(name).rstrip(": "), allele_table.afreq.tolist()
        )

    return marker


def validate_marker(marker: Marker, config: Optional[PedkitConfig] = None) -> Marker:
    """
    Check the internal consistency of a marker.

    Args:
        marker: Marker to check
        config: Conventions for missing values and X chromosome labels

    Returns:
        The marker itself

    Raises:
        InvalidAlleleError: If an allele label denotes a missing value
        AlleleFrequencyError: If frequencies are the wrong length, negative,
            or don't sum to 1 after rounding to 3 decimals
        NameFormatError: If the name is not a string or is all digits
        ShapeMismatchError: If member attributes don't match the genotype rows,
            or allele codes are out of range
        InvalidArgumentError: If a position is negative
        InvalidGenotypeError: If a male is heterozygous on an X-linked marker
        MutationModelError: If the attached mutation model is invalid
    """
    config = config or DEFAULT_CONFIG

    # alleles
    bad = [a for a in marker.alleles if a in _INVALID_ALLELES or config.is_missing(a)]
    if bad:
        raise InvalidAlleleError(f"Invalid entry in `alleles`: {', '.join(bad)}")

    # afreq
    _check_afreq(marker.allele_table)

    # name
    name = marker.name
    if name is not None:
        if not isinstance(name, str):
            raise NameFormatError(f"Marker name must be a string: {name!r}")
        if name.isdigit():
            raise NameFormatError(f"Marker name cannot consist entirely of digits: {name}")

    # positions
    for attr in ('pos_mb', 'pos_cm'):
        pos = getattr(marker, attr)
        if pos is not None and not math.isnan(pos) and pos < 0:
            raise InvalidArgumentError(f"`{attr}` must be non-negative: {pos}")

    # pedmembers and sex
    nrows = marker.nrows
    if len(marker.pedmembers) != nrows:
        raise ShapeMismatchError("`pedmembers` must have the same length as the number of genotype rows")
    if len(marker.sex) != nrows:
        raise ShapeMismatchError("`sex` must have the same length as the number of genotype rows")

    genos = marker.genotypes
    if genos.size and (genos.min() < 0 or genos.max() > marker.nalleles):
        raise ShapeMismatchError(f"Allele codes must be between 0 and {marker.nalleles}")

    # hemizygous males
    if marker.is_x_linked(config):
        for label, sex, (a, b) in zip(marker.pedmembers, marker.sex, genos):
            if sex == Sex.MALE and a != b and a != 0 and b != 0:
                raise InvalidGenotypeError(
                    f"Male {label} is heterozygous on X-linked {_marker_text(marker.name).rstrip(': ')}"
                )

    # mutation model
    if marker.mutation_model is not None:
        service = marker.mutation_service or DEFAULT_MUTATION_SERVICE
        try:
            service.validate(marker.mutation_model)
        except MutationModelError:
            raise
        except Exception as e:
            raise MutationModelError(f"Invalid mutation model for {_marker_text(marker.name)}{e}") from e

    return marker
