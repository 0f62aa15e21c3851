"""Mutation models attached to markers.

Markers treat a mutation model as an opaque object. They only ever talk to
it through a `MutationModelService`: one call to build a model for a given
allele set, one call to validate it. `DefaultMutationService` implements the
simple models used in practice; other services can be plugged in per marker.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple, Union
import numpy as np

from .exceptions import MutationModelError

SEXES = ('female', 'male')


@dataclass
class MutationMatrix:
    """A square matrix of mutation probabilities, with allele row/column names."""
    values: np.ndarray
    row_names: Tuple[str, ...]
    col_names: Tuple[str, ...]

    @classmethod
    def square(cls, values, alleles: Sequence[str]) -> 'MutationMatrix':
        names = tuple(str(a) for a in alleles)
        return cls(np.asarray(values), names, names)


@dataclass
class MutationModel:
    """Female and male mutation matrices for one marker."""
    model: Dict[str, str]
    rate: Dict[str, float]
    alleles: Tuple[str, ...]
    female: MutationMatrix
    male: MutationMatrix

    @property
    def sex_equal(self) -> bool:
        return np.array_equal(self.female.values, self.male.values)

    @property
    def trivial(self) -> bool:
        n = len(self.alleles)
        return all(np.array_equal(m.values, np.eye(n)) for m in (self.female, self.male))


class MutationModelService(Protocol):
    """Interface markers use to create and check mutation models."""

    def build_model(self, mutmod: Any, alleles: Sequence[str], afreq: np.ndarray, rate: Any = None) -> Any:
        ...

    def validate(self, model: Any) -> None:
        ...


def check_mutation_matrix(mutmat: Any, alleles: Sequence[str], identifier: Optional[str] = None) -> None:
    """
    Check that `mutmat` is a valid mutation matrix for `alleles`.

    Args:
        mutmat: A MutationMatrix, or any object with `values`, `row_names`
            and `col_names` attributes (a bare array has no names and fails)
        alleles: Allele labels, in the order rows and columns must follow
        identifier: Optional context, e.g. 'female', used as message prefix

    Raises:
        MutationModelError: Naming the first violated property
    """
    prefix = f"{identifier} mutation matrix: " if identifier is not None else ""
    alleles = tuple(alleles)
    n = len(alleles)

    values = np.asarray(getattr(mutmat, 'values', mutmat))
    if not np.issubdtype(values.dtype, np.number) or values.dtype == np.bool_:
        raise MutationModelError(f"{prefix}Type must be numeric, not {values.dtype}")

    if values.shape != (n, n):
        dims = " x ".join(str(d) for d in values.shape)
        raise MutationModelError(
            f"{prefix}Dimensions ({dims}) incompatible with number of alleles ({n})"
        )

    row_names = getattr(mutmat, 'row_names', None)
    col_names = getattr(mutmat, 'col_names', None)
    if row_names is None or col_names is None or \
            tuple(row_names) != alleles or tuple(col_names) != alleles:
        raise MutationModelError(f"{prefix}Dimnames differ from allele names")

    if np.any(np.round(values.sum(axis=1), 3) != 1):
        raise MutationModelError(f"{prefix}Row sums are not 1")


def _per_sex(value: Any, argname: str) -> Dict[str, Any]:
    """Expand a single value, or a {'female': .., 'male': ..} dict, to both sexes."""
    if isinstance(value, dict):
        missing = [s for s in SEXES if s not in value]
        extra = [k for k in value if k not in SEXES]
        if missing or extra:
            raise MutationModelError(
                f"`{argname}` must have entries 'female' and 'male', got: {', '.join(map(str, value))}"
            )
        return {s: value[s] for s in SEXES}
    return {s: value for s in SEXES}


class DefaultMutationService:
    """
    Builds 'trivial', 'equal' and 'proportional' mutation models.

    * trivial: no mutations (identity matrix)
    * equal: each allele mutates with probability `rate`, equally likely
      into any other allele
    * proportional: mutations land on allele j with probability
      proportional to its frequency; the overall mutation rate is `rate`
    """

    MODELS = ('trivial', 'equal', 'proportional')

    def build_model(self, mutmod: Union[str, Dict[str, str]], alleles: Sequence[str],
                    afreq: np.ndarray, rate: Union[None, float, Dict[str, float]] = None) -> MutationModel:
        """
        Build a model for the given (canonically ordered) alleles.

        Args:
            mutmod: Model name, or a {'female': name, 'male': name} dict
            alleles: Allele labels
            afreq: Allele frequencies, parallel to `alleles`
            rate: Mutation rate, or a {'female': rate, 'male': rate} dict;
                required unless the model is 'trivial'

        Returns:
            MutationModel

        Raises:
            MutationModelError: If the model name or rate is invalid
        """
        alleles = tuple(str(a) for a in alleles)
        afreq = np.asarray(afreq, dtype=float)
        models = _per_sex(mutmod, 'mutmod')
        rates = _per_sex(rate, 'rate')

        matrices = {}
        for sex in SEXES:
            name = models[sex]
            if name not in self.MODELS:
                raise MutationModelError(
                    f"Unknown mutation model '{name}'; expected one of: {', '.join(self.MODELS)}"
                )
            r = rates[sex]
            if name == 'trivial':
                r = 0.0 if r is None else r
            if r is None:
                raise MutationModelError(f"Mutation model '{name}' requires a `rate`")
            if not isinstance(r, (int, float, np.number)) or isinstance(r, bool) or not 0 <= r <= 1:
                raise MutationModelError(f"Mutation rate must be a number between 0 and 1, got {r!r}")
            rates[sex] = float(r)
            matrices[sex] = MutationMatrix.square(self._matrix(name, float(r), afreq), alleles)

        model = MutationModel(model=models, rate=rates, alleles=alleles,
                              female=matrices['female'], male=matrices['male'])
        self.validate(model)
        return model

    @staticmethod
    def _matrix(name: str, rate: float, afreq: np.ndarray) -> np.ndarray:
        n = len(afreq)
        if name == 'trivial' or n == 1:
            return np.eye(n)

        if name == 'equal':
            m = np.full((n, n), rate / (n - 1))
            np.fill_diagonal(m, 1 - rate)
            return m

        # proportional
        heterozygosity = float(np.sum(afreq * (1 - afreq)))
        if heterozygosity == 0:
            return np.eye(n)
        alpha = rate / heterozygosity
        if np.any(alpha * (1 - afreq) > 1):
            raise MutationModelError(
                f"Mutation rate {rate} is too high for the proportional model with these frequencies"
            )
        m = np.tile(alpha * afreq, (n, 1))
        np.fill_diagonal(m, 1 - alpha * (1 - afreq))
        return m

    def validate(self, model: Any) -> None:
        """Raise MutationModelError unless `model` is a valid MutationModel."""
        if not isinstance(model, MutationModel):
            raise MutationModelError(f"Not a mutation model: {type(model).__name__}")
        for sex in SEXES:
            check_mutation_matrix(getattr(model, sex), model.alleles, identifier=sex)


DEFAULT_MUTATION_SERVICE = DefaultMutationService()
