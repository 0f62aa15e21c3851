"""Custom exceptions for the pedkit package."""


class PedkitError(Exception):
    """Base exception for pedkit package."""
    pass


class ConfigurationError(PedkitError):
    """Configuration validation or loading error."""
    pass


class StructuralError(PedkitError):
    """Invalid pedigree structure (cycles, single parents, duplicate labels)."""
    pass


class InvalidArgumentError(PedkitError, ValueError):
    """Malformed argument, e.g. a sequence that is not a permutation."""
    pass


class InvalidGenotypeError(InvalidArgumentError):
    """Genotype of the wrong length or shape."""
    pass


class UnknownMemberError(PedkitError, ValueError):
    """ID label not found in the pedigree."""

    def __init__(self, labels):
        self.labels = list(labels)
        super().__init__(f"Unknown ID label: {', '.join(map(str, self.labels))}")


class CountMismatchError(PedkitError):
    """Too many genotype assignments, or row counts that disagree."""
    pass


class InvalidAlleleError(PedkitError):
    """Allele outside the declared allele set, or a missing-value allele label."""
    pass


class AlleleFrequencyError(PedkitError):
    """Allele frequencies of the wrong length or not summing to 1."""
    pass


class NameFormatError(PedkitError):
    """Invalid marker name."""
    pass


class ShapeMismatchError(PedkitError):
    """Genotype table and member attributes have inconsistent shapes."""
    pass


class MutationModelError(PedkitError):
    """Mutation model construction or validation failure."""
    pass
