"""Tabular export of pedigrees and preparation of renderer input."""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from .config import DEFAULT_CONFIG, PedkitConfig
from .exceptions import CountMismatchError, InvalidArgumentError
from .models.marker import Marker
from .models.markerset import MarkerSet, get_markers
from .models.pedigree import Pedigree


@dataclass
class PedTable:
    """A pedigree as rows of strings: id, father, mother, sex, one column per marker."""
    columns: List[str]
    rows: List[List[str]]

    def to_text(self, delimiter: str = "\t") -> str:
        lines = [delimiter.join(self.columns)]
        lines.extend(delimiter.join(row) for row in self.rows)
        return "\n".join(lines) + "\n"


def _marker_column_names(markers: MarkerSet) -> List[str]:
    # Unnamed markers are headed by their 1-based index; names are never all digits
    return [m.name if m.name is not None else str(i + 1) for i, m in enumerate(markers)]


def to_table(pedigree: Pedigree, sep: Optional[str] = None, missing: Optional[str] = None,
             config: Optional[PedkitConfig] = None) -> PedTable:
    """
    Convert a pedigree and its attached markers to a table.

    Founders have father and mother "0". Sex is the integer code. Genotype
    cells read `a1/a2`, with `missing` in place of each missing allele.

    Args:
        pedigree: Pedigree to export
        sep: Allele separator. Default: `config.genotype_sep`
        missing: Symbol for missing alleles. Default: `config.missing_symbol`
        config: Display conventions

    Returns:
        PedTable
    """
    config = config or DEFAULT_CONFIG
    markers = pedigree.markers
    markers.check_consistency(pedigree)

    labels = pedigree.labels
    genos = [m.format(sep=sep, missing=missing, config=config) for m in markers]

    rows = []
    for i, lab in enumerate(labels):
        fa, mo = pedigree.father[i], pedigree.mother[i]
        row = [
            lab,
            "0" if fa is None else labels[fa],
            "0" if mo is None else labels[mo],
            str(int(pedigree.sex[i])),
        ]
        row.extend(g[i] for g in genos)
        rows.append(row)

    return PedTable(columns=["id", "father", "mother", "sex"] + _marker_column_names(markers), rows=rows)


@dataclass
class RenderInput:
    """Everything a pedigree renderer needs, one entry per member."""
    labels: List[str]
    colors: List[Any]
    status: List[int]
    father: List[str]
    mother: List[str]
    sex: List[int]


def render_input(
    pedigree: Pedigree,
    markers: Union[None, Marker, MarkerSet, Sequence[Any]] = None,
    sep: Optional[str] = None,
    missing: Optional[str] = None,
    skip_empty_genotypes: bool = False,
    id_labels: Union[None, str, Sequence[Any]] = "labels",
    col: Union[Any, Sequence[Any]] = 1,
    deceased: Sequence[Any] = (),
    starred: Sequence[Any] = (),
    config: Optional[PedkitConfig] = None
) -> RenderInput:
    """
    Prepare labels, colours and structure arrays for a pedigree renderer.

    Args:
        pedigree: Pedigree to draw
        markers: Markers whose genotypes are written under each member: a
            Marker, a MarkerSet, or indices/names of attached markers
        sep: Allele separator
        missing: Symbol for missing alleles
        skip_empty_genotypes: If True, members with no typed alleles get no genotype text
        id_labels: "labels" for the ID labels, "num" for 1-based positions,
            None or "" for no labels, or a sequence with one label per member
        col: A colour, or a sequence of colours recycled over the members
        deceased: ID labels of deceased members (status 1)
        starred: ID labels to be marked with a star
        config: Display conventions

    Returns:
        RenderInput
    """
    config = config or DEFAULT_CONFIG
    n = pedigree.pedsize

    if id_labels is None or id_labels == "":
        text = [""] * n
    elif isinstance(id_labels, str) and id_labels == "labels":
        text = list(pedigree.labels)
    elif isinstance(id_labels, str) and id_labels == "num":
        text = [str(i + 1) for i in range(n)]
    elif isinstance(id_labels, str):
        raise InvalidArgumentError(f"Invalid `id_labels`: {id_labels!r}")
    else:
        text = ["" if lab is None else str(lab) for lab in id_labels]
        if len(text) != n:
            raise CountMismatchError(f"`id_labels` must have length {n}, not {len(text)}")

    for i in pedigree.internal_id(list(starred)):
        text[i] += "*"

    if markers is not None:
        if isinstance(markers, (Marker, MarkerSet)):
            mlist = MarkerSet(markers)
        else:
            mlist = get_markers(pedigree, markers)
        mlist.check_consistency(pedigree)

        if len(mlist) > 0:
            formatted = [m.format(sep=sep, missing=missing, config=config) for m in mlist]
            geno = ["\n".join(g[i] for g in formatted) for i in range(n)]
            if skip_empty_genotypes:
                empty = [all(not m.genotypes[i].any() for m in mlist) for i in range(n)]
                geno = ["" if e else g for g, e in zip(geno, empty)]
            if not any(text):
                text = geno
            else:
                text = [f"{t}\n{g}" for t, g in zip(text, geno)]

    cols = list(col) if isinstance(col, (list, tuple)) else [col]
    colors = [cols[i % len(cols)] for i in range(n)]

    dead = set(pedigree.internal_id(list(deceased)))
    labels = pedigree.labels

    return RenderInput(
        labels=text,
        colors=colors,
        status=[1 if i in dead else 0 for i in range(n)],
        father=["0" if f is None else labels[f] for f in pedigree.father],
        mother=["0" if m is None else labels[m] for m in pedigree.mother],
        sex=[int(s) for s in pedigree.sex],
    )
